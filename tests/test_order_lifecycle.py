"""Tests for the COD order state machine."""

import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from app.constants.order_status import OrderStatus
from app.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    RefundWindowExpiredError,
    UpstreamUnavailableError,
    ValidationError,
)
from app.models.order import DeliveryPerson
from app.models.order_event import OrderEventType
from app.models.refund import RefundReason, RefundType
from app.services.order_lifecycle import can_cancel, can_return, is_refund_eligible


class TestCreateOrder:
    def test_create_order_snapshots_total(self, place_order, clock):
        order = place_order(quantity=2)

        assert order.total_amount == Decimal("30.00")
        assert order.unit_price == Decimal("15.00")
        assert order.status == OrderStatus.pending
        assert order.payment_method == "cod"
        assert order.created_at == clock.now
        assert order.estimated_delivery_time > order.created_at
        assert order.delivered_at is None

    def test_order_is_persisted(self, place_order, lifecycle):
        order = place_order()
        stored = lifecycle.get_order(order.id)
        assert stored == order

    def test_total_not_recomputed_after_price_change(self, place_order, lifecycle, store, product):
        from app.services.directory import save_product

        order = place_order(quantity=3)
        save_product(store, product.model_copy(update={"price": Decimal("99.00")}))
        store.commit()

        assert lifecycle.get_order(order.id).total_amount == Decimal("45.00")

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_rejects_non_positive_quantity(self, place_order, quantity):
        with pytest.raises(ValidationError):
            place_order(quantity=quantity)

    def test_rejects_blank_address(self, place_order):
        with pytest.raises(ValidationError, match="address"):
            place_order(delivery_address="   ")

    def test_rejects_missing_phone(self, place_order):
        with pytest.raises(ValidationError, match="phone"):
            place_order(delivery_phone="")

    def test_rejects_negative_price(self, place_order):
        with pytest.raises(ValidationError):
            place_order(unit_price=Decimal("-1"))

    def test_rejected_order_writes_nothing(self, place_order, lifecycle):
        with pytest.raises(ValidationError):
            place_order(quantity=0)
        assert lifecycle.orders.list_all() == []

    def test_keeps_notes_and_preferred_time(self, place_order):
        order = place_order(notes="Ring twice", preferred_time="after 6pm")
        assert order.delivery_notes == "Ring twice"
        assert order.preferred_delivery_time == "after 6pm"

    def test_writes_admin_mirror_record(self, place_order, store):
        order = place_order()
        mirror = store.get(f"order:buyer-1:{order.id}")

        assert mirror["payment_method"] == "cod"
        assert mirror["total"] == "30.00"
        assert mirror["products"][0]["product_id"] == "prod-1"

    def test_mirror_failure_does_not_fail_order(self, place_order, store, lifecycle, monkeypatch, caplog):
        original_set = store.set

        def flaky_set(key, value, expected_version=None):
            if key.startswith("order:"):
                raise UpstreamUnavailableError("Record store unavailable")
            return original_set(key, value, expected_version)

        monkeypatch.setattr(store, "set", flaky_set)

        with caplog.at_level(logging.ERROR, logger="app.services.order_lifecycle"):
            order = place_order()

        assert lifecycle.get_order(order.id).status == OrderStatus.pending
        assert "Failed to create admin order record" in caplog.text

    def test_records_order_placed_event(self, place_order, lifecycle):
        order = place_order()
        events = lifecycle.list_events(order.id)

        assert [e.event_type for e in events] == [OrderEventType.order_placed]
        assert events[0].created_by == "buyer-1"


class TestTransitions:
    def test_full_forward_path(self, place_order, lifecycle, users, clock):
        order = place_order()

        for status in ("confirmed", "preparing", "out_for_delivery"):
            clock.advance(minutes=5)
            order = lifecycle.transition(order.id, status, users["admin"])
            assert order.status == OrderStatus(status)
            assert order.delivered_at is None

        clock.advance(minutes=5)
        order = lifecycle.transition(order.id, "delivered", users["admin"])

        assert order.status == OrderStatus.delivered
        assert order.delivered_at == clock.now
        assert lifecycle.is_refund_eligible(order)

    def test_skipping_states_is_rejected(self, place_order, lifecycle, users):
        order = place_order()

        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(order.id, "delivered", users["admin"])
        assert lifecycle.get_order(order.id).status == OrderStatus.pending

    @pytest.mark.parametrize("status", ["pending", "preparing", "out_for_delivery"])
    def test_only_graph_edges_from_pending(self, place_order, lifecycle, users, status):
        order = place_order()
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(order.id, status, users["admin"])

    def test_nothing_leaves_delivered(self, place_order, lifecycle, users, deliver):
        order = place_order()
        deliver(order.id)

        for status in OrderStatus:
            with pytest.raises(InvalidTransitionError):
                lifecycle.transition(order.id, status, users["admin"])

    def test_delivered_at_never_changes(self, place_order, lifecycle, users, deliver, clock):
        order = place_order()
        delivered = deliver(order.id)
        clock.advance(hours=3)

        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(order.id, "delivered", users["admin"])
        assert lifecycle.get_order(order.id).delivered_at == delivered.delivered_at

    def test_unknown_status_is_validation_error(self, place_order, lifecycle, users):
        order = place_order()
        with pytest.raises(ValidationError):
            lifecycle.transition(order.id, "shipped", users["admin"])

    def test_unknown_order(self, lifecycle, users):
        with pytest.raises(NotFoundError):
            lifecycle.transition("missing", "confirmed", users["admin"])

    def test_buyer_cannot_advance(self, place_order, lifecycle, users):
        order = place_order()
        with pytest.raises(ForbiddenError):
            lifecycle.transition(order.id, "confirmed", users["buyer"])

    def test_status_index_follows_transitions(self, place_order, lifecycle, users):
        order = place_order()
        lifecycle.transition(order.id, "confirmed", users["admin"])

        assert lifecycle.orders.list_by_status([OrderStatus.pending]) == []
        assert [o.id for o in lifecycle.orders.list_by_status([OrderStatus.confirmed])] == [order.id]

    def test_concurrent_update_is_conflict(self, place_order, lifecycle, users, monkeypatch):
        order = place_order()
        stale = lifecycle.orders.load(order.id)
        lifecycle.transition(order.id, "confirmed", users["admin"])

        monkeypatch.setattr(lifecycle.orders, "load", lambda order_id: stale)
        with pytest.raises(ConflictError):
            lifecycle.transition(order.id, "confirmed", users["admin"])

        monkeypatch.undo()
        assert lifecycle.get_order(order.id).status == OrderStatus.confirmed

    def test_transitions_are_logged_in_timeline(self, place_order, lifecycle, users, clock):
        order = place_order()
        clock.advance(minutes=1)
        lifecycle.transition(order.id, "confirmed", users["admin"])

        events = lifecycle.list_events(order.id)
        assert [e.event_type for e in events] == [
            OrderEventType.order_placed,
            OrderEventType.status_changed,
        ]
        assert events[1].meta == {"from": "pending", "to": "confirmed"}


class TestCancel:
    def test_buyer_cancels_preparing_order(self, place_order, lifecycle, users):
        order = place_order()
        lifecycle.transition(order.id, "confirmed", users["admin"])
        lifecycle.transition(order.id, "preparing", users["admin"])

        cancelled = lifecycle.cancel_order(order.id, users["buyer"])

        assert cancelled.status == OrderStatus.cancelled
        assert cancelled.delivered_at is None
        assert cancelled.cancelled_by == "buyer"

    def test_admin_can_cancel(self, place_order, lifecycle, users):
        order = place_order()
        cancelled = lifecycle.cancel_order(order.id, users["admin"])
        assert cancelled.cancelled_by == "admin"

    def test_cannot_cancel_out_for_delivery(self, place_order, lifecycle, users):
        order = place_order()
        for status in ("confirmed", "preparing", "out_for_delivery"):
            lifecycle.transition(order.id, status, users["admin"])

        with pytest.raises(InvalidTransitionError):
            lifecycle.cancel_order(order.id, users["buyer"])

    def test_cannot_cancel_delivered(self, place_order, lifecycle, users, deliver):
        order = place_order()
        deliver(order.id)

        with pytest.raises(InvalidTransitionError):
            lifecycle.cancel_order(order.id, users["buyer"])

    def test_other_buyer_cannot_cancel(self, place_order, lifecycle, users):
        order = place_order()
        with pytest.raises(ForbiddenError):
            lifecycle.cancel_order(order.id, users["other_buyer"])

    def test_seller_cannot_cancel(self, place_order, lifecycle, users):
        order = place_order()
        with pytest.raises(ForbiddenError):
            lifecycle.cancel_order(order.id, users["seller"])

    def test_can_cancel_helper(self, place_order, lifecycle, users):
        order = place_order()
        assert can_cancel(order)
        order = lifecycle.cancel_order(order.id, users["buyer"])
        assert not can_cancel(order)


class TestReturn:
    def test_return_after_delivery(self, place_order, lifecycle, users, deliver, store, clock):
        order = place_order()
        deliver(order.id)
        clock.advance(days=10)

        returned = lifecycle.request_return(order.id, users["buyer"])

        assert returned.status == OrderStatus.delivered
        assert returned.return_requested_at == clock.now
        assert store.get(f"return_request:{order.id}")["buyer_id"] == "buyer-1"
        assert not can_return(returned)

    def test_return_requires_delivery(self, place_order, lifecycle, users):
        order = place_order()
        with pytest.raises(InvalidTransitionError):
            lifecycle.request_return(order.id, users["buyer"])

    def test_second_return_rejected(self, place_order, lifecycle, users, deliver):
        order = place_order()
        deliver(order.id)
        lifecycle.request_return(order.id, users["buyer"])

        with pytest.raises(ValidationError):
            lifecycle.request_return(order.id, users["buyer"])

    def test_only_buyer_can_return(self, place_order, lifecycle, users, deliver):
        order = place_order()
        deliver(order.id)
        with pytest.raises(ForbiddenError):
            lifecycle.request_return(order.id, users["other_buyer"])


class TestRefundEligibility:
    def test_window_boundary_is_inclusive(self, place_order, deliver):
        order = deliver(place_order().id)

        assert is_refund_eligible(order, order.delivered_at)
        assert is_refund_eligible(order, order.delivered_at + timedelta(days=2))
        assert not is_refund_eligible(order, order.delivered_at + timedelta(days=2, microseconds=1))

    def test_not_eligible_before_delivery(self, place_order, clock):
        order = place_order()
        assert not is_refund_eligible(order, clock.now)

    def test_cancelled_not_eligible(self, place_order, lifecycle, users, clock):
        order = lifecycle.cancel_order(place_order().id, users["buyer"])
        assert not is_refund_eligible(order, clock.now)


class TestRefundRequest:
    @pytest.fixture
    def delivered(self, place_order, deliver):
        return deliver(place_order(quantity=2).id)

    def test_full_refund_forces_total(self, lifecycle, users, delivered):
        refund = lifecycle.submit_refund_request(
            delivered.id,
            RefundReason.damaged.value,
            "full",
            refund_amount=Decimal("1.00"),
            actor=users["buyer"],
        )

        assert refund.refund_type == RefundType.full
        assert refund.refund_amount == Decimal("30.00")

    def test_partial_refund(self, lifecycle, users, delivered):
        refund = lifecycle.submit_refund_request(
            delivered.id,
            RefundReason.quality_issues.value,
            "partial",
            refund_amount="12.5",
            actor=users["buyer"],
        )
        assert refund.refund_amount == Decimal("12.50")

    def test_partial_above_total_rejected(self, lifecycle, users, delivered):
        with pytest.raises(ValidationError):
            lifecycle.submit_refund_request(
                delivered.id,
                RefundReason.wrong_product.value,
                "partial",
                refund_amount=Decimal("30.01"),
                actor=users["buyer"],
            )

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("0.004"), Decimal("-5"), None])
    def test_partial_needs_positive_amount(self, lifecycle, users, delivered, amount):
        with pytest.raises(ValidationError):
            lifecycle.submit_refund_request(
                delivered.id,
                RefundReason.wrong_product.value,
                "partial",
                refund_amount=amount,
                actor=users["buyer"],
            )

    def test_other_reason_needs_description(self, lifecycle, users, delivered):
        with pytest.raises(ValidationError):
            lifecycle.submit_refund_request(delivered.id, "Other", "full", actor=users["buyer"])

        refund = lifecycle.submit_refund_request(
            delivered.id, "Other", "full", description="Arrived a day late", actor=users["buyer"]
        )
        assert refund.description == "Arrived a day late"

    def test_unknown_reason_rejected(self, lifecycle, users, delivered):
        with pytest.raises(ValidationError):
            lifecycle.submit_refund_request(delivered.id, "No reason", "full", actor=users["buyer"])

    def test_missing_reason_rejected(self, lifecycle, users, delivered):
        with pytest.raises(ValidationError):
            lifecycle.submit_refund_request(delivered.id, "", "full", actor=users["buyer"])

    def test_window_expired(self, lifecycle, users, delivered, clock):
        clock.advance(days=2, seconds=1)
        with pytest.raises(RefundWindowExpiredError):
            lifecycle.submit_refund_request(
                delivered.id, RefundReason.changed_mind.value, "full", actor=users["buyer"]
            )

    def test_not_delivered(self, lifecycle, users, place_order):
        order = place_order()
        with pytest.raises(RefundWindowExpiredError):
            lifecycle.submit_refund_request(
                order.id, RefundReason.changed_mind.value, "full", actor=users["buyer"]
            )

    def test_refund_does_not_change_status(self, lifecycle, users, delivered):
        lifecycle.submit_refund_request(
            delivered.id, RefundReason.changed_mind.value, "full", actor=users["buyer"]
        )
        assert lifecycle.get_order(delivered.id).status == OrderStatus.delivered

    def test_sub_cent_partial_is_never_stored(self, lifecycle, users, delivered):
        with pytest.raises(ValidationError):
            lifecycle.submit_refund_request(
                delivered.id,
                RefundReason.quality_issues.value,
                "partial",
                refund_amount=Decimal("0.004"),
                actor=users["buyer"],
            )
        assert not lifecycle.has_refund_request(delivered.id)

    def test_can_request_refund_until_filed(self, lifecycle, users, delivered):
        assert lifecycle.can_request_refund(delivered)

        lifecycle.submit_refund_request(
            delivered.id, RefundReason.changed_mind.value, "full", actor=users["buyer"]
        )

        assert lifecycle.has_refund_request(delivered.id)
        assert not lifecycle.can_request_refund(delivered)

    def test_one_refund_per_order(self, lifecycle, users, delivered):
        lifecycle.submit_refund_request(
            delivered.id, RefundReason.changed_mind.value, "full", actor=users["buyer"]
        )
        with pytest.raises(ValidationError):
            lifecycle.submit_refund_request(
                delivered.id, RefundReason.changed_mind.value, "full", actor=users["buyer"]
            )

    def test_only_buyer_can_request(self, lifecycle, users, delivered):
        with pytest.raises(ForbiddenError):
            lifecycle.submit_refund_request(
                delivered.id, RefundReason.changed_mind.value, "full", actor=users["admin"]
            )


class TestDeliveryPerson:
    def test_assign_delivery_person(self, place_order, lifecycle, users):
        order = place_order()
        person = DeliveryPerson(name="Sam Rider", phone="+1 555 0123")

        updated = lifecycle.assign_delivery_person(order.id, person, users["admin"])

        assert updated.delivery_person == person
        assert lifecycle.get_order(order.id).delivery_person.name == "Sam Rider"

    def test_requires_admin(self, place_order, lifecycle, users):
        order = place_order()
        with pytest.raises(ForbiddenError):
            lifecycle.assign_delivery_person(
                order.id, DeliveryPerson(name="Sam", phone="1"), users["seller"]
            )

    def test_not_on_terminal_order(self, place_order, lifecycle, users):
        order = lifecycle.cancel_order(place_order().id, users["buyer"])
        with pytest.raises(ValidationError):
            lifecycle.assign_delivery_person(
                order.id, DeliveryPerson(name="Sam", phone="1"), users["admin"]
            )


class TestBuyerOrders:
    def test_lists_only_own_orders_newest_first(self, place_order, lifecycle, clock):
        first = place_order()
        clock.advance(minutes=1)
        second = place_order()
        clock.advance(minutes=1)
        place_order(buyer_id="buyer-2")

        orders = lifecycle.list_buyer_orders("buyer-1")
        assert [o.id for o in orders] == [second.id, first.id]
