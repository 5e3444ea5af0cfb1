import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from app.constants.order_status import (
    CANCELLABLE_STATUSES,
    TERMINAL_STATUSES,
    OrderStatus,
    is_allowed,
)
from app.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    OrderServiceError,
    RefundWindowExpiredError,
    ValidationError,
)
from app.models.order import DeliveryPerson, Order
from app.models.order_event import OrderEvent, OrderEventType
from app.models.refund import RefundReason, RefundRequest, RefundType
from app.models.return_request import ReturnRequest
from app.models.user import User
from app.services.delivery_estimate import DeliveryEstimator, RandomDeliveryEstimator
from app.services.order_event_service import list_order_events, log_order_event
from app.services.order_repository import OrderRepository
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

REFUND_WINDOW = timedelta(days=2)
MONEY = Decimal("0.01")

# secondary admin-facing copy of each order, keyed by buyer
MIRROR_PREFIX = "order:"
RETURN_PREFIX = "return_request:"
REFUND_PREFIX = "refund_request:"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_cancel(order: Order) -> bool:
    return order.status in CANCELLABLE_STATUSES


def can_return(order: Order) -> bool:
    return order.status == OrderStatus.delivered and order.return_requested_at is None


def is_refund_eligible(order: Order, now: datetime, window: timedelta = REFUND_WINDOW) -> bool:
    """True while a delivered order is inside the refund window (boundary inclusive)."""
    if order.status != OrderStatus.delivered or order.delivered_at is None:
        return False
    return now - order.delivered_at <= window


def refund_deadline(order: Order, window: timedelta = REFUND_WINDOW) -> Optional[datetime]:
    if order.delivered_at is None:
        return None
    return order.delivered_at + window


def _parse_amount(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return amount


class OrderLifecycle:
    """Owns the COD order state machine.

    Every mutating operation validates first and writes afterwards, so a
    rejected request never leaves anything behind in the store.
    """

    def __init__(
        self,
        store: RecordStore,
        estimator: Optional[DeliveryEstimator] = None,
        clock: Callable[[], datetime] = utcnow,
        refund_window: timedelta = REFUND_WINDOW,
    ):
        self.store = store
        self.orders = OrderRepository(store)
        self.estimator = estimator or RandomDeliveryEstimator()
        self.clock = clock
        self.refund_window = refund_window

    # ---------- creation ----------

    def create_order(
        self,
        product_id: str,
        seller_id: str,
        buyer_id: str,
        quantity: int,
        delivery_address: str,
        delivery_phone: str,
        unit_price,
        notes: Optional[str] = None,
        preferred_time: Optional[str] = None,
    ) -> Order:
        for field, value in (
            ("product_id", product_id),
            ("seller_id", seller_id),
            ("buyer_id", buyer_id),
        ):
            if not value:
                raise ValidationError(f"{field} is required")

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Quantity must be a positive integer")
        if not delivery_address or not delivery_address.strip():
            raise ValidationError("Delivery address is required")
        if not delivery_phone or not delivery_phone.strip():
            raise ValidationError("Delivery phone is required")

        price = _parse_amount(unit_price, "unit_price")
        if price < 0:
            raise ValidationError("unit_price cannot be negative")

        now = self.clock()
        eta = self.estimator.estimate(now)
        if eta <= now:
            raise ValueError("Delivery estimator returned a time that is not after now")

        order = Order(
            id=str(uuid4()),
            product_id=product_id,
            seller_id=seller_id,
            buyer_id=buyer_id,
            quantity=quantity,
            unit_price=price,
            total_amount=(price * quantity).quantize(MONEY),
            delivery_address=delivery_address.strip(),
            delivery_phone=delivery_phone.strip(),
            delivery_notes=notes or None,
            preferred_delivery_time=preferred_time or None,
            status=OrderStatus.pending,
            created_at=now,
            updated_at=now,
            estimated_delivery_time=eta,
        )

        self.orders.add(order)
        log_order_event(
            self.store,
            order.id,
            OrderEventType.order_placed,
            "Order placed",
            created_at=now,
            created_by=buyer_id,
            meta={"total_amount": str(order.total_amount), "payment_method": order.payment_method},
        )
        self.store.commit()
        logger.info(f"COD order {order.id} placed by {buyer_id}, total {order.total_amount}")

        self._write_admin_mirror(order)
        return order

    def _write_admin_mirror(self, order: Order) -> None:
        record = {
            "id": order.id,
            "buyer_id": order.buyer_id,
            "products": [
                {
                    "product_id": order.product_id,
                    "seller_id": order.seller_id,
                    "quantity": order.quantity,
                }
            ],
            "total": str(order.total_amount),
            "payment_method": order.payment_method,
            "status": order.status.value,
            "created_at": order.created_at.isoformat(),
        }
        try:
            self.store.set(f"{MIRROR_PREFIX}{order.buyer_id}:{order.id}", record)
            self.store.commit()
        except (SQLAlchemyError, OrderServiceError):
            # the order itself is already committed
            self.store.rollback()
            logger.exception(f"Failed to create admin order record for order {order.id}")

    # ---------- reads ----------

    def get_order(self, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_buyer_orders(self, buyer_id: str) -> List[Order]:
        orders = self.orders.list_by_buyer(buyer_id)
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def list_events(self, order_id: str) -> List[OrderEvent]:
        self.get_order(order_id)
        return list_order_events(self.store, order_id)

    # ---------- transitions ----------

    def transition(self, order_id: str, requested_status, actor: User) -> Order:
        requested = self._parse_status(requested_status)
        order, version = self.orders.load(order_id)
        self._authorize_transition(order, requested, actor)

        current = order.status
        if not is_allowed(current, requested):
            logger.warning(f"Rejected transition {current.value} -> {requested.value} for order {order.id}")
            raise InvalidTransitionError(current.value, requested.value)

        now = self.clock()
        changes = {"status": requested, "updated_at": now}
        if requested == OrderStatus.delivered:
            changes["delivered_at"] = now
        if requested == OrderStatus.cancelled:
            changes["cancelled_at"] = now
            changes["cancelled_by"] = "admin" if actor.is_admin else "buyer"
        updated = order.model_copy(update=changes)

        self._save(updated, version, current)
        if requested == OrderStatus.cancelled:
            event_type, label = OrderEventType.order_cancelled, "Order cancelled"
        else:
            event_type, label = OrderEventType.status_changed, f"Order {requested.value.replace('_', ' ')}"
        log_order_event(
            self.store,
            order.id,
            event_type,
            label,
            created_at=now,
            created_by=actor.id,
            meta={"from": current.value, "to": requested.value},
        )
        self.store.commit()
        logger.info(f"Order {order.id} changed from {current.value} to {requested.value} by {actor.id}")
        return updated

    def cancel_order(self, order_id: str, actor: User) -> Order:
        return self.transition(order_id, OrderStatus.cancelled, actor)

    def _authorize_transition(self, order: Order, requested: OrderStatus, actor: User) -> None:
        if requested == OrderStatus.cancelled:
            if actor.is_admin or actor.id == order.buyer_id:
                return
            raise ForbiddenError("Only the buyer or an admin can cancel this order")
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")

    @staticmethod
    def _parse_status(value) -> OrderStatus:
        try:
            return OrderStatus(value)
        except ValueError:
            raise ValidationError(f"Unknown order status: {value}")

    def _save(self, order: Order, version: int, previous_status: OrderStatus) -> None:
        try:
            self.orders.save(order, expected_version=version, previous_status=previous_status)
        except ConflictError:
            self.store.rollback()
            logger.warning(f"Concurrent update detected on order {order.id}")
            raise

    # ---------- post-delivery actions ----------

    def request_return(self, order_id: str, actor: User) -> Order:
        order, version = self.orders.load(order_id)
        if actor.id != order.buyer_id:
            raise ForbiddenError("Only the buyer can return this order")
        if order.status != OrderStatus.delivered:
            raise InvalidTransitionError(
                order.status.value,
                "returned",
                f"Only delivered orders can be returned (current status: {order.status.value})",
            )
        if order.return_requested_at is not None:
            raise ValidationError("Return already requested for this order")

        now = self.clock()
        return_request = ReturnRequest(
            id=str(uuid4()),
            order_id=order.id,
            buyer_id=actor.id,
            requested_at=now,
        )
        updated = order.model_copy(update={"return_requested_at": now, "updated_at": now})

        self._save(updated, version, order.status)
        self.store.set(f"{RETURN_PREFIX}{order.id}", return_request.model_dump(mode="json"))
        log_order_event(
            self.store,
            order.id,
            OrderEventType.return_requested,
            "Return requested",
            created_at=now,
            created_by=actor.id,
        )
        self.store.commit()
        logger.info(f"Return requested for order {order.id}")
        return updated

    def is_refund_eligible(self, order: Order, now: Optional[datetime] = None) -> bool:
        return is_refund_eligible(order, now or self.clock(), self.refund_window)

    def has_refund_request(self, order_id: str) -> bool:
        return self.store.get(f"{REFUND_PREFIX}{order_id}") is not None

    def can_request_refund(self, order: Order, now: Optional[datetime] = None) -> bool:
        return self.is_refund_eligible(order, now) and not self.has_refund_request(order.id)

    def submit_refund_request(
        self,
        order_id: str,
        reason,
        refund_type,
        refund_amount=None,
        description: Optional[str] = None,
        *,
        actor: User,
    ) -> RefundRequest:
        order = self.get_order(order_id)
        if actor.id != order.buyer_id:
            raise ForbiddenError("Only the buyer can request a refund for this order")

        now = self.clock()
        if not self.is_refund_eligible(order, now):
            if order.status != OrderStatus.delivered:
                raise RefundWindowExpiredError("Refunds can only be requested for delivered orders")
            raise RefundWindowExpiredError(
                f"Refund window of {self.refund_window.days} days after delivery has expired"
            )

        if self.has_refund_request(order.id):
            raise ValidationError("Refund already requested for this order")

        if not reason:
            raise ValidationError("Reason is required")
        try:
            parsed_reason = RefundReason(reason)
        except ValueError:
            raise ValidationError(f"Unknown refund reason: {reason}")
        if parsed_reason == RefundReason.other and not (description or "").strip():
            raise ValidationError("Please describe the reason for the refund")

        try:
            parsed_type = RefundType(refund_type)
        except ValueError:
            raise ValidationError(f"Unknown refund type: {refund_type}")

        if parsed_type == RefundType.full:
            amount = order.total_amount
        else:
            if refund_amount is None:
                raise ValidationError("Refund amount is required for partial refunds")
            amount = _parse_amount(refund_amount, "refund_amount").quantize(MONEY)
            if amount <= 0 or amount > order.total_amount:
                raise ValidationError(
                    f"Refund amount must be greater than 0 and at most {order.total_amount}"
                )

        refund = RefundRequest(
            id=str(uuid4()),
            order_id=order.id,
            buyer_id=actor.id,
            reason=parsed_reason,
            refund_type=parsed_type,
            refund_amount=amount,
            description=(description or "").strip() or None,
            requested_at=now,
        )
        self.store.set(f"{REFUND_PREFIX}{order.id}", refund.model_dump(mode="json"))
        log_order_event(
            self.store,
            order.id,
            OrderEventType.refund_requested,
            "Refund requested",
            created_at=now,
            created_by=actor.id,
            meta={"refund_type": parsed_type.value, "refund_amount": str(amount)},
        )
        self.store.commit()
        logger.info(f"Refund requested for order {order.id}: {parsed_type.value} {amount}")
        return refund

    # ---------- delivery ----------

    def assign_delivery_person(self, order_id: str, person: DeliveryPerson, actor: User) -> Order:
        order, version = self.orders.load(order_id)
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        if order.status in TERMINAL_STATUSES:
            raise ValidationError(f"Cannot assign a delivery person to a {order.status.value} order")

        now = self.clock()
        updated = order.model_copy(update={"delivery_person": person, "updated_at": now})
        self._save(updated, version, order.status)
        log_order_event(
            self.store,
            order.id,
            OrderEventType.delivery_person_assigned,
            f"Delivery assigned to {person.name}",
            created_at=now,
            created_by=actor.id,
        )
        self.store.commit()
        return updated
