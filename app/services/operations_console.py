import logging
from decimal import Decimal
from enum import Enum
from typing import Iterable, List

from app.constants.order_status import OPEN_STATUSES, OrderStatus, next_status
from app.errors import ForbiddenError, InvalidTransitionError
from app.models.order import Order
from app.models.user import User
from app.schemas.summary_schemas import OperationalSnapshot, OrderView
from app.services.order_lifecycle import OrderLifecycle
from app.services.order_views import OrderViewBuilder

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30


class OrderFilter(str, Enum):
    all = "all"
    pending = "pending"
    out_for_delivery = "out_for_delivery"
    delivered = "delivered"
    cancelled = "cancelled"


# the console's "pending" tab covers everything not yet on the road
FILTER_STATUSES = {
    OrderFilter.pending: [OrderStatus.pending, OrderStatus.confirmed, OrderStatus.preparing],
    OrderFilter.out_for_delivery: [OrderStatus.out_for_delivery],
    OrderFilter.delivered: [OrderStatus.delivered],
    OrderFilter.cancelled: [OrderStatus.cancelled],
}


def compute_snapshot(orders: Iterable[Order]) -> OperationalSnapshot:
    """Aggregate counts and revenue over the full order set."""
    snapshot = OperationalSnapshot()
    revenue = Decimal("0.00")
    for order in orders:
        snapshot.total_orders += 1
        if order.status in OPEN_STATUSES:
            snapshot.pending_orders += 1
        if order.status == OrderStatus.out_for_delivery:
            snapshot.active_deliveries += 1
        if order.status == OrderStatus.delivered:
            snapshot.completed_orders += 1
            revenue += order.total_amount
    snapshot.total_revenue = revenue
    return snapshot


class OperationsConsole:
    """Admin read side over all orders; writes go through the lifecycle engine."""

    def __init__(self, lifecycle: OrderLifecycle, poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS):
        self.lifecycle = lifecycle
        self.orders = lifecycle.orders
        self.poll_interval_seconds = poll_interval_seconds

    @staticmethod
    def authorize(actor: User) -> None:
        if not actor.is_admin:
            logger.warning(f"User {actor.id} denied access to the operations console")
            raise ForbiddenError("Admin access required")

    def _load(self, status_filter: OrderFilter) -> List[Order]:
        if status_filter == OrderFilter.all:
            orders = self.orders.list_all()
        else:
            orders = self.orders.list_by_status(FILTER_STATUSES[status_filter])
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def list_orders(self, actor: User, status_filter: OrderFilter = OrderFilter.all) -> List[OrderView]:
        self.authorize(actor)
        builder = OrderViewBuilder(self.lifecycle.store)
        return builder.build_many(self._load(OrderFilter(status_filter)))

    def snapshot(self, actor: User) -> OperationalSnapshot:
        self.authorize(actor)
        return compute_snapshot(self.orders.list_all())

    def request_status_advance(self, actor: User, order_id: str, status) -> Order:
        self.authorize(actor)
        return self.lifecycle.transition(order_id, status, actor)

    def advance(self, actor: User, order_id: str) -> Order:
        """Move an order to its single next forward status."""
        self.authorize(actor)
        order = self.lifecycle.get_order(order_id)
        upcoming = next_status(order.status)
        if upcoming is None:
            raise InvalidTransitionError(
                order.status.value,
                "next",
                f"Order in status {order.status.value} cannot be advanced",
            )
        return self.lifecycle.transition(order_id, upcoming, actor)
