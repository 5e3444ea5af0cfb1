from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    preparing = "preparing"
    out_for_delivery = "out_for_delivery"
    delivered = "delivered"
    cancelled = "cancelled"


ALLOWED_TRANSITIONS = {
    OrderStatus.pending: [OrderStatus.confirmed, OrderStatus.cancelled],
    OrderStatus.confirmed: [OrderStatus.preparing, OrderStatus.cancelled],
    OrderStatus.preparing: [OrderStatus.out_for_delivery, OrderStatus.cancelled],
    OrderStatus.out_for_delivery: [OrderStatus.delivered],
    OrderStatus.delivered: [],
    OrderStatus.cancelled: [],
}

CANCELLABLE_STATUSES = {
    OrderStatus.pending,
    OrderStatus.confirmed,
    OrderStatus.preparing,
}

# counted as "pending" on the operations snapshot
OPEN_STATUSES = CANCELLABLE_STATUSES | {OrderStatus.out_for_delivery}

TERMINAL_STATUSES = {OrderStatus.delivered, OrderStatus.cancelled}


def is_allowed(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, [])


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    """The single forward status an operator can advance to, if any."""
    for candidate in ALLOWED_TRANSITIONS.get(current, []):
        if candidate != OrderStatus.cancelled:
            return candidate
    return None
