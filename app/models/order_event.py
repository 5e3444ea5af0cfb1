from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OrderEventType(str, Enum):
    order_placed = "order_placed"
    status_changed = "status_changed"
    order_cancelled = "order_cancelled"
    return_requested = "return_requested"
    refund_requested = "refund_requested"
    delivery_person_assigned = "delivery_person_assigned"


class OrderEvent(BaseModel):
    id: str
    order_id: str
    event_type: OrderEventType

    label: str
    meta: Optional[dict] = None

    created_at: datetime
    created_by: str = "system"
