# app/services/order_event_service.py

from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from app.models.order_event import OrderEvent, OrderEventType
from app.services.record_store import RecordStore

EVENT_PREFIX = "order_event:"


def log_order_event(
    store: RecordStore,
    order_id: str,
    event_type: OrderEventType,
    label: str,
    created_at: datetime,
    created_by: str = "system",
    meta: Optional[dict] = None,
) -> OrderEvent:
    """
    Append-only event log for order timeline
    """

    event = OrderEvent(
        id=str(uuid4()),
        order_id=order_id,
        event_type=event_type,
        label=label,
        meta=meta,
        created_by=created_by,
        created_at=created_at,
    )

    # timestamp in the key keeps prefix scans chronological
    key = f"{EVENT_PREFIX}{order_id}:{created_at.isoformat()}:{event.id}"
    store.set(key, event.model_dump(mode="json"))
    return event


def list_order_events(store: RecordStore, order_id: str) -> List[OrderEvent]:
    return [
        OrderEvent.model_validate(data)
        for data in store.scan_by_prefix(f"{EVENT_PREFIX}{order_id}:")
    ]
