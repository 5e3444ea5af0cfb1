from datetime import timedelta

from fastapi import Depends
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.services.delivery_estimate import DeliveryEstimator, RandomDeliveryEstimator
from app.services.operations_console import OperationsConsole
from app.services.order_lifecycle import OrderLifecycle, utcnow
from app.services.record_store import RecordStore


def get_store(session: Session = Depends(get_session)) -> RecordStore:
    return RecordStore(session)


def get_clock():
    return utcnow


def get_estimator() -> DeliveryEstimator:
    return RandomDeliveryEstimator(
        base_minutes=settings.delivery_base_minutes,
        jitter_minutes=settings.delivery_jitter_minutes,
    )


def get_lifecycle(
    store: RecordStore = Depends(get_store),
    estimator: DeliveryEstimator = Depends(get_estimator),
    clock=Depends(get_clock),
) -> OrderLifecycle:
    return OrderLifecycle(
        store,
        estimator=estimator,
        clock=clock,
        refund_window=timedelta(days=settings.refund_window_days),
    )


def get_console(lifecycle: OrderLifecycle = Depends(get_lifecycle)) -> OperationsConsole:
    return OperationsConsole(lifecycle, poll_interval_seconds=settings.admin_poll_interval_seconds)
