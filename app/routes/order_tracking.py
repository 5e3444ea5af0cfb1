from typing import List

from fastapi import APIRouter, Depends

from app.config import settings
from app.dependencies.services import get_lifecycle
from app.errors import NotFoundError
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.models.user import User
from app.schemas.summary_schemas import TrackingResponse
from app.services.order_lifecycle import (
    OrderLifecycle,
    can_cancel,
    can_return,
    refund_deadline,
)
from app.services.order_views import OrderViewBuilder
from app.utils.token import get_current_user

router = APIRouter()


def _visible_order(lifecycle: OrderLifecycle, order_id: str, user: User) -> Order:
    order = lifecycle.get_order(order_id)
    # non-participants get the same answer as for a missing order
    if user.is_admin or user.id in (order.buyer_id, order.seller_id):
        return order
    raise NotFoundError("Order", order_id)


@router.get("/{order_id}", response_model=TrackingResponse)
def track_order(
    order_id: str,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
):
    order = _visible_order(lifecycle, order_id, current_user)
    is_buyer = current_user.id == order.buyer_id
    deadline = refund_deadline(order, lifecycle.refund_window)

    return TrackingResponse(
        order=OrderViewBuilder(lifecycle.store).build(order),
        can_cancel=can_cancel(order) and (is_buyer or current_user.is_admin),
        can_return=can_return(order) and is_buyer,
        can_request_refund=is_buyer and lifecycle.can_request_refund(order),
        refund_deadline=deadline.isoformat() if deadline else None,
        delivery_person=order.delivery_person,
        poll_interval_seconds=settings.admin_poll_interval_seconds,
    )


@router.get("/{order_id}/timeline", response_model=List[OrderEvent])
def order_timeline(
    order_id: str,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
):
    _visible_order(lifecycle, order_id, current_user)
    return lifecycle.list_events(order_id)


@router.post("/{order_id}/cancel", response_model=Order)
def cancel_order(
    order_id: str,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
):
    """
    Buyer (or admin) cancels an order that has not left the seller yet.
    """
    return lifecycle.cancel_order(order_id, current_user)


@router.post("/{order_id}/return")
def return_order(
    order_id: str,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
):
    order = lifecycle.request_return(order_id, current_user)
    return {
        "message": "Return requested",
        "order_id": order.id,
        "status": order.status,
        "return_requested_at": order.return_requested_at,
    }
