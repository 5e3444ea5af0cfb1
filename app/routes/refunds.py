from fastapi import APIRouter, Depends

from app.dependencies.services import get_lifecycle
from app.models.refund import RefundRequest
from app.models.user import User
from app.schemas.refund_schemas import RefundRequestCreate
from app.services.order_lifecycle import OrderLifecycle
from app.utils.token import get_current_user

router = APIRouter()


@router.post("/refund-request", response_model=RefundRequest)
def submit_refund_request(
    payload: RefundRequestCreate,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
):
    """Buyer asks for a refund within the post-delivery window"""
    return lifecycle.submit_refund_request(
        payload.order_id,
        payload.reason,
        payload.refund_type,
        refund_amount=payload.refund_amount,
        description=payload.description,
        actor=current_user,
    )
