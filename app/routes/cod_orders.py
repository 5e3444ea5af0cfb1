from typing import List

from fastapi import APIRouter, Depends

from app.errors import NotFoundError
from app.models.order import Order
from app.models.user import User
from app.dependencies.services import get_lifecycle
from app.schemas.orders_schemas import CODOrderCreate
from app.services.directory import get_product
from app.services.order_lifecycle import OrderLifecycle
from app.utils.token import get_current_user

router = APIRouter()


@router.post("/cod", response_model=Order)
def place_cod_order(
    payload: CODOrderCreate,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
):
    """
    Buyer places a cash-on-delivery order for one product.
    Price is snapshotted from the product record at order time.
    """
    product = get_product(lifecycle.store, payload.product_id)
    if product is None:
        raise NotFoundError("Product", payload.product_id)

    return lifecycle.create_order(
        product_id=product.id,
        seller_id=product.seller_id,
        buyer_id=current_user.id,
        quantity=payload.quantity,
        delivery_address=payload.delivery_address,
        delivery_phone=payload.delivery_phone,
        unit_price=product.price,
        notes=payload.delivery_notes,
        preferred_time=payload.preferred_delivery_time,
    )


@router.get("", response_model=List[Order])
def list_my_orders(
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    current_user: User = Depends(get_current_user),
):
    return lifecycle.list_buyer_orders(current_user.id)
