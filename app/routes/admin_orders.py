# -------- ADMIN ORDERS --------
from fastapi import APIRouter, Depends, Query

from app.dependencies.admin import require_admin
from app.dependencies.services import get_console
from app.models.order import DeliveryPerson, Order
from app.models.user import User
from app.schemas.orders_schemas import DeliveryPersonAssign, OrderStatusUpdate
from app.schemas.summary_schemas import OrderListResponse, SnapshotResponse
from app.services.operations_console import OperationsConsole, OrderFilter
from app.utils.pagination import paginate

router = APIRouter()


@router.get("/orders", response_model=OrderListResponse)
def list_orders(
    status: OrderFilter = OrderFilter.all,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    console: OperationsConsole = Depends(get_console),
    admin: User = Depends(require_admin),
):
    orders = console.list_orders(admin, status)
    return {
        **paginate(items=orders, page=page, limit=limit),
        "poll_interval_seconds": console.poll_interval_seconds,
    }


@router.get("/orders/stats", response_model=SnapshotResponse)
def order_stats(
    console: OperationsConsole = Depends(get_console),
    admin: User = Depends(require_admin),
):
    snapshot = console.snapshot(admin)
    return SnapshotResponse(
        **snapshot.model_dump(),
        poll_interval_seconds=console.poll_interval_seconds,
    )


@router.post("/order/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    console: OperationsConsole = Depends(get_console),
    admin: User = Depends(require_admin),
):
    return console.request_status_advance(admin, order_id, payload.status)


@router.post("/order/{order_id}/advance", response_model=Order)
def advance_order(
    order_id: str,
    console: OperationsConsole = Depends(get_console),
    admin: User = Depends(require_admin),
):
    return console.advance(admin, order_id)


@router.post("/order/{order_id}/delivery-person", response_model=Order)
def assign_delivery_person(
    order_id: str,
    payload: DeliveryPersonAssign,
    console: OperationsConsole = Depends(get_console),
    admin: User = Depends(require_admin),
):
    person = DeliveryPerson(**payload.model_dump())
    return console.lifecycle.assign_delivery_person(order_id, person, admin)
