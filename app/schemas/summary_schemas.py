from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from app.models.order import DeliveryPerson, Order
from app.models.user import UserLocation


class ProductSummary(BaseModel):
    title: str
    price: Decimal
    images: List[str] = []


class SellerSummary(BaseModel):
    name: str
    phone: Optional[str] = None
    location: Optional[UserLocation] = None


class BuyerSummary(BaseModel):
    name: str
    phone: Optional[str] = None


class OrderView(Order):
    """Order with the display data the console and tracking screens show."""

    product: Optional[ProductSummary] = None
    seller: Optional[SellerSummary] = None
    buyer: Optional[BuyerSummary] = None
    next_status: Optional[str] = None


class OperationalSnapshot(BaseModel):
    total_orders: int = 0
    pending_orders: int = 0
    completed_orders: int = 0
    total_revenue: Decimal = Decimal("0.00")
    active_deliveries: int = 0


class OrderListResponse(BaseModel):
    total_items: int
    total_pages: int
    current_page: int
    limit: int
    results: List[OrderView]
    poll_interval_seconds: int


class SnapshotResponse(OperationalSnapshot):
    poll_interval_seconds: int


class TrackingResponse(BaseModel):
    order: OrderView
    can_cancel: bool
    can_return: bool
    can_request_refund: bool
    refund_deadline: Optional[str] = None
    delivery_person: Optional[DeliveryPerson] = None
    poll_interval_seconds: int
