from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.constants.order_status import OrderStatus


class DeliveryLocation(BaseModel):
    lat: float
    lng: float
    timestamp: datetime


class DeliveryPerson(BaseModel):
    name: str
    phone: str
    location: Optional[DeliveryLocation] = None


class Order(BaseModel):
    """Cash-on-delivery order, stored under ``cod_order:{id}``."""

    id: str
    product_id: str
    seller_id: str
    buyer_id: str

    quantity: int = Field(ge=1)
    unit_price: Decimal
    total_amount: Decimal

    delivery_address: str
    delivery_phone: str
    delivery_notes: Optional[str] = None
    preferred_delivery_time: Optional[str] = None

    payment_method: str = "cod"
    status: OrderStatus = OrderStatus.pending

    created_at: datetime
    updated_at: Optional[datetime] = None
    estimated_delivery_time: datetime
    delivered_at: Optional[datetime] = None

    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    return_requested_at: Optional[datetime] = None

    delivery_person: Optional[DeliveryPerson] = None
