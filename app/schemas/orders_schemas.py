from pydantic import BaseModel, Field
from typing import Optional

from app.constants.order_status import OrderStatus
from app.models.order import DeliveryLocation


class CODOrderCreate(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    delivery_address: str = Field(min_length=1)
    delivery_phone: str = Field(min_length=1)
    delivery_notes: Optional[str] = None
    preferred_delivery_time: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class DeliveryPersonAssign(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    location: Optional[DeliveryLocation] = None
