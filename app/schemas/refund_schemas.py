from decimal import Decimal
from pydantic import BaseModel
from typing import Optional

from app.models.refund import RefundType


class RefundRequestCreate(BaseModel):
    order_id: str
    reason: str
    refund_type: RefundType = RefundType.full
    refund_amount: Optional[Decimal] = None
    description: Optional[str] = None
