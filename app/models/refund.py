from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class RefundReason(str, Enum):
    damaged = "Product damaged during delivery"
    not_as_described = "Product not as described"
    wrong_product = "Wrong product received"
    quality_issues = "Product quality issues"
    changed_mind = "Changed mind"
    other = "Other"


class RefundType(str, Enum):
    full = "full"
    partial = "partial"


class RefundRequest(BaseModel):
    """Stored under ``refund_request:{order_id}``; one per order."""

    id: str
    order_id: str
    buyer_id: str
    reason: RefundReason
    refund_type: RefundType
    refund_amount: Decimal
    description: Optional[str] = None
    status: str = "pending"
    requested_at: datetime
