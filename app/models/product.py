from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class Product(BaseModel):
    """Product record, stored under ``product:{id}``."""

    id: str
    seller_id: str
    title: str
    price: Decimal
    category: Optional[str] = None
    images: List[str] = []
