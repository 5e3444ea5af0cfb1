from datetime import datetime

from pydantic import BaseModel


class ReturnRequest(BaseModel):
    """Audit record for a post-delivery return, stored under ``return_request:{order_id}``."""

    id: str
    order_id: str
    buyer_id: str
    requested_at: datetime
