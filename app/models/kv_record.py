from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KVRecord(SQLModel, table=True):
    """One record of the key-prefix scoped store."""

    __tablename__ = "kv_record"

    key: str = Field(primary_key=True, max_length=255)
    value: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))

    # bumped on every write, compared on conditional writes
    version: int = Field(default=1)

    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
