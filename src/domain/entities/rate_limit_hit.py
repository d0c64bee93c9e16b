"""
RateLimitHit Entity

One counted request against a per-client budget.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.clock import utcnow


class RateLimitHit(SQLModel, table=True):
    """
    RateLimitHit entity - a request counted against a rate limit key.

    Business Rules:
    - key is "<scope>:<client ip>", so each endpoint has its own budget
    - blocked marks the request that exceeded the budget; the key stays
      blocked for the block period after it
    - Rows older than the look-back period carry no meaning and are purged
    """

    __tablename__ = "rate_limit_hits"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    key: str = Field(max_length=128, nullable=False)
    blocked: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_rate_limit_key_created_at", "key", "created_at"),
        Index("idx_rate_limit_created_at", "created_at"),
    )
