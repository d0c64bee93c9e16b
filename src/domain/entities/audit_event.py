"""
AuditEvent Entity

Immutable log of invitation lifecycle and access events.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from src.domain.clock import utcnow


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable log of invitation and access events.

    Business Rules:
    - Immutable (never updated)
    - Survives invitation deletion so misuse stays traceable
    - invitation_id nullable for events spanning many invitations (retention sweeps)
    - Metadata stores hashes and reason codes, never raw user agents or IPs
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    invitation_id: Optional[UUID] = Field(default=None, index=True)
    actor: Optional[str] = Field(default=None, max_length=128)

    action: str = Field(max_length=100)  # e.g., "invitation_access_denied"
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_invitation_action", "invitation_id", "action"),
    )
