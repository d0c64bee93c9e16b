"""
Invitation Entity

A single-use (or limited-use) grant binding one patient identity to one video
room for a bounded time window.
"""

import re
from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from src.domain.clock import utcnow

from .enums import InvitationStatus


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalize_phone(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


class Invitation(SQLModel, table=True):
    """
    Invitation entity - a doctor's invite for a patient to join a room.

    Business Rules:
    - Created active by a doctor, expires 1-168 hours later
    - Status only moves forward: active -> used | expired | revoked
    - used implies used_at and used_by are recorded
    - Consumption is a conditional update, never read-then-write
    - Device fingerprint and country are pinned on first successful use
    - With a waiting room, each successful use adds a waiting entry instead
      of sending the patient straight into the room
    """

    __tablename__ = "invitations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    room_name: str = Field(max_length=50, nullable=False, index=True)
    email_allowed: str = Field(max_length=254, nullable=False)
    phone_allowed: Optional[str] = Field(default=None, max_length=32)

    status: InvitationStatus = Field(default=InvitationStatus.active)

    max_uses: int = Field(default=1)
    use_count: int = Field(default=0)
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    used_by: Optional[str] = Field(default=None, max_length=64)  # fingerprint hash

    created_by: str = Field(max_length=128, nullable=False, index=True)

    # Access constraints
    device_binding: bool = Field(default=True)
    bound_fingerprint: Optional[str] = Field(default=None, max_length=64)
    bound_country_code: Optional[str] = Field(default=None, max_length=8)
    country_allowlist: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    browser_allowlist: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Waiting room: patients wait in <room>-waiting until the doctor admits them
    waiting_room_enabled: bool = Field(default=False)
    max_patients: int = Field(default=10)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_invitation_expires_at", "expires_at"),
        Index("idx_invitation_status", "status"),
        Index("idx_invitation_created_by_status", "created_by", "status"),
    )

    def is_past_due(self, now: datetime) -> bool:
        return now > self.expires_at

    def matches_email(self, email: Optional[str]) -> bool:
        return normalize_email(email) == normalize_email(self.email_allowed)

    def matches_phone(self, phone: Optional[str]) -> bool:
        digits = normalize_phone(phone)
        return bool(digits) and digits == normalize_phone(self.phone_allowed)
