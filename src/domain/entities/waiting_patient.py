"""
WaitingPatient Entity

A patient parked in a room's waiting area until the doctor admits them.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.clock import utcnow

from .enums import WaitingPatientStatus

WAITING_ROOM_SUFFIX = "-waiting"


def waiting_room_for(room_name: str) -> str:
    """Name of the video room patients wait in before admission"""
    return f"{room_name}{WAITING_ROOM_SUFFIX}"


class WaitingPatient(SQLModel, table=True):
    """
    WaitingPatient entity - one patient's place in a waiting room.

    Business Rules:
    - Created by a successful validation of a waiting-room invitation
    - Owned by the invitation's doctor, who alone may admit or reject
    - Status moves waiting -> admitted | left, and admitted -> left
    - A device that validates again while still waiting reuses its entry
    """

    __tablename__ = "waiting_patients"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    invitation_id: UUID = Field(nullable=False, index=True)
    room_name: str = Field(max_length=50, nullable=False)
    doctor_id: str = Field(max_length=128, nullable=False)

    status: WaitingPatientStatus = Field(default=WaitingPatientStatus.waiting)
    patient_email: Optional[str] = Field(default=None, max_length=254)
    fingerprint_hash: Optional[str] = Field(default=None, max_length=64)

    # Timestamps
    joined_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    admitted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    left_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_waiting_room_doctor_status", "room_name", "doctor_id", "status"),
        Index("idx_waiting_invitation_status", "invitation_id", "status"),
    )
