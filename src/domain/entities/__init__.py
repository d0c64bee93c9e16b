"""
Telehealth Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    AuditAction,
    DenyReason,
    GeoMismatchPolicy,
    InvitationStatus,
    ParticipantRole,
    WaitingPatientStatus,
)

# Export all entities
from .invitation import Invitation
from .audit_event import AuditEvent
from .waiting_patient import WaitingPatient, waiting_room_for
from .rate_limit_hit import RateLimitHit

__all__ = [
    # Enums
    "AuditAction",
    "DenyReason",
    "GeoMismatchPolicy",
    "InvitationStatus",
    "ParticipantRole",
    "WaitingPatientStatus",
    # Entities
    "Invitation",
    "AuditEvent",
    "WaitingPatient",
    "RateLimitHit",
    "waiting_room_for",
]
