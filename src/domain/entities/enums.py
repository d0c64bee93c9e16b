"""
Telehealth Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class InvitationStatus(str, Enum):
    """Invitation status. Transitions only leave `active`."""

    active = "active"
    used = "used"
    expired = "expired"
    revoked = "revoked"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.active


class ParticipantRole(str, Enum):
    """Who a video session credential is minted for"""

    patient = "patient"
    doctor = "doctor"


class DenyReason(str, Enum):
    """
    Closed set of reasons an invitation flow can be refused.

    The values are part of the public contract: the denial page and the
    validate endpoint both emit them verbatim.
    """

    invalid_link = "invalid-link"
    invalid_token = "invalid-token"
    direct_access = "direct-access"
    expired = "expired"
    already_used = "already-used"
    wrong_email = "wrong-email"
    wrong_country = "wrong-country"
    wrong_browser = "wrong-browser"
    wrong_device = "wrong-device"
    waiting_room_full = "waiting-room-full"
    unknown = "unknown"


class WaitingPatientStatus(str, Enum):
    """Waiting room entry status. Entries leave `waiting` once, admitted may still leave."""

    waiting = "waiting"
    admitted = "admitted"
    left = "left"


class GeoMismatchPolicy(str, Enum):
    """Enforcement for a location that differs from the pinned one"""

    log = "log"
    deny = "deny"


class AuditAction(str, Enum):
    """Actions recorded in the audit trail"""

    invitation_created = "invitation_created"
    access_granted = "invitation_access_granted"
    access_denied = "invitation_access_denied"
    invitation_revoked = "invitation_revoked"
    invitation_expired = "invitation_expired"
    invitation_deleted = "invitation_deleted"
    invitations_purged = "invitations_purged"
    patient_admitted = "waiting_patient_admitted"
    patient_rejected = "waiting_patient_rejected"
