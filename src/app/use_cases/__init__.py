"""
Use Cases

Organized into domain folders:
- invitations/: Issuing, validating and managing patient invitations
- doctors/: Ungated doctor room access
- waiting_room/: Admitting, rejecting and listing waiting patients
- rate_limits/: Per-client request budgets
"""

from .doctors import DoctorAccessUseCase
from .invitations import (
    CreateInvitationUseCase,
    DeleteInvitationUseCase,
    ExpireInvitationsUseCase,
    GetInviteLinkUseCase,
    ListInvitationsUseCase,
    PurgeInvitationsUseCase,
    RevokeInvitationUseCase,
    ValidateInvitationUseCase,
)
from .waiting_room import (
    AdmitWaitingPatientUseCase,
    CheckAdmissionUseCase,
    ListWaitingPatientsUseCase,
    RejectWaitingPatientUseCase,
)
from .rate_limits import CheckRateLimitUseCase

__all__ = [
    # Invitations
    "CreateInvitationUseCase",
    "ValidateInvitationUseCase",
    "RevokeInvitationUseCase",
    "ListInvitationsUseCase",
    "GetInviteLinkUseCase",
    "ExpireInvitationsUseCase",
    "DeleteInvitationUseCase",
    "PurgeInvitationsUseCase",
    # Doctors
    "DoctorAccessUseCase",
    # Waiting room
    "AdmitWaitingPatientUseCase",
    "RejectWaitingPatientUseCase",
    "ListWaitingPatientsUseCase",
    "CheckAdmissionUseCase",
    # Rate limits
    "CheckRateLimitUseCase",
]
