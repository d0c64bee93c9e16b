"""
Invitation Use Cases

Issuing, validating and managing patient invitations.
"""

from .create_invitation_use_case import CreateInvitationUseCase
from .delete_invitation_use_case import DeleteInvitationUseCase, PurgeInvitationsUseCase
from .dtos import (
    AccessDenied,
    AccessGrant,
    CreateInvitationResponse,
    DeleteInvitationResponse,
    ExpireInvitationsResponse,
    InvitationListItem,
    ListInvitationsResponse,
    PurgeInvitationsResponse,
    RevokeInvitationResponse,
)
from .expire_invitations_use_case import ExpireInvitationsUseCase
from .get_invite_link_use_case import GetInviteLinkUseCase
from .list_invitations_use_case import ListInvitationsUseCase
from .revoke_invitation_use_case import RevokeInvitationUseCase
from .validate_invitation_use_case import ValidateInvitationUseCase

__all__ = [
    "CreateInvitationUseCase",
    "ValidateInvitationUseCase",
    "RevokeInvitationUseCase",
    "ListInvitationsUseCase",
    "GetInviteLinkUseCase",
    "ExpireInvitationsUseCase",
    "DeleteInvitationUseCase",
    "PurgeInvitationsUseCase",
    "AccessDenied",
    "AccessGrant",
    "CreateInvitationResponse",
    "RevokeInvitationResponse",
    "InvitationListItem",
    "ListInvitationsResponse",
    "ExpireInvitationsResponse",
    "DeleteInvitationResponse",
    "PurgeInvitationsResponse",
]
