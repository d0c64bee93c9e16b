"""
Invitation Use Case DTOs (Data Transfer Objects)

All Command and Response classes for the invitation domain.
Serialized in the browser client's camelCase shape.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.libs.result import Error
from src.domain.entities import DenyReason


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Errors
# ============================================================================


@dataclass(frozen=True)
class AccessDenied(Error):
    """Validator refusal: reason is public, detail stays in logs and audit"""

    reason: DenyReason = DenyReason.unknown
    violations: Tuple[str, ...] = field(default_factory=tuple)
    detail: Optional[str] = None


# ============================================================================
# Response DTOs
# ============================================================================


class CreateInvitationResponse(CamelModel):
    """Response for create invitation use case"""

    success: bool = True
    invitation_id: str
    token: str
    invite_url: str
    expires_at: str


class AccessGrant(CamelModel):
    """Response for a successful invitation validation"""

    success: bool = True
    live_kit_token: str
    room_name: str
    invitation_id: str
    waiting_room_enabled: bool = False
    waiting_room_token: bool = False
    waiting_patient_id: Optional[str] = None


class RevokeInvitationResponse(CamelModel):
    """Response for revoke invitation use case"""

    success: bool = True
    invitation_id: str
    status: str


class InvitationListItem(CamelModel):
    """One row of a doctor's invitation list"""

    id: str
    room_name: str
    email: str
    status: str
    created_at: str
    expires_at: str
    used_at: Optional[str] = None
    use_count: int
    max_uses: int
    waiting_room_enabled: bool = False
    access_attempts: int
    violations: int


class ListInvitationsResponse(CamelModel):
    """Response for list invitations use case"""

    invitations: List[InvitationListItem]


class ExpireInvitationsResponse(CamelModel):
    """Response for the expiry janitor"""

    expired_count: int
    invitation_ids: List[str]


class DeleteInvitationResponse(CamelModel):
    """Response for the deletion hook"""

    invitation_id: str
    status: str


class PurgeInvitationsResponse(CamelModel):
    """Response for the retention sweep"""

    purged_count: int
    cutoff: str
