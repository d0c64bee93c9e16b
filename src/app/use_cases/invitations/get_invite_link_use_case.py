"""
Get Invite Link Use Case

Re-issues the shareable link of an invitation that is still usable.
"""

from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.invitation_tokens import InvitationTokenService
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import InvitationStatus

from .dtos import CreateInvitationResponse


class GetInviteLinkUseCase:
    """
    Use case for fetching the link of an active invitation again.

    The new token carries the record's own expires_at, so re-issuing never
    extends an invitation's lifetime.
    """

    def __init__(
        self, uow: UnitOfWork, token_service: InvitationTokenService, base_url: str
    ):
        self.uow = uow
        self.token_service = token_service
        self.base_url = base_url.rstrip("/")

    async def execute(
        self, doctor_id: str, invitation_id: UUID
    ) -> Result[CreateInvitationResponse]:
        async with self.uow:
            invitation = await self.uow.invitations.get_by_id(invitation_id)

            if invitation is None or invitation.created_by != doctor_id:
                return Return.err(Error("INVITATION_NOT_FOUND", "Invitation not found"))

            if invitation.status != InvitationStatus.active or invitation.is_past_due(
                utcnow()
            ):
                return Return.err(
                    Error("INVITATION_NOT_ACTIVE", "Invitation is no longer usable")
                )

            token = self.token_service.issue(invitation.id, invitation.expires_at)
            return Return.ok(
                CreateInvitationResponse(
                    invitation_id=str(invitation.id),
                    token=token,
                    invite_url=f"{self.base_url}/invite/{token}",
                    expires_at=invitation.expires_at.isoformat() + "Z",
                )
            )
