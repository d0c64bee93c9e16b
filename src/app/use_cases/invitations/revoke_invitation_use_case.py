"""
Revoke Invitation Use Case

Handles a doctor withdrawing an invitation before it is used.
"""

import logging
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import AuditAction, AuditEvent, InvitationStatus

from .dtos import RevokeInvitationResponse

logger = logging.getLogger(__name__)


class RevokeInvitationUseCase:
    """
    Use case for revoking active invitations.

    Business Rules:
    - Only the issuing doctor can revoke; others see INVITATION_NOT_FOUND
    - Only active invitations can be revoked (used/expired/revoked are terminal)
    - The status change is conditional on still being active, so a validation
      that consumes the invitation first wins and the revoke reports 409
    - Best-effort against in-flight validations: a validate that already
      passed its gates but has not committed can still succeed
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, doctor_id: str, invitation_id: UUID
    ) -> Result[RevokeInvitationResponse]:
        """
        Execute revoke invitation use case.

        Args:
            doctor_id: Doctor requesting the revoke
            invitation_id: ID of the invitation to revoke

        Returns:
            Result with RevokeInvitationResponse DTO, or Error
        """
        async with self.uow:
            invitation = await self.uow.invitations.get_by_id(invitation_id)

            # Foreign invitations are indistinguishable from missing ones
            if invitation is None or invitation.created_by != doctor_id:
                return Return.err(
                    Error("INVITATION_NOT_FOUND", "Invitation not found")
                )

            if invitation.status.is_terminal:
                return Return.err(
                    Error(
                        "INVITATION_NOT_ACTIVE",
                        f"Cannot revoke an invitation that is {invitation.status.value}",
                    )
                )

            revoked = await self.uow.invitations.transition_status(
                invitation_id, InvitationStatus.revoked, utcnow()
            )
            if not revoked:
                return Return.err(
                    Error(
                        "INVITATION_NOT_ACTIVE",
                        "Invitation changed state before it could be revoked",
                    )
                )

            audit = AuditEvent(
                invitation_id=invitation_id,
                actor=doctor_id,
                action=AuditAction.invitation_revoked.value,
                event_metadata={"room_name": invitation.room_name},
            )
            await self.uow.audit_events.create(audit)

            # Commit transaction
            await self.uow.commit()

        logger.info("Invitation revoked: id=%s by=%s", invitation_id, doctor_id)

        return Return.ok(
            RevokeInvitationResponse(
                invitation_id=str(invitation_id),
                status=InvitationStatus.revoked.value,
            )
        )
