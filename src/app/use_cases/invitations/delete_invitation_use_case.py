"""
Use Cases: Delete / Purge Invitations

Deletion hook and retention sweep. Audit events are retained after the
invitation rows are gone.
"""

import logging
from datetime import timedelta
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import AuditAction, AuditEvent

from .dtos import DeleteInvitationResponse, PurgeInvitationsResponse

logger = logging.getLogger(__name__)


class DeleteInvitationUseCase:
    """Delete a single invitation record, whatever its status, and its waiting room entries"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, invitation_id: UUID) -> Result[DeleteInvitationResponse]:
        async with self.uow:
            deleted = await self.uow.invitations.delete(invitation_id)
            if not deleted:
                return Return.err(Error("INVITATION_NOT_FOUND", "Invitation not found"))
            await self.uow.waiting_patients.delete_by_invitation(invitation_id)

            audit = AuditEvent(
                invitation_id=invitation_id,
                actor="admin",
                action=AuditAction.invitation_deleted.value,
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

        logger.info("Invitation deleted: id=%s", invitation_id)
        return Return.ok(
            DeleteInvitationResponse(invitation_id=str(invitation_id), status="deleted")
        )


class PurgeInvitationsUseCase:
    """
    Retention sweep over terminal invitations.

    Business Rules:
    - Only used, expired or revoked invitations are purged
    - Only those created more than older_than_days ago
    - Active invitations are never purged, however old
    - Closed waiting room entries from the same period go with them
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, older_than_days: int) -> Result[PurgeInvitationsResponse]:
        if older_than_days < 1:
            return Return.err(
                Error("INVALID_RETENTION", "older_than_days must be at least 1")
            )

        cutoff = utcnow() - timedelta(days=older_than_days)

        async with self.uow:
            purged = await self.uow.invitations.purge_terminal_before(cutoff)
            await self.uow.waiting_patients.purge_closed_before(cutoff)

            audit = AuditEvent(
                actor="admin",
                action=AuditAction.invitations_purged.value,
                event_metadata={"purged_count": purged, "cutoff": cutoff.isoformat()},
            )
            await self.uow.audit_events.create(audit)
            await self.uow.commit()

        logger.info("Purged %d invitations created before %s", purged, cutoff.isoformat())
        return Return.ok(
            PurgeInvitationsResponse(purged_count=purged, cutoff=cutoff.isoformat() + "Z")
        )
