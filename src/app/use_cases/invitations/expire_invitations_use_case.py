"""
Use Case: Expire Invitations (janitor)

Flips active invitations past their expiry to expired. Validation already
expires records lazily, so this only keeps listings and reports tidy.
"""

import logging

from src.libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import AuditAction, AuditEvent

from .dtos import ExpireInvitationsResponse

logger = logging.getLogger(__name__)


class ExpireInvitationsUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self) -> Result[ExpireInvitationsResponse]:
        async with self.uow:
            expired_ids = await self.uow.invitations.expire_past_due(utcnow())

            for invitation_id in expired_ids:
                audit = AuditEvent(
                    invitation_id=invitation_id,
                    actor="janitor",
                    action=AuditAction.invitation_expired.value,
                    event_metadata={"source": "sweep"},
                )
                await self.uow.audit_events.create(audit)

            await self.uow.commit()

        if expired_ids:
            logger.info("Expired %d stale invitations", len(expired_ids))

        return Return.ok(
            ExpireInvitationsResponse(
                expired_count=len(expired_ids),
                invitation_ids=[str(invitation_id) for invitation_id in expired_ids],
            )
        )
