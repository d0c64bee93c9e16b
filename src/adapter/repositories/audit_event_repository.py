from typing import Dict, List, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.domain.entities import AuditAction, AuditEvent

ACCESS_GRANTED = AuditAction.access_granted.value
ACCESS_DENIED = AuditAction.access_denied.value


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        self.session.add(audit_event)
        await self.session.flush()
        await self.session.refresh(audit_event)
        return audit_event

    async def list_by_invitation(self, invitation_id: UUID) -> List[AuditEvent]:
        """Get audit events for one invitation, oldest first"""
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.invitation_id == invitation_id)
            .order_by(AuditEvent.created_at.asc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def count_access_events(
        self, invitation_ids: List[UUID]
    ) -> Dict[UUID, Tuple[int, int]]:
        """Count access attempts per invitation as (attempts, denied attempts)"""
        if not invitation_ids:
            return {}

        stmt = (
            select(AuditEvent.invitation_id, AuditEvent.action, func.count())
            .where(
                AuditEvent.invitation_id.in_(invitation_ids),
                AuditEvent.action.in_((ACCESS_GRANTED, ACCESS_DENIED)),
            )
            .group_by(AuditEvent.invitation_id, AuditEvent.action)
        )
        result = await self.session.exec(stmt)

        counts: Dict[UUID, Tuple[int, int]] = {}
        for invitation_id, action, count in result.all():
            attempts, denied = counts.get(invitation_id, (0, 0))
            attempts += count
            if action == ACCESS_DENIED:
                denied += count
            counts[invitation_id] = (attempts, denied)
        return counts
