from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, delete, func, literal, or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.invitation_repository import IInvitationRepository
from src.domain.entities import Invitation, InvitationStatus

_STATUS_TYPE = Invitation.__table__.c.status.type


class InvitationRepository(IInvitationRepository):
    """Invitation repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, invitation_id: UUID) -> Optional[Invitation]:
        """Get invitation by ID"""
        stmt = (
            select(Invitation)
            .where(Invitation.id == invitation_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_creator(
        self, created_by: str, status: Optional[InvitationStatus] = None
    ) -> List[Invitation]:
        """Get a doctor's invitations, newest first"""
        stmt = select(Invitation).where(Invitation.created_by == created_by)
        if status is not None:
            stmt = stmt.where(Invitation.status == status)
        stmt = stmt.order_by(Invitation.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation"""
        self.session.add(invitation)
        await self.session.flush()
        await self.session.refresh(invitation)
        return invitation

    async def consume(
        self,
        invitation_id: UUID,
        now: datetime,
        fingerprint_hash: Optional[str],
        pin_fingerprint: bool,
        country_code: Optional[str],
    ) -> bool:
        """
        Single conditional UPDATE; the row count decides the race.

        Concurrent callers that read the same active row all reach this
        statement, but only those that still see status=active and spare
        uses when the write lock is granted match the WHERE clause.
        When the device is pinned here, a row already pinned to another
        device by a concurrent winner no longer matches either.
        """
        last_use = Invitation.use_count + 1 >= Invitation.max_uses
        values = {
            "use_count": Invitation.use_count + 1,
            "used_at": now,
            "used_by": fingerprint_hash,
            "status": case(
                (last_use, literal(InvitationStatus.used, type_=_STATUS_TYPE)),
                else_=literal(InvitationStatus.active, type_=_STATUS_TYPE),
            ),
        }
        conditions = [
            Invitation.id == invitation_id,
            Invitation.status == InvitationStatus.active,
            Invitation.use_count < Invitation.max_uses,
        ]
        if pin_fingerprint and fingerprint_hash:
            values["bound_fingerprint"] = func.coalesce(
                Invitation.bound_fingerprint, fingerprint_hash
            )
            conditions.append(
                or_(
                    Invitation.bound_fingerprint.is_(None),
                    Invitation.bound_fingerprint == fingerprint_hash,
                )
            )
        elif pin_fingerprint:
            conditions.append(Invitation.bound_fingerprint.is_(None))
        if country_code:
            values["bound_country_code"] = func.coalesce(
                Invitation.bound_country_code, country_code
            )

        stmt = (
            update(Invitation)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def transition_status(
        self,
        invitation_id: UUID,
        to_status: InvitationStatus,
        now: datetime,
    ) -> bool:
        """Move an active invitation to a terminal status; False if it was not active"""
        values = {"status": to_status}
        if to_status == InvitationStatus.revoked:
            values["revoked_at"] = now

        stmt = (
            update(Invitation)
            .where(
                Invitation.id == invitation_id,
                Invitation.status == InvitationStatus.active,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def expire_past_due(self, now: datetime) -> List[UUID]:
        """Flip every active invitation past its expires_at to expired"""
        stmt = select(Invitation.id).where(
            Invitation.status == InvitationStatus.active,
            Invitation.expires_at < now,
        )
        result = await self.session.execute(stmt)
        candidate_ids = list(result.scalars().all())

        expired_ids = []
        for invitation_id in candidate_ids:
            # Re-checked per row so a concurrent consume is never overwritten
            if await self.transition_status(
                invitation_id, InvitationStatus.expired, now
            ):
                expired_ids.append(invitation_id)
        return expired_ids

    async def delete(self, invitation_id: UUID) -> bool:
        """Delete an invitation record"""
        stmt = delete(Invitation).where(Invitation.id == invitation_id)
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def purge_terminal_before(self, cutoff: datetime) -> int:
        """Delete non-active invitations created before cutoff"""
        stmt = delete(Invitation).where(
            Invitation.status != InvitationStatus.active,
            Invitation.created_at < cutoff,
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
