from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.waiting_patient_repository import IWaitingPatientRepository
from src.domain.entities import WaitingPatient, WaitingPatientStatus


class WaitingPatientRepository(IWaitingPatientRepository):
    """WaitingPatient repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, waiting_patient_id: UUID) -> Optional[WaitingPatient]:
        """Get waiting room entry by ID"""
        stmt = (
            select(WaitingPatient)
            .where(WaitingPatient.id == waiting_patient_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, waiting_patient: WaitingPatient) -> WaitingPatient:
        """Create a new waiting room entry"""
        self.session.add(waiting_patient)
        await self.session.flush()
        await self.session.refresh(waiting_patient)
        return waiting_patient

    async def find_waiting(
        self, invitation_id: UUID, fingerprint_hash: str
    ) -> Optional[WaitingPatient]:
        """Most recent entry still waiting for this invitation and device"""
        stmt = (
            select(WaitingPatient)
            .where(
                WaitingPatient.invitation_id == invitation_id,
                WaitingPatient.fingerprint_hash == fingerprint_hash,
                WaitingPatient.status == WaitingPatientStatus.waiting,
            )
            .order_by(WaitingPatient.joined_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_latest(
        self, invitation_id: UUID, fingerprint_hash: Optional[str]
    ) -> Optional[WaitingPatient]:
        """Most recent entry of any status for this invitation and device"""
        stmt = (
            select(WaitingPatient)
            .where(
                WaitingPatient.invitation_id == invitation_id,
                WaitingPatient.fingerprint_hash == fingerprint_hash,
            )
            .order_by(WaitingPatient.joined_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def count_waiting(self, invitation_id: UUID) -> int:
        """Number of entries still waiting for this invitation"""
        stmt = select(func.count()).where(
            WaitingPatient.invitation_id == invitation_id,
            WaitingPatient.status == WaitingPatientStatus.waiting,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_waiting(self, room_name: str, doctor_id: str) -> List[WaitingPatient]:
        """Entries waiting in a doctor's room, earliest arrival first"""
        stmt = (
            select(WaitingPatient)
            .where(
                WaitingPatient.room_name == room_name,
                WaitingPatient.doctor_id == doctor_id,
                WaitingPatient.status == WaitingPatientStatus.waiting,
            )
            .order_by(WaitingPatient.joined_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def transition_status(
        self,
        waiting_patient_id: UUID,
        from_statuses: Iterable[WaitingPatientStatus],
        to_status: WaitingPatientStatus,
        now: datetime,
    ) -> bool:
        """Conditional status change; False if the entry had already moved on"""
        values = {"status": to_status}
        if to_status == WaitingPatientStatus.admitted:
            values["admitted_at"] = now
        elif to_status == WaitingPatientStatus.left:
            values["left_at"] = now

        stmt = (
            update(WaitingPatient)
            .where(
                WaitingPatient.id == waiting_patient_id,
                WaitingPatient.status.in_(list(from_statuses)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def delete_by_invitation(self, invitation_id: UUID) -> int:
        """Delete every entry of an invitation"""
        stmt = delete(WaitingPatient).where(WaitingPatient.invitation_id == invitation_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def purge_closed_before(self, cutoff: datetime) -> int:
        """Delete admitted or left entries that joined before cutoff"""
        stmt = delete(WaitingPatient).where(
            WaitingPatient.status != WaitingPatientStatus.waiting,
            WaitingPatient.joined_at < cutoff,
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
