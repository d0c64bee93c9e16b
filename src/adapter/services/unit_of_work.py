from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.audit_event_repository import AuditEventRepository
from src.adapter.repositories.invitation_repository import InvitationRepository
from src.adapter.repositories.rate_limit_repository import RateLimitRepository
from src.adapter.repositories.waiting_patient_repository import WaitingPatientRepository
from src.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.invitations = InvitationRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        self.waiting_patients = WaitingPatientRepository(self.session)
        self.rate_limit_hits = RateLimitRepository(self.session)
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
