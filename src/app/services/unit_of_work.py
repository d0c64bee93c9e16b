from abc import ABC, abstractmethod

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.app.repositories.invitation_repository import IInvitationRepository
from src.app.repositories.rate_limit_repository import IRateLimitRepository
from src.app.repositories.waiting_patient_repository import IWaitingPatientRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    invitations: IInvitationRepository
    audit_events: IAuditEventRepository
    waiting_patients: IWaitingPatientRepository
    rate_limit_hits: IRateLimitRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
