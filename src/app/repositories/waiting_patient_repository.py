from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from src.domain.entities import WaitingPatient, WaitingPatientStatus


class IWaitingPatientRepository(ABC):
    """WaitingPatient repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, waiting_patient_id: UUID) -> Optional[WaitingPatient]:
        """Get waiting room entry by ID"""
        pass

    @abstractmethod
    async def create(self, waiting_patient: WaitingPatient) -> WaitingPatient:
        """Create a new waiting room entry"""
        pass

    @abstractmethod
    async def find_waiting(
        self, invitation_id: UUID, fingerprint_hash: str
    ) -> Optional[WaitingPatient]:
        """Most recent entry still waiting for this invitation and device"""
        pass

    @abstractmethod
    async def find_latest(
        self, invitation_id: UUID, fingerprint_hash: Optional[str]
    ) -> Optional[WaitingPatient]:
        """Most recent entry of any status for this invitation and device"""
        pass

    @abstractmethod
    async def count_waiting(self, invitation_id: UUID) -> int:
        """Number of entries still waiting for this invitation"""
        pass

    @abstractmethod
    async def list_waiting(self, room_name: str, doctor_id: str) -> List[WaitingPatient]:
        """Entries waiting in a doctor's room, earliest arrival first"""
        pass

    @abstractmethod
    async def transition_status(
        self,
        waiting_patient_id: UUID,
        from_statuses: Iterable[WaitingPatientStatus],
        to_status: WaitingPatientStatus,
        now: datetime,
    ) -> bool:
        """Move an entry on only if it is still in one of from_statuses"""
        pass

    @abstractmethod
    async def delete_by_invitation(self, invitation_id: UUID) -> int:
        """Delete every entry of an invitation, returns the count"""
        pass

    @abstractmethod
    async def purge_closed_before(self, cutoff: datetime) -> int:
        """Delete admitted or left entries that joined before cutoff"""
        pass
