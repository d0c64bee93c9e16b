from abc import ABC, abstractmethod
from typing import Dict, List, Tuple
from uuid import UUID

from src.domain.entities import AuditEvent


class IAuditEventRepository(ABC):
    """AuditEvent repository interface - application layer"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        pass

    @abstractmethod
    async def list_by_invitation(self, invitation_id: UUID) -> List[AuditEvent]:
        """Get audit events for one invitation, oldest first"""
        pass

    @abstractmethod
    async def count_access_events(
        self, invitation_ids: List[UUID]
    ) -> Dict[UUID, Tuple[int, int]]:
        """
        Count access attempts per invitation.

        Returns:
            Mapping of invitation id to (attempts, denied attempts)
        """
        pass
