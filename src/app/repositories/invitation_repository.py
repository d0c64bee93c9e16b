from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from src.domain.entities import Invitation, InvitationStatus


class IInvitationRepository(ABC):
    """Invitation repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, invitation_id: UUID) -> Optional[Invitation]:
        """Get invitation by ID"""
        pass

    @abstractmethod
    async def list_by_creator(
        self, created_by: str, status: Optional[InvitationStatus] = None
    ) -> List[Invitation]:
        """Get a doctor's invitations, newest first"""
        pass

    @abstractmethod
    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation"""
        pass

    @abstractmethod
    async def consume(
        self,
        invitation_id: UUID,
        now: datetime,
        fingerprint_hash: Optional[str],
        pin_fingerprint: bool,
        country_code: Optional[str],
    ) -> bool:
        """
        Atomically record one use of an active invitation.

        Succeeds only while status is active and use_count < max_uses; flips
        status to used when the last use is taken. Returns False when another
        request got there first.
        """
        pass

    @abstractmethod
    async def transition_status(
        self,
        invitation_id: UUID,
        to_status: InvitationStatus,
        now: datetime,
    ) -> bool:
        """Move an active invitation to a terminal status; False if it was not active"""
        pass

    @abstractmethod
    async def expire_past_due(self, now: datetime) -> List[UUID]:
        """Flip every active invitation past its expires_at to expired"""
        pass

    @abstractmethod
    async def delete(self, invitation_id: UUID) -> bool:
        """Delete an invitation record"""
        pass

    @abstractmethod
    async def purge_terminal_before(self, cutoff: datetime) -> int:
        """Delete non-active invitations created before cutoff"""
        pass
