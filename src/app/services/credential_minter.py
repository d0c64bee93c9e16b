from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from src.domain.entities import ParticipantRole


class CredentialMintingError(Exception):
    """The video service credential could not be signed"""


class ICredentialMinter(ABC):
    """Video session credential signer - application layer"""

    @abstractmethod
    def mint(
        self,
        identity: str,
        room_name: str,
        role: ParticipantRole,
        ttl: Optional[timedelta] = None,
        name: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> str:
        """
        Sign a grant letting `identity` join `room_name`.

        Args:
            identity: Participant identity inside the room
            room_name: Room the grant is scoped to
            role: patient or doctor; selects default TTL and permissions
            ttl: Override of the role's default lifetime
            name: Display name
            metadata: Extra participant metadata, serialized into the grant

        Raises:
            CredentialMintingError: empty identity/room or signing failure
        """
        pass
