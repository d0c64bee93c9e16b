from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.domain.entities import RateLimitHit


class IRateLimitRepository(ABC):
    """RateLimitHit repository interface - application layer"""

    @abstractmethod
    async def record(self, hit: RateLimitHit) -> RateLimitHit:
        """Count one request"""
        pass

    @abstractmethod
    async def count_since(self, key: str, since: datetime) -> int:
        """Requests counted for key at or after since"""
        pass

    @abstractmethod
    async def last_blocked_since(self, key: str, since: datetime) -> Optional[datetime]:
        """Time of the latest blocked request for key at or after since"""
        pass

    @abstractmethod
    async def purge_before(self, cutoff: datetime) -> int:
        """Delete hits of every key older than cutoff"""
        pass
