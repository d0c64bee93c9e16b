from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.rate_limit_repository import IRateLimitRepository
from src.domain.entities import RateLimitHit


class RateLimitRepository(IRateLimitRepository):
    """RateLimitHit repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, hit: RateLimitHit) -> RateLimitHit:
        """Count one request"""
        self.session.add(hit)
        await self.session.flush()
        return hit

    async def count_since(self, key: str, since: datetime) -> int:
        stmt = select(func.count()).where(
            RateLimitHit.key == key,
            RateLimitHit.created_at >= since,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def last_blocked_since(self, key: str, since: datetime) -> Optional[datetime]:
        stmt = select(func.max(RateLimitHit.created_at)).where(
            RateLimitHit.key == key,
            RateLimitHit.blocked.is_(True),
            RateLimitHit.created_at >= since,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def purge_before(self, cutoff: datetime) -> int:
        """Delete hits of every key older than cutoff"""
        stmt = delete(RateLimitHit).where(RateLimitHit.created_at < cutoff)
        result = await self.session.execute(stmt)
        return result.rowcount or 0
