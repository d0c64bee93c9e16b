"""
Check Rate Limit Use Case

Counts a request against a per-client budget kept in the database, so every
worker process sees the same window.
"""

import logging
import math
from datetime import timedelta

from src.libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.clock import utcnow
from src.domain.entities import RateLimitHit

from .dtos import RateLimited, RateLimitStatus

logger = logging.getLogger(__name__)


class CheckRateLimitUseCase:
    """
    Use case for admitting or refusing one request under a rate limit.

    Business Rules:
    - At most `limit` requests per key within any `window` seconds
    - The request that goes over the limit blocks the key for `block` seconds
    - Requests refused while blocked are not counted
    - Hits older than the longer of window and block are purged on the way
    """

    def __init__(self, uow: UnitOfWork, limit: int, window: int, block: int):
        self.uow = uow
        self.limit = limit
        self.window = timedelta(seconds=window)
        self.block = timedelta(seconds=block)

    async def execute(self, key: str) -> Result[RateLimitStatus]:
        now = utcnow()

        async with self.uow:
            blocked_at = await self.uow.rate_limit_hits.last_blocked_since(
                key, now - self.block
            )
            if blocked_at is not None:
                remaining_block = self.block - (now - blocked_at)
                return self._refuse(key, math.ceil(remaining_block.total_seconds()))

            count = await self.uow.rate_limit_hits.count_since(key, now - self.window)
            over_limit = count >= self.limit

            await self.uow.rate_limit_hits.record(
                RateLimitHit(key=key, blocked=over_limit, created_at=now)
            )
            await self.uow.rate_limit_hits.purge_before(now - max(self.window, self.block))
            await self.uow.commit()

        if over_limit:
            return self._refuse(key, math.ceil(self.block.total_seconds()))

        return Return.ok(RateLimitStatus(limit=self.limit, remaining=self.limit - count - 1))

    def _refuse(self, key: str, retry_after: int) -> Result[RateLimitStatus]:
        logger.warning("Rate limit exceeded: key=%s retry_after=%ds", key, retry_after)
        return Return.err(
            RateLimited(
                code="RATE_LIMITED",
                message="Rate limit exceeded",
                limit=self.limit,
                retry_after=max(retry_after, 1),
            )
        )
