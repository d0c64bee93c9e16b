"""
Rate Limit Dependency

Per client IP budgets for the token-issuing endpoints, attached to routes
with dependencies=[Depends(RateLimiter("invite_validate"))].
"""

import logging

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import RateLimitExceeded
from src.app.use_cases.rate_limits import CheckRateLimitUseCase

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """First forwarded address, then X-Real-IP, then the socket peer"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


class RateLimiter:
    """
    FastAPI dependency counting each request against "<scope>:<client ip>".

    Uses its own session so the counted hit is committed whatever the route
    does afterwards. A store failure lets the request through; the route
    then reports its own store errors.
    """

    def __init__(self, scope: str):
        self.scope = scope

    async def __call__(self, request: Request) -> None:
        config = request.app.state.config
        if not config.RATE_LIMIT_ENABLED:
            return

        key = f"{self.scope}:{client_ip(request)}"
        try:
            async with request.app.state.session_factory() as session:
                use_case = CheckRateLimitUseCase(
                    SqlAlchemyUnitOfWork(session),
                    limit=config.RATE_LIMIT_REQUESTS,
                    window=config.RATE_LIMIT_WINDOW_SECONDS,
                    block=config.RATE_LIMIT_BLOCK_SECONDS,
                )
                result = await use_case.execute(key)
        except SQLAlchemyError:
            logger.exception("Rate limit check failed, request let through: key=%s", key)
            return

        if result.is_err():
            error = result.error
            raise RateLimitExceeded(error, limit=error.limit, retry_after=error.retry_after)
