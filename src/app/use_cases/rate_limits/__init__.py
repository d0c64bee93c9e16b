"""
Rate Limit Use Cases

Per-client request budgets for the public and token-issuing endpoints.
"""

from .check_rate_limit_use_case import CheckRateLimitUseCase
from .dtos import RateLimited, RateLimitStatus

__all__ = ["CheckRateLimitUseCase", "RateLimited", "RateLimitStatus"]
