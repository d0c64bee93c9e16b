from dataclasses import dataclass

from pydantic import BaseModel

from src.libs.result import Error


@dataclass(frozen=True)
class RateLimited(Error):
    """Refusal carrying how long the client has to wait"""

    limit: int = 0
    retry_after: int = 0


class RateLimitStatus(BaseModel):
    limit: int
    remaining: int
