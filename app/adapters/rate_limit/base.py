"""Rate limiter interfaces.

Callers depend on this abstraction (not the concrete implementation) so the
admission strategy can change without touching the store facade or the
HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_time: Epoch milliseconds when capacity frees up (0 when unknown).
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after_seconds: int | None = None

    @classmethod
    def unrestricted(cls, limit: int) -> "RateLimitResult":
        """Decision used whenever limiting is skipped or has failed (fail open)."""
        return cls(allowed=True, limit=limit, remaining=limit, reset_time=0)

    def as_dict(self) -> dict[str, int | bool]:
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "reset_time": self.reset_time,
        }


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def check(self, identifier: str) -> RateLimitResult:
        """Check and, when admitted, record a request for identifier.

        Args:
            identifier: Opaque requester identifier (session id, IP).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
