"""Store-backed sliding-window rate limiter.

Notes:
- The window record for each identifier lives in the TTL store under
  ``rate_limit:<identifier>``; the limiter itself is stateless.
- One timestamp is kept per admitted request inside the window, so the
  decision always reflects exactly the last ``window_seconds`` of traffic.
- Read-modify-write is not atomic across processes sharing one medium.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

from pydantic import ValidationError

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.store.base import AbstractTTLStore
from app.core.logging import hash_identifier
from app.schemas.records import RateWindowRecord

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY_PREFIX = "rate_limit:"


def rate_limit_key(identifier: str) -> str:
    return f"{RATE_LIMIT_KEY_PREFIX}{identifier}"


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter admitting at most ``limit`` requests per sliding window.

    The window is half-open: a timestamp exactly ``window_seconds`` old no
    longer counts.
    """

    def __init__(
        self,
        store: AbstractTTLStore,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: TTL store holding the per-identifier window records.
            limit: Maximum number of admitted requests per window.
            window_seconds: Length of the sliding window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    async def _load_record(self, key: str, now: int) -> RateWindowRecord:
        raw = await self._store.get(key)
        if raw is None:
            return RateWindowRecord(window=now)
        try:
            return RateWindowRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("rate_limit.record_corrupt", extra={"key_hash": hash_identifier(key)})
            return RateWindowRecord(window=now)

    async def check(self, identifier: str) -> RateLimitResult:
        """Check the sliding window for identifier and record the request if admitted.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        key = rate_limit_key(identifier)
        window_ms = self._window_seconds * 1000
        now = int(round(self._clock() * 1000))
        window_start = now - window_ms

        record = await self._load_record(key, now)
        record.requests = [ts for ts in record.requests if ts > window_start]

        if len(record.requests) >= self._limit:
            reset_time = min(record.requests) + window_ms
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=0,
                reset_time=reset_time,
                retry_after_seconds=max(0, math.ceil((reset_time - now) / 1000)),
            )

        record.requests.append(now)
        record.window = now

        if not await self._store.set(key, record.model_dump_json(), self._window_seconds):
            # Could not persist this admission; the request still goes through.
            return RateLimitResult.unrestricted(self._limit)

        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=self._limit - len(record.requests),
            reset_time=now + window_ms,
        )
