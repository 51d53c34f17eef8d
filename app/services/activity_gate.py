"""Activity gate deciding whether rate limiting runs at all.

Every check bumps a shared ``active_sessions_count`` counter with a short
TTL, so the counter doubles as a liveness signal. Limiting only starts once
the count observed *before* the bump reaches the threshold; below that,
traffic is too low for abuse to matter and the store writes are skipped.
"""

from __future__ import annotations

import logging

from app.adapters.store.base import AbstractTTLStore

logger = logging.getLogger(__name__)

ACTIVE_SESSIONS_KEY = "active_sessions_count"


def _parse_count(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return max(0, int(raw))
    except ValueError:
        return 0


class ActivityGate:
    """Counter-based heuristic opening the rate limiter under contention."""

    def __init__(
        self,
        store: AbstractTTLStore,
        *,
        threshold: int = 2,
        ttl_seconds: int = 300,
    ) -> None:
        self._store = store
        self._threshold = threshold
        self._ttl_seconds = ttl_seconds

    async def should_limit(self) -> bool:
        """Record this check and report whether the limiter should run.

        Returns:
            True when the pre-increment count is at least the threshold.
            False when below it, or when the counter cannot be read.
        """
        try:
            count = _parse_count(await self._store.get(ACTIVE_SESSIONS_KEY))
            await self._store.set(ACTIVE_SESSIONS_KEY, str(count + 1), self._ttl_seconds)
        except Exception as exc:
            logger.warning(
                "activity_gate.check_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return False

        is_open = count >= self._threshold
        logger.debug(
            "activity_gate.checked",
            extra={"active_sessions": count, "gate_open": is_open},
        )
        return is_open
