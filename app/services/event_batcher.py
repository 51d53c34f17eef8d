"""Analytics event batcher.

Buffers discrete analytics events in memory and writes them as one
aggregated record per flush, so N events cost one store append. A flush is
triggered when the buffer reaches ``max_batch_size`` or when more than
``max_wait_seconds`` have passed since the last successful flush, whichever
comes first.

The buffer is not durable: events still buffered when the process dies are
lost. A failed flush keeps every event for the next attempt.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from app.adapters.store.base import AbstractTTLStore
from app.schemas.records import AnalyticsBatch, AnalyticsEvent

logger = logging.getLogger(__name__)

ANALYTICS_BATCH_KEY_PREFIX = "analytics_batch:"

DEFAULT_CLIENT_CONTEXT: dict[str, Any] = {"user_agent": "unknown"}


def analytics_batch_key(epoch_seconds: float) -> str:
    """Per-day batch key for the UTC calendar date of the given time."""
    day = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).date().isoformat()
    return f"{ANALYTICS_BATCH_KEY_PREFIX}{day}"


class EventBatcher:
    """Size/time-bounded buffer of analytics events flushed into the store."""

    def __init__(
        self,
        store: AbstractTTLStore,
        *,
        analytics_ttl_seconds: int = 300,
        max_batch_size: int = 5,
        max_wait_seconds: float = 30.0,
        client_context: Mapping[str, Any] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._analytics_ttl = analytics_ttl_seconds
        self._max_batch_size = max_batch_size
        self._max_wait_seconds = max_wait_seconds
        self._client_context = dict(client_context or DEFAULT_CLIENT_CONTEXT)
        self._clock = clock
        self._buffer: list[AnalyticsEvent] = []
        self._last_flush = clock()

    @property
    def pending(self) -> int:
        """Number of buffered events not yet persisted."""
        return len(self._buffer)

    def _should_flush(self) -> bool:
        if len(self._buffer) >= self._max_batch_size:
            return True
        return self._clock() - self._last_flush > self._max_wait_seconds

    async def add(
        self,
        name: str,
        data: Mapping[str, Any] | None = None,
        client_context: Mapping[str, Any] | None = None,
    ) -> None:
        """Buffer one event and flush if a threshold has been crossed.

        An event whose data cannot be encoded is logged and dropped, so it
        never blocks the batch it would have joined.
        """
        event = AnalyticsEvent(
            timestamp=int(round(self._clock() * 1000)),
            event=name,
            data=dict(data or {}),
            client_context=dict(client_context or self._client_context),
        )
        try:
            event.model_dump_json()
        except (TypeError, ValueError) as exc:
            logger.warning(
                "analytics.event_unserializable",
                extra={"event_name": name, "error_type": type(exc).__name__},
            )
            return

        self._buffer.append(event)

        if self._should_flush():
            await self.flush()

    async def flush(self) -> bool:
        """Persist all buffered events as one batch.

        Returns:
            True if the buffer is empty afterwards (flushed or nothing to do),
            False if the append failed and the events were kept.
        """
        if not self._buffer:
            return True

        events = list(self._buffer)
        now = self._clock()
        key = analytics_batch_key(now)
        batch = AnalyticsBatch(batch_id=int(round(now * 1000)), events=events)

        length = await self._store.append(key, batch.model_dump_json())
        if length is None:
            logger.error(
                "analytics.batch_flush_failed",
                extra={"events": len(events), "batch_key": key},
            )
            return False

        # The append is the commit point: a failed TTL refresh keeps the batch.
        if not await self._store.expire(key, self._analytics_ttl):
            logger.warning("analytics.batch_expire_failed", extra={"batch_key": key})

        # Events added while the append was in flight stay buffered.
        del self._buffer[: len(events)]
        self._last_flush = self._clock()

        logger.info(
            "analytics.batch_flushed",
            extra={"events": len(events), "batch_key": key, "batches_today": length},
        )
        return True
