"""Store facade: the single entry point for the form collaborator.

The facade owns the lifecycle of the backing medium and composes the TTL
store, activity gate, sliding-window limiter and analytics batcher. It is
constructed explicitly and acquired for a scope:

    async with StoreFacade(settings.store) as store:
        decision = await store.check_rate_limit(session_id)

Nothing in here raises into the caller. When the medium is unavailable or
an operation fails, rate limit checks fail open and tracking becomes a
no-op.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Mapping

from pydantic import TypeAdapter, ValidationError

from app.adapters.rate_limit.base import RateLimitResult
from app.adapters.rate_limit.sliding_window import (
    RATE_LIMIT_KEY_PREFIX,
    SlidingWindowRateLimiter,
)
from app.adapters.store.factory import create_medium_factory
from app.adapters.store.medium import Medium
from app.adapters.store.ttl_store import KeyValueTTLStore
from app.core.config import StoreSettings
from app.core.logging import hash_identifier
from app.schemas.records import QueuedSubmission, RateWindowRecord
from app.services.activity_gate import ActivityGate
from app.services.event_batcher import EventBatcher

logger = logging.getLogger(__name__)

FORM_STATE_KEY_PREFIX = "form_state:"

_form_state = TypeAdapter(dict[str, Any])


class StoreFacade:
    """Lifecycle owner and composition root of the store subsystem."""

    def __init__(
        self,
        store_settings: StoreSettings,
        *,
        medium_factory: Callable[[], Medium] | None = None,
        client_context: Mapping[str, Any] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = store_settings
        self._medium_factory = medium_factory or create_medium_factory(store_settings)
        self._client_context = client_context
        self._clock = clock

        self._medium: Medium | None = None
        self._store: KeyValueTTLStore | None = None
        self._gate: ActivityGate | None = None
        self._limiter: SlidingWindowRateLimiter | None = None
        self._batcher: EventBatcher | None = None
        self._connected = False

    async def __aenter__(self) -> "StoreFacade":
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    @property
    def is_ready(self) -> bool:
        return self._connected

    @property
    def pending_events(self) -> int:
        return self._batcher.pending if self._batcher else 0

    def stats(self) -> dict[str, int]:
        return self._store.stats() if self._store else {}

    def _now_ms(self) -> int:
        return int(round(self._clock() * 1000))

    async def init(self) -> bool:
        """Open the medium and build the components. Idempotent.

        Returns:
            True if a usable medium was obtained.
        """
        if self._connected:
            return True

        s = self._settings
        try:
            medium = self._medium_factory()
        except Exception as exc:
            logger.error(
                "store.init_failed",
                extra={
                    "backend": s.backend,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return False

        store = KeyValueTTLStore(medium, key_prefix=s.key_prefix, clock=self._clock)
        self._medium = medium
        self._store = store
        self._gate = (
            ActivityGate(
                store,
                threshold=s.activity_gate_threshold,
                ttl_seconds=s.active_sessions_ttl_seconds,
            )
            if s.activity_gate_enabled
            else None
        )
        self._limiter = SlidingWindowRateLimiter(
            store,
            limit=s.rate_limit_max,
            window_seconds=s.rate_limit_window_seconds,
            clock=self._clock,
        )
        self._batcher = EventBatcher(
            store,
            analytics_ttl_seconds=s.analytics_ttl_seconds,
            max_batch_size=s.batch_max_size,
            max_wait_seconds=s.batch_max_wait_seconds,
            client_context=self._client_context,
            clock=self._clock,
        )
        self._connected = True

        logger.info(
            "store.initialized",
            extra={
                "backend": s.backend,
                "rate_limit_max": s.rate_limit_max,
                "window_s": s.rate_limit_window_seconds,
            },
        )
        return True

    async def check_rate_limit(self, identifier: str) -> RateLimitResult:
        """Admission decision for identifier; fails open on any problem."""
        limit = self._settings.rate_limit_max
        if not self._connected or self._limiter is None:
            return RateLimitResult.unrestricted(limit)

        try:
            if self._gate is not None and not await self._gate.should_limit():
                return RateLimitResult.unrestricted(limit)
            return await self._limiter.check(identifier)
        except Exception as exc:
            logger.error(
                "rate_limit.check_failed",
                extra={
                    "key_hash": hash_identifier(identifier or ""),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return RateLimitResult.unrestricted(limit)

    async def track_event(
        self,
        name: str,
        data: Mapping[str, Any] | None = None,
        client_context: Mapping[str, Any] | None = None,
    ) -> None:
        """Fire-and-forget analytics tracking through the batcher."""
        if not self._connected or self._batcher is None:
            return

        try:
            await self._batcher.add(name, data, client_context)
        except Exception as exc:
            logger.error(
                "analytics.track_failed",
                extra={
                    "event": name,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

    async def queue_submission(self, form_data: Mapping[str, Any]) -> str | None:
        """Hand a form submission to the downstream queue.

        Returns:
            Queue id, or None when the queue is unavailable and the caller
            should process the submission immediately.
        """
        if not self._connected or self._store is None:
            logger.warning("queue.unavailable")
            return None

        item = QueuedSubmission(
            id=uuid.uuid4().hex,
            timestamp=self._now_ms(),
            data=dict(form_data),
        )
        try:
            length = await self._store.append(self._settings.queue_name, item.model_dump_json())
        except Exception as exc:
            logger.error(
                "queue.push_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return None
        if length is None:
            return None

        logger.info("queue.submission_queued", extra={"queue_id": item.id, "queue_length": length})
        await self.track_event("form_queued", {"queue_id": item.id})
        return item.id

    async def cache_form_state(self, session_id: str, state: Mapping[str, Any]) -> bool:
        """Remember partially filled form state for form_cache_ttl seconds."""
        if not self._connected or self._store is None:
            return False

        try:
            payload = _form_state.dump_json(dict(state)).decode()
        except (TypeError, ValueError) as exc:
            logger.warning(
                "form_state.encode_failed",
                extra={"key_hash": hash_identifier(session_id), "error_msg": str(exc)},
            )
            return False

        return await self._store.set(
            f"{FORM_STATE_KEY_PREFIX}{session_id}",
            payload,
            self._settings.form_cache_ttl_seconds,
        )

    async def load_form_state(self, session_id: str) -> dict[str, Any] | None:
        if not self._connected or self._store is None:
            return None

        raw = await self._store.get(f"{FORM_STATE_KEY_PREFIX}{session_id}")
        if raw is None:
            return None
        try:
            return _form_state.validate_json(raw)
        except ValidationError:
            return None

    async def cleanup(self) -> int:
        """Sweep stale rate limit records, purge expired keys, flush analytics.

        Meant to be called periodically by an external scheduler.

        Returns:
            Number of rate limit records removed.
        """
        if not self._connected or self._store is None or self._batcher is None:
            return 0

        stale_ms = self._settings.stale_window_seconds * 1000
        removed = 0
        try:
            now = self._now_ms()
            for key in await self._store.keys_matching(f"{RATE_LIMIT_KEY_PREFIX}*"):
                raw = await self._store.get(key)
                if raw is None:
                    continue
                try:
                    record: RateWindowRecord | None = RateWindowRecord.model_validate_json(raw)
                except ValidationError:
                    record = None
                if record is None or now - record.window > stale_ms:
                    if await self._store.delete(key):
                        removed += 1

            purged = await self._store.purge_expired()
            await self._batcher.flush()
        except Exception as exc:
            logger.warning(
                "store.cleanup_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return removed

        logger.info(
            "store.cleanup_completed",
            extra={"rate_limits_removed": removed, "expired_purged": purged},
        )
        return removed

    def _close_medium(self) -> None:
        if self._medium is None:
            return
        try:
            self._medium.close()
        except Exception as exc:
            logger.warning(
                "store.close_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )

    async def disconnect(self) -> None:
        """Flush pending analytics and release the medium.

        Afterwards every operation fails soft until init() is called again.
        """
        if not self._connected:
            return

        try:
            if self._batcher is not None:
                await self._batcher.flush()
        except Exception as exc:
            logger.warning(
                "analytics.final_flush_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
        finally:
            self._close_medium()

        self._connected = False
        self._medium = None
        self._store = None
        self._gate = None
        self._limiter = None
        self._batcher = None
        logger.info("store.disconnected")
