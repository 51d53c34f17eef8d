"""Unit tests for the store-backed sliding-window rate limiter."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from app.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter, rate_limit_key
from app.adapters.store.ttl_store import KeyValueTTLStore


def _limiter(store, clock, *, limit: int = 3, window_seconds: int = 60) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        store, limit=limit, window_seconds=window_seconds, clock=clock
    )


@pytest.mark.asyncio
async def test_worked_example(store: KeyValueTTLStore, clock) -> None:
    """limit=3, window=60: t=0,10,20 admitted, t=30 rejected, t=61 admitted."""
    clock.set(0)
    limiter = _limiter(store, clock)

    remaining = []
    for t in (0, 10, 20):
        clock.set(t)
        result = await limiter.check("user")
        assert result.allowed is True
        remaining.append(result.remaining)
    assert remaining == [2, 1, 0]

    clock.set(30)
    blocked = await limiter.check("user")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_time == 60_000
    assert blocked.retry_after_seconds == 30

    clock.set(61)
    result = await limiter.check("user")
    assert result.allowed is True
    assert result.remaining == 0
    assert result.reset_time == 121_000


@pytest.mark.asyncio
async def test_request_after_limit_is_rejected_until_reset(store: KeyValueTTLStore, clock) -> None:
    limiter = _limiter(store, clock, limit=2, window_seconds=10)

    assert (await limiter.check("k")).allowed is True
    assert (await limiter.check("k")).allowed is True

    blocked = await limiter.check("k")
    assert blocked.allowed is False

    clock.set(blocked.reset_time / 1000 + 0.001)
    assert (await limiter.check("k")).allowed is True


@pytest.mark.asyncio
async def test_timestamp_on_window_edge_is_excluded(store: KeyValueTTLStore, clock) -> None:
    clock.set(100)
    limiter = _limiter(store, clock, limit=1, window_seconds=10)

    assert (await limiter.check("k")).allowed is True
    clock.set(109.999)
    assert (await limiter.check("k")).allowed is False

    # Exactly window_seconds later the first request falls out of the window.
    clock.set(110)
    assert (await limiter.check("k")).allowed is True


@pytest.mark.asyncio
async def test_rejected_requests_are_not_recorded(store: KeyValueTTLStore, clock) -> None:
    limiter = _limiter(store, clock, limit=1, window_seconds=60)

    await limiter.check("k")
    await limiter.check("k")
    await limiter.check("k")

    record = json.loads(await store.get(rate_limit_key("k")))
    assert len(record["requests"]) == 1


@pytest.mark.asyncio
async def test_stale_timestamps_are_dropped_on_write(store: KeyValueTTLStore, clock) -> None:
    clock.set(0)
    limiter = _limiter(store, clock, limit=5, window_seconds=60)
    await limiter.check("k")
    clock.set(30)
    await limiter.check("k")

    clock.set(70)
    result = await limiter.check("k")

    record = json.loads(await store.get(rate_limit_key("k")))
    assert record["requests"] == [30_000, 70_000]
    assert record["window"] == 70_000
    assert result.remaining == 3


@pytest.mark.asyncio
async def test_record_expires_with_window_ttl(store: KeyValueTTLStore, clock) -> None:
    limiter = _limiter(store, clock, limit=1, window_seconds=10)
    await limiter.check("k")

    clock.advance(11)

    assert await store.get(rate_limit_key("k")) is None


@pytest.mark.asyncio
async def test_isolated_by_identifier(store: KeyValueTTLStore, clock) -> None:
    limiter = _limiter(store, clock, limit=1)

    assert (await limiter.check("k1")).allowed is True
    assert (await limiter.check("k1")).allowed is False
    assert (await limiter.check("k2")).allowed is True


@pytest.mark.asyncio
async def test_corrupt_record_is_replaced(store: KeyValueTTLStore, clock) -> None:
    await store.set(rate_limit_key("k"), "garbage")
    limiter = _limiter(store, clock, limit=2)

    result = await limiter.check("k")

    assert result.allowed is True
    assert result.remaining == 1


@pytest.mark.asyncio
async def test_failed_persist_fails_open(clock) -> None:
    store = AsyncMock()
    store.get.return_value = None
    store.set.return_value = False
    limiter = _limiter(store, clock, limit=3)

    result = await limiter.check("k")

    assert result.allowed is True
    assert result.remaining == 3
    assert result.reset_time == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(store: KeyValueTTLStore, kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(store, **kwargs)


@pytest.mark.asyncio
async def test_empty_identifier_rejected(store: KeyValueTTLStore) -> None:
    limiter = SlidingWindowRateLimiter(store, limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        await limiter.check("")
