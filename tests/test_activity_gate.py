"""Unit tests for the activity gate."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from app.adapters.store.ttl_store import KeyValueTTLStore
from app.services.activity_gate import ACTIVE_SESSIONS_KEY, ActivityGate


@pytest.mark.asyncio
async def test_gate_opens_on_third_check(store: KeyValueTTLStore) -> None:
    gate = ActivityGate(store)

    assert await gate.should_limit() is False  # count was 0
    assert await gate.should_limit() is False  # count was 1
    assert await gate.should_limit() is True  # count was 2
    assert await store.get(ACTIVE_SESSIONS_KEY) == "3"


@pytest.mark.asyncio
@pytest.mark.parametrize("preset,expected", [("0", False), ("1", False), ("2", True), ("7", True)])
async def test_threshold_uses_pre_increment_count(
    store: KeyValueTTLStore, preset: str, expected: bool
) -> None:
    await store.set(ACTIVE_SESSIONS_KEY, preset, 300)
    gate = ActivityGate(store, threshold=2)

    assert await gate.should_limit() is expected
    assert await store.get(ACTIVE_SESSIONS_KEY) == str(int(preset) + 1)


@pytest.mark.asyncio
async def test_counter_lapses_after_ttl(store: KeyValueTTLStore, clock) -> None:
    gate = ActivityGate(store, ttl_seconds=300)
    for _ in range(3):
        await gate.should_limit()

    clock.advance(301)

    assert await gate.should_limit() is False
    assert await store.get(ACTIVE_SESSIONS_KEY) == "1"


@pytest.mark.asyncio
async def test_each_check_renews_counter_ttl(store: KeyValueTTLStore, clock) -> None:
    gate = ActivityGate(store, ttl_seconds=300)
    await gate.should_limit()

    clock.advance(200)
    await gate.should_limit()
    clock.advance(200)

    assert await store.get(ACTIVE_SESSIONS_KEY) == "2"


@pytest.mark.asyncio
async def test_unparsable_counter_counts_as_zero(store: KeyValueTTLStore) -> None:
    await store.set(ACTIVE_SESSIONS_KEY, "lots")
    gate = ActivityGate(store)

    assert await gate.should_limit() is False
    assert await store.get(ACTIVE_SESSIONS_KEY) == "1"


@pytest.mark.asyncio
async def test_store_error_keeps_gate_closed() -> None:
    store = AsyncMock()
    store.get.side_effect = RuntimeError("boom")
    gate = ActivityGate(store, threshold=0)

    assert await gate.should_limit() is False
