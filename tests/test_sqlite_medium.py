"""Tests for the SQLite backing medium."""

from __future__ import annotations

from pathlib import Path

import pytest

from app.adapters.store.sqlite import SqliteMedium
from app.adapters.store.ttl_store import KeyValueTTLStore
from app.core.errors import StoreUnavailableError


def test_put_get_remove_roundtrip(tmp_path: Path) -> None:
    medium = SqliteMedium(str(tmp_path / "store.db"))

    medium.put("a", "1")
    medium.put("a", "2")
    medium.put("b", "3")

    assert medium.get("a") == "2"
    assert sorted(medium.keys()) == ["a", "b"]

    medium.remove("a")
    assert medium.get("a") is None
    medium.close()


def test_contents_survive_reopen(tmp_path: Path) -> None:
    path = str(tmp_path / "nested" / "store.db")
    first = SqliteMedium(path)
    first.put("rate_limit:x", "{}")
    first.close()

    second = SqliteMedium(path)
    assert second.get("rate_limit:x") == "{}"
    second.close()


def test_operations_after_close_raise(tmp_path: Path) -> None:
    medium = SqliteMedium(str(tmp_path / "store.db"))
    medium.close()

    with pytest.raises(StoreUnavailableError):
        medium.get("a")


def test_unopenable_path_raises_unavailable(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file")

    with pytest.raises(StoreUnavailableError) as exc_info:
        SqliteMedium(str(blocker / "store.db"))

    assert exc_info.value.code == "medium_unavailable"


@pytest.mark.asyncio
async def test_ttl_store_over_sqlite(tmp_path: Path, clock) -> None:
    medium = SqliteMedium(str(tmp_path / "store.db"))
    store = KeyValueTTLStore(medium, clock=clock)

    await store.set("k", "v", ttl_seconds=1)
    assert await store.append("list", "item") == 1
    assert await store.get("k") == "v"

    clock.advance(2)
    assert await store.get("k") is None
    assert await store.keys_matching("*") == ["list"]
    medium.close()
