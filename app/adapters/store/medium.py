"""Backing media for the TTL store.

A medium is a plain string-to-string mapping with no notion of expiry; the
TTL store owns the envelope format written into it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from app.core.errors import StoreUnavailableError


@runtime_checkable
class Medium(Protocol):
    """Minimal synchronous key-value medium."""

    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def close(self) -> None: ...


class InMemoryMedium:
    """Process-local medium backed by a dict.

    Contents live as long as the instance. After close() every operation
    raises StoreUnavailableError.
    """

    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._closed = False

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryMedium(size={len(self._items)}, closed={self._closed})"

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError(
                code="medium_closed",
                message="In-memory medium has been closed",
                details={"backend": "memory"},
            )

    def get(self, key: str) -> str | None:
        self._ensure_open()
        return self._items.get(key)

    def put(self, key: str, value: str) -> None:
        self._ensure_open()
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._ensure_open()
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        self._ensure_open()
        return list(self._items)

    def close(self) -> None:
        self._items.clear()
        self._closed = True
