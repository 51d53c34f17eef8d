"""TTL store interface.

Services depend on this abstraction so the medium underneath (in-process
dict, SQLite file, or an external cache later) can change freely.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractTTLStore(ABC):
    """String key to string value store with per-key expiry.

    Implementations never raise from these methods: failures are logged and
    reported through the return value.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value, or None if absent, expired or unreadable."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> bool:
        """Store value, expiring after ttl_seconds when given.

        Returns:
            True on success, False if the write failed.
        """
        raise NotImplementedError

    @abstractmethod
    async def append(self, key: str, item: str) -> int | None:
        """Prepend item to the list stored at key.

        Returns:
            New list length, or None if the operation failed.
        """
        raise NotImplementedError

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: float) -> bool:
        """Reset the expiry of an existing key. False if the key is absent."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def keys_matching(self, pattern: str) -> list[str]:
        """List keys matching a glob where `*` is the only wildcard."""
        raise NotImplementedError
