"""Key-value TTL store over a backing medium.

Every key is written to the medium as a JSON envelope holding the value and
its absolute expiry. Expired entries are purged lazily when touched, or in
bulk by purge_expired().

Errors from the medium or from decoding an envelope never leave this class:
they are logged and the operation reports failure through its return value.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from pydantic import TypeAdapter, ValidationError

from app.adapters.store.base import AbstractTTLStore
from app.adapters.store.medium import Medium
from app.core.logging import hash_identifier
from app.schemas.records import StoreEntry

logger = logging.getLogger(__name__)

_string_list = TypeAdapter(list[str])


def compile_key_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a glob with `*` as the only wildcard into an anchored regex."""
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


class KeyValueTTLStore(AbstractTTLStore):
    """TTL store writing namespaced envelopes into a Medium.

    Attributes:
        key_prefix: Namespace prepended to every key in the medium.
    """

    def __init__(
        self,
        medium: Medium,
        *,
        key_prefix: str = "store:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._medium = medium
        self.key_prefix = key_prefix
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._failures = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"KeyValueTTLStore(key_prefix={self.key_prefix!r}, hits={self._hits}, "
            f"misses={self._misses}, expirations={self._expirations}, "
            f"failures={self._failures})"
        )

    def _now_ms(self) -> int:
        return int(round(self._clock() * 1000))

    def _medium_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _log_failure(self, operation: str, key: str, exc: Exception) -> None:
        self._failures += 1
        logger.error(
            f"store.{operation}_failed",
            extra={
                "key_hash": hash_identifier(key),
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )

    def _read_entry(self, key: str) -> StoreEntry | None:
        """Load a live entry, purging it when expired or undecodable."""
        medium_key = self._medium_key(key)
        raw = self._medium.get(medium_key)
        if raw is None:
            return None

        try:
            entry = StoreEntry.model_validate_json(raw)
        except ValidationError:
            self._medium.remove(medium_key)
            logger.warning("store.entry_corrupt", extra={"key_hash": hash_identifier(key)})
            return None

        if entry.is_expired(self._now_ms()):
            self._medium.remove(medium_key)
            self._expirations += 1
            logger.debug("store.entry_expired", extra={"key_hash": hash_identifier(key)})
            return None

        return entry

    def _write_entry(self, key: str, entry: StoreEntry) -> None:
        self._medium.put(self._medium_key(key), entry.model_dump_json())

    async def get(self, key: str) -> str | None:
        try:
            entry = self._read_entry(key)
        except Exception as exc:
            self._log_failure("get", key, exc)
            return None

        if entry is None:
            self._misses += 1
            return None

        self._hits += 1
        return entry.value

    async def set(self, key: str, value: str, ttl_seconds: float | None = None) -> bool:
        expires = self._now_ms() + int(ttl_seconds * 1000) if ttl_seconds else None
        try:
            self._write_entry(key, StoreEntry(value=value, expires=expires))
        except Exception as exc:
            self._log_failure("set", key, exc)
            return False
        return True

    async def append(self, key: str, item: str) -> int | None:
        try:
            entry = self._read_entry(key)
            items: list[str] = []
            if entry is not None:
                try:
                    items = _string_list.validate_json(entry.value)
                except ValidationError:
                    logger.warning(
                        "store.list_corrupt", extra={"key_hash": hash_identifier(key)}
                    )
            items.insert(0, item)
            self._write_entry(key, StoreEntry(value=_string_list.dump_json(items).decode()))
        except Exception as exc:
            self._log_failure("append", key, exc)
            return None
        return len(items)

    async def expire(self, key: str, ttl_seconds: float) -> bool:
        try:
            entry = self._read_entry(key)
            if entry is None:
                return False
            entry.expires = self._now_ms() + int(ttl_seconds * 1000)
            self._write_entry(key, entry)
        except Exception as exc:
            self._log_failure("expire", key, exc)
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            self._medium.remove(self._medium_key(key))
        except Exception as exc:
            self._log_failure("delete", key, exc)
            return False
        return True

    async def keys_matching(self, pattern: str) -> list[str]:
        regex = compile_key_pattern(pattern)
        prefix_len = len(self.key_prefix)
        try:
            medium_keys = self._medium.keys()
        except Exception as exc:
            self._log_failure("keys", pattern, exc)
            return []
        return [
            k[prefix_len:]
            for k in medium_keys
            if k.startswith(self.key_prefix) and regex.match(k[prefix_len:])
        ]

    async def purge_expired(self) -> int:
        """Physically remove every expired or undecodable entry.

        Returns:
            Number of entries removed.
        """
        removed = 0
        for key in await self.keys_matching("*"):
            try:
                medium_key = self._medium_key(key)
                if self._medium.get(medium_key) is not None and self._read_entry(key) is None:
                    removed += 1
            except Exception as exc:
                self._log_failure("purge", key, exc)
        if removed:
            logger.info("store.purged", extra={"removed": removed})
        return removed

    def stats(self) -> dict[str, int]:
        """Return lightweight store counters without exposing values."""
        return {
            "hits": self._hits,
            "misses": self._misses,
            "expirations": self._expirations,
            "failures": self._failures,
        }
