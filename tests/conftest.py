"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before anything imports the settings module.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("STORE_CLEANUP_INTERVAL_SECONDS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from app.adapters.store.medium import InMemoryMedium
from app.adapters.store.ttl_store import KeyValueTTLStore


class FakeClock:
    """Deterministic clock returning UNIX seconds, advanced manually."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    def set(self, seconds: float) -> None:
        self.current = seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def medium() -> InMemoryMedium:
    return InMemoryMedium()


@pytest.fixture
def store(medium: InMemoryMedium, clock: FakeClock) -> KeyValueTTLStore:
    return KeyValueTTLStore(medium, key_prefix="store:", clock=clock)
