"""Factory for backing media selected by configuration."""

from typing import Callable

from app.adapters.store.medium import InMemoryMedium, Medium
from app.adapters.store.sqlite import SqliteMedium
from app.core.config import StoreSettings
from app.core.errors import ValidationAppError


def create_medium_factory(store_settings: StoreSettings) -> Callable[[], Medium]:
    """Return a callable that opens the configured medium.

    Opening is deferred so the store facade decides when the medium is
    acquired (and can report an unavailable medium from init()).

    Raises:
        ValidationAppError: If the backend name is not supported.
    """
    backend = store_settings.backend.lower()

    if backend == "memory":
        return InMemoryMedium

    if backend == "sqlite":
        path = store_settings.sqlite_path
        return lambda: SqliteMedium(path)

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: memory, sqlite",
    )
