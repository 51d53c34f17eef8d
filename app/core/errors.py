"""Application-level exception types.

Store components never let these escape to the form collaborator: media
raise them, the TTL store catches them at its boundary and downgrades the
operation to a failure value. The HTTP layer uses the rest for consistent
error responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    backend: str
    http_status: int
    retry_after: float
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class NotFoundAppError(AppError):
    """Raised when a requested record does not exist or has expired."""


class StoreUnavailableError(AppError):
    """Raised by a backing medium that cannot be opened or was closed."""
