"""Rate limiting dependency for FastAPI routes.

This module wires the store facade's sliding-window limiter into the HTTP
layer.

Rate limiting strategy:
- Sliding window per form session (session header).
- If the session header is missing, fall back to client IP.
- The activity gate inside the facade may skip limiting entirely under low
  traffic, and any store failure lets the request through.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from app.api.dependencies import get_store
from app.core.config import settings
from app.core.logging import hash_identifier
from app.services.store_facade import StoreFacade

logger = logging.getLogger(__name__)


def build_rate_limit_identifier(request: Request) -> str:
    """Build the limiter identifier for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Namespaced identifier.
    """

    session_id = request.headers.get(settings.app.session_header)
    if session_id:
        return f"session:{session_id}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(
    request: Request,
    store: Annotated[StoreFacade, Depends(get_store)],
) -> None:
    """FastAPI dependency enforcing the per-session rate limit.

    Raises:
        HTTPException: 429 Too Many Requests when the window is exhausted.
    """

    if not settings.app.rate_limit_enabled:
        return

    identifier = build_rate_limit_identifier(request)
    key_hash = hash_identifier(identifier)
    key_type = identifier.split(":", 1)[0]

    result = await store.check_rate_limit(identifier)
    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_type": key_type,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_type": key_type,
            "key_hash": key_hash,
            "limit": result.limit,
            "remaining": result.remaining,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(result.reset_time)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many submission attempts. Try again later.",
        headers=headers or None,
    )
