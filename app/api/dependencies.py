"""FastAPI dependencies shared by routes."""

from __future__ import annotations

from fastapi import Request

from app.services.store_facade import StoreFacade


def get_store(request: Request) -> StoreFacade:
    """Return the store facade owned by the application lifespan."""
    return request.app.state.store
