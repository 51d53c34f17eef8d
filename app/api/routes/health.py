from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_store
from app.schemas.api import HealthResponse
from app.services.store_facade import StoreFacade

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check(store: Annotated[StoreFacade, Depends(get_store)]) -> HealthResponse:
    """Health check endpoint.

    The service stays "ok" even when the store is unavailable, because every
    store operation degrades to a no-op rather than failing requests.

    Returns:
        HealthResponse: Status plus whether the backing medium is connected.
    """

    return HealthResponse(status="ok", store_ready=store.is_ready)
