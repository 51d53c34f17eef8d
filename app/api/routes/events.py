from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, status

from app.api.dependencies import get_store
from app.schemas.api import TrackEventRequest, TrackEventResponse
from app.services.store_facade import StoreFacade

router = APIRouter(tags=["Analytics"])


@router.post(
    "/events",
    response_model=TrackEventResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def track_event(
    payload: TrackEventRequest,
    store: Annotated[StoreFacade, Depends(get_store)],
    user_agent: Annotated[str | None, Header()] = None,
) -> TrackEventResponse:
    """Buffer an analytics event; it is persisted with the next batch flush."""
    await store.track_event(
        payload.name,
        payload.data,
        client_context={"user_agent": user_agent or "unknown"},
    )
    return TrackEventResponse(accepted=True)
