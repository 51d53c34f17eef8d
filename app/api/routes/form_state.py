from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_store
from app.core.errors import NotFoundAppError
from app.schemas.api import FormStateRequest, FormStateResponse, FormStateStoredResponse
from app.services.store_facade import StoreFacade

router = APIRouter(tags=["Form state"])


@router.put("/form-state/{session_id}", response_model=FormStateStoredResponse)
async def save_form_state(
    session_id: str,
    payload: FormStateRequest,
    store: Annotated[StoreFacade, Depends(get_store)],
) -> FormStateStoredResponse:
    """Cache partially filled form state for a short TTL."""
    stored = await store.cache_form_state(session_id, payload.state)
    return FormStateStoredResponse(stored=stored)


@router.get("/form-state/{session_id}", response_model=FormStateResponse)
async def load_form_state(
    session_id: str,
    store: Annotated[StoreFacade, Depends(get_store)],
) -> FormStateResponse:
    """Return cached form state.

    Raises:
        NotFoundAppError: If nothing is cached or the entry has expired.
    """
    state = await store.load_form_state(session_id)
    if state is None:
        raise NotFoundAppError(
            code="form_state_not_found",
            message="No cached form state for this session",
        )
    return FormStateResponse(state=state)
