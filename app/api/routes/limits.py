from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_store
from app.core.errors import ValidationAppError
from app.schemas.api import RateLimitCheckRequest, RateLimitCheckResponse
from app.services.store_facade import StoreFacade

router = APIRouter(tags=["Rate limit"])


@router.post("/rate-limit/check", response_model=RateLimitCheckResponse)
async def check_rate_limit(
    payload: RateLimitCheckRequest,
    store: Annotated[StoreFacade, Depends(get_store)],
) -> RateLimitCheckResponse:
    """Check and record one submission attempt for an identifier.

    Always answers 200; the caller decides what to do with a rejection.

    Raises:
        ValidationAppError: If the identifier is blank.
    """
    identifier = payload.identifier.strip()
    if not identifier:
        raise ValidationAppError(
            code="invalid_identifier",
            message="identifier must not be blank",
        )

    result = await store.check_rate_limit(identifier)
    return RateLimitCheckResponse(**result.as_dict())
