from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_store
from app.core.rate_limit import enforce_rate_limit
from app.schemas.api import SubmissionRequest, SubmissionResponse
from app.services.store_facade import StoreFacade

router = APIRouter(tags=["Submissions"])


@router.post(
    "/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(enforce_rate_limit)],
)
async def queue_submission(
    payload: SubmissionRequest,
    store: Annotated[StoreFacade, Depends(get_store)],
) -> SubmissionResponse:
    """Queue a refund form submission for downstream processing.

    Returns:
        SubmissionResponse: queued=False means the queue was unavailable and
            the caller should hand the submission off directly.
    """
    queue_id = await store.queue_submission(payload.data)
    return SubmissionResponse(queued=queue_id is not None, queue_id=queue_id)
