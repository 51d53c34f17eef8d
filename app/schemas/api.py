"""Pydantic schemas for the HTTP API."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class RateLimitCheckRequest(BaseModel):
    identifier: str = Field(
        ..., min_length=1, description="Session or user identifier to check."
    )


class RateLimitCheckResponse(BaseModel):
    """Admission decision for one submission attempt."""

    allowed: bool
    remaining: int = Field(..., description="Requests left in the current window.")
    reset_time: int = Field(
        ..., description="Epoch milliseconds when capacity frees up (0 if not limited)."
    )


class TrackEventRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Event name, e.g. 'form_started'.")
    data: Dict[str, Any] = Field(default_factory=dict)


class TrackEventResponse(BaseModel):
    accepted: bool = True


class SubmissionRequest(BaseModel):
    data: Dict[str, Any] = Field(..., description="Sanitized refund form fields.")


class SubmissionResponse(BaseModel):
    queued: bool = Field(
        ..., description="False when the queue is unavailable; process immediately."
    )
    queue_id: str | None = None


class FormStateRequest(BaseModel):
    state: Dict[str, Any]


class FormStateResponse(BaseModel):
    state: Dict[str, Any]


class FormStateStoredResponse(BaseModel):
    stored: bool


class HealthResponse(BaseModel):
    status: str = "ok"
    store_ready: bool
