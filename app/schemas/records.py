"""Pydantic models for records persisted in the TTL store.

Each model round-trips through JSON strings because the backing medium only
holds strings. Decoding failures are serialization faults: callers treat the
record as absent.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class StoreEntry(BaseModel):
    """Envelope written to the medium for every key."""

    value: str
    expires: int | None = Field(
        default=None,
        description="Absolute expiry in epoch milliseconds (None = no expiry).",
    )

    def is_expired(self, now_ms: int) -> bool:
        return self.expires is not None and now_ms > self.expires


class RateWindowRecord(BaseModel):
    """Admitted request timestamps for one identifier."""

    requests: List[int] = Field(
        default_factory=list,
        description="Epoch-ms timestamps of admitted requests, oldest first.",
    )
    window: int = Field(
        ..., description="Epoch-ms of the most recent admission (activity marker)."
    )


class AnalyticsEvent(BaseModel):
    timestamp: int
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)
    client_context: Dict[str, Any] = Field(default_factory=dict)


class AnalyticsBatch(BaseModel):
    """One aggregated write of buffered analytics events."""

    batch_id: int
    events: List[AnalyticsEvent]


class QueuedSubmission(BaseModel):
    """Form submission handed off to downstream processing."""

    id: str
    timestamp: int
    data: Dict[str, Any]
    status: Literal["pending"] = "pending"
