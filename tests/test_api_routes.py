"""HTTP tests for the store-backed routes."""

from __future__ import annotations

import json
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.adapters.store.medium import InMemoryMedium
from app.core.app_factory import create_app
from app.core.config import StoreSettings
from app.core.errors import StoreUnavailableError
from app.services.event_batcher import analytics_batch_key
from app.services.store_facade import StoreFacade


def _facade(clock, **overrides) -> StoreFacade:
    base = {
        "backend": "memory",
        "rate_limit_max": 2,
        "rate_limit_window_seconds": 60,
        "activity_gate_enabled": False,
        "batch_max_size": 2,
    }
    base.update(overrides)
    return StoreFacade(StoreSettings(**base), medium_factory=InMemoryMedium, clock=clock)


@pytest.fixture
def facade(clock) -> StoreFacade:
    return _facade(clock)


@pytest.fixture
def client(facade: StoreFacade) -> Iterator[TestClient]:
    with TestClient(create_app(store=facade)) as test_client:
        yield test_client


def test_health_reports_store_ready(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "store_ready": True}


def test_rate_limit_check_returns_decision(client: TestClient) -> None:
    first = client.post("/v1/rate-limit/check", json={"identifier": "session-1"})
    second = client.post("/v1/rate-limit/check", json={"identifier": "session-1"})
    third = client.post("/v1/rate-limit/check", json={"identifier": "session-1"})

    assert first.status_code == second.status_code == third.status_code == 200
    assert first.json()["remaining"] == 1
    assert second.json()["remaining"] == 0
    assert third.json() == {"allowed": False, "remaining": 0, "reset_time": 1_060_000}


def test_rate_limit_check_rejects_blank_identifier(client: TestClient) -> None:
    resp = client.post("/v1/rate-limit/check", json={"identifier": "   "})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_identifier"


def test_track_event_is_accepted_and_batched(client: TestClient, facade: StoreFacade, clock) -> None:
    for name in ("form_started", "form_submitted"):
        resp = client.post(
            "/v1/events",
            json={"name": name, "data": {"step": 1}},
            headers={"User-Agent": "pytest-agent"},
        )
        assert resp.status_code == 202
        assert resp.json() == {"accepted": True}

    assert facade.pending_events == 0
    assert facade.stats()["failures"] == 0


def test_submission_is_queued(client: TestClient) -> None:
    resp = client.post(
        "/v1/submissions",
        json={"data": {"order_number": "A-1"}},
        headers={"X-Session-ID": "s-1"},
    )

    assert resp.status_code == 202
    body = resp.json()
    assert body["queued"] is True
    assert body["queue_id"]


def test_submission_rate_limited_per_session(client: TestClient) -> None:
    headers = {"X-Session-ID": "s-2"}
    for _ in range(2):
        assert client.post("/v1/submissions", json={"data": {}}, headers=headers).status_code == 202

    resp = client.post("/v1/submissions", json={"data": {}}, headers=headers)

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "60"
    assert resp.headers["X-RateLimit-Limit"] == "2"
    assert resp.headers["X-RateLimit-Remaining"] == "0"
    assert resp.headers["X-RateLimit-Reset"] == "1060000"

    other = client.post("/v1/submissions", json={"data": {}}, headers={"X-Session-ID": "s-3"})
    assert other.status_code == 202


def test_form_state_roundtrip(client: TestClient, clock) -> None:
    put = client.put("/v1/form-state/s-9", json={"state": {"step": 3}})
    assert put.status_code == 200
    assert put.json() == {"stored": True}

    got = client.get("/v1/form-state/s-9")
    assert got.status_code == 200
    assert got.json() == {"state": {"step": 3}}

    clock.advance(61)
    missing = client.get("/v1/form-state/s-9")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "form_state_not_found"


def test_degraded_store_keeps_serving(clock) -> None:
    def _broken() -> InMemoryMedium:
        raise StoreUnavailableError(code="medium_unavailable", message="no medium")

    facade = StoreFacade(
        StoreSettings(backend="memory", rate_limit_max=1, activity_gate_enabled=False),
        medium_factory=_broken,
        clock=clock,
    )

    with TestClient(create_app(store=facade)) as client:
        assert client.get("/health").json() == {"status": "ok", "store_ready": False}

        for _ in range(3):
            resp = client.post(
                "/v1/submissions", json={"data": {}}, headers={"X-Session-ID": "s"}
            )
            assert resp.status_code == 202
            assert resp.json() == {"queued": False, "queue_id": None}

        assert client.post("/v1/events", json={"name": "x"}).status_code == 202


def test_shutdown_flushes_pending_events(clock) -> None:
    medium = InMemoryMedium()
    facade = StoreFacade(
        StoreSettings(backend="memory", batch_max_size=10),
        medium_factory=lambda: medium,
        clock=clock,
    )
    snapshots: list[str | None] = []
    original_close = medium.close

    def _close() -> None:
        snapshots.append(medium.get("store:" + analytics_batch_key(clock())))
        original_close()

    medium.close = _close  # type: ignore[method-assign]

    with TestClient(create_app(store=facade)) as client:
        client.post("/v1/events", json={"name": "form_started"})
        assert facade.pending_events == 1

    assert facade.is_ready is False
    batches = json.loads(json.loads(snapshots[0])["value"])
    assert len(batches) == 1
