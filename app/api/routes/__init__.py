from __future__ import annotations

from app.api.routes.events import router as events_router
from app.api.routes.form_state import router as form_state_router
from app.api.routes.health import router as health_router
from app.api.routes.limits import router as limits_router
from app.api.routes.submissions import router as submissions_router

__all__ = [
    "events_router",
    "form_state_router",
    "health_router",
    "limits_router",
    "submissions_router",
]
