from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (lifespan, middleware, handlers, routers) so
tests can build an app around their own store facade.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.api.routes import (
    events_router,
    form_state_router,
    health_router,
    limits_router,
    submissions_router,
)
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.services.store_facade import StoreFacade

logger = logging.getLogger(__name__)


async def run_periodic_cleanup(store: StoreFacade, interval_seconds: float) -> None:
    """Call store.cleanup() every interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        await store.cleanup()


def create_app(store: StoreFacade | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Store facade to serve; one is built from settings if omitted.
            The app lifespan initializes it on startup and disconnects it on
            shutdown.

    Returns:
        Configured FastAPI app with lifespan, middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    facade = store or StoreFacade(settings.store)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with facade:
            if not facade.is_ready:
                logger.warning("store.degraded", extra={"backend": settings.store.backend})

            cleanup_task: asyncio.Task[None] | None = None
            interval = settings.store.cleanup_interval_seconds
            if interval > 0 and facade.is_ready:
                cleanup_task = asyncio.create_task(run_periodic_cleanup(facade, interval))
            try:
                yield
            finally:
                if cleanup_task is not None:
                    cleanup_task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await cleanup_task

    app = FastAPI(
        title="Refund Intake Session Store",
        description=(
            "Session-scoped rate limiting, batched analytics and submission "
            "queueing for the refund-intake form."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = facade

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(limits_router, prefix="/v1")
    app.include_router(events_router, prefix="/v1")
    app.include_router(submissions_router, prefix="/v1")
    app.include_router(form_state_router, prefix="/v1")
    app.include_router(health_router)

    return app
