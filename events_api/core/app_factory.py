"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build an isolated app with their own settings, registry and clock.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from events_api.adapters.rate_limit import ClientRegistry, RegistrySweeper
from events_api.api.routes import events_router, health_router
from events_api.core.config import Settings, settings as default_settings
from events_api.core.exception_handlers import setup_exception_handlers
from events_api.core.logging import configure_logging
from events_api.core.middleware import install_middleware
from events_api.core.rate_limit import AdmissionGate
from events_api.services.event_store import EventStore

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    *,
    registry: ClientRegistry | None = None,
    event_store: EventStore | None = None,
    clock: Callable[[], float] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the process-wide settings.
        registry: Client registry for the rate limiter; built from settings if omitted.
        event_store: Event store; a fresh empty one if omitted.
        clock: Monotonic clock for a registry built here.

    Returns:
        Configured app. The registry sweeper runs for the app's lifespan.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    limiter_cfg = cfg.limiter
    if registry is None:
        registry = ClientRegistry(
            rps=limiter_cfg.rps,
            burst=limiter_cfg.burst,
            clock=clock or time.monotonic,
        )
    sweeper = RegistrySweeper(
        registry,
        interval=limiter_cfg.sweep_interval_seconds,
        idle_threshold=limiter_cfg.idle_threshold_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "server.starting",
            extra={
                "env": cfg.app.env,
                "version": cfg.app.version,
                "rate_limit_enabled": limiter_cfg.enabled,
            },
        )
        if limiter_cfg.enabled:
            sweeper.start()
        try:
            yield
        finally:
            sweeper.stop()
            logger.info("server.stopped")

    app = FastAPI(
        title="Events API",
        description=(
            "CRUD API over calendar events with per-client token bucket rate "
            "limiting. Errors use the envelope {\"error\": <message>}."
        ),
        version=cfg.app.version,
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.registry = registry
    app.state.sweeper = sweeper
    app.state.event_store = event_store if event_store is not None else EventStore()

    install_middleware(
        app,
        gate=AdmissionGate(registry, enabled=limiter_cfg.enabled),
        trusted_origins=cfg.cors.origins,
        max_body_bytes=cfg.app.max_body_bytes,
        request_id_header=cfg.log.request_id_header,
    )

    setup_exception_handlers(app)

    app.include_router(health_router, prefix="/v1")
    app.include_router(events_router, prefix="/v1")

    return app
