from __future__ import annotations

from events_api.api.routes.events import router as events_router
from events_api.api.routes.health import router as health_router

__all__ = ["events_router", "health_router"]
