"""API routers for the timeline aggregator."""

from timeline.api.routes_health import router as health_router
from timeline.api.routes_timeline import router as timeline_router

__all__ = [
    "health_router",
    "timeline_router",
]
