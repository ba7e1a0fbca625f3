"""FastAPI dependencies for API routers."""

from fastapi import Request

from timeline.cache.service import CacheService
from timeline.service import TimelineService


def get_timeline_service(request: Request) -> TimelineService:
    """Dependency returning the service built at application startup."""
    return request.app.state.timeline_service


def get_cache(request: Request) -> CacheService:
    """Dependency returning the shared cache service."""
    return request.app.state.cache
