"""Timeline Aggregator - Main application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from timeline.api import health_router, timeline_router
from timeline.cache import CacheService, get_cache_backend
from timeline.config import get_settings
from timeline.logging import setup_logging
from timeline.service import TimelineService
from timeline.upstream import UpstreamClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the cache and timeline service on startup, close them on shutdown."""
    settings = get_settings()
    setup_logging()

    cache = CacheService(
        get_cache_backend(settings),
        content_expire=settings.cache_content_expire,
        route_expire=settings.cache_route_expire,
    )
    app.state.cache = cache
    app.state.timeline_service = TimelineService(cache, UpstreamClient(settings), settings)

    yield

    await cache.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Timeline Aggregator",
        description="Merged, cached account timelines from several upstream sources",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure rate limiting
    limiter = Limiter(key_func=get_remote_address)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    app.include_router(health_router)
    app.include_router(timeline_router)

    return app


app = create_app()


def main():
    """Entry point for running the application."""
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
