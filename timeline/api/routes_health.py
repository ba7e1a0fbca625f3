"""Health check endpoints for the timeline aggregator API."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from timeline.api.dependencies import get_cache
from timeline.cache.service import CacheService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    """
    Health check endpoint.

    Returns:
        A simple status object indicating the service is healthy
    """
    return {"ok": True}


@router.get("/readyz")
async def readiness_check(cache: CacheService = Depends(get_cache)):
    """
    Readiness check endpoint.

    Returns:
        A status object once the cache backend answers

    Raises:
        HTTPException: 503 if the cache backend is unreachable
    """
    try:
        await cache.backend.ping()
    except Exception as e:
        logger.warning(f"Cache backend not ready: {e}")
        raise HTTPException(status_code=503, detail="Cache backend unavailable")
    return {"ok": True}
