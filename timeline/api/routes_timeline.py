"""Timeline endpoints for the timeline aggregator API."""

import asyncio
import re
from collections.abc import Awaitable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from timeline.api.dependencies import get_timeline_service
from timeline.errors import NotFoundError, TimelineError
from timeline.service import TimelineService
from timeline.sources.models import RawItem

# Screen names are 1-15 word characters; numeric ids use a leading "+"
HANDLE_PATTERN = re.compile(r"^(\w{1,15}|\+\d{1,20})$")
NUMERIC_ID_PATTERN = re.compile(r"^\d{1,20}$")

router = APIRouter(prefix="/api", tags=["timeline"])
limiter = Limiter(key_func=get_remote_address)


def _check_handle(handle: str) -> None:
    if not HANDLE_PATTERN.match(handle):
        raise HTTPException(status_code=400, detail="Invalid handle format")


def _check_numeric(value: str, name: str) -> None:
    if not NUMERIC_ID_PATTERN.match(value):
        raise HTTPException(status_code=400, detail=f"Invalid {name} format")


def _params(count: int | None) -> dict[str, Any]:
    return {"count": count} if count is not None else {}


async def _items(call: Awaitable[list[RawItem]]) -> dict:
    """Await a service call and shape its items as a JSON response."""
    try:
        items = await call
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except asyncio.TimeoutError:
        raise HTTPException(status_code=504, detail="Upstream timed out")
    except TimelineError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {"items": [item.model_dump(mode="json") for item in items]}


@router.get("/users/{handle}")
@limiter.limit("120/minute")
async def get_user(
    request: Request,
    handle: str,
    service: TimelineService = Depends(get_timeline_service),
):
    """Profile of a user, resolved from a screen name or ``+<id>``."""
    _check_handle(handle)
    try:
        identity = await service.get_user(handle)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TimelineError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return identity.model_dump(mode="json")


@router.get("/users/{handle}/tweets")
@limiter.limit("120/minute")
async def get_user_tweets(
    request: Request,
    handle: str,
    service: TimelineService = Depends(get_timeline_service),
):
    """
    Merged timeline of a user.

    Combines the user's tweets, media and self-replies with the items
    accumulated by earlier requests. Sources that fail upstream are left
    out rather than failing the request.

    The page size of the underlying sources is fixed, so no ``count``
    parameter is taken.

    Returns:
        JSON response with ``items``, newest first
    """
    _check_handle(handle)
    return await _items(service.get_user_tweets(handle))


@router.get("/users/{handle}/replies")
@limiter.limit("120/minute")
async def get_user_replies(
    request: Request,
    handle: str,
    service: TimelineService = Depends(get_timeline_service),
):
    _check_handle(handle)
    return await _items(service.get_user_tweets_and_replies(handle))


@router.get("/users/{handle}/media")
@limiter.limit("120/minute")
async def get_user_media(
    request: Request,
    handle: str,
    service: TimelineService = Depends(get_timeline_service),
):
    _check_handle(handle)
    return await _items(service.get_user_media(handle))


@router.get("/users/{handle}/likes")
@limiter.limit("120/minute")
async def get_user_likes(
    request: Request,
    handle: str,
    count: int | None = Query(default=None, ge=1, le=100),
    service: TimelineService = Depends(get_timeline_service),
):
    _check_handle(handle)
    return await _items(service.get_user_likes(handle, _params(count)))


@router.get("/tweets/{tweet_id}")
@limiter.limit("120/minute")
async def get_tweet(
    request: Request,
    tweet_id: str,
    service: TimelineService = Depends(get_timeline_service),
):
    """A tweet and its conversation thread."""
    _check_numeric(tweet_id, "tweet_id")
    return await _items(service.get_user_tweet(tweet_id))


@router.get("/search")
@limiter.limit("60/minute")
async def search(
    request: Request,
    q: str = Query(min_length=1, max_length=500, description="Search query"),
    service: TimelineService = Depends(get_timeline_service),
):
    return await _items(service.get_search(q))


@router.get("/lists/{list_id}")
@limiter.limit("120/minute")
async def get_list(
    request: Request,
    list_id: str,
    service: TimelineService = Depends(get_timeline_service),
):
    _check_numeric(list_id, "list_id")
    return await _items(service.get_list(list_id))


@router.get("/home")
@limiter.limit("60/minute")
async def get_home(
    request: Request,
    service: TimelineService = Depends(get_timeline_service),
):
    return await _items(service.get_home_timeline())


@router.get("/home/latest")
@limiter.limit("60/minute")
async def get_home_latest(
    request: Request,
    service: TimelineService = Depends(get_timeline_service),
):
    return await _items(service.get_home_latest_timeline())
