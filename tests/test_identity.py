"""Tests for handle to identity resolution."""

from unittest.mock import AsyncMock

import pytest

from timeline.cache import CacheService, MemoryCacheBackend
from timeline.errors import NotFoundError, UpstreamError
from timeline.identity import IdentityResolver
from timeline.upstream.client import UpstreamClient


def user_payload(rest_id: str = "111", screen_name: str = "abc") -> dict:
    """Helper to create a UserByScreenName response."""
    return {
        "data": {
            "user": {
                "result": {
                    "__typename": "User",
                    "rest_id": rest_id,
                    "core": {"screen_name": screen_name, "name": "Abc Def"},
                    "avatar": {"image_url": "https://pbs.example.com/abc.jpg"},
                    "legacy": {"description": "hello", "followers_count": 10},
                }
            }
        }
    }


@pytest.fixture
def cache():
    return CacheService(MemoryCacheBackend(), content_expire=3600, route_expire=300)


@pytest.fixture
def mock_client():
    client = AsyncMock(spec=UpstreamClient)
    client.graphql = AsyncMock(return_value=user_payload())
    return client


@pytest.mark.asyncio
async def test_resolve_screen_name(cache, mock_client):
    resolver = IdentityResolver(cache, mock_client)

    identity = await resolver.resolve("abc")

    assert identity.rest_id == 111
    assert identity.screen_name == "abc"
    assert identity.name == "Abc Def"
    assert identity.profile_image_url == "https://pbs.example.com/abc.jpg"
    assert identity.followers_count == 10

    operation, variables = mock_client.graphql.call_args[0]
    assert operation == "UserByScreenName"
    assert variables["screen_name"] == "abc"


@pytest.mark.asyncio
async def test_resolve_numeric_id_form(cache, mock_client):
    mock_client.graphql.return_value = {
        "data": {"user_result": {"result": {"rest_id": "222", "legacy": {"screen_name": "x"}}}}
    }
    resolver = IdentityResolver(cache, mock_client)

    identity = await resolver.resolve("+222")

    assert identity.rest_id == 222
    assert identity.screen_name == "x"
    operation, variables = mock_client.graphql.call_args[0]
    assert operation == "UserByRestId"
    assert variables["userId"] == "222"


@pytest.mark.asyncio
async def test_second_resolution_is_served_from_cache(cache, mock_client):
    resolver = IdentityResolver(cache, mock_client)

    first = await resolver.resolve("abc")
    second = await resolver.resolve("abc")

    assert first == second
    assert mock_client.graphql.await_count == 1


@pytest.mark.asyncio
async def test_unknown_handle_is_cached_negatively(cache, mock_client):
    mock_client.graphql.return_value = {"data": {}}
    resolver = IdentityResolver(cache, mock_client)

    with pytest.raises(NotFoundError):
        await resolver.resolve("doesnotexist")
    with pytest.raises(NotFoundError):
        await resolver.resolve("doesnotexist")

    assert mock_client.graphql.await_count == 1
    assert await cache.get("twitter-userdata-doesnotexist") == ""


@pytest.mark.asyncio
async def test_negative_entry_uses_content_expire(mock_client):
    backend = AsyncMock()
    backend.get = AsyncMock(return_value=None)
    cache = CacheService(backend, content_expire=1800, route_expire=300)
    mock_client.graphql.return_value = {"data": {"user": {"result": {}}}}
    resolver = IdentityResolver(cache, mock_client)

    with pytest.raises(NotFoundError):
        await resolver.resolve("ghost")

    backend.set.assert_any_await("twitter-userdata-ghost", "", 1800)


@pytest.mark.asyncio
async def test_upstream_failure_is_not_cached(cache, mock_client):
    mock_client.graphql.side_effect = [UpstreamError("HTTP 503", 503), user_payload()]
    resolver = IdentityResolver(cache, mock_client)

    with pytest.raises(UpstreamError):
        await resolver.resolve("abc")

    identity = await resolver.resolve("abc")
    assert identity.rest_id == 111


@pytest.mark.asyncio
async def test_invalidate_forces_new_lookup(cache, mock_client):
    resolver = IdentityResolver(cache, mock_client)

    await resolver.resolve("abc")
    assert await resolver.invalidate("abc") is True
    await resolver.resolve("abc")

    assert mock_client.graphql.await_count == 2


@pytest.mark.asyncio
async def test_corrupt_cached_lookup_is_recomputed(cache, mock_client):
    await cache.set("twitter-userdata-abc", "{not json", ttl=3600)
    resolver = IdentityResolver(cache, mock_client)

    identity = await resolver.resolve("abc")

    assert identity.rest_id == 111
    assert mock_client.graphql.await_count == 1
    assert await resolver.resolve("abc") == identity
    assert mock_client.graphql.await_count == 1


@pytest.mark.asyncio
async def test_negative_hit_does_not_rewrite_sentinel(mock_client):
    backend = AsyncMock()
    backend.get = AsyncMock(return_value="")
    cache = CacheService(backend, content_expire=1800, route_expire=300)
    resolver = IdentityResolver(cache, mock_client)

    with pytest.raises(NotFoundError):
        await resolver.resolve("ghost")

    mock_client.graphql.assert_not_called()
    backend.set.assert_not_called()


@pytest.mark.asyncio
async def test_get_profile_shares_the_cached_lookup(cache, mock_client):
    resolver = IdentityResolver(cache, mock_client)

    identity = await resolver.resolve("abc")
    profile = await resolver.get_profile("abc")

    assert profile == identity
    assert profile.description == "hello"
    assert mock_client.graphql.await_count == 1
