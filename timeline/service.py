"""Timeline service: the read operations exposed to the outer layer."""

from typing import Any

from timeline.cache.service import CacheService
from timeline.config import Settings
from timeline.feed.aggregator import (
    AGGREGATED_SOURCES,
    DEFAULT_RECOVERY_POLICIES,
    TimelineAggregator,
)
from timeline.identity import IdentityResolver
from timeline.sources.adapters import SourceAdapter, build_sources
from timeline.sources.cache import SourceResultCache
from timeline.sources.models import Identity, RawItem
from timeline.sources.pagination import PaginationWalker
from timeline.upstream.client import UpstreamClient


class TimelineService:
    """Wires the resolver, sources, caches and aggregator together.

    User-scoped reads go through the identity resolver and the per-source
    result cache. Search, list and home timelines are fetched uncached.
    """

    def __init__(
        self,
        cache: CacheService,
        client: UpstreamClient,
        settings: Settings,
        sources: dict[str, SourceAdapter] | None = None,
    ):
        self.cache = cache
        self.resolver = IdentityResolver(cache, client)
        self.walker = PaginationWalker(max_pages=settings.max_pages)
        self.source_cache = SourceResultCache(cache)
        self.sources = sources if sources is not None else build_sources(client)
        self.aggregator = TimelineAggregator(
            cache,
            self.source_cache,
            self.walker,
            [self.sources[name] for name in AGGREGATED_SOURCES],
            policies=DEFAULT_RECOVERY_POLICIES,
            page_size=settings.page_size,
            timeout=settings.aggregate_timeout,
        )

    async def get_user(self, handle: str) -> Identity:
        return await self.resolver.get_profile(handle)

    async def get_user_tweets(
        self, handle: str, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        """Merged timeline of tweets, media and self-replies for a user."""
        identity = await self.resolver.resolve(handle)
        return await self.aggregator.aggregate(identity, params)

    async def _cached(
        self, name: str, subject_id: int | str, params: dict[str, Any] | None
    ) -> list[RawItem]:
        source = self.sources[name]
        return await self.source_cache.fetch(
            subject_id,
            name,
            params,
            lambda: source.collect(self.walker, subject_id, params),
        )

    async def _user_source(
        self, name: str, handle: str, params: dict[str, Any] | None
    ) -> list[RawItem]:
        identity = await self.resolver.resolve(handle)
        return await self._cached(name, identity.rest_id, params)

    async def get_user_tweets_and_replies(
        self, handle: str, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        return await self._user_source("replies", handle, params)

    async def get_user_media(
        self, handle: str, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        return await self._user_source("media", handle, params)

    async def get_user_likes(
        self, handle: str, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        return await self._user_source("likes", handle, params)

    async def get_user_tweet(
        self, tweet_id: str, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        """A tweet together with its conversation thread."""
        return await self._cached("tweet", tweet_id, params)

    async def get_search(
        self, keywords: str, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        return await self.sources["search"].collect(
            self.walker, None, {**(params or {}), "rawQuery": keywords}
        )

    async def get_list(
        self, list_id: str, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        return await self.sources["list"].collect(self.walker, list_id, params)

    async def get_home_timeline(self, params: dict[str, Any] | None = None) -> list[RawItem]:
        return await self.sources["home"].collect(self.walker, None, params)

    async def get_home_latest_timeline(
        self, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        return await self.sources["home_latest"].collect(self.walker, None, params)
