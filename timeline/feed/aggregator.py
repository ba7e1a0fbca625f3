"""Timeline aggregator: fan out to sources, merge, and accumulate."""

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from timeline.cache.service import CacheService
from timeline.errors import CacheCorruptionError, RecoveryPolicy
from timeline.sources.adapters import SourceAdapter
from timeline.sources.cache import SourceResultCache
from timeline.sources.models import Identity, RawItem
from timeline.sources.pagination import PaginationWalker

logger = logging.getLogger(__name__)

# Sources merged into a user's timeline, in merge order
AGGREGATED_SOURCES = ("tweets", "media", "replies")

# The replies endpoint is unstable upstream and is allowed to fail quietly
DEFAULT_RECOVERY_POLICIES: dict[str, RecoveryPolicy] = {
    "tweets": RecoveryPolicy.ISOLATE,
    "media": RecoveryPolicy.ISOLATE,
    "replies": RecoveryPolicy.BEST_EFFORT,
}


def accumulation_key(rest_id: int) -> str:
    """Generate the cache key of an account's last merged timeline."""
    return f"twitter:user:tweets-cache:{rest_id}"


def merge_timeline(
    stored: Sequence[RawItem],
    fresh: Sequence[RawItem],
    owner_id: int,
    limit: int = 20,
) -> list[RawItem]:
    """Merge accumulated and freshly fetched items into one timeline.

    This function:
    1. Places stored items ahead of fresh ones
    2. Drops replies to other accounts (self-replies are kept) and items
       without an id
    3. Deduplicates by id, keeping the first occurrence
    4. Sorts by id descending (stable, exact integer comparison)
    5. Truncates to ``limit`` items

    Args:
        stored: Items from the accumulation cache
        fresh: Items fetched from sources in this cycle
        owner_id: Numeric id of the timeline's account
        limit: Maximum number of items to return (default: 20)

    Returns:
        The merged timeline, newest first
    """
    items = [*stored, *fresh]

    items = [
        i for i in items if i.in_reply_to_id is None or i.in_reply_to_id == owner_id
    ]
    items = [i for i in items if i.id]

    seen: set[int] = set()
    unique: list[RawItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)

    unique.sort(key=lambda i: i.id, reverse=True)

    return unique[:limit]


def decode_accumulated(raw: str) -> list[RawItem]:
    """Deserialize a stored timeline.

    Raises:
        CacheCorruptionError: If the payload is not a valid list of items
    """
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise CacheCorruptionError("Accumulated timeline is not a list")
        return [RawItem.model_validate(item) for item in data]
    except (ValueError, ValidationError) as e:
        raise CacheCorruptionError(f"Accumulated timeline is corrupt: {e}") from e


class TimelineAggregator:
    """Builds an account's timeline from several sources.

    Each source runs through the pagination walker and the per-source
    result cache. A failing source contributes nothing; how loudly that is
    reported comes from ``policies``. The merged result is written back to
    the accumulation cache and seeds the next cycle.
    """

    def __init__(
        self,
        cache: CacheService,
        source_cache: SourceResultCache,
        walker: PaginationWalker,
        sources: Sequence[SourceAdapter],
        policies: Mapping[str, RecoveryPolicy] | None = None,
        page_size: int = 20,
        timeout: float | None = None,
    ):
        self.cache = cache
        self.source_cache = source_cache
        self.walker = walker
        self.sources = list(sources)
        self.policies = dict(DEFAULT_RECOVERY_POLICIES if policies is None else policies)
        self.page_size = page_size
        self.timeout = timeout

    async def aggregate(
        self, identity: Identity, params: dict[str, Any] | None = None
    ) -> list[RawItem]:
        """
        Aggregate an account's timeline.

        Args:
            identity: Resolved account
            params: Caller parameter set, forwarded to every source

        Returns:
            At most ``page_size`` items, newest first

        Raises:
            asyncio.TimeoutError: If the cycle exceeds ``timeout``; nothing
                is written to the accumulation cache in that case
        """
        params = params or {}
        if self.timeout:
            items = await asyncio.wait_for(self._collect(identity, params), self.timeout)
        else:
            items = await self._collect(identity, params)

        await self._store(identity, items)
        return items

    async def _collect(self, identity: Identity, params: dict[str, Any]) -> list[RawItem]:
        results = await asyncio.gather(
            *(self._fetch_source(source, identity, params) for source in self.sources)
        )
        fresh = [item for result in results for item in result]
        stored = await self._load(identity)

        items = merge_timeline(stored, fresh, identity.rest_id, self.page_size)
        logger.debug(
            f"Aggregated {identity.rest_id}: stored={len(stored)} fresh={len(fresh)} "
            f"result={len(items)}"
        )
        return items

    async def _fetch_source(
        self, source: SourceAdapter, identity: Identity, params: dict[str, Any]
    ) -> list[RawItem]:
        try:
            return await self.source_cache.fetch(
                identity.rest_id,
                source.name,
                params,
                lambda: source.collect(self.walker, identity.rest_id, params),
            )
        except Exception as e:
            policy = self.policies.get(source.name, RecoveryPolicy.ISOLATE)
            if policy is RecoveryPolicy.BEST_EFFORT:
                logger.info(f"Best-effort source {source.name} failed for {identity.rest_id}: {e}")
            else:
                logger.warning(f"Failed to get {source.name} for {identity.rest_id}: {e}")
            return []

    async def _load(self, identity: Identity) -> list[RawItem]:
        key = accumulation_key(identity.rest_id)
        try:
            raw = await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Failed to read accumulated timeline {key}: {e}")
            return []

        if not raw:
            return []

        try:
            return decode_accumulated(raw)
        except CacheCorruptionError as e:
            logger.warning(f"Ignoring accumulated timeline {key}: {e}")
            return []

    async def _store(self, identity: Identity, items: list[RawItem]) -> None:
        key = accumulation_key(identity.rest_id)
        payload = json.dumps([item.model_dump(mode="json") for item in items])
        try:
            await self.cache.set(key, payload)
        except Exception as e:
            logger.warning(f"Failed to store accumulated timeline {key}: {e}")
