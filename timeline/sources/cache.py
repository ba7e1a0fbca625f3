"""Per-source result memoization under route expiry."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import TypeAdapter, ValidationError

from timeline.cache.service import CacheService
from timeline.sources.models import RawItem

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(list[RawItem])


def _key(subject_id: int | str, source_name: str, params: dict[str, Any] | None) -> str:
    """Generate the cache key for one (subject, source, parameter set)."""
    params_str = json.dumps(params or {}, sort_keys=True, separators=(",", ":"))
    return f"twitter:{subject_id}:{source_name}:{params_str}"


class SourceResultCache:
    """Memoizes a source's items per (subject, source, parameter set).

    Concurrent callers for the same key share one upstream fetch. Failed
    fetches are not cached. A stored entry that no longer validates is
    dropped and fetched again.
    """

    def __init__(self, cache: CacheService):
        self.cache = cache

    async def fetch(
        self,
        subject_id: int | str,
        source_name: str,
        params: dict[str, Any] | None,
        producer: Callable[[], Awaitable[list[RawItem]]],
    ) -> list[RawItem]:
        key = _key(subject_id, source_name, params)

        async def _produce() -> list[dict[str, Any]]:
            return [item.model_dump(mode="json") for item in await producer()]

        data = await self.cache.try_get(
            key, _produce, ttl=self.cache.route_expire, dedupe_in_flight=True
        )
        try:
            return _items_adapter.validate_python(data or [])
        except ValidationError as e:
            logger.warning(f"Corrupt cached items for {key}, refetching: {e}")

        await self.cache.delete(key)
        data = await self.cache.try_get(
            key, _produce, ttl=self.cache.route_expire, dedupe_in_flight=True
        )
        return _items_adapter.validate_python(data or [])
