"""Cache service with read-through memoization and in-flight deduplication."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from timeline.cache.backends import CacheBackend

logger = logging.getLogger(__name__)


class CacheService:
    """Key-value cache shared by the resolver, source cache and aggregator.

    Two expiry classes are carried: ``content_expire`` (identity lookups)
    and ``route_expire`` (per-source results). Values written without a ttl
    never expire and are only replaced by later writes.
    """

    def __init__(
        self,
        backend: CacheBackend,
        content_expire: int = 3600,
        route_expire: int = 300,
    ):
        self.backend = backend
        self.content_expire = content_expire
        self.route_expire = route_expire
        self._in_flight: dict[str, asyncio.Task] = {}

    async def get(self, key: str) -> str | None:
        return await self.backend.get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        await self.backend.set(key, value, ttl)

    async def delete(self, key: str) -> bool:
        return await self.backend.delete(key)

    async def try_get(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
        dedupe_in_flight: bool = True,
    ) -> Any:
        """
        Return the cached value for ``key`` or compute and store it.

        A stored empty string is a hit and decodes to None, which lets callers
        cache negative results. An entry that is not valid JSON is treated
        as a miss and overwritten. Producer errors are never cached.

        Args:
            key: Cache key
            producer: Coroutine factory computing the value on a miss
            ttl: Expiry in seconds (defaults to content expiry)
            dedupe_in_flight: Share one producer run between concurrent
                callers for the same key

        Returns:
            The JSON-decoded cached value, or the producer's result

        Raises:
            Exception: Whatever the producer raises
        """
        try:
            cached = await self.backend.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            cached = None

        if cached is not None:
            try:
                return json.loads(cached) if cached else None
            except ValueError as e:
                logger.warning(f"Corrupt cache entry for {key}, recomputing: {e}")

        if ttl is None:
            ttl = self.content_expire

        if not dedupe_in_flight:
            return await self._produce(key, producer, ttl)

        task = self._in_flight.get(key)
        if task is None or task.done():
            task = asyncio.create_task(self._produce(key, producer, ttl))
            self._in_flight[key] = task
            task.add_done_callback(lambda t: self._release(key, t))

        # A cancelled waiter must not cancel the fetch other waiters share
        return await asyncio.shield(task)

    async def _produce(
        self, key: str, producer: Callable[[], Awaitable[Any]], ttl: int
    ) -> Any:
        value = await producer()
        try:
            await self.backend.set(key, json.dumps(value), ttl)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
        return value

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter has gone away
            task.exception()

    async def close(self) -> None:
        for task in list(self._in_flight.values()):
            task.cancel()
        self._in_flight.clear()
        await self.backend.close()
