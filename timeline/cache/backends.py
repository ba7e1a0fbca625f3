"""Cache backend abstraction (Redis or in-process memory)."""

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict

from redis.asyncio import Redis

from timeline.config import Settings

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Abstract key-value store holding string values."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """
        Read a value.

        Args:
            key: Cache key

        Returns:
            Stored string (possibly empty), or None if absent or expired
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Cache key
            value: String value to store
            ttl: Expiry in seconds; None stores without expiry
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove a value.

        Args:
            key: Cache key

        Returns:
            True if a value was removed, False if it was absent
        """
        pass

    async def ping(self) -> bool:
        """Check that the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release backend resources."""
        return None


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache using the asyncio client."""

    def __init__(self, redis: Redis, prefix: str = ""):
        self.redis = redis
        self.prefix = prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisCacheBackend":
        redis = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,
        )
        return cls(redis, prefix=settings.cache_key_prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> str | None:
        value = await self.redis.get(self._key(key))
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        if ttl:
            await self.redis.setex(self._key(key), ttl, value)
        else:
            await self.redis.set(self._key(key), value)

    async def delete(self, key: str) -> bool:
        return bool(await self.redis.delete(self._key(key)))

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def close(self) -> None:
        await self.redis.aclose()


class MemoryCacheBackend(CacheBackend):
    """In-process cache with per-key expiry and a bounded entry count.

    The oldest written entry is evicted once ``max_items`` is exceeded.
    """

    def __init__(self, max_items: int = 5000):
        self.max_items = max_items
        self._data: OrderedDict[str, tuple[str, float | None]] = OrderedDict()

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._data.pop(key, None)
        self._data[key] = (value, expires_at)
        while len(self._data) > self.max_items:
            evicted, _ = self._data.popitem(last=False)
            logger.debug(f"Evicted cache entry: {evicted}")

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def close(self) -> None:
        self._data.clear()


def get_cache_backend(settings: Settings) -> CacheBackend:
    """
    Factory function to get the configured cache backend.

    Args:
        settings: Application settings

    Returns:
        Configured cache backend instance
    """
    if settings.cache_type == "redis":
        return RedisCacheBackend.from_settings(settings)
    elif settings.cache_type == "memory":
        return MemoryCacheBackend(max_items=settings.cache_memory_max_items)
    else:
        raise ValueError(f"Unknown cache backend: {settings.cache_type}")
