"""Cache module for the timeline aggregator."""

from .backends import (
    CacheBackend,
    MemoryCacheBackend,
    RedisCacheBackend,
    get_cache_backend,
)
from .service import CacheService

__all__ = [
    "CacheBackend",
    "CacheService",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "get_cache_backend",
]
