"""Cache backends shared by handlers across requests."""

from request_pipeline.cache.base import CacheEntry, CacheNamespace, CacheStore
from request_pipeline.cache.memory import InMemoryCacheStore
from request_pipeline.cache.sqlite import SQLiteCacheStore

__all__ = [
    "CacheEntry",
    "CacheNamespace",
    "CacheStore",
    "InMemoryCacheStore",
    "SQLiteCacheStore",
]
