"""InMemoryCacheStore — zero-config, dict-backed cache with lazy expiry."""

from __future__ import annotations

import copy
from typing import Any

from request_pipeline._internal.clock import Clock, SystemClock, timestamp
from request_pipeline._internal.locks import KeyedLocks
from request_pipeline.cache.base import CacheEntry, CacheStore


class InMemoryCacheStore(CacheStore):
    """In-memory cache.  Data is lost on process exit.

    Values are deep-copied on the way in and out so callers never share
    state with the store.  Operations on the same key are serialized by a
    per-key lock; different keys never contend.

    Parameters:
        clock: Injectable clock for testing expiry.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry] = {}
        self._locks = KeyedLocks()

    async def get(self, key: str) -> Any | None:
        with self._locks.hold(key):
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_live(timestamp(self._clock)):
                del self._entries[key]
                return None
            return copy.deepcopy(entry.value)

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        with self._locks.hold(key):
            if ttl is not None and ttl <= 0:
                self._entries.pop(key, None)
                return
            self._entries[key] = CacheEntry(
                key=key,
                value=copy.deepcopy(value),
                created_at=timestamp(self._clock),
                ttl=ttl,
            )

    async def delete(self, key: str) -> None:
        with self._locks.hold(key):
            self._entries.pop(key, None)

    async def purge_expired(self) -> int:
        now = timestamp(self._clock)
        removed = 0
        for key in list(self._entries):
            with self._locks.hold(key):
                entry = self._entries.get(key)
                if entry is not None and not entry.is_live(now):
                    del self._entries[key]
                    removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._entries)
