"""CacheStore — key/value storage with per-entry expiry."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

# ``get_or_set`` factories may be sync or async.
Factory = Callable[[], Any] | Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and its expiry metadata.

    Visible to readers iff ``ttl is None or now < created_at + ttl``.
    """

    key: str
    value: Any
    created_at: float
    ttl: float | None = None

    @property
    def expires_at(self) -> float | None:
        return None if self.ttl is None else self.created_at + self.ttl

    def is_live(self, now: float) -> bool:
        return self.ttl is None or now < self.created_at + self.ttl


class CacheStore(ABC):
    """Abstract base for all cache backends.

    Caching is an optimization: backends never raise on their own I/O
    failures.  Reads degrade to ``None`` and writes are dropped, so callers
    must never rely on a hit.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the live value for *key*, or ``None`` if missing or expired."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Create or overwrite *key*, replacing any previous ttl."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete *key*.  No-op if the key does not exist."""
        ...

    async def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        return 0

    async def get_or_set(self, key: str, factory: Factory, ttl: float | None = None) -> Any:
        """Return the cached value, computing and storing it on a miss.

        Errors raised by *factory* propagate; they are not cache failures.
        """
        value = await self.get(key)
        if value is not None:
            return value
        value = factory()
        if asyncio.iscoroutine(value):
            value = await value
        await self.set(key, value, ttl)
        return value

    def namespace(self, prefix: str) -> CacheNamespace:
        """Return a view whose keys are prefixed with ``"{prefix}:"``."""
        return CacheNamespace(self, prefix)


class CacheNamespace(CacheStore):
    """Key-prefixing view over another store, so components never collide."""

    def __init__(self, store: CacheStore, prefix: str) -> None:
        if not prefix:
            raise ValueError("Cache namespace prefix must not be empty")
        self._store = store
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> Any | None:
        return await self._store.get(self._key(key))

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        await self._store.set(self._key(key), value, ttl)

    async def delete(self, key: str) -> None:
        await self._store.delete(self._key(key))

    async def purge_expired(self) -> int:
        return await self._store.purge_expired()

    def namespace(self, prefix: str) -> CacheNamespace:
        return CacheNamespace(self._store, self._key(prefix))
