"""SQLiteCacheStore — durable, single-file cache backend using aiosqlite."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

try:
    import aiosqlite
except ImportError as exc:
    raise ImportError(
        "SQLiteCacheStore requires the 'aiosqlite' package. "
        "Install it with: pip install aiosqlite"
    ) from exc

from request_pipeline._internal.clock import Clock, SystemClock, timestamp
from request_pipeline.cache.base import CacheStore

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS pipeline_cache (
    key        TEXT NOT NULL PRIMARY KEY,
    value      TEXT NOT NULL,
    created_at REAL NOT NULL,
    ttl        REAL
)
"""

# Failures absorbed by the store instead of surfacing to callers.
_ABSORBED = (aiosqlite.Error, OSError, TypeError, ValueError)


class SQLiteCacheStore(CacheStore):
    """Persistent cache backed by a single SQLite file.

    Values must be JSON-serializable.  Any database or serialization
    failure is logged and absorbed: reads return ``None`` and writes are
    dropped.

    Parameters:
        db_path: Path to the SQLite database file.  Use ``":memory:"``
                 for an in-memory database (useful for testing).
        clock:   Injectable clock for testing expiry.
    """

    def __init__(self, db_path: str = "pipeline_cache.db", *, clock: Clock | None = None) -> None:
        self._db_path = db_path
        self._clock = clock or SystemClock()
        self._db: aiosqlite.Connection | None = None
        self._connect_lock = asyncio.Lock()

    async def _connect(self) -> aiosqlite.Connection:
        if self._db is not None:
            return self._db
        async with self._connect_lock:
            if self._db is None:
                db = await aiosqlite.connect(self._db_path)
                try:
                    await db.execute(_CREATE_TABLE)
                    await db.commit()
                except BaseException:
                    await db.close()
                    raise
                self._db = db
        return self._db

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    # ── CacheStore ───────────────────────────────────────────

    async def get(self, key: str) -> Any | None:
        try:
            db = await self._connect()
            cursor = await db.execute(
                "SELECT value, created_at, ttl FROM pipeline_cache WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            value, created_at, ttl = row
            if ttl is not None and timestamp(self._clock) >= created_at + ttl:
                await db.execute("DELETE FROM pipeline_cache WHERE key = ?", (key,))
                await db.commit()
                return None
            return json.loads(value)
        except _ABSORBED as exc:
            logger.warning("Cache read for %r failed, treating as miss: %s", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        try:
            db = await self._connect()
            if ttl is not None and ttl <= 0:
                await db.execute("DELETE FROM pipeline_cache WHERE key = ?", (key,))
            else:
                await db.execute(
                    "INSERT OR REPLACE INTO pipeline_cache (key, value, created_at, ttl) "
                    "VALUES (?, ?, ?, ?)",
                    (key, json.dumps(value), timestamp(self._clock), ttl),
                )
            await db.commit()
        except _ABSORBED as exc:
            logger.warning("Cache write for %r dropped: %s", key, exc)

    async def delete(self, key: str) -> None:
        try:
            db = await self._connect()
            await db.execute("DELETE FROM pipeline_cache WHERE key = ?", (key,))
            await db.commit()
        except _ABSORBED as exc:
            logger.warning("Cache delete for %r dropped: %s", key, exc)

    async def purge_expired(self) -> int:
        try:
            db = await self._connect()
            cursor = await db.execute(
                "DELETE FROM pipeline_cache WHERE ttl IS NOT NULL AND created_at + ttl <= ?",
                (timestamp(self._clock),),
            )
            await db.commit()
            return cursor.rowcount
        except _ABSORBED as exc:
            logger.warning("Cache purge failed: %s", exc)
            return 0
