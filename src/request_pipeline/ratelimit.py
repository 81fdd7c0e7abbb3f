"""FixedWindowRateLimiter — per-key request counters over fixed time windows."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass

from request_pipeline._internal.clock import Clock, SystemClock, timestamp
from request_pipeline._internal.locks import KeyedLocks
from request_pipeline.exceptions import PipelineConfigError


@dataclass
class Bucket:
    """Counter-and-window state for one key."""

    key: str
    count: int
    window_start: float
    last_seen: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single :meth:`FixedWindowRateLimiter.check`.

    Attributes:
        allowed:     Whether the request is within the limit.
        remaining:   Requests still allowed in the current window.
        retry_after: Whole seconds until the bucket resets (0 when allowed).
        reset_at:    Epoch seconds at which the current window ends.
    """

    allowed: bool
    remaining: int
    retry_after: int
    reset_at: float


class FixedWindowRateLimiter:
    """Counts requests per key and denies once a window's threshold is passed.

    Each key owns a bucket with a window start and a count.  A call either
    resets the bucket (when the window has elapsed, or on first sight) or
    increments it, then compares the count to ``max_requests``.  The reset
    and the increment happen under the key's lock, so a request arriving
    exactly on the boundary counts against the new window.

    Idle buckets are pruned every ``prune_every`` checks once they have not
    been seen for ``retention_seconds``.

    Parameters:
        max_requests:      Maximum allowed requests per window.
        window_seconds:    Length of each window in seconds.
        retention_seconds: Idle time after which a bucket may be dropped.
                           Defaults to ``window_seconds``.
        prune_every:       Run :meth:`prune` after this many checks.
        clock:             Injectable clock for testing.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: float,
        retention_seconds: float | None = None,
        prune_every: int = 1000,
        clock: Clock | None = None,
    ) -> None:
        if max_requests < 1:
            raise PipelineConfigError("rate limiter", "max_requests must be at least 1")
        if window_seconds <= 0:
            raise PipelineConfigError("rate limiter", "window_seconds must be positive")
        if retention_seconds is not None and retention_seconds < window_seconds:
            raise PipelineConfigError(
                "rate limiter", "retention_seconds must be at least window_seconds"
            )
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.retention_seconds = retention_seconds or window_seconds
        self._prune_every = max(1, prune_every)
        self._clock = clock or SystemClock()
        self._buckets: dict[str, Bucket] = {}
        self._locks = KeyedLocks()
        self._checks = 0
        self._checks_lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Count one request for *key* and return whether it is allowed."""
        return self.check(key).allowed

    def check(self, key: str) -> RateLimitDecision:
        with self._locks.hold(key):
            now = timestamp(self._clock)
            bucket = self._buckets.get(key)
            if bucket is None or now - bucket.window_start >= self.window_seconds:
                bucket = Bucket(key=key, count=1, window_start=now, last_seen=now)
                self._buckets[key] = bucket
            else:
                bucket.count += 1
                bucket.last_seen = now

            reset_at = bucket.window_start + self.window_seconds
            allowed = bucket.count <= self.max_requests
            decision = RateLimitDecision(
                allowed=allowed,
                remaining=max(0, self.max_requests - bucket.count),
                retry_after=0 if allowed else max(1, math.ceil(reset_at - now)),
                reset_at=reset_at,
            )

        if self._tick():
            self.prune()
        return decision

    def _tick(self) -> bool:
        with self._checks_lock:
            self._checks += 1
            return self._checks % self._prune_every == 0

    def prune(self) -> int:
        """Drop buckets idle past the retention horizon.  Returns the count removed."""
        now = timestamp(self._clock)
        removed = 0
        for key in list(self._buckets):
            with self._locks.hold(key):
                bucket = self._buckets.get(key)
                if bucket is not None and now - bucket.last_seen >= self.retention_seconds:
                    del self._buckets[key]
                    removed += 1
        return removed

    def reset(self, key: str) -> None:
        with self._locks.hold(key):
            self._buckets.pop(key, None)

    def bucket(self, key: str) -> Bucket | None:
        """Return a copy of *key*'s bucket, for inspection."""
        with self._locks.hold(key):
            bucket = self._buckets.get(key)
            return None if bucket is None else Bucket(**vars(bucket))

    def __len__(self) -> int:
        return len(self._buckets)
