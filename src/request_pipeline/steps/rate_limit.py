"""RateLimitStep — rejects callers that exceed their fixed-window quota."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from request_pipeline.exceptions import RateLimitExceeded
from request_pipeline.result import StepResult
from request_pipeline.steps.base import Step

if TYPE_CHECKING:
    from request_pipeline.context import RequestContext
    from request_pipeline.pipeline import Route
    from request_pipeline.ratelimit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

KeyFunc = Callable[["RequestContext"], str]


def client_key(context: RequestContext) -> str:
    """Default key: the caller's address, or ``"anonymous"`` if unknown."""
    return context.request.client or "anonymous"


class RateLimitStep(Step):
    """Counts each request against the caller's bucket.

    Runs first and for every request, including ones that match no route,
    unless the matched route opts out with ``rate_limited=False``.

    On allow, writes ``"{name}_remaining"`` into ``context.attachments``.
    On deny, short-circuits with :class:`RateLimitExceeded` carrying the
    seconds until the bucket resets.

    Parameters:
        limiter:  Shared limiter instance.
        name:     Unique step name.
        key_func: Maps a context to a bucket key.  Defaults to the client address.
    """

    _step_type = "rate_limit"
    _step_description = "Fixed-window request rate limit per caller"

    def __init__(
        self,
        limiter: FixedWindowRateLimiter,
        *,
        name: str = "rate_limit",
        key_func: KeyFunc | None = None,
    ) -> None:
        self._limiter = limiter
        self._name = name
        self._key_func = key_func or client_key

    @property
    def name(self) -> str:
        return self._name

    @property
    def limiter(self) -> FixedWindowRateLimiter:
        return self._limiter

    def applies_to(self, route: Route | None) -> bool:
        return route is None or route.rate_limited

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = {
            "max_requests": self._limiter.max_requests,
            "window_seconds": self._limiter.window_seconds,
        }
        return data

    async def run(self, context: RequestContext) -> StepResult:
        key = self._key_func(context)
        decision = self._limiter.check(key)
        if not decision.allowed:
            logger.info("Rate limit exceeded for %s, retry after %ds", key, decision.retry_after)
            return StepResult.fail(self.name, RateLimitExceeded(decision.retry_after))

        context.attachments[f"{self.name}_remaining"] = decision.remaining
        return StepResult.next(self.name)
