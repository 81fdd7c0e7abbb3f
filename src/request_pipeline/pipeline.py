"""Pipeline — the middleware chain executor."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

from request_pipeline.auth.authenticator import authorize
from request_pipeline.context import REQUEST_ID_HEADER, Request, RequestContext, Response
from request_pipeline.errors import ErrorHandler
from request_pipeline.exceptions import (
    ApiError,
    AuthError,
    ContextReusedError,
    ForbiddenError,
    InternalError,
    NotFoundError,
)

if TYPE_CHECKING:
    from request_pipeline.cache.base import CacheStore
    from request_pipeline.steps.base import Step

logger = logging.getLogger(__name__)

# Business handlers may be sync or async and return a Response or any
# JSON-serializable value (wrapped as a 200).
Handler = Callable[[RequestContext], Any] | Callable[[RequestContext], Awaitable[Any]]


@dataclass(frozen=True)
class Route:
    """A (method, path) pair bound to a business handler.

    Attributes:
        method:          Request method, matched case-insensitively.
        path:            Exact request path.
        handler:         The business handler.
        requires_auth:   Run the authenticate step for this route.
        required_role:   Role the principal must hold (implies ``requires_auth``).
        rate_limited:    Set ``False`` to exempt the route (health checks).
        timeout_seconds: Per-route deadline overriding the pipeline default.
        name:            Optional label used in logs and exports.
    """

    method: str
    path: str
    handler: Handler
    requires_auth: bool = False
    required_role: str | None = None
    rate_limited: bool = True
    timeout_seconds: float | None = None
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        if self.required_role is not None:
            object.__setattr__(self, "requires_auth", True)
        if not self.name:
            object.__setattr__(self, "name", f"{self.method} {self.path}")

    @property
    def key(self) -> tuple[str, str]:
        return (self.method, self.path)


class Pipeline:
    """Runs an ordered chain of steps and then the matched route's handler.

    Steps execute in **registration order**.  The first step that does not
    proceed short-circuits the chain: no later step and no handler runs.
    Every failure, whether returned by a step or raised anywhere, is turned
    into a response in exactly one place, :meth:`dispatch`.

    The cache and any limiter inside steps are owned by the caller and
    shared by reference across requests.

    Parameters:
        steps:           Initial steps, in order.
        routes:          Initial routes.
        cache:           Cache store exposed to handlers as ``context.cache``.
        error_handler:   Translates failures.  Defaults to :class:`ErrorHandler`.
        timeout_seconds: Default per-request deadline; ``None`` disables it.
    """

    def __init__(
        self,
        *,
        steps: list[Step] | None = None,
        routes: list[Route] | None = None,
        cache: CacheStore | None = None,
        error_handler: ErrorHandler | None = None,
        timeout_seconds: float | None = 30.0,
    ) -> None:
        self._steps: list[Step] = []
        self._routes: dict[tuple[str, str], Route] = {}
        self._cache = cache
        self._error_handler = error_handler or ErrorHandler()
        self._timeout = timeout_seconds
        for step in steps or []:
            self.add_step(step)
        for route in routes or []:
            self.add_route(route)

    # ── registration ─────────────────────────────────────────

    def add_step(self, step: Step) -> None:
        """Append *step* to the chain."""
        if self.get_step(step.name) is not None:
            raise ValueError(f"A step named '{step.name}' is already registered")
        self._steps.append(step)

    def add_route(self, route: Route) -> None:
        if route.key in self._routes:
            raise ValueError(f"Route {route.method} {route.path} is already registered")
        self._routes[route.key] = route

    def route(
        self,
        method: str,
        path: str,
        **options: Any,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`add_route`."""

        def decorator(handler: Handler) -> Handler:
            self.add_route(Route(method=method, path=path, handler=handler, **options))
            return handler

        return decorator

    # ── evaluation ───────────────────────────────────────────

    def new_context(self, request: Request) -> RequestContext:
        route = self.match(request.method, request.path)
        timeout = self._timeout
        if route is not None and route.timeout_seconds is not None:
            timeout = route.timeout_seconds
        return RequestContext(
            request=request,
            route=route,
            cache=self._cache,
            deadline=None if timeout is None else time.monotonic() + timeout,
        )

    async def handle(self, request: Request) -> Response:
        """Run *request* through the chain and return its single response."""
        return await self.dispatch(self.new_context(request))

    async def dispatch(self, context: RequestContext) -> Response:
        """Run the chain for an existing context.  Each context runs once."""
        if context.completed:
            raise ContextReusedError(context.request_id)

        outcome: Response | BaseException
        try:
            outcome = await self._supervise(context)
        except Exception as exc:
            outcome = exc
        finally:
            context.complete()

        if isinstance(outcome, BaseException):
            response = self._error_handler.handle(outcome, context)
        else:
            response = outcome
        response.headers.setdefault(REQUEST_ID_HEADER, context.request_id)
        return response

    async def _supervise(self, context: RequestContext) -> Response | ApiError:
        """Race the chain against the context's cancel signal and deadline."""
        chain = asyncio.create_task(self._run_chain(context))
        cancelled = asyncio.create_task(context.wait_cancelled())
        try:
            done, _ = await asyncio.wait(
                {chain, cancelled},
                timeout=context.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancelled.cancel()
            if not chain.done():
                chain.cancel()
                await asyncio.wait({chain})

        if chain in done:
            if chain.cancelled():
                raise InternalError("Request chain was cancelled", reason="cancelled")
            return chain.result()
        if context.cancelled:
            raise InternalError("Request cancelled before completion", reason="cancelled")
        raise InternalError("Request exceeded its deadline", reason="timeout")

    async def _run_chain(self, context: RequestContext) -> Response | ApiError:
        for step in self._steps:
            if not step.applies_to(context.route):
                continue
            self._ensure_active(context)
            result = await step.run(context)
            if result.short_circuited:
                logger.debug(
                    "Request %s stopped by step '%s'", context.request_id, result.step_name
                )
                if result.response is not None:
                    return result.response
                return cast(ApiError, result.error)

        route = context.route
        if route is None:
            return NotFoundError(f"No route for {context.request.method} {context.request.path}")

        denied = self._check_access(route, context)
        if denied is not None:
            return denied

        self._ensure_active(context)
        return await self._invoke(route, context)

    @staticmethod
    def _check_access(route: Route, context: RequestContext) -> ApiError | None:
        """Enforce the route's auth requirements whatever steps are registered."""
        if route.requires_auth and context.principal is None:
            return AuthError(
                AuthError.MISSING_OR_MALFORMED,
                f"Route {route.name} requires an authenticated principal",
            )
        if route.required_role is not None and not authorize(
            context.principal, route.required_role
        ):
            return ForbiddenError(
                f"Principal lacks role '{route.required_role}' for {route.name}",
                details={"required_role": route.required_role},
            )
        return None

    @staticmethod
    def _ensure_active(context: RequestContext) -> None:
        if context.cancelled:
            raise InternalError("Request cancelled before completion", reason="cancelled")
        if context.expired:
            raise InternalError("Request exceeded its deadline", reason="timeout")

    @staticmethod
    async def _invoke(route: Route, context: RequestContext) -> Response:
        result = route.handler(context)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, Response):
            return result
        return Response(status=200, body=result)

    # ── introspection ────────────────────────────────────────

    def get_step(self, name: str) -> Step | None:
        """Look up a registered step by its ``name``."""
        for step in self._steps:
            if step.name == name:
                return step
        return None

    def list_steps(self) -> list[str]:
        """Return the names of all registered steps in chain order."""
        return [s.name for s in self._steps]

    def match(self, method: str, path: str) -> Route | None:
        return self._routes.get((method.upper(), path))

    def list_routes(self) -> list[Route]:
        return list(self._routes.values())

    def export(self) -> dict[str, Any]:
        """Return a JSON-serializable snapshot of the chain and routes."""
        steps = [s.export() for s in self._steps]
        return {
            "steps": steps,
            "step_count": len(steps),
            "routes": [
                {
                    "name": r.name,
                    "method": r.method,
                    "path": r.path,
                    "requires_auth": r.requires_auth,
                    "required_role": r.required_role,
                    "rate_limited": r.rate_limited,
                }
                for r in self._routes.values()
            ],
            "timeout_seconds": self._timeout,
        }

    @property
    def cache(self) -> CacheStore | None:
        return self._cache

    async def close(self) -> None:
        """Tear down owned resources such as a persistent cache connection."""
        close = getattr(self._cache, "close", None)
        if close is not None:
            await close()
