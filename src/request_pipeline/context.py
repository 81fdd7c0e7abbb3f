"""Request, Response, Principal and the RequestContext that flows through the chain."""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import httpx

from request_pipeline.exceptions import PipelineError, ValidationError

if TYPE_CHECKING:
    from request_pipeline.cache.base import CacheStore
    from request_pipeline.pipeline import Route

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class Request:
    """Transport-level request.

    Attributes:
        method:  HTTP-style verb, normalized to upper case.
        path:    Request path, matched exactly against routes.
        headers: Case-insensitive header mapping (an :class:`httpx.Headers`).
        body:    Raw body bytes.  ``str`` bodies are UTF-8 encoded.
        client:  Caller address.  The default rate-limit key.
    """

    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    client: str = ""

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(dict(self.headers))
        if isinstance(self.body, str):
            self.body = self.body.encode()

    def json(self) -> Any:
        """Decode the body as JSON, raising :class:`ValidationError` when it is not."""
        if not self.body:
            raise ValidationError("Request body is empty", details={"body": "required"})
        try:
            return json.loads(self.body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError(
                f"Request body is not valid JSON: {exc}",
                details={"body": "invalid JSON"},
            ) from exc


@dataclass
class Response:
    """What the pipeline hands back for every request."""

    status: int = 200
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status < 400

    def json(self) -> str:
        return json.dumps(self.body, default=str)


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request.

    Attributes:
        id:         Stable identifier of the caller.
        roles:      Granted roles or scopes.
        expires_at: Expiry of the credential that produced this principal.
        claims:     Any extra verified claims.
    """

    id: str
    roles: frozenset[str] = frozenset()
    expires_at: datetime | None = None
    claims: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not isinstance(self.roles, frozenset):
            object.__setattr__(self, "roles", frozenset(self.roles))
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))

    def with_expiry(self, expires_at: datetime | None) -> Principal:
        return Principal(id=self.id, roles=self.roles, expires_at=expires_at, claims=self.claims)


@dataclass
class RequestContext:
    """Per-request state owned by the pipeline for the request's lifetime.

    Steps read the request, write to ``attachments`` to hand data to later
    steps and the handler, and may attach the principal exactly once.

    Attributes:
        request:     The inbound request.
        route:       The matched route, or ``None`` when nothing matched.
        attachments: Shared scratchpad (trace ids, rate-limit info, ...).
        cache:       The shared cache store, when the pipeline has one.
        deadline:    ``time.monotonic()`` value after which the request is
                     abandoned, or ``None`` for no deadline.
        request_id:  Taken from ``X-Request-ID`` if present, else generated.
        timestamp:   When the context was created (UTC).
    """

    request: Request
    route: Route | None = None
    attachments: dict[str, Any] = field(default_factory=dict)
    cache: CacheStore | None = None
    deadline: float | None = None
    request_id: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    _principal: Principal | None = field(default=None, init=False, repr=False)
    _cancel_event: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)
    _completed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.request_id:
            self.request_id = self.request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

    # ── principal ────────────────────────────────────────────

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def anonymous(self) -> bool:
        return self._principal is None

    def attach_principal(self, principal: Principal) -> None:
        if self._principal is not None:
            raise PipelineError(f"Request '{self.request_id}' already has a principal")
        self._principal = principal

    # ── cancellation and deadline ────────────────────────────

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Signal every remaining step to stop.  Safe to call more than once."""
        self._cancel_event.set()

    async def wait_cancelled(self) -> None:
        await self._cancel_event.wait()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, ``None`` when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    # ── lifecycle ────────────────────────────────────────────

    @property
    def completed(self) -> bool:
        return self._completed

    def complete(self) -> None:
        self._completed = True
