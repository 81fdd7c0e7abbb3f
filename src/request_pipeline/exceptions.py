"""Exception hierarchy for the request_pipeline package.

Two families live here:

* :class:`PipelineError` — library faults (misconfiguration, misuse).
  These are programming errors and are never translated into responses.
* :class:`ApiError` — the closed taxonomy of request failures.  Every
  subclass carries a stable ``kind`` and external ``status``; the
  :class:`~request_pipeline.errors.ErrorHandler` turns them into responses.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any, ClassVar


class PipelineError(Exception):
    """Base exception for library-level faults."""


class PipelineConfigError(PipelineError):
    """Raised when a component is misconfigured."""

    def __init__(self, component: str, message: str) -> None:
        self.component = component
        super().__init__(f"{component} misconfigured: {message}")


class ContextReusedError(PipelineError):
    """Raised when a completed request context is dispatched again."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"Request context '{request_id}' has already completed")


class HandlerLoadError(PipelineError):
    """Raised when a handler module or attribute cannot be loaded."""


# ── Request error taxonomy ───────────────────────────────────


class ErrorKind(StrEnum):
    VALIDATION = "ValidationError"
    AUTH = "AuthError"
    FORBIDDEN = "ForbiddenError"
    NOT_FOUND = "NotFoundError"
    CONFLICT = "ConflictError"
    RATE_LIMITED = "RateLimitExceeded"
    INTERNAL = "InternalError"


STATUS_BY_KIND: Mapping[ErrorKind, int] = MappingProxyType(
    {
        ErrorKind.VALIDATION: 400,
        ErrorKind.AUTH: 401,
        ErrorKind.FORBIDDEN: 403,
        ErrorKind.NOT_FOUND: 404,
        ErrorKind.CONFLICT: 409,
        ErrorKind.RATE_LIMITED: 429,
        ErrorKind.INTERNAL: 500,
    }
)

# External wording.  Never derived from the internal message.
PUBLIC_MESSAGES: Mapping[ErrorKind, str] = MappingProxyType(
    {
        ErrorKind.VALIDATION: "Request validation failed",
        ErrorKind.AUTH: "Authentication required",
        ErrorKind.FORBIDDEN: "Insufficient privileges",
        ErrorKind.NOT_FOUND: "Resource not found",
        ErrorKind.CONFLICT: "Request conflicts with current state",
        ErrorKind.RATE_LIMITED: "Too many requests",
        ErrorKind.INTERNAL: "Internal server error",
    }
)


class ApiError(Exception):
    """A request failure drawn from the closed error taxonomy.

    Attributes are read-only once the error is created.

    Parameters:
        message: Human-readable, internal message (logged, not exposed).
        details: Structured data that is safe to expose to the caller
                 (e.g. field-level validation failures).
    """

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL

    def __init__(self, message: str = "", *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message or PUBLIC_MESSAGES[self.kind])
        self._message = message or PUBLIC_MESSAGES[self.kind]
        self._details: Mapping[str, Any] = MappingProxyType(dict(details or {}))

    @property
    def message(self) -> str:
        return self._message

    @property
    def details(self) -> Mapping[str, Any]:
        return self._details

    @property
    def status(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def public_message(self) -> str:
        return PUBLIC_MESSAGES[self.kind]


class ValidationError(ApiError):
    """Malformed or incomplete input."""

    kind = ErrorKind.VALIDATION


class AuthError(ApiError):
    """Missing, invalid or expired credential, or unresolvable principal.

    ``reason`` distinguishes the failure for logging; every reason maps to
    the same external status.
    """

    kind = ErrorKind.AUTH

    MISSING_OR_MALFORMED: ClassVar[str] = "missing_or_malformed"
    INVALID_OR_EXPIRED: ClassVar[str] = "invalid_or_expired"
    PRINCIPAL_NOT_FOUND: ClassVar[str] = "principal_not_found"
    REASONS: ClassVar[frozenset[str]] = frozenset(
        {MISSING_OR_MALFORMED, INVALID_OR_EXPIRED, PRINCIPAL_NOT_FOUND}
    )

    def __init__(self, reason: str, message: str = "") -> None:
        if reason not in self.REASONS:
            raise ValueError(f"Unknown auth failure reason: {reason!r}")
        super().__init__(message or f"Authentication failed: {reason}", details={"reason": reason})
        self._reason = reason

    @property
    def reason(self) -> str:
        return self._reason


class ForbiddenError(ApiError):
    """Authenticated but insufficiently privileged."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(ApiError):
    """Referenced resource does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(ApiError):
    """Violates a uniqueness or state invariant."""

    kind = ErrorKind.CONFLICT


class RateLimitExceeded(ApiError):
    """Caller exceeded the allowed request rate."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, retry_after: int, message: str = "") -> None:
        super().__init__(
            message or f"Rate limit exceeded, retry after {retry_after}s",
            details={"retry_after": retry_after},
        )
        self._retry_after = retry_after

    @property
    def retry_after(self) -> int:
        return self._retry_after


class InternalError(ApiError):
    """Unclassified failure, timeout or collaborator failure.

    ``reason`` is one of ``"unexpected"``, ``"timeout"``, ``"cancelled"``
    or ``"collaborator"``.  It is logged, never exposed.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = "", *, reason: str = "unexpected") -> None:
        super().__init__(message)
        self._reason = reason

    @property
    def reason(self) -> str:
        return self._reason

    @property
    def details(self) -> Mapping[str, Any]:
        return MappingProxyType({})
