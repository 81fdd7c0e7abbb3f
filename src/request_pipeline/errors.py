"""ErrorHandler — the single translation point from failure to response."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from request_pipeline.context import REQUEST_ID_HEADER, Response
from request_pipeline.exceptions import ApiError, InternalError, RateLimitExceeded

if TYPE_CHECKING:
    from request_pipeline.context import RequestContext

logger = logging.getLogger(__name__)

EVENT_LOGGER_NAME = "request_pipeline.events"


@dataclass(frozen=True)
class Event:
    """One structured record about a handled error.

    Attributes:
        kind:    Error kind from the taxonomy.
        message: Internal message (may contain detail unfit for callers).
        context: Identifiers: request id, method, path, status, reason, ...
    """

    kind: str
    message: str
    context: dict[str, Any] = field(default_factory=dict, hash=False)


class EventRecorder(Protocol):
    """Fire-and-forget sink for structured events."""

    def record(self, event: Event) -> None: ...


class LoggingRecorder:
    """Writes events to the ``request_pipeline.events`` logger.

    Client errors are logged at WARNING, server errors at ERROR with the
    original exception attached.
    """

    def __init__(self, logger_name: str = EVENT_LOGGER_NAME) -> None:
        self._logger = logging.getLogger(logger_name)

    def record(self, event: Event) -> None:
        status = event.context.get("status", 500)
        level = logging.ERROR if status >= 500 else logging.WARNING
        self._logger.log(
            level,
            "%s: %s",
            event.kind,
            event.message,
            extra={"event": event.context},
            exc_info=event.context.get("exc_info"),
        )


def classify(error: BaseException) -> ApiError:
    """Map any failure onto the taxonomy.

    Known kinds pass through untouched.  Timeouts and everything else
    become :class:`InternalError`.
    """
    if isinstance(error, ApiError):
        return error
    if isinstance(error, TimeoutError):
        return InternalError(f"Timed out: {error}", reason="timeout")
    return InternalError(f"{type(error).__name__}: {error}")


class ErrorHandler:
    """Turns an error into exactly one response and one event.

    External bodies use stable per-kind wording and never include internal
    messages or tracebacks.  Only an error's ``details`` are exposed.

    Parameters:
        recorder: Event sink.  Defaults to :class:`LoggingRecorder`.
    """

    def __init__(self, recorder: EventRecorder | None = None) -> None:
        self._recorder = recorder or LoggingRecorder()

    def handle(self, error: BaseException, context: RequestContext | None = None) -> Response:
        api_error = classify(error)

        body: dict[str, Any] = {
            "error": str(api_error.kind),
            "message": api_error.public_message,
        }
        if api_error.details:
            body["details"] = dict(api_error.details)

        headers: dict[str, str] = {}
        if isinstance(api_error, RateLimitExceeded):
            headers["Retry-After"] = str(api_error.retry_after)
        if context is not None:
            headers[REQUEST_ID_HEADER] = context.request_id

        self._emit(api_error, error, context)
        return Response(status=api_error.status, body=body, headers=headers)

    def _emit(
        self,
        api_error: ApiError,
        original: BaseException,
        context: RequestContext | None,
    ) -> None:
        event_context: dict[str, Any] = {"status": api_error.status}
        if context is not None:
            event_context.update(
                request_id=context.request_id,
                method=context.request.method,
                path=context.request.path,
            )
            if context.principal is not None:
                event_context["principal"] = context.principal.id
        reason = getattr(api_error, "reason", None)
        if reason:
            event_context["reason"] = reason
        if api_error.status >= 500:
            event_context["exc_info"] = original

        try:
            self._recorder.record(
                Event(kind=str(api_error.kind), message=api_error.message, context=event_context)
            )
        except Exception:
            logger.debug("Event recorder failed", exc_info=True)
