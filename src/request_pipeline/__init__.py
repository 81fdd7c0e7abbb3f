"""request_pipeline — an embeddable request-processing pipeline.

Requests run through an ordered chain of steps (rate limit, authenticate,
authorize, ...) before reaching the business handler.  The first step that
refuses stops the chain, and every failure is translated into a response
in one place.
"""

from request_pipeline.auth import (
    Authenticator,
    HmacTokenVerifier,
    HttpPrincipalResolver,
    InMemoryPrincipalDirectory,
    authorize,
    extract_credential,
)
from request_pipeline.cache import CacheStore, InMemoryCacheStore, SQLiteCacheStore
from request_pipeline.context import Principal, Request, RequestContext, Response
from request_pipeline.errors import ErrorHandler, Event, EventRecorder, LoggingRecorder
from request_pipeline.exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    ContextReusedError,
    ErrorKind,
    ForbiddenError,
    HandlerLoadError,
    InternalError,
    NotFoundError,
    PipelineConfigError,
    PipelineError,
    RateLimitExceeded,
    ValidationError,
)
from request_pipeline.pipeline import Pipeline, Route
from request_pipeline.ratelimit import FixedWindowRateLimiter, RateLimitDecision
from request_pipeline.result import StepResult

__all__ = [
    "ApiError",
    "AuthError",
    "Authenticator",
    "CacheStore",
    "ConflictError",
    "ContextReusedError",
    "ErrorHandler",
    "ErrorKind",
    "Event",
    "EventRecorder",
    "FixedWindowRateLimiter",
    "ForbiddenError",
    "HandlerLoadError",
    "HmacTokenVerifier",
    "HttpPrincipalResolver",
    "InMemoryCacheStore",
    "InMemoryPrincipalDirectory",
    "InternalError",
    "LoggingRecorder",
    "NotFoundError",
    "Pipeline",
    "PipelineConfigError",
    "PipelineError",
    "Principal",
    "RateLimitDecision",
    "RateLimitExceeded",
    "Request",
    "RequestContext",
    "Response",
    "Route",
    "SQLiteCacheStore",
    "StepResult",
    "ValidationError",
    "authorize",
    "extract_credential",
]
