"""Built-in chain steps."""

from request_pipeline.result import StepResult
from request_pipeline.steps.authenticate import AuthenticateStep, AuthorizeStep
from request_pipeline.steps.base import Step
from request_pipeline.steps.custom import CallableStep
from request_pipeline.steps.rate_limit import RateLimitStep, client_key

__all__ = [
    "AuthenticateStep",
    "AuthorizeStep",
    "CallableStep",
    "RateLimitStep",
    "Step",
    "StepResult",
    "client_key",
]
