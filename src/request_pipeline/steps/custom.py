"""CallableStep — wrap any callable as a step without subclassing."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from request_pipeline.exceptions import ApiError, ForbiddenError
from request_pipeline.result import StepResult
from request_pipeline.steps.base import Step

if TYPE_CHECKING:
    from request_pipeline.context import RequestContext

# The check callable can be sync or async.
# It receives a RequestContext and returns bool (True = continue) or a StepResult.
CheckFn = Callable[["RequestContext"], bool] | Callable[["RequestContext"], Any]
ErrorFactory = Callable[["RequestContext"], ApiError]


class CallableStep(Step):
    """Wraps a plain callable as a step.

    Parameters:
        name:          Unique step name.
        check:         Callable ``(context) -> bool | StepResult``.
                       ``True`` continues the chain.  May be sync or async.
        error_factory: Builds the error returned when the check is falsy.
                       Defaults to :class:`ForbiddenError` with *deny_reason*.
        deny_reason:   Internal message for the default error.
    """

    _step_type = "custom"
    _step_description = "Custom callable-based step"

    def __init__(
        self,
        *,
        name: str,
        check: CheckFn,
        error_factory: ErrorFactory | None = None,
        deny_reason: str = "Custom step check failed",
    ) -> None:
        self._name = name
        self._check = check
        self._error_factory = error_factory
        self._deny_reason = deny_reason

    @property
    def name(self) -> str:
        return self._name

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = {
            "deny_reason": self._deny_reason,
            "has_error_factory": self._error_factory is not None,
        }
        return data

    async def run(self, context: RequestContext) -> StepResult:
        result = self._check(context)
        if asyncio.iscoroutine(result):
            result = await result

        if isinstance(result, StepResult):
            return result
        if result:
            return StepResult.next(self.name)
        if self._error_factory is not None:
            return StepResult.fail(self.name, self._error_factory(context))
        return StepResult.fail(self.name, ForbiddenError(self._deny_reason))
