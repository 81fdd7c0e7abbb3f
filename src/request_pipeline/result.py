"""StepResult — the outcome of a single chain step."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from request_pipeline.context import Response
    from request_pipeline.exceptions import ApiError


@dataclass(frozen=True)
class StepResult:
    """Immutable result returned by a step's ``run``.

    A step either lets the chain continue or short-circuits it, either with
    a ready response or with an error for the error handler.

    Attributes:
        proceed:   ``True`` if the chain should move on to the next step.
        step_name: Name of the step that produced this result.
        response:  Response to return as-is when short-circuiting.
        error:     Error to translate when short-circuiting.
    """

    proceed: bool
    step_name: str = ""
    response: Response | None = None
    error: ApiError | None = None

    def __post_init__(self) -> None:
        if self.proceed and (self.response is not None or self.error is not None):
            raise ValueError("A proceeding result cannot carry a response or error")
        if not self.proceed and (self.response is None) == (self.error is None):
            raise ValueError("A short-circuit needs exactly one of response or error")

    # ── Factory helpers ──────────────────────────────────────

    @staticmethod
    def next(step_name: str = "") -> StepResult:
        return StepResult(proceed=True, step_name=step_name)

    @staticmethod
    def respond(step_name: str, response: Response) -> StepResult:
        return StepResult(proceed=False, step_name=step_name, response=response)

    @staticmethod
    def fail(step_name: str, error: ApiError) -> StepResult:
        return StepResult(proceed=False, step_name=step_name, error=error)

    @property
    def short_circuited(self) -> bool:
        return not self.proceed
