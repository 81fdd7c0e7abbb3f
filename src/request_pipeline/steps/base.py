"""Step ABC — the single abstraction every middleware step implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from request_pipeline.context import RequestContext
    from request_pipeline.pipeline import Route
    from request_pipeline.result import StepResult


class Step(ABC):
    """Base class for every chain step.

    Subclasses **must** define a ``name`` property (or class attribute) and
    implement ``run``.

    Steps may:
    * Read ``context.request`` and ``context.route``.
    * **Write** to ``context.attachments`` to pass data downstream.
    * Attach the principal (once) via ``context.attach_principal``.
    * Return ``StepResult.fail`` or ``StepResult.respond`` to stop the chain.

    Override ``applies_to`` to skip the step for some routes.  ``route`` is
    ``None`` when the request matched no route.

    Class Variables:
        _step_type: Type identifier used by the runner factory and ``export``.
        _step_description: Human-readable description of the step.
    """

    _step_type: ClassVar[str] = "base"
    _step_description: ClassVar[str] = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this step instance."""
        ...

    @abstractmethod
    async def run(self, context: RequestContext) -> StepResult:
        """Inspect or enrich *context* and decide whether the chain continues."""
        ...

    def applies_to(self, route: Route | None) -> bool:
        return True

    def export(self) -> dict[str, Any]:
        """Return a JSON-serializable snapshot of this step.

        Subclasses should call ``super().export()`` and populate ``"config"``.
        """
        return {
            "name": self.name,
            "type": self._step_type,
            "description": self._step_description,
            "config": {},
        }
