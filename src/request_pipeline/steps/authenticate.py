"""AuthenticateStep and AuthorizeStep — identity and role gates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from request_pipeline.auth.authenticator import authorize, extract_credential
from request_pipeline.exceptions import ApiError, AuthError, ForbiddenError
from request_pipeline.result import StepResult
from request_pipeline.steps.base import Step

if TYPE_CHECKING:
    from request_pipeline.auth.authenticator import Authenticator
    from request_pipeline.context import RequestContext
    from request_pipeline.pipeline import Route


class AuthenticateStep(Step):
    """Authenticates the bearer credential on routes that require it.

    Routes with ``requires_auth=False`` skip this step entirely, so their
    handlers see an anonymous context.  On success the principal is
    attached to the context.

    Parameters:
        authenticator: Verifies the credential and resolves the principal.
        name:          Unique step name.
        header:        Header carrying the credential.
        scheme:        Expected auth scheme; empty string for a raw token.
    """

    _step_type = "authenticate"
    _step_description = "Verifies the bearer credential and attaches the principal"

    def __init__(
        self,
        authenticator: Authenticator,
        *,
        name: str = "authenticate",
        header: str = "Authorization",
        scheme: str = "Bearer",
    ) -> None:
        self._authenticator = authenticator
        self._name = name
        self._header = header
        self._scheme = scheme

    @property
    def name(self) -> str:
        return self._name

    def applies_to(self, route: Route | None) -> bool:
        return route is not None and route.requires_auth

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = {"header": self._header, "scheme": self._scheme}
        return data

    async def run(self, context: RequestContext) -> StepResult:
        try:
            credential = extract_credential(context.request.headers, self._header, self._scheme)
            principal = await self._authenticator.authenticate(credential)
        except ApiError as exc:
            return StepResult.fail(self.name, exc)

        context.attach_principal(principal)
        return StepResult.next(self.name)


class AuthorizeStep(Step):
    """Enforces a route's ``required_role`` against the attached principal."""

    _step_type = "authorize"
    _step_description = "Requires the principal to hold the route's role"

    def __init__(self, *, name: str = "authorize") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def applies_to(self, route: Route | None) -> bool:
        return route is not None and route.required_role is not None

    async def run(self, context: RequestContext) -> StepResult:
        route = context.route
        role = route.required_role if route is not None else None
        if context.principal is None:
            return StepResult.fail(
                self.name,
                AuthError(AuthError.MISSING_OR_MALFORMED, "Role-gated route reached anonymously"),
            )
        if role is None or not authorize(context.principal, role):
            return StepResult.fail(
                self.name,
                ForbiddenError(
                    f"Principal '{context.principal.id}' lacks role '{role}'",
                    details={"required_role": role},
                ),
            )
        return StepResult.next(self.name)
