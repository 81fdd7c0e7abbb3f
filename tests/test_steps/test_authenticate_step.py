"""Tests for AuthenticateStep and AuthorizeStep."""

from request_pipeline import AuthError, ForbiddenError, Principal, RequestContext, Route
from request_pipeline.steps import AuthenticateStep, AuthorizeStep

PROTECTED = Route("GET", "/me", lambda ctx: None, requires_auth=True)
ADMIN_ONLY = Route("GET", "/admin", lambda ctx: None, required_role="admin")
OPEN = Route("GET", "/", lambda ctx: None)


async def test_attaches_principal(authenticator, make_request, alice_token):
    ctx = RequestContext(request=make_request(token=alice_token), route=PROTECTED)
    result = await AuthenticateStep(authenticator).run(ctx)

    assert result.proceed
    assert ctx.principal.id == "alice"


async def test_missing_credential(authenticator, make_request):
    ctx = RequestContext(request=make_request(), route=PROTECTED)
    result = await AuthenticateStep(authenticator).run(ctx)

    assert not result.proceed
    assert isinstance(result.error, AuthError)
    assert result.error.reason == AuthError.MISSING_OR_MALFORMED
    assert ctx.anonymous


async def test_wrong_scheme(authenticator, make_request):
    request = make_request(headers={"Authorization": "Basic dXNlcjpwYXNz"})
    result = await AuthenticateStep(authenticator).run(RequestContext(request=request))
    assert result.error.reason == AuthError.MISSING_OR_MALFORMED


async def test_custom_header(authenticator, make_request, bob_token):
    step = AuthenticateStep(authenticator, header="X-Api-Token", scheme="")
    ctx = RequestContext(request=make_request(headers={"X-Api-Token": bob_token}))
    assert (await step.run(ctx)).proceed
    assert ctx.principal.id == "bob"


def test_authenticate_applies_only_to_protected_routes(authenticator):
    step = AuthenticateStep(authenticator)
    assert step.applies_to(PROTECTED)
    assert step.applies_to(ADMIN_ONLY)
    assert not step.applies_to(OPEN)
    assert not step.applies_to(None)


async def test_authorize_grants(make_request):
    ctx = RequestContext(request=make_request(), route=ADMIN_ONLY)
    ctx.attach_principal(Principal(id="alice", roles={"admin"}))
    assert (await AuthorizeStep().run(ctx)).proceed


async def test_authorize_forbidden(make_request):
    ctx = RequestContext(request=make_request(), route=ADMIN_ONLY)
    ctx.attach_principal(Principal(id="bob", roles={"reader"}))
    result = await AuthorizeStep().run(ctx)

    assert isinstance(result.error, ForbiddenError)
    assert result.error.details == {"required_role": "admin"}


async def test_authorize_anonymous(make_request):
    ctx = RequestContext(request=make_request(), route=ADMIN_ONLY)
    result = await AuthorizeStep().run(ctx)
    assert isinstance(result.error, AuthError)


def test_authorize_applies_only_to_role_routes():
    step = AuthorizeStep()
    assert step.applies_to(ADMIN_ONLY)
    assert not step.applies_to(PROTECTED)
    assert not step.applies_to(None)
