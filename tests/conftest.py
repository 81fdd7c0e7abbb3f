"""Shared test fixtures."""

import pytest

from request_pipeline import (
    Authenticator,
    ErrorHandler,
    FixedWindowRateLimiter,
    HmacTokenVerifier,
    InMemoryCacheStore,
    InMemoryPrincipalDirectory,
    Pipeline,
    Principal,
    Request,
)
from request_pipeline._internal.clock import ManualClock
from request_pipeline.steps import AuthenticateStep, AuthorizeStep, RateLimitStep

SECRET = "test-secret-0123456789abcdefghijkl"


class ListRecorder:
    """Captures events instead of logging them."""

    def __init__(self):
        self.events = []

    def record(self, event):
        self.events.append(event)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def cache(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)


@pytest.fixture
def secret():
    return SECRET


@pytest.fixture
def verifier(secret, clock):
    return HmacTokenVerifier(secret, clock=clock)


@pytest.fixture
def directory():
    return InMemoryPrincipalDirectory(
        [
            Principal(id="alice", roles=frozenset({"admin", "reader"})),
            Principal(id="bob", roles=frozenset({"reader"})),
        ]
    )


@pytest.fixture
def authenticator(verifier, directory):
    return Authenticator(verifier, directory)


@pytest.fixture
def recorder():
    return ListRecorder()


@pytest.fixture
def pipeline(limiter, authenticator, cache, recorder):
    return Pipeline(
        steps=[
            RateLimitStep(limiter),
            AuthenticateStep(authenticator),
            AuthorizeStep(),
        ],
        cache=cache,
        error_handler=ErrorHandler(recorder),
    )


@pytest.fixture
def alice_token(verifier):
    return verifier.issue("alice", ttl_seconds=300)


@pytest.fixture
def bob_token(verifier):
    return verifier.issue("bob", ttl_seconds=300)


def _make_request(path="/", method="GET", token=None, client="10.0.0.1", **kwargs):
    headers = dict(kwargs.pop("headers", {}))
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    return Request(method=method, path=path, headers=headers, client=client, **kwargs)


@pytest.fixture
def make_request():
    return _make_request
