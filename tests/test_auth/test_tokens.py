"""Tests for HmacTokenVerifier."""

import json

import jwt
import pytest

from request_pipeline import AuthError, HmacTokenVerifier, PipelineConfigError
from request_pipeline.auth.tokens import ALGORITHM, SECRET_ENV_VAR

OTHER_SECRET = "another-secret-0123456789abcdefghij"


async def test_issue_and_verify(verifier, clock):
    token = verifier.issue("alice", roles=["admin"], ttl_seconds=60, tenant="acme")
    verified = await verifier.verify(token)

    assert verified.subject == "alice"
    assert verified.expires_at.timestamp() == pytest.approx(clock.now().timestamp() + 60)
    assert verified.claims["roles"] == ["admin"]
    assert verified.claims["tenant"] == "acme"
    assert "sub" not in verified.claims


async def test_issued_token_is_standard_jwt(verifier, secret):
    token = verifier.issue("alice", ttl_seconds=60)

    assert jwt.get_unverified_header(token)["alg"] == "HS256"
    payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"verify_exp": False})
    assert payload["sub"] == "alice"


async def test_expired_at_exact_boundary(verifier, clock):
    token = verifier.issue("alice", ttl_seconds=60)
    clock.advance(60)
    with pytest.raises(AuthError) as exc_info:
        await verifier.verify(token)
    assert exc_info.value.reason == AuthError.INVALID_OR_EXPIRED


async def test_leeway(clock, secret):
    lenient = HmacTokenVerifier(secret, clock=clock, leeway_seconds=30)
    token = lenient.issue("alice", ttl_seconds=60)
    clock.advance(75)
    assert (await lenient.verify(token)).subject == "alice"
    clock.advance(15)
    with pytest.raises(AuthError):
        await lenient.verify(token)


async def test_wrong_secret(verifier, clock):
    other = HmacTokenVerifier(OTHER_SECRET, clock=clock)
    with pytest.raises(AuthError) as exc_info:
        await verifier.verify(other.issue("alice"))
    assert exc_info.value.reason == AuthError.INVALID_OR_EXPIRED


async def test_unsigned_token_rejected(verifier, clock):
    token = jwt.encode(
        {"sub": "alice", "exp": clock.now().timestamp() + 60}, None, algorithm="none"
    )
    with pytest.raises(AuthError):
        await verifier.verify(token)


@pytest.mark.parametrize("token", ["abc", "a.b", "a.b.c.d", "abc.def.ghi"])
async def test_garbage_tokens(verifier, token):
    with pytest.raises(AuthError) as exc_info:
        await verifier.verify(token)
    assert exc_info.value.reason == AuthError.INVALID_OR_EXPIRED


@pytest.mark.parametrize(
    "payload",
    [
        {"exp": 2_000_000_000},
        {"sub": "", "exp": 2_000_000_000},
        {"sub": "alice"},
        {"sub": "alice", "exp": True},
        {"sub": "alice", "exp": "tomorrow"},
    ],
)
async def test_bad_claims(verifier, secret, payload):
    token = jwt.encode(payload, secret, algorithm=ALGORITHM)
    with pytest.raises(AuthError) as exc_info:
        await verifier.verify(token)
    assert exc_info.value.reason == AuthError.INVALID_OR_EXPIRED


async def test_payload_not_an_object(verifier, secret):
    token = jwt.PyJWS().encode(json.dumps(["alice"]).encode(), secret, algorithm=ALGORITHM)
    with pytest.raises(AuthError):
        await verifier.verify(token)


async def test_secret_from_environment(monkeypatch, clock):
    monkeypatch.setenv(SECRET_ENV_VAR, OTHER_SECRET)
    env_verifier = HmacTokenVerifier(clock=clock)
    explicit = HmacTokenVerifier(OTHER_SECRET, clock=clock)
    assert (await explicit.verify(env_verifier.issue("bob"))).subject == "bob"


def test_missing_secret(monkeypatch):
    monkeypatch.delenv(SECRET_ENV_VAR, raising=False)
    with pytest.raises(PipelineConfigError):
        HmacTokenVerifier()


async def test_verified_claims_are_read_only(verifier):
    verified = await verifier.verify(verifier.issue("alice", tenant="acme"))
    with pytest.raises(TypeError):
        verified.claims["tenant"] = "other"
