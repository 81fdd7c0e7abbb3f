"""HmacTokenVerifier — HS256 JSON Web Tokens signed with a shared secret.

Signing and signature checks go through PyJWT.  Expiry is checked against
the injected clock rather than PyJWT's wall clock, so ``exp`` verification
is switched off in :func:`jwt.decode` and applied here with the leeway.
The payload carries ``sub``, ``iat``, ``exp`` and optional ``roles`` plus
any extra claims given to :meth:`HmacTokenVerifier.issue`.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

import jwt

from request_pipeline._internal.clock import Clock, SystemClock, timestamp
from request_pipeline.auth.base import VerifiedToken
from request_pipeline.exceptions import AuthError, PipelineConfigError

SECRET_ENV_VAR = "PIPELINE_TOKEN_SECRET"

ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "require": ["sub", "exp"],
}


class HmacTokenVerifier:
    """Issues and verifies HMAC-signed JWTs.

    Parameters:
        secret:         Signing key.  Falls back to the
                        ``PIPELINE_TOKEN_SECRET`` environment variable.
        clock:          Injectable clock for testing expiry.
        leeway_seconds: Grace period applied to ``exp``.
    """

    def __init__(
        self,
        secret: str | None = None,
        *,
        clock: Clock | None = None,
        leeway_seconds: float = 0,
    ) -> None:
        resolved = secret or os.getenv(SECRET_ENV_VAR, "")
        if not resolved:
            raise PipelineConfigError(
                "token verifier", f"no secret given (pass secret or set {SECRET_ENV_VAR})"
            )
        self._secret = resolved
        self._clock = clock or SystemClock()
        self._leeway = leeway_seconds

    def issue(
        self,
        subject: str,
        *,
        roles: tuple[str, ...] | list[str] = (),
        ttl_seconds: float = 3600,
        **claims: Any,
    ) -> str:
        now = timestamp(self._clock)
        payload = {
            **claims,
            "sub": subject,
            "iat": int(now),
            "exp": now + ttl_seconds,
        }
        if roles:
            payload["roles"] = list(roles)
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    async def verify(self, token: str) -> VerifiedToken:
        try:
            payload = jwt.decode(
                token, self._secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError(AuthError.INVALID_OR_EXPIRED, "Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError(AuthError.INVALID_OR_EXPIRED, f"Token rejected: {exc}") from exc

        subject = payload.get("sub")
        exp = payload.get("exp")
        if not isinstance(subject, str) or not subject:
            raise AuthError(AuthError.INVALID_OR_EXPIRED, "Token has no subject")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise AuthError(AuthError.INVALID_OR_EXPIRED, "Token has no expiry")
        if exp + self._leeway <= timestamp(self._clock):
            raise AuthError(AuthError.INVALID_OR_EXPIRED, "Token has expired")

        claims = {k: v for k, v in payload.items() if k not in ("sub", "exp")}
        return VerifiedToken(
            subject=subject,
            expires_at=datetime.fromtimestamp(exp, tz=UTC),
            claims=claims,
        )
