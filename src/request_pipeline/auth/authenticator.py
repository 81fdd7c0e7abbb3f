"""Authenticator — turns a bearer credential into a Principal."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING

from request_pipeline.exceptions import ApiError, AuthError, InternalError

if TYPE_CHECKING:
    from request_pipeline.auth.base import PrincipalResolver, TokenVerifier
    from request_pipeline.context import Principal

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[A-Za-z0-9._~+/=-]+")


def extract_credential(
    headers: Mapping[str, str],
    header: str = "Authorization",
    scheme: str = "Bearer",
) -> str | None:
    """Pull the raw token out of *header*.

    Returns ``None`` when the header is absent.  A present header with the
    wrong scheme or no token is malformed.
    """
    raw = headers.get(header)
    if raw is None:
        return None
    if not scheme:
        return raw.strip()
    parts = raw.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != scheme.lower():
        raise AuthError(
            AuthError.MISSING_OR_MALFORMED,
            f"{header} header must use the {scheme} scheme",
        )
    return parts[1].strip()


def authorize(principal: Principal | None, required_role: str) -> bool:
    """Return ``True`` iff *principal* holds *required_role*.

    Pure and fail-closed: a missing principal, absent or malformed roles,
    or a malformed required role all yield ``False``.
    """
    if principal is None or not isinstance(required_role, str) or not required_role:
        return False
    roles = getattr(principal, "roles", None)
    if not isinstance(roles, (set, frozenset)):
        return False
    return any(isinstance(role, str) and role == required_role for role in roles)


class Authenticator:
    """Verifies a credential and resolves the principal behind it.

    Stateless between calls.  The three failure reasons all map to the same
    external status but stay distinguishable on :attr:`AuthError.reason`.

    Parameters:
        verifier: Checks signature and expiry (see :class:`TokenVerifier`).
        resolver: Resolves a verified subject (see :class:`PrincipalResolver`).
    """

    def __init__(self, verifier: TokenVerifier, resolver: PrincipalResolver) -> None:
        self._verifier = verifier
        self._resolver = resolver

    async def authenticate(self, credential: str | None) -> Principal:
        if not credential or not _TOKEN_RE.fullmatch(credential):
            raise AuthError(AuthError.MISSING_OR_MALFORMED, "Credential is missing or malformed")

        try:
            verified = await self._verifier.verify(credential)
        except ApiError:
            raise
        except Exception as exc:
            raise InternalError(
                f"Token verifier failed: {exc}", reason="collaborator"
            ) from exc

        try:
            principal = await self._resolver.resolve(verified.subject)
        except ApiError:
            raise
        except Exception as exc:
            raise InternalError(
                f"Principal resolver failed: {exc}", reason="collaborator"
            ) from exc

        if principal is None:
            raise AuthError(
                AuthError.PRINCIPAL_NOT_FOUND,
                f"Principal '{verified.subject}' no longer exists",
            )

        if principal.expires_at is None and verified.expires_at is not None:
            principal = principal.with_expiry(verified.expires_at)

        logger.debug("Authenticated principal %s", principal.id)
        return principal
