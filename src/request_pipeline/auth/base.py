"""Capability contracts the Authenticator depends on."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from request_pipeline.context import Principal


@dataclass(frozen=True)
class VerifiedToken:
    """What a verifier learned from a valid token.

    Attributes:
        subject:    Identity the token was issued to.
        expires_at: Token expiry, if the token carries one.
        claims:     Remaining verified claims.
    """

    subject: str
    expires_at: datetime | None = None
    claims: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))


@runtime_checkable
class TokenVerifier(Protocol):
    """Checks a token's signature and lifetime.

    Must raise :class:`~request_pipeline.exceptions.AuthError` with reason
    ``invalid_or_expired`` for bad or expired tokens.  Any other exception
    is treated as a collaborator failure.
    """

    async def verify(self, token: str) -> VerifiedToken: ...


@runtime_checkable
class PrincipalResolver(Protocol):
    """Looks up the full principal for a verified subject.

    Returns ``None`` when the subject no longer exists.
    """

    async def resolve(self, subject: str) -> Principal | None: ...
