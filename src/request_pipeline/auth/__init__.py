"""Authentication: credential extraction, token verification, principal lookup."""

from request_pipeline.auth.authenticator import Authenticator, authorize, extract_credential
from request_pipeline.auth.base import PrincipalResolver, TokenVerifier, VerifiedToken
from request_pipeline.auth.directory import HttpPrincipalResolver, InMemoryPrincipalDirectory
from request_pipeline.auth.tokens import HmacTokenVerifier

__all__ = [
    "Authenticator",
    "HmacTokenVerifier",
    "HttpPrincipalResolver",
    "InMemoryPrincipalDirectory",
    "PrincipalResolver",
    "TokenVerifier",
    "VerifiedToken",
    "authorize",
    "extract_credential",
]
