"""Principal directories — where verified subjects are looked up."""

from __future__ import annotations

import os
import threading
from datetime import datetime
from typing import Any

import httpx

from request_pipeline.context import Principal
from request_pipeline.exceptions import ConflictError, InternalError, NotFoundError

DIRECTORY_URL_ENV_VAR = "PIPELINE_DIRECTORY_URL"


class InMemoryPrincipalDirectory:
    """Dict-backed principal store with a lookup/create/delete contract.

    Usable directly as a :class:`~request_pipeline.auth.base.PrincipalResolver`.
    """

    def __init__(self, principals: list[Principal] | None = None) -> None:
        self._lock = threading.Lock()
        self._principals: dict[str, Principal] = {}
        for principal in principals or []:
            self._principals[principal.id] = principal

    async def resolve(self, subject: str) -> Principal | None:
        return self.get(subject)

    def get(self, principal_id: str) -> Principal | None:
        with self._lock:
            return self._principals.get(principal_id)

    def create(self, principal: Principal) -> Principal:
        """Add *principal*.  Raises :class:`ConflictError` on a duplicate id."""
        with self._lock:
            if principal.id in self._principals:
                raise ConflictError(
                    f"Principal '{principal.id}' already exists",
                    details={"id": "already exists"},
                )
            self._principals[principal.id] = principal
        return principal

    def delete(self, principal_id: str) -> None:
        """Remove a principal.  Raises :class:`NotFoundError` if it is unknown."""
        with self._lock:
            if self._principals.pop(principal_id, None) is None:
                raise NotFoundError(f"Principal '{principal_id}' does not exist")

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._principals)


class HttpPrincipalResolver:
    """Resolves principals from a remote directory service over HTTP.

    Calls ``GET {base_url}/principals/{subject}`` and expects a JSON body
    ``{"id": ..., "roles": [...], "expires_at": <ISO-8601, optional>}``.

    Parameters:
        base_url:  Directory API base URL.  Falls back to the
                   ``PIPELINE_DIRECTORY_URL`` environment variable.
        api_token: Bearer token sent to the directory, if any.
        timeout:   HTTP request timeout in seconds.
        client:    Pre-built ``httpx.AsyncClient`` (connection reuse, tests).
                   When omitted a client is opened per lookup.

    A 404 means the principal does not exist.  Any other failure is a
    collaborator failure and raises :class:`InternalError`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        api_token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        resolved_url = base_url or os.getenv(DIRECTORY_URL_ENV_VAR, "")
        self._base_url = resolved_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout
        self._client = client

    async def resolve(self, subject: str) -> Principal | None:
        if not self._base_url:
            raise InternalError(
                f"Directory URL not configured (set base_url or {DIRECTORY_URL_ENV_VAR})",
                reason="collaborator",
            )

        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        url = f"{self._base_url}/principals/{subject}"

        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers, timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, headers=headers, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            raise InternalError(
                f"Directory lookup timed out after {self._timeout} seconds",
                reason="collaborator",
            ) from exc
        except httpx.HTTPError as exc:
            raise InternalError(f"Could not reach directory: {exc}", reason="collaborator") from exc

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise InternalError(
                f"Directory lookup failed: HTTP {response.status_code}", reason="collaborator"
            )

        try:
            return self._parse(response.json())
        except (ValueError, TypeError, KeyError) as exc:
            raise InternalError(
                f"Directory returned an unreadable principal: {exc}", reason="collaborator"
            ) from exc

    @staticmethod
    def _parse(data: Any) -> Principal:
        principal_id = data["id"]
        if not isinstance(principal_id, str) or not principal_id:
            raise ValueError("principal id must be a non-empty string")
        roles = data.get("roles") or []
        if not isinstance(roles, list):
            raise TypeError("roles must be a list")
        expires_at = data.get("expires_at")
        return Principal(
            id=principal_id,
            roles=frozenset(str(role) for role in roles),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            claims={k: v for k, v in data.items() if k not in ("id", "roles", "expires_at")},
        )
