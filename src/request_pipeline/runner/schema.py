# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Data transfer objects for runner configuration, input and output.

These Pydantic models define the JSON contract of
``python -m request_pipeline.runner``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, PositiveFloat, field_validator, model_validator


class RateLimitConfigSchema(BaseModel):
    """Fixed-window limiter settings.

    Attributes:
        max_requests: Requests allowed per window
        window_seconds: Window length in seconds
        retention_seconds: Idle time before a bucket is dropped
    """

    max_requests: int = Field(ge=1)
    window_seconds: float = Field(gt=0)
    retention_seconds: float | None = None


class PrincipalSchema(BaseModel):
    """A principal seeded into the in-memory directory.

    Attributes:
        id: Principal identifier (token subject)
        roles: Granted roles
    """

    id: str = Field(min_length=1)
    roles: list[str] = Field(default_factory=list)


class AuthConfigSchema(BaseModel):
    """Authentication settings.

    Attributes:
        secret: HMAC signing secret (falls back to PIPELINE_TOKEN_SECRET)
        header: Header carrying the bearer credential
        scheme: Auth scheme expected in the header
        leeway_seconds: Grace period for token expiry
        principals: Principals for the in-memory directory
        directory_url: Remote directory base URL; when set, principals are
            resolved over HTTP instead of from ``principals``
        directory_token: Bearer token for the remote directory
    """

    secret: str | None = None
    header: str = "Authorization"
    scheme: str = "Bearer"
    leeway_seconds: float = 0
    principals: list[PrincipalSchema] = Field(default_factory=list)
    directory_url: str | None = None
    directory_token: str | None = None


class CacheConfigSchema(BaseModel):
    """Cache store configuration.

    Attributes:
        type: Store type ("memory" or "sqlite")
        path: Path to SQLite database file (for sqlite type)
    """

    type: Literal["memory", "sqlite"] = "memory"
    path: str = ""


class RouteConfigSchema(BaseModel):
    """A route bound to a handler function in the handler module.

    Attributes:
        method: Request method
        path: Exact request path
        handler: Name of the function in the handler module
        requires_auth: Authenticate requests to this route
        required_role: Role required to call this route
        rate_limited: Whether the rate limit applies
        timeout_seconds: Per-route deadline
    """

    method: str = "GET"
    path: str
    handler: str
    requires_auth: bool = False
    required_role: str | None = None
    rate_limited: bool = True
    timeout_seconds: PositiveFloat | None = None

    @field_validator("path")
    @classmethod
    def _path_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("route path must start with '/'")
        return value


class PipelineConfigSchema(BaseModel):
    """Complete pipeline configuration.

    Attributes:
        rate_limit: Limiter settings; omit to disable rate limiting
        auth: Authentication settings; required if any route needs auth
        cache: Cache store settings
        timeout_seconds: Default per-request deadline
        routes: Route table
    """

    rate_limit: RateLimitConfigSchema | None = None
    auth: AuthConfigSchema | None = None
    cache: CacheConfigSchema = Field(default_factory=CacheConfigSchema)
    timeout_seconds: PositiveFloat | None = 30.0
    routes: list[RouteConfigSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def _auth_configured_for_protected_routes(self) -> PipelineConfigSchema:
        protected = [r.path for r in self.routes if r.requires_auth or r.required_role]
        if protected and self.auth is None:
            raise ValueError(f"routes {protected} require auth but no 'auth' section is configured")
        return self


class RequestSchema(BaseModel):
    """The inbound request to run.

    Attributes:
        method: Request method
        path: Request path
        headers: Request headers
        body: Request body as text
        client: Caller address
    """

    method: str = "GET"
    path: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    client: str = ""


class RunnerInput(BaseModel):
    """Complete runner input via stdin.

    Attributes:
        config: Pipeline configuration
        request: Request to process
        handler_path: Absolute path to the handler module
        work_dir: Working directory for the handler
    """

    config: PipelineConfigSchema
    request: RequestSchema
    handler_path: str
    work_dir: str = ""


class RunnerOutput(BaseModel):
    """Complete runner output via stdout.

    The runner always outputs valid JSON matching this schema, even when
    the pipeline cannot be built.

    Attributes:
        status: Response status code
        headers: Response headers
        body: Response body
    """

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
