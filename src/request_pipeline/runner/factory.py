# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Pipeline factory for building a Pipeline from configuration.

Assembles the standard chain (rate limit -> authenticate -> authorize),
the cache store and the route table.
"""

from __future__ import annotations

from types import ModuleType

from request_pipeline._internal.clock import Clock
from request_pipeline.auth import (
    Authenticator,
    HmacTokenVerifier,
    HttpPrincipalResolver,
    InMemoryPrincipalDirectory,
    PrincipalResolver,
)
from request_pipeline.cache import CacheStore, InMemoryCacheStore, SQLiteCacheStore
from request_pipeline.context import Principal
from request_pipeline.exceptions import PipelineError
from request_pipeline.pipeline import Pipeline, Route
from request_pipeline.ratelimit import FixedWindowRateLimiter
from request_pipeline.steps import AuthenticateStep, AuthorizeStep, RateLimitStep, Step

from .handler import resolve_handler
from .schema import (
    AuthConfigSchema,
    CacheConfigSchema,
    PipelineConfigSchema,
    RateLimitConfigSchema,
)


class PipelineFactoryError(PipelineError):
    """Raised when a pipeline cannot be built from configuration."""

    pass


class PipelineFactory:
    """Creates a ready-to-run :class:`Pipeline` from configuration.

    The factory is designed for dependency injection to support testing:
    pass a clock to control time in the limiter, the cache and tokens, or
    a cache to share one across pipelines.

    Example:
        factory = PipelineFactory()
        pipeline = factory.build(config, handlers_module)
        response = await pipeline.handle(request)
    """

    def __init__(self, *, clock: Clock | None = None, cache: CacheStore | None = None) -> None:
        self._clock = clock
        self._injected_cache = cache

    def build(self, config: PipelineConfigSchema, module: ModuleType) -> Pipeline:
        """Build the pipeline.

        Args:
            config: Validated pipeline configuration
            module: Module holding the handlers referenced by routes

        Raises:
            PipelineFactoryError: If any component cannot be created
        """
        try:
            steps = self.build_steps(config)
            routes = [
                Route(
                    method=rc.method,
                    path=rc.path,
                    handler=resolve_handler(module, rc.handler),
                    requires_auth=rc.requires_auth,
                    required_role=rc.required_role,
                    rate_limited=rc.rate_limited,
                    timeout_seconds=rc.timeout_seconds,
                    name=rc.handler,
                )
                for rc in config.routes
            ]
            cache = self._injected_cache
            if cache is None:
                cache = self.build_cache(config.cache)
            return Pipeline(
                steps=steps,
                routes=routes,
                cache=cache,
                timeout_seconds=config.timeout_seconds,
            )
        except PipelineFactoryError:
            raise
        except Exception as e:
            raise PipelineFactoryError(f"Failed to build pipeline: {e}") from e

    def build_steps(self, config: PipelineConfigSchema) -> list[Step]:
        """Create the standard steps in chain order."""
        steps: list[Step] = []
        if config.rate_limit is not None:
            steps.append(RateLimitStep(self.build_limiter(config.rate_limit)))
        if config.auth is not None:
            steps.append(
                AuthenticateStep(
                    self.build_authenticator(config.auth),
                    header=config.auth.header,
                    scheme=config.auth.scheme,
                )
            )
            steps.append(AuthorizeStep())
        return steps

    def build_limiter(self, config: RateLimitConfigSchema) -> FixedWindowRateLimiter:
        return FixedWindowRateLimiter(
            max_requests=config.max_requests,
            window_seconds=config.window_seconds,
            retention_seconds=config.retention_seconds,
            clock=self._clock,
        )

    def build_authenticator(self, config: AuthConfigSchema) -> Authenticator:
        verifier = HmacTokenVerifier(
            config.secret, clock=self._clock, leeway_seconds=config.leeway_seconds
        )
        resolver: PrincipalResolver
        if config.directory_url:
            resolver = HttpPrincipalResolver(config.directory_url, api_token=config.directory_token)
        else:
            resolver = InMemoryPrincipalDirectory(
                [Principal(id=p.id, roles=frozenset(p.roles)) for p in config.principals]
            )
        return Authenticator(verifier, resolver)

    def build_cache(self, config: CacheConfigSchema) -> CacheStore:
        if config.type == "sqlite":
            if not config.path:
                raise PipelineFactoryError("SQLite cache requires 'path' configuration")
            return SQLiteCacheStore(config.path, clock=self._clock)
        return InMemoryCacheStore(clock=self._clock)
