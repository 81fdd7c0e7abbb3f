# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Runner submodule for executing a request through a configured pipeline.

Usage:
    python -m request_pipeline.runner < input.json

Exports:
    Executor: Builds the pipeline and runs one request
    PipelineFactory: Creates a Pipeline from configuration
    RunnerInput: Input schema
    RunnerOutput: Output schema
"""

from .executor import Executor
from .factory import PipelineFactory, PipelineFactoryError
from .handler import load_module, resolve_handler
from .schema import (
    AuthConfigSchema,
    CacheConfigSchema,
    PipelineConfigSchema,
    PrincipalSchema,
    RateLimitConfigSchema,
    RequestSchema,
    RouteConfigSchema,
    RunnerInput,
    RunnerOutput,
)

__all__ = [
    "AuthConfigSchema",
    "CacheConfigSchema",
    "Executor",
    "PipelineConfigSchema",
    "PipelineFactory",
    "PipelineFactoryError",
    "PrincipalSchema",
    "RateLimitConfigSchema",
    "RequestSchema",
    "RouteConfigSchema",
    "RunnerInput",
    "RunnerOutput",
    "load_module",
    "resolve_handler",
]
