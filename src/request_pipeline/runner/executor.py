# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Executor for running one request through a configured pipeline.

Orchestrates the full flow:
1. Load the handler module
2. Build the Pipeline (limiter, authenticator, cache, routes)
3. Run the request through the chain
4. Return the response as a structured result
"""

from __future__ import annotations

import json
import logging

from request_pipeline._internal.clock import Clock
from request_pipeline.cache.base import CacheStore
from request_pipeline.context import Request, Response
from request_pipeline.exceptions import PipelineError

from .factory import PipelineFactory
from .handler import load_module
from .schema import RequestSchema, RunnerInput, RunnerOutput

logger = logging.getLogger(__name__)


class Executor:
    """Runs a request with a pipeline built from configuration.

    The executor is designed for dependency injection to support testing.
    Pass a clock or a cache to the constructor to override creation.

    Example:
        executor = Executor()
        output = await executor.execute(input_data)

        # For testing with a shared cache:
        cache = InMemoryCacheStore()
        executor = Executor(cache=cache)
    """

    def __init__(self, *, clock: Clock | None = None, cache: CacheStore | None = None) -> None:
        self._clock = clock
        self._injected_cache = cache

    async def execute(self, input_data: RunnerInput) -> RunnerOutput:
        """Build the pipeline and run the request.

        Library faults (bad configuration, unloadable handlers) become a 500
        output naming the fault; request failures are already responses.
        """
        try:
            return await self._execute_internal(input_data)
        except PipelineError as e:
            logger.error("Pipeline could not run: %s", e)
            return RunnerOutput(
                status=500,
                body={"error": type(e).__name__, "message": str(e)},
            )

    async def _execute_internal(self, input_data: RunnerInput) -> RunnerOutput:
        module = load_module(input_data.handler_path, input_data.work_dir)
        factory = PipelineFactory(clock=self._clock, cache=self._injected_cache)
        pipeline = factory.build(input_data.config, module)

        try:
            response = await pipeline.handle(self._build_request(input_data.request))
            return self._to_output(response)
        finally:
            # Only close what we created
            if self._injected_cache is None:
                await pipeline.close()

    @staticmethod
    def _build_request(schema: RequestSchema) -> Request:
        return Request(
            method=schema.method,
            path=schema.path,
            headers=schema.headers,
            body=schema.body.encode(),
            client=schema.client,
        )

    @staticmethod
    def _to_output(response: Response) -> RunnerOutput:
        return RunnerOutput(
            status=response.status,
            headers=dict(response.headers),
            body=json.loads(response.json()),
        )
