# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Entry point for the pipeline runner.

Usage:
    python -m request_pipeline.runner < input.json > output.json

The runner reads JSON input from stdin, runs the request through the
configured pipeline, and writes the response as JSON to stdout.

Exit codes:
    0: The response status is below 400
    1: Error response, or the input could not be processed
"""

from __future__ import annotations

import asyncio
import logging
import sys

from pydantic import ValidationError

from .executor import Executor
from .schema import RunnerInput, RunnerOutput


def main() -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)
    try:
        input_data = RunnerInput.model_validate_json(sys.stdin.read())
    except ValidationError as e:
        output = RunnerOutput(
            status=400,
            body={"error": "InvalidRunnerInput", "details": e.errors(include_url=False)},
        )
        print(output.model_dump_json())
        return 1

    output = asyncio.run(Executor().execute(input_data))
    print(output.model_dump_json())
    return 0 if output.status < 400 else 1


if __name__ == "__main__":
    sys.exit(main())
