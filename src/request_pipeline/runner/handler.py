# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Dynamic loading of user-defined handler modules.

Loads a Python file at runtime so that routes in the configuration can
reference its functions by name.
"""

from __future__ import annotations

import importlib.util
import sys
from collections.abc import Callable
from pathlib import Path
from types import ModuleType
from typing import Any, cast

from request_pipeline.exceptions import HandlerLoadError

_MODULE_NAME = "pipeline_handlers"


def load_module(handler_path: str, work_dir: str = "") -> ModuleType:
    """Import the handler file at *handler_path*.

    Args:
        handler_path: Path to a ``.py`` file defining handler functions
        work_dir: Directory added to ``sys.path`` for the module's own imports

    Returns:
        The loaded module

    Raises:
        HandlerLoadError: If the file is missing or fails to import
    """
    path = Path(handler_path)

    if not path.exists():
        raise HandlerLoadError(f"Handler file not found: {handler_path}")

    if not path.is_file():
        raise HandlerLoadError(f"Handler path is not a file: {handler_path}")

    if path.suffix != ".py":
        raise HandlerLoadError(f"Handler must be a .py file: {handler_path}")

    if work_dir and work_dir not in sys.path:
        sys.path.insert(0, work_dir)

    try:
        spec = importlib.util.spec_from_file_location(_MODULE_NAME, handler_path)
        if spec is None or spec.loader is None:
            raise HandlerLoadError(f"Cannot create module spec: {handler_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[_MODULE_NAME] = module
        spec.loader.exec_module(module)
        return module

    except HandlerLoadError:
        raise
    except SyntaxError as e:
        raise HandlerLoadError(f"Syntax error in handler: {e}") from e
    except ImportError as e:
        raise HandlerLoadError(f"Import error in handler: {e}") from e
    except Exception as e:
        raise HandlerLoadError(f"Failed to load handler: {e}") from e


def resolve_handler(module: ModuleType, name: str) -> Callable[..., Any]:
    """Return the callable called *name* from *module*.

    Raises:
        HandlerLoadError: If the attribute is missing or not callable
    """
    if not hasattr(module, name):
        available = sorted(
            attr
            for attr, value in vars(module).items()
            if not attr.startswith("_") and callable(value)
        )
        raise HandlerLoadError(
            f"Handler module does not define '{name}' (callables: {', '.join(available) or 'none'})"
        )

    handler = getattr(module, name)
    if not callable(handler):
        raise HandlerLoadError(f"'{name}' must be callable")

    return cast(Callable[..., Any], handler)
