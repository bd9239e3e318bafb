"""Dynamic import utilities for dbsink."""

import importlib
from types import ModuleType
from typing import Any


def load_class(class_path: str) -> type[Any]:
    """
    Load a class from a class path string.

    Args:
        class_path: String in format "package.module:ClassName"
                    Examples:
                    - "mypackage.drivers:OracleDriver"
                    - "tests.fixtures.fake_driver:RecordingDriver"

    Returns:
        The class object (not an instance)

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the class is not found in the module
        ValueError: If the class_path format is invalid
        TypeError: If the attribute is not a class
    """
    if ":" not in class_path:
        raise ValueError(
            f"Invalid class path format: '{class_path}'. Expected 'package.module:ClassName'"
        )

    module_name, class_name = class_path.rsplit(":", 1)
    module = load_module(module_name)

    try:
        cls = getattr(module, class_name)
    except AttributeError as e:
        raise AttributeError(
            f"Class '{class_name}' not found in module '{module_name}'. "
            f"Available: {[n for n in dir(module) if not n.startswith('_')]}"
        ) from e

    if not isinstance(cls, type):
        raise TypeError(f"'{class_path}' refers to {type(cls).__name__}, not a class")

    return cls


def load_module(module_name: str) -> ModuleType:
    """
    Import a module by dotted name.

    Raises:
        ImportError: If the module cannot be imported
    """
    try:
        return importlib.import_module(module_name)
    except ImportError as e:
        raise ImportError(f"Failed to import module '{module_name}': {e}") from e
