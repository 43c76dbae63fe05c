"""
Error types raised by the OData OpenAPI library.
"""

from typing import Any


class InvalidArgumentError(ValueError):
    """A required input was missing or could not be resolved against the model."""


def check_argument_null(value: Any, name: str) -> Any:
    """Raise InvalidArgumentError if value is None, otherwise return it."""
    if value is None:
        raise InvalidArgumentError(f"Argument '{name}' must not be None")
    return value
