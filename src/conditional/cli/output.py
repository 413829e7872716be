"""Output formatting utilities for the conditional CLI."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

__all__ = [
    "OutputFormat",
    "format_error",
    "format_success",
    "format_json",
]


class OutputFormat(str, Enum):
    """Supported output formats for CLI commands."""

    TEXT = "text"
    JSON = "json"


def format_error(
    message: str, details: list[str] | None = None, suggestion: str | None = None
) -> str:
    """Format an error message with optional details and suggestion.

    Example:
        >>> print(format_error(
        ...     "Expression is invalid",
        ...     details=["Unknown function 'math:maxx'"],
        ...     suggestion="Run 'conditional functions'",
        ... ))
        Error: Expression is invalid
          Unknown function 'math:maxx'
        Suggestion: Run 'conditional functions'
    """
    lines = [f"Error: {message}"]

    if details:
        for detail in details:
            lines.append(f"  {detail}")

    if suggestion:
        lines.append(f"Suggestion: {suggestion}")

    return "\n".join(lines)


def format_success(message: str) -> str:
    """Format a success message.

    Example:
        >>> format_success("Expression is valid")
        'Success: Expression is valid'
    """
    return f"Success: {message}"


def format_json(data: Any) -> str:
    """Format data as indented JSON.

    Raises:
        TypeError: If data is not JSON-serializable.
    """
    return json.dumps(data, indent=2)
