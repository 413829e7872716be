"""Conditional exception hierarchy.

All exceptions can be imported from this package:
    from conditional.exceptions import ConditionalError, ConfigError

Expression-specific errors live in ``conditional.expressions.errors`` and
derive from ``ConditionalError`` as well.
"""

from __future__ import annotations

from conditional.exceptions.base import ConditionalError
from conditional.exceptions.config import ConfigError

__all__ = [
    "ConditionalError",
    "ConfigError",
]
