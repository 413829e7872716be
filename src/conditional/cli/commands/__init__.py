"""CLI commands."""

from __future__ import annotations

from conditional.cli.commands.evaluate import evaluate
from conditional.cli.commands.expression import functions, validate, variables

__all__ = ["evaluate", "functions", "validate", "variables"]
