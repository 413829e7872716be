from __future__ import annotations

import logging
import os
from collections.abc import Callable, Generator
from typing import TYPE_CHECKING, Any

import pytest

from conditional.expressions import ExpressionEngine
from conditional.resolver import (
    PipelineMetadata,
    StageStatistics,
    StaticConditionContext,
)

if TYPE_CHECKING:
    from click.testing import CliRunner


@pytest.fixture(autouse=True)
def configure_test_logging() -> Generator[None, None, None]:
    """Configure structlog for the test environment.

    Runs automatically for all tests so that log output goes to stderr at
    WARNING level and never mixes with CLI stdout.
    """
    from conditional.logging import configure_logging

    configure_logging(level=logging.WARNING)
    yield


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove all CONDITIONAL_ environment variables for clean testing."""
    original_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("CONDITIONAL_"):
            del os.environ[key]
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def engine() -> ExpressionEngine:
    """A fresh engine with an empty compile cache."""
    return ExpressionEngine()


@pytest.fixture
def metadata() -> PipelineMetadata:
    return PipelineMetadata(
        pipeline="nightly-load",
        namespace="analytics",
        logical_start_time=1700000000000,
        stage="Check Errors",
    )


@pytest.fixture
def make_context(
    metadata: PipelineMetadata,
) -> Callable[..., StaticConditionContext]:
    """Build a StaticConditionContext from plain values.

    Example:
        >>> ctx = make_context(arguments={"x": 1}, statistics={"A": (10, 8, 2)})
    """

    def _make(
        arguments: dict[str, Any] | None = None,
        statistics: dict[str, tuple[int, int, int]] | None = None,
    ) -> StaticConditionContext:
        return StaticConditionContext(
            arguments=arguments or {},
            statistics={
                stage: StageStatistics(*counts)
                for stage, counts in (statistics or {}).items()
            },
            metadata=metadata,
        )

    return _make


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner.

    Example:
        >>> def test_version(cli_runner):
        ...     from conditional.main import cli
        ...     result = cli_runner.invoke(cli, ["--version"])
        ...     assert result.exit_code == 0
    """
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def run_file_yaml() -> str:
    """Sample run file content."""
    return """
expression: "token['Loader']['error'] > runtime['max_error']"
arguments:
  max_error: 3
statistics:
  Loader:
    input: 100
    output: 95
    error: 5
pipeline:
  name: nightly-load
  namespace: analytics
  logical_start_time: 1700000000000
  stage: Check Errors
"""
