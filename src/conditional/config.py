"""Run-file configuration for evaluating conditions outside a host.

A run file is a YAML document describing one pipeline run: the condition,
its runtime arguments, per-stage statistics and pipeline metadata.

    expression: "token['Loader']['error'] > runtime['max_error']"
    arguments:
      max_error: 3
    statistics:
      Loader: {input: 100, output: 95, error: 5}
    pipeline:
      name: nightly-load
      namespace: default
      logical_start_time: 1700000000000
      stage: Check Errors

Environment variables prefixed ``CONDITIONAL_`` override values from the file
(e.g. ``CONDITIONAL_EXPRESSION``, ``CONDITIONAL_PIPELINE__NAME``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from conditional.exceptions import ConfigError
from conditional.logging import get_logger
from conditional.resolver import (
    PipelineMetadata,
    StageStatistics,
    StaticConditionContext,
)

__all__ = [
    "StageStatisticsConfig",
    "PipelineConfig",
    "RunConfig",
    "load_run_config",
]

logger = get_logger(__name__)


class StageStatisticsConfig(BaseModel):
    """Record counts for one stage."""

    input: int = Field(default=0, ge=0)
    output: int = Field(default=0, ge=0)
    error: int = Field(default=0, ge=0)

    def to_statistics(self) -> StageStatistics:
        return StageStatistics(
            input_records=self.input,
            output_records=self.output,
            error_records=self.error,
        )


class PipelineConfig(BaseModel):
    """Metadata exposed through the ``global`` namespace."""

    name: str = "pipeline"
    namespace: str = "default"
    logical_start_time: int = Field(default=0, ge=0)
    stage: str = "condition"


class RunConfig(BaseSettings):
    """One pipeline run's worth of condition inputs."""

    model_config = SettingsConfigDict(
        env_prefix="CONDITIONAL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    expression: str | None = None
    arguments: dict[str, Any] = Field(default_factory=dict)
    statistics: dict[str, StageStatisticsConfig] = Field(default_factory=dict)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment variables win over values loaded from the run file."""
        return (env_settings, init_settings)

    def to_context(self) -> StaticConditionContext:
        """Build the ``ConditionContext`` this run file describes."""
        return StaticConditionContext(
            arguments=dict(self.arguments),
            statistics={
                stage: stats.to_statistics()
                for stage, stats in self.statistics.items()
            },
            metadata=PipelineMetadata(
                pipeline=self.pipeline.name,
                namespace=self.pipeline.namespace,
                logical_start_time=self.pipeline.logical_start_time,
                stage=self.pipeline.stage,
            ),
        )


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Run file not found: {path}", field=None, value=str(path))
    try:
        with open(path) as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if loaded is None:
        logger.warning("run_file_empty", path=str(path))
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(
            f"Run file {path} must contain a mapping, got {type(loaded).__name__}"
        )
    return loaded


def load_run_config(path: Path) -> RunConfig:
    """Load a run file.

    Args:
        path: Path to the YAML run file.

    Returns:
        The validated run configuration.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or does not
            validate.
    """
    data = _read_yaml(path)
    try:
        return RunConfig(**data)
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(loc) for loc in first_error["loc"])
        raise ConfigError(
            message=f"Invalid run file: {first_error['msg']}",
            field=field,
            value=first_error.get("input"),
        ) from e
