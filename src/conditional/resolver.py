"""Namespace resolution for condition expressions.

Turns the variable references discovered in an expression into concrete
values, reading only what the expression needs from the host context:

- ``runtime``: the named runtime argument. A missing argument is fatal.
- ``token``: record counts for the named stage. A stage without statistics
  (not run yet, skipped, or unknown) resolves to all-zero counts.
- ``global``: pipeline metadata, populated once however often it is
  referenced.

Any other root identifier is rejected.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from conditional.expressions.catalog import VariableReference
from conditional.expressions.errors import (
    MissingRuntimeArgumentError,
    ResolutionError,
    UnresolvedNamespaceError,
)
from conditional.logging import get_logger

__all__ = [
    "StageStatistics",
    "PipelineMetadata",
    "ConditionContext",
    "StaticConditionContext",
    "NamespaceBindings",
    "resolve",
]

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StageStatistics:
    """Record counts reported by the host for one pipeline stage.

    Attributes:
        input_records: Records the stage received.
        output_records: Records the stage emitted.
        error_records: Records the stage sent to its error output.
    """

    input_records: int = 0
    output_records: int = 0
    error_records: int = 0

    def as_token(self) -> dict[str, int]:
        return {
            "input": self.input_records,
            "output": self.output_records,
            "error": self.error_records,
        }


@dataclass(frozen=True, slots=True)
class PipelineMetadata:
    """Fixed metadata about the running pipeline.

    Attributes:
        pipeline: Pipeline name.
        namespace: Namespace the pipeline runs in.
        logical_start_time: Logical start time of the run, epoch millis.
        stage: Name of the condition stage being evaluated.
    """

    pipeline: str
    namespace: str
    logical_start_time: int
    stage: str

    def as_global(self) -> dict[str, Any]:
        return {
            "pipeline": self.pipeline,
            "namespace": self.namespace,
            "logical_start_time": self.logical_start_time,
            "plugin": self.stage,
        }


@runtime_checkable
class ConditionContext(Protocol):
    """What the host must provide for a condition to be evaluated.

    Any object with these methods satisfies the protocol; no inheritance is
    required.
    """

    def has_argument(self, name: str) -> bool:
        """Return True if the runtime argument ``name`` is set."""
        ...

    def get_argument(self, name: str) -> Any:
        """Return the value of runtime argument ``name``."""
        ...

    def stage_statistics(self, stage: str) -> StageStatistics | None:
        """Return statistics for ``stage``, or None if there are none."""
        ...

    def pipeline_metadata(self) -> PipelineMetadata:
        """Return metadata about the running pipeline."""
        ...


@dataclass(frozen=True)
class StaticConditionContext:
    """In-memory ``ConditionContext`` built from plain values.

    Used by the CLI and handy in tests.
    """

    arguments: Mapping[str, Any] = field(default_factory=dict)
    statistics: Mapping[str, StageStatistics] = field(default_factory=dict)
    metadata: PipelineMetadata = field(
        default_factory=lambda: PipelineMetadata(
            pipeline="", namespace="default", logical_start_time=0, stage=""
        )
    )

    def has_argument(self, name: str) -> bool:
        return name in self.arguments

    def get_argument(self, name: str) -> Any:
        return self.arguments[name]

    def stage_statistics(self, stage: str) -> StageStatistics | None:
        return self.statistics.get(stage)

    def pipeline_metadata(self) -> PipelineMetadata:
        return self.metadata


@dataclass(frozen=True)
class NamespaceBindings(Mapping[str, Mapping[str, Any]]):
    """Values bound to the three namespaces for a single evaluation.

    Behaves as a read-only mapping from namespace name to its values, which
    is what ``ExpressionEngine.evaluate`` expects.
    """

    runtime: dict[str, Any] = field(default_factory=dict)
    token: dict[str, dict[str, Any]] = field(default_factory=dict)
    global_: dict[str, Any] = field(default_factory=dict)

    def _namespaces(self) -> dict[str, Mapping[str, Any]]:
        return {"runtime": self.runtime, "token": self.token, "global": self.global_}

    def __getitem__(self, key: str) -> Mapping[str, Any]:
        return self._namespaces()[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._namespaces())

    def __len__(self) -> int:
        return 3


def resolve(
    references: Iterable[VariableReference],
    context: ConditionContext,
    expression: str | None = None,
) -> NamespaceBindings:
    """Build fresh namespace bindings for ``references``.

    Args:
        references: Variable references from ``extract_variables``.
        context: Host context to read arguments, statistics and metadata from.
        expression: Source text, used only in error messages.

    Returns:
        Bindings holding exactly the values the references need.

    Raises:
        MissingRuntimeArgumentError: A referenced runtime argument is not set.
        UnresolvedNamespaceError: A reference's root is not ``runtime``,
            ``token`` or ``global``.
        ResolutionError: A ``runtime`` or ``token`` reference has no key.
    """
    bindings = NamespaceBindings()

    for reference in sorted(references):
        namespace = reference[0]
        if namespace == "runtime":
            name = _key(reference, "runtime argument name", expression)
            if not context.has_argument(name):
                raise MissingRuntimeArgumentError(name, expression=expression)
            bindings.runtime[name] = context.get_argument(name)
        elif namespace == "token":
            stage = _key(reference, "stage name", expression)
            if stage in bindings.token:
                continue
            statistics = context.stage_statistics(stage)
            if statistics is None:
                logger.debug("stage_statistics_missing", stage=stage)
                statistics = StageStatistics()
            bindings.token[stage] = statistics.as_token()
        elif namespace == "global":
            if not bindings.global_:
                bindings.global_.update(context.pipeline_metadata().as_global())
        else:
            raise UnresolvedNamespaceError(
                namespace, reference=reference, expression=expression
            )

    return bindings


def _key(reference: VariableReference, what: str, expression: str | None) -> str:
    if len(reference) < 2:
        raise ResolutionError(
            f"Map variable '{reference[0]}' must be indexed with a literal "
            f"{what}, e.g. {reference[0]}['name']",
            reference=reference,
            expression=expression,
        )
    return reference[1]
