"""Host-facing entry points for pipeline conditions.

A host pipeline platform uses a condition in two places:

- at deployment time it calls ``validate`` so that a broken expression is
  reported against the ``expression`` property before anything runs;
- at run time it calls ``evaluate`` (or ``Condition.apply``) and uses the
  boolean to decide whether the downstream branch executes.

Example:
    ```python
    condition = Condition(
        ConditionConfig(expression="token['Data Quality']['error'] > 0")
    )
    failures = condition.validate()       # [] when the expression compiles
    run_branch = condition.apply(context)  # context: ConditionContext
    ```
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from conditional.exceptions import ConditionalError
from conditional.expressions import (
    EXPRESSION_PROPERTY,
    CompileError,
    ExpressionEngine,
)
from conditional.logging import get_logger
from conditional.resolver import ConditionContext, resolve

__all__ = [
    "ConditionConfig",
    "ValidationFailure",
    "ConditionValidationError",
    "Condition",
    "validate",
    "evaluate",
]

logger = get_logger(__name__)

_MACRO_PATTERN = re.compile(r"\$\{[^}]*\}")


class ConditionConfig(BaseModel):
    """Configuration for a condition stage.

    Attributes:
        expression: The condition. Variables may reference runtime arguments
            (``runtime``), statistics of stages before the condition
            (``token``) and pipeline metadata (``global``). Example:
            ``((token['Data Quality']['error'] / token['File']['output']) * 100)
            > runtime['error_percentage']``
    """

    model_config = ConfigDict(frozen=True)

    expression: str | None = Field(
        default=None,
        description="Boolean expression controlling pipeline execution.",
    )

    def contains_macro(self) -> bool:
        """True if the expression still holds an unexpanded ``${...}`` macro."""
        return bool(self.expression) and bool(
            _MACRO_PATTERN.search(self.expression or "")
        )


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    """A configuration problem attached to the property that caused it.

    Attributes:
        message: Human-readable description.
        config_property: Configuration property to report it against.
    """

    message: str
    config_property: str = EXPRESSION_PROPERTY


class ConditionValidationError(ConditionalError):
    """Raised by ``Condition.apply`` when the configuration does not validate.

    Attributes:
        failures: Every failure that was collected.
    """

    def __init__(self, failures: list[ValidationFailure]) -> None:
        self.failures = tuple(failures)
        details = "; ".join(
            f"{failure.config_property}: {failure.message}" for failure in failures
        )
        super().__init__(f"Condition configuration is invalid: {details}")


class Condition:
    """A pipeline condition bound to its configuration and an engine.

    Attributes:
        config: The condition configuration.
        engine: Engine used to compile and evaluate the expression.
    """

    def __init__(
        self,
        config: ConditionConfig,
        engine: ExpressionEngine | None = None,
    ) -> None:
        self.config = config
        self.engine = engine if engine is not None else _default_engine

    def validate(self) -> list[ValidationFailure]:
        """Check the configuration without evaluating anything.

        An expression containing macros is not compiled, since its final text
        is only known at run time.

        Returns:
            Collected failures; empty when the configuration is valid.
        """
        expression = self.config.expression
        if not expression or not expression.strip():
            return [ValidationFailure("Condition expression must be specified.")]
        if self.config.contains_macro():
            return []

        try:
            self.engine.compile(expression)
        except CompileError as e:
            logger.debug("condition_invalid", expression=expression, error=e.message)
            return [
                ValidationFailure(
                    "Error encountered while compiling the expression : "
                    f"{e.message}",
                    config_property=e.config_property,
                )
            ]
        return []

    def apply(self, context: ConditionContext) -> bool:
        """Evaluate the condition for one pipeline run.

        Args:
            context: Host context supplying runtime arguments, stage
                statistics and pipeline metadata.

        Returns:
            True if the downstream branch should execute.

        Raises:
            ConditionValidationError: If the configuration is invalid.
            CompileError: If the expression still holds an unexpanded
                ``${...}`` macro, which ``validate`` does not compile.
            ResolutionError: If a referenced value cannot be bound.
            EvaluationError: If evaluation fails or is not boolean.
        """
        failures = self.validate()
        if failures:
            raise ConditionValidationError(failures)

        expression = self.config.expression or ""
        compiled = self.engine.compile(expression)
        bindings = resolve(
            self.engine.variables(compiled), context, expression=expression
        )
        result = self.engine.evaluate(compiled, bindings)
        logger.info("condition_evaluated", expression=expression, result=result)
        return result


_default_engine = ExpressionEngine()


def validate(expression: str | None) -> list[ValidationFailure]:
    """Deployment-time check of expression text.

    Returns:
        Failures, each tagged with the ``expression`` property.
    """
    return Condition(ConditionConfig(expression=expression)).validate()


def evaluate(expression: str, context: ConditionContext) -> bool:
    """Run-time evaluation of expression text against a host context.

    Raises:
        ConditionValidationError: If the expression is empty or does not
            compile.
        CompileError: If the expression still holds an unexpanded ``${...}``
            macro.
        ResolutionError: If a referenced value cannot be bound.
        EvaluationError: If evaluation fails or is not boolean.
    """
    return Condition(ConditionConfig(expression=expression)).apply(context)
