"""Expression-specific error types for the condition engine.

Compile-time failures (``CompileError``) are surfaced against the
``expression`` configuration property. Run-time failures split into
namespace resolution problems (``ResolutionError`` and its subclasses) and
evaluation problems (``EvaluationError``). A missing stage statistics entry
is deliberately not represented here; it is zero-filled by the resolver.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from conditional.exceptions import ConditionalError

__all__ = [
    "EXPRESSION_PROPERTY",
    "VALID_NAMESPACES",
    "ExpressionError",
    "CompileError",
    "EvaluationError",
    "ResolutionError",
    "UnresolvedNamespaceError",
    "MissingRuntimeArgumentError",
    "ExpressionErrorInfo",
]

# Name of the configuration property holding the condition expression.
EXPRESSION_PROPERTY = "expression"

VALID_NAMESPACES: tuple[str, ...] = ("runtime", "token", "global")


class ExpressionError(ConditionalError):
    """Base exception for all expression-related errors.

    Attributes:
        message: Human-readable error message.
        expression: The expression that caused the error (if known).
    """

    def __init__(
        self,
        message: str,
        expression: str | None = None,
    ) -> None:
        self.expression = expression
        super().__init__(message)


class CompileError(ExpressionError):
    """Raised when an expression cannot be compiled.

    Covers syntax errors, calls to functions that are not registered (or are
    called with the wrong number of arguments) and malformed index
    expressions. The error is attached to a configuration property so that a
    host can surface it against the right form field.

    Attributes:
        message: Human-readable error message, including a caret marker when
            a position is known.
        expression: The expression that failed to compile.
        position: Zero-based character offset of the failure (0 if unknown).
        config_property: Configuration property the expression came from.
    """

    def __init__(
        self,
        message: str,
        expression: str,
        position: int = 0,
        config_property: str = EXPRESSION_PROPERTY,
    ) -> None:
        self.position = position
        self.config_property = config_property
        self.reason = message
        if position > 0 and expression:
            pointer = f"{expression}\n{' ' * position}^"
            full_message = f"{message} at position {position}:\n{pointer}"
        else:
            full_message = f"{message}: {expression}"
        super().__init__(full_message, expression=expression)


class EvaluationError(ExpressionError):
    """Raised when a compiled expression fails while being evaluated.

    Includes non-boolean results, type mismatches between operands, missing
    keys and failing function calls.

    Attributes:
        context_vars: Names of values that were available at the failing
            access (for debugging).
    """

    def __init__(
        self,
        message: str,
        expression: str,
        context_vars: tuple[str, ...] = (),
    ) -> None:
        self.context_vars = context_vars
        if context_vars:
            available = ", ".join(sorted(context_vars))
            full_message = (
                f"{message} in expression: {expression}\n"
                f"Available variables: {available}"
            )
        else:
            full_message = f"{message} in expression: {expression}"
        super().__init__(full_message, expression=expression)


class ResolutionError(ExpressionError):
    """Raised when a variable reference cannot be bound to a value."""

    def __init__(
        self,
        message: str,
        reference: Iterable[str] = (),
        expression: str | None = None,
    ) -> None:
        self.reference = tuple(reference)
        super().__init__(message, expression=expression)


class UnresolvedNamespaceError(ResolutionError):
    """Raised when a reference's root is not one of the known namespaces.

    Attributes:
        namespace: The offending root identifier.
    """

    def __init__(
        self,
        namespace: str,
        reference: Iterable[str] = (),
        expression: str | None = None,
    ) -> None:
        self.namespace = namespace
        valid = ", ".join(f"'{name}'" for name in VALID_NAMESPACES[:-1])
        message = (
            f"Invalid map variable '{namespace}' specified. Valid map variables "
            f"are {valid} and '{VALID_NAMESPACES[-1]}'."
        )
        super().__init__(message, reference=reference, expression=expression)


class MissingRuntimeArgumentError(ResolutionError):
    """Raised when a referenced runtime argument does not exist.

    Runtime arguments are never defaulted.

    Attributes:
        argument: Name of the missing runtime argument.
    """

    def __init__(
        self,
        argument: str,
        expression: str | None = None,
    ) -> None:
        self.argument = argument
        message = (
            f"Condition includes a runtime argument '{argument}' "
            "that does not exist."
        )
        super().__init__(
            message,
            reference=("runtime", argument),
            expression=expression,
        )


@dataclass(frozen=True, slots=True)
class ExpressionErrorInfo:
    """Expression compile or evaluation error information.

    Immutable record used when reporting errors without raising them, e.g.
    from the CLI ``variables`` command.

    Attributes:
        expression: The expression that failed.
        message: Human-readable error message.
        position: Character position in expression (0 if not applicable).
    """

    expression: str
    message: str
    position: int = 0

    @classmethod
    def from_error(cls, error: ExpressionError) -> ExpressionErrorInfo:
        return cls(
            expression=error.expression or "",
            message=error.message,
            position=getattr(error, "position", 0),
        )
