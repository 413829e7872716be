"""Expression evaluator for compiled condition expressions.

The evaluator walks a compiled expression tree against a mapping of bound
namespaces (``runtime``, ``token``, ``global``) and returns the raw result.

Typing is strict; nothing is coerced implicitly:
- ``&&``, ``||``, ``!`` and the ternary test require booleans
- arithmetic requires numbers (booleans are not numbers); ``+`` also joins
  two strings
- ``<``, ``<=``, ``>``, ``>=`` require two numbers or two strings
- ``==`` / ``!=`` require compatible operands, except that anything may be
  compared with ``null``
- ``/`` is true division; dividing by zero is an error

Authors convert explicitly with ``toDouble``, ``toInt``, ``toString`` etc.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from conditional.expressions.errors import EvaluationError
from conditional.expressions.functions import FunctionRegistry, default_registry
from conditional.expressions.parser import (
    Binary,
    Call,
    CompiledExpression,
    Conditional,
    Index,
    Literal,
    Logical,
    Node,
    Unary,
    Variable,
)

__all__ = ["ExpressionEvaluator", "type_name"]

_ARITHMETIC: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
}

_ORDERING: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    """Expression-language name of a value's type, for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "decimal"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "map"
    if isinstance(value, Sequence):
        return "list"
    return type(value).__name__


class ExpressionEvaluator:
    """Evaluates compiled expressions against bound namespaces.

    Attributes:
        variables: Root identifiers available to expressions, e.g.
            ``{"runtime": {...}, "token": {...}, "global": {...}}``.

    Example:
        ```python
        evaluator = ExpressionEvaluator(
            {"token": {"Loader": {"input": 10, "output": 8, "error": 2}}}
        )
        compiled = parse_expression("token['Loader']['error'] > 0")
        evaluator.evaluate(compiled)  # True
        ```
    """

    def __init__(
        self,
        variables: Mapping[str, Any],
        registry: FunctionRegistry | None = None,
    ) -> None:
        self._variables = variables
        self._registry = registry if registry is not None else default_registry()

    @property
    def variables(self) -> Mapping[str, Any]:
        return self._variables

    def evaluate(self, compiled: CompiledExpression) -> Any:
        """Evaluate ``compiled`` and return its raw (uncoerced) result.

        Raises:
            EvaluationError: On type mismatches, missing keys, division by
                zero, arithmetic overflow or failing function calls.
        """
        return self._visit(compiled.root, compiled.source)

    def _visit(self, node: Node, source: str) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Variable):
            return self._lookup_variable(node, source)
        if isinstance(node, Index):
            return self._index(node, source)
        if isinstance(node, Unary):
            return self._unary(node, source)
        if isinstance(node, Logical):
            return self._logical(node, source)
        if isinstance(node, Binary):
            return self._binary(node, source)
        if isinstance(node, Conditional):
            test = self._require_boolean(
                self._visit(node.test, source), "ternary condition", source
            )
            branch = node.if_true if test else node.if_false
            return self._visit(branch, source)
        if isinstance(node, Call):
            return self._call(node, source)
        raise EvaluationError(
            f"Unknown expression node: {type(node).__name__}",
            expression=source,
        )

    def _lookup_variable(self, node: Variable, source: str) -> Any:
        if node.name not in self._variables:
            raise EvaluationError(
                f"Variable '{node.name}' is not defined",
                expression=source,
                context_vars=tuple(self._variables),
            )
        return self._variables[node.name]

    def _index(self, node: Index, source: str) -> Any:
        target = self._visit(node.target, source)
        key = self._visit(node.key, source)

        if isinstance(target, Mapping):
            if not isinstance(key, (str, int, float)) and key is not None:
                raise EvaluationError(
                    f"A {type_name(key)} cannot be used as a map key",
                    expression=source,
                )
            if key in target:
                return target[key]
            # Integer keys are catalogued as strings, so bound maps hold "1".
            if isinstance(key, int) and not isinstance(key, bool):
                if str(key) in target:
                    return target[str(key)]
            raise EvaluationError(
                f"Key '{key}' not found",
                expression=source,
                context_vars=tuple(str(k) for k in target),
            )

        if isinstance(target, (str, Sequence)):
            if not _is_number(key) or isinstance(key, float):
                raise EvaluationError(
                    f"Cannot access key '{key}' on {type_name(target)} "
                    "(expected integer index)",
                    expression=source,
                )
            try:
                return target[key]
            except IndexError as e:
                raise EvaluationError(
                    f"Index {key} out of range (length: {len(target)})",
                    expression=source,
                ) from e

        raise EvaluationError(
            f"Cannot access key '{key}' on {type_name(target)} value",
            expression=source,
        )

    def _unary(self, node: Unary, source: str) -> Any:
        value = self._visit(node.operand, source)
        if node.operator == "!":
            return not self._require_boolean(value, "'!'", source)
        if not _is_number(value):
            raise EvaluationError(
                f"Operator '-' is not defined for {type_name(value)}",
                expression=source,
            )
        return -value

    def _logical(self, node: Logical, source: str) -> bool:
        label = f"'{node.operator}'"
        left = self._require_boolean(self._visit(node.left, source), label, source)
        if node.operator == "and" and not left:
            return False
        if node.operator == "or" and left:
            return True
        return self._require_boolean(self._visit(node.right, source), label, source)

    def _binary(self, node: Binary, source: str) -> Any:
        left = self._visit(node.left, source)
        right = self._visit(node.right, source)
        op = node.operator

        if op in ("==", "!="):
            equal = self._equals(left, right, op, source)
            return equal if op == "==" else not equal

        if op in _ORDERING:
            if (_is_number(left) and _is_number(right)) or (
                isinstance(left, str) and isinstance(right, str)
            ):
                return _ORDERING[op](left, right)
            raise self._mismatch(op, left, right, source)

        if op == "+" and isinstance(left, str) and isinstance(right, str):
            return left + right

        if op in _ARITHMETIC:
            if not (_is_number(left) and _is_number(right)):
                raise self._mismatch(op, left, right, source)
            if op in ("/", "%") and right == 0:
                raise EvaluationError("Division by zero", expression=source)
            try:
                return _ARITHMETIC[op](left, right)
            except ArithmeticError as e:
                raise EvaluationError(
                    f"Operator '{op}' failed: {e}",
                    expression=source,
                ) from e

        raise EvaluationError(f"Unknown operator '{op}'", expression=source)

    def _equals(self, left: Any, right: Any, op: str, source: str) -> bool:
        if left is None or right is None:
            return left is None and right is None
        if _is_number(left) and _is_number(right):
            return bool(left == right)
        if isinstance(left, bool) or isinstance(right, bool):
            if isinstance(left, bool) and isinstance(right, bool):
                return left == right
            raise self._mismatch(op, left, right, source)
        if isinstance(left, str) or isinstance(right, str):
            if isinstance(left, str) and isinstance(right, str):
                return left == right
            raise self._mismatch(op, left, right, source)
        if type_name(left) != type_name(right):
            raise self._mismatch(op, left, right, source)
        return bool(left == right)

    def _call(self, node: Call, source: str) -> Any:
        function = self._registry.lookup(node.namespace, node.name)
        if function is None:
            raise EvaluationError(
                f"Unknown function '{node.qualified_name}'",
                expression=source,
            )
        arguments = [self._visit(argument, source) for argument in node.arguments]
        try:
            return function(*arguments)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise EvaluationError(
                f"Function '{node.qualified_name}' failed: {e}",
                expression=source,
            ) from e

    def _require_boolean(self, value: Any, where: str, source: str) -> bool:
        if not isinstance(value, bool):
            raise EvaluationError(
                f"Operand of {where} must be a boolean, got {type_name(value)}",
                expression=source,
            )
        return value

    @staticmethod
    def _mismatch(op: str, left: Any, right: Any, source: str) -> EvaluationError:
        return EvaluationError(
            f"Operator '{op}' is not defined for {type_name(left)} "
            f"and {type_name(right)}",
            expression=source,
        )
