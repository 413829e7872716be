"""Expression parser models and functions.

This module compiles condition expression text into an immutable tree of
nodes. Compilation checks syntax against the Lark grammar in
``grammar.lark`` and checks every function call against a
``FunctionRegistry``, so that anything that reaches the evaluator is
structurally sound.

Expression syntax:
- runtime['max_errors']                     - Indexed map access
- token['Data Quality']['error']            - Chained indexed access
- global.pipeline                           - Dotted access (same as ['pipeline'])
- a == b, a != b, a < b, a >= b, a eq b     - Comparison
- a + b, a - b, a * b, a / b, a % b, -a     - Arithmetic
- a && b, a || b, !a, a and b, not a        - Boolean logic
- a ? b : c                                 - Ternary conditional
- toDouble(x), math:max(a, b)               - Function calls

Example:
    >>> compiled = parse_expression("token['Loader']['error'] > 0")
    >>> compiled.root  # doctest: +ELLIPSIS
    Binary(operator='>', left=Index(...), right=Literal(value=0))
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal as TypingLiteral

from lark import (
    Lark,
    LarkError,
    Token,
    Transformer,
    UnexpectedCharacters,
    UnexpectedEOF,
    UnexpectedInput,
    UnexpectedToken,
)
from lark.exceptions import VisitError

from conditional.expressions.errors import CompileError
from conditional.expressions.functions import FunctionRegistry, default_registry

__all__ = [
    "Literal",
    "Variable",
    "Index",
    "Unary",
    "Binary",
    "Logical",
    "Conditional",
    "Call",
    "Node",
    "CompiledExpression",
    "parse_expression",
]


@dataclass(frozen=True, slots=True)
class Literal:
    """Constant value: number, string, boolean or null."""

    value: Any


@dataclass(frozen=True, slots=True)
class Variable:
    """Bare identifier, e.g. the ``token`` in ``token['A']``."""

    name: str


@dataclass(frozen=True, slots=True)
class Index:
    """Indexed access ``target[key]``; dotted access compiles to this too."""

    target: Node
    key: Node


@dataclass(frozen=True, slots=True)
class Unary:
    operator: TypingLiteral["!", "-"]
    operand: Node


@dataclass(frozen=True, slots=True)
class Binary:
    """Arithmetic or comparison operator applied to two operands."""

    operator: str
    left: Node
    right: Node


@dataclass(frozen=True, slots=True)
class Logical:
    """Short-circuiting ``and`` / ``or``."""

    operator: TypingLiteral["and", "or"]
    left: Node
    right: Node


@dataclass(frozen=True, slots=True)
class Conditional:
    """Ternary ``test ? if_true : if_false``."""

    test: Node
    if_true: Node
    if_false: Node


@dataclass(frozen=True, slots=True)
class Call:
    """Function call, optionally namespaced (``math:max(a, b)``)."""

    namespace: str | None
    name: str
    arguments: tuple[Node, ...]

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}:{self.name}" if self.namespace else self.name


Node = Literal | Variable | Index | Unary | Binary | Logical | Conditional | Call


@dataclass(frozen=True, slots=True)
class CompiledExpression:
    """Result of compiling expression text.

    Two compilations of the same text compare equal.

    Attributes:
        source: The exact text that was compiled.
        root: Root node of the expression tree.
    """

    source: str
    root: Node


_GRAMMAR_PATH = Path(__file__).parent / "grammar.lark"
_GRAMMAR = _GRAMMAR_PATH.read_text()

_parser = Lark(
    _GRAMMAR,
    parser="lalr",
    start="start",
    propagate_positions=True,
)

_DEFAULT_REGISTRY = default_registry()

_ESCAPE_PATTERN = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f"}


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def _binary_rule(operator: str) -> Callable[[Any, list[Node]], Binary]:
    def build(self: Any, items: list[Node]) -> Binary:
        return Binary(operator, items[0], items[1])

    return build


class _ExpressionTransformer(Transformer[Token, Node]):
    """Transform the Lark parse tree into expression nodes."""

    def __init__(self, source: str, registry: FunctionRegistry) -> None:
        super().__init__()
        self._source = source
        self._registry = registry

    # Literals ---------------------------------------------------------------

    def number(self, items: list[Token]) -> Literal:
        text = str(items[0])
        if "." in text or "e" in text or "E" in text:
            return Literal(float(text))
        return Literal(int(text))

    def string(self, items: list[Token]) -> Literal:
        return Literal(_unquote(str(items[0])))

    def true(self, items: list[Any]) -> Literal:
        return Literal(True)

    def false(self, items: list[Any]) -> Literal:
        return Literal(False)

    def null(self, items: list[Any]) -> Literal:
        return Literal(None)

    def variable(self, items: list[Token]) -> Variable:
        return Variable(str(items[0]))

    # Access -----------------------------------------------------------------

    def index(self, items: list[Node]) -> Index:
        target, key = items
        if isinstance(key, Literal) and not (
            isinstance(key.value, str)
            or (isinstance(key.value, int) and not isinstance(key.value, bool))
        ):
            raise CompileError(
                f"Malformed index expression: {key.value!r} cannot be used as a key",
                expression=self._source,
            )
        return Index(target, key)

    def empty_index(self, items: list[Node]) -> Index:
        raise CompileError(
            "Malformed index expression: missing key between '[' and ']'",
            expression=self._source,
        )

    def attribute(self, items: list[Any]) -> Index:
        target, name = items
        return Index(target, Literal(str(name)))

    # Operators --------------------------------------------------------------

    def negation(self, items: list[Node]) -> Unary:
        return Unary("!", items[-1])

    def negative(self, items: list[Node]) -> Node:
        operand = items[-1]
        # Fold negative numeric literals so "-1" stays a constant.
        if (
            isinstance(operand, Literal)
            and isinstance(operand.value, (int, float))
            and not isinstance(operand.value, bool)
        ):
            return Literal(-operand.value)
        return Unary("-", operand)

    add = _binary_rule("+")
    sub = _binary_rule("-")
    mul = _binary_rule("*")
    div = _binary_rule("/")
    mod = _binary_rule("%")
    eq = _binary_rule("==")
    ne = _binary_rule("!=")
    lt = _binary_rule("<")
    le = _binary_rule("<=")
    gt = _binary_rule(">")
    ge = _binary_rule(">=")

    def logical_and(self, items: list[Node]) -> Logical:
        return Logical("and", items[0], items[1])

    def logical_or(self, items: list[Node]) -> Logical:
        return Logical("or", items[0], items[1])

    def conditional(self, items: list[Node]) -> Conditional:
        return Conditional(items[0], items[1], items[2])

    # Calls ------------------------------------------------------------------

    def arguments(self, items: list[Node]) -> tuple[Node, ...]:
        return tuple(items)

    def call(self, items: list[Any]) -> Call:
        name_token, arguments = items
        return self._checked_call(None, name_token, arguments)

    def qualified_call(self, items: list[Any]) -> Call:
        name_token, arguments = items
        namespace, _, name = str(name_token).partition(":")
        return self._checked_call(namespace, name_token, arguments, name=name)

    def _checked_call(
        self,
        namespace: str | None,
        token: Token,
        arguments: tuple[Node, ...] | None,
        name: str | None = None,
    ) -> Call:
        call = Call(namespace, name or str(token), arguments or ())
        position = token.start_pos or 0

        if namespace is not None and namespace not in self._registry.namespaces:
            known = ", ".join(
                sorted(ns for ns in self._registry.namespaces if ns is not None)
            )
            raise CompileError(
                f"Unknown function namespace '{namespace}' (known namespaces: {known})",
                expression=self._source,
                position=position,
            )

        function = self._registry.lookup(namespace, call.name)
        if function is None:
            raise CompileError(
                f"Unknown function '{call.qualified_name}'",
                expression=self._source,
                position=position,
            )

        if not self._registry.check_arity(function, len(call.arguments)):
            raise CompileError(
                f"Function '{call.qualified_name}' does not accept "
                f"{len(call.arguments)} argument(s)",
                expression=self._source,
                position=position,
            )
        return call


def _position(error: UnexpectedInput, source: str) -> int:
    pos = getattr(error, "pos_in_stream", None)
    if pos is None or pos < 0:
        return len(source)
    return int(pos)


def parse_expression(
    expression: str,
    registry: FunctionRegistry | None = None,
) -> CompiledExpression:
    """Compile expression text into a ``CompiledExpression``.

    Args:
        expression: Expression text, e.g. ``"token['A']['error'] > 0"``.
        registry: Functions the expression may call. Defaults to
            ``default_registry()``.

    Returns:
        The compiled expression.

    Raises:
        CompileError: On syntax errors, unknown functions or namespaces,
            wrong call arity and malformed index expressions.
    """
    if expression is None or not expression.strip():
        raise CompileError("Empty expression", expression=expression or "")

    registry = registry if registry is not None else _DEFAULT_REGISTRY

    try:
        tree = _parser.parse(expression)
        root = _ExpressionTransformer(expression, registry).transform(tree)
    except UnexpectedCharacters as e:
        raise CompileError(
            f"Invalid character '{e.char}' in expression",
            expression=expression,
            position=_position(e, expression),
        ) from e
    except UnexpectedEOF as e:
        raise CompileError(
            "Unexpected end of expression",
            expression=expression,
            position=len(expression),
        ) from e
    except UnexpectedToken as e:
        if e.token.type == "$END":
            raise CompileError(
                "Unexpected end of expression",
                expression=expression,
                position=len(expression),
            ) from e
        raise CompileError(
            f"Unexpected token '{e.token}' in expression",
            expression=expression,
            position=_position(e, expression),
        ) from e
    except UnexpectedInput as e:
        raise CompileError(
            "Invalid expression syntax",
            expression=expression,
            position=_position(e, expression),
        ) from e
    except VisitError as e:
        if isinstance(e.orig_exc, CompileError):
            raise e.orig_exc from None
        raise CompileError(
            f"Failed to compile expression: {e.orig_exc}",
            expression=expression,
        ) from e.orig_exc
    except LarkError as e:
        raise CompileError(
            str(e) or "Invalid expression syntax",
            expression=expression,
        ) from e

    return CompiledExpression(source=expression, root=root)
