"""Variable discovery for compiled expressions.

Before an expression is evaluated we need to know which external values it
references, so that only those are fetched from the host. The catalog walks
a compiled expression and reports every indexed-access chain as a tuple of
string segments:

    token['DQ1']['error'] > runtime['limit']
    -> {("token", "DQ1", "error"), ("runtime", "limit")}

Index keys are never evaluated. A chain stops at the first key that is not a
literal; that key expression is then walked on its own, so
``token[runtime['stage']]['error']`` yields ``("token",)`` and
``("runtime", "stage")``.
"""

from __future__ import annotations

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

__all__ = ["VariableReference", "extract_variables", "format_reference"]

VariableReference = tuple[str, ...]


def extract_variables(compiled: CompiledExpression) -> frozenset[VariableReference]:
    """Return every distinct variable reference in ``compiled``.

    Args:
        compiled: A successfully compiled expression.

    Returns:
        Deduplicated, unordered set of references. Segment 0 is the root
        identifier; namespace names are not validated here.
    """
    found: set[VariableReference] = set()
    _walk(compiled.root, found)
    return frozenset(found)


def format_reference(reference: VariableReference) -> str:
    """Render a reference the way it is written, e.g. ``token['A']['error']``."""
    root, *keys = reference
    return root + "".join(f"[{key!r}]" for key in keys)


def _walk(node: Node, found: set[VariableReference]) -> None:
    if isinstance(node, (Variable, Index)):
        chain = _chain(node, found)
        if chain is not None:
            found.add(chain)
    elif isinstance(node, Unary):
        _walk(node.operand, found)
    elif isinstance(node, (Binary, Logical)):
        _walk(node.left, found)
        _walk(node.right, found)
    elif isinstance(node, Conditional):
        _walk(node.test, found)
        _walk(node.if_true, found)
        _walk(node.if_false, found)
    elif isinstance(node, Call):
        for argument in node.arguments:
            _walk(argument, found)


def _chain(node: Node, found: set[VariableReference]) -> VariableReference | None:
    """Segments of the access chain ending at ``node``.

    Returns None when the chain is not rooted at an identifier (e.g.
    ``toString(x)['a']``); any references inside it are still collected.
    """
    segments = _segments(node, found)
    return segments[0] if segments is not None else None


def _segments(
    node: Node, found: set[VariableReference]
) -> tuple[VariableReference, bool] | None:
    # The flag is False once a dynamic key has closed the chain.
    if isinstance(node, Variable):
        return (node.name,), True
    if not isinstance(node, Index):
        _walk(node, found)
        return None

    inner = _segments(node.target, found)
    if inner is None:
        _walk(node.key, found)
        return None

    prefix, extendable = inner
    if not extendable:
        if not isinstance(node.key, Literal):
            _walk(node.key, found)
        return prefix, False
    if isinstance(node.key, Literal):
        return (*prefix, str(node.key.value)), True

    # Dynamic key: the chain ends here and the key is catalogued separately.
    _walk(node.key, found)
    return prefix, False
