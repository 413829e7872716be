"""Expression engine: compile, catalog and evaluate condition expressions.

The engine owns the function registry and an in-memory cache of compiled
expressions keyed by exact source text. It never performs I/O; evaluation
is a pure function of the compiled expression and the bindings passed in.

Example:
    ```python
    engine = ExpressionEngine()
    compiled = engine.compile("token['Loader']['error'] > runtime['limit']")
    engine.variables(compiled)
    # frozenset({("token", "Loader", "error"), ("runtime", "limit")})
    engine.evaluate(compiled, bindings)  # True / False
    ```
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from conditional.expressions.catalog import VariableReference, extract_variables
from conditional.expressions.errors import EvaluationError
from conditional.expressions.evaluator import ExpressionEvaluator, type_name
from conditional.expressions.functions import FunctionRegistry, default_registry
from conditional.expressions.parser import CompiledExpression, parse_expression
from conditional.logging import get_logger

__all__ = ["CacheInfo", "ExpressionEngine"]

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CacheInfo:
    """Compile cache statistics.

    Attributes:
        hits: Compiles answered from the cache.
        misses: Compiles that parsed the text.
        size: Number of cached expressions.
    """

    hits: int
    misses: int
    size: int


class ExpressionEngine:
    """Compiles and evaluates boolean condition expressions.

    Safe to share between threads. Cache reads take no lock; two threads
    compiling the same new text may both parse it, but the cache keeps a
    single entry for that text.

    Failed compiles are never cached, so re-supplying the text parses it
    again.
    """

    def __init__(self, registry: FunctionRegistry | None = None) -> None:
        self._registry = registry if registry is not None else default_registry()
        self._cache: dict[str, CompiledExpression] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    def compile(self, text: str) -> CompiledExpression:
        """Compile ``text``, returning the cached form when available.

        Raises:
            CompileError: If the text is empty, has invalid syntax, calls an
                unknown function or has a malformed index expression.
        """
        cached = self._cache.get(text)
        if cached is not None:
            with self._lock:
                self._hits += 1
            return cached

        compiled = parse_expression(text, self._registry)
        with self._lock:
            self._misses += 1
            compiled = self._cache.setdefault(text, compiled)
        logger.debug("expression_compiled", expression=text)
        return compiled

    def variables(self, compiled: CompiledExpression) -> frozenset[VariableReference]:
        """Variable references the expression needs bound before evaluation."""
        return extract_variables(compiled)

    def evaluate(
        self,
        compiled: CompiledExpression,
        bindings: Mapping[str, Any],
    ) -> bool:
        """Evaluate ``compiled`` against ``bindings`` and return a boolean.

        Args:
            compiled: Expression returned by ``compile``.
            bindings: Root identifiers to values, normally a
                ``NamespaceBindings``.

        Raises:
            EvaluationError: If evaluation fails or the result is not a
                boolean. Numbers, strings and null are never treated as
                truthy or falsy.
        """
        result = ExpressionEvaluator(bindings, self._registry).evaluate(compiled)
        if not isinstance(result, bool):
            raise EvaluationError(
                f"Condition must evaluate to a boolean, got {type_name(result)} "
                f"({result!r})",
                expression=compiled.source,
            )
        logger.debug("expression_evaluated", expression=compiled.source, result=result)
        return result

    def execute(self, text: str, bindings: Mapping[str, Any]) -> bool:
        """Compile (or fetch from cache) and evaluate in one call."""
        return self.evaluate(self.compile(text), bindings)

    def cache_info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(hits=self._hits, misses=self._misses, size=len(self._cache))

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
