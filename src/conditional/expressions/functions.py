"""Function registry for condition expressions.

Expressions may call functions from a fixed set of namespaces:

- the default namespace (unqualified calls such as ``toDouble(x)``)
- ``math`` (namespaced calls such as ``math:max(a, b)``)

The registry is built once and never mutated afterwards. The parser consults
it to reject unknown functions and wrong arities at compile time; the
evaluator consults it to invoke the callables.

NaN handling: ``math:max`` and ``math:min`` return NaN when either argument
is NaN, matching IEEE-754 ``maximum``/``minimum`` and Java's ``Math.max``.
"""

from __future__ import annotations

import inspect
import math
import operator
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

__all__ = [
    "FunctionNamespace",
    "FunctionRegistry",
    "default_registry",
]


@dataclass(frozen=True, slots=True)
class FunctionNamespace:
    """Named group of callables exposed to expressions.

    Attributes:
        name: Namespace prefix, or None for unqualified calls.
        functions: Read-only mapping of function name to callable.
    """

    name: str | None
    functions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "functions", MappingProxyType(dict(self.functions)))

    def get(self, name: str) -> Callable[..., Any] | None:
        return self.functions.get(name)


class FunctionRegistry:
    """Immutable mapping from namespace prefix to function namespace.

    Example:
        ```python
        registry = default_registry()
        registry.lookup("math", "max")(3, 7)  # 7
        registry.lookup(None, "toDouble")(3)  # 3.0
        registry.lookup("math", "missing")  # None
        ```
    """

    def __init__(self, namespaces: list[FunctionNamespace]) -> None:
        table: dict[str | None, FunctionNamespace] = {}
        for namespace in namespaces:
            if namespace.name in table:
                raise ValueError(f"Duplicate function namespace: {namespace.name!r}")
            table[namespace.name] = namespace
        self._namespaces: Mapping[str | None, FunctionNamespace] = MappingProxyType(
            table
        )

    @property
    def namespaces(self) -> Mapping[str | None, FunctionNamespace]:
        return self._namespaces

    def lookup(self, namespace: str | None, name: str) -> Callable[..., Any] | None:
        """Find a callable by optional namespace and name.

        An empty namespace string is treated as the default namespace.

        Returns:
            The callable, or None if it is not registered.
        """
        entry = self._namespaces.get(namespace or None)
        if entry is None:
            return None
        return entry.get(name)

    def check_arity(self, function: Callable[..., Any], count: int) -> bool:
        """Return True if ``function`` accepts ``count`` positional arguments."""
        try:
            inspect.signature(function).bind(*([None] * count))
        except TypeError:
            return False
        except ValueError:
            # Builtins without an introspectable signature.
            return True
        return True

    def names(self) -> Iterator[str]:
        """Yield every callable name in ``ns:name`` / ``name`` form, sorted."""
        qualified: list[str] = []
        for prefix, entry in self._namespaces.items():
            for name in entry.functions:
                qualified.append(f"{prefix}:{name}" if prefix else name)
        yield from sorted(qualified)


# ---------------------------------------------------------------------------
# Default namespace
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_double(value: Any) -> float:
    """Convert a number or numeric string to a decimal."""
    if isinstance(value, bool):
        raise TypeError("Cannot convert a boolean to a number")
    return float(value)


def to_int(value: Any) -> int:
    """Convert a number or numeric string to an integer, truncating decimals."""
    if isinstance(value, bool):
        raise TypeError("Cannot convert a boolean to a number")
    if isinstance(value, str):
        value = value.strip()
        try:
            return int(value)
        except ValueError:
            return int(float(value))
    return int(value)


def to_string(value: Any) -> str:
    """Render a value as a string (null becomes 'null')."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_boolean(value: Any) -> bool:
    """Convert 'true'/'false' (any case) to a boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    raise ValueError(f"Cannot convert {value!r} to a boolean")


def size(value: Any) -> int:
    """Length of a string, list or map; 0 for null."""
    if value is None:
        return 0
    if isinstance(value, (str, list, tuple, dict, set, frozenset)):
        return len(value)
    raise TypeError(f"size() is not defined for {type(value).__name__}")


def empty(value: Any) -> bool:
    """True for null and for empty strings, lists and maps."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def is_null(value: Any) -> bool:
    """True if the value is null."""
    return value is None


# ---------------------------------------------------------------------------
# math namespace
# ---------------------------------------------------------------------------


def _require_numbers(name: str, *values: Any) -> None:
    for value in values:
        if not _is_number(value):
            raise TypeError(
                f"math:{name} expects numbers, got {type(value).__name__}"
            )


def _pick(
    name: str,
    a: Any,
    b: Any,
    prefer_first: Callable[[Any, Any], bool],
    zero_sign: Callable[[float, float], float],
) -> int | float:
    _require_numbers(name, a, b)
    if (isinstance(a, float) and math.isnan(a)) or (
        isinstance(b, float) and math.isnan(b)
    ):
        return math.nan
    if isinstance(a, int) and isinstance(b, int):
        return a if prefer_first(a, b) else b
    if a == 0 and b == 0:
        # -0.0 is smaller than 0.0
        return math.copysign(
            0.0, zero_sign(math.copysign(1.0, a), math.copysign(1.0, b))
        )
    return float(a if prefer_first(a, b) else b)


def math_max(a: Any, b: Any) -> int | float:
    """Larger of two numbers; NaN if either is NaN."""
    return _pick("max", a, b, operator.ge, max)


def math_min(a: Any, b: Any) -> int | float:
    """Smaller of two numbers; NaN if either is NaN."""
    return _pick("min", a, b, operator.le, min)


def math_abs(value: Any) -> int | float:
    """Absolute value."""
    _require_numbers("abs", value)
    return abs(value)


def math_ceil(value: Any) -> float:
    """Smallest whole number not below the value."""
    _require_numbers("ceil", value)
    return float(math.ceil(value))


def math_floor(value: Any) -> float:
    """Largest whole number not above the value."""
    _require_numbers("floor", value)
    return float(math.floor(value))


def math_round(value: Any) -> int:
    """Round half up, like Java's ``Math.round``."""
    _require_numbers("round", value)
    return math.floor(value + 0.5)


def math_pow(base: Any, exponent: Any) -> float:
    """Base raised to the exponent."""
    _require_numbers("pow", base, exponent)
    return math.pow(base, exponent)


def math_sqrt(value: Any) -> float:
    """Square root; NaN for negative values."""
    _require_numbers("sqrt", value)
    if value < 0:
        return math.nan
    return math.sqrt(value)


def default_registry() -> FunctionRegistry:
    """Build the registry with the default and ``math`` namespaces."""
    return FunctionRegistry(
        [
            FunctionNamespace(
                None,
                {
                    "toDouble": to_double,
                    "toFloat": to_double,
                    "toInt": to_int,
                    "toLong": to_int,
                    "toString": to_string,
                    "toBoolean": to_boolean,
                    "size": size,
                    "empty": empty,
                    "isNull": is_null,
                },
            ),
            FunctionNamespace(
                "math",
                {
                    "max": math_max,
                    "min": math_min,
                    "abs": math_abs,
                    "ceil": math_ceil,
                    "floor": math_floor,
                    "round": math_round,
                    "pow": math_pow,
                    "sqrt": math_sqrt,
                },
            ),
        ]
    )
