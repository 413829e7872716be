"""Expression compilation and evaluation for pipeline conditions.

A condition is a boolean expression over three namespaces:

- ``runtime['name']``: pipeline runtime arguments
- ``token['Stage']['input' | 'output' | 'error']``: record counts per stage
- ``global['pipeline' | 'namespace' | 'logical_start_time' | 'plugin']``:
  pipeline metadata

Examples
--------
    # Evaluates to true if the runtime argument is set to 1
    runtime['processing_path'] == 1

    # True if the stage named 'Data Quality' produced more errors than allowed
    token['Data Quality']['error'] > runtime['max_error']

    # Max of the errors from two stages compared against a runtime argument
    math:max(toDouble(token['DQ1']['error']), toDouble(token['DQ2']['error']))
        > runtime['max_error']

Module Structure
----------------
- parser.py: Lark grammar, expression nodes and compilation
- catalog.py: Discovery of the variables an expression references
- functions.py: Registry of callable functions (default and ``math``)
- evaluator.py: Strictly typed tree evaluation
- engine.py: Compile cache and boolean evaluation entry point
- errors.py: Expression-specific error types
"""

from __future__ import annotations

from conditional.expressions.catalog import (
    VariableReference,
    extract_variables,
    format_reference,
)
from conditional.expressions.engine import CacheInfo, ExpressionEngine
from conditional.expressions.errors import (
    EXPRESSION_PROPERTY,
    VALID_NAMESPACES,
    CompileError,
    EvaluationError,
    ExpressionError,
    ExpressionErrorInfo,
    MissingRuntimeArgumentError,
    ResolutionError,
    UnresolvedNamespaceError,
)
from conditional.expressions.evaluator import ExpressionEvaluator
from conditional.expressions.functions import (
    FunctionNamespace,
    FunctionRegistry,
    default_registry,
)
from conditional.expressions.parser import CompiledExpression, parse_expression

__all__: list[str] = [
    # Error types
    "EXPRESSION_PROPERTY",
    "VALID_NAMESPACES",
    "ExpressionError",
    "CompileError",
    "EvaluationError",
    "ResolutionError",
    "UnresolvedNamespaceError",
    "MissingRuntimeArgumentError",
    "ExpressionErrorInfo",
    # Compilation
    "CompiledExpression",
    "parse_expression",
    "VariableReference",
    "extract_variables",
    "format_reference",
    # Functions
    "FunctionNamespace",
    "FunctionRegistry",
    "default_registry",
    # Evaluation
    "ExpressionEvaluator",
    "ExpressionEngine",
    "CacheInfo",
]
