"""Unit tests for ExpressionEngine compile caching and boolean evaluation."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from conditional.expressions import (
    CompileError,
    EvaluationError,
    ExpressionEngine,
    FunctionNamespace,
    FunctionRegistry,
)
from conditional.resolver import NamespaceBindings


class TestCompileCache:
    """Compiled expressions are cached by exact source text."""

    def test_same_text_returns_same_object(self, engine: ExpressionEngine) -> None:
        first = engine.compile("runtime['x'] == 1")
        second = engine.compile("runtime['x'] == 1")
        assert first is second

    def test_cache_info_counts_hits_and_misses(self, engine: ExpressionEngine) -> None:
        engine.compile("1 == 1")
        engine.compile("1 == 1")
        engine.compile("2 == 2")
        info = engine.cache_info()
        assert info.hits == 1
        assert info.misses == 2
        assert info.size == 2

    def test_whitespace_differences_are_distinct_entries(
        self, engine: ExpressionEngine
    ) -> None:
        engine.compile("1 == 1")
        engine.compile("1==1")
        assert engine.cache_info().size == 2

    def test_failed_compile_is_not_cached(self, engine: ExpressionEngine) -> None:
        for _ in range(2):
            with pytest.raises(CompileError):
                engine.compile("runtime['x'] ==")
        info = engine.cache_info()
        assert info.size == 0
        assert info.hits == 0

    def test_clear_cache(self, engine: ExpressionEngine) -> None:
        compiled = engine.compile("1 == 1")
        engine.clear_cache()
        assert engine.cache_info().size == 0
        assert engine.cache_info().misses == 0
        assert engine.compile("1 == 1") is not compiled

    def test_concurrent_compiles_converge(self, engine: ExpressionEngine) -> None:
        text = "token['Loader']['error'] > runtime['max_error']"
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: engine.compile(text), range(64)))
        assert engine.cache_info().size == 1
        assert all(result == results[0] for result in results)
        assert engine.compile(text) is engine.compile(text)


class TestVariables:
    def test_variables(self, engine: ExpressionEngine) -> None:
        compiled = engine.compile("token['A']['error'] > runtime['limit']")
        assert engine.variables(compiled) == {
            ("token", "A", "error"),
            ("runtime", "limit"),
        }


class TestEvaluate:
    """Evaluation must yield a boolean."""

    def test_evaluate_with_namespace_bindings(self, engine: ExpressionEngine) -> None:
        bindings = NamespaceBindings(
            runtime={"max_error": 3},
            token={"Loader": {"input": 100, "output": 95, "error": 5}},
        )
        compiled = engine.compile("token['Loader']['error'] > runtime['max_error']")
        assert engine.evaluate(compiled, bindings) is True

    def test_evaluate_with_plain_mapping(self, engine: ExpressionEngine) -> None:
        compiled = engine.compile("runtime['processing_path'] == 1")
        assert engine.evaluate(compiled, {"runtime": {"processing_path": 1}}) is True

    @pytest.mark.parametrize(
        ("text", "type_label"),
        [("1 + 1", "integer"), ("'yes'", "string"), ("null", "null"), ("1.5", "decimal")],
    )
    def test_non_boolean_result_is_rejected(
        self, engine: ExpressionEngine, text: str, type_label: str
    ) -> None:
        with pytest.raises(EvaluationError) as exc_info:
            engine.execute(text, {})
        assert f"Condition must evaluate to a boolean, got {type_label}" in str(
            exc_info.value
        )

    def test_execute_uses_cache(self, engine: ExpressionEngine) -> None:
        engine.execute("1 < 2", {})
        engine.execute("1 < 2", {})
        assert engine.cache_info().hits == 1

    def test_same_compiled_expression_different_bindings(
        self, engine: ExpressionEngine
    ) -> None:
        compiled = engine.compile("runtime['x'] > 10")
        assert engine.evaluate(compiled, {"runtime": {"x": 11}}) is True
        assert engine.evaluate(compiled, {"runtime": {"x": 9}}) is False

    def test_concurrent_evaluation(self, engine: ExpressionEngine) -> None:
        compiled = engine.compile("runtime['x'] % 2 == 0")

        def run(value: int) -> bool:
            return engine.evaluate(compiled, {"runtime": {"x": value}})

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(run, range(20)))
        assert results == [value % 2 == 0 for value in range(20)]


class TestCustomRegistry:
    def test_engine_uses_its_registry(self) -> None:
        registry = FunctionRegistry(
            [FunctionNamespace("str", {"upper": lambda value: value.upper()})]
        )
        engine = ExpressionEngine(registry)
        assert engine.registry is registry
        assert engine.execute("str:upper('abc') == 'ABC'", {}) is True

    def test_default_functions_absent_from_custom_registry(self) -> None:
        engine = ExpressionEngine(FunctionRegistry([]))
        with pytest.raises(CompileError, match="Unknown function 'toDouble'"):
            engine.compile("toDouble(1) > 0")


class TestNamespaceBindings:
    def test_behaves_as_mapping(self) -> None:
        bindings = NamespaceBindings(runtime={"a": 1}, global_={"pipeline": "p"})
        assert list(bindings) == ["runtime", "token", "global"]
        assert len(bindings) == 3
        assert bindings["global"] == {"pipeline": "p"}
        assert bindings["token"] == {}
        assert "runtime" in bindings

    def test_unknown_key(self) -> None:
        with pytest.raises(KeyError):
            NamespaceBindings()["local"]
