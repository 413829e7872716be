"""Unit tests for variable discovery on compiled expressions."""

from __future__ import annotations

from conditional.expressions.catalog import extract_variables, format_reference
from conditional.expressions.parser import parse_expression


def _variables(text: str) -> frozenset[tuple[str, ...]]:
    return extract_variables(parse_expression(text))


class TestExtractVariables:
    """Every indexed-access chain is reported as a tuple of segments."""

    def test_single_chain(self) -> None:
        assert _variables("token['A']['error'] > 0") == {("token", "A", "error")}

    def test_runtime_and_token(self) -> None:
        assert _variables("token['Data Quality']['error'] > runtime['max']") == {
            ("token", "Data Quality", "error"),
            ("runtime", "max"),
        }

    def test_chains_sharing_a_prefix_are_all_kept(self) -> None:
        assert _variables("token['A']['error'] + token['A']['input'] > 0") == {
            ("token", "A", "error"),
            ("token", "A", "input"),
        }

    def test_duplicates_are_collapsed(self) -> None:
        assert _variables("runtime['x'] == 1 || runtime['x'] == 2") == {
            ("runtime", "x")
        }

    def test_inside_function_arguments(self) -> None:
        text = (
            "math:max(toDouble(token['DQ1']['error']), "
            "toDouble(token['DQ2']['error'])) > runtime['max_error']"
        )
        assert _variables(text) == {
            ("token", "DQ1", "error"),
            ("token", "DQ2", "error"),
            ("runtime", "max_error"),
        }

    def test_inside_unary_logical_and_ternary(self) -> None:
        text = "!runtime['a'] && (runtime['b'] ? -token['S']['output'] : 0) > 1"
        assert _variables(text) == {
            ("runtime", "a"),
            ("runtime", "b"),
            ("token", "S", "output"),
        }

    def test_dotted_access(self) -> None:
        assert _variables("global.pipeline == 'p'") == {("global", "pipeline")}

    def test_integer_key_becomes_string_segment(self) -> None:
        assert _variables("runtime['items'][0] == 1") == {("runtime", "items", "0")}

    def test_dynamic_key_ends_the_chain(self) -> None:
        assert _variables("token[runtime['stage']]['error'] > 0") == {
            ("token",),
            ("runtime", "stage"),
        }

    def test_bare_identifier(self) -> None:
        assert _variables("foo == 1") == {("foo",)}

    def test_unknown_namespace_is_not_rejected_here(self) -> None:
        assert _variables("foo['x'] == 1") == {("foo", "x")}

    def test_call_result_indexing_collects_inner_references(self) -> None:
        assert _variables("toString(runtime['x'])['y'] == 'z'") == {("runtime", "x")}

    def test_no_variables(self) -> None:
        assert _variables("1 + 1 == 2") == frozenset()

    def test_repeated_extraction_is_stable(self) -> None:
        compiled = parse_expression(
            "token['A']['error'] > runtime['x'] && global['pipeline'] == 'p'"
        )
        assert extract_variables(compiled) == extract_variables(compiled)


class TestFormatReference:
    def test_renders_indexed_form(self) -> None:
        assert format_reference(("token", "A", "error")) == "token['A']['error']"

    def test_root_only(self) -> None:
        assert format_reference(("token",)) == "token"
