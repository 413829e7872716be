"""Unit tests for the conditional command-line interface.

These tests drive the Click commands through CliRunner and check output
and exit codes.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from conditional import __version__
from conditional.cli.context import ExitCode
from conditional.cli.output import format_error, format_success
from conditional.main import cli


@pytest.fixture
def run_file(tmp_path: Path, run_file_yaml: str) -> Path:
    path = tmp_path / "run.yaml"
    path.write_text(run_file_yaml)
    return path


# ============================================================================
# Entry Point
# ============================================================================


class TestEntryPoint:
    def test_version_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("validate", "variables", "evaluate", "functions"):
            assert command in result.output

    def test_no_subcommand_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "Usage:" in result.output

    def test_usage_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--invalid-option"])
        assert result.exit_code == 2


# ============================================================================
# validate / variables / functions
# ============================================================================


class TestValidateCommand:
    def test_valid_expression(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["validate", "token['A']['error'] > 0"])
        assert result.exit_code == ExitCode.SUCCESS
        assert "Success: Expression is valid" in result.output

    def test_invalid_expression(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["validate", "1 > math:maxx(1, 2)"])
        assert result.exit_code == ExitCode.FAILURE
        assert "Error: Expression is invalid" in result.output
        assert "Property: expression" in result.output
        assert "Unknown function 'math:maxx'" in result.output
        assert "conditional functions" in result.output

    def test_json_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["validate", "runtime['x'] ==", "--format", "json"]
        )
        assert result.exit_code == ExitCode.FAILURE
        data = json.loads(result.stdout)
        assert data["valid"] is False
        assert data["errors"][0]["property"] == "expression"
        assert "Unexpected end of expression" in data["errors"][0]["message"]

    def test_json_output_when_valid(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["validate", "true", "-f", "json"])
        assert result.exit_code == ExitCode.SUCCESS
        assert json.loads(result.stdout) == {"valid": True, "errors": []}


class TestVariablesCommand:
    def test_lists_references(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["variables", "token['A']['error'] > runtime['limit']"]
        )
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "runtime['limit']",
            "token['A']['error']",
        ]

    def test_json_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["variables", "global['pipeline'] == 'p'", "--format", "json"]
        )
        assert json.loads(result.stdout) == [["global", "pipeline"]]

    def test_compile_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["variables", "runtime[] == 1"])
        assert result.exit_code == ExitCode.FAILURE
        assert "Malformed index expression" in result.output

    def test_compile_error_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["variables", "runtime['x'] # 1", "--format", "json"]
        )
        assert result.exit_code == ExitCode.FAILURE
        error = json.loads(result.stdout)["error"]
        assert error["expression"] == "runtime['x'] # 1"
        assert error["position"] == 13
        assert "Invalid character '#'" in error["message"]


class TestFunctionsCommand:
    def test_lists_functions(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["functions"])
        assert result.exit_code == 0
        assert "math:max" in result.output
        assert "toDouble" in result.output


# ============================================================================
# evaluate
# ============================================================================


@pytest.mark.usefixtures("clean_env")
class TestEvaluateCommand:
    def test_true_result(self, cli_runner: CliRunner, run_file: Path) -> None:
        result = cli_runner.invoke(cli, ["evaluate", str(run_file)])
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output.strip() == "true"

    def test_expression_override(self, cli_runner: CliRunner, run_file: Path) -> None:
        result = cli_runner.invoke(
            cli, ["evaluate", str(run_file), "-e", "token['Loader']['error'] > 10"]
        )
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output.strip() == "false"

    def test_exit_code_when_false(self, cli_runner: CliRunner, run_file: Path) -> None:
        result = cli_runner.invoke(
            cli,
            [
                "evaluate",
                str(run_file),
                "-e",
                "global['plugin'] == 'Other'",
                "--exit-code",
            ],
        )
        assert result.exit_code == ExitCode.CONDITION_FALSE

    def test_exit_code_when_true(self, cli_runner: CliRunner, run_file: Path) -> None:
        result = cli_runner.invoke(cli, ["evaluate", str(run_file), "--exit-code"])
        assert result.exit_code == ExitCode.SUCCESS

    def test_json_output(self, cli_runner: CliRunner, run_file: Path) -> None:
        result = cli_runner.invoke(cli, ["evaluate", str(run_file), "-f", "json"])
        assert json.loads(result.stdout) == {
            "expression": "token['Loader']['error'] > runtime['max_error']",
            "result": True,
        }

    def test_missing_runtime_argument(
        self, cli_runner: CliRunner, run_file: Path
    ) -> None:
        result = cli_runner.invoke(
            cli, ["evaluate", str(run_file), "-e", "runtime['absent'] == 1"]
        )
        assert result.exit_code == ExitCode.FAILURE
        assert "runtime argument 'absent' that does not exist" in result.output

    def test_missing_expression(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "run.yaml"
        path.write_text("arguments: {}\n")
        result = cli_runner.invoke(cli, ["evaluate", str(path)])
        assert result.exit_code == ExitCode.FAILURE
        assert "Condition expression must be specified." in result.output

    def test_missing_run_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["evaluate", str(tmp_path / "absent.yaml")])
        assert result.exit_code == ExitCode.FAILURE
        assert "Run file not found" in result.output

    def test_invalid_run_file_reports_field(
        self, cli_runner: CliRunner, tmp_path: Path
    ) -> None:
        path = tmp_path / "run.yaml"
        path.write_text("statistics:\n  Loader:\n    error: -1\n")
        result = cli_runner.invoke(cli, ["evaluate", str(path)])
        assert result.exit_code == ExitCode.FAILURE
        assert "Field: statistics.Loader.error" in result.output

    def test_environment_overrides_expression(
        self,
        cli_runner: CliRunner,
        run_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("CONDITIONAL_EXPRESSION", "runtime['max_error'] == 4")
        result = cli_runner.invoke(cli, ["evaluate", str(run_file)])
        assert result.output.strip() == "false"


class TestOutputHelpers:
    def test_format_error(self) -> None:
        assert format_error("Bad", details=["one"], suggestion="Fix it") == (
            "Error: Bad\n  one\nSuggestion: Fix it"
        )

    def test_format_success(self) -> None:
        assert format_success("Done") == "Success: Done"
