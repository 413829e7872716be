from __future__ import annotations

from pathlib import Path

import click

from conditional.cli.context import ExitCode
from conditional.cli.output import OutputFormat, format_error, format_json
from conditional.condition import Condition, ConditionConfig
from conditional.config import load_run_config
from conditional.exceptions import ConditionalError, ConfigError
from conditional.logging import bind_context, clear_context, get_logger


@click.command()
@click.argument(
    "run_file",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
)
@click.option(
    "-e",
    "--expression",
    default=None,
    help="Expression to evaluate (overrides the run file).",
)
@click.option(
    "--exit-code",
    "use_exit_code",
    is_flag=True,
    default=False,
    help="Exit with status 2 when the condition is false.",
)
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in OutputFormat]),
    default=OutputFormat.TEXT.value,
    help="Output format.",
)
def evaluate(
    run_file: Path,
    expression: str | None,
    use_exit_code: bool,
    fmt: str,
) -> None:
    """Evaluate a condition against the run described in RUN_FILE.

    Examples:
        conditional evaluate run.yaml
        conditional evaluate run.yaml -e "global['pipeline'] == 'nightly'"
        conditional evaluate run.yaml --exit-code && ./run-branch.sh
    """
    logger = get_logger(__name__)

    try:
        run = load_run_config(run_file)
    except ConfigError as e:
        details = [f"Field: {e.field}"] if e.field else None
        click.echo(format_error(e.message, details=details), err=True)
        raise SystemExit(ExitCode.FAILURE) from e

    condition = Condition(ConditionConfig(expression=expression or run.expression))
    bind_context(pipeline=run.pipeline.name, stage=run.pipeline.stage)
    try:
        result = condition.apply(run.to_context())
    except ConditionalError as e:
        logger.debug("condition_failed", error=e.message)
        click.echo(format_error(e.message), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    finally:
        clear_context()

    if fmt == OutputFormat.JSON.value:
        click.echo(
            format_json(
                {"expression": condition.config.expression, "result": result}
            )
        )
    else:
        click.echo("true" if result else "false")

    if use_exit_code and not result:
        raise SystemExit(ExitCode.CONDITION_FALSE)
