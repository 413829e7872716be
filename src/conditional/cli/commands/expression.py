"""Commands that inspect expressions without evaluating them."""

from __future__ import annotations

from dataclasses import asdict

import click
from rich.table import Table

from conditional.cli.console import console
from conditional.cli.context import ExitCode
from conditional.cli.output import (
    OutputFormat,
    format_error,
    format_json,
    format_success,
)
from conditional.condition import validate as validate_expression
from conditional.expressions import (
    CompileError,
    ExpressionEngine,
    ExpressionErrorInfo,
    default_registry,
    format_reference,
)

_FORMAT_OPTION = click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in OutputFormat]),
    default=OutputFormat.TEXT.value,
    help="Output format.",
)


@click.command()
@click.argument("expression")
@_FORMAT_OPTION
def validate(expression: str, fmt: str) -> None:
    """Check that EXPRESSION compiles.

    Examples:
        conditional validate "token['Loader']['error'] > 0"
        conditional validate "math:max(1, 2) > 1" --format json
    """
    failures = validate_expression(expression)

    if fmt == OutputFormat.JSON.value:
        click.echo(
            format_json(
                {
                    "valid": not failures,
                    "errors": [
                        {"message": f.message, "property": f.config_property}
                        for f in failures
                    ],
                }
            )
        )
    elif failures:
        click.echo(
            format_error(
                "Expression is invalid",
                details=[
                    line
                    for f in failures
                    for line in (
                        f"Property: {f.config_property}",
                        *f.message.splitlines(),
                    )
                ],
                suggestion="Run 'conditional functions' to list callable functions",
            ),
            err=True,
        )
    else:
        click.echo(format_success("Expression is valid"))

    if failures:
        raise SystemExit(ExitCode.FAILURE)


@click.command()
@click.argument("expression")
@_FORMAT_OPTION
def variables(expression: str, fmt: str) -> None:
    """List the variables EXPRESSION references.

    Examples:
        conditional variables "token['A']['error'] > runtime['limit']"
    """
    try:
        engine = ExpressionEngine()
        references = sorted(engine.variables(engine.compile(expression)))
    except CompileError as e:
        if fmt == OutputFormat.JSON.value:
            info = ExpressionErrorInfo.from_error(e)
            click.echo(format_json({"error": asdict(info)}))
        else:
            click.echo(format_error(e.message), err=True)
        raise SystemExit(ExitCode.FAILURE) from e

    if fmt == OutputFormat.JSON.value:
        click.echo(format_json([list(reference) for reference in references]))
        return
    for reference in references:
        click.echo(format_reference(reference))


@click.command()
def functions() -> None:
    """List the functions expressions may call."""
    table = Table(title="Expression functions")
    table.add_column("Function")
    table.add_column("Description")

    registry = default_registry()
    for qualified in registry.names():
        namespace, _, name = qualified.rpartition(":")
        function = registry.lookup(namespace or None, name)
        doc = (function.__doc__ or "").strip().splitlines() if function else []
        table.add_row(qualified, doc[0] if doc else "")

    console.print(table)
