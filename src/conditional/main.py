"""CLI entry point for conditional.

This module defines the Click-based command-line interface.
"""

from __future__ import annotations

import logging

import click

from conditional import __version__
from conditional.cli.commands import evaluate, functions, validate, variables
from conditional.logging import configure_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="conditional")
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress non-essential output (ERROR level only).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, quiet: bool) -> None:
    """Validate and evaluate pipeline condition expressions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    # Priority: quiet > verbose > CONDITIONAL_LOG_LEVEL
    if quiet:
        configure_logging(level=logging.ERROR)
    elif verbose > 0:
        configure_logging(level=logging.INFO if verbose == 1 else logging.DEBUG)
    else:
        configure_logging()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(validate)
cli.add_command(variables)
cli.add_command(evaluate)
cli.add_command(functions)

if __name__ == "__main__":
    cli()
