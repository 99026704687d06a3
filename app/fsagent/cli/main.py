"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from pathlib import Path
from typing import Annotated

import typer

from fsagent import __version__
from fsagent.cli.commands import backups, config, exec_, plan, run, shell
from fsagent.utils.formatting import configure_logging

# Create main Typer app
app = typer.Typer(
    name="fsagent",
    help="Natural-language filesystem agent with backups and undo.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"fsagent version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
    ] = False,
    workspace: Annotated[
        Path | None,
        typer.Option(
            "--workspace",
            "-w",
            help="Workspace root (overrides config and FSAGENT_WORKSPACE).",
        ),
    ] = None,
) -> None:
    """fsagent - Run filesystem commands in plain language, safely.

    Every change inside the workspace is backed up first and can be undone.
    Plans let you preview several operations before anything is written.
    """
    configure_logging(verbose=verbose, quiet=quiet)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["workspace"] = workspace


# Register commands
app.add_typer(shell.app, name="shell")
app.add_typer(run.app, name="run")
app.add_typer(exec_.app, name="exec")
app.add_typer(plan.app, name="plan")
app.add_typer(backups.app, name="backups")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
