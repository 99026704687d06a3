"""Configuration commands.

Provides commands to show the effective configuration and to write a
config file with the default settings.
"""

from typing import Annotated

import tomli_w
import typer

from fsagent.cli.types import get_config
from fsagent.core.config import AgentConfig, ConfigError, save_config
from fsagent.core.paths import get_config_path
from fsagent.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or create the configuration file.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective configuration as TOML."""
    config = get_config(ctx)
    path = get_config_path()
    source = str(path) if path.exists() else "defaults (no config file)"
    console.print(f"[dim]# source: {source}[/dim]")
    console.print(f"[dim]# workspace: {config.workspace_root}[/dim]")
    data = config.model_dump(mode="json", exclude_none=True)
    console.print(tomli_w.dumps(data), highlight=False, markup=False)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with the default settings."""
    path = get_config_path()
    if path.exists() and not force:
        print_info(f"Config already exists: {path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        saved = save_config(AgentConfig())
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Wrote default config to {saved}")
