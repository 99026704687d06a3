"""CLI package for fsagent.

This package contains the Typer application and all subcommands.
"""

from fsagent.cli.main import app

__all__ = ["app"]
