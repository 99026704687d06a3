"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich, and the logging
setup that routes log records through the stderr console.
"""

import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler

from fsagent.core.theme import get_theme

LOG_LEVEL_ENV_VAR = "LOG_LEVEL"


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route log records through a RichHandler on stderr.

    The level is WARNING by default, DEBUG when verbose and ERROR when quiet.
    LOG_LEVEL overrides the default (but not the explicit flags).

    Args:
        verbose: Enable debug logging.
        quiet: Only log errors.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").upper())
        if not isinstance(level, int):
            level = logging.WARNING

    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=verbose)
    root = logging.getLogger("fsagent")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")


def print_hint(message: str) -> None:
    """Print a recovery suggestion."""
    err_console.print(f"  [muted]-> {message}[/]")
