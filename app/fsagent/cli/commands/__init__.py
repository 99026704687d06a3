"""CLI commands for fsagent.

This package contains all subcommand implementations.
"""

from fsagent.cli.commands import backups, config, exec_, plan, run, shell

__all__ = ["backups", "config", "exec_", "plan", "run", "shell"]
