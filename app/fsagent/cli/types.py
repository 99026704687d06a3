"""Shared helpers for CLI commands.

Builds configuration, agents and translators from the global options
stored on the Typer context, so every command wires them the same way.
"""

from pathlib import Path

import typer

from fsagent.agent import FileAgent
from fsagent.core.config import AgentConfig, ConfigError, load_config_or_default
from fsagent.translator.openai_client import OpenAITranslator
from fsagent.utils.formatting import print_error


def get_config(ctx: typer.Context) -> AgentConfig:
    """Load configuration, applying the --workspace override.

    Exits with code 1 when the config file is invalid.
    """
    try:
        config = load_config_or_default()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    workspace: Path | None = (ctx.obj or {}).get("workspace")
    if workspace is not None:
        config = config.model_copy(update={"workspace": workspace})
    return config


def build_agent(ctx: typer.Context) -> FileAgent:
    """Create an agent for the configured workspace."""
    config = get_config(ctx)
    try:
        return FileAgent.create(config)
    except RuntimeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def build_translator(config: AgentConfig) -> OpenAITranslator:
    return OpenAITranslator(config.translator)


def confirm_prompt(message: str) -> bool:
    """Confirmation callback for destructive operations."""
    return typer.confirm(message, default=False)
