"""Agent configuration and settings.

Configuration is stored in ~/.config/fsagent/config.toml. A missing file
means defaults; an unreadable or invalid one is an error.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fsagent.core.paths import get_config_path, get_default_workspace

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class TranslatorConfig(BaseModel):
    """Settings for the natural-language intent translator.

    Attributes:
        model: Chat model used for translation.
        api_key_env: Environment variable holding the API key.
        base_url: Optional API base URL (for compatible gateways).
        timeout_seconds: Request timeout.
        temperature: Sampling temperature.
    """

    model_config = ConfigDict(extra="forbid")

    model: str = DEFAULT_MODEL
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    timeout_seconds: Annotated[
        float,
        Field(gt=0, le=600, description="Request timeout in seconds"),
    ] = 30.0
    temperature: Annotated[
        float,
        Field(ge=0, le=2, description="Sampling temperature"),
    ] = 0.1


class AgentConfig(BaseModel):
    """Configuration for the filesystem agent.

    Attributes:
        workspace: Workspace root. None means the default workspace.
        max_history: Maximum number of undo ledger entries kept.
        backup_retention_hours: Backups older than this are pruned on shutdown.
        backup_max_count: At most this many backups survive pruning.
        backup_deletions: Take a backup before deleting files and directories.
        confirm_destructive: Ask before deletions that request confirmation.
        translator: Intent translator settings.
    """

    model_config = ConfigDict(extra="forbid")

    workspace: Path | None = None
    max_history: Annotated[
        int,
        Field(ge=1, le=10_000, description="Undo ledger bound"),
    ] = 50
    backup_retention_hours: Annotated[
        float,
        Field(gt=0, description="Maximum backup age in hours"),
    ] = 24.0
    backup_max_count: Annotated[
        int,
        Field(ge=0, description="Maximum number of retained backups"),
    ] = 50
    backup_deletions: bool = False
    confirm_destructive: bool = True
    translator: TranslatorConfig = Field(default_factory=TranslatorConfig)

    @property
    def workspace_root(self) -> Path:
        """Get the absolute workspace root.

        Returns:
            Configured workspace (expanded and resolved) or the default one.
        """
        if self.workspace is None:
            return get_default_workspace()
        return self.workspace.expanduser().resolve()


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed or validated."""


def load_config(path: Path | None = None) -> AgentConfig:
    """Load agent configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated AgentConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML is invalid or doesn't match the schema.
        ConfigError: If the file cannot be read.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return AgentConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> AgentConfig:
    """Load configuration, falling back to defaults when no file exists.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Loaded or default AgentConfig.

    Raises:
        ConfigParseError: If the file exists but is invalid.
        ConfigError: If the file exists but cannot be read.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        logger.debug("No config file found, using defaults")
        return AgentConfig()


def save_config(config: AgentConfig, path: Path | None = None) -> Path:
    """Save agent configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The AgentConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _config_to_dict(config: AgentConfig) -> dict[str, object]:
    """Convert AgentConfig to a dictionary for TOML serialization.

    TOML has no null, so unset optional values are left out.
    """
    data = config.model_dump(mode="json", exclude_none=True)
    if not data.get("translator"):
        data.pop("translator", None)
    return data
