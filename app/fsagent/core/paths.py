"""XDG-compliant path management for fsagent.

Configuration lives under the XDG config directory. Backups are not stored
here: each workspace keeps its own private backup area (see BACKUP_DIR_NAME).

XDG defaults:
- Config: ~/.config/fsagent/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "fsagent"

# Hidden directory inside the workspace that holds backup sessions
BACKUP_DIR_NAME = ".agent-backups"

# Environment variable overriding the workspace root
WORKSPACE_ENV_VAR = "FSAGENT_WORKSPACE"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/fsagent/ (or XDG_CONFIG_HOME/fsagent/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the agent configuration file path.

    Returns:
        Path to ~/.config/fsagent/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_default_workspace() -> Path:
    """Get the workspace root used when none is configured.

    FSAGENT_WORKSPACE wins when set; otherwise ./workspace under the
    current directory.

    Returns:
        Absolute path of the default workspace.
    """
    override = os.environ.get(WORKSPACE_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return (Path.cwd() / "workspace").resolve()


def get_backup_root(workspace: Path) -> Path:
    """Get the backup area of a workspace.

    Args:
        workspace: Workspace root directory.

    Returns:
        Path to <workspace>/.agent-backups.
    """
    return workspace / BACKUP_DIR_NAME


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_workspace(workspace: Path) -> Path:
    """Create the workspace root if it doesn't exist.

    Args:
        workspace: Workspace root directory.

    Returns:
        The workspace path.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(workspace, "workspace")
