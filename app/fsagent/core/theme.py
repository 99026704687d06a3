"""Theme management for the fsagent CLI.

Colors come from the bundled data/theme.toml, optionally overridden by
~/.config/fsagent/theme.toml.
"""

import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, field_validator
from rich.theme import Theme

from fsagent.core.paths import get_config_dir

logger = logging.getLogger(__name__)


class ThemeColors(BaseModel):
    """Color configuration for the fsagent CLI.

    All colors must be valid hex codes (#RRGGBB or #RGB).
    """

    model_config = ConfigDict(extra="forbid")

    # Base colors
    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    # Semantic colors
    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # Plan impact colors
    impact_create: str = "#c1ff62"
    impact_modify: str = "#0e8ac8"
    impact_delete: str = "#f53263"
    impact_move: str = "#d44ebc"
    impact_read: str = "#b2bec3"

    path: str = "#faf870"

    @field_validator("*", mode="before")
    @classmethod
    def validate_hex_color(cls, v: object, info: Any) -> str:
        """Validate that all color values are valid hex codes."""
        if not isinstance(v, str):
            msg = f"{info.field_name}: color must be a string"
            raise ValueError(msg)
        color = v.strip()
        if not color.startswith("#"):
            msg = f"{info.field_name}: color must start with '#'"
            raise ValueError(msg)
        color_part = color[1:]
        if len(color_part) not in (3, 6):
            msg = f"{info.field_name}: color must be #RGB or #RRGGBB format"
            raise ValueError(msg)
        try:
            int(color_part, 16)
        except ValueError:
            msg = f"{info.field_name}: invalid hex color '{color}'"
            raise ValueError(msg) from None
        return color


def get_user_theme_path() -> Path:
    """Get the user theme configuration path.

    Returns:
        Path to ~/.config/fsagent/theme.toml
    """
    return get_config_dir() / "theme.toml"


def get_bundled_theme_path() -> Path:
    """Get the bundled default theme path."""
    return resources.files("fsagent.data").joinpath("theme.toml")  # type: ignore[return-value]


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Load the colors section from a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Dictionary of color name to hex value, or None if loading failed.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return None
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse TOML file %s: %s", path, e)
        return None
    except OSError as e:
        logger.warning("Failed to read theme file %s: %s", path, e)
        return None

    colors_raw: object = data.get("colors", {})
    if not isinstance(colors_raw, dict):
        logger.warning("Invalid 'colors' section in %s", path)
        return None
    return {
        key: value
        for key, value in cast(dict[str, object], colors_raw).items()
        if isinstance(value, str)
    }


def load_theme() -> ThemeColors:
    """Load theme colors with user override support.

    Priority:
    1. User theme (~/.config/fsagent/theme.toml) - partial or full override
    2. Bundled default theme (data/theme.toml)

    Returns:
        ThemeColors instance with merged configuration.
    """
    bundled_colors = _load_toml_colors(Path(get_bundled_theme_path()))
    if bundled_colors is None:
        logger.error("Failed to load bundled theme - installation may be corrupted")
        bundled_colors = {}

    user_path = get_user_theme_path()
    user_colors = _load_toml_colors(user_path)
    if user_colors is not None:
        logger.debug("Loaded user theme overrides from %s", user_path)
        merged_colors = {**bundled_colors, **user_colors}
    else:
        merged_colors = bundled_colors

    try:
        return ThemeColors(**merged_colors)
    except ValueError as e:
        logger.warning("Theme validation failed, using defaults: %s", e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Convert ThemeColors to a Rich Theme.

    Args:
        colors: ThemeColors instance to convert. If None, loads theme automatically.

    Returns:
        Rich Theme instance configured with the color scheme.
    """
    if colors is None:
        colors = load_theme()

    styles: dict[str, str] = {
        "text": colors.text,
        "muted": colors.muted,
        "header": colors.header,
        "border": colors.border,
        "success": colors.success,
        "warning": colors.warning,
        "error": f"bold {colors.error}",
        "info": colors.info,
        "impact.create": colors.impact_create,
        "impact.modify": colors.impact_modify,
        "impact.delete": colors.impact_delete,
        "impact.move": colors.impact_move,
        "impact.read": colors.impact_read,
        "path": colors.path,
        "bold_header": f"bold {colors.header}",
        "dim": colors.muted,
    }
    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading and caching it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme
