"""Unit tests for agent configuration.

Tests for AgentConfig validation and TOML load/save.
"""

import tomllib
from pathlib import Path

import pytest
from fsagent.core.config import (
    AgentConfig,
    ConfigNotFoundError,
    ConfigParseError,
    TranslatorConfig,
    load_config,
    load_config_or_default,
    save_config,
)
from pydantic import ValidationError


class TestAgentConfig:
    """Tests for AgentConfig Pydantic model."""

    def test_default_values(self) -> None:
        """AgentConfig has conservative defaults."""
        config = AgentConfig()

        assert config.workspace is None
        assert config.max_history == 50
        assert config.backup_retention_hours == 24.0
        assert config.backup_deletions is False
        assert config.confirm_destructive is True
        assert config.translator == TranslatorConfig()

    def test_workspace_root_default(self, tmp_path: Path) -> None:
        """Without a workspace the FSAGENT_WORKSPACE default is used."""
        assert AgentConfig().workspace_root == (tmp_path / "default-workspace").resolve()

    def test_workspace_root_resolved(self, tmp_path: Path) -> None:
        config = AgentConfig(workspace=tmp_path / "a" / ".." / "b")

        assert config.workspace_root == (tmp_path / "b").resolve()

    @pytest.mark.parametrize(
        "overrides",
        [{"max_history": 0}, {"backup_retention_hours": 0}, {"backup_max_count": -1}],
    )
    def test_bounds(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            AgentConfig(**overrides)  # type: ignore[arg-type]

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AgentConfig(colour="blue")  # type: ignore[call-arg]

    def test_translator_validation(self) -> None:
        with pytest.raises(ValidationError):
            TranslatorConfig(temperature=3)


class TestLoadConfig:
    """Tests for load_config and load_config_or_default functions."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "config.toml")

    def test_missing_file_defaults(self, tmp_path: Path) -> None:
        assert load_config_or_default(tmp_path / "config.toml") == AgentConfig()

    def test_loads_values(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text(
            'max_history = 10\nbackup_deletions = true\n[translator]\nmodel = "gpt-4o"\n'
        )

        config = load_config(path)

        assert config.max_history == 10
        assert config.backup_deletions is True
        assert config.translator.model == "gpt-4o"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("max_history = [")

        with pytest.raises(ConfigParseError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        """An existing but invalid file is an error, not a silent default."""
        path = tmp_path / "config.toml"
        path.write_text("max_history = 0\n")

        with pytest.raises(ConfigParseError, match="Invalid config"):
            load_config_or_default(path)

    def test_default_path(self, tmp_path: Path) -> None:
        """Without a path the XDG config location is used."""
        config_dir = tmp_path / "xdg-config" / "fsagent"
        config_dir.mkdir(parents=True)
        (config_dir / "config.toml").write_text("max_history = 7\n")

        assert load_config().max_history == 7


class TestSaveConfig:
    """Tests for save_config function."""

    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.toml"
        config = AgentConfig(workspace=tmp_path / "ws", max_history=5)

        assert save_config(config, path) == path
        assert load_config(path) == config

    def test_none_values_omitted(self, tmp_path: Path) -> None:
        """TOML has no null, so unset options are left out."""
        path = save_config(AgentConfig(), tmp_path / "config.toml")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        assert "workspace" not in data
        assert "base_url" not in data["translator"]
        assert not list(tmp_path.glob("*.tmp"))
