"""Unit tests for the main CLI application."""

import logging

from fsagent import __version__
from fsagent.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


class TestMainApp:
    """Tests for global options."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"fsagent version {__version__}" in result.stdout

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])

        for command in ("shell", "run", "exec", "plan", "backups", "config"):
            assert command in result.output

    def test_verbose_enables_debug_logging(self) -> None:
        result = runner.invoke(app, ["--verbose", "config", "show"])

        assert result.exit_code == 0
        assert logging.getLogger("fsagent").level == logging.DEBUG

    def test_quiet_only_logs_errors(self) -> None:
        runner.invoke(app, ["--quiet", "config", "show"])

        assert logging.getLogger("fsagent").level == logging.ERROR
