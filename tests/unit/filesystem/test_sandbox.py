"""Unit tests for workspace sandboxing.

Tests for WorkspaceSandbox path resolution and protected paths.
"""

from pathlib import Path

import pytest
from fsagent.core.errors import ErrorKind, PathRejectedError
from fsagent.filesystem.sandbox import WorkspaceSandbox, is_protected_relative


class TestResolve:
    """Tests for WorkspaceSandbox.resolve method."""

    def test_relative_path(self, sandbox: WorkspaceSandbox, workspace: Path) -> None:
        """Relative paths resolve under the workspace."""
        assert sandbox.resolve("notes/a.txt") == workspace / "notes" / "a.txt"

    def test_absolute_path_inside(self, sandbox: WorkspaceSandbox, workspace: Path) -> None:
        """Absolute paths inside the workspace are accepted."""
        assert sandbox.resolve(str(workspace / "a.txt")) == workspace / "a.txt"

    @pytest.mark.parametrize("path", ["../outside.txt", "a/../../outside.txt", "/etc/passwd"])
    def test_escape_rejected(self, sandbox: WorkspaceSandbox, path: str) -> None:
        """Traversal and foreign absolute paths are rejected."""
        with pytest.raises(PathRejectedError) as exc_info:
            sandbox.resolve(path)

        assert exc_info.value.kind == ErrorKind.PATH_REJECTED

    def test_symlink_escape_rejected(
        self, sandbox: WorkspaceSandbox, workspace: Path, tmp_path: Path
    ) -> None:
        """A link pointing outside the workspace is rejected like '..'."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (workspace / "link").symlink_to(outside, target_is_directory=True)

        with pytest.raises(PathRejectedError):
            sandbox.resolve("link/secret.txt")

    @pytest.mark.parametrize("path", ["", "   "])
    def test_empty_rejected(self, sandbox: WorkspaceSandbox, path: str) -> None:
        """Empty paths are rejected."""
        with pytest.raises(PathRejectedError):
            sandbox.resolve(path)

    def test_root_rejected_unless_allowed(
        self, sandbox: WorkspaceSandbox, workspace: Path
    ) -> None:
        """The root itself is only valid where explicitly allowed."""
        with pytest.raises(PathRejectedError):
            sandbox.resolve(".")

        assert sandbox.resolve(".", allow_root=True) == workspace

    @pytest.mark.parametrize(
        "path", [".agent-backups", ".agent-backups/session-1/x.txt", "./.agent-backups"]
    )
    def test_backup_area_rejected(self, sandbox: WorkspaceSandbox, path: str) -> None:
        """The backup area is never a valid target."""
        with pytest.raises(PathRejectedError, match="reserved"):
            sandbox.resolve(path)


class TestRelativeAndDisplay:
    """Tests for relative and display helpers."""

    def test_relative(self, sandbox: WorkspaceSandbox, workspace: Path) -> None:
        """relative renders POSIX paths and '.' for the root."""
        assert sandbox.relative(workspace / "a" / "b.txt") == "a/b.txt"
        assert sandbox.relative(workspace) == "."

    def test_display(self, sandbox: WorkspaceSandbox, workspace: Path) -> None:
        """display shortens workspace paths and leaves others alone."""
        assert sandbox.display(str(workspace / "a.txt")) == "a.txt"
        assert sandbox.display("/elsewhere/a.txt") == "/elsewhere/a.txt"


class TestIsProtectedRelative:
    """Tests for is_protected_relative function."""

    def test_matches(self) -> None:
        assert is_protected_relative(".agent-backups")
        assert is_protected_relative(".agent-backups/s/x")
        assert not is_protected_relative("notes/.agent-backups-old")
        assert not is_protected_relative("a.txt")
