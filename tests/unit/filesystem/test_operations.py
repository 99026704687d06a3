"""Unit tests for filesystem primitives.

Tests for FilesystemOperations result envelopes.
"""

from pathlib import Path

import pytest
from fsagent.core.errors import ErrorKind
from fsagent.filesystem.operations import MAX_READ_BYTES, FilesystemOperations


@pytest.fixture
def ops() -> FilesystemOperations:
    return FilesystemOperations()


class TestDirectories:
    """Tests for directory primitives."""

    def test_create_directory_recursive(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Recursive creation makes missing parents."""
        result = ops.create_directory(tmp_path / "a" / "b")

        assert result.success
        assert (tmp_path / "a" / "b").is_dir()

    def test_create_directory_without_parent(
        self, ops: FilesystemOperations, tmp_path: Path
    ) -> None:
        """Non-recursive creation fails when the parent is missing."""
        result = ops.create_directory(tmp_path / "a" / "b", recursive=False)

        assert not result.success
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_create_existing_directory(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """An existing directory is reported, not silently accepted."""
        result = ops.create_directory(tmp_path)

        assert result.error_kind == ErrorKind.ALREADY_EXISTS

    def test_delete_non_empty_needs_recursive(
        self, ops: FilesystemOperations, tmp_path: Path
    ) -> None:
        """Non-empty directories are only removed recursively."""
        (tmp_path / "d").mkdir()
        (tmp_path / "d" / "f.txt").write_text("x")

        refused = ops.delete_directory(tmp_path / "d")
        removed = ops.delete_directory(tmp_path / "d", recursive=True)

        assert refused.error_kind == ErrorKind.VALIDATION_FAILURE
        assert removed.success
        assert not (tmp_path / "d").exists()

    def test_list_hides_backup_area(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Listings put directories first and hide .agent-backups."""
        (tmp_path / ".agent-backups").mkdir()
        (tmp_path / "zdir").mkdir()
        (tmp_path / "a.txt").write_text("hello")

        result = ops.list_directory(tmp_path)

        assert result.success
        assert result.output == "zdir/\na.txt"
        assert result.message.startswith("2 entries")

    def test_list_detailed(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Detailed listings show type and size."""
        (tmp_path / "a.txt").write_text("hello")

        result = ops.list_directory(tmp_path, detailed=True)

        assert result.output is not None
        assert result.output.startswith("f")
        assert "5 B" in result.output

    def test_list_empty(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        assert ops.list_directory(tmp_path).output == "(empty)"


class TestFiles:
    """Tests for file primitives."""

    def test_create_file_with_parents(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """create_file makes missing parents and writes content."""
        target = tmp_path / "x" / "a.txt"

        result = ops.create_file(target, "hello")

        assert result.success
        assert target.read_text() == "hello"

    def test_create_file_refuses_overwrite(
        self, ops: FilesystemOperations, tmp_path: Path
    ) -> None:
        """Existing files are only replaced with overwrite."""
        target = tmp_path / "a.txt"
        target.write_text("old")

        refused = ops.create_file(target, "new")
        replaced = ops.create_file(target, "new", overwrite=True)

        assert refused.error_kind == ErrorKind.ALREADY_EXISTS
        assert replaced.success
        assert target.read_text() == "new"

    def test_write_append(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        target = tmp_path / "a.txt"
        target.write_text("one\n")

        result = ops.write_file(target, "two\n", append=True)

        assert result.message.startswith("Appended")
        assert target.read_text() == "one\ntwo\n"

    def test_read_slice(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """lines/from_line select a 1-based slice."""
        target = tmp_path / "a.txt"
        target.write_text("1\n2\n3\n4\n5\n")

        result = ops.read_file(target, lines=2, from_line=3)

        assert result.output == "3\n4"

    def test_read_too_large(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Files over the read limit are refused."""
        target = tmp_path / "big.bin"
        target.write_bytes(b"x" * (MAX_READ_BYTES + 1))

        result = ops.read_file(target)

        assert not result.success
        assert "too large" in result.message

    def test_read_missing(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        assert ops.read_file(tmp_path / "nope").error_kind == ErrorKind.NOT_FOUND

    def test_modify_first_occurrence(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Without replace_all only the first match changes."""
        target = tmp_path / "a.txt"
        target.write_text("a a a")

        ops.modify_file(target, "a", "b")

        assert target.read_text() == "b a a"

    def test_modify_all(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        target = tmp_path / "a.txt"
        target.write_text("a a a")

        result = ops.modify_file(target, "a", "b", replace_all=True)

        assert target.read_text() == "b b b"
        assert "3 occurrences" in result.message

    def test_modify_empty_search_rewrites(
        self, ops: FilesystemOperations, tmp_path: Path
    ) -> None:
        target = tmp_path / "a.txt"
        target.write_text("old content")

        ops.modify_file(target, "", "new")

        assert target.read_text() == "new"

    def test_modify_not_found(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Search text that is absent is a failure and changes nothing."""
        target = tmp_path / "a.txt"
        target.write_text("hello")

        result = ops.modify_file(target, "zzz", "y")

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert target.read_text() == "hello"

    def test_modify_binary_file(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Bytes that are not UTF-8 fail validation and are left untouched."""
        target = tmp_path / "image.bin"
        target.write_bytes(b"\xff\xfe\x00binary")

        result = ops.modify_file(target, "binary", "text")

        assert not result.success
        assert result.error_kind == ErrorKind.VALIDATION_FAILURE
        assert "not a UTF-8 text file" in result.message
        assert target.read_bytes() == b"\xff\xfe\x00binary"

    def test_truncate(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        target = tmp_path / "a.txt"
        target.write_text("hello world")

        ops.truncate_file(target, 5)

        assert target.read_text() == "hello"

    def test_delete_file_refuses_directory(
        self, ops: FilesystemOperations, tmp_path: Path
    ) -> None:
        assert ops.delete_file(tmp_path).error_kind == ErrorKind.VALIDATION_FAILURE


class TestRelocation:
    """Tests for copy, move and rename primitives."""

    def test_copy(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("hello")

        result = ops.copy_file(tmp_path / "a.txt", tmp_path / "sub" / "b.txt")

        assert result.success
        assert (tmp_path / "sub" / "b.txt").read_text() == "hello"
        assert (tmp_path / "a.txt").exists()

    def test_copy_directory_refused(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        (tmp_path / "d").mkdir()

        result = ops.copy_file(tmp_path / "d", tmp_path / "e")

        assert result.error_kind == ErrorKind.VALIDATION_FAILURE

    def test_move_refuses_existing(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "b.txt").write_text("b")

        result = ops.move(tmp_path / "a.txt", tmp_path / "b.txt")

        assert result.error_kind == ErrorKind.ALREADY_EXISTS
        assert (tmp_path / "b.txt").read_text() == "b"

    def test_move_overwrite(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "b.txt").write_text("b")

        result = ops.move(tmp_path / "a.txt", tmp_path / "b.txt", overwrite=True)

        assert result.success
        assert (tmp_path / "b.txt").read_text() == "a"
        assert not (tmp_path / "a.txt").exists()

    def test_move_never_replaces_directory(
        self, ops: FilesystemOperations, tmp_path: Path
    ) -> None:
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "d").mkdir()

        result = ops.move(tmp_path / "a.txt", tmp_path / "d", overwrite=True)

        assert result.error_kind == ErrorKind.VALIDATION_FAILURE

    def test_move_directory(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        (tmp_path / "d").mkdir()
        (tmp_path / "d" / "f.txt").write_text("x")

        result = ops.move(tmp_path / "d", tmp_path / "e")

        assert result.success
        assert (tmp_path / "e" / "f.txt").read_text() == "x"

    def test_rename(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("a")

        result = ops.rename(tmp_path / "a.txt", "b.txt")

        assert result.success
        assert result.message == "Renamed a.txt to b.txt"
        assert (tmp_path / "b.txt").exists()

    def test_rename_same_name_is_noop(self, ops: FilesystemOperations, tmp_path: Path) -> None:
        """Renaming to the current name succeeds without doing anything."""
        (tmp_path / "a.txt").write_text("a")

        result = ops.rename(tmp_path / "a.txt", "a.txt")

        assert result.success
        assert "already" in result.message
