"""Unit tests for the backup store.

Tests for BackupStore creation, restore, integrity checks and retention.
"""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from fsagent.backup.store import (
    METADATA_SUFFIX,
    BackupStore,
    file_checksum,
    prune_sessions,
    scan_sessions,
    select_expired,
)
from fsagent.core.errors import IntegrityError, TargetNotFoundError, UnsupportedOperationError
from fsagent.models.backup import BackupKind


class TestCreateBackup:
    """Tests for BackupStore.create_backup method."""

    def test_copies_and_indexes(self, store: BackupStore, workspace: Path) -> None:
        """A backup copies bytes, records a checksum and writes a sidecar."""
        source = workspace / "notes.txt"
        source.write_text("hello")

        record = store.create_backup(source)

        backup_path = Path(record.backup_path)
        assert backup_path.read_text() == "hello"
        assert backup_path.parent == workspace / ".agent-backups" / "session-test"
        assert record.checksum == file_checksum(source)
        assert record.size_bytes == 5
        assert record.kind == BackupKind.FILE
        assert store.get(record.id) == record
        assert len(store) == 1

        sidecar = backup_path.parent / f"{record.id}{METADATA_SUFFIX}"
        assert json.loads(sidecar.read_text())["source_path"] == str(source)

    def test_missing_source(self, store: BackupStore, workspace: Path) -> None:
        with pytest.raises(TargetNotFoundError):
            store.create_backup(workspace / "nope.txt")

    def test_directory_needs_directory_backup(
        self, store: BackupStore, workspace: Path
    ) -> None:
        """Files and directories use different backup calls."""
        (workspace / "d").mkdir()

        with pytest.raises(UnsupportedOperationError):
            store.create_backup(workspace / "d")

    def test_session_directory_created_lazily(
        self, store: BackupStore, workspace: Path
    ) -> None:
        assert not store.session_dir.exists()

        (workspace / "a.txt").write_text("a")
        store.create_backup(workspace / "a.txt")

        assert store.session_dir.is_dir()


class TestRestoreBackup:
    """Tests for BackupStore.restore_backup method."""

    def test_restores_original_content(self, store: BackupStore, workspace: Path) -> None:
        """Restoring overwrites the current content with the copy."""
        source = workspace / "notes.txt"
        source.write_text("before")
        record = store.create_backup(source)
        source.write_text("after")

        store.restore_backup(record.id)

        assert source.read_text() == "before"

    def test_binary_round_trip(self, store: BackupStore, workspace: Path) -> None:
        """Every byte value survives backup and restore unchanged."""
        source = workspace / "blob.bin"
        payload = bytes(range(256))
        source.write_bytes(payload)
        record = store.create_backup(source)
        source.write_bytes(b"")

        store.restore_backup(record.id)

        assert source.read_bytes() == payload
        assert Path(record.backup_path).read_bytes() == payload
        assert record.checksum == file_checksum(source)

    def test_restores_to_other_target(self, store: BackupStore, workspace: Path) -> None:
        source = workspace / "notes.txt"
        source.write_text("before")
        record = store.create_backup(source)

        store.restore_backup(record.id, workspace / "sub" / "copy.txt")

        assert (workspace / "sub" / "copy.txt").read_text() == "before"

    def test_tampered_copy_refused(self, store: BackupStore, workspace: Path) -> None:
        """A copy that no longer matches its checksum never overwrites the target."""
        source = workspace / "notes.txt"
        source.write_text("before")
        record = store.create_backup(source)
        source.write_text("current")
        Path(record.backup_path).write_text("tampered")

        with pytest.raises(IntegrityError):
            store.restore_backup(record.id)

        assert source.read_text() == "current"
        assert not store.verify(record.id)

    def test_unknown_id(self, store: BackupStore) -> None:
        with pytest.raises(TargetNotFoundError):
            store.restore_backup("backup-missing")

    def test_missing_copy(self, store: BackupStore, workspace: Path) -> None:
        """A copy removed from disk is reported as unavailable."""
        source = workspace / "notes.txt"
        source.write_text("before")
        record = store.create_backup(source)
        Path(record.backup_path).unlink()

        with pytest.raises(TargetNotFoundError, match="missing"):
            store.restore_backup(record.id)

    def test_directory_round_trip(self, store: BackupStore, workspace: Path) -> None:
        """Directory backups restore the whole tree."""
        tree = workspace / "project"
        (tree / "src").mkdir(parents=True)
        (tree / "src" / "main.py").write_text("print('hi')")
        (tree / "README").write_text("readme")

        record = store.create_directory_backup(tree)
        assert record.kind == BackupKind.DIRECTORY
        assert store.verify(record.id)

        (tree / "src" / "main.py").unlink()
        (tree / "README").unlink()
        store.restore_backup(record.id)

        assert (tree / "src" / "main.py").read_text() == "print('hi')"
        assert (tree / "README").read_text() == "readme"


class TestSelectExpired:
    """Tests for select_expired function."""

    def test_age_and_count(self, store: BackupStore, workspace: Path) -> None:
        """Only the newest max_count records younger than max_age survive."""
        records = []
        for name in ("a.txt", "b.txt", "c.txt"):
            (workspace / name).write_text(name)
            records.append(store.create_backup(workspace / name))

        kept, expired = select_expired(records, max_age_hours=24, max_count=2)
        assert len(kept) == 2
        assert len(expired) == 1

        later = datetime.now(UTC) + timedelta(hours=48)
        kept, expired = select_expired(records, max_age_hours=24, max_count=10, now=later)
        assert kept == []
        assert len(expired) == 3


class TestCleanup:
    """Tests for BackupStore.cleanup method."""

    @pytest.fixture
    def three_backups(self, store: BackupStore, workspace: Path) -> BackupStore:
        for name in ("a.txt", "b.txt", "c.txt"):
            (workspace / name).write_text(name)
            store.create_backup(workspace / name)
        return store

    def test_dry_run_deletes_nothing(self, three_backups: BackupStore) -> None:
        report = three_backups.cleanup(max_count=1, dry_run=True)

        assert report.dry_run
        assert len(report.deleted) == 2
        assert len(three_backups) == 3
        assert all(Path(record.backup_path).exists() for record in report.deleted)

    def test_deletes_files_and_index(self, three_backups: BackupStore) -> None:
        report = three_backups.cleanup(max_count=1)

        assert report.ok
        assert len(report.deleted) == 2
        assert len(report.kept) == 1
        assert len(three_backups) == 1
        assert report.freed_bytes == 10
        for record in report.deleted:
            assert not Path(record.backup_path).exists()
            assert three_backups.get(record.id) is None

    def test_one_failure_does_not_stop_the_rest(self, three_backups: BackupStore) -> None:
        """Errors are collected per record and the pass continues."""
        with patch(
            "fsagent.backup.store.delete_record_files",
            side_effect=[OSError("device busy"), None],
        ):
            report = three_backups.cleanup(max_count=1)

        assert not report.ok
        assert len(report.errors) == 1
        assert "device busy" in report.errors[0]
        assert len(report.deleted) == 1
        assert len(report.kept) == 2
        assert len(three_backups) == 2

    def test_records_newest_first(self, three_backups: BackupStore) -> None:
        timestamps = [record.timestamp for record in three_backups.records()]
        assert timestamps == sorted(timestamps, reverse=True)


class TestDiscard:
    """Tests for BackupStore.discard method."""

    def test_removes_files_and_index(self, store: BackupStore, workspace: Path) -> None:
        (workspace / "a.txt").write_text("a")
        record = store.create_backup(workspace / "a.txt")

        assert store.discard(record.id) is True

        backup_path = Path(record.backup_path)
        assert not backup_path.exists()
        assert not (backup_path.parent / f"{record.id}{METADATA_SUFFIX}").exists()
        assert store.get(record.id) is None
        assert len(store) == 0

    def test_unknown_id(self, store: BackupStore) -> None:
        assert store.discard("missing") is False

    def test_failure_keeps_record(self, store: BackupStore, workspace: Path) -> None:
        """A record that cannot be deleted is left for the retention pass."""
        (workspace / "a.txt").write_text("a")
        record = store.create_backup(workspace / "a.txt")

        with patch(
            "fsagent.backup.store.delete_record_files", side_effect=OSError("device busy")
        ):
            assert store.discard(record.id) is False

        assert store.get(record.id) == record


class TestSessions:
    """Tests for scan_sessions and prune_sessions functions."""

    def test_scan_lists_sessions(self, workspace: Path) -> None:
        """Sessions are read back from their sidecars, newest id first."""
        (workspace / "a.txt").write_text("a")
        BackupStore(workspace, session_id="session-1").create_backup(workspace / "a.txt")
        BackupStore(workspace, session_id="session-2").create_backup(workspace / "a.txt")

        sessions = scan_sessions(workspace)

        assert [session.session_id for session in sessions] == ["session-2", "session-1"]
        assert all(len(session.records) == 1 for session in sessions)
        assert sessions[0].total_bytes == 1

    def test_scan_skips_unreadable_sidecars(self, workspace: Path) -> None:
        (workspace / "a.txt").write_text("a")
        store = BackupStore(workspace, session_id="session-1")
        store.create_backup(workspace / "a.txt")
        (store.session_dir / f"broken{METADATA_SUFFIX}").write_text("{not json")

        (session,) = scan_sessions(workspace)

        assert len(session.records) == 1
        assert len(session.unreadable) == 1

    def test_scan_without_backups(self, workspace: Path) -> None:
        assert scan_sessions(workspace) == []

    def test_prune_across_sessions(self, workspace: Path) -> None:
        """max_count applies to all sessions together; empty sessions go away."""
        (workspace / "a.txt").write_text("a")
        BackupStore(workspace, session_id="session-1").create_backup(workspace / "a.txt")
        BackupStore(workspace, session_id="session-2").create_backup(workspace / "a.txt")

        report = prune_sessions(workspace, max_age_hours=24, max_count=1)

        assert len(report.deleted) == 1
        assert len(report.kept) == 1
        assert len(scan_sessions(workspace)) == 1
