"""Session-scoped backup store.

Copies files (and whole directories) into a hidden, session-namespaced
directory under the workspace before they are mutated, and restores them
after verifying their SHA-256 checksum. Every copy gets a JSON metadata
sidecar so sessions left behind by earlier processes can still be listed
and pruned.

Layout::

    <workspace>/.agent-backups/<session-id>/
        notes_backup-1718000000000-a1b2c3.txt
        backup-1718000000000-a1b2c3.metadata.json
"""

import hashlib
import json
import logging
import shutil
import time
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from fsagent.core.errors import (
    FilesystemIOError,
    IntegrityError,
    TargetNotFoundError,
    UnsupportedOperationError,
)
from fsagent.core.paths import get_backup_root
from fsagent.models.backup import BackupKind, BackupRecord, BackupSession, CleanupReport

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".metadata.json"
_CHUNK_SIZE = 64 * 1024


def _new_id(prefix: str) -> str:
    """Timestamp plus random suffix, e.g. ``backup-1718000000000-a1b2c3``."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def new_session_id() -> str:
    """Generate a fresh backup session id."""
    return _new_id("session")


def file_checksum(path: Path) -> str:
    """SHA-256 hex digest of a file's bytes."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def directory_checksum(path: Path) -> tuple[str, int]:
    """SHA-256 over every file in a tree (relative path + bytes, sorted).

    Returns:
        Tuple of (hex digest, total size in bytes).
    """
    digest = hashlib.sha256()
    total = 0
    for file_path in sorted(p for p in path.rglob("*") if p.is_file()):
        relative = file_path.relative_to(path).as_posix()
        digest.update(relative.encode("utf-8"))
        digest.update(b"\0")
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
                total += len(chunk)
        digest.update(b"\0")
    return digest.hexdigest(), total


def _record_checksum(record: BackupRecord) -> str:
    backup_path = Path(record.backup_path)
    if record.kind == BackupKind.DIRECTORY:
        return directory_checksum(backup_path)[0]
    return file_checksum(backup_path)


def select_expired(
    records: Iterable[BackupRecord],
    max_age_hours: float,
    max_count: int,
    now: datetime | None = None,
) -> tuple[list[BackupRecord], list[BackupRecord]]:
    """Split records into (kept, expired).

    The ``max_count`` most recent records younger than ``max_age_hours``
    are kept; everything else expires.
    """
    reference = now or datetime.now(UTC)
    ordered = sorted(records, key=lambda record: record.timestamp, reverse=True)
    kept: list[BackupRecord] = []
    expired: list[BackupRecord] = []
    for index, record in enumerate(ordered):
        if index < max_count and record.age_hours(reference) < max_age_hours:
            kept.append(record)
        else:
            expired.append(record)
    return kept, expired


def delete_record_files(record: BackupRecord) -> None:
    """Remove a record's copy and sidecar.

    Missing files are ignored so an interrupted earlier cleanup can be
    finished.

    Raises:
        OSError: If an existing file cannot be removed.
    """
    backup_path = Path(record.backup_path)
    if backup_path.is_dir() and not backup_path.is_symlink():
        shutil.rmtree(backup_path)
    else:
        backup_path.unlink(missing_ok=True)
    (backup_path.parent / f"{record.id}{METADATA_SUFFIX}").unlink(missing_ok=True)


class BackupStore:
    """Creates, indexes, verifies and restores backup copies.

    One instance owns one session directory and its in-memory index.

    Attributes:
        session_id: Session identifier (directory name).
        session_dir: Absolute path of the session directory.
    """

    def __init__(self, workspace: Path, session_id: str | None = None) -> None:
        """Initialize the store.

        The session directory is created lazily on the first backup.

        Args:
            workspace: Workspace root.
            session_id: Reuse an existing session id (defaults to a new one).
        """
        self.session_id = session_id or new_session_id()
        self.session_dir = get_backup_root(workspace) / self.session_id
        self._records: dict[str, BackupRecord] = {}

    # -- queries -------------------------------------------------------------

    def get(self, backup_id: str) -> BackupRecord | None:
        """Look up a record by id."""
        return self._records.get(backup_id)

    def records(self) -> list[BackupRecord]:
        """All indexed records, newest first."""
        return sorted(self._records.values(), key=lambda r: r.timestamp, reverse=True)

    def __len__(self) -> int:
        return len(self._records)

    def verify(self, backup_id: str) -> bool:
        """Check that a stored copy still matches its checksum.

        Returns:
            False when the record is unknown, the copy is missing or the
            checksum differs.
        """
        record = self._records.get(backup_id)
        if record is None:
            return False
        try:
            return _record_checksum(record) == record.checksum
        except OSError:
            return False

    # -- creation ------------------------------------------------------------

    def create_backup(self, path: Path) -> BackupRecord:
        """Copy a file into the session area and index it.

        The checksum is computed over the copy, not the original, so a
        corrupted copy is caught at restore time.

        Args:
            path: Absolute path of the file to back up.

        Returns:
            The new BackupRecord.

        Raises:
            TargetNotFoundError: If the path does not exist.
            UnsupportedOperationError: If the path is a directory.
            FilesystemIOError: If copying or writing the sidecar fails.
        """
        if not path.exists():
            raise TargetNotFoundError(f"Cannot back up missing file: {path.name}")
        if path.is_dir():
            raise UnsupportedOperationError(
                f"{path.name} is a directory; use a directory backup",
                suggestions=(),
            )

        backup_id = _new_id("backup")
        backup_path = self.session_dir / f"{path.stem}_{backup_id}{path.suffix}"
        try:
            self.session_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, backup_path)
            record = BackupRecord(
                id=backup_id,
                timestamp=datetime.now(UTC).isoformat(),
                source_path=str(path),
                backup_path=str(backup_path),
                checksum=file_checksum(backup_path),
                size_bytes=backup_path.stat().st_size,
                original_existed=True,
                kind=BackupKind.FILE,
            )
            self._write_sidecar(record)
        except OSError as e:
            backup_path.unlink(missing_ok=True)
            raise FilesystemIOError(f"Backup of {path.name} failed: {e}") from e

        self._records[record.id] = record
        logger.debug("Backed up %s as %s", path, record.id)
        return record

    def create_directory_backup(self, path: Path) -> BackupRecord:
        """Recursively copy a directory into the session area and index it.

        Raises:
            TargetNotFoundError: If the path does not exist.
            UnsupportedOperationError: If the path is not a directory.
            FilesystemIOError: If copying or writing the sidecar fails.
        """
        if not path.exists():
            raise TargetNotFoundError(f"Cannot back up missing directory: {path.name}")
        if not path.is_dir():
            raise UnsupportedOperationError(
                f"{path.name} is not a directory; use a file backup",
                suggestions=(),
            )

        backup_id = _new_id("backup")
        backup_path = self.session_dir / f"{path.name}_{backup_id}"
        try:
            self.session_dir.mkdir(parents=True, exist_ok=True)
            shutil.copytree(path, backup_path, symlinks=True)
            checksum, size = directory_checksum(backup_path)
            record = BackupRecord(
                id=backup_id,
                timestamp=datetime.now(UTC).isoformat(),
                source_path=str(path),
                backup_path=str(backup_path),
                checksum=checksum,
                size_bytes=size,
                original_existed=True,
                kind=BackupKind.DIRECTORY,
            )
            self._write_sidecar(record)
        except OSError as e:
            shutil.rmtree(backup_path, ignore_errors=True)
            raise FilesystemIOError(f"Backup of directory {path.name} failed: {e}") from e

        self._records[record.id] = record
        logger.debug("Backed up directory %s as %s", path, record.id)
        return record

    def _write_sidecar(self, record: BackupRecord) -> None:
        sidecar = self.session_dir / f"{record.id}{METADATA_SUFFIX}"
        sidecar.write_text(record.to_json(), encoding="utf-8")

    # -- restore -------------------------------------------------------------

    def restore_backup(self, backup_id: str, target_path: Path | None = None) -> BackupRecord:
        """Restore a backup after verifying its checksum.

        Args:
            backup_id: Record to restore.
            target_path: Where to restore (defaults to the original path).

        Returns:
            The restored record.

        Raises:
            TargetNotFoundError: If the record or its copy no longer exists.
            IntegrityError: If the copy's checksum no longer matches; the
                target is left untouched.
            FilesystemIOError: If copying back fails.
        """
        record = self._records.get(backup_id)
        if record is None:
            raise TargetNotFoundError(
                f"Backup {backup_id} is no longer available (it may have been cleaned up)"
            )
        backup_path = Path(record.backup_path)
        if not backup_path.exists():
            raise TargetNotFoundError(
                f"Backup copy for {Path(record.source_path).name} is missing from the backup area"
            )

        try:
            actual = _record_checksum(record)
        except OSError as e:
            raise FilesystemIOError(f"Cannot read backup {backup_id}: {e}") from e
        if actual != record.checksum:
            logger.error(
                "Checksum mismatch for backup %s (expected %s, got %s)",
                backup_id,
                record.checksum,
                actual,
            )
            raise IntegrityError(
                f"Backup of {Path(record.source_path).name} failed its integrity check; "
                "refusing to restore"
            )

        target = target_path or Path(record.source_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if record.kind == BackupKind.DIRECTORY:
                shutil.copytree(backup_path, target, symlinks=True, dirs_exist_ok=True)
            else:
                if target.is_dir():
                    raise IsADirectoryError(21, "Is a directory", str(target))
                shutil.copy2(backup_path, target)
        except OSError as e:
            raise FilesystemIOError(f"Restore of {target.name} failed: {e}") from e

        logger.debug("Restored backup %s to %s", backup_id, target)
        return record

    # -- retention -----------------------------------------------------------

    def discard(self, backup_id: str) -> bool:
        """Delete a backup nothing will ever restore.

        Used when the operation it was taken for changed nothing. A failure
        to delete is logged and leaves the record to the retention pass.

        Returns:
            True if the record existed and its files were removed.
        """
        record = self._records.get(backup_id)
        if record is None:
            return False
        try:
            delete_record_files(record)
        except OSError as e:
            logger.warning("Could not discard backup %s: %s", backup_id, e)
            return False
        del self._records[backup_id]
        logger.debug("Discarded unused backup %s", backup_id)
        return True

    def cleanup(
        self,
        max_age_hours: float = 24.0,
        max_count: int = 100,
        dry_run: bool = False,
        now: datetime | None = None,
    ) -> CleanupReport:
        """Apply the retention policy to this session.

        Each expired record is deleted independently; a failure is collected
        and the pass continues with the next record.

        Args:
            max_age_hours: Records at least this old expire.
            max_count: At most this many (most recent) records are kept.
            dry_run: Report without deleting anything.
            now: Reference instant (defaults to the current time).

        Returns:
            CleanupReport with deleted/kept records and collected errors.
        """
        kept, expired = select_expired(self._records.values(), max_age_hours, max_count, now)
        if dry_run:
            return CleanupReport(deleted=tuple(expired), kept=tuple(kept), dry_run=True)

        deleted: list[BackupRecord] = []
        errors: list[str] = []
        for record in expired:
            try:
                delete_record_files(record)
            except OSError as e:
                logger.warning("Could not delete backup %s: %s", record.id, e)
                errors.append(f"{record.id}: {e}")
                kept.append(record)
                continue
            del self._records[record.id]
            deleted.append(record)

        if deleted:
            logger.info("Cleaned up %d backup(s) in %s", len(deleted), self.session_id)
        return CleanupReport(deleted=tuple(deleted), kept=tuple(kept), errors=tuple(errors))


def _load_sidecars(session_dir: Path) -> tuple[list[BackupRecord], list[str]]:
    """Read every metadata sidecar in a session directory."""
    records: list[BackupRecord] = []
    unreadable: list[str] = []
    if not session_dir.is_dir():
        return records, unreadable
    for sidecar in sorted(session_dir.glob(f"*{METADATA_SUFFIX}")):
        try:
            records.append(BackupRecord.from_dict(json.loads(sidecar.read_text(encoding="utf-8"))))
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning("Skipping unreadable backup metadata %s: %s", sidecar, e)
            unreadable.append(str(sidecar))
    return records, unreadable


def scan_sessions(workspace: Path) -> list[BackupSession]:
    """List backup sessions stored under a workspace, newest first."""
    backup_root = get_backup_root(workspace)
    if not backup_root.is_dir():
        return []
    sessions: list[BackupSession] = []
    for session_dir in backup_root.iterdir():
        if not session_dir.is_dir():
            continue
        records, unreadable = _load_sidecars(session_dir)
        sessions.append(
            BackupSession(
                session_id=session_dir.name,
                path=str(session_dir),
                records=tuple(sorted(records, key=lambda r: r.timestamp, reverse=True)),
                unreadable=tuple(unreadable),
            )
        )
    sessions.sort(key=lambda s: s.session_id, reverse=True)
    return sessions


def prune_sessions(
    workspace: Path,
    max_age_hours: float,
    max_count: int,
    dry_run: bool = False,
    now: datetime | None = None,
) -> CleanupReport:
    """Apply the retention policy across every session of a workspace.

    ``max_count`` applies to all sessions together. Session directories left
    empty are removed.
    """
    sessions = scan_sessions(workspace)
    all_records = [record for session in sessions for record in session.records]
    kept, expired = select_expired(all_records, max_age_hours, max_count, now)
    if dry_run:
        return CleanupReport(deleted=tuple(expired), kept=tuple(kept), dry_run=True)

    deleted: list[BackupRecord] = []
    errors: list[str] = []
    for record in expired:
        try:
            delete_record_files(record)
        except OSError as e:
            logger.warning("Could not delete backup %s: %s", record.id, e)
            errors.append(f"{record.id}: {e}")
            kept.append(record)
            continue
        deleted.append(record)

    for session in sessions:
        session_dir = Path(session.path)
        try:
            if session_dir.is_dir() and not any(session_dir.iterdir()):
                session_dir.rmdir()
        except OSError as e:
            logger.debug("Could not remove session directory %s: %s", session_dir, e)

    return CleanupReport(deleted=tuple(deleted), kept=tuple(kept), errors=tuple(errors))
