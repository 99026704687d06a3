"""Backup record models.

A BackupRecord describes one checksummed copy taken before a mutation. Each
record is stored next to its copy as a JSON metadata sidecar so a backup
session can be inspected (and pruned) after the process that made it exits.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class BackupKind(str, Enum):
    """What a backup copy contains.

    Attributes:
        FILE: Single file copy.
        DIRECTORY: Recursive directory copy.
    """

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True, slots=True)
class BackupRecord:
    """Immutable record of a stored backup copy.

    Attributes:
        id: Unique identifier (``backup-<epoch ms>-<random>``).
        timestamp: Creation instant (ISO 8601 with timezone).
        source_path: Absolute path that was backed up.
        backup_path: Absolute path of the stored copy.
        checksum: SHA-256 hex digest of the stored copy.
        size_bytes: Size of the copied data.
        original_existed: Whether the source existed when backed up.
        kind: File or directory backup.
    """

    id: str
    timestamp: str
    source_path: str
    backup_path: str
    checksum: str
    size_bytes: int
    original_existed: bool = True
    kind: BackupKind = BackupKind.FILE

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.id:
            msg = "Backup ID cannot be empty"
            raise ValueError(msg)
        if not self.checksum:
            msg = "Backup checksum cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Backup size cannot be negative: {self.size_bytes}"
            raise ValueError(msg)

    @property
    def created_at(self) -> datetime:
        """Creation instant as an aware datetime."""
        return datetime.fromisoformat(self.timestamp)

    def age_hours(self, now: datetime | None = None) -> float:
        """Age of the backup in hours.

        Args:
            now: Reference instant (defaults to the current time).
        """
        reference = now or datetime.now(UTC)
        return (reference - self.created_at).total_seconds() / 3600

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "source_path": self.source_path,
            "backup_path": self.backup_path,
            "checksum": self.checksum,
            "size_bytes": self.size_bytes,
            "original_existed": self.original_existed,
            "kind": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackupRecord":
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing record data.

        Returns:
            BackupRecord instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If kind or other data is invalid.
        """
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            source_path=data["source_path"],
            backup_path=data["backup_path"],
            checksum=data["checksum"],
            size_bytes=int(data["size_bytes"]),
            original_existed=data.get("original_existed", True),
            kind=BackupKind(data.get("kind", BackupKind.FILE.value)),
        )

    def to_json(self) -> str:
        """Serialize to indented JSON for the metadata sidecar."""
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True, slots=True)
class CleanupReport:
    """Outcome of a retention cleanup pass.

    Attributes:
        deleted: Records removed (or that would be removed in a dry run).
        kept: Records retained.
        errors: One message per record whose files could not be deleted.
        dry_run: Whether anything was actually deleted.
    """

    deleted: tuple[BackupRecord, ...] = ()
    kept: tuple[BackupRecord, ...] = ()
    errors: tuple[str, ...] = ()
    dry_run: bool = False

    @property
    def freed_bytes(self) -> int:
        """Total size of the deleted backups."""
        return sum(record.size_bytes for record in self.deleted)

    @property
    def ok(self) -> bool:
        """True when every deletion succeeded."""
        return not self.errors


@dataclass(frozen=True, slots=True)
class BackupSession:
    """A session directory and the records found in it.

    Attributes:
        session_id: Directory name (``session-...``).
        path: Absolute path to the session directory.
        records: Records loaded from the metadata sidecars.
        unreadable: Sidecar files that could not be parsed.
    """

    session_id: str
    path: str
    records: tuple[BackupRecord, ...] = ()
    unreadable: tuple[str, ...] = ()

    @property
    def total_bytes(self) -> int:
        """Total size of all backups in the session."""
        return sum(record.size_bytes for record in self.records)
