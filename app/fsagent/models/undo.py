"""Undo ledger models.

An UndoEntry describes how to reverse one completed mutating operation. Its
reversal data is either a reference to a backup (content restoration), the
original path (move/rename reversal), or nothing (pure creations, reversed
by deletion).
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class UndoKind(str, Enum):
    """Kind of operation recorded in the undo ledger.

    Attributes:
        CREATE_FILE: A new file was created.
        CREATE_DIRECTORY: A new directory was created.
        WRITE_FILE: An existing file was overwritten or appended to.
        MODIFY_FILE: An existing file was edited by search/replace.
        DELETE_FILE: A file was deleted.
        DELETE_DIRECTORY: A directory was deleted (empty, or backed up first).
        DELETE_DIRECTORY_NO_BACKUP: A non-empty directory was deleted without a backup.
        MOVE_FILE: A file or directory was moved.
        RENAME_FILE: A file or directory was renamed.
        TRUNCATE_FILE: A file was truncated.
    """

    CREATE_FILE = "create_file"
    CREATE_DIRECTORY = "create_directory"
    WRITE_FILE = "write_file"
    MODIFY_FILE = "modify_file"
    DELETE_FILE = "delete_file"
    DELETE_DIRECTORY = "delete_directory"
    DELETE_DIRECTORY_NO_BACKUP = "delete_directory_no_backup"
    MOVE_FILE = "move_file"
    RENAME_FILE = "rename_file"
    TRUNCATE_FILE = "truncate_file"

    @property
    def is_creation(self) -> bool:
        """True for entries reversed by deleting what was created."""
        return self in (UndoKind.CREATE_FILE, UndoKind.CREATE_DIRECTORY)

    @property
    def is_deletion(self) -> bool:
        """True for entries that record a deletion."""
        return self in (
            UndoKind.DELETE_FILE,
            UndoKind.DELETE_DIRECTORY,
            UndoKind.DELETE_DIRECTORY_NO_BACKUP,
        )


@dataclass(frozen=True, slots=True)
class BackupRef:
    """Reversal data pointing at a BackupRecord."""

    backup_id: str

    def __post_init__(self) -> None:
        if not self.backup_id:
            msg = "Backup reference cannot be empty"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class OriginalPath:
    """Reversal data holding the path an entry was moved away from."""

    path: str

    def __post_init__(self) -> None:
        if not self.path:
            msg = "Original path cannot be empty"
            raise ValueError(msg)


ReversalData = BackupRef | OriginalPath | None


@dataclass(frozen=True, slots=True)
class UndoEntry:
    """Record of one reversible operation.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        kind: Operation kind.
        target_path: Absolute path the reversal acts on (post-operation path).
        reversal: Backup reference, original path, or None.
        timestamp: When the operation was recorded (ISO 8601 with timezone).
        metadata: Extra context, e.g. ``displaced_backup_id`` for a move that
            replaced an existing destination.
    """

    id: str
    kind: UndoKind
    target_path: str
    reversal: ReversalData
    timestamp: str
    metadata: dict[str, Any] = field(default_factory=lambda: {})

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "Undo entry ID cannot be empty"
            raise ValueError(msg)
        if not self.target_path:
            msg = "Undo entry target path cannot be empty"
            raise ValueError(msg)
        if self.kind in (UndoKind.MOVE_FILE, UndoKind.RENAME_FILE) and not isinstance(
            self.reversal, OriginalPath
        ):
            msg = f"{self.kind.value} entries must carry the original path"
            raise ValueError(msg)

    @property
    def recorded_at(self) -> datetime:
        """Recording instant as an aware datetime."""
        return datetime.fromisoformat(self.timestamp)

    @property
    def backup_id(self) -> str | None:
        """Referenced backup id, if the entry carries one."""
        if isinstance(self.reversal, BackupRef):
            return self.reversal.backup_id
        return None

    @property
    def undoable(self) -> bool:
        """Whether the entry is reversible in principle.

        Creations always are; deletions only when they carry backup data.
        """
        if self.kind.is_creation:
            return True
        if self.kind.is_deletion:
            return self.backup_id is not None
        return False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for display and JSON output."""
        reversal: dict[str, str] | None = None
        if isinstance(self.reversal, BackupRef):
            reversal = {"backup_id": self.reversal.backup_id}
        elif isinstance(self.reversal, OriginalPath):
            reversal = {"original_path": self.reversal.path}
        return {
            "id": self.id,
            "kind": self.kind.value,
            "target_path": self.target_path,
            "reversal": reversal,
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }


def create_undo_entry(
    kind: UndoKind,
    target_path: str,
    reversal: ReversalData = None,
    metadata: dict[str, Any] | None = None,
) -> UndoEntry:
    """Factory function to create a new UndoEntry.

    Automatically generates a unique ID and current timestamp.

    Args:
        kind: Operation kind.
        target_path: Path the reversal will act on.
        reversal: Backup reference, original path, or None.
        metadata: Optional additional context.

    Returns:
        New UndoEntry with auto-generated ID and timestamp.
    """
    return UndoEntry(
        id=uuid.uuid4().hex[:12],
        kind=kind,
        target_path=target_path,
        reversal=reversal,
        timestamp=datetime.now(UTC).isoformat(),
        metadata=metadata or {},
    )


@dataclass(frozen=True, slots=True)
class UndoResult:
    """Outcome of one reversal attempt.

    Attributes:
        success: Whether the reversal succeeded.
        message: Short user-facing description.
        entry: The entry that was attempted (None when the ledger was empty).
        error: Failure detail, if any.
        retryable: False when retrying can never succeed.
    """

    success: bool
    message: str
    entry: UndoEntry | None = None
    error: str | None = None
    retryable: bool = True

    @property
    def empty_history(self) -> bool:
        """True for the result returned when there was nothing to undo."""
        return self.entry is None and not self.success and not self.retryable


@dataclass(frozen=True, slots=True)
class UndoStatistics:
    """Summary of the undo ledger.

    Attributes:
        total_operations: Entries currently retained.
        undoable_operations: Entries reversible in principle.
        last_operation_time: Timestamp of the newest entry, if any.
    """

    total_operations: int
    undoable_operations: int
    last_operation_time: str | None = None
