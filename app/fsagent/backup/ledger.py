"""Bounded undo ledger.

Holds one UndoEntry per completed mutating operation, oldest first, and
reverses them newest first. Each entry kind has exactly one reversal
policy; a reversal never raises past its boundary and always reports an
UndoResult. An entry whose reversal fails goes back on the ledger so it can
be retried or inspected.
"""

import logging
import os
import shutil
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fsagent.backup.store import BackupStore
from fsagent.core.errors import AgentError, IntegrityError, TargetNotFoundError
from fsagent.models.undo import (
    OriginalPath,
    ReversalData,
    UndoEntry,
    UndoKind,
    UndoResult,
    UndoStatistics,
    create_undo_entry,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50

EMPTY_HISTORY_MESSAGE = "No operations to undo"


def _time_ago(timestamp: str, now: datetime) -> str:
    seconds = int((now - datetime.fromisoformat(timestamp)).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'' if count == 1 else 's'} ago"
    return "just now"


class UndoLedger:
    """Ordered, bounded history of reversible operations.

    Attributes:
        max_size: Maximum number of retained entries.
    """

    def __init__(
        self,
        store: BackupStore,
        max_size: int = DEFAULT_MAX_HISTORY,
        display: Callable[[str], str] | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            store: Backup store used to restore content.
            max_size: Ledger bound; the oldest entries are evicted beyond it.
            display: Renders target paths in messages (defaults to str).
        """
        if max_size < 1:
            msg = f"Ledger size must be at least 1, got {max_size}"
            raise ValueError(msg)
        self.max_size = max_size
        self._store = store
        self._display = display or str
        self._entries: deque[UndoEntry] = deque()
        self._sequence = 0
        self._policies: dict[UndoKind, Callable[[UndoEntry], UndoResult]] = {
            UndoKind.CREATE_FILE: self._undo_creation,
            UndoKind.CREATE_DIRECTORY: self._undo_creation,
            UndoKind.WRITE_FILE: self._undo_content_change,
            UndoKind.MODIFY_FILE: self._undo_content_change,
            UndoKind.TRUNCATE_FILE: self._undo_content_change,
            UndoKind.DELETE_FILE: self._undo_file_deletion,
            UndoKind.DELETE_DIRECTORY: self._undo_directory_deletion,
            UndoKind.DELETE_DIRECTORY_NO_BACKUP: self._undo_unrecoverable_deletion,
            UndoKind.MOVE_FILE: self._undo_relocation,
            UndoKind.RENAME_FILE: self._undo_relocation,
        }

    # -- recording -----------------------------------------------------------

    def record(
        self,
        kind: UndoKind,
        target_path: str | Path,
        reversal: ReversalData = None,
        metadata: dict[str, Any] | None = None,
    ) -> UndoEntry:
        """Append an entry for a completed operation.

        Evicts the oldest entry when the bound is exceeded.

        Args:
            kind: Operation kind.
            target_path: Path the reversal will act on.
            reversal: Backup reference, original path, or None.
            metadata: Optional extra context.

        Returns:
            The recorded entry.
        """
        entry = create_undo_entry(kind, str(target_path), reversal, metadata)
        self._entries.append(entry)
        self._sequence += 1
        while len(self._entries) > self.max_size:
            evicted = self._entries.popleft()
            logger.debug("Evicted undo entry %s (%s)", evicted.id, evicted.kind.value)
        logger.debug("Recorded %s for %s", kind.value, target_path)
        return entry

    @property
    def sequence(self) -> int:
        """Number of entries ever recorded (monotonic, unaffected by undo)."""
        return self._sequence

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[UndoEntry]:
        """Retained entries, newest first."""
        return list(reversed(self._entries))

    def peek(self) -> UndoEntry | None:
        """The entry the next undo would reverse."""
        return self._entries[-1] if self._entries else None

    def clear(self) -> int:
        """Drop every entry.

        Returns:
            Number of entries removed.
        """
        count = len(self._entries)
        self._entries.clear()
        return count

    # -- undo ----------------------------------------------------------------

    def undo_last(self, steps: int = 1) -> list[UndoResult]:
        """Reverse up to ``steps`` entries, newest first.

        Stops at the first failed reversal and puts that entry back.

        Args:
            steps: Maximum number of entries to reverse.

        Returns:
            One UndoResult per attempted entry, in the order attempted. An
            empty ledger yields a single unsuccessful result with no entry.
        """
        if steps < 1:
            msg = f"Undo steps must be at least 1, got {steps}"
            raise ValueError(msg)

        if not self._entries:
            return [UndoResult(success=False, message=EMPTY_HISTORY_MESSAGE, retryable=False)]

        results: list[UndoResult] = []
        for _ in range(min(steps, len(self._entries))):
            entry = self._entries.pop()
            try:
                result = self._policies[entry.kind](entry)
            except Exception as e:
                logger.exception("Unexpected error undoing %s", entry.kind.value)
                result = UndoResult(
                    success=False,
                    message=f"Undo of {entry.kind.value} failed unexpectedly",
                    entry=entry,
                    error=str(e),
                )
            results.append(result)
            if not result.success:
                self._entries.append(entry)
                logger.warning("Undo of %s failed: %s", entry.kind.value, result.error)
                break
            logger.info("Undid %s on %s", entry.kind.value, entry.target_path)
        return results

    # -- reporting -----------------------------------------------------------

    def statistics(self) -> UndoStatistics:
        """Summarize the retained entries."""
        last = self._entries[-1].timestamp if self._entries else None
        return UndoStatistics(
            total_operations=len(self._entries),
            undoable_operations=sum(1 for entry in self._entries if entry.undoable),
            last_operation_time=last,
        )

    def history_summary(self, now: datetime | None = None) -> list[str]:
        """Numbered one-line descriptions, newest first.

        Example: ``1. create_file - notes.txt (just now)``
        """
        reference = now or datetime.now(UTC)
        return [
            f"{index}. {entry.kind.value} - {self._display(entry.target_path)} "
            f"({_time_ago(entry.timestamp, reference)})"
            for index, entry in enumerate(self.entries(), start=1)
        ]

    # -- reversal policies ---------------------------------------------------

    def _fail(
        self, entry: UndoEntry, message: str, error: str | None = None, retryable: bool = True
    ) -> UndoResult:
        return UndoResult(
            success=False, message=message, entry=entry, error=error or message, retryable=retryable
        )

    def _ok(self, entry: UndoEntry, message: str) -> UndoResult:
        return UndoResult(success=True, message=message, entry=entry)

    def _restore(self, entry: UndoEntry, backup_id: str, done: str) -> UndoResult:
        name = self._display(entry.target_path)
        try:
            self._store.restore_backup(backup_id, Path(entry.target_path))
        except (IntegrityError, TargetNotFoundError) as e:
            return self._fail(entry, f"Cannot restore {name}: {e.message}", retryable=False)
        except AgentError as e:
            return self._fail(entry, f"Cannot restore {name}: {e.message}")
        return self._ok(entry, done)

    def _undo_creation(self, entry: UndoEntry) -> UndoResult:
        target = Path(entry.target_path)
        name = self._display(entry.target_path)
        if not target.exists() and not target.is_symlink():
            return self._ok(entry, f"{name} was already removed")
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            return self._fail(entry, f"Could not remove {name}", str(e))
        return self._ok(entry, f"Removed {name}")

    def _undo_content_change(self, entry: UndoEntry) -> UndoResult:
        backup_id = entry.backup_id
        name = self._display(entry.target_path)
        if backup_id is None:
            return self._fail(entry, f"No backup available for {name}", retryable=False)
        return self._restore(entry, backup_id, f"Restored previous content of {name}")

    def _undo_file_deletion(self, entry: UndoEntry) -> UndoResult:
        backup_id = entry.backup_id
        name = self._display(entry.target_path)
        if backup_id is not None:
            return self._restore(entry, backup_id, f"Restored deleted file {name}")

        # Without a backup only the name can come back, not the content
        target = Path(entry.target_path)
        if target.exists():
            return self._fail(entry, f"Cannot recreate {name}: the path is occupied")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.touch()
        except OSError as e:
            return self._fail(entry, f"Could not recreate {name}", str(e))
        return self._ok(entry, f"Recreated {name} as an empty file (content was not backed up)")

    def _undo_directory_deletion(self, entry: UndoEntry) -> UndoResult:
        backup_id = entry.backup_id
        name = self._display(entry.target_path)
        if backup_id is not None:
            return self._restore(entry, backup_id, f"Restored deleted directory {name}")

        target = Path(entry.target_path)
        if target.exists() and not target.is_dir():
            return self._fail(entry, f"Cannot recreate {name}: a file is in the way")
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return self._fail(entry, f"Could not recreate directory {name}", str(e))
        return self._ok(entry, f"Recreated directory {name}")

    def _undo_unrecoverable_deletion(self, entry: UndoEntry) -> UndoResult:
        name = self._display(entry.target_path)
        return self._fail(
            entry,
            f"Directory {name} was deleted without a backup; its contents cannot be restored",
            retryable=False,
        )

    def _undo_relocation(self, entry: UndoEntry) -> UndoResult:
        if not isinstance(entry.reversal, OriginalPath):
            return self._fail(entry, "No original path recorded", retryable=False)
        current = Path(entry.target_path)
        original = Path(entry.reversal.path)
        current_name = self._display(entry.target_path)
        original_name = self._display(entry.reversal.path)

        if not current.exists() and not current.is_symlink():
            return self._fail(entry, f"Cannot move back: {current_name} no longer exists")
        if original.exists():
            return self._fail(entry, f"Cannot move back: {original_name} is occupied")
        try:
            original.parent.mkdir(parents=True, exist_ok=True)
            if current.is_dir():
                shutil.move(str(current), str(original))
            else:
                os.replace(current, original)
        except OSError as e:
            return self._fail(entry, f"Could not move {current_name} back", str(e))

        message = f"Moved {current_name} back to {original_name}"
        displaced = entry.metadata.get("displaced_backup_id")
        if displaced:
            try:
                self._store.restore_backup(displaced, current)
            except AgentError as e:
                # The move itself is reversed; only the replaced file is lost
                return self._ok(
                    entry,
                    f"{message}, but the replaced {current_name} could not be restored: "
                    f"{e.message}",
                )
            message = f"{message} and restored the replaced {current_name}"
        return self._ok(entry, message)
