"""Command dispatcher.

Routes a validated intent to its filesystem primitive, wrapped in backup
and undo bookkeeping, while holding the operation gate. Every failure is
classified into the error taxonomy and returned as a CommandOutcome; no
raw OS error leaves this module.

Order of one mutating command::

    gate.acquire -> backup (if the target exists) -> primitive
        -> ledger.record -> gate.release

The cancellation token is checked before the backup, before the primitive
and after the ledger entry is recorded.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from fsagent.backup.ledger import UndoLedger
from fsagent.backup.store import BackupStore
from fsagent.core.errors import (
    AgentError,
    BackupUnavailableError,
    ErrorKind,
    GateBusyError,
    IntentValidationError,
    OperationCancelledError,
    TargetNotFoundError,
    classify_error,
    error_for_kind,
)
from fsagent.execution.gate import ActiveOperation, OperationGate
from fsagent.filesystem.operations import FilesystemOperations
from fsagent.filesystem.sandbox import WorkspaceSandbox
from fsagent.models.backup import BackupRecord
from fsagent.models.intent import (
    CopyFileIntent,
    CreateDirectoryIntent,
    CreateFileIntent,
    DeleteDirectoryIntent,
    DeleteFileIntent,
    ExplainIntent,
    HelpIntent,
    IntentBase,
    ListDirectoryIntent,
    ModifyFileIntent,
    MoveFileIntent,
    ReadFileIntent,
    RenameFileIntent,
    TruncateFileIntent,
    UndoIntent,
    WriteFileIntent,
)
from fsagent.models.outcome import CommandOutcome, OperationResult
from fsagent.models.undo import (
    BackupRef,
    OriginalPath,
    ReversalData,
    UndoEntry,
    UndoKind,
    UndoResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Returns True to proceed with a destructive operation
ConfirmCallback = Callable[[str], bool]

HELP_TEXT = """\
Describe what you want in plain language, for example:

  create a file notes.txt with "hello"
  add a line "todo: tests" to notes.txt
  replace "hello" with "world" in notes.txt
  make a folder called drafts
  move notes.txt into drafts
  rename drafts/notes.txt to ideas.txt
  copy ideas.txt to backup.txt
  show me what's in drafts
  read the first 10 lines of ideas.txt
  delete backup.txt

Every change is backed up first and can be reversed with 'undo'."""


@dataclass(slots=True)
class _Run:
    """Per-command state threaded through a handler."""

    active: ActiveOperation
    confirm: ConfirmCallback | None
    warnings: list[str] = field(default_factory=list)
    rollback_results: tuple[UndoResult, ...] = ()
    backup_ids: list[str] = field(default_factory=list)
    committed: bool = False

    def checkpoint(self) -> None:
        self.active.token.checkpoint()


Handler = Callable[[Any, _Run], Awaitable[CommandOutcome]]


async def _io(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking filesystem call off the event loop."""
    return await asyncio.to_thread(func, *args)


def _require(result: OperationResult) -> OperationResult:
    """Turn a failed primitive result into a classified error."""
    if not result.success:
        raise error_for_kind(result.error_kind or ErrorKind.IO_FAILURE, result.message)
    return result


class Dispatcher:
    """Executes intents against the workspace.

    Attributes:
        backup_deletions: Back up files and directories before deleting them.
        confirm_destructive: Honor the confirm flag of delete intents.
    """

    def __init__(
        self,
        sandbox: WorkspaceSandbox,
        operations: FilesystemOperations,
        store: BackupStore,
        ledger: UndoLedger,
        gate: OperationGate,
        backup_deletions: bool = False,
        confirm_destructive: bool = True,
    ) -> None:
        self._sandbox = sandbox
        self._ops = operations
        self._store = store
        self._ledger = ledger
        self._gate = gate
        self.backup_deletions = backup_deletions
        self.confirm_destructive = confirm_destructive
        self._handlers: dict[type[IntentBase], Handler] = {
            CreateDirectoryIntent: self._create_directory,
            CreateFileIntent: self._create_file,
            WriteFileIntent: self._write_file,
            ModifyFileIntent: self._modify_file,
            TruncateFileIntent: self._truncate_file,
            DeleteFileIntent: self._delete_file,
            DeleteDirectoryIntent: self._delete_directory,
            CopyFileIntent: self._copy_file,
            MoveFileIntent: self._move_file,
            RenameFileIntent: self._rename_file,
            ReadFileIntent: self._read_file,
            ListDirectoryIntent: self._list_directory,
            UndoIntent: self._undo,
            HelpIntent: self._help,
            ExplainIntent: self._explain,
        }

    async def execute_command(
        self, intent: IntentBase, confirm: ConfirmCallback | None = None
    ) -> CommandOutcome:
        """Execute one intent behind the gate.

        Args:
            intent: Validated intent.
            confirm: Asked before destructive operations whose intent sets
                ``confirm``; returning False cancels without changes.

        Returns:
            CommandOutcome describing success or the classified failure.
        """
        try:
            async with self._gate.hold(intent) as active:
                return await self._execute(intent, _Run(active=active, confirm=confirm))
        except GateBusyError as e:
            logger.info("Rejected %s: %s", intent.type, e.message)
            return CommandOutcome.from_error(e)

    async def _execute(self, intent: IntentBase, run: _Run) -> CommandOutcome:
        try:
            handler = self._handlers[type(intent)]
            outcome = await handler(intent, run)
        except AgentError as e:
            if e.kind != ErrorKind.CANCELLED:
                logger.info("%s failed: %s", intent.type, e.message)
            await self._discard_unused_backups(run)
            return CommandOutcome.from_error(
                e, tuple(run.warnings), undo_results=run.rollback_results
            )
        except Exception as e:
            await self._discard_unused_backups(run)
            return CommandOutcome.from_error(classify_error(e), tuple(run.warnings))

        logger.info("%s: %s", intent.type, outcome.message)
        return outcome

    # -- shared steps --------------------------------------------------------

    def _resolve(self, path: str, allow_root: bool = False) -> Path:
        return self._sandbox.resolve(path, allow_root=allow_root)

    def _name(self, path: Path) -> str:
        return self._sandbox.display(path)

    async def _mandatory_backup(self, path: Path, run: _Run) -> BackupRecord:
        """Back up a file the operation cannot proceed without."""
        run.checkpoint()
        try:
            record = await _io(self._store.create_backup, path)
        except AgentError as e:
            raise BackupUnavailableError(
                f"Could not back up {self._name(path)}; operation aborted, nothing was changed "
                f"({e.message})"
            ) from e
        run.backup_ids.append(record.id)
        return record

    async def _optional_backup(
        self, path: Path, run: _Run, directory: bool = False
    ) -> BackupRecord | None:
        """Back up when possible; a failure only produces a warning."""
        run.checkpoint()
        create = self._store.create_directory_backup if directory else self._store.create_backup
        try:
            record = await _io(create, path)
        except AgentError as e:
            logger.warning("Best-effort backup of %s failed: %s", path, e.message)
            run.warnings.append(f"No backup taken for {self._name(path)}: {e.message}")
            return None
        run.backup_ids.append(record.id)
        return record

    async def _discard_unused_backups(self, run: _Run) -> None:
        """Drop backups taken for an operation that failed before it was recorded."""
        if run.committed:
            return
        for backup_id in run.backup_ids:
            await _io(self._store.discard, backup_id)

    def _ask(self, run: _Run, wants_confirmation: bool, prompt: str) -> None:
        if not (wants_confirmation and self.confirm_destructive and run.confirm is not None):
            return
        if not run.confirm(prompt):
            raise OperationCancelledError("Cancelled; nothing was changed")

    def _commit(
        self,
        run: _Run,
        kind: UndoKind,
        target: Path,
        reversal: ReversalData = None,
        metadata: dict[str, Any] | None = None,
    ) -> UndoEntry:
        """Record the completed operation, then honor a pending interrupt."""
        entry = self._ledger.record(kind, target, reversal, metadata)
        run.committed = True
        token = run.active.token
        if token.cancelled:
            if token.rollback_pending:
                token.rollback_pending = False
                run.rollback_results = tuple(self._ledger.undo_last(1))
                if all(result.success for result in run.rollback_results):
                    raise OperationCancelledError(
                        f"Interrupted; {kind.value} on {self._name(target)} was rolled back"
                    )
                raise OperationCancelledError(
                    f"Interrupted; rolling back {kind.value} on {self._name(target)} failed"
                )
            raise OperationCancelledError("Operation interrupted")
        return entry

    def _done(
        self, result: OperationResult, run: _Run, entry: UndoEntry | None = None
    ) -> CommandOutcome:
        return CommandOutcome(
            success=True,
            message=result.message,
            output=result.output,
            warnings=tuple(run.warnings),
            entry=entry,
        )

    # -- creation and content ------------------------------------------------

    async def _create_directory(self, intent: CreateDirectoryIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        run.checkpoint()
        result = _require(await _io(self._ops.create_directory, target, intent.recursive))
        return self._done(result, run, self._commit(run, UndoKind.CREATE_DIRECTORY, target))

    async def _create_file(self, intent: CreateFileIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        kind, reversal = UndoKind.CREATE_FILE, None
        if intent.overwrite and await _io(target.is_file):
            record = await self._mandatory_backup(target, run)
            kind, reversal = UndoKind.WRITE_FILE, BackupRef(record.id)
        run.checkpoint()
        result = _require(
            await _io(self._ops.create_file, target, intent.content, intent.overwrite)
        )
        return self._done(result, run, self._commit(run, kind, target, reversal))

    async def _write_file(self, intent: WriteFileIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        existed = await _io(target.is_file)
        kind, reversal = UndoKind.CREATE_FILE, None
        if existed:
            record = await self._mandatory_backup(target, run)
            kind, reversal = UndoKind.WRITE_FILE, BackupRef(record.id)
        run.checkpoint()
        append = existed and not intent.overwrite
        result = _require(await _io(self._ops.write_file, target, intent.content, append))
        return self._done(result, run, self._commit(run, kind, target, reversal))

    async def _modify_file(self, intent: ModifyFileIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        if not await _io(target.is_file):
            raise TargetNotFoundError(f"File does not exist: {self._name(target)}")
        record = await self._mandatory_backup(target, run)
        run.checkpoint()
        result = _require(
            await _io(
                self._ops.modify_file, target, intent.search, intent.replace, intent.replace_all
            )
        )
        entry = self._commit(run, UndoKind.MODIFY_FILE, target, BackupRef(record.id))
        return self._done(result, run, entry)

    async def _truncate_file(self, intent: TruncateFileIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        if not await _io(target.is_file):
            raise TargetNotFoundError(f"File does not exist: {self._name(target)}")
        record = await self._mandatory_backup(target, run)
        run.checkpoint()
        result = _require(await _io(self._ops.truncate_file, target, intent.size))
        entry = self._commit(run, UndoKind.TRUNCATE_FILE, target, BackupRef(record.id))
        return self._done(result, run, entry)

    # -- deletion ------------------------------------------------------------

    async def _delete_file(self, intent: DeleteFileIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        if not await _io(target.exists):
            raise TargetNotFoundError(f"File does not exist: {self._name(target)}")
        if await _io(target.is_dir):
            raise IntentValidationError(
                f"{self._name(target)} is a directory; delete it as a directory"
            )
        self._ask(run, intent.confirm, f"Delete file {self._name(target)}?")

        record = await self._optional_backup(target, run) if self.backup_deletions else None
        run.checkpoint()
        result = _require(await _io(self._ops.delete_file, target))
        reversal = BackupRef(record.id) if record else None
        return self._done(result, run, self._commit(run, UndoKind.DELETE_FILE, target, reversal))

    async def _delete_directory(self, intent: DeleteDirectoryIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        if not await _io(target.is_dir):
            raise TargetNotFoundError(f"Directory does not exist: {self._name(target)}")
        non_empty = await _io(_has_children, target)
        if non_empty and not intent.recursive:
            raise IntentValidationError(
                f"Directory {self._name(target)} is not empty; ask for a recursive delete",
                suggestions=("Say 'delete the folder and everything in it'",),
            )
        prompt = f"Delete directory {self._name(target)}"
        if non_empty:
            prompt = f"{prompt} and all of its contents"
        self._ask(run, intent.confirm, f"{prompt}?")

        record = None
        if self.backup_deletions:
            record = await self._optional_backup(target, run, directory=True)
        if record is not None:
            kind, reversal = UndoKind.DELETE_DIRECTORY, BackupRef(record.id)
        elif non_empty:
            kind, reversal = UndoKind.DELETE_DIRECTORY_NO_BACKUP, None
            run.warnings.append(
                f"The contents of {self._name(target)} were not backed up and cannot be undone"
            )
        else:
            kind, reversal = UndoKind.DELETE_DIRECTORY, None
        run.checkpoint()
        result = _require(await _io(self._ops.delete_directory, target, intent.recursive))
        return self._done(result, run, self._commit(run, kind, target, reversal))

    # -- relocation ----------------------------------------------------------

    async def _displaced_backup(
        self, destination: Path, overwrite: bool, run: _Run
    ) -> dict[str, Any]:
        """Back up a file that a move/rename is about to replace."""
        if overwrite and await _io(destination.is_file):
            record = await self._mandatory_backup(destination, run)
            return {"displaced_backup_id": record.id}
        return {}

    async def _copy_file(self, intent: CopyFileIntent, run: _Run) -> CommandOutcome:
        source = self._resolve(intent.source_path)
        destination = self._resolve(intent.destination_path)
        if source == destination:
            raise IntentValidationError("Source and destination are the same")
        kind, reversal = UndoKind.CREATE_FILE, None
        if intent.overwrite and await _io(destination.is_file):
            record = await self._mandatory_backup(destination, run)
            kind, reversal = UndoKind.WRITE_FILE, BackupRef(record.id)
        run.checkpoint()
        result = _require(
            await _io(self._ops.copy_file, source, destination, intent.overwrite)
        )
        return self._done(result, run, self._commit(run, kind, destination, reversal))

    async def _move_file(self, intent: MoveFileIntent, run: _Run) -> CommandOutcome:
        source = self._resolve(intent.source_path)
        destination = self._resolve(intent.destination_path)
        if source == destination:
            raise IntentValidationError("Source and destination are the same")
        if destination.is_relative_to(source):
            raise IntentValidationError("Cannot move a directory into itself")
        metadata = await self._displaced_backup(destination, intent.overwrite, run)
        run.checkpoint()
        result = _require(await _io(self._ops.move, source, destination, intent.overwrite))
        entry = self._commit(
            run, UndoKind.MOVE_FILE, destination, OriginalPath(str(source)), metadata
        )
        return self._done(result, run, entry)

    async def _rename_file(self, intent: RenameFileIntent, run: _Run) -> CommandOutcome:
        source = self._resolve(intent.path)
        destination = self._sandbox.resolve(str(source.parent / intent.new_name))
        if destination == source:
            result = _require(await _io(self._ops.rename, source, intent.new_name))
            return self._done(result, run)
        metadata = await self._displaced_backup(destination, intent.overwrite, run)
        run.checkpoint()
        result = _require(
            await _io(self._ops.rename, source, intent.new_name, intent.overwrite)
        )
        entry = self._commit(
            run, UndoKind.RENAME_FILE, destination, OriginalPath(str(source)), metadata
        )
        return self._done(result, run, entry)

    # -- read-only -----------------------------------------------------------

    async def _read_file(self, intent: ReadFileIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path)
        run.checkpoint()
        result = _require(await _io(self._ops.read_file, target, intent.lines, intent.from_line))
        return self._done(result, run)

    async def _list_directory(self, intent: ListDirectoryIntent, run: _Run) -> CommandOutcome:
        target = self._resolve(intent.path, allow_root=True)
        run.checkpoint()
        result = _require(await _io(self._ops.list_directory, target, intent.detailed))
        return self._done(result, run)

    # -- meta ----------------------------------------------------------------

    async def _undo(self, intent: UndoIntent, run: _Run) -> CommandOutcome:
        run.checkpoint()
        results = tuple(await _io(self._ledger.undo_last, intent.steps))
        if len(results) == 1 and results[0].empty_history:
            return CommandOutcome(success=False, message=results[0].message, undo_results=results)

        undone = sum(1 for result in results if result.success)
        failed = next((result for result in results if not result.success), None)
        if failed is None:
            plural = "" if undone == 1 else "s"
            return CommandOutcome(
                success=True, message=f"Undid {undone} operation{plural}", undo_results=results
            )
        kind = ErrorKind.UNSUPPORTED if not failed.retryable else ErrorKind.IO_FAILURE
        return CommandOutcome(
            success=False,
            message=failed.message,
            error_kind=kind,
            suggestions=("The entry was kept; fix the problem and run undo again",)
            if failed.retryable
            else ("Use 'history clear' to drop the entry if it blocks other undos",),
            undo_results=results,
        )

    async def _help(self, intent: HelpIntent, run: _Run) -> CommandOutcome:
        return CommandOutcome(success=True, message="Available commands", output=HELP_TEXT)

    async def _explain(self, intent: ExplainIntent, run: _Run) -> CommandOutcome:
        text = intent.message or intent.reasoning or "Nothing to explain."
        return CommandOutcome(success=True, message="Explanation", output=text)


def _has_children(path: Path) -> bool:
    return any(path.iterdir())
