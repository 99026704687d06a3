"""Error taxonomy for fsagent.

Every failure that reaches the presentation layer is an AgentError carrying
an ErrorKind, a short message and zero or more recovery suggestions. Raw
OSErrors are converted with classify_error() before they leave the
dispatcher.
"""

import errno
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Classification of a failure.

    Attributes:
        VALIDATION_FAILURE: Bad or missing intent fields.
        PARSE_FAILURE: Input that could not be understood as an intent.
        PATH_REJECTED: Path outside the sandbox or otherwise unsafe.
        NOT_FOUND: Target missing.
        ALREADY_EXISTS: Overwrite not permitted.
        INTEGRITY_FAILURE: Checksum mismatch on restore.
        CONCURRENCY_REJECTED: Another operation is already running.
        BACKUP_UNAVAILABLE: Backup could not be created or is missing.
        UNSUPPORTED: No reversal policy for the requested undo.
        CANCELLED: Declined by the user or interrupted.
        IO_FAILURE: Underlying OS error.
    """

    VALIDATION_FAILURE = "validation_failure"
    PARSE_FAILURE = "parse_failure"
    PATH_REJECTED = "path_rejected"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INTEGRITY_FAILURE = "integrity_failure"
    CONCURRENCY_REJECTED = "concurrency_rejected"
    BACKUP_UNAVAILABLE = "backup_unavailable"
    UNSUPPORTED = "unsupported"
    CANCELLED = "cancelled"
    IO_FAILURE = "io_failure"


DEFAULT_SUGGESTIONS: dict[ErrorKind, tuple[str, ...]] = {
    ErrorKind.VALIDATION_FAILURE: (
        "Check that the command names every path and value it needs",
        "Rephrase the command more explicitly",
    ),
    ErrorKind.PARSE_FAILURE: (
        "Rephrase the command, e.g. 'create a file notes.txt'",
        "Type 'help' to see what the agent can do",
    ),
    ErrorKind.PATH_REJECTED: (
        "Use a path relative to the workspace",
        "Avoid '..' segments and the .agent-backups directory",
    ),
    ErrorKind.NOT_FOUND: (
        "Check the spelling of the path",
        "List the directory to see what exists",
    ),
    ErrorKind.ALREADY_EXISTS: (
        "Ask to overwrite explicitly",
        "Choose a different name",
    ),
    ErrorKind.INTEGRITY_FAILURE: (
        "The backup copy was changed after it was taken and cannot be trusted",
        "Inspect the .agent-backups directory manually",
    ),
    ErrorKind.CONCURRENCY_REJECTED: ("Wait for the running operation to finish and retry",),
    ErrorKind.BACKUP_UNAVAILABLE: (
        "Check free disk space and permissions in the workspace",
        "Nothing was changed; retry once the problem is fixed",
    ),
    ErrorKind.UNSUPPORTED: ("Use 'history clear' to drop the entry if it blocks other undos",),
    ErrorKind.CANCELLED: (),
    ErrorKind.IO_FAILURE: (
        "Check file permissions",
        "Check that the disk is not full",
    ),
}


class AgentError(Exception):
    """Base exception for classified agent failures.

    Attributes:
        kind: Classification of the failure.
        message: Short user-facing description.
        suggestions: Actionable recovery hints.
    """

    kind: ErrorKind = ErrorKind.IO_FAILURE

    def __init__(self, message: str, suggestions: tuple[str, ...] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if suggestions is None:
            suggestions = DEFAULT_SUGGESTIONS[self.kind]
        self.suggestions = suggestions


class IntentValidationError(AgentError):
    """Raised when an intent is missing fields or carries invalid values."""

    kind = ErrorKind.VALIDATION_FAILURE


class IntentParseError(AgentError):
    """Raised when input cannot be turned into an intent at all."""

    kind = ErrorKind.PARSE_FAILURE


class PathRejectedError(AgentError):
    """Raised when a path escapes the workspace or names private bookkeeping."""

    kind = ErrorKind.PATH_REJECTED


class TargetNotFoundError(AgentError):
    """Raised when the target of an operation does not exist."""

    kind = ErrorKind.NOT_FOUND


class TargetExistsError(AgentError):
    """Raised when an operation would overwrite without permission."""

    kind = ErrorKind.ALREADY_EXISTS


class IntegrityError(AgentError):
    """Raised when a backup copy no longer matches its recorded checksum."""

    kind = ErrorKind.INTEGRITY_FAILURE


class GateBusyError(AgentError):
    """Raised when an operation is requested while another one is running."""

    kind = ErrorKind.CONCURRENCY_REJECTED


class BackupUnavailableError(AgentError):
    """Raised when a required backup cannot be created or located."""

    kind = ErrorKind.BACKUP_UNAVAILABLE


class UnsupportedOperationError(AgentError):
    """Raised when an operation has no supported implementation or reversal."""

    kind = ErrorKind.UNSUPPORTED


class OperationCancelledError(AgentError):
    """Raised when the user declines a confirmation or interrupts an operation."""

    kind = ErrorKind.CANCELLED


class FilesystemIOError(AgentError):
    """Raised for OS-level failures that have no more specific kind."""

    kind = ErrorKind.IO_FAILURE


_ERROR_CLASSES: dict[ErrorKind, type[AgentError]] = {
    cls.kind: cls
    for cls in (
        IntentValidationError,
        IntentParseError,
        PathRejectedError,
        TargetNotFoundError,
        TargetExistsError,
        IntegrityError,
        GateBusyError,
        BackupUnavailableError,
        UnsupportedOperationError,
        OperationCancelledError,
        FilesystemIOError,
    )
}


def error_for_kind(kind: ErrorKind, message: str) -> AgentError:
    """Build the AgentError subclass matching a kind.

    Args:
        kind: Error classification.
        message: User-facing message.

    Returns:
        AgentError instance of the matching subclass.
    """
    return _ERROR_CLASSES[kind](message)


def kind_for_os_error(exc: OSError) -> ErrorKind:
    """Map an OSError to the taxonomy.

    Args:
        exc: The OS error.

    Returns:
        Matching ErrorKind (IO_FAILURE when nothing more specific fits).
    """
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, FileExistsError):
        return ErrorKind.ALREADY_EXISTS
    if exc.errno == errno.ENOTEMPTY:
        return ErrorKind.VALIDATION_FAILURE
    return ErrorKind.IO_FAILURE


def classify_error(exc: BaseException) -> AgentError:
    """Convert any exception into a classified AgentError.

    AgentErrors pass through unchanged. OSErrors are mapped by errno/type.
    Anything else is an unexpected failure and is logged with its traceback.

    Args:
        exc: The exception to classify.

    Returns:
        Classified AgentError.
    """
    if isinstance(exc, AgentError):
        return exc
    if isinstance(exc, OSError):
        kind = kind_for_os_error(exc)
        detail = exc.strerror or str(exc)
        target = f": {exc.filename}" if exc.filename else ""
        return error_for_kind(kind, f"{detail}{target}")
    logger.error("Unexpected error: %s", exc, exc_info=exc)
    return FilesystemIOError(f"Unexpected error: {exc}")
