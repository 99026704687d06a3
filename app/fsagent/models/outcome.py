"""Result envelopes.

OperationResult is what a filesystem primitive returns; CommandOutcome is
what the dispatcher hands to the presentation layer.
"""

from dataclasses import dataclass, field

from fsagent.core.errors import AgentError, ErrorKind
from fsagent.models.undo import UndoEntry, UndoResult


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Uniform result of a filesystem primitive.

    Attributes:
        success: Whether the primitive succeeded.
        message: Short description of what happened.
        path: Absolute path acted on.
        error: Failure detail.
        error_kind: Classification of the failure.
        output: Text produced by read/list primitives.
    """

    success: bool
    message: str
    path: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    output: str | None = None

    @classmethod
    def ok(
        cls, message: str, path: str | None = None, output: str | None = None
    ) -> "OperationResult":
        return cls(success=True, message=message, path=path, output=output)

    @classmethod
    def fail(
        cls,
        message: str,
        kind: ErrorKind,
        path: str | None = None,
        error: str | None = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            message=message,
            path=path,
            error=error or message,
            error_kind=kind,
        )


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Structured result of one dispatched command.

    Attributes:
        success: Whether the command succeeded.
        message: Short user-facing summary.
        output: Text to show (file content, listings, help).
        error_kind: Classification of a failure.
        suggestions: Actionable recovery hints.
        warnings: Non-fatal issues (e.g. a best-effort backup failed).
        entry: Undo entry recorded by the command, if any.
        undo_results: Reversal results for undo commands.
    """

    success: bool
    message: str
    output: str | None = None
    error_kind: ErrorKind | None = None
    suggestions: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    entry: UndoEntry | None = None
    undo_results: tuple[UndoResult, ...] = field(default_factory=tuple)

    @classmethod
    def from_error(
        cls,
        error: AgentError,
        warnings: tuple[str, ...] = (),
        undo_results: tuple[UndoResult, ...] = (),
    ) -> "CommandOutcome":
        """Build a failed outcome from a classified error."""
        return cls(
            success=False,
            message=error.message,
            error_kind=error.kind,
            suggestions=tuple(error.suggestions),
            warnings=warnings,
            undo_results=undo_results,
        )

    @property
    def cancelled(self) -> bool:
        return self.error_kind == ErrorKind.CANCELLED
