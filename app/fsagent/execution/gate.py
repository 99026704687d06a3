"""Operation gate.

Serializes operations: at most one is in flight at a time, and a second
caller is rejected instead of queued. Interrupting the gate makes one
best-effort rollback attempt for the active operation and always returns
the gate to Idle.

The gate is not a lock in the threading sense. All state changes happen on
the event loop thread between awaits, so acquire/release need no
synchronization of their own.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from fsagent.backup.ledger import UndoLedger
from fsagent.core.errors import GateBusyError, OperationCancelledError
from fsagent.models.intent import IntentBase
from fsagent.models.undo import UndoResult

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    """Gate state."""

    IDLE = "idle"
    BUSY = "busy"


class CancellationToken:
    """Per-operation cancellation flag checked at suspension points.

    Attributes:
        rollback_pending: The interrupt left the rollback to the operation
            itself, to be done once its ledger entry exists.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.rollback_pending = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, rollback: bool = False) -> None:
        """Mark the operation as interrupted."""
        self._cancelled = True
        self.rollback_pending = rollback

    def checkpoint(self) -> None:
        """Raise if the operation was interrupted.

        Raises:
            OperationCancelledError: If cancel() was called.
        """
        if self._cancelled:
            raise OperationCancelledError("Operation interrupted")


@dataclass(frozen=True, slots=True)
class ActiveOperation:
    """The operation currently holding the gate.

    Attributes:
        intent: Intent being executed.
        started_at: When the gate was acquired.
        ledger_mark: Ledger sequence number at acquisition.
        token: Cancellation token for this operation.
    """

    intent: IntentBase
    started_at: datetime
    ledger_mark: int
    token: CancellationToken = field(default_factory=CancellationToken)

    def elapsed_seconds(self, now: datetime | None = None) -> float:
        return ((now or datetime.now(UTC)) - self.started_at).total_seconds()


@dataclass(frozen=True, slots=True)
class RollbackOutcome:
    """Result of an interrupt.

    Attributes:
        interrupted: False when the gate was already idle (no-op).
        message: Short user-facing description.
        intent_type: Type of the interrupted intent.
        results: Results of the rollback attempt made by the gate.
        deferred: The rollback attempt is left to the operation's
            post-commit checkpoint because nothing was recorded yet.
    """

    interrupted: bool
    message: str
    intent_type: str | None = None
    results: tuple[UndoResult, ...] = ()
    deferred: bool = False

    @property
    def rolled_back(self) -> bool:
        return bool(self.results) and all(result.success for result in self.results)


class OperationGate:
    """Idle/Busy state machine guarding every operation."""

    def __init__(self, ledger: UndoLedger) -> None:
        self._ledger = ledger
        self._active: ActiveOperation | None = None

    @property
    def state(self) -> GateState:
        return GateState.IDLE if self._active is None else GateState.BUSY

    @property
    def active(self) -> ActiveOperation | None:
        return self._active

    def acquire(self, intent: IntentBase) -> ActiveOperation:
        """Move from Idle to Busy.

        Args:
            intent: Intent about to run.

        Returns:
            The ActiveOperation handle to pass to release().

        Raises:
            GateBusyError: If another operation is in flight.
        """
        if self._active is not None:
            current = self._active.intent.type
            raise GateBusyError(f"Another operation is in progress: {current}")
        self._active = ActiveOperation(
            intent=intent,
            started_at=datetime.now(UTC),
            ledger_mark=self._ledger.sequence,
        )
        logger.debug("Gate acquired for %s", intent.type)
        return self._active

    def release(self, active: ActiveOperation | None = None) -> None:
        """Move from Busy to Idle.

        With a handle, only that operation's hold is released; a handle left
        over from an interrupted operation is ignored.
        """
        if active is not None and self._active is not active:
            logger.debug("Ignoring release of a stale gate handle for %s", active.intent.type)
            return
        if self._active is not None:
            logger.debug("Gate released by %s", self._active.intent.type)
        self._active = None

    @asynccontextmanager
    async def hold(self, intent: IntentBase) -> AsyncIterator[ActiveOperation]:
        """Hold the gate for the duration of a block, releasing it on any exit."""
        active = self.acquire(intent)
        try:
            yield active
        finally:
            self.release(active)

    async def interrupt(self) -> RollbackOutcome:
        """Interrupt the active operation.

        Makes one rollback attempt (undo_last(1)) for a mutating operation
        and forces the gate back to Idle whatever the outcome. If the
        operation has not recorded its ledger entry yet, the attempt is
        handed to the operation's post-commit checkpoint instead, so an
        older unrelated entry is never reversed. Idle gates are left alone.
        """
        active = self._active
        if active is None:
            return RollbackOutcome(interrupted=False, message="No operation in progress")

        intent_type = active.intent.type
        logger.warning(
            "Interrupting %s after %.1fs", intent_type, active.elapsed_seconds()
        )

        results: tuple[UndoResult, ...] = ()
        deferred = False
        if not active.intent.mutating:
            active.token.cancel()
            message = f"Interrupted {intent_type}; nothing to roll back"
        elif self._ledger.sequence > active.ledger_mark:
            active.token.cancel()
            results = tuple(await asyncio.to_thread(self._ledger.undo_last, 1))
            if all(result.success for result in results):
                message = f"Interrupted {intent_type} and rolled it back"
            else:
                message = f"Interrupted {intent_type}; rollback failed"
        else:
            active.token.cancel(rollback=True)
            deferred = True
            message = f"Interrupted {intent_type}; it will be rolled back if it completes"

        # Force Idle whatever the rollback outcome
        if self._active is active:
            self._active = None
        return RollbackOutcome(
            interrupted=True,
            message=message,
            intent_type=intent_type,
            results=results,
            deferred=deferred,
        )
