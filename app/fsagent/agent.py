"""File agent facade.

FileAgent owns one instance of every collaborator for one workspace and
exposes the operations the presentation layer needs: executing commands,
undo, history, statistics and plan mode. Nothing here is a module-level
singleton; tests build as many isolated agents as they like.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from fsagent.backup.ledger import UndoLedger
from fsagent.backup.store import BackupStore
from fsagent.core.config import AgentConfig
from fsagent.core.paths import ensure_workspace
from fsagent.execution.dispatcher import ConfirmCallback, Dispatcher
from fsagent.execution.gate import OperationGate, RollbackOutcome
from fsagent.filesystem.operations import FilesystemOperations
from fsagent.filesystem.sandbox import WorkspaceSandbox
from fsagent.models.backup import CleanupReport
from fsagent.models.intent import Intent, IntentBase, UndoIntent
from fsagent.models.outcome import CommandOutcome
from fsagent.models.plan import PlanAnalysis, PlanRun
from fsagent.models.undo import UndoResult, UndoStatistics
from fsagent.planning.probe import DiskProbe
from fsagent.planning.queue import PlanQueue
from fsagent.planning.simulator import PlanSimulator

logger = logging.getLogger(__name__)


@dataclass
class FileAgent:
    """One agent session over one workspace.

    Attributes:
        config: Settings the agent was built from.
        sandbox: Path confinement for the workspace.
        store: Session backup store.
        ledger: Undo history.
        gate: Operation gate shared by every command.
        dispatcher: Executes intents.
        plan: Queued intents for plan mode.
        simulator: Previews the plan.
    """

    config: AgentConfig
    sandbox: WorkspaceSandbox
    store: BackupStore
    ledger: UndoLedger
    gate: OperationGate
    dispatcher: Dispatcher
    plan: PlanQueue
    simulator: PlanSimulator

    @classmethod
    def create(cls, config: AgentConfig, workspace: Path | None = None) -> "FileAgent":
        """Wire an agent from configuration.

        Args:
            config: Agent settings.
            workspace: Overrides the configured workspace root.

        Returns:
            A ready agent; the workspace directory is created if needed.

        Raises:
            RuntimeError: If the workspace cannot be created.
        """
        root = ensure_workspace(workspace or config.workspace_root)
        sandbox = WorkspaceSandbox(root)
        store = BackupStore(sandbox.root)
        ledger = UndoLedger(store, max_size=config.max_history, display=sandbox.display)
        gate = OperationGate(ledger)
        dispatcher = Dispatcher(
            sandbox,
            FilesystemOperations(),
            store,
            ledger,
            gate,
            backup_deletions=config.backup_deletions,
            confirm_destructive=config.confirm_destructive,
        )
        logger.debug("Agent ready for %s (session %s)", sandbox.root, store.session_id)
        return cls(
            config=config,
            sandbox=sandbox,
            store=store,
            ledger=ledger,
            gate=gate,
            dispatcher=dispatcher,
            plan=PlanQueue(),
            simulator=PlanSimulator(DiskProbe(sandbox.root), sandbox),
        )

    @property
    def workspace(self) -> Path:
        return self.sandbox.root

    # -- single commands -----------------------------------------------------

    async def execute_command(
        self, intent: IntentBase, confirm: ConfirmCallback | None = None
    ) -> CommandOutcome:
        """Execute one intent through the gate."""
        return await self.dispatcher.execute_command(intent, confirm)

    async def undo_operations(self, steps: int = 1) -> list[UndoResult]:
        """Undo up to ``steps`` operations, newest first.

        Returns:
            One UndoResult per attempted reversal. An empty history gives a
            single unsuccessful result; a busy gate gives a single failed one.
        """
        outcome = await self.execute_command(UndoIntent(steps=steps))
        if outcome.undo_results:
            return list(outcome.undo_results)
        return [UndoResult(success=False, message=outcome.message, error=outcome.message)]

    def get_history_summary(self) -> list[str]:
        return self.ledger.history_summary()

    def get_statistics(self) -> UndoStatistics:
        return self.ledger.statistics()

    def clear_history(self) -> int:
        """Forget every undo entry; returns how many were dropped."""
        count = self.ledger.clear()
        logger.info("Cleared %d undo entr%s", count, "y" if count == 1 else "ies")
        return count

    # -- plan mode -----------------------------------------------------------

    def add_to_plan(self, intent: Intent) -> int:
        """Queue an intent; returns its 1-based position."""
        return self.plan.add(intent)

    def analyze_plan(self) -> PlanAnalysis:
        """Preview the queued intents against the current filesystem."""
        return self.simulator.analyze(self.plan.items())

    async def execute_plan(
        self, force: bool = False, confirm: ConfirmCallback | None = None
    ) -> PlanRun:
        """Run the queued intents in order.

        The plan is analyzed again first. While conflicts exist nothing runs
        unless ``force`` is set. Execution stops at the first failure;
        executed intents leave the queue, the failed one and any after it
        stay queued.

        Args:
            force: Run despite conflicts.
            confirm: Confirmation callback for destructive intents.

        Returns:
            PlanRun with the analysis and per-intent outcomes.
        """
        intents = self.plan.items()
        analysis = self.simulator.analyze(intents)
        if analysis.has_conflicts and not force:
            logger.info("Plan refused: %d conflict(s)", len(analysis.conflicts))
            return PlanRun(analysis=analysis, refused=True, remaining=len(self.plan))

        outcomes: list[CommandOutcome] = []
        for intent in intents:
            outcome = await self.execute_command(intent, confirm)
            outcomes.append(outcome)
            if not outcome.success:
                logger.info("Plan stopped at %s: %s", intent.describe(), outcome.message)
                break

        executed = sum(1 for outcome in outcomes if outcome.success)
        self.plan.drop_first(executed)
        return PlanRun(analysis=analysis, outcomes=tuple(outcomes), remaining=len(self.plan))

    def clear_plan(self) -> int:
        return self.plan.clear()

    # -- lifecycle -----------------------------------------------------------

    async def interrupt(self) -> RollbackOutcome:
        """Interrupt whatever is running (no-op when idle)."""
        return await self.gate.interrupt()

    def shutdown(self) -> CleanupReport:
        """End the session, applying backup retention to this session's backups."""
        report = self.store.cleanup(
            max_age_hours=self.config.backup_retention_hours,
            max_count=self.config.backup_max_count,
        )
        logger.debug(
            "Shutdown cleanup: %d deleted, %d kept", len(report.deleted), len(report.kept)
        )
        return report
