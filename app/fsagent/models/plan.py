"""Plan analysis models.

Produced by the plan simulator, displayed, then discarded. Paths in these
models are workspace-relative POSIX strings ("." is the workspace root).
"""

from dataclasses import dataclass, field
from enum import Enum

from fsagent.models.intent import Intent
from fsagent.models.outcome import CommandOutcome


class ImpactType(str, Enum):
    """Effect of an intent on its target path."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    MOVE = "move"
    READ = "read"


@dataclass(frozen=True, slots=True)
class FileState:
    """Snapshot of one path.

    Attributes:
        exists: Whether anything exists at the path.
        is_directory: Whether the path is a directory.
        size: File size in bytes (0 for directories and missing paths).
        children: Names of direct children (directories only).
        descendant_count: Entries anywhere below a directory.
    """

    exists: bool = False
    is_directory: bool = False
    size: int = 0
    children: tuple[str, ...] = ()
    descendant_count: int = 0

    @property
    def is_file(self) -> bool:
        return self.exists and not self.is_directory

    def describe(self) -> str:
        """One-word-ish description for tables."""
        if not self.exists:
            return "absent"
        if self.is_directory:
            return f"dir ({len(self.children)} entries)"
        return f"file ({self.size} B)"


MISSING = FileState()


@dataclass(frozen=True, slots=True)
class ImpactRecord:
    """Computed effect of one queued intent.

    Attributes:
        target_path: Path the intent acts on (destination for copy/move/rename).
        impact_type: Kind of effect.
        before_state: Simulated state of the target before the intent.
        after_state: Simulated state of the target after the intent.
        conflicts: Problems that would make the intent fail or misbehave.
        warnings: Things worth knowing that do not block execution.
        source_path: Source for copy/move/rename intents.
    """

    target_path: str
    impact_type: ImpactType
    before_state: FileState
    after_state: FileState
    conflicts: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    source_path: str | None = None


@dataclass(frozen=True, slots=True)
class PlanEntry:
    """A queued intent and its computed impact."""

    index: int
    intent: Intent
    impact: ImpactRecord


@dataclass(frozen=True, slots=True)
class PlanSummary:
    """Counts of impacts by type."""

    creates: int = 0
    modifies: int = 0
    deletes: int = 0
    moves: int = 0
    reads: int = 0

    @property
    def total(self) -> int:
        return self.creates + self.modifies + self.deletes + self.moves + self.reads


@dataclass(frozen=True, slots=True)
class PlanAnalysis:
    """Full result of a plan simulation.

    Attributes:
        entries: One entry per queued intent, in queue order.
        summary: Impact counts.
        conflicts: All conflicts (per-intent and cross-intent).
        warnings: All warnings.
        before: Snapshot the simulation started from.
        after: Simulated snapshot after every intent.
    """

    entries: tuple[PlanEntry, ...]
    summary: PlanSummary
    conflicts: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    before: dict[str, FileState] = field(default_factory=lambda: {})
    after: dict[str, FileState] = field(default_factory=lambda: {})

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def is_empty(self) -> bool:
        return not self.entries


@dataclass(frozen=True, slots=True)
class PlanRun:
    """Result of executing a queued plan.

    Attributes:
        analysis: Fresh analysis taken before anything ran.
        outcomes: One outcome per intent attempted, in order.
        refused: True if conflicts prevented execution.
        remaining: Intents still queued afterwards.
    """

    analysis: PlanAnalysis
    outcomes: tuple[CommandOutcome, ...] = ()
    refused: bool = False
    remaining: int = 0

    @property
    def executed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> CommandOutcome | None:
        return next((outcome for outcome in self.outcomes if not outcome.success), None)

    @property
    def success(self) -> bool:
        return not self.refused and self.failed is None
