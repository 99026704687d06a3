"""Data models for fsagent.

This module exports the core data structures used throughout the application.
"""

from fsagent.models.backup import BackupKind, BackupRecord, BackupSession, CleanupReport
from fsagent.models.intent import Intent, IntentBase, intent_to_dict, parse_intent
from fsagent.models.outcome import CommandOutcome, OperationResult
from fsagent.models.plan import (
    FileState,
    ImpactRecord,
    ImpactType,
    PlanAnalysis,
    PlanRun,
    PlanSummary,
)
from fsagent.models.undo import (
    BackupRef,
    OriginalPath,
    UndoEntry,
    UndoKind,
    UndoResult,
    UndoStatistics,
    create_undo_entry,
)

__all__ = [
    "BackupKind",
    "BackupRecord",
    "BackupRef",
    "BackupSession",
    "CleanupReport",
    "CommandOutcome",
    "FileState",
    "ImpactRecord",
    "ImpactType",
    "Intent",
    "IntentBase",
    "OperationResult",
    "OriginalPath",
    "PlanAnalysis",
    "PlanRun",
    "PlanSummary",
    "UndoEntry",
    "UndoKind",
    "UndoResult",
    "UndoStatistics",
    "create_undo_entry",
    "intent_to_dict",
    "parse_intent",
]
