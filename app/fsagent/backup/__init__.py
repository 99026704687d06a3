"""Backup and undo engine.

This module provides the checksummed backup store and the bounded undo
ledger that reverses completed operations.
"""

from fsagent.backup.ledger import DEFAULT_MAX_HISTORY, EMPTY_HISTORY_MESSAGE, UndoLedger
from fsagent.backup.store import BackupStore, new_session_id, prune_sessions, scan_sessions

__all__ = [
    "DEFAULT_MAX_HISTORY",
    "EMPTY_HISTORY_MESSAGE",
    "BackupStore",
    "UndoLedger",
    "new_session_id",
    "prune_sessions",
    "scan_sessions",
]
