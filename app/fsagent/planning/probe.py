"""Read-only filesystem probes for plan simulation.

The simulator only needs to know, for a workspace-relative path, whether
something exists there, what it is, how big it is and what it contains.
Anything answering that can stand in for the disk, which keeps simulation
testable without a real filesystem.
"""

import logging
import os
from pathlib import Path
from typing import Protocol

from fsagent.core.paths import BACKUP_DIR_NAME
from fsagent.models.plan import MISSING, FileState

logger = logging.getLogger(__name__)


class FilesystemProbe(Protocol):
    """Answers stat/list questions about workspace-relative paths."""

    def stat(self, path: str) -> FileState:
        """Describe the entry at a workspace-relative POSIX path."""
        ...


class DiskProbe:
    """Probe backed by the real workspace.

    Attributes:
        root: Workspace root the relative paths are joined to.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def stat(self, path: str) -> FileState:
        target = self.root if path == "." else self.root / path
        try:
            if target.is_dir():
                names = (child.name for child in target.iterdir())
                children = tuple(sorted(name for name in names if name != BACKUP_DIR_NAME))
                return FileState(
                    exists=True,
                    is_directory=True,
                    children=children,
                    descendant_count=_count_descendants(target),
                )
            if target.exists():
                return FileState(exists=True, size=target.stat().st_size)
        except OSError as e:
            logger.debug("Could not stat %s: %s", target, e)
        return MISSING


class MappingProbe:
    """Probe backed by an in-memory mapping of path to state.

    Unknown paths are reported as missing.
    """

    def __init__(self, states: dict[str, FileState]) -> None:
        self._states = states
        self.calls: list[str] = []

    def stat(self, path: str) -> FileState:
        self.calls.append(path)
        return self._states.get(path, MISSING)


def _count_descendants(path: Path) -> int:
    total = 0
    for _dirpath, dirnames, filenames in os.walk(path):
        dirnames[:] = [name for name in dirnames if name != BACKUP_DIR_NAME]
        total += len(dirnames) + len(filenames)
    return total
