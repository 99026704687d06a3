"""Workspace path sandboxing.

Every path an intent names is relative to one workspace root. Resolution
follows symlinks, so a link pointing outside the workspace is rejected the
same way as a ``..`` traversal.
"""

import fnmatch
import logging
from pathlib import Path, PurePosixPath

from fsagent.core.errors import PathRejectedError
from fsagent.core.paths import BACKUP_DIR_NAME

logger = logging.getLogger(__name__)

# Workspace-relative paths (glob-style) that are never valid operation targets.
PROTECTED_PATH_PATTERNS: list[str] = [
    BACKUP_DIR_NAME,
    f"{BACKUP_DIR_NAME}/*",
]


def is_protected_relative(relative: str) -> bool:
    """Check a workspace-relative POSIX path against the protected patterns.

    Args:
        relative: Path relative to the workspace root.

    Returns:
        True if the path is private bookkeeping.
    """
    return any(fnmatch.fnmatch(relative, pattern) for pattern in PROTECTED_PATH_PATTERNS)


class WorkspaceSandbox:
    """Confines paths to a single workspace root.

    Attributes:
        root: Absolute, symlink-resolved workspace root.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.expanduser().resolve()

    def resolve(self, path: str, allow_root: bool = False) -> Path:
        """Resolve a user-supplied path inside the workspace.

        Args:
            path: Path relative to the workspace (absolute paths are accepted
                only when they already point inside it).
            allow_root: Accept the workspace root itself (listings).

        Returns:
            Absolute resolved path.

        Raises:
            PathRejectedError: If the path is empty, escapes the workspace,
                is the root while not allowed, or is protected.
        """
        raw = path.strip()
        if not raw:
            raise PathRejectedError("Path cannot be empty")
        if "\x00" in raw:
            raise PathRejectedError("Path contains a NUL byte")

        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()

        if not resolved.is_relative_to(self.root):
            logger.warning("Rejected path outside workspace: %s", path)
            raise PathRejectedError(f"Path is outside the workspace: {path}")

        relative = self.relative(resolved)
        if relative == "." and not allow_root:
            raise PathRejectedError("The workspace root itself cannot be modified")
        if is_protected_relative(relative):
            raise PathRejectedError(f"Path is reserved for backups: {path}")
        return resolved

    def relative(self, path: Path) -> str:
        """Express an absolute path inside the workspace as a relative POSIX string.

        Returns "." for the root itself.
        """
        rel = path.relative_to(self.root)
        return PurePosixPath(*rel.parts).as_posix() if rel.parts else "."

    def display(self, path: str | Path) -> str:
        """Render a path for output, relative to the workspace when possible."""
        candidate = Path(path)
        if candidate.is_absolute() and candidate.is_relative_to(self.root):
            return self.relative(candidate)
        return str(path)
