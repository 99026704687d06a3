"""Workspace filesystem access.

This module provides path sandboxing and the CRUD primitives the
dispatcher drives.
"""

from fsagent.filesystem.operations import MAX_READ_BYTES, FilesystemOperations
from fsagent.filesystem.sandbox import (
    PROTECTED_PATH_PATTERNS,
    WorkspaceSandbox,
    is_protected_relative,
)

__all__ = [
    "MAX_READ_BYTES",
    "PROTECTED_PATH_PATTERNS",
    "FilesystemOperations",
    "WorkspaceSandbox",
    "is_protected_relative",
]
