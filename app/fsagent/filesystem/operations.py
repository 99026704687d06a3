"""Filesystem primitives.

Thin synchronous wrappers over OS calls. Every primitive takes absolute,
already sandboxed paths and returns an OperationResult instead of raising;
OS errors are classified into the agent's error taxonomy.
"""

import logging
import os
import shutil
from pathlib import Path

from fsagent.core.errors import ErrorKind, kind_for_os_error
from fsagent.core.paths import BACKUP_DIR_NAME
from fsagent.models.outcome import OperationResult

logger = logging.getLogger(__name__)

# Files larger than this are not read into the console
MAX_READ_BYTES = 1024 * 1024


def _os_failure(action: str, path: Path, exc: OSError) -> OperationResult:
    """Build a failed result from an OSError."""
    detail = exc.strerror or str(exc)
    logger.debug("%s failed for %s: %s", action, path, exc)
    return OperationResult.fail(
        f"Failed to {action} {path.name or path}: {detail}",
        kind_for_os_error(exc),
        path=str(path),
        error=str(exc),
    )


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


class FilesystemOperations:
    """CRUD primitives for files and directories.

    Attributes:
        _hidden_names: Entry names never shown in listings.
    """

    def __init__(self, hidden_names: tuple[str, ...] = (BACKUP_DIR_NAME,)) -> None:
        self._hidden_names = hidden_names

    # -- directories ---------------------------------------------------------

    def create_directory(self, path: Path, recursive: bool = True) -> OperationResult:
        """Create a directory; existing paths are a failure."""
        if path.exists():
            kind = "Directory" if path.is_dir() else "A file"
            return OperationResult.fail(
                f"{kind} already exists at {path.name}", ErrorKind.ALREADY_EXISTS, str(path)
            )
        if not recursive and not path.parent.is_dir():
            return OperationResult.fail(
                f"Parent directory does not exist: {path.parent.name}",
                ErrorKind.NOT_FOUND,
                str(path),
            )
        try:
            path.mkdir(parents=recursive)
        except OSError as e:
            return _os_failure("create directory", path, e)
        return OperationResult.ok(f"Created directory {path.name}", str(path))

    def delete_directory(self, path: Path, recursive: bool = False) -> OperationResult:
        """Delete a directory; non-empty ones need recursive."""
        if not path.exists():
            return OperationResult.fail(
                f"Directory does not exist: {path.name}", ErrorKind.NOT_FOUND, str(path)
            )
        if not path.is_dir() or path.is_symlink():
            return OperationResult.fail(
                f"Not a directory: {path.name}", ErrorKind.VALIDATION_FAILURE, str(path)
            )
        try:
            if any(path.iterdir()):
                if not recursive:
                    return OperationResult.fail(
                        f"Directory is not empty: {path.name}",
                        ErrorKind.VALIDATION_FAILURE,
                        str(path),
                    )
                shutil.rmtree(path)
            else:
                path.rmdir()
        except OSError as e:
            return _os_failure("delete directory", path, e)
        return OperationResult.ok(f"Deleted directory {path.name}", str(path))

    def list_directory(self, path: Path, detailed: bool = False) -> OperationResult:
        """List directory entries, directories first."""
        if not path.exists():
            return OperationResult.fail(
                f"Directory does not exist: {path.name}", ErrorKind.NOT_FOUND, str(path)
            )
        if not path.is_dir():
            return OperationResult.fail(
                f"Not a directory: {path.name}", ErrorKind.VALIDATION_FAILURE, str(path)
            )
        try:
            entries = [child for child in path.iterdir() if child.name not in self._hidden_names]
            entries.sort(key=lambda child: (not child.is_dir(), child.name.lower()))
            lines: list[str] = []
            for child in entries:
                if child.is_dir():
                    lines.append(f"d  {'-':>9}  {child.name}/" if detailed else f"{child.name}/")
                else:
                    size = _format_size(child.stat().st_size)
                    lines.append(f"f  {size:>9}  {child.name}" if detailed else child.name)
        except OSError as e:
            return _os_failure("list", path, e)

        noun = "entry" if len(lines) == 1 else "entries"
        output = "\n".join(lines) if lines else "(empty)"
        return OperationResult.ok(f"{len(lines)} {noun} in {path.name or '.'}", str(path), output)

    # -- files ---------------------------------------------------------------

    def create_file(
        self, path: Path, content: str = "", overwrite: bool = False
    ) -> OperationResult:
        """Create a file, creating missing parent directories."""
        if path.is_dir():
            return OperationResult.fail(
                f"A directory already exists at {path.name}", ErrorKind.ALREADY_EXISTS, str(path)
            )
        if path.exists() and not overwrite:
            return OperationResult.fail(
                f"File already exists: {path.name}", ErrorKind.ALREADY_EXISTS, str(path)
            )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            return _os_failure("create file", path, e)
        return OperationResult.ok(f"Created file {path.name}", str(path))

    def write_file(self, path: Path, content: str, append: bool = False) -> OperationResult:
        """Write (or append) content to a file."""
        if path.is_dir():
            return OperationResult.fail(
                f"Cannot write to a directory: {path.name}", ErrorKind.VALIDATION_FAILURE, str(path)
            )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a" if append else "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            return _os_failure("write", path, e)
        verb = "Appended to" if append else "Wrote"
        return OperationResult.ok(f"{verb} {path.name} ({len(content)} characters)", str(path))

    def read_file(
        self, path: Path, lines: int | None = None, from_line: int | None = None
    ) -> OperationResult:
        """Read a text file, optionally a slice of its lines."""
        if not path.exists():
            return OperationResult.fail(
                f"File does not exist: {path.name}", ErrorKind.NOT_FOUND, str(path)
            )
        if path.is_dir():
            return OperationResult.fail(
                f"{path.name} is a directory", ErrorKind.VALIDATION_FAILURE, str(path)
            )
        try:
            size = path.stat().st_size
            if size > MAX_READ_BYTES:
                return OperationResult.fail(
                    f"File is too large to display ({_format_size(size)})",
                    ErrorKind.VALIDATION_FAILURE,
                    str(path),
                )
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return _os_failure("read", path, e)

        if lines is not None or from_line is not None:
            all_lines = content.splitlines()
            start = (from_line or 1) - 1
            end = start + lines if lines is not None else len(all_lines)
            content = "\n".join(all_lines[start:end])
        return OperationResult.ok(f"Read {path.name}", str(path), content)

    def modify_file(
        self, path: Path, search: str, replace: str, replace_all: bool = False
    ) -> OperationResult:
        """Literal search/replace; an empty search rewrites the whole file."""
        if not path.is_file():
            return OperationResult.fail(
                f"File does not exist: {path.name}", ErrorKind.NOT_FOUND, str(path)
            )
        try:
            content = path.read_text(encoding="utf-8")
            if not search:
                updated = replace
                message = f"Rewrote {path.name}"
            else:
                occurrences = content.count(search)
                if occurrences == 0:
                    return OperationResult.fail(
                        f"Text '{search}' not found in {path.name}",
                        ErrorKind.NOT_FOUND,
                        str(path),
                    )
                count = occurrences if replace_all else 1
                updated = content.replace(search, replace, count)
                plural = "" if count == 1 else "s"
                message = f"Replaced {count} occurrence{plural} in {path.name}"
            path.write_text(updated, encoding="utf-8")
        except UnicodeDecodeError:
            return OperationResult.fail(
                f"{path.name} is not a UTF-8 text file", ErrorKind.VALIDATION_FAILURE, str(path)
            )
        except OSError as e:
            return _os_failure("modify", path, e)
        return OperationResult.ok(message, str(path))

    def truncate_file(self, path: Path, size: int = 0) -> OperationResult:
        """Truncate a file to ``size`` bytes."""
        if not path.is_file():
            return OperationResult.fail(
                f"File does not exist: {path.name}", ErrorKind.NOT_FOUND, str(path)
            )
        try:
            os.truncate(path, size)
        except OSError as e:
            return _os_failure("truncate", path, e)
        return OperationResult.ok(f"Truncated {path.name} to {size} bytes", str(path))

    def delete_file(self, path: Path) -> OperationResult:
        """Delete a single file (or symlink)."""
        if not path.exists() and not path.is_symlink():
            return OperationResult.fail(
                f"File does not exist: {path.name}", ErrorKind.NOT_FOUND, str(path)
            )
        if path.is_dir() and not path.is_symlink():
            return OperationResult.fail(
                f"{path.name} is a directory; delete it as a directory",
                ErrorKind.VALIDATION_FAILURE,
                str(path),
            )
        try:
            path.unlink()
        except OSError as e:
            return _os_failure("delete", path, e)
        return OperationResult.ok(f"Deleted {path.name}", str(path))

    # -- relocation ----------------------------------------------------------

    def copy_file(
        self, source: Path, destination: Path, overwrite: bool = False
    ) -> OperationResult:
        """Copy a file, creating missing destination directories."""
        if not source.exists():
            return OperationResult.fail(
                f"Source does not exist: {source.name}", ErrorKind.NOT_FOUND, str(source)
            )
        if source.is_dir():
            return OperationResult.fail(
                f"{source.name} is a directory; only files can be copied",
                ErrorKind.VALIDATION_FAILURE,
                str(source),
            )
        if destination.is_dir():
            return OperationResult.fail(
                f"A directory already exists at {destination.name}",
                ErrorKind.ALREADY_EXISTS,
                str(destination),
            )
        if destination.exists() and not overwrite:
            return OperationResult.fail(
                f"Destination already exists: {destination.name}",
                ErrorKind.ALREADY_EXISTS,
                str(destination),
            )
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as e:
            return _os_failure("copy", source, e)
        return OperationResult.ok(f"Copied {source.name} to {destination.name}", str(destination))

    def move(self, source: Path, destination: Path, overwrite: bool = False) -> OperationResult:
        """Move a file or directory.

        An existing destination is replaced only when overwrite is set, and
        never when it is a directory.
        """
        if not source.exists():
            return OperationResult.fail(
                f"Source does not exist: {source.name}", ErrorKind.NOT_FOUND, str(source)
            )
        if destination.exists():
            if not overwrite:
                return OperationResult.fail(
                    f"Destination already exists: {destination.name}",
                    ErrorKind.ALREADY_EXISTS,
                    str(destination),
                )
            if destination.is_dir():
                return OperationResult.fail(
                    f"Refusing to replace directory {destination.name}",
                    ErrorKind.VALIDATION_FAILURE,
                    str(destination),
                )
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            if source.is_dir():
                shutil.move(str(source), str(destination))
            else:
                os.replace(source, destination)
        except OSError as e:
            return _os_failure("move", source, e)
        return OperationResult.ok(f"Moved {source.name} to {destination.name}", str(destination))

    def rename(self, path: Path, new_name: str, overwrite: bool = False) -> OperationResult:
        """Rename an entry within its parent directory."""
        destination = path.parent / new_name
        if destination == path:
            if not path.exists():
                return OperationResult.fail(
                    f"Source does not exist: {path.name}", ErrorKind.NOT_FOUND, str(path)
                )
            return OperationResult.ok(f"{path.name} already has that name", str(path))
        result = self.move(path, destination, overwrite=overwrite)
        if not result.success:
            return result
        return OperationResult.ok(f"Renamed {path.name} to {new_name}", str(destination))
