"""Plan simulation.

Previews the cumulative effect of queued intents without changing anything.
The work is split in two:

1. ``PlanSimulator.analyze`` stats every path the plan mentions (targets,
   sources and their ancestors) once through a probe, producing the
   ``before`` snapshot.
2. ``simulate`` is a pure function of that snapshot and the intents. Each
   intent is checked against a running ``after`` snapshot, so later intents
   see the effects of earlier ones, and paths targeted by more than one
   intent are reported as conflicts.

Paths are workspace-relative POSIX strings; "." is the workspace root. When
the simulator has a sandbox, every path an intent names is resolved through
it before simulation (symlinks followed, absolute in-workspace paths
accepted), so plan keys match the paths execution will touch. Without one,
paths are normalized lexically.
"""

import logging
import posixpath
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace

from fsagent.core.errors import PathRejectedError
from fsagent.filesystem.sandbox import WorkspaceSandbox, is_protected_relative
from fsagent.models.intent import (
    CopyFileIntent,
    CreateDirectoryIntent,
    CreateFileIntent,
    DeleteDirectoryIntent,
    DeleteFileIntent,
    IntentBase,
    ListDirectoryIntent,
    ModifyFileIntent,
    MoveFileIntent,
    ReadFileIntent,
    RenameFileIntent,
    TruncateFileIntent,
    WriteFileIntent,
)
from fsagent.models.plan import (
    MISSING,
    FileState,
    ImpactRecord,
    ImpactType,
    PlanAnalysis,
    PlanEntry,
    PlanSummary,
)
from fsagent.planning.probe import FilesystemProbe

logger = logging.getLogger(__name__)

ROOT = "."

# Raw path -> resolved key, or the reason the path was rejected
KeyMap = Mapping[str, str | PathRejectedError]


def normalize_path(path: str) -> str | None:
    """Normalize a user path to a workspace-relative key.

    Returns:
        The key, or None when the path is absolute or escapes the workspace.
    """
    raw = path.strip().replace("\\", "/")
    if not raw or raw.startswith("/") or raw.startswith("~"):
        return None
    key = posixpath.normpath(raw)
    if key == ".." or key.startswith("../"):
        return None
    return key


def parent_of(key: str) -> str:
    return posixpath.dirname(key) or ROOT


def ancestors_of(key: str) -> list[str]:
    """Ancestors of a key, nearest first, excluding the root."""
    result: list[str] = []
    current = parent_of(key)
    while current != ROOT:
        result.append(current)
        current = parent_of(current)
    return result


def _is_within(key: str, prefix: str) -> bool:
    return key == prefix or key.startswith(prefix + "/")


def key_for(raw: str, keys: KeyMap) -> str | None:
    """Key for a raw path: the resolved one when known, else the normalized one."""
    if raw in keys:
        resolved = keys[raw]
        return resolved if isinstance(resolved, str) else None
    return normalize_path(raw)


def raw_paths(intent: IntentBase) -> list[str]:
    """Paths an intent names, as the user wrote them."""
    if isinstance(intent, CopyFileIntent | MoveFileIntent):
        return [intent.source_path, intent.destination_path]
    if hasattr(intent, "path"):
        return [getattr(intent, "path")]  # noqa: B009
    return []


def _rename_target(intent: RenameFileIntent, keys: KeyMap) -> str | None:
    source = key_for(intent.path, keys)
    if source is None:
        return None
    parent = parent_of(source)
    return intent.new_name if parent == ROOT else f"{parent}/{intent.new_name}"


def referenced_paths(intents: Iterable[IntentBase], keys: KeyMap | None = None) -> set[str]:
    """Every valid key an intent touches, plus all of their ancestors."""
    known = keys or {}
    result: set[str] = set()
    for intent in intents:
        found = [key_for(raw, known) for raw in raw_paths(intent)]
        if isinstance(intent, RenameFileIntent):
            found.append(_rename_target(intent, known))
        for key in found:
            if key is None:
                continue
            result.add(key)
            result.update(ancestors_of(key))
    result.add(ROOT)
    return result


class _Snapshot:
    """Mutable simulated filesystem state keyed by relative path.

    Keeps parent ``children`` lists and ancestor ``descendant_count`` in
    step as entries appear and disappear.
    """

    def __init__(self, states: Mapping[str, FileState]) -> None:
        self._states = dict(states)

    def get(self, key: str) -> FileState:
        return self._states.get(key, MISSING)

    def as_dict(self) -> dict[str, FileState]:
        return dict(self._states)

    def parent_exists(self, key: str) -> bool:
        parent = parent_of(key)
        return parent == ROOT or self.get(parent).is_directory

    def _adjust_ancestors(self, key: str, delta: int) -> None:
        for ancestor in [*ancestors_of(key), ROOT]:
            state = self._states.get(ancestor)
            if state is not None and state.is_directory:
                count = max(0, state.descendant_count + delta)
                self._states[ancestor] = replace(state, descendant_count=count)

    def _link(self, key: str, present: bool) -> None:
        parent = parent_of(key)
        state = self._states.get(parent)
        if state is None or not state.is_directory:
            return
        name = posixpath.basename(key)
        names = set(state.children)
        if present:
            names.add(name)
        else:
            names.discard(name)
        self._states[parent] = replace(state, children=tuple(sorted(names)))

    def ensure_parents(self, key: str) -> None:
        """Create missing ancestor directories, outermost first."""
        for ancestor in reversed(ancestors_of(key)):
            if not self.get(ancestor).exists:
                self.put(ancestor, FileState(exists=True, is_directory=True))

    def put(self, key: str, state: FileState) -> None:
        """Set the state of one path, creating or replacing it."""
        old = self.get(key)
        self._states[key] = state
        if not old.exists and state.exists:
            self._link(key, True)
            self._adjust_ancestors(key, 1 + state.descendant_count)
        elif old.exists and not state.exists:
            self._link(key, False)
            self._adjust_ancestors(key, -(1 + old.descendant_count))

    def remove(self, key: str) -> FileState:
        """Delete a path and everything below it; returns its old state."""
        old = self.get(key)
        for other in list(self._states):
            if other != key and _is_within(other, key):
                self._states[other] = MISSING
        self.put(key, MISSING)
        return old

    def relocate(self, source: str, destination: str) -> None:
        """Move a path (and known paths below it) to a new key."""
        moved = {
            destination + other[len(source) :]: state
            for other, state in self._states.items()
            if other != source and _is_within(other, source)
        }
        state = self.remove(source)
        if self.get(destination).exists:
            self.remove(destination)
        self.ensure_parents(destination)
        self.put(destination, state)
        self._states.update(moved)


@dataclass
class _Check:
    """Findings for one intent while it is being simulated."""

    conflicts: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def conflict(self, message: str) -> None:
        self.conflicts.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


def _missing_parent_warning(snap: _Snapshot, key: str, check: _Check) -> None:
    if not snap.parent_exists(key):
        check.warn(f"Parent directory {parent_of(key)} does not exist and will be created")


def _file_state(size: int) -> FileState:
    return FileState(exists=True, size=size)


def _sim_create_file(
    intent: CreateFileIntent, key: str, snap: _Snapshot, check: _Check
) -> ImpactType:
    state = snap.get(key)
    size = len(intent.content.encode("utf-8"))
    if state.is_directory:
        check.conflict(f"{key} is a directory")
        return ImpactType.CREATE
    if state.exists:
        if not intent.overwrite:
            check.conflict(f"{key} already exists")
            return ImpactType.CREATE
        check.warn(f"{key} will be overwritten")
        snap.put(key, _file_state(size))
        return ImpactType.MODIFY
    _missing_parent_warning(snap, key, check)
    snap.ensure_parents(key)
    snap.put(key, _file_state(size))
    return ImpactType.CREATE


def _sim_create_directory(
    intent: CreateDirectoryIntent, key: str, snap: _Snapshot, check: _Check
) -> ImpactType:
    state = snap.get(key)
    if state.is_directory:
        check.conflict(f"Directory {key} already exists")
        return ImpactType.CREATE
    if state.exists:
        check.conflict(f"A file already exists at {key}")
        return ImpactType.CREATE
    if not snap.parent_exists(key):
        if not intent.recursive:
            check.conflict(f"Parent directory {parent_of(key)} does not exist")
            return ImpactType.CREATE
        _missing_parent_warning(snap, key, check)
    snap.ensure_parents(key)
    snap.put(key, FileState(exists=True, is_directory=True))
    return ImpactType.CREATE


def _sim_write_file(
    intent: WriteFileIntent, key: str, snap: _Snapshot, check: _Check
) -> ImpactType:
    state = snap.get(key)
    size = len(intent.content.encode("utf-8"))
    if state.is_directory:
        check.conflict(f"{key} is a directory")
        return ImpactType.MODIFY
    if state.exists:
        if intent.overwrite:
            check.warn(f"{key} will be overwritten")
            snap.put(key, _file_state(size))
        else:
            check.warn(f"Content will be appended to {key}")
            snap.put(key, _file_state(state.size + size))
        return ImpactType.MODIFY
    _missing_parent_warning(snap, key, check)
    snap.ensure_parents(key)
    snap.put(key, _file_state(size))
    return ImpactType.CREATE


def _sim_edit_file(
    intent: ModifyFileIntent | TruncateFileIntent, key: str, snap: _Snapshot, check: _Check
) -> ImpactType:
    state = snap.get(key)
    if not state.is_file:
        check.conflict(f"{key} is a directory" if state.exists else f"{key} does not exist")
        return ImpactType.MODIFY
    if isinstance(intent, TruncateFileIntent):
        snap.put(key, _file_state(intent.size))
    return ImpactType.MODIFY


def _sim_delete_file(
    intent: DeleteFileIntent, key: str, snap: _Snapshot, check: _Check
) -> ImpactType:
    state = snap.get(key)
    if not state.exists:
        check.conflict(f"{key} does not exist")
    elif state.is_directory:
        check.conflict(f"{key} is a directory; delete it as a directory")
    else:
        snap.remove(key)
    return ImpactType.DELETE


def _sim_delete_directory(
    intent: DeleteDirectoryIntent, key: str, snap: _Snapshot, check: _Check
) -> ImpactType:
    state = snap.get(key)
    if not state.exists:
        check.conflict(f"Directory {key} does not exist")
        return ImpactType.DELETE
    if not state.is_directory:
        check.conflict(f"{key} is a file, not a directory")
        return ImpactType.DELETE
    if state.children:
        if not intent.recursive:
            check.conflict(
                f"Directory {key} is not empty ({len(state.children)} entries) "
                "and recursive deletion was not requested"
            )
            return ImpactType.DELETE
        count = max(state.descendant_count, len(state.children))
        check.warn(f"Deleting {key} also removes {count} item(s) inside it")
    snap.remove(key)
    return ImpactType.DELETE


def _sim_relocate(
    source: str,
    destination: str,
    overwrite: bool,
    copy: bool,
    snap: _Snapshot,
    check: _Check,
) -> None:
    source_state = snap.get(source)
    destination_state = snap.get(destination)
    if source == destination:
        if not copy:
            check.warn(f"{source} already has that name; nothing to do")
        else:
            check.conflict("Source and destination are the same")
        return
    if not source_state.exists:
        check.conflict(f"Source {source} does not exist")
        return
    if copy and source_state.is_directory:
        check.conflict(f"{source} is a directory; only files can be copied")
        return
    if _is_within(destination, source):
        check.conflict(f"Cannot move {source} into itself")
        return
    if destination_state.exists:
        if not overwrite:
            check.conflict(f"Destination {destination} already exists")
            return
        if destination_state.is_directory:
            check.conflict(f"Destination {destination} is a directory and cannot be replaced")
            return
        check.warn(f"{destination} will be overwritten")
    else:
        _missing_parent_warning(snap, destination, check)

    if copy:
        if destination_state.exists:
            snap.remove(destination)
        snap.ensure_parents(destination)
        snap.put(destination, source_state)
    else:
        snap.relocate(source, destination)


def _sim_read(
    intent: ReadFileIntent | ListDirectoryIntent, key: str, snap: _Snapshot, check: _Check
) -> ImpactType:
    state = snap.get(key)
    if not state.exists:
        check.conflict(f"{key} does not exist")
    elif isinstance(intent, ReadFileIntent) and state.is_directory:
        check.conflict(f"{key} is a directory")
    elif isinstance(intent, ListDirectoryIntent) and not state.is_directory:
        check.conflict(f"{key} is not a directory")
    return ImpactType.READ


SimulateFn = Callable[..., ImpactType]

_SINGLE_PATH: dict[type[IntentBase], SimulateFn] = {
    CreateFileIntent: _sim_create_file,
    CreateDirectoryIntent: _sim_create_directory,
    WriteFileIntent: _sim_write_file,
    ModifyFileIntent: _sim_edit_file,
    TruncateFileIntent: _sim_edit_file,
    DeleteFileIntent: _sim_delete_file,
    DeleteDirectoryIntent: _sim_delete_directory,
    ReadFileIntent: _sim_read,
    ListDirectoryIntent: _sim_read,
}


def _check_key(raw: str, check: _Check, keys: KeyMap, allow_root: bool = False) -> str | None:
    resolved = keys.get(raw)
    if isinstance(resolved, PathRejectedError):
        check.conflict(str(resolved))
        return None
    key = resolved if resolved is not None else normalize_path(raw)
    if key is None:
        check.conflict(f"Path {raw} is outside the workspace")
        return None
    if key == ROOT and not allow_root:
        check.conflict("The workspace root itself cannot be modified")
        return None
    if is_protected_relative(key):
        check.conflict(f"Path {raw} is reserved for backups")
        return None
    return key


def _simulate_one(intent: IntentBase, snap: _Snapshot, keys: KeyMap) -> ImpactRecord:
    check = _Check()

    if isinstance(intent, CopyFileIntent | MoveFileIntent | RenameFileIntent):
        if isinstance(intent, RenameFileIntent):
            source = _check_key(intent.path, check, keys)
            renamed = _rename_target(intent, keys) if source is not None else None
            destination = _check_key(renamed, check, keys) if renamed is not None else None
            raw_destination = intent.new_name
            overwrite, copy = intent.overwrite, False
        else:
            source = _check_key(intent.source_path, check, keys)
            raw_destination = intent.destination_path
            destination = _check_key(raw_destination, check, keys)
            overwrite, copy = intent.overwrite, isinstance(intent, CopyFileIntent)
        before = snap.get(destination) if destination is not None else MISSING
        if source is not None and destination is not None:
            _sim_relocate(source, destination, overwrite, copy, snap, check)
        return ImpactRecord(
            target_path=destination or raw_destination,
            impact_type=ImpactType.MOVE,
            before_state=before,
            after_state=snap.get(destination) if destination is not None else MISSING,
            conflicts=tuple(check.conflicts),
            warnings=tuple(check.warnings),
            source_path=source,
        )

    simulate_fn = _SINGLE_PATH.get(type(intent))
    raw_path: str = getattr(intent, "path", ROOT)
    if simulate_fn is None:
        check.conflict(f"{intent.type} is not a filesystem operation and cannot be planned")
        return ImpactRecord(
            target_path=raw_path,
            impact_type=ImpactType.READ,
            before_state=MISSING,
            after_state=MISSING,
            conflicts=tuple(check.conflicts),
        )

    allow_root = isinstance(intent, ListDirectoryIntent)
    key = _check_key(raw_path, check, keys, allow_root=allow_root)
    if key is None:
        impact_type = ImpactType.READ if allow_root else ImpactType.MODIFY
        return ImpactRecord(
            target_path=raw_path,
            impact_type=impact_type,
            before_state=MISSING,
            after_state=MISSING,
            conflicts=tuple(check.conflicts),
        )

    before = snap.get(key)
    impact_type = simulate_fn(intent, key, snap, check)
    return ImpactRecord(
        target_path=key,
        impact_type=impact_type,
        before_state=before,
        after_state=snap.get(key),
        conflicts=tuple(check.conflicts),
        warnings=tuple(check.warnings),
    )


def _summarize(impacts: Iterable[ImpactRecord]) -> PlanSummary:
    counts = {impact_type: 0 for impact_type in ImpactType}
    for impact in impacts:
        counts[impact.impact_type] += 1
    return PlanSummary(
        creates=counts[ImpactType.CREATE],
        modifies=counts[ImpactType.MODIFY],
        deletes=counts[ImpactType.DELETE],
        moves=counts[ImpactType.MOVE],
        reads=counts[ImpactType.READ],
    )


def simulate(
    before: Mapping[str, FileState],
    intents: Sequence[IntentBase],
    keys: KeyMap | None = None,
) -> PlanAnalysis:
    """Simulate intents against a snapshot.

    Pure: depends only on its arguments and touches no filesystem.

    Args:
        before: State of every path the intents reference (missing keys are
            treated as absent).
        intents: Intents in execution order.
        keys: Pre-resolved keys for raw paths (see ``PlanSimulator.resolve_keys``);
            paths missing from it are normalized lexically.

    Returns:
        PlanAnalysis with per-intent impacts, aggregated counts, and every
        conflict and warning (per-intent ones prefixed with the intent's
        position).
    """
    known = keys or {}
    snap = _Snapshot(before)
    entries: list[PlanEntry] = []
    conflicts: list[str] = []
    warnings: list[str] = []
    by_target: dict[str, list[int]] = defaultdict(list)

    for index, intent in enumerate(intents, start=1):
        impact = _simulate_one(intent, snap, known)
        entries.append(PlanEntry(index=index, intent=intent, impact=impact))
        conflicts.extend(f"#{index} {intent.type}: {message}" for message in impact.conflicts)
        warnings.extend(f"#{index} {intent.type}: {message}" for message in impact.warnings)
        by_target[impact.target_path].append(index)

    for target, indices in by_target.items():
        if len(indices) > 1:
            steps = ", ".join(f"#{i} {intents[i - 1].type}" for i in indices)
            conflicts.append(
                f"{target} is targeted by {len(indices)} operations ({steps}); "
                "their combined effect depends on order"
            )

    return PlanAnalysis(
        entries=tuple(entries),
        summary=_summarize(entry.impact for entry in entries),
        conflicts=tuple(conflicts),
        warnings=tuple(warnings),
        before=dict(before),
        after=snap.as_dict(),
    )


class PlanSimulator:
    """Builds a fresh snapshot through a probe and simulates a plan on it.

    Attributes:
        sandbox: Resolves raw paths to keys the way execution will; None
            falls back to lexical normalization.
    """

    def __init__(self, probe: FilesystemProbe, sandbox: WorkspaceSandbox | None = None) -> None:
        self._probe = probe
        self.sandbox = sandbox

    def resolve_keys(self, intents: Sequence[IntentBase]) -> dict[str, str | PathRejectedError]:
        """Resolve every raw path the intents name through the sandbox."""
        if self.sandbox is None:
            return {}
        keys: dict[str, str | PathRejectedError] = {}
        for intent in intents:
            for raw in raw_paths(intent):
                if raw in keys:
                    continue
                try:
                    keys[raw] = self.sandbox.relative(self.sandbox.resolve(raw, allow_root=True))
                except PathRejectedError as e:
                    keys[raw] = e
        return keys

    def snapshot(
        self, intents: Sequence[IntentBase], keys: KeyMap | None = None
    ) -> dict[str, FileState]:
        """Stat every referenced path once."""
        paths = sorted(referenced_paths(intents, keys))
        return {key: self._probe.stat(key) for key in paths}

    def analyze(self, intents: Sequence[IntentBase]) -> PlanAnalysis:
        """Analyze a plan against the current filesystem.

        The snapshot is taken anew on every call; nothing is cached between
        previews.
        """
        keys = self.resolve_keys(intents)
        analysis = simulate(self.snapshot(intents, keys), intents, keys)
        logger.debug(
            "Analyzed %d intent(s): %d conflict(s), %d warning(s)",
            len(intents),
            len(analysis.conflicts),
            len(analysis.warnings),
        )
        return analysis
