"""Shared Rich display functions for outcomes, history and plans.

Provides reusable table builders and printers used by the one-shot
commands and the interactive shell.
"""

from rich.markup import escape
from rich.table import Table

from fsagent.execution.gate import RollbackOutcome
from fsagent.models.backup import BackupSession
from fsagent.models.outcome import CommandOutcome
from fsagent.models.plan import ImpactType, PlanAnalysis, PlanRun
from fsagent.models.undo import UndoResult, UndoStatistics
from fsagent.utils.formatting import (
    console,
    print_error,
    print_hint,
    print_info,
    print_success,
    print_warning,
)

IMPACT_LABELS: dict[ImpactType, str] = {
    ImpactType.CREATE: "[impact.create]+create[/]",
    ImpactType.MODIFY: "[impact.modify]~modify[/]",
    ImpactType.DELETE: "[impact.delete]-delete[/]",
    ImpactType.MOVE: "[impact.move]>move[/]",
    ImpactType.READ: "[impact.read]read[/]",
}


def format_size(size_bytes: int) -> str:
    """Format a byte count for tables (e.g. ``1.5 KB``)."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def print_outcome(outcome: CommandOutcome) -> None:
    """Print the result of one command.

    Output text (file content, listings) is printed verbatim after the
    status line; failures carry their recovery suggestions.

    Args:
        outcome: The dispatched command's outcome.
    """
    for warning in outcome.warnings:
        print_warning(warning)

    if outcome.undo_results:
        print_undo_results(list(outcome.undo_results))

    if outcome.success:
        print_success(outcome.message)
        if outcome.output:
            console.print(escape(outcome.output), highlight=False)
        return

    if outcome.cancelled:
        print_info(outcome.message)
        return
    if outcome.error_kind is None:
        # Nothing happened but nothing went wrong either (e.g. empty history)
        print_info(outcome.message)
        return
    print_error(outcome.message)
    for suggestion in outcome.suggestions:
        print_hint(suggestion)


def print_undo_results(results: list[UndoResult]) -> None:
    """Print one line per attempted reversal."""
    for result in results:
        if result.empty_history:
            continue
        if result.success:
            console.print(f"  [success]undone[/] {escape(result.message)}")
        else:
            console.print(f"  [error]failed[/] {escape(result.message)}")


def print_history(lines: list[str]) -> None:
    if not lines:
        print_info("No operations recorded yet.")
        return
    console.print("[bold_header]Recent operations (newest first)[/]")
    for line in lines:
        console.print(f"  {escape(line)}")


def print_statistics(stats: UndoStatistics) -> None:
    table = Table(show_header=False, border_style="border")
    table.add_column("Metric", style="muted")
    table.add_column("Value")
    table.add_row("Operations recorded", str(stats.total_operations))
    table.add_row("Undoable", str(stats.undoable_operations))
    table.add_row("Last operation", stats.last_operation_time or "-")
    console.print(table)


def create_plan_table(analysis: PlanAnalysis) -> Table:
    """Create a Rich table of queued intents and their impact.

    Args:
        analysis: Plan analysis to display.

    Returns:
        Rich Table with one row per queued intent.
    """
    table = Table(
        title="Plan Preview",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("#", justify="right", width=3)
    table.add_column("Impact", width=8)
    table.add_column("Target", style="path", no_wrap=True)
    table.add_column("Before", style="muted")
    table.add_column("After", style="muted")
    table.add_column("Notes")

    for entry in analysis.entries:
        impact = entry.impact
        target = impact.target_path
        if impact.source_path:
            target = f"{impact.source_path} -> {target}"
        notes = [f"[error]{escape(conflict)}[/]" for conflict in impact.conflicts]
        notes += [f"[warning]{escape(warning)}[/]" for warning in impact.warnings]
        table.add_row(
            str(entry.index),
            IMPACT_LABELS[impact.impact_type],
            escape(target),
            impact.before_state.describe(),
            impact.after_state.describe(),
            "\n".join(notes),
        )
    return table


def print_plan_analysis(analysis: PlanAnalysis) -> None:
    """Print a plan preview with its summary and cross-intent conflicts."""
    if analysis.is_empty:
        print_info("The plan is empty.")
        return

    console.print(create_plan_table(analysis))

    summary = analysis.summary
    parts = [
        f"{count} {label}"
        for count, label in (
            (summary.creates, "create"),
            (summary.modifies, "modify"),
            (summary.deletes, "delete"),
            (summary.moves, "move"),
            (summary.reads, "read"),
        )
        if count
    ]
    console.print(f"\nSummary: {', '.join(parts)}")

    if analysis.has_conflicts:
        console.print(f"\n[error]{len(analysis.conflicts)} conflict(s):[/]")
        for conflict in analysis.conflicts:
            console.print(f"  [error]-[/] {escape(conflict)}")
        print_hint("Fix the plan or run it anyway with 'go --force'")
    elif analysis.warnings:
        console.print(f"\n[warning]{len(analysis.warnings)} warning(s)[/]")


def print_plan_run(run: PlanRun) -> None:
    """Print the result of executing a plan."""
    if run.refused:
        for conflict in run.analysis.conflicts:
            console.print(f"  [error]-[/] {escape(conflict)}")
        print_error("Plan not executed because of conflicts; nothing was changed.")
        print_hint("Run it anyway with --force")
        return

    for index, outcome in enumerate(run.outcomes, start=1):
        console.print(f"[muted]{index}.[/]", end=" ")
        print_outcome(outcome)

    if run.success:
        print_success(f"Plan complete: {run.executed} operation(s) executed.")
    else:
        print_error(
            f"Plan stopped after {run.executed} operation(s); "
            f"{run.remaining} remain queued."
        )


def print_rollback(outcome: RollbackOutcome) -> None:
    """Print what an interrupt did."""
    if not outcome.interrupted:
        return
    if outcome.results:
        print_undo_results(list(outcome.results))
    if outcome.results and not outcome.rolled_back:
        print_error(outcome.message)
    else:
        print_warning(outcome.message)


def create_backups_table(sessions: list[BackupSession]) -> Table:
    """Create a Rich table listing backup records by session."""
    table = Table(
        title="Backups",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Session", style="muted", no_wrap=True)
    table.add_column("Backup ID", no_wrap=True)
    table.add_column("Source", style="path")
    table.add_column("Kind", width=9)
    table.add_column("Size", justify="right")
    table.add_column("Created", style="muted")

    for session in sessions:
        for record in session.records:
            table.add_row(
                session.session_id,
                record.id,
                escape(record.source_path),
                record.kind.value,
                format_size(record.size_bytes),
                record.timestamp[:19].replace("T", " "),
            )
    return table
