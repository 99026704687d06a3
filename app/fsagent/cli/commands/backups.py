"""Backup inspection and retention commands.

Backups of finished sessions stay on disk under the workspace's
.agent-backups directory. These commands read their metadata sidecars to
list them and apply the retention policy.
"""

import json
from typing import Annotated

import typer

from fsagent.backup.store import prune_sessions, scan_sessions
from fsagent.cli.display import create_backups_table, format_size
from fsagent.cli.types import get_config
from fsagent.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    help="Inspect and prune stored backups.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("list")
def list_backups(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """List backups of every session in the workspace."""
    config = get_config(ctx)
    sessions = scan_sessions(config.workspace_root)

    if json_output:
        data = [
            {
                "session_id": session.session_id,
                "records": [record.to_dict() for record in session.records],
                "unreadable": list(session.unreadable),
            }
            for session in sessions
        ]
        console.print_json(json.dumps(data))
        return

    total = sum(len(session.records) for session in sessions)
    if total == 0:
        print_info("No backups stored.")
    else:
        console.print(create_backups_table(sessions))
        size = sum(session.total_bytes for session in sessions)
        console.print(
            f"\n[dim]{total} backup(s) in {len(sessions)} session(s), {format_size(size)}[/dim]"
        )

    for session in sessions:
        for sidecar in session.unreadable:
            print_warning(f"Unreadable backup metadata: {sidecar}")


@app.command()
def prune(
    ctx: typer.Context,
    max_age: Annotated[
        float | None,
        typer.Option("--max-age", help="Maximum age in hours (default from config)."),
    ] = None,
    max_count: Annotated[
        int | None,
        typer.Option("--max-count", help="Backups to keep (default from config)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
) -> None:
    """Delete backups that are too old or beyond the retained count."""
    config = get_config(ctx)
    age = max_age if max_age is not None else config.backup_retention_hours
    count = max_count if max_count is not None else config.backup_max_count

    report = prune_sessions(config.workspace_root, age, count, dry_run=dry_run)

    if not report.deleted:
        print_info("Nothing to prune.")
    elif dry_run:
        print_info(
            f"[dry-run] Would delete {len(report.deleted)} backup(s) "
            f"({format_size(report.freed_bytes)}); {len(report.kept)} kept."
        )
        for record in report.deleted:
            console.print(f"  [muted]-[/] {record.id} ({record.source_path})")
    else:
        print_success(
            f"Deleted {len(report.deleted)} backup(s), freed {format_size(report.freed_bytes)}; "
            f"{len(report.kept)} kept."
        )

    for error in report.errors:
        print_warning(f"Could not delete {error}")
    if report.errors:
        raise typer.Exit(code=1)
