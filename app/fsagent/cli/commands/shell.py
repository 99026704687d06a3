"""Interactive session command.

This module provides the `fsagent shell` command, which starts a session
whose undo history lives in memory until the session ends.
"""

import asyncio

import typer

from fsagent.cli.display import format_size
from fsagent.cli.repl import AgentShell
from fsagent.cli.types import build_agent, build_translator, confirm_prompt
from fsagent.utils.formatting import console, print_info

app = typer.Typer(
    name="shell",
    help="Start an interactive session.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def shell(ctx: typer.Context) -> None:
    """Start an interactive session.

    Type commands in plain language; every change can be undone with
    'undo'. Type 'help' for session commands and 'exit' to leave.

    Examples:
        fsagent shell
        fsagent -w ~/scratch shell
    """
    if ctx.invoked_subcommand is not None:
        return

    agent = build_agent(ctx)
    translator = build_translator(agent.config)
    quiet = (ctx.obj or {}).get("quiet", False)

    if not quiet:
        console.print(f"[bold_header]fsagent[/] workspace [path]{agent.workspace}[/]")
        console.print("[muted]Type 'help' for commands, 'exit' to leave.[/]")

    with asyncio.Runner() as runner:
        session = AgentShell(agent, translator, runner, confirm=confirm_prompt)
        try:
            session.loop()
        finally:
            report = agent.shutdown()

    if report.deleted and not quiet:
        print_info(
            f"Pruned {len(report.deleted)} old backup(s), "
            f"freed {format_size(report.freed_bytes)}."
        )
