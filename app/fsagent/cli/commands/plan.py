"""Plan preview and execution from a file.

This module provides the `fsagent plan` command, which analyzes a JSON
array of intents and optionally executes it.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from fsagent.cli.display import print_plan_analysis, print_plan_run, print_rollback
from fsagent.cli.interrupts import run_interruptible
from fsagent.cli.types import build_agent, confirm_prompt
from fsagent.core.errors import AgentError
from fsagent.models.intent import parse_intent_list
from fsagent.utils.formatting import print_error, print_hint, print_info

app = typer.Typer(
    name="plan",
    help="Preview (and optionally run) a plan file.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def plan(
    ctx: typer.Context,
    plan_file: Annotated[
        Path,
        typer.Argument(
            metavar="FILE",
            help="JSON file containing an array of intents.",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    execute: Annotated[
        bool,
        typer.Option("--execute", "-x", help="Run the plan after previewing it."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", help="Run even if conflicts were found."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompts."),
    ] = False,
) -> None:
    """Preview the combined effect of several intents.

    Nothing is written unless --execute is given. A plan with conflicts is
    only executed with --force.

    Examples:
        fsagent plan steps.json
        fsagent plan steps.json --execute
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        intents = parse_intent_list(plan_file.read_text(encoding="utf-8"))
    except OSError as e:
        print_error(f"Cannot read {plan_file}: {e}")
        raise typer.Exit(code=1) from e
    except AgentError as e:
        print_error(e.message)
        for suggestion in e.suggestions:
            print_hint(suggestion)
        raise typer.Exit(code=1) from e

    agent = build_agent(ctx)
    try:
        for intent in intents:
            agent.add_to_plan(intent)
    except AgentError as e:
        print_error(e.message)
        raise typer.Exit(code=1) from e

    analysis = agent.analyze_plan()
    print_plan_analysis(analysis)

    if not execute:
        if not analysis.is_empty:
            print_info("Preview only; run again with --execute to apply.")
        return

    confirm = None if yes else confirm_prompt
    run, rollbacks = asyncio.run(
        run_interruptible(agent, agent.execute_plan(force=force, confirm=confirm))
    )
    agent.shutdown()
    print_plan_run(run)
    for rollback in rollbacks:
        print_rollback(rollback)
    if not run.success:
        raise typer.Exit(code=1)
