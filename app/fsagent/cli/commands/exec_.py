"""Structured intent execution.

This module provides the `fsagent exec` command, which runs one intent
given as JSON without any translation.
"""

import asyncio
from typing import Annotated

import typer

from fsagent.cli.display import print_outcome, print_rollback
from fsagent.cli.interrupts import run_interruptible
from fsagent.cli.types import build_agent, confirm_prompt
from fsagent.core.errors import AgentError
from fsagent.models.intent import parse_intent
from fsagent.utils.formatting import print_error, print_hint

app = typer.Typer(
    name="exec",
    help="Execute one intent given as JSON.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def exec_intent(
    ctx: typer.Context,
    intent_json: Annotated[
        str,
        typer.Argument(metavar="JSON", help="Intent object, e.g. '{\"type\": \"help\"}'."),
    ],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompts."),
    ] = False,
) -> None:
    """Execute one intent given as JSON.

    Examples:
        fsagent exec '{"type": "create_file", "path": "a.txt", "content": "hi"}'
        fsagent exec '{"type": "list_directory", "detailed": true}'
    """
    if ctx.invoked_subcommand is not None:
        return

    try:
        intent = parse_intent(intent_json)
    except AgentError as e:
        print_error(e.message)
        for suggestion in e.suggestions:
            print_hint(suggestion)
        raise typer.Exit(code=1) from e

    agent = build_agent(ctx)
    confirm = None if yes else confirm_prompt
    outcome, rollbacks = asyncio.run(
        run_interruptible(agent, agent.execute_command(intent, confirm))
    )
    agent.shutdown()
    print_outcome(outcome)
    for rollback in rollbacks:
        print_rollback(rollback)
    if not outcome.success:
        raise typer.Exit(code=1)
