"""One-shot natural-language command.

This module provides the `fsagent run` command, which translates a single
command, executes it and exits.
"""

import asyncio
from typing import Annotated

import typer

from fsagent.cli.display import print_outcome, print_rollback
from fsagent.cli.interrupts import run_interruptible
from fsagent.cli.types import build_agent, build_translator, confirm_prompt
from fsagent.core.config import ConfigError
from fsagent.core.errors import AgentError
from fsagent.utils.formatting import console, print_error, print_hint

app = typer.Typer(
    name="run",
    help="Translate and execute one command.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def run(
    ctx: typer.Context,
    words: Annotated[
        list[str],
        typer.Argument(help="The command, e.g. 'create a file notes.txt'."),
    ],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompts."),
    ] = False,
) -> None:
    """Translate and execute one command.

    The undo history of a one-shot command ends with the process; use
    'fsagent shell' to keep undo available across commands.

    Examples:
        fsagent run create a folder called drafts
        fsagent run "write 'hello' to notes.txt"
    """
    if ctx.invoked_subcommand is not None:
        return

    agent = build_agent(ctx)
    translator = build_translator(agent.config)
    try:
        intent = translator.translate(" ".join(words))
    except AgentError as e:
        print_error(e.message)
        for suggestion in e.suggestions:
            print_hint(suggestion)
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if intent.reasoning:
        console.print(f"[muted]{intent.describe()}: {intent.reasoning}[/]")

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
