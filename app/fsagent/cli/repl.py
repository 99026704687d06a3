"""Interactive agent session.

Reads commands line by line. Meta commands (undo, history, plan, ...) act
on the session directly; anything else goes through the translator and is
executed, or queued when the session is in dry-run mode.

Commands run on an asyncio.Runner owned by the session. While a command,
an undo or a plan is in flight, SIGINT is routed to the operation gate's
interrupt, which makes one rollback attempt; at the prompt, Ctrl+C ends
the session.
"""

import asyncio
import logging
import shlex
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from fsagent.agent import FileAgent
from fsagent.cli.display import (
    print_history,
    print_outcome,
    print_plan_analysis,
    print_plan_run,
    print_rollback,
    print_statistics,
    print_undo_results,
)
from fsagent.cli.interrupts import run_interruptible
from fsagent.core.config import ConfigError
from fsagent.core.errors import AgentError
from fsagent.execution.dispatcher import HELP_TEXT, ConfirmCallback
from fsagent.execution.gate import RollbackOutcome
from fsagent.models.intent import IntentBase
from fsagent.models.outcome import CommandOutcome
from fsagent.translator.base import IntentTranslator
from fsagent.utils.formatting import (
    console,
    print_error,
    print_hint,
    print_info,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionMode(str, Enum):
    """How the session treats translated commands.

    Attributes:
        NORMAL: Execute immediately.
        DRY_RUN: Queue into the plan instead of executing.
        DISCUSS: Ask before executing anything that changes files.
    """

    NORMAL = "normal"
    DRY_RUN = "dry-run"
    DISCUSS = "discuss"


META_HELP = """\
Session commands:
  help              show this help
  undo [n]          undo the last n operations (default 1)
  history           list recent operations; 'history clear' forgets them
  stats             show undo statistics
  plan              preview the queued plan; 'plan remove N' drops entry N
  go [--force]      execute the queued plan
  clear             empty the plan
  dry-run           toggle queuing commands instead of running them
  discuss           toggle asking before every change
  exit, quit        leave the session"""


class AgentShell:
    """Line-oriented session over one FileAgent.

    Attributes:
        agent: The agent commands run against.
        mode: Current session mode.
    """

    def __init__(
        self,
        agent: FileAgent,
        translator: IntentTranslator,
        runner: asyncio.Runner,
        confirm: ConfirmCallback,
        read_line: Callable[[str], str] = input,
    ) -> None:
        self.agent = agent
        self.mode = SessionMode.NORMAL
        self._translator = translator
        self._runner = runner
        self._confirm = confirm
        self._read_line = read_line
        self._meta: dict[str, Callable[[list[str]], bool]] = {
            "help": self._cmd_help,
            "undo": self._cmd_undo,
            "history": self._cmd_history,
            "stats": self._cmd_stats,
            "plan": self._cmd_plan,
            "go": self._cmd_go,
            "clear": self._cmd_clear,
            "dry-run": self._cmd_dry_run,
            "discuss": self._cmd_discuss,
            "exit": self._cmd_exit,
            "quit": self._cmd_exit,
        }

    @property
    def prompt(self) -> str:
        suffix = "" if self.mode == SessionMode.NORMAL else f" [{self.mode.value}]"
        return f"fsagent{suffix}> "

    def loop(self) -> None:
        """Read and handle lines until exit, EOF or Ctrl+C at the prompt."""
        while True:
            try:
                line = self._read_line(self.prompt)
            except (EOFError, KeyboardInterrupt):
                console.print()
                break
            if not self.handle_line(line):
                break

    def handle_line(self, line: str) -> bool:
        """Handle one input line.

        Returns:
            False when the session should end.
        """
        text = line.strip()
        if not text:
            return True

        try:
            words = shlex.split(text)
        except ValueError:
            words = text.split()
        handler = self._meta.get(words[0].lower()) if words else None
        if handler is not None:
            return handler(words[1:])

        self._handle_command(text)
        return True

    # -- translated commands -------------------------------------------------

    def _handle_command(self, text: str) -> None:
        try:
            intent = self._translator.translate(text)
        except AgentError as e:
            print_error(e.message)
            for suggestion in e.suggestions:
                print_hint(suggestion)
            return
        except ConfigError as e:
            print_error(str(e))
            return
        except KeyboardInterrupt:
            print_info("Cancelled.")
            return

        if intent.reasoning:
            console.print(f"[muted]{intent.describe()}: {intent.reasoning}[/]")

        if self.mode == SessionMode.DRY_RUN and intent.plannable:
            try:
                position = self.agent.add_to_plan(intent)
            except AgentError as e:
                print_error(e.message)
                return
            print_info(f"Queued as step {position}: {intent.describe()}")
            return

        if self.mode == SessionMode.DISCUSS and intent.mutating:
            if not self._confirm(f"Run {intent.describe()}?"):
                print_info("Skipped; nothing was changed.")
                return

        self.execute(intent)

    def execute(self, intent: IntentBase) -> CommandOutcome:
        """Run one intent with SIGINT routed to the gate's interrupt."""
        outcome, rollbacks = self._run(self.agent.execute_command(intent, self._confirm))
        print_outcome(outcome)
        self._print_rollbacks(rollbacks)
        return outcome

    def _run(self, operation: Awaitable[T]) -> tuple[T, list[RollbackOutcome]]:
        return self._runner.run(run_interruptible(self.agent, operation))

    def _print_rollbacks(self, rollbacks: list[RollbackOutcome]) -> None:
        for rollback in rollbacks:
            print_rollback(rollback)

    # -- meta commands -------------------------------------------------------

    def _cmd_help(self, args: list[str]) -> bool:
        console.print(META_HELP, highlight=False)
        console.print()
        console.print(HELP_TEXT, highlight=False)
        return True

    def _cmd_undo(self, args: list[str]) -> bool:
        steps = 1
        if args:
            try:
                steps = int(args[0])
            except ValueError:
                print_error(f"Not a number: {args[0]}")
                return True
            if steps < 1:
                print_error("Undo needs a positive number of steps")
                return True
        results, rollbacks = self._run(self.agent.undo_operations(steps))
        self._print_rollbacks(rollbacks)
        if len(results) == 1 and results[0].empty_history:
            print_info(results[0].message)
            return True
        print_undo_results(results)
        undone = sum(1 for result in results if result.success)
        if undone == len(results):
            print_success(f"Undid {undone} operation(s).")
        else:
            print_error(f"Undo stopped after {undone} of {steps} operation(s).")
        return True

    def _cmd_history(self, args: list[str]) -> bool:
        if args and args[0] == "clear":
            count = self.agent.clear_history()
            print_info(f"Forgot {count} operation(s); they can no longer be undone.")
            return True
        print_history(self.agent.get_history_summary())
        return True

    def _cmd_stats(self, args: list[str]) -> bool:
        print_statistics(self.agent.get_statistics())
        return True

    def _cmd_plan(self, args: list[str]) -> bool:
        if len(args) == 2 and args[0] == "remove":
            try:
                removed = self.agent.plan.remove(int(args[1]))
            except (ValueError, IndexError) as e:
                print_error(str(e))
                return True
            print_info(f"Removed {removed.describe()} from the plan.")
            return True
        print_plan_analysis(self.agent.analyze_plan())
        return True

    def _cmd_go(self, args: list[str]) -> bool:
        if self.agent.plan.is_empty:
            print_info("The plan is empty.")
            return True
        force = "--force" in args
        run, rollbacks = self._run(self.agent.execute_plan(force=force, confirm=self._confirm))
        print_plan_run(run)
        self._print_rollbacks(rollbacks)
        return True

    def _cmd_clear(self, args: list[str]) -> bool:
        count = self.agent.clear_plan()
        print_info(f"Removed {count} step(s) from the plan.")
        return True

    def _cmd_dry_run(self, args: list[str]) -> bool:
        self.mode = SessionMode.NORMAL if self.mode == SessionMode.DRY_RUN else SessionMode.DRY_RUN
        if self.mode == SessionMode.DRY_RUN:
            print_info("Dry-run mode: commands are queued. Use 'plan' to preview, 'go' to run.")
        else:
            print_info("Dry-run mode off: commands run immediately.")
            if not self.agent.plan.is_empty:
                print_warning(f"{len(self.agent.plan)} step(s) still queued; 'go' runs them.")
        return True

    def _cmd_discuss(self, args: list[str]) -> bool:
        self.mode = SessionMode.NORMAL if self.mode == SessionMode.DISCUSS else SessionMode.DISCUSS
        if self.mode == SessionMode.DISCUSS:
            print_info("Discuss mode: every change is confirmed first.")
        else:
            print_info("Discuss mode off.")
        return True

    def _cmd_exit(self, args: list[str]) -> bool:
        return False
