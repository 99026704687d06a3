"""SIGINT routing for agent coroutines.

While an agent coroutine runs on the event loop, SIGINT is routed to the
operation gate's interrupt instead of raising KeyboardInterrupt, so the
active operation gets its single rollback attempt and the session's undo
history survives. Used by the interactive shell and the one-shot commands.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable
from typing import TypeVar

from fsagent.agent import FileAgent
from fsagent.execution.gate import RollbackOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_interruptible(
    agent: FileAgent, operation: Awaitable[T]
) -> tuple[T, list[RollbackOutcome]]:
    """Await an agent operation with SIGINT routed to ``agent.interrupt()``.

    Args:
        agent: Agent whose gate receives the interrupt.
        operation: Coroutine to run (a command, an undo or a whole plan).

    Returns:
        The operation's result and the outcome of each interrupt that fired
        while it ran.
    """
    loop = asyncio.get_running_loop()
    interrupts: list[asyncio.Task[RollbackOutcome]] = []

    def on_sigint() -> None:
        # Interrupts while idle are no-ops, so repeats only matter once per step
        if interrupts and not interrupts[-1].done():
            return
        interrupts.append(loop.create_task(agent.interrupt()))

    installed = True
    try:
        loop.add_signal_handler(signal.SIGINT, on_sigint)
    except (NotImplementedError, RuntimeError, ValueError):
        # Not the main thread, or the platform has no loop signal support
        logger.debug("SIGINT routing unavailable; Ctrl+C will not roll back")
        installed = False
    try:
        result = await operation
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)
    rollbacks = [await task for task in interrupts]
    return result, [rollback for rollback in rollbacks if rollback.interrupted]
