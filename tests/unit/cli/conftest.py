"""Fixtures for the command-line tests."""

import os
import signal
import time
from pathlib import Path

import pytest
from fsagent.agent import FileAgent
from fsagent.filesystem.operations import FilesystemOperations
from fsagent.models.outcome import OperationResult


class InterruptedOperations(FilesystemOperations):
    """Primitives that press Ctrl+C on their own process before creating a file.

    The primitive waits until the interrupt has reached the gate, so the
    rollback always happens at the post-commit checkpoint.
    """

    def __init__(self, agent: FileAgent) -> None:
        super().__init__()
        self._agent = agent

    def create_file(
        self, path: Path, content: str = "", overwrite: bool = False
    ) -> OperationResult:
        os.kill(os.getpid(), signal.SIGINT)
        deadline = time.monotonic() + 5
        while self._agent.gate.active is not None and time.monotonic() < deadline:
            time.sleep(0.01)
        return super().create_file(path, content, overwrite)


@pytest.fixture
def interrupted_agent(agent: FileAgent) -> FileAgent:
    """Agent whose file creation is interrupted by a real SIGINT."""
    agent.dispatcher._ops = InterruptedOperations(agent)  # pyright: ignore[reportPrivateUsage]
    return agent
