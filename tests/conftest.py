"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from fsagent.agent import FileAgent
from fsagent.backup.ledger import UndoLedger
from fsagent.backup.store import BackupStore
from fsagent.core.config import AgentConfig
from fsagent.execution.dispatcher import Dispatcher
from fsagent.execution.gate import OperationGate
from fsagent.filesystem.operations import FilesystemOperations
from fsagent.filesystem.sandbox import WorkspaceSandbox


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path):
    """Keep config lookups and the default workspace inside tmp_path."""
    env = {
        "XDG_CONFIG_HOME": str(tmp_path / "xdg-config"),
        "FSAGENT_WORKSPACE": str(tmp_path / "default-workspace"),
    }
    with patch.dict(os.environ, env):
        os.environ.pop("OPENAI_API_KEY", None)
        yield


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty, resolved workspace root."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def sandbox(workspace: Path) -> WorkspaceSandbox:
    return WorkspaceSandbox(workspace)


@pytest.fixture
def store(workspace: Path) -> BackupStore:
    return BackupStore(workspace, session_id="session-test")


@pytest.fixture
def ledger(store: BackupStore, sandbox: WorkspaceSandbox) -> UndoLedger:
    return UndoLedger(store, max_size=50, display=sandbox.display)


@pytest.fixture
def gate(ledger: UndoLedger) -> OperationGate:
    return OperationGate(ledger)


@pytest.fixture
def dispatcher(
    sandbox: WorkspaceSandbox, store: BackupStore, ledger: UndoLedger, gate: OperationGate
) -> Dispatcher:
    return Dispatcher(sandbox, FilesystemOperations(), store, ledger, gate)


@pytest.fixture
def agent(workspace: Path) -> FileAgent:
    """Agent over the workspace fixture with default settings."""
    return FileAgent.create(AgentConfig(workspace=workspace))
