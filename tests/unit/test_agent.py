"""Unit tests for the FileAgent facade.

Tests for wiring, undo, plan execution and shutdown cleanup.
"""

import asyncio
from pathlib import Path

import pytest
from fsagent.agent import FileAgent
from fsagent.backup.store import scan_sessions
from fsagent.core.config import AgentConfig
from fsagent.core.errors import ErrorKind
from fsagent.models.intent import (
    CreateDirectoryIntent,
    CreateFileIntent,
    DeleteFileIntent,
    ModifyFileIntent,
)


class TestCreate:
    """Tests for FileAgent.create method."""

    def test_creates_workspace(self, tmp_path: Path) -> None:
        agent = FileAgent.create(AgentConfig(workspace=tmp_path / "new"))

        assert agent.workspace == (tmp_path / "new").resolve()
        assert agent.workspace.is_dir()

    def test_workspace_argument_overrides_config(self, tmp_path: Path) -> None:
        agent = FileAgent.create(AgentConfig(), workspace=tmp_path / "other")

        assert agent.workspace == (tmp_path / "other").resolve()

    def test_history_bound_from_config(self, workspace: Path) -> None:
        agent = FileAgent.create(AgentConfig(workspace=workspace, max_history=3))

        assert agent.ledger.max_size == 3

    def test_agents_are_independent(self, tmp_path: Path) -> None:
        """Two agents share no history or plan."""
        first = FileAgent.create(AgentConfig(workspace=tmp_path / "one"))
        second = FileAgent.create(AgentConfig(workspace=tmp_path / "two"))

        asyncio.run(first.execute_command(CreateDirectoryIntent(path="d")))
        first.add_to_plan(CreateDirectoryIntent(path="e"))

        assert len(first.ledger) == 1
        assert len(second.ledger) == 0
        assert second.plan.is_empty


class TestUndoOperations:
    """Tests for FileAgent.undo_operations method."""

    def test_undo_restores_content(self, agent: FileAgent, workspace: Path) -> None:
        (workspace / "a.txt").write_text("before")
        asyncio.run(
            agent.execute_command(ModifyFileIntent(path="a.txt", search="before", replace="after"))
        )

        results = asyncio.run(agent.undo_operations())

        assert [result.success for result in results] == [True]
        assert (workspace / "a.txt").read_text() == "before"

    def test_empty_history(self, agent: FileAgent) -> None:
        results = asyncio.run(agent.undo_operations(3))

        assert len(results) == 1
        assert results[0].empty_history

    def test_history_and_statistics(self, agent: FileAgent) -> None:
        asyncio.run(agent.execute_command(CreateDirectoryIntent(path="d")))

        assert agent.get_history_summary()[0].startswith("1. create_directory")
        assert agent.get_statistics().total_operations == 1
        assert agent.clear_history() == 1
        assert agent.get_statistics().total_operations == 0


class TestExecutePlan:
    """Tests for FileAgent.execute_plan method."""

    def test_runs_in_order(self, agent: FileAgent, workspace: Path) -> None:
        agent.add_to_plan(CreateDirectoryIntent(path="docs"))
        agent.add_to_plan(CreateFileIntent(path="docs/a.md", content="# A"))

        run = asyncio.run(agent.execute_plan())

        assert run.success
        assert run.executed == 2
        assert run.remaining == 0
        assert agent.plan.is_empty
        assert (workspace / "docs" / "a.md").read_text() == "# A"

    def test_refused_on_conflicts(self, agent: FileAgent, workspace: Path) -> None:
        agent.add_to_plan(CreateDirectoryIntent(path="docs"))
        agent.add_to_plan(DeleteFileIntent(path="missing.txt", confirm=False))

        run = asyncio.run(agent.execute_plan())

        assert run.refused
        assert not run.success
        assert run.outcomes == ()
        assert run.remaining == 2
        assert not (workspace / "docs").exists()

    def test_force_stops_at_first_failure(self, agent: FileAgent, workspace: Path) -> None:
        """Executed intents leave the queue; the failed one and later stay."""
        agent.add_to_plan(CreateDirectoryIntent(path="docs"))
        agent.add_to_plan(DeleteFileIntent(path="missing.txt", confirm=False))
        agent.add_to_plan(CreateDirectoryIntent(path="later"))

        run = asyncio.run(agent.execute_plan(force=True))

        assert not run.success
        assert run.executed == 1
        assert run.failed is not None
        assert run.failed.error_kind == ErrorKind.NOT_FOUND
        assert run.remaining == 2
        assert [intent.type for intent in agent.plan.items()] == ["delete_file", "create_directory"]
        assert (workspace / "docs").is_dir()
        assert not (workspace / "later").exists()

    def test_plan_steps_are_undoable(self, agent: FileAgent, workspace: Path) -> None:
        agent.add_to_plan(CreateDirectoryIntent(path="docs"))
        agent.add_to_plan(CreateFileIntent(path="docs/a.md"))
        asyncio.run(agent.execute_plan())

        results = asyncio.run(agent.undo_operations(2))

        assert all(result.success for result in results)
        assert not (workspace / "docs").exists()

    def test_analyze_does_not_touch_disk(self, agent: FileAgent, workspace: Path) -> None:
        agent.add_to_plan(CreateFileIntent(path="a.txt"))

        analysis = agent.analyze_plan()

        assert analysis.summary.creates == 1
        assert not (workspace / "a.txt").exists()
        assert agent.clear_plan() == 1


class TestShutdown:
    """Tests for FileAgent.shutdown method."""

    def test_keeps_recent_backups(self, agent: FileAgent, workspace: Path) -> None:
        (workspace / "a.txt").write_text("before")
        asyncio.run(agent.execute_command(ModifyFileIntent(path="a.txt", search="b", replace="B")))

        report = agent.shutdown()

        assert report.deleted == ()
        assert len(report.kept) == 1

    def test_applies_retention_count(self, workspace: Path) -> None:
        agent = FileAgent.create(AgentConfig(workspace=workspace, backup_max_count=0))
        (workspace / "a.txt").write_text("before")
        asyncio.run(agent.execute_command(ModifyFileIntent(path="a.txt", search="b", replace="B")))

        report = agent.shutdown()

        assert len(report.deleted) == 1
        assert all(not session.records for session in scan_sessions(workspace))


@pytest.mark.parametrize("steps", [1, 2])
def test_interrupt_when_idle(agent: FileAgent, steps: int) -> None:
    """Interrupting an idle agent does nothing, however often."""
    for _ in range(steps):
        outcome = asyncio.run(agent.interrupt())
        assert not outcome.interrupted
