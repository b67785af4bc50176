"""End-to-end tests for the Taskboard facade."""
import asyncio
import logging

import pytest

from taskboard.app import Taskboard, open_storage
from taskboard.config import Config
from taskboard.schema import TaskStatus
from taskboard.storage import MemoryStorage, SqliteStorage


@pytest.fixture
def board(storage, clock):
    cfg = Config(storage_path=":memory:", network_latency=0, seed_on_empty=False)
    return Taskboard(cfg, storage=storage, clock=clock)


def signed_up(board):
    result = asyncio.run(board.auth.signup("Ada", "ada@example.com", "secret123"))
    assert result.success
    return board


class TestTaskboard:

    def test_open_storage(self, tmp_path):
        assert isinstance(open_storage(":memory:"), MemoryStorage)
        assert isinstance(open_storage(str(tmp_path / "b.db")), SqliteStorage)

    def test_mutations_need_session(self, board):
        assert board.create_task({"title": "nope"}) is None
        assert board.store.list_all() == []
        assert board.update_task("x", {}) is False
        assert board.move_task("x", "review") is False
        assert board.delete_task("x") is False

    def test_workflow(self, board):
        signed_up(board)
        task = board.create_task({"title": "Write report", "priority": "urgent"})
        assert board.move_task(task.id, "in-progress")
        assert board.store.get(task.id).status == TaskStatus.IN_PROGRESS
        assert board.update_task(task.id, {"title": "Write the report"})
        assert [e.task.title for e in board.focus()] == ["Write the report"]
        assert board.delete_task(task.id)
        assert board.focus() == []

    def test_expired_session_blocks_mutations(self, board, clock):
        signed_up(board)
        clock.advance(hours=24, seconds=1)
        assert board.create_task({"title": "late"}) is None

    def test_logout_blocks_mutations(self, board):
        signed_up(board).auth.logout()
        assert board.create_task({}) is None

    def test_focus_excludes_completed(self, board):
        signed_up(board)
        done = board.create_task({"title": "done", "priority": "urgent"})
        board.move_task(done.id, "completed")
        board.create_task({"title": "open"})
        assert [e.task.title for e in board.focus()] == ["open"]

    def test_state_survives_restart(self, tmp_path, clock):
        cfg = Config(storage_path=str(tmp_path / "board.db"), network_latency=0,
                     seed_on_empty=False)
        first = signed_up(Taskboard(cfg, clock=clock))
        task = first.create_task({"title": "persisted"})

        second = Taskboard(cfg, clock=clock)
        assert second.auth.is_authenticated
        assert second.store.get(task.id).title == "persisted"

    def test_sync_picks_up_other_process(self, tmp_path, clock):
        cfg = Config(storage_path=str(tmp_path / "board.db"), network_latency=0,
                     seed_on_empty=False)
        ours = signed_up(Taskboard(cfg, clock=clock))
        theirs = Taskboard(cfg, clock=clock)
        task = theirs.create_task({"title": "from the other window"})

        assert ours.store.get(task.id) is None
        assert "tasks" in ours.sync()
        assert ours.store.get(task.id).title == "from the other window"

    def test_sync_memory_storage_is_noop(self, board):
        assert board.sync() == []

    def test_log_level_from_config(self, storage, clock):
        package_logger = logging.getLogger("taskboard")
        previous = package_logger.level
        try:
            cfg = Config(storage_path=":memory:", seed_on_empty=False, log_level="DEBUG")
            Taskboard(cfg, storage=storage, clock=clock)
            assert package_logger.getEffectiveLevel() == logging.DEBUG
            assert logging.getLogger("taskboard.store").isEnabledFor(logging.DEBUG)

            cfg.log_level = "warning"
            Taskboard(cfg, storage=MemoryStorage(), clock=clock)
            assert package_logger.getEffectiveLevel() == logging.WARNING
        finally:
            package_logger.setLevel(previous)
