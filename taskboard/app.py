"""
Taskboard facade.

Wires config, storage, auth and the task store together for a UI layer.
Mutating helpers are gated on a valid session: without one they log a
warning and do nothing.

Usage:
    board = Taskboard(Config.load())
    await board.auth.signup("Ada", "ada@example.com", "hunter22")
    board.create_task({"title": "Write report", "priority": "high"})
    for entry in board.focus():
        print(entry.score, entry.task.title)
"""
import logging
import sys
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .config import Config
from .focus import FocusEntry, focus
from .schema import Task, utc_now
from .session import AuthManager
from .storage import MemoryStorage, PersistencePort, SqliteStorage
from .store import TaskStore

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Stdout handler on the root logger, level applied to the taskboard loggers."""
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # basicConfig does nothing once the root has handlers
    logging.getLogger("taskboard").setLevel(numeric)


def open_storage(path: str) -> PersistencePort:
    """":memory:" gives a throwaway in-process store; anything else is a SQLite file."""
    if path == ":memory:":
        return MemoryStorage()
    return SqliteStorage(path)


class Taskboard:
    """Single-user board: one storage, one auth manager, one task store."""

    def __init__(
        self,
        config: Optional[Config] = None,
        storage: Optional[PersistencePort] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or Config.load()
        setup_logging(self.config.log_level)
        self.clock = clock
        self.storage = storage or open_storage(self.config.storage_path)
        self.auth = AuthManager(
            self.storage,
            clock=clock,
            latency=self.config.network_latency,
            iterations=self.config.pbkdf2_iterations,
        )
        self.store = TaskStore(
            self.storage, clock=clock, seed_on_empty=self.config.seed_on_empty
        )

    def _authorized(self, action: str) -> bool:
        if self.auth.is_session_valid():
            return True
        logger.warning(f"Refusing to {action}: no valid session")
        return False

    def create_task(self, draft: Optional[Dict[str, Any]] = None) -> Optional[Task]:
        if not self._authorized("create task"):
            return None
        return self.store.create(draft)

    def update_task(self, task_id: str, patch: Dict[str, Any]) -> bool:
        if not self._authorized("update task"):
            return False
        self.store.update(task_id, patch)
        return True

    def move_task(self, task_id: str, status) -> bool:
        if not self._authorized("move task"):
            return False
        self.store.move(task_id, status)
        return True

    def delete_task(self, task_id: str) -> bool:
        if not self._authorized("delete task"):
            return False
        self.store.delete(task_id)
        return True

    def focus(self) -> List[FocusEntry]:
        """Current focus set, recomputed from the live task list."""
        return focus(self.store.tasks, self.clock())

    def sync(self) -> List[str]:
        """Pick up writes made by other processes (SQLite storage only)."""
        if isinstance(self.storage, SqliteStorage):
            return self.storage.poll_changes()
        return []
