"""
Task store with write-through persistence.

Holds the authoritative in-memory task and project lists and mirrors every
mutation to the persistence port before returning. Unknown ids are absorbed
as no-ops and invalid field values are logged and dropped, so no mutation
raises for bad input.
"""
import logging
import math
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import MalformedDataError, ValidationError
from .schema import Project, Task, TaskStatus, utc_now
from .seed import generate_mock_data
from .storage import PersistencePort

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
PROJECTS_KEY = "projects"

# Assigned by the store, never taken from a draft or patch
PROTECTED_FIELDS = {"id", "created_at", "updated_at"}

Seeder = Callable[[], Tuple[List[Task], List[Project]]]


class TaskStore:
    """Owns the task and project collections for the lifetime of the process."""

    def __init__(
        self,
        storage: PersistencePort,
        clock: Callable[[], datetime] = utc_now,
        seeder: Optional[Seeder] = None,
        seed_on_empty: bool = True,
    ):
        """Load persisted collections, seeding both if both are empty."""
        self.storage = storage
        self.clock = clock
        self._writing = False
        self._tasks: List[Task] = self._decode(storage.get(TASKS_KEY, []), Task)
        self._projects: List[Project] = self._decode(storage.get(PROJECTS_KEY, []), Project)

        if seed_on_empty and not self._tasks and not self._projects:
            seeder = seeder or (lambda: generate_mock_data(self.clock()))
            self._tasks, self._projects = seeder()
            self._persist(TASKS_KEY)
            self._persist(PROJECTS_KEY)
            logger.info(
                f"Seeded empty store with {len(self._tasks)} tasks "
                f"and {len(self._projects)} projects"
            )

        self._unsubscribe = storage.subscribe(self._on_storage_change)

    # ── Persistence ──

    @staticmethod
    def _decode(raw: Any, model) -> list:
        """Decode a persisted list, skipping unusable and duplicate entries."""
        if not isinstance(raw, list):
            logger.error(f"Expected a list of {model.__name__} entries, got {type(raw).__name__}")
            return []
        items, seen = [], set()
        for entry in raw:
            try:
                item = model.from_dict(entry)
            except MalformedDataError as e:
                logger.warning(f"Skipping stored {model.__name__}: {e}")
                continue
            if item.id in seen:
                logger.warning(f"Skipping duplicate {model.__name__} id {item.id}")
                continue
            seen.add(item.id)
            items.append(item)
        return items

    def _persist(self, key: str) -> None:
        items = self._tasks if key == TASKS_KEY else self._projects
        self._writing = True
        try:
            if not self.storage.set(key, [item.to_dict() for item in items]):
                logger.warning(f"Write-through of {key!r} failed, in-memory state kept")
        finally:
            self._writing = False

    def _on_storage_change(self, key: str, value: Any) -> None:
        """Adopt a value written elsewhere. Last write wins; nothing is merged."""
        if self._writing:
            return
        if key == TASKS_KEY:
            self._tasks = self._decode(value, Task)
        elif key == PROJECTS_KEY:
            self._projects = self._decode(value, Project)

    def close(self) -> None:
        self._unsubscribe()

    # ── Mutations ──

    @staticmethod
    def _coerce_fields(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        known = Task.field_names()
        result = {}
        for name, value in (values or {}).items():
            if name in PROTECTED_FIELDS or name not in known:
                logger.debug(f"Ignoring task field {name!r}")
                continue
            try:
                result[name] = Task.coerce(name, value)
            except (ValidationError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Dropping invalid task field {name!r}: {e}")
        return result

    def create(self, draft: Optional[Dict[str, Any]] = None) -> Task:
        """
        Create and persist a task.

        Field precedence: any Task field present in `draft` wins over the
        default (status todo, priority medium, project "default", empty
        lists). Identity and timestamps always come from the store.
        """
        now = self.clock()
        task = Task(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **self._coerce_fields(draft),
        )
        self._tasks.append(task)
        self._persist(TASKS_KEY)
        logger.info(f"Created task {task.id}: {task.title}")
        return task

    def update(self, task_id: str, patch: Dict[str, Any]) -> None:
        """Shallow-merge patch into the task and bump updated_at. Unknown id: no-op."""
        task = self.get(task_id)
        if task is None:
            logger.debug(f"Update of unknown task {task_id} ignored")
            return
        for name, value in self._coerce_fields(patch).items():
            setattr(task, name, value)
        task.updated_at = max(self.clock(), task.created_at)
        self._persist(TASKS_KEY)

    def delete(self, task_id: str) -> None:
        """Remove the task if present. Deleting twice is fine."""
        remaining = [t for t in self._tasks if t.id != task_id]
        if len(remaining) == len(self._tasks):
            return
        self._tasks = remaining
        self._persist(TASKS_KEY)
        logger.info(f"Deleted task {task_id}")

    def move(self, task_id: str, status) -> None:
        """Board transition. Any status may follow any other."""
        self.update(task_id, {"status": status})

    # ── Queries ──

    def get(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    @property
    def projects(self) -> List[Project]:
        return list(self._projects)

    def list_all(self) -> List[Task]:
        """All tasks in insertion order."""
        return list(self._tasks)

    def list_by_status(self, status) -> List[Task]:
        status = TaskStatus.parse(status)
        return [t for t in self._tasks if t.status == status]

    def list_by_project(self, project_id: str) -> List[Task]:
        return [t for t in self._tasks if t.project_id == project_id]

    def get_stats(self) -> Dict[str, Any]:
        """Dashboard numbers: totals, completion rate, and counts per status."""
        total = len(self._tasks)
        by_status = {s.value: 0 for s in TaskStatus}
        for task in self._tasks:
            by_status[task.status.value] += 1
        completed = by_status[TaskStatus.COMPLETED.value]
        return {
            "total": total,
            "completed": completed,
            "active": total - completed,
            # half-up, not banker's rounding
            "completion_rate": math.floor(completed / total * 100 + 0.5) if total else 0,
            "by_status": by_status,
            "projects": len(self._projects),
        }
