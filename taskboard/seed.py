"""
First-run dataset so a fresh board is not empty.

Due dates are relative to `now`, so the focus list shows a mix of overdue,
soon-due and relaxed work on first launch.
"""
import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from .schema import Project, Subtask, Task, TaskPriority, TaskStatus, utc_now


def _id() -> str:
    return str(uuid.uuid4())


def generate_mock_data(now: Optional[datetime] = None) -> Tuple[List[Task], List[Project]]:
    """Return (tasks, projects) for seeding an empty store."""
    now = now or utc_now()
    day = timedelta(days=1)

    projects = [
        Project(id="default", name="Personal", description="Everyday tasks",
                color="#3B82F6", icon="home", owner_id="current-user",
                created_at=now, updated_at=now),
        Project(id=_id(), name="Work", description="Day job",
                color="#10B981", icon="briefcase", owner_id="current-user",
                created_at=now, updated_at=now),
        Project(id=_id(), name="Learning", description="Courses and reading",
                color="#F59E0B", icon="book", owner_id="current-user",
                created_at=now, updated_at=now),
    ]
    personal, work, learning = (p.id for p in projects)

    def task(title, status, priority, project_id, due_in=None, tags=(), subtasks=()):
        return Task(
            id=_id(),
            title=title,
            description="",
            status=status,
            priority=priority,
            due_date=now + due_in * day if due_in is not None else None,
            project_id=project_id,
            tags=list(tags),
            subtasks=[Subtask(id=_id(), title=t, completed=done, created_at=now)
                      for t, done in subtasks],
            created_at=now,
            updated_at=now,
        )

    tasks = [
        task("Renew passport", TaskStatus.TODO, TaskPriority.HIGH, personal,
             due_in=-1, tags=["errands"]),
        task("Quarterly report", TaskStatus.IN_PROGRESS, TaskPriority.URGENT, work,
             due_in=2, tags=["reporting"],
             subtasks=[("Collect numbers", True), ("Draft summary", False),
                       ("Send for review", False)]),
        task("Review pull requests", TaskStatus.REVIEW, TaskPriority.MEDIUM, work,
             due_in=1, tags=["code"]),
        task("Plan team offsite", TaskStatus.TODO, TaskPriority.LOW, work,
             due_in=30),
        task("Finish statistics course module", TaskStatus.IN_PROGRESS,
             TaskPriority.MEDIUM, learning, due_in=6,
             subtasks=[("Watch lectures", True), ("Problem set", False)]),
        task("Grocery shopping", TaskStatus.COMPLETED, TaskPriority.LOW, personal,
             tags=["errands"]),
    ]
    return tasks, projects
