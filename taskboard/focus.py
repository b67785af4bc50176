# Taskboard: focus prioritization engine
#
# Scores every open task and returns the top three:
#
#   priority weight * 25      (low 1, medium 2, high 3, urgent 4)
#   + due-date bonus          (overdue 100, <=1 day 75, <=3 days 50, <=7 days 25)
#   + 10 per open subtask
#
# Ties keep input order. Nothing is cached: `now` and subtask state both
# move the result between calls.

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .schema import Task, TaskPriority, to_utc, utc_now

FOCUS_LIMIT = 3

PRIORITY_WEIGHTS = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}
PRIORITY_MULTIPLIER = 25

# (max days until due, bonus), checked in order after the overdue case
OVERDUE_BONUS = 100
DUE_BONUSES = [
    (1, 75),
    (3, 50),
    (7, 25),
]
OPEN_SUBTASK_BONUS = 10

_DAY = timedelta(days=1)


@dataclass
class FocusEntry:
    """A ranked task. Derived on every query, never stored."""
    task: Task
    score: int


def priority_weight(priority: TaskPriority) -> int:
    return PRIORITY_WEIGHTS[priority]


def days_until(due: datetime, now: datetime) -> int:
    """Whole days until due, rounded up. Negative once the due instant has passed."""
    return math.ceil((to_utc(due) - now) / _DAY)


def due_date_bonus(due: Optional[datetime], now: datetime) -> int:
    if due is None:
        return 0
    days = days_until(due, now)
    if days < 0:
        return OVERDUE_BONUS
    for max_days, bonus in DUE_BONUSES:
        if days <= max_days:
            return bonus
    return 0


def score_task(task: Task, now: datetime) -> int:
    score = priority_weight(task.priority) * PRIORITY_MULTIPLIER
    score += due_date_bonus(task.due_date, now)
    score += task.open_subtasks * OPEN_SUBTASK_BONUS
    return score


def focus(
    tasks: Iterable[Task],
    now: Optional[datetime] = None,
    limit: int = FOCUS_LIMIT,
) -> List[FocusEntry]:
    """
    Rank open tasks by score, highest first, and keep the top `limit`.

    Completed tasks never appear. sorted() is stable, so equal scores keep
    the order they had in `tasks`.
    """
    now = to_utc(now) if now else utc_now()
    entries = [
        FocusEntry(task=task, score=score_task(task, now))
        for task in tasks
        if not task.is_completed
    ]
    entries = sorted(entries, key=lambda e: e.score, reverse=True)
    return entries[:limit]
