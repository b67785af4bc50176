"""Tests for the focus prioritization engine."""
from datetime import datetime, timedelta, timezone

import pytest

from taskboard.focus import (
    FOCUS_LIMIT,
    days_until,
    due_date_bonus,
    focus,
    priority_weight,
    score_task,
)
from taskboard.schema import Subtask, Task, TaskPriority, TaskStatus

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_task(task_id, priority=TaskPriority.MEDIUM, status=TaskStatus.TODO,
              due=None, open_subtasks=0, done_subtasks=0):
    subtasks = [Subtask(id=f"{task_id}-o{i}", title="open") for i in range(open_subtasks)]
    subtasks += [Subtask(id=f"{task_id}-d{i}", title="done", completed=True)
                 for i in range(done_subtasks)]
    return Task(
        id=task_id,
        title=task_id,
        status=status,
        priority=priority,
        due_date=NOW + due if due is not None else None,
        subtasks=subtasks,
    )


class TestScoring:

    def test_priority_weights(self):
        assert priority_weight(TaskPriority.LOW) == 1
        assert priority_weight(TaskPriority.MEDIUM) == 2
        assert priority_weight(TaskPriority.HIGH) == 3
        assert priority_weight(TaskPriority.URGENT) == 4

    def test_no_due_date_no_bonus(self):
        assert due_date_bonus(None, NOW) == 0
        assert score_task(make_task("a", TaskPriority.HIGH), NOW) == 75

    @pytest.mark.parametrize("offset,bonus", [
        (timedelta(days=-1), 100),
        (timedelta(days=-1, seconds=-1), 100),
        (timedelta(hours=-12), 75),   # ceil(-0.5) is 0, not overdue yet
        (timedelta(0), 75),
        (timedelta(hours=23), 75),
        (timedelta(days=1), 75),
        (timedelta(days=1, seconds=1), 50),
        (timedelta(days=3), 50),
        (timedelta(days=3, hours=1), 25),
        (timedelta(days=7), 25),
        (timedelta(days=7, seconds=1), 0),
        (timedelta(days=30), 0),
    ])
    def test_due_date_bands(self, offset, bonus):
        assert due_date_bonus(NOW + offset, NOW) == bonus

    def test_days_until_rounds_up(self):
        assert days_until(NOW + timedelta(hours=1), NOW) == 1
        assert days_until(NOW + timedelta(days=2, hours=1), NOW) == 3
        assert days_until(NOW - timedelta(days=1, hours=1), NOW) == -1

    def test_naive_due_date_treated_as_utc(self):
        naive = (NOW + timedelta(days=2)).replace(tzinfo=None)
        assert due_date_bonus(naive, NOW) == 50

    def test_open_subtasks_add_ten_each(self):
        task = make_task("a", TaskPriority.LOW, open_subtasks=3, done_subtasks=2)
        assert score_task(task, NOW) == 25 + 30

    def test_combined_score(self):
        task = make_task("a", TaskPriority.URGENT, due=timedelta(days=-1), open_subtasks=1)
        assert score_task(task, NOW) == 100 + 100 + 10


class TestFocus:

    def test_overdue_urgent_beats_distant_low(self):
        urgent = make_task("urgent", TaskPriority.URGENT, due=timedelta(days=-1))
        low = make_task("low", TaskPriority.LOW, due=timedelta(days=30))
        ranked = focus([low, urgent], NOW)
        assert [e.task.id for e in ranked] == ["urgent", "low"]
        assert ranked[0].score > ranked[1].score

    def test_at_most_three(self):
        tasks = [make_task(str(i)) for i in range(10)]
        assert len(focus(tasks, NOW)) == FOCUS_LIMIT == 3

    def test_fewer_than_three(self):
        assert len(focus([make_task("a")], NOW)) == 1
        assert focus([], NOW) == []

    def test_completed_excluded(self):
        tasks = [
            make_task("done", TaskPriority.URGENT, status=TaskStatus.COMPLETED,
                      due=timedelta(days=-5)),
            make_task("open", TaskPriority.LOW),
        ]
        ranked = focus(tasks, NOW)
        assert [e.task.id for e in ranked] == ["open"]

    def test_all_completed(self):
        tasks = [make_task(str(i), status=TaskStatus.COMPLETED) for i in range(4)]
        assert focus(tasks, NOW) == []

    def test_ties_keep_input_order(self):
        tasks = [make_task(name) for name in ["c", "a", "d", "b"]]
        assert [e.task.id for e in focus(tasks, NOW)] == ["c", "a", "d"]

    def test_ties_below_higher_scores(self):
        tasks = [
            make_task("m1"),
            make_task("h", TaskPriority.HIGH),
            make_task("m2"),
        ]
        assert [e.task.id for e in focus(tasks, NOW)] == ["h", "m1", "m2"]

    def test_recomputed_when_time_moves(self):
        soon = make_task("soon", TaskPriority.LOW, due=timedelta(days=10))
        high = make_task("high", TaskPriority.HIGH)
        assert focus([high, soon], NOW)[0].task.id == "high"
        later = NOW + timedelta(days=10, hours=1)
        assert focus([high, soon], later)[0].task.id == "soon"

    def test_recomputed_when_subtasks_change(self):
        a = make_task("a", open_subtasks=1)
        b = make_task("b", open_subtasks=2)
        assert focus([a, b], NOW)[0].task.id == "b"
        for st in b.subtasks:
            st.completed = True
        assert focus([a, b], NOW)[0].task.id == "a"

    def test_does_not_mutate_input(self):
        tasks = [make_task(str(i), TaskPriority.LOW) for i in range(3)]
        tasks.append(make_task("u", TaskPriority.URGENT))
        ids_before = [t.id for t in tasks]
        focus(tasks, NOW)
        assert [t.id for t in tasks] == ids_before
