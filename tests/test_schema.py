"""Tests for schema: enum decoding and dict serialization."""
from datetime import date, datetime, timezone

import pytest

from taskboard.errors import MalformedDataError, ValidationError
from taskboard.schema import (
    SessionToken,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
    User,
    to_utc,
)


class TestEnums:

    def test_status_parse_accepts_values_and_names(self):
        assert TaskStatus.parse("in-progress") == TaskStatus.IN_PROGRESS
        assert TaskStatus.parse("IN_PROGRESS") == TaskStatus.IN_PROGRESS
        assert TaskStatus.parse(TaskStatus.REVIEW) == TaskStatus.REVIEW

    def test_status_parse_strict(self):
        with pytest.raises(ValidationError):
            TaskStatus.parse("done")

    def test_from_str_tolerant(self):
        assert TaskStatus.from_str("done") == TaskStatus.TODO
        assert TaskPriority.from_str("critical") == TaskPriority.MEDIUM
        assert TaskPriority.from_str("URGENT") == TaskPriority.URGENT


class TestToUtc:

    def test_z_suffix(self):
        assert to_utc("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    def test_date_is_midnight_utc(self):
        assert to_utc(date(2024, 3, 1)) == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_empty(self):
        assert to_utc(None) is None
        assert to_utc("") is None


def test_task_serialization():
    task = Task(
        id="t1",
        title="Test task",
        status=TaskStatus.REVIEW,
        priority=TaskPriority.HIGH,
        due_date=datetime(2024, 3, 5, tzinfo=timezone.utc),
        tags=["dev", "urgent"],
        subtasks=[Subtask(id="s1", title="step", completed=True)],
    )
    data = task.to_dict()
    assert data["status"] == "review"
    assert data["priority"] == "high"
    assert data["tags"] == ["dev", "urgent"]

    restored = Task.from_dict(data)
    assert restored.status == task.status
    assert restored.due_date == task.due_date
    assert restored.subtasks[0].completed is True
    assert restored.open_subtasks == 0


def test_task_without_id_is_malformed():
    with pytest.raises(MalformedDataError):
        Task.from_dict({"title": "orphan"})


def test_user_clamps_negative_counters():
    user = User.from_dict({"email": "a@b.com", "points": -5, "streak": -1})
    assert user.points == 0 and user.streak == 0


def test_session_token_needs_expiry():
    with pytest.raises(MalformedDataError):
        SessionToken.from_dict({"token": "t", "expires": ""})
