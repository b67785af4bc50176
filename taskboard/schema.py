"""
Task, project, and account schema.

Task workflow:
  todo → in-progress → review → completed

Transitions are unrestricted: any status is reachable from any other.
Everything here round-trips through plain JSON dicts so the persistence
port never sees anything but strings, numbers, lists and dicts.
"""
from enum import Enum
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any

from .errors import MalformedDataError, ValidationError


def utc_now() -> datetime:
    """Timezone-aware current UTC time. Default clock for the whole package."""
    return datetime.now(timezone.utc)


def to_utc(value) -> Optional[datetime]:
    """Normalize a datetime, date, or ISO-8601 string to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        # fromisoformat only learned the trailing Z in 3.11
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        raise TypeError(f"Expected datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class TaskStatus(Enum):
    """Board columns."""
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    COMPLETED = "completed"

    @classmethod
    def from_str(cls, value: str) -> "TaskStatus":
        """Tolerant decode for persisted data: unknown values fall back to TODO."""
        try:
            return cls.parse(value)
        except ValidationError:
            return cls.TODO

    @classmethod
    def parse(cls, value) -> "TaskStatus":
        """Strict decode for caller input."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value).upper().replace("-", "_")]
        except KeyError:
            raise ValidationError(f"Unknown task status: {value!r}")


class TaskPriority(Enum):
    """Task urgency, lowest first."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_str(cls, value: str) -> "TaskPriority":
        try:
            return cls.parse(value)
        except ValidationError:
            return cls.MEDIUM

    @classmethod
    def parse(cls, value) -> "TaskPriority":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValidationError(f"Unknown task priority: {value!r}")


@dataclass
class Subtask:
    """Checklist item owned by exactly one Task."""
    id: str
    title: str
    completed: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subtask":
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            completed=bool(data.get("completed", False)),
            created_at=to_utc(data.get("created_at")) or utc_now(),
        )


@dataclass
class Comment:
    id: str
    content: str
    author: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "author": self.author,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        return cls(
            id=data.get("id", ""),
            content=data.get("content", ""),
            author=data.get("author", ""),
            created_at=to_utc(data.get("created_at")) or utc_now(),
            updated_at=to_utc(data.get("updated_at")),
        )


@dataclass
class Attachment:
    id: str
    name: str
    url: str = ""
    type: str = ""
    size: int = 0
    uploaded_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "type": self.type,
            "size": self.size,
            "uploaded_at": _iso(self.uploaded_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            url=data.get("url", ""),
            type=data.get("type", ""),
            size=int(data.get("size", 0)),
            uploaded_at=to_utc(data.get("uploaded_at")) or utc_now(),
        )


@dataclass
class Task:
    """A unit of work on the board."""

    id: str
    title: str = "New Task"
    description: str = ""

    # Workflow
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None

    # Ownership
    project_id: str = "default"
    created_by: str = "current-user"
    assigned_to: List[str] = field(default_factory=list)

    # Content
    tags: List[str] = field(default_factory=list)
    subtasks: List[Subtask] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)

    # Tracking
    completed_at: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None

    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def open_subtasks(self) -> int:
        """Number of subtasks not yet ticked off."""
        return sum(1 for st in self.subtasks if not st.completed)

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    @classmethod
    def coerce(cls, name: str, value: Any) -> Any:
        """
        Convert a caller-supplied field value to its stored type.

        Enum fields accept either the enum or its string value; datetime
        fields accept ISO strings and dates; nested lists accept dicts.
        Raises ValidationError for unknown enum values.
        """
        if name == "status":
            return TaskStatus.parse(value)
        if name == "priority":
            return TaskPriority.parse(value)
        if name in ("due_date", "completed_at", "created_at", "updated_at"):
            try:
                return to_utc(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid {name}: {value!r}")
        if name == "subtasks":
            return [v if isinstance(v, Subtask) else Subtask.from_dict(v) for v in value or []]
        if name == "comments":
            return [v if isinstance(v, Comment) else Comment.from_dict(v) for v in value or []]
        if name == "attachments":
            return [v if isinstance(v, Attachment) else Attachment.from_dict(v) for v in value or []]
        if name in ("tags", "assigned_to"):
            return list(value or [])
        return value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "due_date": _iso(self.due_date),
            "project_id": self.project_id,
            "created_by": self.created_by,
            "assigned_to": list(self.assigned_to),
            "tags": list(self.tags),
            "subtasks": [st.to_dict() for st in self.subtasks],
            "comments": [c.to_dict() for c in self.comments],
            "attachments": [a.to_dict() for a in self.attachments],
            "completed_at": _iso(self.completed_at),
            "estimated_hours": self.estimated_hours,
            "actual_hours": self.actual_hours,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize a persisted task. Raises MalformedDataError if unusable."""
        if not isinstance(data, dict) or not data.get("id"):
            raise MalformedDataError(f"Task entry without id: {data!r}")
        try:
            created_at = to_utc(data.get("created_at")) or utc_now()
            return cls(
                id=data["id"],
                title=data.get("title", "New Task"),
                description=data.get("description", ""),
                status=TaskStatus.from_str(data.get("status", "todo")),
                priority=TaskPriority.from_str(data.get("priority", "medium")),
                due_date=to_utc(data.get("due_date")),
                project_id=data.get("project_id", "default"),
                created_by=data.get("created_by", "current-user"),
                assigned_to=list(data.get("assigned_to") or []),
                tags=list(data.get("tags") or []),
                subtasks=[Subtask.from_dict(st) for st in data.get("subtasks") or []],
                comments=[Comment.from_dict(c) for c in data.get("comments") or []],
                attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
                completed_at=to_utc(data.get("completed_at")),
                estimated_hours=data.get("estimated_hours"),
                actual_hours=data.get("actual_hours"),
                created_at=created_at,
                updated_at=to_utc(data.get("updated_at")) or created_at,
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise MalformedDataError(f"Task {data.get('id')}: {e}")


@dataclass
class Project:
    """Grouping for tasks."""
    id: str
    name: str
    description: str = ""
    color: str = ""
    icon: str = ""
    owner_id: str = ""
    is_archived: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "owner_id": self.owner_id,
            "is_archived": self.is_archived,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        if not isinstance(data, dict) or not data.get("id"):
            raise MalformedDataError(f"Project entry without id: {data!r}")
        try:
            return cls(
                id=data["id"],
                name=data.get("name", ""),
                description=data.get("description", ""),
                color=data.get("color", ""),
                icon=data.get("icon", ""),
                owner_id=data.get("owner_id", ""),
                is_archived=bool(data.get("is_archived", False)),
                created_at=to_utc(data.get("created_at")) or utc_now(),
                updated_at=to_utc(data.get("updated_at")) or utc_now(),
            )
        except (TypeError, ValueError) as e:
            raise MalformedDataError(f"Project {data.get('id')}: {e}")


@dataclass
class User:
    """The single local account. hashed_password is a credential blob, never plaintext."""
    id: str
    name: str
    email: str
    points: int = 0
    streak: int = 0
    hashed_password: Optional[str] = None
    avatar: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "points": self.points,
            "streak": self.streak,
            "hashed_password": self.hashed_password,
            "avatar": self.avatar,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        if not isinstance(data, dict) or "email" not in data:
            raise MalformedDataError("Stored user is not a user record")
        try:
            return cls(
                id=data.get("id", ""),
                name=data.get("name", ""),
                email=data["email"],
                points=max(0, int(data.get("points", 0))),
                streak=max(0, int(data.get("streak", 0))),
                hashed_password=data.get("hashed_password"),
                avatar=data.get("avatar"),
            )
        except (TypeError, ValueError) as e:
            raise MalformedDataError(f"Stored user: {e}")


@dataclass
class SessionToken:
    """Opaque proof of a successful authentication, valid until `expires`."""
    token: str
    expires: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "expires": _iso(self.expires)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionToken":
        if not isinstance(data, dict):
            raise MalformedDataError("Stored session token is not a dict")
        try:
            token = cls(token=data["token"], expires=to_utc(data["expires"]))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedDataError(f"Stored session token: {e}")
        if token.expires is None:
            raise MalformedDataError("Stored session token has no expiry")
        return token
