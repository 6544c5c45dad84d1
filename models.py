"""Data models for Visor."""

from dataclasses import dataclass, field, asdict, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from config import (
    INBOX_ID, INBOX_NAME, INBOX_COLOR, DEFAULT_SHOW_WELCOME, DEFAULT_TOGGLE_VISOR,
)


class TaskStatus(str, Enum):
    """Task lifecycle states, in cycle order."""
    TODO = "TODO"
    DOING = "DOING"
    DONE = "DONE"
    CANCELLED = "CANCELLED"
    WAITING = "WAITING"

    @property
    def is_completed(self) -> bool:
        return self in (TaskStatus.DONE, TaskStatus.CANCELLED)

    @property
    def icon(self) -> str:
        return STATUS_ICONS[self]

    def next(self) -> 'TaskStatus':
        """Return the following status in the fixed cycle."""
        index = STATUS_ORDER.index(self)
        return STATUS_ORDER[(index + 1) % len(STATUS_ORDER)]


STATUS_ORDER: List[TaskStatus] = [
    TaskStatus.TODO, TaskStatus.DOING, TaskStatus.DONE,
    TaskStatus.CANCELLED, TaskStatus.WAITING,
]

STATUS_ICONS: Dict[TaskStatus, str] = {
    TaskStatus.TODO: "○",
    TaskStatus.DOING: "◐",
    TaskStatus.DONE: "●",
    TaskStatus.CANCELLED: "✕",
    TaskStatus.WAITING: "◌",
}

RECURRENCE_TYPES = ("daily", "weekdays", "weekly", "monthly")


def new_id() -> str:
    return str(uuid.uuid4())


def dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def dt_from_value(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp.

    Accepts ISO strings and epoch milliseconds (older data files wrote
    JavaScript timestamps).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000)
    return datetime.fromisoformat(str(value))


def _pick(d: dict, key: str, legacy: str, default: Any = None) -> Any:
    """Read `key`, falling back to the camelCase name older files used."""
    if key in d:
        return d[key]
    return d.get(legacy, default)


@dataclass(frozen=True)
class Recurrence:
    """Rule describing repeating due dates."""

    type: str                           # daily | weekdays | weekly | monthly
    day_of_week: Optional[int] = None   # 0=Sun..6=Sat, weekly only

    def __post_init__(self):
        if self.type not in RECURRENCE_TYPES:
            raise ValueError(f"Unknown recurrence type: {self.type}")

    def to_dict(self) -> dict:
        return {"type": self.type, "day_of_week": self.day_of_week}

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> Optional['Recurrence']:
        if not d:
            return None
        return cls(type=d["type"], day_of_week=_pick(d, "day_of_week", "dayOfWeek"))


@dataclass
class Task:
    """A single task. `completed` is derived from `status`, never stored apart."""

    id: str
    content: str
    project_id: str
    status: TaskStatus = TaskStatus.TODO
    archived: bool = False
    parent_id: Optional[str] = None
    indent: int = 0
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    due_at: Optional[datetime] = None           # Deadline
    scheduled: Optional[datetime] = None        # Start hint
    notes: Optional[str] = None
    recurrence: Optional[Recurrence] = None

    def __post_init__(self):
        """Auto-generate ID and timestamp if not provided."""
        if not self.id:
            self.id = new_id()
        if self.created_at is None:
            self.created_at = datetime.now()

    @property
    def completed(self) -> bool:
        return self.status.is_completed

    def copy(self) -> 'Task':
        return replace(self)

    def to_dict(self) -> dict:
        """Convert Task to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "content": self.content,
            "status": self.status.value,
            "completed": self.completed,
            "archived": self.archived,
            "project_id": self.project_id,
            "parent_id": self.parent_id,
            "indent": self.indent,
            "created_at": dt_to_str(self.created_at),
            "completed_at": dt_to_str(self.completed_at),
            "due_at": dt_to_str(self.due_at),
            "scheduled": dt_to_str(self.scheduled),
            "notes": self.notes,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'Task':
        """Create Task from dictionary, deriving an unknown or missing status."""
        status = str(d.get("status") or "").upper()
        if status in TaskStatus.__members__:
            status = TaskStatus[status]
        else:
            status = TaskStatus.DONE if d.get("completed") else TaskStatus.TODO
        return cls(
            id=d["id"],
            content=d.get("content", ""),
            project_id=_pick(d, "project_id", "projectId", INBOX_ID),
            status=status,
            archived=bool(d.get("archived", False)),
            parent_id=_pick(d, "parent_id", "parentId"),
            indent=int(d.get("indent") or 0),
            created_at=dt_from_value(_pick(d, "created_at", "createdAt")),
            completed_at=dt_from_value(_pick(d, "completed_at", "completedAt")),
            due_at=dt_from_value(_pick(d, "due_at", "dueAt")),
            scheduled=dt_from_value(d.get("scheduled")),
            notes=d.get("notes"),
            recurrence=Recurrence.from_dict(d.get("recurrence")),
        )


@dataclass
class Project:
    """A named, ordered collection of tasks."""

    id: str
    name: str
    slug: str
    color: str
    task_order: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    is_inbox: bool = False

    def __post_init__(self):
        if not self.id:
            self.id = new_id()
        if self.created_at is None:
            self.created_at = datetime.now()

    def copy(self) -> 'Project':
        return replace(self, task_order=list(self.task_order))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "color": self.color,
            "task_order": list(self.task_order),
            "created_at": dt_to_str(self.created_at),
            "is_inbox": self.is_inbox,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'Project':
        return cls(
            id=d["id"],
            name=d.get("name") or d["slug"],
            slug=str(d["slug"]).lower(),
            color=d.get("color") or INBOX_COLOR,
            task_order=list(_pick(d, "task_order", "taskOrder", [])),
            created_at=dt_from_value(_pick(d, "created_at", "createdAt")),
            is_inbox=bool(_pick(d, "is_inbox", "isInbox", False)),
        )


def make_inbox() -> Project:
    return Project(id=INBOX_ID, name=INBOX_NAME, slug="inbox", color=INBOX_COLOR, is_inbox=True)


@dataclass(frozen=True)
class LogEntry:
    """Immutable journal record."""

    id: str
    content: str
    created_at: datetime
    project_id: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "created_at": dt_to_str(self.created_at),
            "project_id": self.project_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'LogEntry':
        return cls(
            id=d["id"],
            content=d["content"],
            created_at=dt_from_value(_pick(d, "created_at", "createdAt")) or datetime.now(),
            project_id=_pick(d, "project_id", "projectId", INBOX_ID),
        )


@dataclass(frozen=True)
class TemplateEntry:
    content: str
    indent: int = 0


@dataclass
class Template:
    """Saved list of task contents that can be re-applied to a project."""

    id: str
    name: str
    entries: List[TemplateEntry] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            self.id = new_id()
        if self.created_at is None:
            self.created_at = datetime.now()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "entries": [asdict(e) for e in self.entries],
            "created_at": dt_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'Template':
        raw_entries = d.get("entries", d.get("tasks", []))
        return cls(
            id=d["id"],
            name=d["name"],
            entries=[TemplateEntry(e["content"], int(e.get("indent") or 0)) for e in raw_entries],
            created_at=dt_from_value(_pick(d, "created_at", "createdAt")),
        )


@dataclass
class GeneralSettings:
    show_welcome: bool = DEFAULT_SHOW_WELCOME


@dataclass
class KeybindingSettings:
    toggle_visor: str = DEFAULT_TOGGLE_VISOR


@dataclass
class Settings:
    """Small flat configuration object persisted with the data."""

    general: GeneralSettings = field(default_factory=GeneralSettings)
    keybindings: KeybindingSettings = field(default_factory=KeybindingSettings)

    def merged(self, general: Optional[dict] = None, keybindings: Optional[dict] = None) -> 'Settings':
        """Return a copy with the given section fields replaced."""
        return Settings(
            general=replace(self.general, **_known(GeneralSettings, general)),
            keybindings=replace(self.keybindings, **_known(KeybindingSettings, keybindings)),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> 'Settings':
        if not d:
            return cls()
        general = dict(d.get("general") or {})
        if "showWelcome" in general:
            general.setdefault("show_welcome", general.pop("showWelcome"))
        keybindings = dict(d.get("keybindings") or {})
        if "toggleVisor" in keybindings:
            keybindings.setdefault("toggle_visor", keybindings.pop("toggleVisor"))
        return cls().merged(general, keybindings)


def _known(cls, values: Optional[dict]) -> dict:
    """Keep only the keys `cls` declares."""
    if not values:
        return {}
    names = cls.__dataclass_fields__.keys()
    return {k: v for k, v in values.items() if k in names}


@dataclass
class FocusTimer:
    """Running focus session; `remaining` is recomputed, never decremented."""

    minutes: int
    started_at: datetime
    remaining: int                  # Seconds
    task_id: Optional[str] = None
    finished: bool = False


@dataclass(frozen=True)
class Toast:
    message: str
    timestamp: datetime
