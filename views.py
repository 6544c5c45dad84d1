"""Navigation stack entries.

Each view is a frozen dataclass with a `type` tag. The set is closed:
`VIEW_TYPES` lists every variant, and code that dispatches on views ends its
isinstance chain with `unhandled_view` so a new variant fails loudly.
"""

from dataclasses import dataclass, fields
from typing import Dict, Optional, Type, Union


@dataclass(frozen=True)
class HomeView:
    type = "home"


@dataclass(frozen=True)
class AgendaView:
    type = "agenda"


@dataclass(frozen=True)
class ProjectView:
    project_id: str
    type = "project"


@dataclass(frozen=True)
class ThreadView:
    project_id: str
    parent_task_id: str
    type = "thread"


@dataclass(frozen=True)
class TemplatesView:
    type = "templates"


@dataclass(frozen=True)
class JournalView:
    project_id: str
    type = "journal"


@dataclass(frozen=True)
class HelpView:
    type = "help"


@dataclass(frozen=True)
class SearchView:
    query: str
    type = "search"


@dataclass(frozen=True)
class DetailView:
    task_id: str
    type = "detail"


@dataclass(frozen=True)
class ProjectSettingsView:
    project_id: str
    type = "project-settings"


ViewEntry = Union[
    HomeView, AgendaView, ProjectView, ThreadView, TemplatesView,
    JournalView, HelpView, SearchView, DetailView, ProjectSettingsView,
]

VIEW_TYPES: Dict[str, Type] = {
    cls.type: cls for cls in (
        HomeView, AgendaView, ProjectView, ThreadView, TemplatesView,
        JournalView, HelpView, SearchView, DetailView, ProjectSettingsView,
    )
}

# Older files wrote camelCase field names
_LEGACY_FIELDS = {
    "project_id": "projectId",
    "parent_task_id": "parentTaskId",
    "task_id": "taskId",
}


def unhandled_view(view) -> None:
    raise TypeError(f"Unhandled view entry: {view!r}")


def view_project_id(view: ViewEntry) -> Optional[str]:
    """Project a bare task or journal entry belongs to while this view is active."""
    if isinstance(view, (ProjectView, ThreadView, JournalView)):
        return view.project_id
    return None


def view_to_dict(view: ViewEntry) -> dict:
    d = {"type": view.type}
    for f in fields(view):
        d[f.name] = getattr(view, f.name)
    return d


def view_from_dict(d: dict) -> ViewEntry:
    """Build a view entry from its dictionary form.

    Raises:
        ValueError: Unknown type tag or a missing field.
    """
    cls = VIEW_TYPES.get(d.get("type")) if isinstance(d, dict) else None
    if cls is None:
        raise ValueError(f"Unknown view entry: {d!r}")
    kwargs = {}
    for f in fields(cls):
        value = d.get(f.name, d.get(_LEGACY_FIELDS.get(f.name, ""), None))
        if not isinstance(value, str) or not value:
            raise ValueError(f"View {cls.type} is missing {f.name}")
        kwargs[f.name] = value
    return cls(**kwargs)
