"""Application state engine.

`VisorStore` owns the data model, the navigation stack, the undo history and
the transient UI state. Every public mutation runs synchronously and then
notifies subscribers; persistence and rendering hang off those callbacks.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from config import (
    BREADCRUMB_LABEL_MAX, DEFAULT_PROJECT_COLOR, INBOX_ID, MAX_INDENT,
    UPCOMING_LIMIT, USE_PROJECT_COLOR,
)
from commands import execute_command, filter_commands
from dates import format_due_token, format_recurrence_token
from models import (
    FocusTimer, LogEntry, Project, Settings, Task, TaskStatus, Template,
    TemplateEntry, Toast, make_inbox, new_id,
)
from navigation import ViewStack
from parser import InputKind, extract_content, parse_due_date, parse_input
from search import fuzzy_search_tasks
from undo import (
    CompletionToggled, ProjectCreated, ProjectDeleted, StatusChanged,
    TaskArchived, TaskCreated, TaskDeleted, TaskMoved, TemplateDeleted,
    TemplateSaved, UndoAction, UndoHistory,
)
from views import (
    AgendaView, DetailView, HelpView, HomeView, JournalView, ProjectSettingsView,
    ProjectView, SearchView, TemplatesView, ThreadView, ViewEntry,
    unhandled_view, view_from_dict, view_to_dict,
)


class _AnyParent:
    def __repr__(self):
        return "ANY_PARENT"


# Parent filter meaning "every task of the project, whatever its nesting"
ANY_PARENT = _AnyParent()


class InputPurpose(str, Enum):
    """What a submitted input line is for."""
    TASK = "task"
    COMMAND = "command"
    SEARCH = "search"
    JOURNAL = "journal"
    EDIT = "edit"
    NOTES = "notes"


@dataclass
class Agenda:
    doing: List[Task] = field(default_factory=list)
    overdue: List[Task] = field(default_factory=list)
    today: List[Task] = field(default_factory=list)
    this_week: List[Task] = field(default_factory=list)
    upcoming: List[Task] = field(default_factory=list)

    def all(self) -> List[Task]:
        """Every bucket concatenated in priority order."""
        return self.doing + self.overdue + self.today + self.this_week + self.upcoming


@dataclass
class ProjectStats:
    project: Project
    total: int
    pending: int
    completed: int
    progress: int   # 0-100


@dataclass
class ViewItem:
    """One selectable row of the current view."""
    kind: str       # task | project | template
    data: object


@dataclass
class Suggestion:
    label: str
    description: str
    accept: str     # Replacement text for the input line


Listener = Callable[[bool], None]


class VisorStore:
    """Single owner of Visor's state.

    Args:
        clock: Returns the current local time. Tests pass a fixed clock.
        id_factory: Returns fresh unique ids.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        self.clock = clock or datetime.now
        self._new_id = id_factory or new_id

        self.tasks: Dict[str, Task] = {}
        self.projects: Dict[str, Project] = {}
        self.log_entries: List[LogEntry] = []
        self.templates: List[Template] = []
        self.settings = Settings()
        self._reset_data()

        self.nav = ViewStack()
        self.history = UndoHistory()

        # Transient UI state, never persisted
        self.toast: Optional[Toast] = None
        self.focus: Optional[FocusTimer] = None
        self.settings_open = False
        self.is_visible = True
        self.input_visible = False
        self.input_purpose = InputPurpose.TASK
        self.input_prefill = ""
        self.editing_task_id: Optional[str] = None
        self.next_indent_level = 0
        self.save_warning: Optional[str] = None
        self.data_loaded = False

        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register `callback(persist)`; returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _changed(self, persist: bool = True) -> None:
        for callback in list(self._listeners):
            callback(persist)

    def now(self) -> datetime:
        return self.clock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def inbox_id(self) -> str:
        for project in self.projects.values():
            if project.is_inbox:
                return project.id
        return INBOX_ID

    def get_task(self, task_id: Optional[str]) -> Optional[Task]:
        if task_id is None:
            return None
        return self.tasks.get(task_id)

    def find_project(self, ref: Optional[str]) -> Optional[Project]:
        """Look a project up by id, then by slug (case-insensitive)."""
        if not ref:
            return None
        if ref in self.projects:
            return self.projects[ref]
        return self.find_project_by_slug(ref)

    def find_project_by_slug(self, slug: str) -> Optional[Project]:
        key = slug.strip().lower()
        for project in self.projects.values():
            if project.slug == key:
                return project
        return None

    def current_project_id(self) -> str:
        """Project context of the navigation stack; the inbox when none or gone."""
        project_id = self.nav.current_project_id(self.inbox_id)
        if project_id in self.projects:
            return project_id
        return self.inbox_id

    def effective_parent_id(self, task: Task) -> Optional[str]:
        """Parent id if it points at a live task in the same project, else None."""
        if not task.parent_id or task.parent_id == task.id:
            return None
        parent = self.tasks.get(task.parent_id)
        if parent is None or parent.archived or parent.project_id != task.project_id:
            return None
        return parent.id

    def get_project_tasks(self, project_id: str, parent_id=ANY_PARENT) -> List[Task]:
        """
        Non-archived tasks of a project in manual order.

        Args:
            project_id: Project to list.
            parent_id: None for top-level tasks, a task id for its children,
                ANY_PARENT for all of them.
        """
        project = self.projects.get(project_id)
        if project is None:
            return []
        result = []
        for task_id in project.task_order:
            task = self.tasks.get(task_id)
            if task is None or task.archived:
                continue
            if parent_id is ANY_PARENT or self.effective_parent_id(task) == parent_id:
                result.append(task)
        return result

    def child_count(self, task_id: str) -> int:
        task = self.tasks.get(task_id)
        if task is None:
            return 0
        return len(self.get_project_tasks(task.project_id, task_id))

    def has_children(self, task_id: str) -> bool:
        return self.child_count(task_id) > 0

    def get_agenda_tasks(self) -> Agenda:
        """Bucket every open task by urgency."""
        now = self.now()
        today_end = now.replace(hour=23, minute=59, second=59, microsecond=999999)
        week_end = today_end + timedelta(days=7)

        active = [t for t in self.tasks.values() if not t.archived and not t.completed]
        agenda = Agenda(doing=[t for t in active if t.status == TaskStatus.DOING])

        dated = sorted(
            (t for t in active if t.status != TaskStatus.DOING and t.due_at is not None),
            key=lambda t: t.due_at,
        )
        for task in dated:
            if task.due_at < now:
                agenda.overdue.append(task)
            elif task.due_at <= today_end:
                agenda.today.append(task)
            elif task.due_at <= week_end:
                agenda.this_week.append(task)
            else:
                agenda.upcoming.append(task)
        agenda.upcoming = agenda.upcoming[:UPCOMING_LIMIT]
        return agenda

    def project_list(self) -> List[Project]:
        """Inbox first, then alphabetical."""
        return sorted(self.projects.values(), key=lambda p: (not p.is_inbox, p.name.lower()))

    def get_project_stats(self) -> List[ProjectStats]:
        stats = []
        for project in self.project_list():
            tasks = [t for t in self.tasks.values() if t.project_id == project.id and not t.archived]
            completed = sum(1 for t in tasks if t.completed)
            total = len(tasks)
            progress = int(completed * 100 / total + 0.5) if total else 0
            stats.append(ProjectStats(project, total, total - completed, completed, progress))
        return stats

    def journal_entries(self, project_id: str) -> List[LogEntry]:
        """Journal of one project, newest first."""
        entries = [e for e in self.log_entries if e.project_id == project_id]
        return sorted(entries, key=lambda e: e.created_at, reverse=True)

    def find_template(self, name: str) -> Optional[Template]:
        key = name.strip().lower()
        for template in self.templates:
            if template.name.lower() == key:
                return template
        return None

    def active_tasks(self) -> List[Task]:
        return [t for t in self.tasks.values() if not t.archived]

    def view_items(self) -> List[ViewItem]:
        """Selectable rows of the current view, in display order."""
        view = self.nav.current()
        if isinstance(view, HomeView):
            agenda = self.get_agenda_tasks()
            items = [ViewItem("task", t) for t in agenda.doing + agenda.overdue + agenda.today]
            items.extend(ViewItem("project", p) for p in self.project_list())
            return items
        if isinstance(view, AgendaView):
            return [ViewItem("task", t) for t in self.get_agenda_tasks().all()]
        if isinstance(view, ProjectView):
            return [ViewItem("task", t) for t in self.get_project_tasks(view.project_id, None)]
        if isinstance(view, ThreadView):
            return [ViewItem("task", t)
                    for t in self.get_project_tasks(view.project_id, view.parent_task_id)]
        if isinstance(view, TemplatesView):
            return [ViewItem("template", t) for t in self.templates]
        if isinstance(view, SearchView):
            return [ViewItem("task", t) for t in fuzzy_search_tasks(self.active_tasks(), view.query)]
        if isinstance(view, (JournalView, HelpView, DetailView, ProjectSettingsView)):
            return []
        unhandled_view(view)

    def selected_item(self) -> Optional[ViewItem]:
        items = self.view_items()
        index = self.nav.selected_index
        if 0 <= index < len(items):
            return items[index]
        return None

    def breadcrumb(self) -> List[str]:
        """One label per stack entry, bottom first."""
        return [self._view_label(view) for view in self.nav.entries]

    def _view_label(self, view: ViewEntry) -> str:
        if isinstance(view, HomeView):
            return "~"
        if isinstance(view, AgendaView):
            return "agenda"
        if isinstance(view, ProjectView):
            project = self.projects.get(view.project_id)
            return project.slug if project else "?"
        if isinstance(view, ThreadView):
            task = self.tasks.get(view.parent_task_id)
            if task is None:
                return "?"
            if len(task.content) > BREADCRUMB_LABEL_MAX:
                return task.content[:BREADCRUMB_LABEL_MAX] + "…"
            return task.content
        if isinstance(view, TemplatesView):
            return "templates"
        if isinstance(view, JournalView):
            return "journal"
        if isinstance(view, HelpView):
            return "help"
        if isinstance(view, SearchView):
            return f'"{view.query}"'
        if isinstance(view, DetailView):
            return "detail"
        if isinstance(view, ProjectSettingsView):
            return "settings"
        unhandled_view(view)

    # ------------------------------------------------------------------
    # Primitive edits: no undo record, no notification
    # ------------------------------------------------------------------

    def put_task(self, task: Task) -> None:
        """Store a task; it keeps its existing place in its project's order."""
        self.tasks[task.id] = task
        project = self.projects.get(task.project_id)
        if project is not None and task.id not in project.task_order:
            project.task_order.append(task.id)

    def insert_task(self, task: Task, position: int) -> None:
        project = self.projects[task.project_id]
        if task.id in project.task_order:
            project.task_order.remove(task.id)
        position = max(0, min(position, len(project.task_order)))
        project.task_order.insert(position, task.id)
        self.tasks[task.id] = task

    def remove_task(self, task_id: str) -> Optional[Tuple[Task, int]]:
        """Drop a task from the map and its project's order."""
        task = self.tasks.pop(task_id, None)
        if task is None:
            return None
        position = -1
        project = self.projects.get(task.project_id)
        if project is not None and task_id in project.task_order:
            position = project.task_order.index(task_id)
            project.task_order.remove(task_id)
        return task, position

    def swap_task(self, task_id: str, direction: str) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        project = self.projects.get(task.project_id)
        if project is None or task_id not in project.task_order:
            return False
        order = project.task_order
        index = order.index(task_id)
        target = index - 1 if direction == "up" else index + 1
        if target < 0 or target >= len(order):
            return False
        order[index], order[target] = order[target], order[index]
        return True

    def set_task_status(self, task_id: str, status: TaskStatus,
                        completed_at: Optional[datetime]) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        task.status = status
        task.completed_at = completed_at
        return True

    def put_project(self, project: Project) -> None:
        self.projects[project.id] = project

    def remove_project(self, project_id: str) -> Optional[Project]:
        return self.projects.pop(project_id, None)

    def insert_template(self, template: Template, index: int) -> None:
        self.remove_template(template.id)
        index = max(0, min(index, len(self.templates)))
        self.templates.insert(index, template)

    def remove_template(self, template_id: str) -> Optional[Template]:
        for index, template in enumerate(self.templates):
            if template.id == template_id:
                return self.templates.pop(index)
        return None

    def _record(self, action: UndoAction) -> None:
        self.history.record(action)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(self, content: str, project_ref: Optional[str] = None,
                 indent: Optional[int] = None) -> Optional[Task]:
        """
        Create a task from raw content.

        Args:
            content: Task text, may carry !due / @scheduled / !every tokens.
            project_ref: Project id or slug. An unknown slug creates the project.
            indent: Nesting level; the pending indent level when omitted.

        Returns:
            The new task, or None when nothing was created.
        """
        now = self.now()
        parsed = parse_due_date(content, now)

        if indent is None:
            indent = self.next_indent_level
            self.next_indent_level = 0
        indent = max(0, int(indent))

        if not parsed.content:
            self.show_toast("Task is empty")
            return None

        created_project = None
        if project_ref:
            project = self.find_project(project_ref)
            if project is None:
                project = self._new_project(project_ref, DEFAULT_PROJECT_COLOR)
                created_project = project.copy()
        else:
            project = self.projects[self.current_project_id()]

        parent_id = self._resolve_parent(project, indent)
        if parent_id is not None:
            # Children typed in a thread sit one level below their anchor
            indent = max(indent, self.tasks[parent_id].indent + 1)
        task = Task(
            id=self._new_id(),
            content=parsed.content,
            project_id=project.id,
            indent=indent,
            parent_id=parent_id,
            created_at=now,
            due_at=parsed.due_at,
            scheduled=parsed.scheduled,
            recurrence=parsed.recurrence,
        )
        self.tasks[task.id] = task
        project.task_order.append(task.id)
        self._record(TaskCreated(task.copy(), len(project.task_order) - 1, created_project))

        if created_project is not None:
            self.show_toast(f'Created project "{project.name}"')
        self._changed()
        return task

    def _resolve_parent(self, project: Project, indent: int) -> Optional[str]:
        view = self.nav.current()
        if isinstance(view, ThreadView) and view.project_id == project.id:
            anchor = self.tasks.get(view.parent_task_id)
            if anchor is not None and not anchor.archived and anchor.project_id == project.id:
                return anchor.id
        if indent > 0:
            for task_id in reversed(project.task_order):
                candidate = self.tasks.get(task_id)
                if candidate is not None and not candidate.archived and candidate.indent == indent - 1:
                    return candidate.id
        return None

    def complete_task(self, task_id: str) -> None:
        """Toggle between DONE and TODO."""
        task = self.tasks.get(task_id)
        if task is None:
            return
        before = (task.status, task.completed_at)
        if task.completed:
            task.status, task.completed_at = TaskStatus.TODO, None
        else:
            task.status, task.completed_at = TaskStatus.DONE, self.now()
        self._record(CompletionToggled(task.id, task.content, *before, task.status, task.completed_at))
        self._changed()

    def cycle_task_status(self, task_id: str) -> None:
        task = self.tasks.get(task_id)
        if task is None:
            return
        before = (task.status, task.completed_at)
        self._apply_status(task, task.status.next())
        self._record(StatusChanged(task.id, task.content, *before, task.status, task.completed_at))
        self._changed()

    def _apply_status(self, task: Task, status: TaskStatus) -> None:
        task.status = status
        if status == TaskStatus.DONE:
            task.completed_at = self.now()

    def archive_task(self, task_id: str) -> None:
        task = self.tasks.get(task_id)
        if task is None or task.archived:
            return
        self._record(TaskArchived(task.copy()))
        task.archived = True
        self._changed()

    def delete_task(self, task_id: str) -> None:
        removed = self.remove_task(task_id)
        if removed is None:
            return
        task, position = removed
        self._record(TaskDeleted(task.copy(), position))
        self._changed()

    _UPDATABLE = frozenset({"content", "due_at", "scheduled", "notes", "status", "recurrence", "indent"})

    def update_task(self, task_id: str, **fields) -> None:
        """Patch task fields. Not recorded in the undo history."""
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise TypeError(f"update_task() got unexpected fields: {', '.join(sorted(unknown))}")
        task = self.tasks.get(task_id)
        if task is None:
            return
        if "status" in fields:
            self._apply_status(task, TaskStatus(fields.pop("status")))
        for name, value in fields.items():
            setattr(task, name, value)
        self._changed()

    def move_task_order(self, task_id: str, direction: str) -> None:
        if not self.swap_task(task_id, direction):
            return
        self._record(TaskMoved(task_id, self.tasks[task_id].content, direction))
        self._changed()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _new_project(self, slug: str, color: str, name: Optional[str] = None) -> Project:
        slug = slug.strip().lower()
        project = Project(
            id=self._new_id(),
            name=name or slug[:1].upper() + slug[1:],
            slug=slug,
            color=color,
            created_at=self.now(),
        )
        self.projects[project.id] = project
        return project

    def create_project(self, name: str, slug: str, color: str = USE_PROJECT_COLOR) -> Optional[Project]:
        slug = slug.strip().lower()
        if not slug:
            self.show_toast("Project needs a slug")
            return None
        if self.find_project_by_slug(slug) is not None:
            self.show_toast(f'Project "{slug}" already exists')
            return None
        project = self._new_project(slug, color, name=name.strip() or None)
        self._record(ProjectCreated(project.copy()))
        self._changed()
        return project

    def ensure_project(self, slug: str) -> Optional[Project]:
        """Find a project by slug, creating it when missing."""
        project = self.find_project_by_slug(slug)
        if project is not None:
            return project
        project = self.create_project("", slug)
        if project is not None:
            self.show_toast(f'Created project "{project.name}"')
        return project

    def delete_project(self, slug: str) -> bool:
        """Delete a project and all of its tasks."""
        project = self.find_project_by_slug(slug)
        if project is None:
            self.show_toast(f'Project "{slug}" not found')
            return False
        if project.is_inbox:
            self.show_toast("Cannot delete Inbox")
            return False

        removed = [t for t in self.tasks.values() if t.project_id == project.id]
        for task in removed:
            del self.tasks[task.id]
        del self.projects[project.id]
        self.nav.reset()

        self._record(ProjectDeleted(project.copy(), [t.copy() for t in removed]))
        self.show_toast(f'Deleted project "{project.name}"')
        self._changed()
        return True

    # ------------------------------------------------------------------
    # Journal and templates
    # ------------------------------------------------------------------

    def add_log_entry(self, content: str, project_id: Optional[str] = None) -> Optional[LogEntry]:
        """Append a journal entry to `project_id`, or the current project context."""
        content = content.strip()
        if not content:
            return None
        if project_id not in self.projects:
            project_id = self.current_project_id()
        entry = LogEntry(
            id=self._new_id(),
            content=content,
            created_at=self.now(),
            project_id=project_id,
        )
        self.log_entries.append(entry)
        self.show_toast("Logged")
        self._changed()
        return entry

    def save_template(self, name: str) -> Optional[Template]:
        name = name.strip()
        if not name:
            self.show_toast("Usage: template save <name>")
            return None
        tasks = self.get_project_tasks(self.current_project_id())
        if not tasks:
            self.show_toast("No tasks to save as template")
            return None

        template = Template(
            id=self._new_id(),
            name=name,
            entries=[TemplateEntry(t.content, t.indent) for t in tasks],
            created_at=self.now(),
        )
        self.templates.append(template)
        self._record(TemplateSaved(template, len(self.templates) - 1))
        self.show_toast(f'Template "{name}" saved ({len(tasks)} tasks)')
        self._changed()
        return template

    def apply_template(self, template_id: str) -> None:
        template = next((t for t in self.templates if t.id == template_id), None)
        if template is None:
            return
        project_id = self.current_project_id()
        for entry in template.entries:
            self.add_task(entry.content, project_id, indent=entry.indent)
        self.show_toast(f'Applied template "{template.name}"')

    def delete_template(self, template_id: str) -> None:
        for index, template in enumerate(self.templates):
            if template.id == template_id:
                del self.templates[index]
                self._record(TemplateDeleted(template, index))
                self.show_toast(f'Deleted template "{template.name}"')
                self._changed()
                return

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def push_view(self, view: ViewEntry) -> None:
        self.nav.push(view)
        self._changed()

    def pop_view(self) -> None:
        if self.nav.pop():
            self._changed()

    def go_home(self) -> None:
        self.nav.reset()
        self._changed()

    def truncate_view(self, length: int) -> None:
        self.nav.truncate(length)
        self._changed()

    def move_selection(self, delta: int) -> None:
        self.nav.move_selection(delta, len(self.view_items()))
        self._changed(persist=False)

    def search_tasks(self, query: str) -> None:
        query = query.strip()
        if not query:
            return
        self.push_view(SearchView(query))

    def navigate_to_task(self, task_id: str) -> None:
        """Rebuild the stack down to the task's thread and select it."""
        task = self.tasks.get(task_id)
        if task is None or task.project_id not in self.projects:
            return

        ancestors: List[str] = []
        seen = {task.id}
        current = self.effective_parent_id(task)
        while current is not None and current not in seen:
            ancestors.insert(0, current)
            seen.add(current)
            current = self.effective_parent_id(self.tasks[current])

        entries: List[ViewEntry] = [HomeView(), ProjectView(task.project_id)]
        entries.extend(ThreadView(task.project_id, a) for a in ancestors)
        self.nav.replace(entries)

        items = self.view_items()
        self.nav.selected_index = next(
            (i for i, item in enumerate(items) if item.kind == "task" and item.data.id == task_id), 0
        )
        self._changed()

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    def undo(self) -> None:
        message = self.history.undo(self)
        if message is None:
            return
        self.show_toast(message)
        self._changed()

    def redo(self) -> None:
        message = self.history.redo(self)
        if message is None:
            return
        self.show_toast(message)
        self._changed()

    # ------------------------------------------------------------------
    # Focus timer and toast
    # ------------------------------------------------------------------

    def start_focus(self, minutes: int, task_id: Optional[str] = None) -> None:
        minutes = max(1, int(minutes))
        self.focus = FocusTimer(minutes=minutes, started_at=self.now(),
                                remaining=minutes * 60, task_id=task_id)
        self.show_toast(f"Focus: {minutes} min")

    def stop_focus(self) -> None:
        if self.focus is None:
            return
        self.focus = None
        self.show_toast("Focus stopped")

    def tick_focus(self) -> None:
        """Recompute the remaining seconds from the start time."""
        focus = self.focus
        if focus is None:
            return
        elapsed = int((self.now() - focus.started_at).total_seconds())
        focus.remaining = max(0, focus.minutes * 60 - elapsed)
        if focus.remaining == 0 and not focus.finished:
            focus.finished = True
            self.show_toast("Focus session complete")
            return
        self._changed(persist=False)

    def show_toast(self, message: str) -> None:
        self.toast = Toast(message, self.now())
        self._changed(persist=False)

    def clear_toast(self, toast: Optional[Toast] = None) -> None:
        """Clear the toast. When `toast` is given, only if it is still showing."""
        if self.toast is None:
            return
        if toast is not None and self.toast is not toast:
            return
        self.toast = None
        self._changed(persist=False)

    def set_save_warning(self, message: Optional[str]) -> None:
        """Show or clear the persistent save-failure banner."""
        if message == self.save_warning:
            return
        self.save_warning = message
        if message:
            self.show_toast(message)
        else:
            self._changed(persist=False)

    # ------------------------------------------------------------------
    # Input overlay
    # ------------------------------------------------------------------

    def show_input(self, purpose: InputPurpose = InputPurpose.TASK, prefill: str = "") -> None:
        self.input_visible = True
        self.input_purpose = InputPurpose(purpose)
        self.input_prefill = prefill
        self._changed(persist=False)

    def hide_input(self) -> None:
        self.input_visible = False
        self.input_prefill = ""
        self.editing_task_id = None
        self.next_indent_level = 0
        self._changed(persist=False)

    def set_next_indent_level(self, level: int) -> None:
        self.next_indent_level = max(0, min(MAX_INDENT, int(level)))
        self._changed(persist=False)

    def start_edit(self, task_id: str) -> None:
        """Open the input prefilled with the task's content and date tokens."""
        task = self.tasks.get(task_id)
        if task is None:
            return
        parts = [task.content]
        if task.recurrence is not None:
            parts.append(format_recurrence_token(task.recurrence))
        if task.due_at is not None:
            parts.append(format_due_token(task.due_at, self.now()))
        self.editing_task_id = task.id
        self.next_indent_level = task.indent
        self.show_input(InputPurpose.EDIT, " ".join(parts))

    def start_notes(self, task_id: str) -> None:
        task = self.tasks.get(task_id)
        if task is None:
            return
        self.editing_task_id = task.id
        self.show_input(InputPurpose.NOTES, task.notes or "")

    def submit_input(self, text: str) -> None:
        """Route a submitted input line by purpose, then by classified intent."""
        if not text.strip():
            return

        editing = self.editing_task_id
        if self.input_purpose == InputPurpose.NOTES and editing:
            self.update_task(editing, notes=text.strip())
            self.hide_input()
            return

        if editing:
            parsed = parse_due_date(extract_content(text), self.now())
            if parsed.content:
                self.update_task(
                    editing,
                    content=parsed.content,
                    due_at=parsed.due_at,
                    scheduled=parsed.scheduled,
                    recurrence=parsed.recurrence,
                )
            self.hide_input()
            return

        mode = parse_input(text)
        if mode.text:
            if mode.kind == InputKind.TASK:
                self.add_task(mode.text, mode.target_project)
            elif mode.kind == InputKind.COMMAND:
                execute_command(self, mode.text)
            elif mode.kind == InputKind.SEARCH:
                self.search_tasks(mode.text)
            elif mode.kind == InputKind.LOG:
                self.add_log_entry(mode.text)
        self.hide_input()

    def suggestions(self, text: str) -> List[Suggestion]:
        """Completions for the input line as typed so far."""
        trimmed = text.strip()
        if not trimmed:
            return []

        mode = parse_input(trimmed)
        if mode.kind == InputKind.COMMAND:
            if not mode.text:
                return []
            return [Suggestion(cmd.name, cmd.description, f"> {cmd.name} ")
                    for cmd in filter_commands(mode.text)]

        if mode.kind != InputKind.TASK or mode.target_project or " " in trimmed:
            return []
        prefix = trimmed.lower()
        return [
            Suggestion(f"{p.slug}:", f"Add task to {p.name}", f"{p.slug}: ")
            for p in self.project_list()
            if p.slug.startswith(prefix) and p.slug != prefix
        ]

    # ------------------------------------------------------------------
    # Settings and visibility
    # ------------------------------------------------------------------

    def update_settings(self, general: Optional[dict] = None, keybindings: Optional[dict] = None) -> None:
        self.settings = self.settings.merged(general, keybindings)
        self._changed()

    def open_settings(self) -> None:
        self.settings_open = True
        self._changed(persist=False)

    def toggle_settings(self) -> None:
        self.settings_open = not self.settings_open
        self._changed(persist=False)

    def toggle_visibility(self) -> None:
        self.is_visible = not self.is_visible
        self._changed(persist=False)

    def hide(self) -> None:
        self.is_visible = False
        self._changed(persist=False)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def data_snapshot(self) -> dict:
        """Serializable form of the data collections."""
        return {
            "tasks": {t.id: t.to_dict() for t in self.tasks.values()},
            "projects": {p.id: p.to_dict() for p in self.projects.values()},
            "log_entries": [e.to_dict() for e in self.log_entries],
            "templates": [t.to_dict() for t in self.templates],
        }

    def to_snapshot(self) -> dict:
        """Everything written to the data file."""
        snapshot = self.data_snapshot()
        snapshot["settings"] = self.settings.to_dict()
        snapshot["view_stack"] = [view_to_dict(v) for v in self.nav.entries]
        return snapshot

    def _reset_data(self) -> None:
        inbox = make_inbox()
        self.tasks = {}
        self.projects = {inbox.id: inbox}
        self.log_entries = []
        self.templates = []
        self.settings = Settings()

    def load_snapshot(self, data: Optional[dict]) -> None:
        """Initial load: data, settings and the saved navigation stack."""
        if not data:
            self._reset_data()
            self.nav.reset()
        else:
            self._apply_data(data)
            self.settings = Settings.from_dict(data.get("settings"))
            raw_stack = data.get("view_stack", data.get("viewStack"))
            self.nav.replace(self._validated_stack(raw_stack))
        self.data_loaded = True
        self._changed(persist=False)

    def reload_data(self, data: Optional[dict]) -> None:
        """External change: replace data collections only."""
        if not data:
            return
        self._apply_data(data)
        self._changed(persist=False)

    def _apply_data(self, data: dict) -> None:
        projects, aliases = self._load_projects(data.get("projects"))
        inbox_id = next(p.id for p in projects.values() if p.is_inbox)
        tasks = self._load_tasks(data.get("tasks"), projects, aliases, inbox_id)

        for project in projects.values():
            seen = set()
            order = []
            for task_id in project.task_order:
                task = tasks.get(task_id)
                if task is not None and task.project_id == project.id and task_id not in seen:
                    order.append(task_id)
                    seen.add(task_id)
            project.task_order = order
        ordered = {tid for p in projects.values() for tid in p.task_order}
        for task in sorted(tasks.values(), key=lambda t: t.created_at):
            if task.id not in ordered:
                projects[task.project_id].task_order.append(task.id)

        self.projects = projects
        self.tasks = tasks
        self.log_entries = _load_records(
            data.get("log_entries", data.get("logEntries")), LogEntry.from_dict, "log entry")
        self.templates = _load_records(data.get("templates"), Template.from_dict, "template")

    def _load_projects(self, raw) -> Tuple[Dict[str, Project], Dict[str, str]]:
        """Parse projects, dropping duplicate slugs. Returns (projects, dropped id -> kept id)."""
        projects: Dict[str, Project] = {}
        aliases: Dict[str, str] = {}
        slug_owner: Dict[str, str] = {}
        for project in _load_records(_values(raw), Project.from_dict, "project"):
            owner = slug_owner.get(project.slug)
            if owner is not None:
                print(f"Warning: Dropping duplicate project slug '{project.slug}'")
                aliases[project.id] = owner
                continue
            if project.id in projects:
                continue
            slug_owner[project.slug] = project.id
            projects[project.id] = project

        inboxes = [p for p in projects.values() if p.is_inbox]
        if not inboxes:
            existing = projects.get(slug_owner.get("inbox", ""))
            if existing is not None:
                existing.is_inbox = True
            else:
                inbox = make_inbox()
                projects[inbox.id] = inbox
        for extra in inboxes[1:]:
            extra.is_inbox = False
        return projects, aliases

    def _load_tasks(self, raw, projects: Dict[str, Project], aliases: Dict[str, str],
                    inbox_id: str) -> Dict[str, Task]:
        tasks: Dict[str, Task] = {}
        for task in _load_records(_values(raw), Task.from_dict, "task"):
            task.project_id = aliases.get(task.project_id, task.project_id)
            if task.project_id not in projects:
                task.project_id = inbox_id
            tasks[task.id] = task
        return tasks

    def _validated_stack(self, raw) -> List[ViewEntry]:
        entries = []
        for item in raw or []:
            try:
                view = view_from_dict(item)
            except ValueError as e:
                print(f"Warning: Dropping saved view: {e}")
                continue
            if self._view_is_valid(view):
                entries.append(view)
        return entries

    def _view_is_valid(self, view: ViewEntry) -> bool:
        if isinstance(view, (ProjectView, JournalView, ProjectSettingsView)):
            return view.project_id in self.projects
        if isinstance(view, ThreadView):
            return view.project_id in self.projects and view.parent_task_id in self.tasks
        if isinstance(view, DetailView):
            return view.task_id in self.tasks
        if isinstance(view, (HomeView, AgendaView, TemplatesView, HelpView, SearchView)):
            return True
        unhandled_view(view)


def _values(raw) -> list:
    """Records stored either as an id-keyed object or as a list."""
    if isinstance(raw, dict):
        return list(raw.values())
    if isinstance(raw, list):
        return raw
    return []


def _load_records(raw, factory, label: str) -> list:
    records = []
    for item in raw or []:
        try:
            records.append(factory(item))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            print(f"Warning: Skipping malformed {label}: {e}")
    return records
