"""Undo/redo history over store mutations.

Every recorded action carries the snapshots it needs to apply both its
inverse and its forward effect. `undo` and `redo` return the toast text.
Actions go through the store's primitive edits, which neither record history
nor notify subscribers; the store does both around the call.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List, Optional

from config import UNDO_LIMIT
from models import Project, Task, TaskStatus, Template


def _gone(label: str) -> str:
    return f"Already gone: {label}"


class UndoAction:
    """A reversible mutation."""

    def undo(self, store) -> str:
        raise NotImplementedError

    def redo(self, store) -> str:
        raise NotImplementedError


@dataclass
class TaskCreated(UndoAction):
    task: Task
    position: int
    project: Optional[Project] = None  # Created on the fly for this task

    def undo(self, store) -> str:
        if store.remove_task(self.task.id) is None:
            return _gone(self.task.content)
        if self.project is not None:
            store.remove_project(self.project.id)
        return f"Removed: {self.task.content}"

    def redo(self, store) -> str:
        if self.project is not None and self.project.id not in store.projects:
            store.put_project(self.project.copy())
        if self.task.project_id not in store.projects:
            return _gone(self.task.content)
        store.insert_task(self.task.copy(), self.position)
        return f"Redone: {self.task.content}"


@dataclass
class _StatusEdit(UndoAction):
    task_id: str
    content: str
    before_status: TaskStatus
    before_completed_at: Optional[datetime]
    after_status: TaskStatus
    after_completed_at: Optional[datetime]

    def undo(self, store) -> str:
        if not store.set_task_status(self.task_id, self.before_status, self.before_completed_at):
            return _gone(self.content)
        return f"Status reverted: {self.content}"

    def redo(self, store) -> str:
        if not store.set_task_status(self.task_id, self.after_status, self.after_completed_at):
            return _gone(self.content)
        return f"Redone: {self.content}"


@dataclass
class StatusChanged(_StatusEdit):
    """Status advanced one step in the cycle."""


@dataclass
class CompletionToggled(_StatusEdit):
    """Completion flipped between DONE and TODO."""

    @property
    def previous_completed(self) -> bool:
        return self.before_status.is_completed

    def undo(self, store) -> str:
        if not store.set_task_status(self.task_id, self.before_status, self.before_completed_at):
            return _gone(self.content)
        return f"Undone: {self.content}"


@dataclass
class TaskArchived(UndoAction):
    task: Task  # Snapshot before archiving

    def undo(self, store) -> str:
        if self.task.id not in store.tasks:
            return _gone(self.task.content)
        store.put_task(self.task.copy())
        return f"Restored: {self.task.content}"

    def redo(self, store) -> str:
        current = store.tasks.get(self.task.id)
        if current is None:
            return _gone(self.task.content)
        current.archived = True
        return f"Archived: {self.task.content}"


@dataclass
class TaskDeleted(UndoAction):
    task: Task
    position: int

    def undo(self, store) -> str:
        if self.task.project_id not in store.projects:
            return _gone(self.task.content)
        store.insert_task(self.task.copy(), self.position)
        return f"Restored: {self.task.content}"

    def redo(self, store) -> str:
        if store.remove_task(self.task.id) is None:
            return _gone(self.task.content)
        return f"Deleted: {self.task.content}"


@dataclass
class TaskMoved(UndoAction):
    task_id: str
    content: str
    direction: str  # "up" | "down"

    def undo(self, store) -> str:
        opposite = "down" if self.direction == "up" else "up"
        if not store.swap_task(self.task_id, opposite):
            return _gone(self.content)
        return f"Moved back: {self.content}"

    def redo(self, store) -> str:
        if not store.swap_task(self.task_id, self.direction):
            return _gone(self.content)
        return f"Moved: {self.content}"


@dataclass
class ProjectCreated(UndoAction):
    project: Project

    def undo(self, store) -> str:
        if store.remove_project(self.project.id) is None:
            return _gone(self.project.name)
        return f"Removed project: {self.project.name}"

    def redo(self, store) -> str:
        store.put_project(self.project.copy())
        return f"Redone: {self.project.name}"


@dataclass
class ProjectDeleted(UndoAction):
    project: Project
    tasks: List[Task] = field(default_factory=list)

    def undo(self, store) -> str:
        store.put_project(self.project.copy())
        for task in self.tasks:
            store.put_task(task.copy())
        return f"Restored project: {self.project.name}"

    def redo(self, store) -> str:
        if store.remove_project(self.project.id) is None:
            return _gone(self.project.name)
        for task in self.tasks:
            store.tasks.pop(task.id, None)
        store.nav.reset()
        return f"Deleted project: {self.project.name}"


@dataclass
class TemplateSaved(UndoAction):
    template: Template
    index: int

    def undo(self, store) -> str:
        if store.remove_template(self.template.id) is None:
            return _gone(self.template.name)
        return f"Removed template: {self.template.name}"

    def redo(self, store) -> str:
        store.insert_template(self.template, self.index)
        return f"Redone: {self.template.name}"


@dataclass
class TemplateDeleted(UndoAction):
    template: Template
    index: int

    def undo(self, store) -> str:
        store.insert_template(self.template, self.index)
        return f"Restored template: {self.template.name}"

    def redo(self, store) -> str:
        if store.remove_template(self.template.id) is None:
            return _gone(self.template.name)
        return f"Deleted template: {self.template.name}"


class UndoHistory:
    """Linear history: a capped undo stack and a redo stack cleared on record."""

    def __init__(self, limit: int = UNDO_LIMIT):
        self.undo_stack: Deque[UndoAction] = deque(maxlen=limit)
        self.redo_stack: List[UndoAction] = []

    def record(self, action: UndoAction) -> None:
        self.undo_stack.append(action)
        self.redo_stack.clear()

    def clear(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()

    def undo(self, store) -> Optional[str]:
        """Revert the most recent action. Returns None when there is nothing to undo."""
        if not self.undo_stack:
            return None
        action = self.undo_stack.pop()
        message = action.undo(store)
        self.redo_stack.append(action)
        return message

    def redo(self, store) -> Optional[str]:
        """Re-apply the most recently undone action."""
        if not self.redo_stack:
            return None
        action = self.redo_stack.pop()
        message = action.redo(store)
        self.undo_stack.append(action)
        return message
