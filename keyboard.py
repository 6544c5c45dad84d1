"""Browse-mode key handling.

Keys are named the way the overlay reports them: single characters ("j",
">", " "), or "Enter", "Escape", "ArrowUp", "ArrowDown". Handlers only call
store operations, so this module has no Qt dependency.
"""

from typing import Callable, Dict, Optional

from store import InputPurpose, ViewItem, VisorStore
from views import AgendaView, DetailView, ProjectSettingsView, ProjectView, SearchView, ThreadView


def _detail_task_id(store: VisorStore) -> Optional[str]:
    view = store.nav.current()
    return view.task_id if isinstance(view, DetailView) else None


def _selected_task_id(store: VisorStore) -> Optional[str]:
    item = store.selected_item()
    if item is not None and item.kind == "task":
        return item.data.id
    return None


def _open(store: VisorStore, item: Optional[ViewItem]) -> None:
    if item is None:
        return
    if item.kind == "project":
        store.push_view(ProjectView(item.data.id))
    elif item.kind == "template":
        store.apply_template(item.data.id)
    elif item.kind == "task":
        task = item.data
        if store.has_children(task.id):
            store.push_view(ThreadView(task.project_id, task.id))
        elif isinstance(store.nav.current(), (AgendaView, SearchView)):
            store.navigate_to_task(task.id)
        else:
            store.push_view(DetailView(task.id))


def _open_subtasks(store: VisorStore) -> None:
    """Open a thread on the focused task and start typing a child task."""
    task = store.get_task(_detail_task_id(store) or _selected_task_id(store))
    if task is None:
        return
    store.push_view(ThreadView(task.project_id, task.id))
    store.show_input(InputPurpose.TASK)


def _enter(store: VisorStore, shift: bool) -> None:
    if shift:
        _open_subtasks(store)
    else:
        _open(store, store.selected_item())


def _cycle(store: VisorStore) -> None:
    task_id = _detail_task_id(store) or _selected_task_id(store)
    if task_id is not None:
        store.cycle_task_status(task_id)


def _remove(store: VisorStore) -> None:
    item = store.selected_item()
    if item is None:
        return
    if item.kind == "task":
        store.archive_task(item.data.id)
    elif item.kind == "template":
        store.delete_template(item.data.id)


def _edit(store: VisorStore) -> None:
    detail_id = _detail_task_id(store)
    if detail_id is not None:
        store.start_edit(detail_id)
        return
    item = store.selected_item()
    if item is None:
        return
    if item.kind == "project":
        store.push_view(ProjectSettingsView(item.data.id))
    elif item.kind == "task":
        store.start_edit(item.data.id)


def _notes(store: VisorStore) -> None:
    detail_id = _detail_task_id(store)
    if detail_id is not None:
        store.start_notes(detail_id)


def _reorder(store: VisorStore, direction: str) -> None:
    task_id = _selected_task_id(store)
    if task_id is None:
        return
    store.move_task_order(task_id, direction)
    store.move_selection(-1 if direction == "up" else 1)


def _stop_focus(store: VisorStore) -> None:
    if store.focus is not None:
        store.stop_focus()


_BROWSE_KEYS: Dict[str, Callable[[VisorStore], None]] = {
    "j": lambda store: store.move_selection(1),
    "k": lambda store: store.move_selection(-1),
    "h": lambda store: store.pop_view(),
    "l": lambda store: _open(store, store.selected_item()),
    " ": _cycle,
    "x": _remove,
    "e": _edit,
    "n": _notes,
    "u": lambda store: store.undo(),
    "i": lambda store: store.show_input(InputPurpose.TASK),
    ">": lambda store: store.show_input(InputPurpose.COMMAND, "> "),
    "?": lambda store: store.show_input(InputPurpose.SEARCH, "? "),
    "/": lambda store: store.show_input(InputPurpose.SEARCH, "? "),
    ":": lambda store: store.show_input(InputPurpose.JOURNAL, ": "),
    "f": _stop_focus,
}


def handle_key(store: VisorStore, key: str, ctrl: bool = False,
               shift: bool = False, alt: bool = False) -> bool:
    """
    Apply one key press to the store.

    Args:
        store: Store to act on.
        key: Key name (see module docstring).
        ctrl: Control (or Command) held.
        shift: Shift held.
        alt: Alt/Option held.

    Returns:
        True if the key was consumed.
    """
    if ctrl and key.lower() == "z":
        if shift:
            store.redo()
        else:
            store.undo()
        return True

    if key == "Escape":
        if store.settings_open:
            store.toggle_settings()
        elif store.input_visible:
            store.hide_input()
        else:
            store.hide()
        return True

    # The input bar and settings panel own the keyboard while open
    if store.input_visible or store.settings_open or ctrl:
        return False

    if key == "Enter":
        _enter(store, shift)
        return True

    if key in ("ArrowUp", "ArrowDown"):
        if not alt:
            return False
        _reorder(store, "up" if key == "ArrowUp" else "down")
        return True

    handler = _BROWSE_KEYS.get(key)
    if handler is None:
        return False
    handler(store)
    return True
