"""Navigation stack of views plus the selection within the active view."""

from typing import List, Optional, Sequence

from views import HomeView, ViewEntry, view_project_id

FORWARD = "forward"
BACKWARD = "backward"


class ViewStack:
    """Ordered stack of view entries. The bottom entry is always `home`."""

    def __init__(self, entries: Optional[Sequence[ViewEntry]] = None):
        self.entries: List[ViewEntry] = [HomeView()]
        self.selected_index: int = 0
        self.direction: str = FORWARD
        if entries:
            self.replace(entries)

    def __len__(self) -> int:
        return len(self.entries)

    def current(self) -> ViewEntry:
        return self.entries[-1]

    def push(self, entry: ViewEntry) -> None:
        self.entries.append(entry)
        self.selected_index = 0
        self.direction = FORWARD

    def pop(self) -> bool:
        """Remove the top view. The home floor is never popped."""
        if len(self.entries) <= 1:
            return False
        self.entries.pop()
        self.selected_index = 0
        self.direction = BACKWARD
        return True

    def reset(self) -> None:
        self.entries = [HomeView()]
        self.selected_index = 0
        self.direction = FORWARD

    def replace(self, entries: Sequence[ViewEntry], selected_index: int = 0) -> None:
        """Swap in a whole new stack, keeping the home floor invariant."""
        new_entries = list(entries)
        if not new_entries or not isinstance(new_entries[0], HomeView):
            new_entries.insert(0, HomeView())
        self.entries = new_entries
        self.selected_index = max(0, selected_index)
        self.direction = FORWARD

    def truncate(self, length: int) -> None:
        """Go back to the view at depth `length` (breadcrumb click)."""
        length = max(1, length)
        if length >= len(self.entries):
            return
        del self.entries[length:]
        self.selected_index = 0
        self.direction = BACKWARD

    def current_project_id(self, default: str) -> str:
        """Project of the nearest project-scoped view, top to bottom."""
        for view in reversed(self.entries):
            project_id = view_project_id(view)
            if project_id is not None:
                return project_id
        return default

    def move_selection(self, delta: int, item_count: int) -> None:
        if item_count <= 0:
            self.selected_index = 0
            return
        self.selected_index = max(0, min(item_count - 1, self.selected_index + delta))
