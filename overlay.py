"""Main overlay window for Visor."""

from datetime import datetime
from typing import List, Optional
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QGraphicsOpacityEffect, QSizePolicy, QScrollArea
)
from PyQt6.QtCore import Qt, QPropertyAnimation, QEasingCurve
from PyQt6.QtGui import QFont, QKeyEvent

from commands import COMMAND_REGISTRY
from dates import format_countdown, format_recurrence_token
from models import Task, TaskStatus
from store import ViewItem, VisorStore
from input_bar import InputBar
from keyboard import handle_key
from views import DetailView, HelpView, JournalView, ProjectSettingsView
from config import (
    VISOR_HEIGHT_RATIO,
    COLOR_BACKGROUND, COLOR_FOREGROUND, COLOR_DIM, COLOR_SELECTED,
    COLOR_TODO, COLOR_DOING, COLOR_DONE, COLOR_CANCELLED, COLOR_WAITING,
    COLOR_OVERDUE, COLOR_WARNING,
    FONT_FAMILY_MONO, FONT_SIZE,
    SELECT_INDICATOR, NO_SELECT_INDICATOR,
    FADE_IN_DURATION_MS, FADE_OUT_DURATION_MS
)

STATUS_COLORS = {
    TaskStatus.TODO: COLOR_TODO,
    TaskStatus.DOING: COLOR_DOING,
    TaskStatus.DONE: COLOR_DONE,
    TaskStatus.CANCELLED: COLOR_CANCELLED,
    TaskStatus.WAITING: COLOR_WAITING,
}

KEY_HINTS = [
    ("j / k", "Move selection"),
    ("h / l", "Back / open"),
    ("space", "Cycle status"),
    ("x", "Archive task / delete template"),
    ("e", "Edit task / project settings"),
    ("n", "Edit notes (detail view)"),
    ("⇧↵", "Add subtask"),
    ("⌥↑ / ⌥↓", "Reorder task"),
    ("u, ⌃Z / ⌃⇧Z", "Undo / redo"),
    ("i  >  ?  :", "Task, command, search, journal input"),
    ("f", "Stop focus timer"),
    ("esc", "Close input / settings / hide"),
]

_NAMED_KEYS = {
    Qt.Key.Key_Return: "Enter",
    Qt.Key.Key_Enter: "Enter",
    Qt.Key.Key_Escape: "Escape",
    Qt.Key.Key_Up: "ArrowUp",
    Qt.Key.Key_Down: "ArrowDown",
    Qt.Key.Key_Space: " ",
}


def key_name(event: QKeyEvent) -> str:
    """Name a Qt key event the way keyboard.handle_key expects."""
    named = _NAMED_KEYS.get(event.key())
    if named is not None:
        return named
    if event.key() == Qt.Key.Key_Z:
        return "z"
    return event.text()


def due_label(task: Task, now: datetime) -> str:
    """Short relative due text: overdue, today, tomorrow, weekday or M/D."""
    if task.due_at is None:
        return ""
    if task.due_at < now:
        return "overdue"
    days = (task.due_at.date() - now.date()).days
    if days == 0:
        return "today"
    if days == 1:
        return "tomorrow"
    if days < 7:
        return task.due_at.strftime("%a").lower()
    return f"{task.due_at.month}/{task.due_at.day}"


class ItemWidget(QWidget):
    """Widget displaying a single selectable row."""

    def __init__(self, store: VisorStore, item: ViewItem, is_selected: bool = False):
        super().__init__()
        self.store = store
        self.item = item
        self.is_selected = is_selected

        layout = QHBoxLayout()
        layout.setContentsMargins(8, 2, 8, 2)
        layout.setSpacing(8)

        # Selection indicator
        self.select_label = QLabel(SELECT_INDICATOR if is_selected else NO_SELECT_INDICATOR)
        self.select_label.setFixedWidth(20)
        layout.addWidget(self.select_label)

        self.icon_label = QLabel()
        self.icon_label.setFixedWidth(20)
        layout.addWidget(self.icon_label)

        self.text_label = QLabel()
        self.text_label.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter)
        layout.addWidget(self.text_label, stretch=1)

        self.meta_label = QLabel()
        self.meta_label.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        layout.addWidget(self.meta_label)

        self.setLayout(layout)
        self.setSizePolicy(QSizePolicy.Policy.Preferred, QSizePolicy.Policy.Minimum)
        self.update_display()

    def update_display(self):
        """Fill labels from the item and apply colors."""
        color = COLOR_FOREGROUND
        data = self.item.data
        if self.item.kind == "task":
            task = data
            color = STATUS_COLORS[task.status]
            self.icon_label.setText(task.status.icon)
            children = self.store.child_count(task.id)
            suffix = f"  [{children}]" if children else ""
            self.text_label.setText(task.content + suffix)
            due = due_label(task, self.store.now())
            self.meta_label.setText(due)
            if due == "overdue":
                self.meta_label.setStyleSheet(f"color: {COLOR_OVERDUE};")
        elif self.item.kind == "project":
            stats = next((s for s in self.store.get_project_stats() if s.project.id == data.id), None)
            self.icon_label.setText("■")
            self.icon_label.setStyleSheet(f"color: {data.color};")
            self.text_label.setText(data.name)
            if stats is not None:
                self.meta_label.setText(f"{stats.pending} open  {stats.progress}%")
        elif self.item.kind == "template":
            self.icon_label.setText("≡")
            self.text_label.setText(data.name)
            self.meta_label.setText(f"{len(data.entries)} tasks")

        bg_color = COLOR_SELECTED if self.is_selected else "transparent"
        self.setStyleSheet(f"""
            ItemWidget {{
                background-color: {bg_color};
                border-radius: 4px;
            }}
            QLabel {{
                color: {color};
                background-color: transparent;
            }}
        """)

    def set_indent(self, level: int):
        """Indent nested tasks."""
        self.layout().setContentsMargins(8 + 20 * level, 2, 8, 2)


class OverlayWindow(QWidget):
    """Top-of-screen window rendering the store's current view."""

    def __init__(self, store: VisorStore):
        super().__init__()
        self.store = store
        self._visible = True

        self._setup_window()
        self._setup_ui()
        self._unsubscribe = store.subscribe(lambda persist: self.render())

    def _setup_window(self):
        """Configure window properties."""
        # Window flags: always on top, frameless, tool (no Cmd+Tab)
        self.setWindowFlags(
            Qt.WindowType.WindowStaysOnTopHint |
            Qt.WindowType.FramelessWindowHint |
            Qt.WindowType.Tool
        )

        self.setStyleSheet(f"""
            OverlayWindow {{
                background-color: {COLOR_BACKGROUND};
                border-bottom: 2px solid {COLOR_DIM};
            }}
            QLabel {{
                color: {COLOR_FOREGROUND};
            }}
        """)
        font = QFont(FONT_FAMILY_MONO, FONT_SIZE)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self.setFont(font)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.position_at_top()

    def position_at_top(self):
        """Span the top of the screen, a fixed share of its height."""
        screen = self.screen().availableGeometry()
        self.setGeometry(screen.x(), screen.y(), screen.width(),
                         int(screen.height() * VISOR_HEIGHT_RATIO))

    def _setup_ui(self):
        """Setup UI layout."""
        layout = QVBoxLayout()
        layout.setContentsMargins(12, 8, 12, 8)
        layout.setSpacing(6)

        header = QHBoxLayout()
        self.breadcrumb_label = QLabel()
        self.breadcrumb_label.setTextFormat(Qt.TextFormat.RichText)
        self.breadcrumb_label.linkActivated.connect(lambda depth: self.store.truncate_view(int(depth)))
        header.addWidget(self.breadcrumb_label, stretch=1)

        self.focus_label = QLabel()
        self.focus_label.setStyleSheet(f"color: {COLOR_DOING};")
        header.addWidget(self.focus_label)
        layout.addLayout(header)

        self.warning_label = QLabel()
        self.warning_label.setStyleSheet(f"color: {COLOR_WARNING};")
        layout.addWidget(self.warning_label)

        # Item rows
        self.list_container = QWidget()
        self.list_layout = QVBoxLayout()
        self.list_layout.setContentsMargins(0, 0, 0, 0)
        self.list_layout.setSpacing(2)
        self.list_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        self.list_container.setLayout(self.list_layout)

        self.scroll = QScrollArea()
        self.scroll.setWidgetResizable(True)
        self.scroll.setWidget(self.list_container)
        self.scroll.setFrameShape(QScrollArea.Shape.NoFrame)
        self.scroll.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        layout.addWidget(self.scroll, stretch=1)

        self.toast_label = QLabel()
        self.toast_label.setStyleSheet(f"color: {COLOR_WAITING};")
        layout.addWidget(self.toast_label)

        self.input_bar = InputBar(self.store)
        self.input_bar.submitted.connect(self.store.submit_input)
        self.input_bar.setVisible(False)
        layout.addWidget(self.input_bar)

        self.setLayout(layout)

    def render(self):
        """Rebuild the window from the store."""
        store = self.store

        crumbs = store.breadcrumb()
        links = [f'<a href="{i + 1}" style="color: {COLOR_DIM}; text-decoration: none;">{label}</a>'
                 for i, label in enumerate(crumbs[:-1])]
        links.append(f"<b>{crumbs[-1]}</b>")
        self.breadcrumb_label.setText(" / ".join(links))

        focus = store.focus
        if focus is None:
            self.focus_label.setText("")
        elif focus.finished:
            self.focus_label.setText("◉ done")
        else:
            self.focus_label.setText(f"◉ {format_countdown(focus.remaining)}")

        self.warning_label.setText(store.save_warning or "")
        self.warning_label.setVisible(bool(store.save_warning))
        self.toast_label.setText(store.toast.message if store.toast else "")

        self._render_rows()

        if store.input_visible and not self.input_bar.isVisible():
            self.input_bar.open(store.input_prefill)
        elif not store.input_visible and self.input_bar.isVisible():
            self.input_bar.close_bar()
            self.setFocus()
        elif store.input_visible:
            self.input_bar.refresh()

        if store.is_visible != self._visible:
            self._visible = store.is_visible
            if store.is_visible:
                self.show_animated()
            else:
                self.hide_animated()

    def _render_rows(self):
        while self.list_layout.count():
            item = self.list_layout.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()

        if self.store.settings_open:
            self._add_text_rows(self._settings_lines())
            return

        items = self.store.view_items()
        if items:
            selected = self.store.nav.selected_index
            for i, item in enumerate(items):
                widget = ItemWidget(self.store, item, i == selected)
                if item.kind == "task":
                    widget.set_indent(min(item.data.indent, 3) if self.store.effective_parent_id(item.data) else 0)
                self.list_layout.addWidget(widget)
            return

        self._add_text_rows(self._static_lines())

    def _add_text_rows(self, lines: List[str]):
        for line in lines:
            label = QLabel(line)
            label.setWordWrap(True)
            self.list_layout.addWidget(label)

    def _static_lines(self) -> List[str]:
        """Text for views without selectable rows."""
        store = self.store
        view = store.nav.current()
        if isinstance(view, HelpView):
            lines = [f"> {cmd.name:<16} {cmd.description}" for cmd in COMMAND_REGISTRY]
            lines.append("")
            lines.extend(f"{keys:<16} {desc}" for keys, desc in KEY_HINTS)
            return lines
        if isinstance(view, JournalView):
            entries = store.journal_entries(view.project_id)
            if not entries:
                return ["No journal entries. Type : to log one."]
            return [f"{e.created_at:%m/%d %H:%M}  {e.content}" for e in entries]
        if isinstance(view, DetailView):
            return self._detail_lines(store.get_task(view.task_id))
        if isinstance(view, ProjectSettingsView):
            project = store.projects.get(view.project_id)
            if project is None:
                return ["Project not found"]
            stats = next(s for s in store.get_project_stats() if s.project.id == project.id)
            return [
                f"name:     {project.name}",
                f"slug:     {project.slug}",
                f"color:    {project.color}",
                f"tasks:    {stats.total} ({stats.pending} open, {stats.completed} done)",
                f"progress: {stats.progress}%",
            ]
        return ["Nothing here yet. Press i to add a task."]

    def _detail_lines(self, task: Optional[Task]) -> List[str]:
        if task is None:
            return ["Task not found"]
        lines = [f"{task.status.icon} {task.content}", f"status:    {task.status.value}"]
        if task.due_at is not None:
            lines.append(f"due:       {task.due_at:%a %m/%d}")
        if task.scheduled is not None:
            lines.append(f"scheduled: {task.scheduled:%a %m/%d}")
        if task.recurrence is not None:
            lines.append(f"repeats:   {format_recurrence_token(task.recurrence)[1:]}")
        lines.append(f"created:   {task.created_at:%m/%d %H:%M}")
        if task.completed_at is not None:
            lines.append(f"completed: {task.completed_at:%m/%d %H:%M}")
        lines.append("")
        lines.append(task.notes or "No notes. Press n to add some.")
        return lines

    def _settings_lines(self) -> List[str]:
        settings = self.store.settings
        return [
            "Settings",
            f"show welcome:  {settings.general.show_welcome}",
            f"toggle visor:  {settings.keybindings.toggle_visor}",
            "",
            "esc to close",
        ]

    def keyPressEvent(self, event: QKeyEvent):
        """Route browse-mode keys to the store."""
        modifiers = event.modifiers()
        consumed = handle_key(
            self.store,
            key_name(event),
            ctrl=bool(modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier)),
            shift=bool(modifiers & Qt.KeyboardModifier.ShiftModifier),
            alt=bool(modifiers & Qt.KeyboardModifier.AltModifier),
        )
        if not consumed:
            super().keyPressEvent(event)

    def closeEvent(self, event):
        """Handle window close event - hide instead of quitting."""
        event.ignore()
        self.store.hide()

    def show_animated(self):
        """Show the window with a fade-in."""
        self.position_at_top()
        self.show()
        self.raise_()
        self.activateWindow()
        self._fade(0.0, 1.0, FADE_IN_DURATION_MS)

    def hide_animated(self):
        """Fade out, then hide."""
        self._fade(1.0, 0.0, FADE_OUT_DURATION_MS, callback=self.hide)

    def _fade(self, start: float, end: float, duration: int, callback=None):
        effect = QGraphicsOpacityEffect(self)
        self.setGraphicsEffect(effect)

        animation = QPropertyAnimation(effect, b"opacity")
        animation.setDuration(duration)
        animation.setStartValue(start)
        animation.setEndValue(end)
        animation.setEasingCurve(QEasingCurve.Type.InOutQuad)

        if callback:
            animation.finished.connect(callback)

        animation.start()

        # Keep reference to prevent garbage collection
        self._fade_animation = animation
