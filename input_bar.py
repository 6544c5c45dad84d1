"""Input line for tasks, commands, searches, journal entries and edits."""

from typing import List

from PyQt6.QtWidgets import QHBoxLayout, QLabel, QLineEdit, QVBoxLayout, QWidget
from PyQt6.QtCore import QEvent, Qt, pyqtSignal
from PyQt6.QtGui import QFont, QKeyEvent

from config import (
    COLOR_BACKGROUND, COLOR_DIM, COLOR_DOING, COLOR_FOREGROUND, COLOR_SELECTED,
    FONT_FAMILY_MONO, FONT_SIZE, MAX_INDENT, SELECT_INDICATOR, NO_SELECT_INDICATOR,
)
from parser import PLACEHOLDER, InputKind, mode_label, parse_input
from store import InputPurpose, Suggestion, VisorStore


def hint_text(purpose: InputPurpose, editing: bool, indent: int) -> str:
    """Ghost text describing what Enter will do."""
    if purpose == InputPurpose.NOTES:
        return "↵ save notes"
    if editing:
        return "↵ save"
    if purpose == InputPurpose.TASK:
        return "↵ add subtask" if indent > 0 else "↵ add task"
    if purpose == InputPurpose.COMMAND:
        return "↵ run"
    if purpose == InputPurpose.SEARCH:
        return "↵ search"
    if purpose == InputPurpose.JOURNAL:
        return "↵ log"
    return "↵ save"


class _LineEdit(QLineEdit):
    """QLineEdit that hands Tab and arrow keys to the bar instead of moving focus."""

    def __init__(self, bar: 'InputBar'):
        super().__init__()
        self.bar = bar

    def event(self, event):
        if event.type() == QEvent.Type.KeyPress and event.key() in (Qt.Key.Key_Tab, Qt.Key.Key_Backtab):
            self.bar.handle_tab(event.key() == Qt.Key.Key_Backtab)
            return True
        return super().event(event)

    def keyPressEvent(self, event: QKeyEvent):
        if not self.bar.handle_key(event):
            super().keyPressEvent(event)


class InputBar(QWidget):
    """Single-line input bar shown over the item list."""

    # Signal emitted with the raw line when the user presses Enter
    submitted = pyqtSignal(str)

    def __init__(self, store: VisorStore, parent=None):
        super().__init__(parent)
        self.store = store
        self._suggestions: List[Suggestion] = []
        self._selected = 0
        self._setup_ui()

    def _setup_ui(self):
        """Setup UI elements."""
        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(2)

        # Suggestion dropdown, one label per row
        self.suggest_box = QWidget()
        self.suggest_layout = QVBoxLayout()
        self.suggest_layout.setContentsMargins(8, 4, 8, 4)
        self.suggest_layout.setSpacing(0)
        self.suggest_box.setLayout(self.suggest_layout)
        self.suggest_box.setVisible(False)
        layout.addWidget(self.suggest_box)

        row = QHBoxLayout()
        row.setSpacing(8)

        mono = QFont(FONT_FAMILY_MONO, FONT_SIZE)
        mono.setStyleHint(QFont.StyleHint.Monospace)

        self.mode_badge = QLabel()
        self.mode_badge.setFont(mono)
        row.addWidget(self.mode_badge)

        self.indent_label = QLabel()
        self.indent_label.setFont(mono)
        row.addWidget(self.indent_label)

        self.line_edit = _LineEdit(self)
        self.line_edit.setFont(mono)
        self.line_edit.setPlaceholderText(PLACEHOLDER)
        self.line_edit.textChanged.connect(self._on_text_changed)
        row.addWidget(self.line_edit, stretch=1)

        self.hint_label = QLabel()
        self.hint_label.setStyleSheet(f"color: {COLOR_DIM};")
        row.addWidget(self.hint_label)

        layout.addLayout(row)
        self.setLayout(layout)

        self.setStyleSheet(f"""
            QLineEdit {{
                background-color: {COLOR_BACKGROUND};
                color: {COLOR_FOREGROUND};
                border: 1px solid {COLOR_DIM};
                border-radius: 4px;
                padding: 6px;
            }}
            QLineEdit:focus {{
                border: 1px solid {COLOR_DOING};
            }}
            QLabel {{
                color: {COLOR_FOREGROUND};
                background-color: transparent;
            }}
        """)

    def open(self, prefill: str = "") -> None:
        """Show the bar with `prefill` and focus the line."""
        self.line_edit.setText(prefill)
        self.line_edit.setPlaceholderText("Edit task..." if self.store.editing_task_id else PLACEHOLDER)
        self.refresh()
        self.setVisible(True)
        self.line_edit.setFocus()
        self.line_edit.end(False)

    def close_bar(self) -> None:
        self.setVisible(False)
        self.line_edit.clear()
        self._set_suggestions([])

    def handle_tab(self, backwards: bool) -> None:
        """Accept a suggestion, or change the pending indent level of a task."""
        if self._suggestions:
            self._accept(self._selected)
            return
        if parse_input(self.line_edit.text()).kind != InputKind.TASK:
            return
        level = self.store.next_indent_level + (-1 if backwards else 1)
        self.store.set_next_indent_level(max(0, min(MAX_INDENT, level)))
        self.refresh()

    def handle_key(self, event: QKeyEvent) -> bool:
        """Keys the bar consumes before the line edit sees them."""
        key = event.key()
        if key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self.submitted.emit(self.line_edit.text())
            return True
        if key == Qt.Key.Key_Escape:
            self.store.hide_input()
            return True
        if self._suggestions and key in (Qt.Key.Key_Up, Qt.Key.Key_Down):
            step = -1 if key == Qt.Key.Key_Up else 1
            self._selected = max(0, min(len(self._suggestions) - 1, self._selected + step))
            self._render_suggestions()
            return True
        return False

    def _accept(self, index: int) -> None:
        if 0 <= index < len(self._suggestions):
            self.line_edit.setText(self._suggestions[index].accept)
            self.line_edit.end(False)
        self._set_suggestions([])

    def _on_text_changed(self, text: str) -> None:
        if self.store.input_purpose in (InputPurpose.NOTES, InputPurpose.EDIT):
            self._set_suggestions([])
        else:
            self._set_suggestions(self.store.suggestions(text))
        self.refresh()

    def _set_suggestions(self, suggestions: List[Suggestion]) -> None:
        self._suggestions = suggestions
        self._selected = 0
        self._render_suggestions()

    def _render_suggestions(self) -> None:
        while self.suggest_layout.count():
            item = self.suggest_layout.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()

        for i, suggestion in enumerate(self._suggestions):
            marker = SELECT_INDICATOR if i == self._selected else NO_SELECT_INDICATOR
            label = QLabel(f"{marker} {suggestion.label}  {suggestion.description}")
            if i == self._selected:
                label.setStyleSheet(f"background-color: {COLOR_SELECTED};")
            self.suggest_layout.addWidget(label)
        self.suggest_box.setVisible(bool(self._suggestions))

    def refresh(self) -> None:
        """Update the mode badge, indent marker and hint."""
        store = self.store
        if store.input_purpose == InputPurpose.NOTES:
            self.mode_badge.setText("NOTES")
        elif store.editing_task_id:
            self.mode_badge.setText("EDIT")
        else:
            self.mode_badge.setText(mode_label(parse_input(self.line_edit.text())))

        indent = store.next_indent_level
        self.indent_label.setText("›" * indent)
        self.indent_label.setVisible(indent > 0 and store.input_purpose != InputPurpose.NOTES)
        self.hint_label.setText(hint_text(store.input_purpose, bool(store.editing_task_id), indent))
