"""Timer engine driving the focus countdown and toast dismissal."""

from typing import Optional
from PyQt6.QtCore import QTimer, QObject, pyqtSignal

from models import Toast
from config import FOCUS_TICK_MS, TOAST_DURATION_MS


class TimerEngine(QObject):
    """Runs the store's time-based state on Qt timers.

    The focus timer only runs while a focus session is active. The toast
    timer is single-shot and restarted whenever a new toast appears.
    """

    # Signals
    tick = pyqtSignal()  # Emitted after every focus poll
    focus_finished = pyqtSignal()  # Emitted once when the countdown reaches zero

    def __init__(self, store):
        """
        Initialize timer engine.

        Args:
            store: VisorStore whose focus timer and toast are managed.
        """
        super().__init__()
        self.store = store
        self._toast: Optional[Toast] = None

        self.focus_timer = QTimer()
        self.focus_timer.setInterval(FOCUS_TICK_MS)
        self.focus_timer.timeout.connect(self._on_tick)

        self.toast_timer = QTimer()
        self.toast_timer.setSingleShot(True)
        self.toast_timer.setInterval(TOAST_DURATION_MS)
        self.toast_timer.timeout.connect(self._on_toast_expired)

        self._unsubscribe = store.subscribe(self._on_store_changed)
        self._on_store_changed(False)

    def stop(self) -> None:
        """Stop both timers and detach from the store."""
        self.focus_timer.stop()
        self.toast_timer.stop()
        self._unsubscribe()

    def _on_store_changed(self, persist: bool) -> None:
        focus = self.store.focus
        running = focus is not None and not focus.finished
        if running and not self.focus_timer.isActive():
            self.focus_timer.start()
        elif not running and self.focus_timer.isActive():
            self.focus_timer.stop()

        toast = self.store.toast
        if toast is not self._toast:
            self._toast = toast
            if toast is None:
                self.toast_timer.stop()
            else:
                self.toast_timer.start()

    def _on_tick(self) -> None:
        """Handle timer tick: recompute the remaining focus time."""
        focus = self.store.focus
        if focus is None:
            self.focus_timer.stop()
            return

        self.store.tick_focus()
        if focus.finished:
            self.focus_timer.stop()
            self.focus_finished.emit()

        # Emit tick signal for UI updates
        self.tick.emit()

    def _on_toast_expired(self) -> None:
        self.store.clear_toast(self._toast)
