"""Debounced saving and external-change reloading of the data file."""

import time
from pathlib import Path
from typing import Optional
from PyQt6.QtCore import QFileSystemWatcher, QObject, QTimer, pyqtSignal

from config import DATA_FILE, RELOAD_GUARD_S, SAVE_DEBOUNCE_MS
from storage import ensure_data_dir, file_digest, load_data, save_data


class PersistenceController(QObject):
    """Keeps the data file in sync with a VisorStore.

    Persisting store changes restart a single-shot debounce timer; when it
    fires the latest snapshot is written. Changes made to the file by another
    process are picked up through a file watcher and merged with
    `reload_data`. For a short window after such a reload, saves are held back
    so the reload is not immediately echoed.
    """

    saved = pyqtSignal()
    save_failed = pyqtSignal(str)
    reloaded = pyqtSignal()

    def __init__(self, store, path: Path = DATA_FILE):
        """
        Initialize persistence controller.

        Args:
            store: VisorStore to persist.
            path: Data file location.
        """
        super().__init__()
        self.store = store
        self.path = Path(path)
        self._dirty = False
        self._last_digest: Optional[str] = None
        self._reloaded_at: Optional[float] = None

        self.save_timer = QTimer()
        self.save_timer.setSingleShot(True)
        self.save_timer.timeout.connect(self._on_save_timer)

        self.watcher = QFileSystemWatcher()
        self.watcher.fileChanged.connect(self._on_file_changed)
        self.watcher.directoryChanged.connect(self._on_file_changed)

        self._unsubscribe = store.subscribe(self._on_store_changed)

    def load(self) -> None:
        """Initial load of the data file into the store, then start watching."""
        data = load_data(self.path)
        self._last_digest = file_digest(self.path)
        self.store.load_snapshot(data)
        if data is None:
            print(f"No data at {self.path}, starting fresh")
        else:
            print(f"Loaded {len(self.store.tasks)} tasks in {len(self.store.projects)} projects")
        self._watch()

    def flush(self) -> None:
        """Write any pending change now (used on shutdown)."""
        self.save_timer.stop()
        if self._dirty:
            self.save_now()

    def close(self) -> None:
        self.flush()
        self._unsubscribe()

    def save_now(self) -> bool:
        """Write the current snapshot. Returns True on success."""
        self._dirty = False
        if not save_data(self.store.to_snapshot(), self.path):
            message = f"Could not save to {self.path}"
            self.store.set_save_warning(message)
            self.save_failed.emit(message)
            return False

        self._last_digest = file_digest(self.path)
        self.store.set_save_warning(None)
        self._watch()
        self.saved.emit()
        return True

    def guard_remaining(self) -> float:
        """Seconds left in the post-reload window during which saves wait."""
        if self._reloaded_at is None:
            return 0.0
        return max(0.0, RELOAD_GUARD_S - (time.monotonic() - self._reloaded_at))

    def _watch(self) -> None:
        # Atomic renames replace the inode, which drops the file watch
        ensure_data_dir(self.path)
        directory = str(self.path.parent)
        if directory not in self.watcher.directories():
            self.watcher.addPath(directory)
        if self.path.exists() and str(self.path) not in self.watcher.files():
            self.watcher.addPath(str(self.path))

    def _on_store_changed(self, persist: bool) -> None:
        if not persist or not self.store.data_loaded:
            return
        self._dirty = True
        self.save_timer.start(SAVE_DEBOUNCE_MS)

    def _on_save_timer(self) -> None:
        remaining = self.guard_remaining()
        if remaining > 0:
            self.save_timer.start(int(remaining * 1000) + 1)
            return
        if self._dirty:
            self.save_now()

    def _on_file_changed(self, changed_path: str) -> None:
        self._watch()
        digest = file_digest(self.path)
        if digest is None or digest == self._last_digest:
            return

        data = load_data(self.path)
        if data is None:
            return
        self._last_digest = digest
        self._reloaded_at = time.monotonic()
        self.store.reload_data(data)
        print(f"Reloaded {self.path} after external change")
        self.reloaded.emit()
