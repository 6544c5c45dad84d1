#!/usr/bin/env python3
"""Visor - keyboard-driven task manager overlay."""

import argparse
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import QApplication, QMenu, QStyle, QSystemTrayIcon
from PyQt6.QtCore import QObject

import api
from config import API_PORT, DATA_FILE
from overlay import OverlayWindow
from persistence import PersistenceController
from store import VisorStore
from timer_engine import TimerEngine


class AppController(QObject):
    """Main application controller: wires the store to its Qt collaborators."""

    def __init__(self, data_file: Path = DATA_FILE, start_api: bool = True):
        super().__init__()

        # State
        self.data_file = data_file
        self.start_api = start_api
        self.store = VisorStore()
        self.persistence: Optional[PersistenceController] = None
        self.timer_engine: Optional[TimerEngine] = None
        self.overlay: Optional[OverlayWindow] = None
        self.tray: Optional[QSystemTrayIcon] = None

        # Initialize
        self._initialize()

    def _initialize(self):
        """Initialize application components."""
        # Load data before anything subscribes for rendering
        self.persistence = PersistenceController(self.store, self.data_file)
        self.persistence.save_failed.connect(lambda message: print(f"Error: {message}"))
        self.persistence.load()

        # Create timer engine
        self.timer_engine = TimerEngine(self.store)
        self.timer_engine.focus_finished.connect(lambda: print("Focus session complete"))

        # Create overlay window
        self.overlay = OverlayWindow(self.store)
        self.overlay.render()
        self.overlay.show_animated()

        self._setup_tray()

        # Launch API server
        if self.start_api:
            api.launch(API_PORT, self.data_file)

        print("Application initialized successfully")

    def _setup_tray(self):
        """Tray menu to bring the overlay back after it was hidden."""
        if not QSystemTrayIcon.isSystemTrayAvailable():
            return
        icon = QApplication.style().standardIcon(QStyle.StandardPixmap.SP_FileDialogListView)
        self.tray = QSystemTrayIcon(icon)
        menu = QMenu()
        menu.addAction("Show / Hide Visor", self.store.toggle_visibility)
        menu.addAction("Quit", QApplication.quit)
        self.tray.setContextMenu(menu)
        self.tray.activated.connect(lambda reason: self.store.toggle_visibility())
        self.tray.show()
        self._tray_menu = menu

    def shutdown(self):
        """Flush pending writes and stop timers."""
        if self.timer_engine is not None:
            self.timer_engine.stop()
        if self.persistence is not None:
            self.persistence.close()
        if self.start_api:
            api.stop()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Visor task manager overlay")
    parser.add_argument("--no-api", action="store_true",
                        help="Don't start the local HTTP API server")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Directory holding data.json (default: $VISOR_HOME or ~/.visor)")
    return parser.parse_args(argv)


def main():
    """Main entry point."""
    args = parse_args()
    data_file = args.data_dir / DATA_FILE.name if args.data_dir else DATA_FILE

    app = QApplication(sys.argv[:1])
    app.setApplicationName("visor")

    # Tool windows don't count as windows for Qt; keep running when hidden
    app.setQuitOnLastWindowClosed(False)

    try:
        # Create and run controller
        controller = AppController(data_file, start_api=not args.no_api)
        app.aboutToQuit.connect(controller.shutdown)

        # Run event loop
        exit_code = app.exec()
        print(f"Application exited with code: {exit_code}")
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("Application interrupted by user (Ctrl+C)")
        sys.exit(0)
    except Exception as e:
        print(f"Application crashed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
