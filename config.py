"""Configuration constants for Visor."""

import os
from pathlib import Path

# Directories and files
VISOR_DIR = Path(os.environ.get("VISOR_HOME", Path.home() / ".visor"))
DATA_FILE = VISOR_DIR / "data.json"

# Persistence timings
SAVE_DEBOUNCE_MS = 500  # Coalesce bursts of mutations into one write
RELOAD_GUARD_S = 1.0  # No outbound save this soon after an external reload

# Timer constants
FOCUS_TICK_MS = 1000
TOAST_DURATION_MS = 3000
DEFAULT_FOCUS_MINUTES = 25

# Store limits
UNDO_LIMIT = 20
MAX_INDENT = 3
UPCOMING_LIMIT = 10
SEARCH_LIMIT = 30
SEARCH_THRESHOLD = 0.6
BREADCRUMB_LABEL_MAX = 20

# Projects
INBOX_ID = "inbox"
INBOX_NAME = "Inbox"
INBOX_COLOR = "#d79921"
DEFAULT_PROJECT_COLOR = "#58a6ff"  # Projects created implicitly from "slug: task"
USE_PROJECT_COLOR = "#83a598"  # Projects created by "> use slug" or the API

# Settings defaults
DEFAULT_SHOW_WELCOME = True
DEFAULT_TOGGLE_VISOR = "ctrl+`"

# Window
VISOR_HEIGHT_RATIO = 0.45
FADE_IN_DURATION_MS = 150
FADE_OUT_DURATION_MS = 150

# Colors (hex codes, gruvbox palette)
COLOR_BACKGROUND = "#282828"
COLOR_FOREGROUND = "#ebdbb2"
COLOR_DIM = "#a89984"
COLOR_SELECTED = "#3c3836"
COLOR_TODO = "#a89984"
COLOR_DOING = "#83a598"
COLOR_DONE = "#b8bb26"
COLOR_CANCELLED = "#fb4934"
COLOR_WAITING = "#fabd2f"
COLOR_OVERDUE = "#fb4934"
COLOR_WARNING = "#fe8019"

# Fonts
FONT_FAMILY_MONO = "Menlo"
FONT_SIZE = 14

# Selection indicator
SELECT_INDICATOR = "►"  # U+25BA
NO_SELECT_INDICATOR = " "

# HTTP mirror
API_HOST = "127.0.0.1"
API_PORT = 8745
API_PID_FILE = VISOR_DIR / "api.pid"
