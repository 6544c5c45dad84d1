"""Free-text input classification and inline date annotations.

Parsing priority for a submitted line:
  1. Command mode: starts with > or /
  2. Search mode: starts with ?
  3. Log/journal mode: starts with :
  4. Project-targeted task: "{project}: {task}"
  5. Default task: everything else
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from dates import next_occurrence, parse_recurrence, resolve_date
from models import Recurrence


class InputKind(str, Enum):
    TASK = "TASK"
    COMMAND = "COMMAND"
    SEARCH = "SEARCH"
    LOG = "LOG"


@dataclass(frozen=True)
class InputMode:
    """Classified intent of an input line.

    `text` is the payload: command text, search query, journal content or
    task content. `target_project` is only set for "slug: task" input.
    """

    kind: InputKind
    text: str = ""
    target_project: Optional[str] = None


@dataclass(frozen=True)
class DueDateParse:
    content: str
    due_at: Optional[datetime] = None
    scheduled: Optional[datetime] = None
    recurrence: Optional[Recurrence] = None


PLACEHOLDER = '"task" | > command | ? search | : journal'

_COMMAND_RE = re.compile(r"^[>/]\s*")
_SEARCH_RE = re.compile(r"^\?\s*")
_LOG_RE = re.compile(r"^:\s*")
_PROJECT_TASK_RE = re.compile(r"^(\w+):\s+(.+)$")

_WEEKDAY = (
    r"mon(?:day)?|tue(?:s(?:day)?)?|wed(?:nesday)?|thu(?:r(?:s(?:day)?)?)?"
    r"|fri(?:day)?|sat(?:urday)?|sun(?:day)?"
)
_DATE_WORD = rf"today|tomorrow|tom|{_WEEKDAY}|\d{{1,2}}/\d{{1,2}}"

_RECURRENCE_RE = re.compile(
    rf"\s*(?<!\S)!every\s+(daily|day|weekdays?|weekly|week|monthly|month|{_WEEKDAY})(?![\w/])\s*",
    re.IGNORECASE,
)
_DEADLINE_RE = re.compile(rf"\s*(?<!\S)!({_DATE_WORD})(?![\w/])\s*", re.IGNORECASE)
_SCHEDULE_RE = re.compile(rf"\s*(?<!\S)@({_DATE_WORD})(?![\w/])\s*", re.IGNORECASE)


def parse_input(text: str) -> InputMode:
    """Classify a raw input line into one of the four intents."""
    trimmed = text.strip()

    if not trimmed:
        return InputMode(InputKind.TASK)

    if _COMMAND_RE.match(trimmed):
        return InputMode(InputKind.COMMAND, _COMMAND_RE.sub("", trimmed, count=1))

    if _SEARCH_RE.match(trimmed):
        return InputMode(InputKind.SEARCH, _SEARCH_RE.sub("", trimmed, count=1))

    if _LOG_RE.match(trimmed):
        return InputMode(InputKind.LOG, _LOG_RE.sub("", trimmed, count=1))

    match = _PROJECT_TASK_RE.match(trimmed)
    if match:
        return InputMode(InputKind.TASK, match.group(2), target_project=match.group(1).lower())

    return InputMode(InputKind.TASK, trimmed)


def extract_content(text: str) -> str:
    """Strip any mode prefix and return the payload, whatever the intent."""
    trimmed = text.strip()
    for prefix in (_COMMAND_RE, _SEARCH_RE, _LOG_RE):
        if prefix.match(trimmed):
            return prefix.sub("", trimmed, count=1)

    match = _PROJECT_TASK_RE.match(trimmed)
    if match:
        return match.group(2)
    return trimmed


def mode_label(mode: InputMode) -> str:
    """Badge text shown next to the input line."""
    if mode.kind == InputKind.TASK:
        target = mode.target_project or "inbox"
        return f"TASK → {target.upper()}"
    if mode.kind == InputKind.COMMAND:
        return "CMD"
    return mode.kind.value


def _cut(text: str, match: re.Match) -> str:
    return (text[:match.start()] + " " + text[match.end():]).strip()


def parse_due_date(content: str, now: Optional[datetime] = None) -> DueDateParse:
    """
    Pull inline date annotations out of task content.

    Supports:
        !every day|weekday|week|month|mon..sun  - RECURRENCE
        !today, !tomorrow, !mon..!sun, !1/20    - DEADLINE (must be done by)
        @today, @tomorrow, @mon..@sun, @1/20    - SCHEDULED (start working on)

    A recurrence without an explicit deadline gets its first future
    occurrence as the deadline.
    """
    now = now if now is not None else datetime.now()
    cleaned = content.strip()
    recurrence = None
    due_at = None
    scheduled = None

    match = _RECURRENCE_RE.search(cleaned)
    if match:
        recurrence = parse_recurrence(match.group(1))
        cleaned = _cut(cleaned, match)

    match = _DEADLINE_RE.search(cleaned)
    if match:
        due_at = resolve_date(match.group(1), now)
        if due_at is not None:
            cleaned = _cut(cleaned, match)

    match = _SCHEDULE_RE.search(cleaned)
    if match:
        scheduled = resolve_date(match.group(1), now)
        if scheduled is not None:
            cleaned = _cut(cleaned, match)

    if recurrence is not None and due_at is None:
        due_at = next_occurrence(recurrence, now)

    return DueDateParse(cleaned, due_at, scheduled, recurrence)
