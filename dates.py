"""Relative date tokens and recurrence rules resolved to absolute timestamps.

All functions are pure and take an explicit `now` so callers (and tests) pin
the reference instant. "End of day" is the 23:59:59 instant of the local
calendar day.
"""

import calendar
from datetime import datetime, timedelta
from typing import Optional

from models import Recurrence

# Indexed like the stored recurrence day_of_week: 0=Sun..6=Sat
WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def weekday_index(d: datetime) -> int:
    """Sunday-based weekday number (0=Sun..6=Sat)."""
    return (d.weekday() + 1) % 7


def end_of_day(d: datetime) -> datetime:
    return d.replace(hour=23, minute=59, second=59, microsecond=0)


def next_weekday(day: int, now: Optional[datetime] = None) -> datetime:
    """End of the next occurrence of `day` strictly after today."""
    now = _now(now)
    diff = day - weekday_index(now)
    if diff <= 0:
        diff += 7
    return end_of_day(now + timedelta(days=diff))


def weekday_from_name(name: str) -> Optional[int]:
    """Map "fri", "friday", "Thurs" ... to a Sunday-based index."""
    key = name.strip().lower()
    if len(key) < 3:
        return None
    for index, full in enumerate(WEEKDAY_NAMES):
        if full.startswith(key):
            return index
    return None


def resolve_date(token: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Resolve a date token to an end-of-day timestamp.

    Args:
        token: today, tomorrow/tom, a weekday name, or M/D.
        now: Reference instant.

    Returns:
        The resolved datetime, or None for an unknown token or impossible date.
    """
    now = _now(now)
    t = token.strip().lower()

    if t == "today":
        return end_of_day(now)
    if t in ("tomorrow", "tom"):
        return end_of_day(now + timedelta(days=1))

    if "/" in t:
        try:
            month, day = (int(part) for part in t.split("/", 1))
        except ValueError:
            return None
        # 2000 was a leap year, so this accepts 2/29
        if not 1 <= month <= 12 or not 1 <= day <= calendar.monthrange(2000, month)[1]:
            return None
        year = now.year
        while True:
            # Feb 29 waits for the next leap year
            if day <= calendar.monthrange(year, month)[1]:
                target = end_of_day(now.replace(year=year, month=month, day=day))
                if target >= now:
                    return target
            year += 1

    day = weekday_from_name(t)
    if day is not None:
        return next_weekday(day, now)
    return None


def parse_recurrence(word: str) -> Optional[Recurrence]:
    """Turn the word after `!every` into a recurrence rule."""
    w = word.strip().lower()
    if w in ("day", "daily"):
        return Recurrence("daily")
    if w in ("weekday", "weekdays"):
        return Recurrence("weekdays")
    if w in ("week", "weekly"):
        return Recurrence("weekly")
    if w in ("month", "monthly"):
        return Recurrence("monthly")
    day = weekday_from_name(w)
    if day is not None:
        return Recurrence("weekly", day_of_week=day)
    return None


def next_occurrence(recurrence: Recurrence, now: Optional[datetime] = None) -> datetime:
    """
    First occurrence of a recurrence strictly after today.

    Computed relative to `now`, not to a previous due date.
    """
    now = _now(now)

    if recurrence.type == "daily":
        return end_of_day(now + timedelta(days=1))

    if recurrence.type == "weekdays":
        d = now + timedelta(days=1)
        while d.weekday() >= 5:  # Saturday, Sunday
            d += timedelta(days=1)
        return end_of_day(d)

    if recurrence.type == "weekly":
        day = recurrence.day_of_week
        if day is None:
            day = weekday_index(now)
        return next_weekday(day, now)

    # monthly: same day next month, clamped to the month's length
    year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
    last_day = calendar.monthrange(year, month)[1]
    return end_of_day(now.replace(year=year, month=month, day=min(now.day, last_day)))


def format_due_token(due: datetime, now: Optional[datetime] = None) -> str:
    """Inverse of resolve_date, used to prefill the edit input."""
    now = _now(now)
    diff_days = (due.date() - now.date()).days
    if diff_days == 0:
        return "!today"
    if diff_days == 1:
        return "!tomorrow"
    if 0 < diff_days <= 7:
        return f"!{WEEKDAYS[weekday_index(due)]}"
    return f"!{due.month}/{due.day}"


def format_recurrence_token(recurrence: Recurrence) -> str:
    """Inverse of parse_recurrence, as a full `!every ...` token."""
    if recurrence.type == "daily":
        return "!every day"
    if recurrence.type == "weekdays":
        return "!every weekday"
    if recurrence.type == "weekly":
        if recurrence.day_of_week is None:
            return "!every week"
        return f"!every {WEEKDAYS[recurrence.day_of_week]}"
    return "!every month"


def format_countdown(seconds: float) -> str:
    """Format seconds as MM:SS."""
    total_secs = max(0, int(seconds))
    mins = total_secs // 60
    secs = total_secs % 60
    return f"{mins:02d}:{secs:02d}"
