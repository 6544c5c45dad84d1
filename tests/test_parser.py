"""Tests for input classification and inline date tokens."""

from datetime import datetime

from models import Recurrence
from parser import InputKind, extract_content, mode_label, parse_due_date, parse_input

MONDAY = datetime(2024, 1, 15, 10, 0, 0)


def test_prefixes_select_the_mode():
    assert parse_input("> agenda").kind == InputKind.COMMAND
    assert parse_input("> agenda").text == "agenda"
    assert parse_input("/use work").text == "use work"
    assert parse_input("? milk") == parse_input("?milk")
    assert parse_input("? milk").kind == InputKind.SEARCH
    log = parse_input(": had coffee")
    assert log.kind == InputKind.LOG
    assert log.text == "had coffee"


def test_project_targeted_task():
    mode = parse_input("Work: ship it")
    assert mode.kind == InputKind.TASK
    assert mode.text == "ship it"
    assert mode.target_project == "work"


def test_plain_task_and_colon_without_space():
    assert parse_input("Buy milk").text == "Buy milk"
    assert parse_input("Buy milk").target_project is None
    assert parse_input("note:nospace").target_project is None
    assert parse_input("12:30 meeting").text == "12:30 meeting"


def test_empty_input_is_an_empty_task():
    mode = parse_input("   ")
    assert mode.kind == InputKind.TASK
    assert mode.text == ""


def test_extract_content_strips_any_prefix():
    assert extract_content("> foo") == "foo"
    assert extract_content("work: write report") == "write report"
    assert extract_content("plain") == "plain"


def test_mode_label():
    assert mode_label(parse_input("hello")) == "TASK → INBOX"
    assert mode_label(parse_input("work: hello")) == "TASK → WORK"
    assert mode_label(parse_input("> help")) == "CMD"
    assert mode_label(parse_input("? x")) == "SEARCH"


def test_deadline_token_is_removed():
    parsed = parse_due_date("Ship report !friday", MONDAY)
    assert parsed.content == "Ship report"
    assert parsed.due_at == datetime(2024, 1, 19, 23, 59, 59)
    assert parsed.scheduled is None


def test_token_in_the_middle_keeps_single_spacing():
    parsed = parse_due_date("Call !tom about invoice", MONDAY)
    assert parsed.content == "Call about invoice"


def test_scheduled_token():
    parsed = parse_due_date("Call mom @tomorrow", MONDAY)
    assert parsed.content == "Call mom"
    assert parsed.scheduled == datetime(2024, 1, 16, 23, 59, 59)
    assert parsed.due_at is None


def test_email_address_is_not_a_schedule():
    parsed = parse_due_date("Email bob@example.com", MONDAY)
    assert parsed.content == "Email bob@example.com"
    assert parsed.scheduled is None


def test_invalid_date_token_stays_in_content():
    parsed = parse_due_date("Fix !13/45 thing", MONDAY)
    assert parsed.content == "Fix !13/45 thing"
    assert parsed.due_at is None


def test_recurrence_sets_first_occurrence_as_deadline():
    parsed = parse_due_date("Standup !every weekday", MONDAY)
    assert parsed.content == "Standup"
    assert parsed.recurrence == Recurrence("weekdays")
    assert parsed.due_at == datetime(2024, 1, 16, 23, 59, 59)


def test_explicit_deadline_wins_over_recurrence():
    parsed = parse_due_date("Pay rent !every month !1/31", MONDAY)
    assert parsed.content == "Pay rent"
    assert parsed.recurrence == Recurrence("monthly")
    assert parsed.due_at == datetime(2024, 1, 31, 23, 59, 59)


def test_only_a_token_leaves_empty_content():
    assert parse_due_date("!today", MONDAY).content == ""
