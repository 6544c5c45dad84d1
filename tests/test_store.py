"""Tests for the VisorStore state engine."""

from datetime import datetime, timedelta

import pytest

from config import DEFAULT_PROJECT_COLOR, INBOX_ID
from models import TaskStatus
from store import ANY_PARENT, InputPurpose
from views import (
    AgendaView, HomeView, JournalView, ProjectView, SearchView, ThreadView,
)


def test_add_task_defaults_to_inbox(store, clock):
    task = store.add_task("Buy milk")
    assert task.project_id == INBOX_ID
    assert task.status == TaskStatus.TODO
    assert task.created_at == clock.now
    assert store.projects[INBOX_ID].task_order == [task.id]


def test_add_task_parses_date_tokens(store):
    task = store.add_task("Ship report !fri")
    assert task.content == "Ship report"
    assert task.due_at == datetime(2024, 1, 19, 23, 59, 59)


def test_add_task_to_unknown_slug_creates_project(store):
    task = store.add_task("Ship it", "work")
    project = store.find_project_by_slug("work")
    assert project is not None
    assert project.name == "Work"
    assert project.color == DEFAULT_PROJECT_COLOR
    assert task.project_id == project.id
    assert store.toast.message == 'Created project "Work"'


def test_empty_task_is_rejected(store):
    assert store.add_task("!today") is None
    assert store.tasks == {}
    assert store.toast.message == "Task is empty"


def test_add_task_uses_current_project_context(store):
    work = store.create_project("Work", "work")
    store.push_view(ProjectView(work.id))
    store.push_view(SearchView("anything"))
    task = store.add_task("Inside work")
    assert task.project_id == work.id


def test_indent_links_to_previous_shallower_task(store):
    parent = store.add_task("Parent")
    child = store.add_task("Child", indent=1)
    assert child.parent_id == parent.id
    assert store.get_project_tasks(INBOX_ID, None) == [parent]
    assert store.get_project_tasks(INBOX_ID, parent.id) == [child]
    assert store.get_project_tasks(INBOX_ID, ANY_PARENT) == [parent, child]
    assert store.child_count(parent.id) == 1


def test_thread_view_parents_new_tasks(store):
    parent = store.add_task("Parent")
    store.push_view(ThreadView(INBOX_ID, parent.id))
    child = store.add_task("Sub")
    assert child.parent_id == parent.id
    assert child.indent == 1
    # A thread in another project does not adopt the task
    elsewhere = store.add_task("Elsewhere", "work")
    assert elsewhere.parent_id is None


def test_thread_children_keep_nesting_through_templates(store):
    plan = store.add_task("Plan")
    store.push_view(ThreadView(INBOX_ID, plan.id))
    store.add_task("Research")
    store.pop_view()
    template = store.save_template("Planning")
    assert [(e.content, e.indent) for e in template.entries] == [("Plan", 0), ("Research", 1)]

    other = store.create_project("Other", "other")
    store.push_view(ProjectView(other.id))
    store.apply_template(template.id)
    (top,) = store.get_project_tasks(other.id, None)
    assert top.content == "Plan"
    assert [t.content for t in store.get_project_tasks(other.id, top.id)] == ["Research"]


def test_pending_indent_level_is_consumed(store):
    store.set_next_indent_level(7)
    assert store.next_indent_level == 3
    task = store.add_task("Deep")
    assert task.indent == 3
    assert store.next_indent_level == 0


def test_dangling_parent_is_treated_as_top_level(store):
    task = store.add_task("Orphan")
    task.parent_id = "missing"
    assert store.effective_parent_id(task) is None
    assert store.get_project_tasks(INBOX_ID, None) == [task]


def test_complete_task_toggles(store, clock):
    task = store.add_task("Write tests")
    store.complete_task(task.id)
    assert task.status == TaskStatus.DONE
    assert task.completed
    assert task.completed_at == clock.now
    store.complete_task(task.id)
    assert task.status == TaskStatus.TODO
    assert task.completed_at is None


def test_cycle_status_walks_the_cycle(store, clock):
    task = store.add_task("Cycle me")
    seen = []
    for _ in range(5):
        store.cycle_task_status(task.id)
        seen.append(task.status)
    assert seen == [
        TaskStatus.DOING, TaskStatus.DONE, TaskStatus.CANCELLED,
        TaskStatus.WAITING, TaskStatus.TODO,
    ]
    assert task.completed_at == clock.now


def test_cancelled_counts_as_completed(store):
    task = store.add_task("Maybe")
    store.update_task(task.id, status=TaskStatus.CANCELLED)
    assert task.completed


def test_archive_hides_but_keeps_order(store):
    task = store.add_task("Old")
    store.archive_task(task.id)
    assert task.archived
    assert store.get_project_tasks(INBOX_ID) == []
    assert task.id in store.projects[INBOX_ID].task_order


def test_update_task_is_not_undoable(store):
    task = store.add_task("Draft")
    depth = len(store.history.undo_stack)
    store.update_task(task.id, content="Final", status="DONE")
    assert task.content == "Final"
    assert task.completed_at is not None
    assert len(store.history.undo_stack) == depth


def test_update_task_rejects_unknown_fields(store):
    task = store.add_task("Draft")
    with pytest.raises(TypeError):
        store.update_task(task.id, project_id="elsewhere")


def test_move_task_order(store):
    a = store.add_task("a")
    b = store.add_task("b")
    c = store.add_task("c")
    store.move_task_order(c.id, "up")
    assert store.projects[INBOX_ID].task_order == [a.id, c.id, b.id]
    depth = len(store.history.undo_stack)
    store.move_task_order(a.id, "up")
    assert store.projects[INBOX_ID].task_order == [a.id, c.id, b.id]
    assert len(store.history.undo_stack) == depth


def _due(store, content, due_at, status=None):
    task = store.add_task(content)
    store.update_task(task.id, due_at=due_at)
    if status is not None:
        store.update_task(task.id, status=status)
    return task


def test_agenda_buckets(store, clock):
    now = clock.now
    overdue = _due(store, "overdue", now - timedelta(days=1))
    today = _due(store, "today", now.replace(hour=23, minute=59, second=59))
    week = _due(store, "week", datetime(2024, 1, 22, 23, 59, 59))
    later = _due(store, "later", datetime(2024, 1, 23, 0, 0))
    doing = _due(store, "doing", now, status=TaskStatus.DOING)
    _due(store, "done", now, status=TaskStatus.DONE)
    store.add_task("no date")
    archived = _due(store, "archived", now)
    store.archive_task(archived.id)

    agenda = store.get_agenda_tasks()
    assert agenda.doing == [doing]
    assert agenda.overdue == [overdue]
    assert agenda.today == [today]
    assert agenda.this_week == [week]
    assert agenda.upcoming == [later]


def test_upcoming_is_capped_and_sorted(store, clock):
    base = clock.now + timedelta(days=30)
    for i in range(12):
        _due(store, f"far {i}", base + timedelta(days=12 - i))
    upcoming = store.get_agenda_tasks().upcoming
    assert len(upcoming) == 10
    assert upcoming == sorted(upcoming, key=lambda t: t.due_at)
    assert upcoming[0].content == "far 11"


def test_project_list_puts_inbox_first(store):
    store.create_project("Zeta", "zeta")
    store.create_project("alpha", "alpha")
    assert [p.slug for p in store.project_list()] == ["inbox", "alpha", "zeta"]


def test_project_stats_round_half_up(store):
    tasks = [store.add_task(f"t{i}", "work") for i in range(3)]
    store.complete_task(tasks[0].id)
    store.complete_task(tasks[1].id)
    stats = {s.project.slug: s for s in store.get_project_stats()}
    assert stats["work"].total == 3
    assert stats["work"].pending == 1
    assert stats["work"].progress == 67
    assert stats["inbox"].progress == 0


def test_create_project_rejects_duplicates(store):
    assert store.create_project("Work", "work") is not None
    assert store.create_project("Other", "WORK") is None
    assert store.toast.message == 'Project "work" already exists'


def test_delete_project_removes_tasks_and_resets_navigation(store):
    task = store.add_task("Ship", "work")
    work = store.find_project_by_slug("work")
    store.push_view(ProjectView(work.id))
    assert store.delete_project("work") is True
    assert work.id not in store.projects
    assert task.id not in store.tasks
    assert store.nav.entries == [HomeView()]
    assert store.toast.message == 'Deleted project "Work"'


def test_delete_project_refuses_inbox_and_unknown(store):
    store.add_task("Stays")
    store.push_view(ProjectView(INBOX_ID))
    before = store.data_snapshot()
    entries = list(store.nav.entries)

    assert store.delete_project("inbox") is False
    assert store.toast.message == "Cannot delete Inbox"
    assert store.delete_project("nope") is False
    assert store.toast.message == 'Project "nope" not found'
    assert store.data_snapshot() == before
    assert store.nav.entries == entries


def test_journal_entries_newest_first(store, clock):
    work = store.create_project("Work", "work")
    store.push_view(ProjectView(work.id))
    store.add_log_entry("first")
    clock.advance(minutes=1)
    store.add_log_entry("second")
    assert [e.content for e in store.journal_entries(work.id)] == ["second", "first"]
    assert store.journal_entries(INBOX_ID) == []


def test_template_save_and_apply(store):
    store.push_view(ProjectView(store.find_project_by_slug("inbox").id))
    store.add_task("Plan")
    store.add_task("Research", indent=1)
    template = store.save_template("Sprint")
    assert [(e.content, e.indent) for e in template.entries] == [("Plan", 0), ("Research", 1)]
    assert store.find_template("sprint") is template

    other = store.create_project("Other", "other")
    store.push_view(ProjectView(other.id))
    store.apply_template(template.id)
    plan, research = store.get_project_tasks(other.id)
    assert research.parent_id == plan.id
    assert store.toast.message == 'Applied template "Sprint"'


def test_template_save_needs_tasks(store):
    assert store.save_template("Empty") is None
    assert store.toast.message == "No tasks to save as template"


def test_search_view_lists_matches(store):
    milk = store.add_task("Buy milk")
    gone = store.add_task("Milk shake")
    store.archive_task(gone.id)
    store.add_task("File taxes")
    store.search_tasks("milk")
    assert store.nav.current() == SearchView("milk")
    assert [item.data for item in store.view_items()] == [milk]


def test_navigate_to_task_rebuilds_thread_stack(store):
    a = store.add_task("a", "work")
    b = store.add_task("b", "work", indent=1)
    store.add_task("c1", "work", indent=2)
    c2 = store.add_task("c2", "work", indent=2)
    store.push_view(AgendaView())

    store.navigate_to_task(c2.id)
    assert store.nav.entries == [
        HomeView(), ProjectView(a.project_id),
        ThreadView(a.project_id, a.id), ThreadView(a.project_id, b.id),
    ]
    assert store.nav.selected_index == 1
    assert store.selected_item().data is c2


def test_navigate_to_task_survives_parent_cycle(store):
    a = store.add_task("a")
    b = store.add_task("b")
    a.parent_id = b.id
    b.parent_id = a.id
    store.navigate_to_task(a.id)
    assert isinstance(store.nav.current(), ThreadView)


def test_navigate_to_unknown_task_is_ignored(store):
    store.push_view(AgendaView())
    store.navigate_to_task("missing")
    assert store.nav.current() == AgendaView()


def test_home_view_items(store, clock):
    today = _due(store, "today", clock.now + timedelta(hours=1))
    _due(store, "next week", clock.now + timedelta(days=3))
    store.create_project("Work", "work")
    items = store.view_items()
    assert [(i.kind, getattr(i.data, "content", None) or i.data.slug) for i in items] == [
        ("task", "today"), ("project", "inbox"), ("project", "work"),
    ]
    assert items[0].data is today


def test_breadcrumb_labels(store):
    long = store.add_task("An unusually long task description")
    store.push_view(ProjectView(INBOX_ID))
    store.push_view(ThreadView(INBOX_ID, long.id))
    store.push_view(SearchView("milk"))
    assert store.breadcrumb() == ["~", "inbox", "An unusually long ta…", '"milk"']

    store.truncate_view(2)
    assert store.breadcrumb() == ["~", "inbox"]
    assert store.nav.current() == ProjectView(INBOX_ID)


def test_save_warning_is_shown_once_and_cleared(store):
    calls = []
    store.subscribe(calls.append)
    store.set_save_warning("Could not save")
    store.set_save_warning("Could not save")
    assert store.save_warning == "Could not save"
    assert store.toast.message == "Could not save"
    assert calls == [False]
    store.set_save_warning(None)
    assert store.save_warning is None
    assert calls == [False, False]


def test_focus_countdown(store, clock):
    store.start_focus(25)
    assert store.focus.remaining == 1500
    clock.advance(minutes=10)
    store.tick_focus()
    assert store.focus.remaining == 900
    clock.advance(minutes=20)
    store.tick_focus()
    assert store.focus.remaining == 0
    assert store.focus.finished
    toast = store.toast
    assert toast.message == "Focus session complete"
    store.tick_focus()
    assert store.toast is toast


def test_clear_toast_only_clears_matching_toast(store):
    store.show_toast("first")
    first = store.toast
    store.show_toast("second")
    store.clear_toast(first)
    assert store.toast.message == "second"
    store.clear_toast(store.toast)
    assert store.toast is None


def test_subscribers_see_persist_flag(store):
    calls = []
    unsubscribe = store.subscribe(calls.append)
    store.add_task("Saved")
    store.move_selection(1)
    assert calls[0] is True
    assert calls[-1] is False
    unsubscribe()
    store.add_task("Unseen")
    assert len(calls) == 2


def test_submit_input_routes_by_mode(store):
    store.show_input(InputPurpose.COMMAND, "> ")
    store.submit_input("> agenda")
    assert store.nav.current() == AgendaView()
    assert store.input_visible is False

    store.submit_input("work: Write docs")
    assert store.find_project_by_slug("work") is not None

    store.submit_input(": shipped v1")
    assert store.log_entries[-1].content == "shipped v1"

    store.submit_input("? docs")
    assert store.nav.current() == SearchView("docs")


def test_submit_blank_input_does_nothing(store):
    store.show_input()
    store.submit_input("   ")
    assert store.input_visible is True
    assert store.tasks == {}


def test_edit_prefills_tokens_and_applies_changes(store):
    task = store.add_task("Ship report !fri")
    store.start_edit(task.id)
    assert store.input_purpose == InputPurpose.EDIT
    assert store.input_prefill == "Ship report !fri"

    store.submit_input("Ship final report !tomorrow")
    assert task.content == "Ship final report"
    assert task.due_at == datetime(2024, 1, 16, 23, 59, 59)
    assert store.editing_task_id is None
    assert len(store.tasks) == 1


def test_notes_input_sets_notes(store):
    task = store.add_task("Research")
    store.start_notes(task.id)
    assert store.input_purpose == InputPurpose.NOTES
    store.submit_input("  links and ideas ")
    assert task.notes == "links and ideas"


def test_suggestions(store):
    store.create_project("Work", "work")
    commands = [s.label for s in store.suggestions("> ag")]
    assert "agenda" in commands
    assert store.suggestions("> ag")[0].accept.startswith("> ")

    projects = store.suggestions("wo")
    assert [(s.label, s.accept) for s in projects] == [("work:", "work: ")]
    assert store.suggestions("work") == []
    assert store.suggestions("wo rk") == []
    assert store.suggestions(">") == []


def test_settings_and_visibility(store):
    store.update_settings(general={"show_welcome": False, "unknown": 1})
    assert store.settings.general.show_welcome is False
    store.toggle_settings()
    assert store.settings_open
    store.hide()
    assert store.is_visible is False
    store.toggle_visibility()
    assert store.is_visible is True


def test_snapshot_round_trip(store, clock):
    from store import VisorStore

    store.add_task("Ship !every fri", "work")
    store.push_view(JournalView(store.find_project_by_slug("work").id))
    store.add_log_entry("kickoff")

    restored = VisorStore(clock=clock)
    restored.load_snapshot(store.to_snapshot())
    assert restored.data_snapshot() == store.data_snapshot()
    assert restored.nav.entries == store.nav.entries
    assert restored.data_loaded


def test_load_migrates_legacy_data(store):
    data = {
        "projects": [
            {"id": "inbox", "name": "Inbox", "slug": "inbox", "color": "#fff",
             "isInbox": True, "taskOrder": ["t1"]},
            {"id": "p1", "name": "Work", "slug": "work", "color": "#000",
             "taskOrder": ["t2", "t2", "ghost"]},
            {"id": "p2", "name": "Work again", "slug": "Work", "color": "#000"},
        ],
        "tasks": {
            "t1": {"id": "t1", "content": "legacy done", "completed": True,
                   "projectId": "inbox", "createdAt": 1700000000000},
            "t2": {"id": "t2", "content": "work", "projectId": "p1",
                   "createdAt": "2024-01-01T09:00:00"},
            "t3": {"id": "t3", "content": "dup project task", "projectId": "p2",
                   "createdAt": "2024-01-02T09:00:00"},
            "t4": {"id": "t4", "content": "orphan", "projectId": "gone",
                   "createdAt": "2024-01-03T09:00:00"},
            "bad": {"content": "no id"},
        },
        "viewStack": [
            {"type": "project", "projectId": "p2"},
            {"type": "bogus"},
            {"type": "project", "projectId": "p1"},
        ],
    }
    store.load_snapshot(data)

    assert set(store.projects) == {"inbox", "p1"}
    assert set(store.tasks) == {"t1", "t2", "t3", "t4"}
    assert store.tasks["t1"].status == TaskStatus.DONE
    assert store.tasks["t3"].project_id == "p1"
    assert store.tasks["t4"].project_id == "inbox"
    assert store.projects["p1"].task_order == ["t2", "t3"]
    assert store.projects["inbox"].task_order == ["t1", "t4"]
    assert store.nav.entries == [HomeView(), ProjectView("p1")]


def test_load_recreates_missing_inbox(store):
    store.load_snapshot({"projects": [{"id": "p1", "name": "Work", "slug": "work", "color": "#000"}]})
    assert store.projects[INBOX_ID].is_inbox
    assert store.inbox_id == INBOX_ID


def test_reload_keeps_navigation_and_settings(store):
    store.push_view(AgendaView())
    store.update_settings(general={"show_welcome": False})
    snapshot = store.to_snapshot()
    snapshot["tasks"] = {"x": {"id": "x", "content": "from elsewhere", "project_id": "inbox"}}
    snapshot["view_stack"] = []
    snapshot["settings"] = {}

    calls = []
    store.subscribe(calls.append)
    store.reload_data(snapshot)
    assert store.nav.current() == AgendaView()
    assert store.settings.general.show_welcome is False
    assert store.tasks["x"].content == "from elsewhere"
    assert calls == [False]
