"""Tests for browse-mode key handling."""

from config import INBOX_ID
from keyboard import handle_key
from models import TaskStatus
from store import InputPurpose
from views import AgendaView, DetailView, ProjectSettingsView, ProjectView, TemplatesView, ThreadView


def _in_inbox(store, *contents):
    tasks = [store.add_task(c) for c in contents]
    store.push_view(ProjectView(INBOX_ID))
    return tasks


def test_enter_on_project_opens_it(store):
    assert handle_key(store, "Enter")
    assert store.nav.current() == ProjectView(INBOX_ID)


def test_j_and_k_move_selection(store):
    _in_inbox(store, "a", "b", "c")
    handle_key(store, "j")
    handle_key(store, "j")
    handle_key(store, "j")
    assert store.nav.selected_index == 2
    handle_key(store, "k")
    assert store.nav.selected_index == 1


def test_h_goes_back(store):
    _in_inbox(store, "a")
    handle_key(store, "h")
    assert len(store.nav) == 1


def test_enter_on_leaf_opens_detail_and_parent_opens_thread(store):
    parent = store.add_task("parent")
    store.add_task("child", indent=1)
    leaf = store.add_task("leaf")
    store.push_view(ProjectView(INBOX_ID))

    handle_key(store, "Enter")
    assert store.nav.current() == ThreadView(INBOX_ID, parent.id)
    handle_key(store, "h")
    handle_key(store, "j")
    handle_key(store, "l")
    assert store.nav.current() == DetailView(leaf.id)


def test_enter_in_agenda_jumps_to_task(store):
    task = store.add_task("Due today !today")
    store.push_view(AgendaView())
    handle_key(store, "Enter")
    assert store.nav.current() == ProjectView(INBOX_ID)
    assert store.selected_item().data is task


def test_space_cycles_status(store):
    (task,) = _in_inbox(store, "a")
    handle_key(store, " ")
    assert task.status == TaskStatus.DOING


def test_space_in_detail_view_cycles_that_task(store):
    task = store.add_task("a")
    store.push_view(DetailView(task.id))
    handle_key(store, " ")
    assert task.status == TaskStatus.DOING


def test_x_archives_and_u_undoes(store):
    (task,) = _in_inbox(store, "a")
    handle_key(store, "x")
    assert task.archived is True
    handle_key(store, "u")
    assert store.tasks[task.id].archived is False


def test_x_deletes_template(store):
    store.add_task("a")
    store.save_template("T")
    store.push_view(TemplatesView())
    handle_key(store, "x")
    assert store.templates == []


def test_e_edits_task_or_opens_project_settings(store):
    handle_key(store, "e")
    assert store.nav.current() == ProjectSettingsView(INBOX_ID)

    store.go_home()
    (task,) = _in_inbox(store, "a")
    handle_key(store, "e")
    assert store.input_visible
    assert store.input_purpose == InputPurpose.EDIT
    assert store.editing_task_id == task.id


def test_n_edits_notes_in_detail_view(store):
    task = store.add_task("a")
    store.push_view(DetailView(task.id))
    handle_key(store, "n")
    assert store.input_purpose == InputPurpose.NOTES
    assert store.editing_task_id == task.id


def test_mode_keys_open_prefilled_input(store):
    handle_key(store, ">")
    assert store.input_purpose == InputPurpose.COMMAND
    assert store.input_prefill == "> "
    store.hide_input()
    handle_key(store, "/")
    assert store.input_prefill == "? "
    store.hide_input()
    handle_key(store, ":")
    assert store.input_purpose == InputPurpose.JOURNAL


def test_keys_are_ignored_while_input_is_open(store):
    _in_inbox(store, "a", "b")
    store.show_input()
    assert handle_key(store, "j") is False
    assert store.nav.selected_index == 0


def test_ctrl_z_undoes_and_ctrl_shift_z_redoes(store):
    store.add_task("a")
    store.show_input()
    assert handle_key(store, "z", ctrl=True)
    assert store.tasks == {}
    assert handle_key(store, "Z", ctrl=True, shift=True)
    assert len(store.tasks) == 1


def test_escape_cascade(store):
    store.open_settings()
    store.show_input()
    handle_key(store, "Escape")
    assert store.settings_open is False
    assert store.input_visible is True
    handle_key(store, "Escape")
    assert store.input_visible is False
    assert store.is_visible is True
    handle_key(store, "Escape")
    assert store.is_visible is False


def test_alt_arrow_reorders_and_follows_selection(store):
    a, b = _in_inbox(store, "a", "b")
    assert handle_key(store, "ArrowUp") is False
    handle_key(store, "ArrowDown", alt=True)
    assert store.projects[INBOX_ID].task_order == [b.id, a.id]
    assert store.selected_item().data is a


def test_shift_enter_opens_thread_for_subtask(store):
    (parent,) = _in_inbox(store, "parent")
    handle_key(store, "Enter", shift=True)
    assert store.nav.current() == ThreadView(INBOX_ID, parent.id)
    assert store.input_visible
    store.submit_input("child")
    (child,) = store.get_project_tasks(INBOX_ID, parent.id)
    assert child.content == "child"


def test_f_stops_focus(store):
    store.start_focus(5)
    handle_key(store, "f")
    assert store.focus is None
