"""Tests for debounced saving and external reloads."""

from pathlib import Path

import pytest

from persistence import PersistenceController
from storage import load_data, save_data
from store import VisorStore


@pytest.fixture()
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "data.json"


@pytest.fixture()
def controller(qapp, store, data_file):
    """Controller bound to a temp data file, already loaded."""
    ctrl = PersistenceController(store, data_file)
    ctrl.load()
    yield ctrl
    ctrl.save_timer.stop()


def _external_snapshot(content: str) -> dict:
    other = VisorStore()
    other.load_snapshot(None)
    other.add_task(content)
    return other.to_snapshot()


def test_load_without_file_starts_fresh(controller, store, data_file):
    assert store.data_loaded
    assert not data_file.exists()
    assert store.inbox_id in store.projects


def test_mutation_is_debounced_then_flushed(controller, store, data_file):
    store.add_task("Write tests")
    assert controller.save_timer.isActive()
    assert not data_file.exists()

    controller.flush()
    saved = load_data(data_file)
    assert [t["content"] for t in saved["tasks"].values()] == ["Write tests"]
    assert not controller.save_timer.isActive()


def test_transient_changes_do_not_save(controller, store):
    store.move_selection(1)
    store.show_toast("hello")
    assert not controller.save_timer.isActive()


def test_own_write_is_not_reloaded(controller, store, data_file):
    store.add_task("Mine")
    controller.flush()
    tasks_before = store.tasks
    controller._on_file_changed(str(data_file))
    assert store.tasks is tasks_before


def test_external_change_reloads_and_holds_saves(controller, store, data_file):
    save_data(_external_snapshot("From the API"), data_file)
    controller._on_file_changed(str(data_file))
    assert [t.content for t in store.tasks.values()] == ["From the API"]
    assert controller.guard_remaining() > 0

    store.add_task("Typed right after")
    controller._on_save_timer()
    # Held back by the reload guard and rescheduled
    assert controller.save_timer.isActive()
    saved = load_data(data_file)
    assert [t["content"] for t in saved["tasks"].values()] == ["From the API"]


def test_save_failure_sets_warning(qapp, store, tmp_path: Path):
    blocked = tmp_path / "data.json"
    blocked.mkdir()
    ctrl = PersistenceController(store, blocked)
    ctrl.load()
    failures = []
    ctrl.save_failed.connect(failures.append)

    store.add_task("Unsaveable")
    assert ctrl.save_now() is False
    assert store.save_warning == f"Could not save to {blocked}"
    assert failures == [store.save_warning]
    ctrl.save_timer.stop()


def test_close_flushes_and_detaches(controller, store, data_file):
    store.add_task("Last words")
    controller.close()
    assert data_file.exists()
    store.add_task("After close")
    assert not controller.save_timer.isActive()
