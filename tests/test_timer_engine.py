"""Tests for the Qt timer engine."""

import pytest

from timer_engine import TimerEngine


@pytest.fixture()
def engine(qapp, store):
    eng = TimerEngine(store)
    yield eng
    eng.stop()


def test_focus_timer_follows_focus_session(engine, store):
    assert not engine.focus_timer.isActive()
    store.start_focus(25)
    assert engine.focus_timer.isActive()
    store.stop_focus()
    assert not engine.focus_timer.isActive()


def test_tick_finishes_session_once(engine, store, clock):
    finished = []
    engine.focus_finished.connect(lambda: finished.append(True))
    store.start_focus(1)

    clock.advance(seconds=30)
    engine._on_tick()
    assert store.focus.remaining == 30
    assert finished == []

    clock.advance(seconds=30)
    engine._on_tick()
    assert store.focus.finished
    assert finished == [True]
    assert not engine.focus_timer.isActive()


def test_toast_timer_restarts_per_toast(engine, store):
    store.show_toast("first")
    assert engine.toast_timer.isActive()
    store.show_toast("second")
    engine._on_toast_expired()
    assert store.toast is None
    assert not engine.toast_timer.isActive()


def test_stop_detaches_from_store(engine, store):
    engine.stop()
    store.show_toast("ignored")
    store.start_focus(5)
    assert not engine.toast_timer.isActive()
    assert not engine.focus_timer.isActive()
