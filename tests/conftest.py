"""Shared test fixtures: a store on a pinned clock and a Qt core application."""

import itertools
from datetime import datetime, timedelta

import pytest

from store import VisorStore

# Monday morning; every relative date in the tests is computed from here
MONDAY = datetime(2024, 1, 15, 10, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(MONDAY)


@pytest.fixture()
def store(clock: FakeClock) -> VisorStore:
    """Fresh store with sequential ids ("id-1", "id-2", ...)."""
    counter = itertools.count(1)
    s = VisorStore(clock=clock, id_factory=lambda: f"id-{next(counter)}")
    s.load_snapshot(None)
    return s


@pytest.fixture(scope="session")
def qapp():
    """One QCoreApplication for every test that creates timers or watchers."""
    from PyQt6.QtCore import QCoreApplication
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
