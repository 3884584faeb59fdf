"""Shared pytest fixtures for PrepTick tests."""

import os
import sys
import tempfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("PREPTICK_HOME", tempfile.mkdtemp(prefix="preptick-tests-"))

import pytest

from PyQt6.QtWidgets import QApplication

from preptick.database.db import KeyValueStore, configure_engine, init_db
from preptick.notifications import InMemoryNotificationCenter, NotificationScheduler
from preptick.store import TimerStore

from helpers import FakeClock


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def center():
    """Authorized in-memory alert queue."""
    return InMemoryNotificationCenter()


@pytest.fixture
def scheduler(center):
    return NotificationScheduler(center)


@pytest.fixture
def storage():
    return KeyValueStore()


@pytest.fixture
def store(qapp, storage, scheduler, clock):
    """Fresh store on a seeded, empty database."""
    return TimerStore(storage, scheduler, clock=clock)
