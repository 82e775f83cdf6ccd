# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.core.state import AppState
from taskdeck.tasks.task_models import Project
from taskdeck.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeStorage

# Midday, local time: day-granularity checks never straddle midnight.
START = datetime(2024, 5, 15, 12, 0).astimezone()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def store(storage: FakeStorage, clock: FakeClock) -> TaskStore:
    """Real TaskStore over in-memory storage and a frozen clock."""
    return TaskStore(storage, current_user_id="user-1", clock=clock)


@pytest.fixture()
def project(store: TaskStore) -> Project:
    return store.create_project(name="Website", description="Company site relaunch")


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskdeck",
        data_dir=tmp_path,
        storage_dir=tmp_path / "storage",
        log_dir=tmp_path,
        current_user_id="user-1",
        due_sweep_enabled=False,
        due_sweep_interval_seconds=86400.0,
        console_enabled=False,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    return AppState(settings=settings, store=store)
