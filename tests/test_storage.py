# tests/test_storage.py

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from taskdeck.tasks.storage import JsonFileStorage, StorageError
from taskdeck.tasks.task_store import TaskStore


def test_json_file_storage_get_and_set(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path / "storage")

    assert storage.get_item("tasks") is None

    storage.set_item("tasks", '[{"id": "task-1"}]')
    assert storage.get_item("tasks") == '[{"id": "task-1"}]'
    assert (tmp_path / "storage" / "tasks.json").exists()
    assert not (tmp_path / "storage" / "tasks.tmp").exists()

    storage.set_item("tasks", "[]")
    assert storage.get_item("tasks") == "[]"


def test_json_file_storage_rejects_bad_keys(tmp_path: Path) -> None:
    storage = JsonFileStorage(tmp_path)

    with pytest.raises(ValueError):
        storage.set_item("../escape", "[]")


def test_json_file_storage_write_failure_raises_storage_error(tmp_path: Path) -> None:
    root = tmp_path / "storage"
    storage = JsonFileStorage(root)
    shutil.rmtree(root)

    with pytest.raises(StorageError):
        storage.set_item("tasks", "[]")


def test_store_round_trip_on_disk(tmp_path: Path) -> None:
    first = TaskStore(JsonFileStorage(tmp_path))
    p = first.create_project(name="Disk")
    first.create_task(title="On disk", project_id=p.id, assignee_id="user-2")

    second = TaskStore(JsonFileStorage(tmp_path))

    assert [t.title for t in second.tasks] == ["On disk"]
    assert second.tasks[0].project_name == "Disk"
    assert second.get_unread_notifications_count() == 2
    assert sorted(f.name for f in tmp_path.glob("*.json")) == [
        "notifications.json",
        "projects.json",
        "tasks.json",
        "users.json",
    ]
