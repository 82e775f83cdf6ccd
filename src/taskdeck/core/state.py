# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    """
    Everything a front-end needs, passed around explicitly.

    The store is the only owner of tasks/projects/notifications; front-ends read
    through its query methods and change data through its mutation methods.
    """

    settings: object
    store: TaskStore
