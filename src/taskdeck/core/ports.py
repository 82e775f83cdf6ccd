# src/taskdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The store and the scheduler depend on Protocols instead of concrete implementations.
This keeps storage backends swappable and makes testing easier.
"""

from datetime import datetime
from typing import Any, Protocol


class KeyValueStorage(Protocol):
    """
    Local persistent key-value storage (string values).

    Implementations raise StorageError on read/write failures.
    """

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...


class DueDateRepo(Protocol):
    """What the due-date sweep needs from the store."""

    def run_due_date_sweep(self, now: datetime | None = None) -> list[Any]: ...
