# src/taskdeck/tasks/storage.py

from __future__ import annotations

import contextlib
import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(RuntimeError):
    """A persistence read/write failed. In-memory state is still valid; retry later."""


class JsonFileStorage:
    """
    Local key-value storage: one JSON document per key.

    Layout:
      <root>/<key>.json

    Values are opaque strings (already-serialized JSON). Writes go through a temp
    file and os.replace, so a crash mid-write never leaves a truncated document.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        logger.info("JsonFileStorage ready root=%s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key or ""):
            raise ValueError(f"invalid storage key: {key!r}")
        return self._root / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text("utf-8")
        except OSError as e:
            raise StorageError(f"failed to read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(value, "utf-8")
            os.replace(tmp, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageError(f"failed to write {path}: {e}") from e
        logger.debug("Stored key=%s bytes=%d", key, len(value))
