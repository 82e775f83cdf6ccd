# src/taskdeck/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskdeck.log"

# Loggers that print from the background sweep thread while the REPL waits on input().
_BACKGROUND_LOGGERS = frozenset({"taskdeck.tasks.task_scheduler"})


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable next to the `taskdeck>` prompt.

    The store logs every mutation and the sweep wakes up on its own thread, so
    on stderr we only let through:
    - taskdeck records, except the sweep loop below WARNING
    - anything else (warnings.warn included) at ERROR or above

    The log file is not filtered.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name in _BACKGROUND_LOGGERS:
            return record.levelno >= logging.WARNING
        if record.name.startswith("taskdeck."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskdeck",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Route logs to stderr (filtered) and to <log_dir>/taskdeck.log (everything at file_level).

    Called once from cli.main before the store is built, so the store's
    startup line already lands in the file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_dir / LOG_FILE_NAME), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
