# src/taskdeck/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the due-date sweep in a background thread (optional),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.task_scheduler import DueDateSweepRunner, start_due_date_sweep_in_background

logger = logging.getLogger(__name__)


def _shutdown(state: AppState, sweep_runner: DueDateSweepRunner | None) -> None:
    """Best-effort shutdown: stop the sweep first, then flush the store."""
    if sweep_runner is not None:
        sweep_runner.stop()
        sweep_runner.join(timeout=10.0)

    try:
        state.store.close()
    except Exception:
        logger.exception("Store close failed.")


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    sweep_runner: DueDateSweepRunner | None = None
    if settings.due_sweep_enabled:
        sweep_runner = start_due_date_sweep_in_background(
            state.store,
            interval_seconds=settings.due_sweep_interval_seconds,
        )

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            # Console handles Ctrl+C itself (KeyboardInterrupt ends the REPL).
            run_console_loop(state)
            stop_main.set()
        else:
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except (ValueError, OSError):
                # Some platforms may not support SIGTERM, etc.
                pass
            logger.info("Console disabled. Running the due-date sweep only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        _shutdown(state, sweep_runner)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
