# src/taskdeck/tasks/task_scheduler.py

from __future__ import annotations

"""
Due-date sweep scheduler.

A small recurring loop that:
- sweeps once right away (startup),
- then sweeps again every interval_seconds (one day by default),
- stops when its asyncio task is cancelled or its stop event is set.

The sweep itself (what to emit, dedupe) lives in TaskStore.run_due_date_sweep.
"""

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.ports import DueDateRepo

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 24 * 60 * 60.0


async def run_due_date_sweep(
        repo: DueDateRepo,
        *,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Sweep now, then every interval_seconds until stopped.

    A failing sweep is logged and retried on the next tick; it never kills the loop.
    To stop, cancel the coroutine/task or set stop_event.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            emitted = repo.run_due_date_sweep()
            if emitted:
                logger.info("Due-date sweep emitted %d notification(s)", len(emitted))
        except Exception:
            logger.exception("Due-date sweep failed")

        if stop_event is None:
            await asyncio.sleep(sleep_s)
            continue

        # Wake up early when asked to stop.
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)
        except TimeoutError:
            continue
        logger.info("Due-date sweep stopped")
        return


@dataclass
class DueDateSweepRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal due-date sweep stop (loop closed).", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_due_date_sweep_in_background(
    repo: DueDateRepo,
    *,
    interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
) -> DueDateSweepRunner | None:
    """
    Start the sweep loop in a background thread with its own event loop.

    Why a thread:
    - the console REPL is blocking (input()),
    - the sweep is an async loop that wants its own event loop.
    The store serializes access with its own lock, so both sides can call it.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_due_date_sweep(repo, interval_seconds=interval_seconds, stop_event=stop_event)
            )
        finally:
            with contextlib.suppress(Exception):
                loop.stop()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="due-date-sweep", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Due-date sweep thread did not initialize properly.")
        return None

    logger.info("Due-date sweep started (interval=%.0fs).", interval_seconds)
    return DueDateSweepRunner(thread=t, loop=loop, stop_event=stop_event)
