# tests/test_notifications.py

from __future__ import annotations

from datetime import timedelta

from taskdeck.tasks.filters import local_date
from taskdeck.tasks.notifications import (
    DUE_OVERDUE,
    DUE_TODAY,
    build_due_date_alert,
    collect_due_date_alerts,
    due_date_dedupe_key,
)
from taskdeck.tasks.task_models import NotificationType
from taskdeck.tasks.task_store import TaskStore


def test_build_due_date_alert_buckets(store, project, clock) -> None:
    today = local_date(clock())
    due_now = store.create_task(title="Now", project_id=project.id, due_date=clock())
    late = store.create_task(title="Late", project_id=project.id, due_date=clock() - timedelta(days=2))
    later = store.create_task(title="Later", project_id=project.id, due_date=clock() + timedelta(days=2))
    done = store.create_task(title="Done", project_id=project.id, status="done", due_date=clock())
    undated = store.create_task(title="Undated", project_id=project.id)

    a = build_due_date_alert(due_now, today)
    b = build_due_date_alert(late, today)

    assert a is not None and a.bucket == DUE_TODAY and "due today" in a.text
    assert b is not None and b.bucket == DUE_OVERDUE and "overdue" in b.text
    assert b.dedupe_key == due_date_dedupe_key(late.id, DUE_OVERDUE, today)
    assert build_due_date_alert(later, today) is None
    assert build_due_date_alert(done, today) is None
    assert build_due_date_alert(undated, today) is None


def test_collect_due_date_alerts_skips_known_keys(store, project, clock) -> None:
    today = local_date(clock())
    t = store.create_task(title="Now", project_id=project.id, due_date=clock())
    key = due_date_dedupe_key(t.id, DUE_TODAY, today)

    assert [a.dedupe_key for a in collect_due_date_alerts([t], today, set())] == [key]
    assert collect_due_date_alerts([t], today, {key}) == []


def test_sweep_emits_once_per_task_per_day(store, project, clock) -> None:
    today_t = store.create_task(title="Ship", project_id=project.id, due_date=clock())
    late = store.create_task(title="Invoice", project_id=project.id, due_date=clock() - timedelta(days=1))
    store.create_task(title="Future", project_id=project.id, due_date=clock() + timedelta(days=3))

    first = store.run_due_date_sweep()
    assert {n.task_id for n in first} == {today_t.id, late.id}
    assert all(n.type == NotificationType.DUE_DATE for n in first)
    assert all(not n.read for n in first)

    assert store.run_due_date_sweep() == []

    # Next day: "Ship" is now overdue, "Invoice" gets its overdue reminder again.
    clock.advance(days=1)
    second = store.run_due_date_sweep()
    assert {n.task_id for n in second} == {today_t.id, late.id}
    assert all("overdue" in n.content for n in second)


def test_sweep_dedupe_survives_reload(storage, store, project, clock) -> None:
    store.create_task(title="Ship", project_id=project.id, due_date=clock())
    assert len(store.run_due_date_sweep()) == 1

    reloaded = TaskStore(storage, clock=clock)
    assert reloaded.run_due_date_sweep() == []


def test_sweep_ignores_completed_tasks(store, project, clock) -> None:
    t = store.create_task(title="Finished", project_id=project.id, due_date=clock() - timedelta(days=1))
    store.update_task_status(t.id, "done")

    assert store.run_due_date_sweep() == []


def test_deleting_task_removes_its_due_date_notifications(store, project, clock) -> None:
    t = store.create_task(title="Gone", project_id=project.id, due_date=clock())
    store.run_due_date_sweep()

    store.delete_task(t.id)

    assert all(n.task_id != t.id for n in store.notifications)
