# tests/test_task_api.py

from __future__ import annotations

from datetime import date, timedelta

import pytest

from taskdeck.tasks.filters import local_date
from taskdeck.tasks.task_api import (
    ValidationError,
    build_dashboard,
    completed_history,
    completion_rate,
    in_progress_projects_count,
    parse_due_date,
    project_progress,
    search_projects,
    sorted_notifications,
    task_history,
    validate_project_input,
    validate_task_input,
)


def test_validation_rejects_blank_input() -> None:
    with pytest.raises(ValidationError, match="title"):
        validate_task_input("   ", "project-1")
    with pytest.raises(ValidationError, match="Project"):
        validate_task_input("Title", "")
    with pytest.raises(ValidationError):
        validate_project_input(None)

    validate_task_input("Title", "project-1")
    validate_project_input("Name")


def test_completion_rate_and_project_progress(store, project) -> None:
    assert completion_rate([]) == 0

    a = store.create_task(title="A", project_id=project.id, status="done")
    store.create_task(title="B", project_id=project.id)
    store.create_task(title="C", project_id=project.id)

    assert completion_rate(store.tasks) == 33
    prog = project_progress(store, project.id)
    assert prog is not None
    assert (prog.done, prog.total, prog.percent) == (1, 3, 33)
    assert project_progress(store, "project-missing") is None
    assert in_progress_projects_count(store) == 1

    store.delete_task(a.id)
    assert in_progress_projects_count(store) == 0


def test_build_dashboard_buckets_my_tasks(store, project, clock) -> None:
    now = clock()
    due_today = store.create_task(title="Today", project_id=project.id, assignee_id="user-1", due_date=now)
    soon = store.create_task(
        title="Soon", project_id=project.id, assignee_id="user-1", due_date=now + timedelta(days=3)
    )
    late = store.create_task(
        title="Late", project_id=project.id, assignee_id="user-1", due_date=now - timedelta(days=2)
    )
    store.create_task(title="Done late", project_id=project.id, assignee_id="user-1", status="done",
                      due_date=now - timedelta(days=2))
    store.create_task(title="Not mine", project_id=project.id, assignee_id="user-2", due_date=now)

    dash = build_dashboard(store)

    assert len(dash.my_tasks) == 4
    assert [t.id for t in dash.today] == [due_today.id]
    assert [t.id for t in dash.upcoming] == [soon.id]
    assert [t.id for t in dash.overdue] == [late.id]
    assert dash.completion_rate == 25
    assert dash.unread_notifications == store.get_unread_notifications_count()


def test_task_history_groups_by_day_newest_first(store, project, clock) -> None:
    old = store.create_task(title="Old", project_id=project.id)
    clock.advance(days=1)
    new = store.create_task(title="New", project_id=project.id)
    clock.advance(minutes=1)
    touched = store.update_task(old.id, description="edited")
    assert touched is not None

    groups = task_history(store)

    assert [day for day, _ in groups] == [local_date(clock())]
    assert [t.id for t in groups[0][1]] == [touched.id, new.id]


def test_sorted_notifications_newest_first(store, project, clock) -> None:
    store.add_notification("mention", "first")
    clock.advance(minutes=5)
    store.add_notification("mention", "second")

    assert [n.content for n in sorted_notifications(store)] == ["second", "first"]


def test_parse_due_date_forms() -> None:
    end_of_day = parse_due_date("2024-05-20")
    assert end_of_day is not None
    assert end_of_day.date() == date(2024, 5, 20)
    assert (end_of_day.hour, end_of_day.minute) == (23, 59)
    assert end_of_day.tzinfo is not None

    full = parse_due_date("2024-05-20T09:30:00+00:00")
    assert full is not None and full.hour == 9

    assert parse_due_date("none") is None
    assert parse_due_date("") is None
    with pytest.raises(ValidationError):
        parse_due_date("next tuesday")


def test_search_projects_matches_name_or_description(store, project) -> None:
    mobile = store.create_project(name="Mobile app", description="iOS and Android clients")
    store.create_project(name="Billing", description="")

    assert search_projects(store, "MOBILE") == [mobile]
    # "Company site relaunch" is the Website project's description
    assert search_projects(store, "relaunch") == [project]
    assert search_projects(store, "  ") == store.projects
    assert search_projects(store, None) == store.projects
    assert search_projects(store, "nothing like this") == []


def test_completed_history_lists_done_tasks_newest_first(store, project, clock) -> None:
    first = store.create_task(title="First", project_id=project.id)
    store.create_task(title="Open", project_id=project.id)
    second = store.create_task(title="Second", project_id=project.id)

    store.update_task_status(second.id, "done")
    clock.advance(minutes=10)
    store.update_task_status(first.id, "done")

    assert [t.id for t in completed_history(store)] == [first.id, second.id]
