# src/taskdeck/tasks/filters.py

"""
Filter engine behind TaskStore.filtered_tasks.

All due-date comparisons are done at local-day granularity: the time of day is
dropped before comparing, so a task due at 23:59 today is "today", not "overdue".
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta

from .task_models import DueDateBucket, FilterOptions, Task, TaskStatus

TaskPredicate = Callable[[Task], bool]

THIS_WEEK_DAYS = 7


def local_date(value: datetime) -> date:
    """Calendar day of a timestamp in local time (naive values are taken as local)."""
    if value.tzinfo is None:
        return value.date()
    return value.astimezone().date()


def due_day(task: Task) -> date | None:
    return local_date(task.due_date) if task.due_date is not None else None


def is_due_today(task: Task, today: date) -> bool:
    d = due_day(task)
    return d is not None and d == today


def is_due_this_week(task: Task, today: date) -> bool:
    d = due_day(task)
    return d is not None and today <= d <= today + timedelta(days=THIS_WEEK_DAYS)


def is_overdue(task: Task, today: date) -> bool:
    """Due before today and not completed (same rule as the per-card overdue badge)."""
    if task.status == TaskStatus.DONE:
        return False
    d = due_day(task)
    return d is not None and d < today


def has_no_due_date(task: Task, today: date) -> bool:
    return task.due_date is None


_BUCKETS: dict[DueDateBucket, Callable[[Task, date], bool]] = {
    DueDateBucket.TODAY: is_due_today,
    DueDateBucket.THIS_WEEK: is_due_this_week,
    DueDateBucket.OVERDUE: is_overdue,
    DueDateBucket.NO_DUE_DATE: has_no_due_date,
}


def matches_search(task: Task, query: str) -> bool:
    q = query.strip().lower()
    if not q:
        return True
    fields = (task.title, task.description, task.project_name, task.assignee_name)
    return any(q in (f or "").lower() for f in fields)


def build_predicates(options: FilterOptions, today: date) -> list[TaskPredicate]:
    """
    Translate populated filter fields into predicates, in evaluation order:
    search, status, priority, project, assignee, due-date bucket.
    """
    preds: list[TaskPredicate] = []

    if options.search_query:
        query = options.search_query
        preds.append(lambda t: matches_search(t, query))

    if options.status:
        statuses = options.status
        preds.append(lambda t: t.status in statuses)

    if options.priority:
        priorities = options.priority
        preds.append(lambda t: t.priority in priorities)

    if options.project_id:
        project_id = options.project_id
        preds.append(lambda t: t.project_id == project_id)

    if options.assignee_id:
        assignee_id = options.assignee_id
        preds.append(lambda t: t.assignee_id == assignee_id)

    if options.due_date is not None:
        bucket = _BUCKETS[options.due_date]
        preds.append(lambda t: bucket(t, today))

    return preds


def filter_tasks(tasks: Iterable[Task], options: FilterOptions, today: date) -> list[Task]:
    """Return tasks passing every active predicate, preserving input order."""
    preds = build_predicates(options, today)
    if not preds:
        return list(tasks)
    return [t for t in tasks if all(p(t) for p in preds)]
