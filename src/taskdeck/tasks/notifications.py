# src/taskdeck/tasks/notifications.py

"""
Notification texts and due-date sweep rules.

Content is rendered once, at creation time, and stored on the notification.
Renaming a task later does not rewrite old notifications.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from .filters import due_day
from .task_models import NotificationType, Task, TaskStatus

_STATUS_LABELS = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}


def status_label(status: TaskStatus) -> str:
    return _STATUS_LABELS.get(status, status.value)


def task_created_text(task: Task) -> str:
    if task.project_name:
        return f'New task "{task.title}" created in project "{task.project_name}".'
    return f'New task "{task.title}" created.'


def task_assigned_text(task: Task) -> str:
    who = task.assignee_name or task.assignee_id or "someone"
    return f'Task "{task.title}" assigned to {who}.'


def status_changed_text(task: Task) -> str:
    return f'Status of task "{task.title}" changed to {status_label(task.status)}.'


def comment_added_text(task: Task, author_name: str) -> str:
    return f'{author_name} commented on task "{task.title}".'


def due_today_text(task: Task) -> str:
    return f'Task "{task.title}" is due today.'


def overdue_text(task: Task) -> str:
    return f'Task "{task.title}" is overdue.'


# ---- due-date sweep ----

DUE_TODAY = "today"
DUE_OVERDUE = "overdue"


@dataclass(slots=True, frozen=True)
class DueDateAlert:
    """A due-date notification the sweep wants to emit."""

    task: Task
    bucket: str
    text: str
    dedupe_key: str

    type: NotificationType = NotificationType.DUE_DATE


def due_date_dedupe_key(task_id: str, bucket: str, today: date) -> str:
    return f"due-date:{task_id}:{bucket}:{today.isoformat()}"


def build_due_date_alert(task: Task, today: date) -> DueDateAlert | None:
    """
    Decide whether a task deserves a due-date alert today.

    - no due date or already done -> nothing
    - due today                   -> "due today" alert
    - due before today            -> "overdue" alert
    - due later                   -> nothing
    """
    if task.status == TaskStatus.DONE:
        return None
    d = due_day(task)
    if d is None:
        return None

    if d == today:
        bucket, text = DUE_TODAY, due_today_text(task)
    elif d < today:
        bucket, text = DUE_OVERDUE, overdue_text(task)
    else:
        return None

    return DueDateAlert(
        task=task,
        bucket=bucket,
        text=text,
        dedupe_key=due_date_dedupe_key(task.id, bucket, today),
    )


def collect_due_date_alerts(
    tasks: Iterable[Task],
    today: date,
    existing_keys: set[str],
) -> list[DueDateAlert]:
    """Alerts for every eligible task whose dedupe key was not emitted yet."""
    out: list[DueDateAlert] = []
    seen = set(existing_keys)
    for task in tasks:
        alert = build_due_date_alert(task, today)
        if alert is None or alert.dedupe_key in seen:
            continue
        seen.add(alert.dedupe_key)
        out.append(alert)
    return out
