# src/taskdeck/tasks/task_api.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from itertools import groupby

from .filters import due_day, is_due_today, is_overdue, local_date
from .task_models import Notification, Project, Task, TaskStatus
from .task_store import TaskStore


class ValidationError(ValueError):
    """User input rejected before any store mutation."""


def validate_task_input(title: str | None, project_id: str | None) -> None:
    if not title or not title.strip():
        raise ValidationError("Task title is required")
    if not project_id:
        raise ValidationError("Project is required")


def validate_project_input(name: str | None) -> None:
    if not name or not name.strip():
        raise ValidationError("Project name is required")


def completion_rate(tasks: list[Task]) -> int:
    """Percentage (0..100, rounded) of done tasks; 0 for an empty list."""
    if not tasks:
        return 0
    done = sum(1 for t in tasks if t.status == TaskStatus.DONE)
    return round(done * 100 / len(tasks))


@dataclass(slots=True, frozen=True)
class ProjectProgress:
    project: Project
    total: int
    done: int

    @property
    def percent(self) -> int:
        return round(self.done * 100 / self.total) if self.total else 0


def project_progress(store: TaskStore, project_id: str) -> ProjectProgress | None:
    project = store.get_project_by_id(project_id)
    if project is None:
        return None
    tasks = store.get_tasks_by_project(project_id)
    done = sum(1 for t in tasks if t.status == TaskStatus.DONE)
    return ProjectProgress(project=project, total=len(tasks), done=done)


def in_progress_projects_count(store: TaskStore) -> int:
    """Projects with at least one done and at least one open task."""
    count = 0
    for p in store.projects:
        tasks = store.get_tasks_by_project(p.id)
        if any(t.status == TaskStatus.DONE for t in tasks) and any(t.status != TaskStatus.DONE for t in tasks):
            count += 1
    return count


def search_projects(store: TaskStore, query: str | None) -> list[Project]:
    """Projects whose name or description contains `query` (case-insensitive); all of them when blank."""
    q = (query or "").strip().lower()
    if not q:
        return store.projects
    return [p for p in store.projects if q in p.name.lower() or q in (p.description or "").lower()]


@dataclass(slots=True, frozen=True)
class DashboardSummary:
    my_tasks: list[Task]
    today: list[Task]
    upcoming: list[Task]
    overdue: list[Task]
    completion_rate: int
    in_progress_projects: int
    unread_notifications: int


def build_dashboard(store: TaskStore, *, today: date | None = None) -> DashboardSummary:
    """
    Current user's dashboard:
    - today:    my tasks due today (any status)
    - upcoming: my open tasks due tomorrow .. today+7
    - overdue:  my open tasks due before today
    """
    today = today or store.today()
    me = store.current_user.id
    mine = [t for t in store.tasks if t.assignee_id == me]

    tomorrow = today + timedelta(days=1)
    next_week = today + timedelta(days=7)

    def upcoming(t: Task) -> bool:
        d = due_day(t)
        return t.status != TaskStatus.DONE and d is not None and tomorrow <= d <= next_week

    return DashboardSummary(
        my_tasks=mine,
        today=[t for t in mine if is_due_today(t, today)],
        upcoming=[t for t in mine if upcoming(t)],
        overdue=[t for t in mine if is_overdue(t, today)],
        completion_rate=completion_rate(mine),
        in_progress_projects=in_progress_projects_count(store),
        unread_notifications=store.get_unread_notifications_count(),
    )


def task_history(store: TaskStore) -> list[tuple[date, list[Task]]]:
    """Tasks grouped by the day they were last updated, most recent first."""
    ordered = sorted(store.tasks, key=lambda t: t.updated_at, reverse=True)
    return [(day, list(group)) for day, group in groupby(ordered, key=lambda t: local_date(t.updated_at))]


def completed_history(store: TaskStore) -> list[Task]:
    """Done tasks, most recently updated first."""
    done = [t for t in store.tasks if t.status == TaskStatus.DONE]
    return sorted(done, key=lambda t: t.updated_at, reverse=True)


def sorted_notifications(store: TaskStore) -> list[Notification]:
    """Notification feed, newest first."""
    return sorted(store.notifications, key=lambda n: n.created_at, reverse=True)


def parse_due_date(raw: str) -> datetime | None:
    """
    Parse a due date typed by the user: "YYYY-MM-DD", a full ISO timestamp, or "none".

    Date-only values mean the end of that local day.
    """
    raw = (raw or "").strip()
    if not raw or raw.lower() in ("none", "-", "null"):
        return None
    try:
        if len(raw) == 10:
            d = date.fromisoformat(raw)
            return datetime(d.year, d.month, d.day, 23, 59).astimezone()
        value = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"Invalid due date: {raw!r} (use YYYY-MM-DD)") from e
    return value if value.tzinfo is not None else value.astimezone()
