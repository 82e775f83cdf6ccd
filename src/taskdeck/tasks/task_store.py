# src/taskdeck/tasks/task_store.py

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, TypeVar

from ..core.ports import KeyValueStorage
from . import notifications as notify
from .filters import filter_tasks, local_date
from .storage import StorageError
from .task_models import (
    Attachment,
    Comment,
    FilterOptions,
    Notification,
    NotificationType,
    Priority,
    Project,
    Task,
    TaskStatus,
    User,
)

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
PROJECTS_KEY = "projects"
NOTIFICATIONS_KEY = "notifications"
USERS_KEY = "users"

DEFAULT_USERS: tuple[User, ...] = (
    User(
        id="user-1",
        name="John Doe",
        email="john.doe@example.com",
        avatar_url="https://api.dicebear.com/7.x/adventurer/svg?seed=John",
    ),
    User(
        id="user-2",
        name="Jane Smith",
        email="jane.smith@example.com",
        avatar_url="https://api.dicebear.com/7.x/adventurer/svg?seed=Jane",
    ),
)

_TASK_FIELDS = {"title", "description", "status", "priority", "due_date", "project_id", "assignee_id"}
_PROJECT_FIELDS = {"name", "description"}

Clock = Callable[[], datetime]
T = TypeVar("T")


def _now() -> datetime:
    return datetime.now().astimezone()


class TaskStore:
    """
    In-process state container for tasks, projects, users and notifications.

    Every mutation:
    - builds the new entity values first and swaps them in only at the end
      (no partially applied updates),
    - refreshes updated_at where applicable,
    - appends notifications for relevant events,
    - rewrites the touched collections in storage (whole collection, no diffing).

    Storage failures never roll back memory: the failed key is kept dirty and
    retried by the next mutation or by flush().

    Thread-safety:
    - all public methods run under one re-entrant lock
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        current_user_id: str = "user-1",
        seed_users: Iterable[User] = DEFAULT_USERS,
        clock: Clock | None = None,
    ) -> None:
        self._storage = storage
        self._clock: Clock = clock or _now
        self._lock = threading.RLock()
        self._dirty: set[str] = set()

        self._tasks: list[Task] = self._load(TASKS_KEY, Task.from_dict)
        self._projects: list[Project] = self._load(PROJECTS_KEY, Project.from_dict)
        self._notifications: list[Notification] = self._load(NOTIFICATIONS_KEY, Notification.from_dict)

        self._users: list[User] = self._load(USERS_KEY, User.from_dict)
        if not self._users:
            self._users = list(seed_users)
            self._persist(USERS_KEY)

        current = self._find(self._users, current_user_id)
        if current is None:
            raise ValueError(f"current user {current_user_id!r} is not a known user")
        self._current_user: User = current

        self._filter_options = FilterOptions()
        self._tasks_version = 0
        self._filtered_cache: tuple[tuple[int, FilterOptions, date], list[Task]] | None = None

        logger.info(
            "TaskStore ready tasks=%d projects=%d notifications=%d current_user=%s",
            len(self._tasks),
            len(self._projects),
            len(self._notifications),
            self._current_user.id,
        )

    def close(self) -> None:
        """Flush pending writes on shutdown (best-effort, never raises)."""
        try:
            self.flush()
        except StorageError:
            logger.exception("TaskStore close: unsaved changes remain for %s", sorted(self._dirty))
        logger.info("TaskStore closed")

    # ---- low-level helpers ----

    def _load(self, key: str, parse: Callable[[dict[str, Any]], T]) -> list[T]:
        try:
            raw = self._storage.get_item(key)
        except StorageError:
            logger.exception("Failed to read %s; starting with an empty collection.", key)
            return []
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.exception("Stored %s is not valid JSON; starting with an empty collection.", key)
            return []
        if not isinstance(data, list):
            logger.warning("Stored %s is not a JSON array; ignoring it.", key)
            return []

        out: list[T] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                out.append(parse(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed %s entry: %r", key, item)
        return out

    def _collection(self, key: str) -> list[Any]:
        return {
            TASKS_KEY: self._tasks,
            PROJECTS_KEY: self._projects,
            NOTIFICATIONS_KEY: self._notifications,
            USERS_KEY: self._users,
        }[key]

    def _persist(self, *keys: str) -> None:
        """Write the given collections plus anything left dirty by earlier failures."""
        for key in sorted(set(keys) | self._dirty):
            payload = json.dumps([x.to_dict() for x in self._collection(key)], ensure_ascii=False)
            try:
                self._storage.set_item(key, payload)
            except StorageError:
                logger.exception("Failed to persist %s; keeping in-memory state.", key)
                self._dirty.add(key)
            else:
                self._dirty.discard(key)

    @staticmethod
    def _find(items: Iterable[T], item_id: str | None) -> T | None:
        if not item_id:
            return None
        for item in items:
            if item.id == item_id:  # type: ignore[attr-defined]
                return item
        return None

    def _task_index(self, task_id: str) -> int | None:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def _new_id(self, prefix: str, existing: Iterable[Any]) -> str:
        taken = {x.id for x in existing}
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:12]}"
            if candidate not in taken:
                return candidate

    def _tick(self, previous: datetime | None = None) -> datetime:
        """Current time, nudged forward so it is strictly after `previous`."""
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def _project_name(self, project_id: str | None) -> str:
        project = self._find(self._projects, project_id)
        return project.name if project is not None else ""

    def _user_name(self, user_id: str | None) -> str | None:
        user = self._find(self._users, user_id)
        return user.name if user is not None else None

    def _is_other_user(self, user_id: str | None) -> bool:
        return bool(user_id) and user_id != self._current_user.id

    def _make_notification(
        self,
        type_: NotificationType,
        content: str,
        *,
        task_id: str | None = None,
        project_id: str | None = None,
        dedupe_key: str | None = None,
        created_at: datetime | None = None,
    ) -> Notification:
        return Notification(
            id=str(uuid.uuid4()),
            type=type_,
            content=content,
            read=False,
            task_id=task_id,
            project_id=project_id or None,
            created_at=created_at or self._tick(),
            dedupe_key=dedupe_key,
        )

    def _commit_tasks(self, tasks: list[Task]) -> None:
        self._tasks = tasks
        self._tasks_version += 1

    def _prepend_notifications(self, new: list[Notification]) -> None:
        # Newest first, same as the notification feed.
        if new:
            self._notifications = list(reversed(new)) + self._notifications

    @staticmethod
    def _coerce_task_updates(updates: dict[str, Any]) -> dict[str, Any]:
        unknown = set(updates) - _TASK_FIELDS
        if unknown:
            raise ValueError(f"cannot update task fields: {', '.join(sorted(unknown))}")
        out = dict(updates)
        if "status" in out:
            out["status"] = TaskStatus(out["status"])
        if "priority" in out:
            out["priority"] = Priority(out["priority"])
        if "project_id" in out:
            out["project_id"] = out["project_id"] or ""
        if "assignee_id" in out:
            out["assignee_id"] = out["assignee_id"] or None
        if "due_date" in out and out["due_date"] is not None and not isinstance(out["due_date"], datetime):
            raise ValueError("due_date must be a datetime or None")
        return out

    def _build_task_update(
        self, task: Task, updates: dict[str, Any]
    ) -> tuple[Task, list[Notification]]:
        """New task value + side-effect notifications (nothing is committed here)."""
        changes = dict(updates)
        if "project_id" in changes and changes["project_id"] != task.project_id:
            changes["project_name"] = self._project_name(changes["project_id"])

        assignee_changed = "assignee_id" in changes and changes["assignee_id"] != task.assignee_id
        if assignee_changed:
            changes["assignee_name"] = self._user_name(changes["assignee_id"])

        updated = replace(task, **changes, updated_at=self._tick(task.updated_at))

        notes: list[Notification] = []
        if assignee_changed and self._is_other_user(updated.assignee_id):
            notes.append(
                self._make_notification(
                    NotificationType.ASSIGNMENT,
                    notify.task_assigned_text(updated),
                    task_id=updated.id,
                    project_id=updated.project_id,
                )
            )
        return updated, notes

    # ---- read-only views ----

    @property
    def current_user(self) -> User:
        return self._current_user

    @property
    def tasks(self) -> list[Task]:
        with self._lock:
            return list(self._tasks)

    @property
    def projects(self) -> list[Project]:
        with self._lock:
            return list(self._projects)

    @property
    def users(self) -> list[User]:
        with self._lock:
            return list(self._users)

    @property
    def notifications(self) -> list[Notification]:
        with self._lock:
            return list(self._notifications)

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._dirty)

    def today(self) -> date:
        return local_date(self._clock())

    # ---- queries ----

    def get_task_by_id(self, task_id: str) -> Task | None:
        with self._lock:
            return self._find(self._tasks, task_id)

    def get_project_by_id(self, project_id: str) -> Project | None:
        with self._lock:
            return self._find(self._projects, project_id)

    def get_user_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self._find(self._users, user_id)

    def get_tasks_by_status(self, status: TaskStatus | str) -> list[Task]:
        wanted = TaskStatus(status)
        with self._lock:
            return [t for t in self._tasks if t.status == wanted]

    def get_tasks_by_project(self, project_id: str) -> list[Task]:
        with self._lock:
            return [t for t in self._tasks if t.project_id == project_id]

    def get_unread_notifications_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._notifications if not n.read)

    # ---- filtering ----

    @property
    def filter_options(self) -> FilterOptions:
        return self._filter_options

    def set_filter_options(self, options: FilterOptions) -> None:
        with self._lock:
            self._filter_options = options
        logger.debug("Filter options set: %s", options)

    def clear_filter_options(self) -> None:
        self.set_filter_options(FilterOptions())

    @property
    def filtered_tasks(self) -> list[Task]:
        """
        Tasks matching the active filter options, in collection order.

        Memoized on (tasks version, filter options, today); the day is part of
        the key because due-date buckets move at midnight.
        """
        with self._lock:
            key = (self._tasks_version, self._filter_options, self.today())
            if self._filtered_cache is None or self._filtered_cache[0] != key:
                result = filter_tasks(self._tasks, self._filter_options, key[2])
                self._filtered_cache = (key, result)
            return list(self._filtered_cache[1])

    # ---- task mutations ----

    def create_task(
        self,
        *,
        title: str,
        project_id: str,
        description: str = "",
        status: TaskStatus | str = TaskStatus.TODO,
        priority: Priority | str = Priority.MEDIUM,
        due_date: datetime | None = None,
        assignee_id: str | None = None,
    ) -> Task:
        status = TaskStatus(status)
        priority = Priority(priority)

        with self._lock:
            now = self._tick()
            task = Task(
                id=self._new_id("task", self._tasks),
                title=title,
                description=description,
                status=status,
                priority=priority,
                due_date=due_date,
                project_id=project_id or "",
                project_name=self._project_name(project_id),
                assignee_id=assignee_id or None,
                assignee_name=self._user_name(assignee_id),
                attachments=(),
                comments=(),
                created_at=now,
                updated_at=now,
            )

            notes = [
                self._make_notification(
                    NotificationType.STATUS_UPDATE,
                    notify.task_created_text(task),
                    task_id=task.id,
                    project_id=task.project_id,
                    created_at=now,
                )
            ]
            if task.assignee_id:
                notes.append(
                    self._make_notification(
                        NotificationType.ASSIGNMENT,
                        notify.task_assigned_text(task),
                        task_id=task.id,
                        project_id=task.project_id,
                        created_at=now,
                    )
                )

            self._commit_tasks([*self._tasks, task])
            self._prepend_notifications(notes)
            self._persist(TASKS_KEY, NOTIFICATIONS_KEY)

        logger.info("Task created id=%s project=%s assignee=%s", task.id, task.project_id, task.assignee_id)
        return task

    def update_task(self, task_id: str, **updates: Any) -> Task | None:
        """
        Merge `updates` into a task. Returns the new task, or None if the id is unknown.

        Allowed fields: title, description, status, priority, due_date,
        project_id, assignee_id. Anything else raises ValueError (no change applied).
        """
        coerced = self._coerce_task_updates(updates)

        with self._lock:
            idx = self._task_index(task_id)
            if idx is None:
                logger.debug("update_task: unknown task id=%s", task_id)
                return None

            updated, notes = self._build_task_update(self._tasks[idx], coerced)

            tasks = list(self._tasks)
            tasks[idx] = updated
            self._commit_tasks(tasks)
            self._prepend_notifications(notes)
            self._persist(TASKS_KEY, *([NOTIFICATIONS_KEY] if notes else []))

        logger.debug("Task updated id=%s fields=%s", task_id, sorted(coerced))
        return updated

    def update_task_status(self, task_id: str, new_status: TaskStatus | str) -> Task | None:
        status = TaskStatus(new_status)

        with self._lock:
            idx = self._task_index(task_id)
            if idx is None:
                logger.debug("update_task_status: unknown task id=%s", task_id)
                return None

            updated, notes = self._build_task_update(self._tasks[idx], {"status": status})
            if updated.assignee_id != self._current_user.id:
                notes.append(
                    self._make_notification(
                        NotificationType.STATUS_UPDATE,
                        notify.status_changed_text(updated),
                        task_id=updated.id,
                        project_id=updated.project_id,
                    )
                )

            tasks = list(self._tasks)
            tasks[idx] = updated
            self._commit_tasks(tasks)
            self._prepend_notifications(notes)
            self._persist(TASKS_KEY, NOTIFICATIONS_KEY)

        logger.info("Task %s -> %s", task_id, status.value)
        return updated

    def delete_task(self, task_id: str) -> bool:
        """Remove a task and every notification correlated to it."""
        with self._lock:
            idx = self._task_index(task_id)
            if idx is None:
                logger.debug("delete_task: unknown task id=%s", task_id)
                return False

            tasks = [t for t in self._tasks if t.id != task_id]
            notes = [n for n in self._notifications if n.task_id != task_id]
            removed = len(self._notifications) - len(notes)

            self._commit_tasks(tasks)
            self._notifications = notes
            self._persist(TASKS_KEY, NOTIFICATIONS_KEY)

        logger.info("Task deleted id=%s notifications_removed=%d", task_id, removed)
        return True

    def add_comment(self, task_id: str, content: str) -> Comment | None:
        with self._lock:
            idx = self._task_index(task_id)
            if idx is None:
                logger.debug("add_comment: unknown task id=%s", task_id)
                return None

            task = self._tasks[idx]
            now = self._tick(task.updated_at)
            comment = Comment(
                id=str(uuid.uuid4()),
                content=content,
                task_id=task_id,
                author_id=self._current_user.id,
                author_name=self._current_user.name,
                created_at=now,
            )
            updated = replace(task, comments=(*task.comments, comment), updated_at=now)

            notes: list[Notification] = []
            if self._is_other_user(updated.assignee_id):
                notes.append(
                    self._make_notification(
                        NotificationType.COMMENT,
                        notify.comment_added_text(updated, comment.author_name),
                        task_id=task_id,
                        project_id=updated.project_id,
                        created_at=now,
                    )
                )

            tasks = list(self._tasks)
            tasks[idx] = updated
            self._commit_tasks(tasks)
            self._prepend_notifications(notes)
            self._persist(TASKS_KEY, *([NOTIFICATIONS_KEY] if notes else []))

        logger.debug("Comment added task=%s comment=%s", task_id, comment.id)
        return comment

    def add_attachment(self, task_id: str, name: str, url: str) -> Attachment | None:
        with self._lock:
            idx = self._task_index(task_id)
            if idx is None:
                logger.debug("add_attachment: unknown task id=%s", task_id)
                return None

            task = self._tasks[idx]
            now = self._tick(task.updated_at)
            attachment = Attachment(
                id=str(uuid.uuid4()),
                name=name,
                url=url,
                task_id=task_id,
                uploaded_at=now,
            )
            updated = replace(task, attachments=(*task.attachments, attachment), updated_at=now)

            tasks = list(self._tasks)
            tasks[idx] = updated
            self._commit_tasks(tasks)
            self._persist(TASKS_KEY)

        logger.debug("Attachment added task=%s name=%s", task_id, name)
        return attachment

    # ---- project mutations ----

    def create_project(self, *, name: str, description: str = "") -> Project:
        with self._lock:
            now = self._tick()
            project = Project(
                id=self._new_id("project", self._projects),
                name=name,
                description=description,
                created_at=now,
                updated_at=now,
            )
            self._projects = [*self._projects, project]
            self._persist(PROJECTS_KEY)

        logger.info("Project created id=%s name=%s", project.id, project.name)
        return project

    def update_project(self, project_id: str, **updates: Any) -> Project | None:
        """
        Merge `updates` (name, description) into a project.

        A new name is copied into project_name of every task of the project
        right away; those tasks keep their updated_at.
        """
        unknown = set(updates) - _PROJECT_FIELDS
        if unknown:
            raise ValueError(f"cannot update project fields: {', '.join(sorted(unknown))}")
        bad = sorted(k for k, v in updates.items() if not isinstance(v, str))
        if bad:
            raise ValueError(f"project fields must be strings: {', '.join(bad)}")

        with self._lock:
            project = self._find(self._projects, project_id)
            if project is None:
                logger.debug("update_project: unknown project id=%s", project_id)
                return None

            updated = replace(project, **updates, updated_at=self._tick(project.updated_at))
            projects = [updated if p.id == project_id else p for p in self._projects]

            renamed = updated.name != project.name
            keys = [PROJECTS_KEY]
            if renamed:
                tasks = [
                    replace(t, project_name=updated.name) if t.project_id == project_id else t
                    for t in self._tasks
                ]
                self._commit_tasks(tasks)
                keys.append(TASKS_KEY)

            self._projects = projects
            self._persist(*keys)

        logger.debug("Project updated id=%s renamed=%s", project_id, renamed)
        return updated

    def delete_project(self, project_id: str) -> bool:
        """
        Remove a project. Its tasks are kept and orphaned
        (project_id and project_name become empty strings).
        """
        with self._lock:
            if self._find(self._projects, project_id) is None:
                logger.debug("delete_project: unknown project id=%s", project_id)
                return False

            orphaned = 0
            tasks: list[Task] = []
            for t in self._tasks:
                if t.project_id == project_id:
                    t = replace(t, project_id="", project_name="")
                    orphaned += 1
                tasks.append(t)

            self._projects = [p for p in self._projects if p.id != project_id]
            self._commit_tasks(tasks)
            self._persist(PROJECTS_KEY, TASKS_KEY)

        logger.info("Project deleted id=%s orphaned_tasks=%d", project_id, orphaned)
        return True

    # ---- notifications ----

    def add_notification(
        self,
        type_: NotificationType | str,
        content: str,
        *,
        task_id: str | None = None,
        project_id: str | None = None,
    ) -> Notification:
        with self._lock:
            note = self._make_notification(
                NotificationType(type_),
                content,
                task_id=task_id,
                project_id=project_id,
            )
            self._prepend_notifications([note])
            self._persist(NOTIFICATIONS_KEY)
        return note

    def mark_notification_as_read(self, notification_id: str) -> bool:
        with self._lock:
            found = False
            notes: list[Notification] = []
            for n in self._notifications:
                if n.id == notification_id:
                    found = True
                    if not n.read:
                        n = replace(n, read=True)
                notes.append(n)
            if not found:
                logger.debug("mark_notification_as_read: unknown id=%s", notification_id)
                return False
            self._notifications = notes
            self._persist(NOTIFICATIONS_KEY)
        return True

    def mark_all_notifications_as_read(self) -> int:
        """Mark everything read. Returns how many notifications changed."""
        with self._lock:
            changed = sum(1 for n in self._notifications if not n.read)
            if changed:
                self._notifications = [n if n.read else replace(n, read=True) for n in self._notifications]
                self._persist(NOTIFICATIONS_KEY)
        return changed

    def run_due_date_sweep(self, now: datetime | None = None) -> list[Notification]:
        """
        Emit due-date notifications for open tasks due today or overdue.

        Deduplicated on (task, bucket, day): running the sweep many times a day
        emits each alert once.
        """
        with self._lock:
            at = now or self._tick()
            today = local_date(at)
            existing = {n.dedupe_key for n in self._notifications if n.dedupe_key}
            alerts = notify.collect_due_date_alerts(self._tasks, today, existing)

            notes = [
                self._make_notification(
                    alert.type,
                    alert.text,
                    task_id=alert.task.id,
                    project_id=alert.task.project_id,
                    dedupe_key=alert.dedupe_key,
                    created_at=at,
                )
                for alert in alerts
            ]
            if notes:
                self._prepend_notifications(notes)
                self._persist(NOTIFICATIONS_KEY)

        logger.info("Due-date sweep day=%s emitted=%d", today.isoformat(), len(notes))
        return notes

    # ---- persistence ----

    def flush(self) -> None:
        """Retry every collection left dirty by a failed write; raise StorageError if any still fails."""
        with self._lock:
            if not self._dirty:
                return
            self._persist()
            if self._dirty:
                raise StorageError(f"unsaved collections: {', '.join(sorted(self._dirty))}")
