# src/taskdeck/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class NotificationType(StrEnum):
    ASSIGNMENT = "assignment"
    DUE_DATE = "due-date"
    MENTION = "mention"
    STATUS_UPDATE = "status-update"
    COMMENT = "comment"


class DueDateBucket(StrEnum):
    TODAY = "today"
    THIS_WEEK = "thisWeek"
    OVERDUE = "overdue"
    NO_DUE_DATE = "noDueDate"


# ---- timestamp helpers ----


def ts_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def str_to_ts(raw: Any) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None


def _req_ts(raw: Any) -> datetime:
    return str_to_ts(raw) or datetime.fromtimestamp(0).astimezone()


# ---- entities ----


@dataclass(frozen=True, slots=True)
class User:
    id: str
    name: str
    email: str
    avatar_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "avatarUrl": self.avatar_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            avatar_url=data.get("avatarUrl"),
        )


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    description: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": ts_to_str(self.created_at),
            "updatedAt": ts_to_str(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            created_at=_req_ts(data.get("createdAt")),
            updated_at=_req_ts(data.get("updatedAt")),
        )


@dataclass(frozen=True, slots=True)
class Comment:
    id: str
    content: str
    task_id: str
    author_id: str
    author_name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "taskId": self.task_id,
            "authorId": self.author_id,
            "authorName": self.author_name,
            "createdAt": ts_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Comment:
        return cls(
            id=str(data["id"]),
            content=str(data.get("content") or ""),
            task_id=str(data.get("taskId") or ""),
            author_id=str(data.get("authorId") or ""),
            author_name=str(data.get("authorName") or ""),
            created_at=_req_ts(data.get("createdAt")),
        )


@dataclass(frozen=True, slots=True)
class Attachment:
    id: str
    name: str
    url: str
    task_id: str
    uploaded_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "taskId": self.task_id,
            "uploadedAt": ts_to_str(self.uploaded_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Attachment:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            url=str(data.get("url") or ""),
            task_id=str(data.get("taskId") or ""),
            uploaded_at=_req_ts(data.get("uploadedAt")),
        )


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: Priority
    due_date: datetime | None
    project_id: str
    project_name: str
    assignee_id: str | None
    assignee_name: str | None
    created_at: datetime
    updated_at: datetime

    attachments: tuple[Attachment, ...] = ()
    comments: tuple[Comment, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "dueDate": ts_to_str(self.due_date),
            "projectId": self.project_id,
            "projectName": self.project_name,
            "assigneeId": self.assignee_id,
            "assigneeName": self.assignee_name,
            "attachments": [a.to_dict() for a in self.attachments],
            "comments": [c.to_dict() for c in self.comments],
            "createdAt": ts_to_str(self.created_at),
            "updatedAt": ts_to_str(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=TaskStatus.from_db(data.get("status")),
            priority=Priority.from_db(data.get("priority")),
            due_date=str_to_ts(data.get("dueDate")),
            project_id=str(data.get("projectId") or ""),
            project_name=str(data.get("projectName") or ""),
            assignee_id=data.get("assigneeId") or None,
            assignee_name=data.get("assigneeName") or None,
            attachments=tuple(Attachment.from_dict(a) for a in data.get("attachments") or []),
            comments=tuple(Comment.from_dict(c) for c in data.get("comments") or []),
            created_at=_req_ts(data.get("createdAt")),
            updated_at=_req_ts(data.get("updatedAt")),
        )


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    type: NotificationType
    content: str
    created_at: datetime
    read: bool = False
    task_id: str | None = None
    project_id: str | None = None
    dedupe_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "read": self.read,
            "taskId": self.task_id,
            "projectId": self.project_id,
            "createdAt": ts_to_str(self.created_at),
        }
        if self.dedupe_key:
            out["dedupeKey"] = self.dedupe_key
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Notification:
        return cls(
            id=str(data["id"]),
            type=NotificationType(data.get("type") or NotificationType.STATUS_UPDATE.value),
            content=str(data.get("content") or ""),
            read=bool(data.get("read", False)),
            task_id=data.get("taskId") or None,
            project_id=data.get("projectId") or None,
            created_at=_req_ts(data.get("createdAt")),
            dedupe_key=data.get("dedupeKey") or None,
        )


@dataclass(frozen=True, slots=True)
class FilterOptions:
    """
    Active view filter (owned by the UI session, never persisted).

    Empty status/priority sets and None scalars mean "no filtering on this axis".
    """

    status: frozenset[TaskStatus] = field(default_factory=frozenset)
    priority: frozenset[Priority] = field(default_factory=frozenset)
    project_id: str | None = None
    assignee_id: str | None = None
    due_date: DueDateBucket | None = None
    search_query: str | None = None

    @classmethod
    def build(
        cls,
        *,
        status: Any = None,
        priority: Any = None,
        project_id: str | None = None,
        assignee_id: str | None = None,
        due_date: str | None = None,
        search_query: str | None = None,
    ) -> FilterOptions:
        """Build from loose UI values (lists of strings, empty strings, ...)."""
        return cls(
            status=frozenset(TaskStatus(s) for s in (status or [])),
            priority=frozenset(Priority(p) for p in (priority or [])),
            project_id=project_id or None,
            assignee_id=assignee_id or None,
            due_date=DueDateBucket(due_date) if due_date else None,
            search_query=search_query or None,
        )

    def is_empty(self) -> bool:
        return not (
            self.status
            or self.priority
            or self.project_id
            or self.assignee_id
            or self.due_date
            or self.search_query
        )

    def active_count(self) -> int:
        return sum(
            1
            for v in (
                self.status,
                self.priority,
                self.project_id,
                self.assignee_id,
                self.due_date,
                self.search_query,
            )
            if v
        )
