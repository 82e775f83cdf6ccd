# src/taskdeck/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import date
from typing import cast

from ..core.state import AppState
from ..tasks.filters import is_overdue
from ..tasks.task_api import (
    ValidationError,
    build_dashboard,
    completed_history,
    parse_due_date,
    project_progress,
    search_projects,
    sorted_notifications,
    task_history,
    validate_project_input,
    validate_task_input,
)
from ..tasks.task_models import FilterOptions, Priority, Task, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by front-ends (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        logger.debug("Command /%s args=%s", name, args)

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def _fmt_task(task: Task, today: date) -> str:
    due = task.due_date.strftime("%Y-%m-%d") if task.due_date else "no due date"
    if is_overdue(task, today):
        due += " (overdue)"
    who = task.assignee_name or "unassigned"
    project = task.project_name or "-"
    return f"[{task.id}] {task.title} | {task.status.value} | {task.priority.value} | {due} | {who} | {project}"


def _resolve_user(state: AppState, raw: str) -> str | None:
    if raw.lower() in ("none", "-"):
        return None
    if raw.lower() == "me":
        return state.store.current_user.id
    if state.store.get_user_by_id(raw) is None:
        raise ValidationError(f"Unknown user: {raw}")
    return raw


def _parse_filter_args(state: AppState, args: list[str]) -> FilterOptions:
    """
    key=value pairs:
      status=todo,done  priority=high  project=<id>  assignee=<id|me>
      due=today|thisWeek|overdue|noDueDate  q=<free text, rest of line>
    """
    values: dict[str, object] = {}
    for i, token in enumerate(args):
        key, sep, value = token.partition("=")
        if not sep:
            raise ValidationError(f"Expected key=value, got {token!r}")
        key = key.lower()
        if key == "q":
            values["search_query"] = " ".join([value, *args[i + 1 :]]).strip()
            break
        if key == "status":
            values["status"] = [v for v in value.split(",") if v]
        elif key == "priority":
            values["priority"] = [v for v in value.split(",") if v]
        elif key == "project":
            values["project_id"] = value
        elif key == "assignee":
            values["assignee_id"] = _resolve_user(state, value)
        elif key == "due":
            values["due_date"] = value
        else:
            raise ValidationError(f"Unknown filter: {key}")
    try:
        return FilterOptions.build(**values)  # type: ignore[arg-type]
    except ValueError as e:
        raise ValidationError(str(e)) from e


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    dash = build_dashboard(store)
    today = store.today()
    lines = [
        f"Dashboard for {store.current_user.name}:",
        f"  My tasks: {len(dash.my_tasks)} (completion {dash.completion_rate}%)",
        f"  Projects in progress: {dash.in_progress_projects}",
        f"  Unread notifications: {dash.unread_notifications}",
        f"  Due today: {len(dash.today)}",
    ]
    lines += [f"    {_fmt_task(t, today)}" for t in dash.today]
    lines.append(f"  Upcoming (7 days): {len(dash.upcoming)}")
    lines += [f"    {_fmt_task(t, today)}" for t in dash.upcoming]
    lines.append(f"  Overdue: {len(dash.overdue)}")
    lines += [f"    {_fmt_task(t, today)}" for t in dash.overdue]
    return "\n".join(lines)


def cmd_users(state: AppState, args: list[str]) -> str:
    me = state.store.current_user.id
    lines = ["Users:"]
    for u in state.store.users:
        marker = " (you)" if u.id == me else ""
        lines.append(f"  [{u.id}] {u.name} <{u.email}>{marker}")
    return "\n".join(lines)


def cmd_projects(state: AppState, args: list[str]) -> str:
    query = " ".join(args).strip()
    if not state.store.projects:
        return "No projects yet. Use /project add <name>."
    projects = search_projects(state.store, query)
    if not projects:
        return f"No projects match {query!r}."
    lines = [f"Projects matching {query!r}:" if query else "Projects:"]
    for p in projects:
        prog = project_progress(state.store, p.id)
        done, total, pct = (prog.done, prog.total, prog.percent) if prog else (0, 0, 0)
        lines.append(f"  [{p.id}] {p.name} - {done}/{total} done ({pct}%)")
    return "\n".join(lines)


def cmd_project(state: AppState, args: list[str]) -> str:
    """
    /project add <name...>
    /project rename <id> <name...>
    /project describe <id> <text...>
    /project rm <id>
    """
    usage = "Usage: /project add <name> | rename <id> <name> | describe <id> <text> | rm <id>"
    if not args:
        return usage
    sub, rest = args[0].lower(), args[1:]
    store = state.store

    if sub == "add":
        name = " ".join(rest)
        validate_project_input(name)
        p = store.create_project(name=name.strip())
        return f"Project created: [{p.id}] {p.name}"

    if sub in ("rename", "describe") and len(rest) >= 2:
        text = " ".join(rest[1:]).strip()
        if sub == "rename":
            validate_project_input(text)
            updated = store.update_project(rest[0], name=text)
        else:
            updated = store.update_project(rest[0], description=text)
        return f"Project updated: [{updated.id}] {updated.name}" if updated else f"No project {rest[0]}."

    if sub == "rm" and len(rest) == 1:
        if store.delete_project(rest[0]):
            return f"Project {rest[0]} deleted; its tasks were kept without a project."
        return f"No project {rest[0]}."

    return usage


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """Board view of the filtered tasks, one column per status."""
    store = state.store
    tasks = store.filtered_tasks
    today = store.today()
    opts = store.filter_options
    header = f"Tasks ({len(tasks)} shown, {opts.active_count()} filter(s) active):"
    lines = [header]
    for status in TaskStatus:
        column = [t for t in tasks if t.status == status]
        lines.append(f"  {status.value} ({len(column)})")
        lines += [f"    {_fmt_task(t, today)}" for t in column]
    return "\n".join(lines)


def cmd_filter(state: AppState, args: list[str]) -> str:
    store = state.store
    if not args:
        opts = store.filter_options
        if opts.is_empty():
            return "No filters active. Example: /filter status=todo priority=high due=overdue q=report"
        return f"Active filters: {opts}"
    if args[0].lower() == "clear":
        store.clear_filter_options()
        return "Filters cleared."
    store.set_filter_options(_parse_filter_args(state, args))
    return f"Filters set. {len(store.filtered_tasks)} task(s) match."


def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add <project_id> <title...>
    /task show <id>
    /task status <id> <todo|in-progress|done>
    /task assign <id> <user_id|me|none>
    /task due <id> <YYYY-MM-DD|none>
    /task priority <id> <low|medium|high>
    /task rename <id> <title...>
    /task describe <id> <text...>
    /task attach <id> <url> [name...]
    /task rm <id>
    """
    usage = (cmd_task.__doc__ or "").strip()
    if len(args) < 2:
        return usage
    sub, target, rest = args[0].lower(), args[1], args[2:]
    store = state.store

    if sub == "add":
        title = " ".join(rest)
        validate_task_input(title, target)
        if store.get_project_by_id(target) is None:
            raise ValidationError(f"Unknown project: {target}")
        t = store.create_task(title=title.strip(), project_id=target)
        return f"Task created: {_fmt_task(t, store.today())}"

    task_id = target

    if sub == "show":
        t = store.get_task_by_id(task_id)
        if t is None:
            return f"No task {task_id}."
        lines = [_fmt_task(t, store.today())]
        if t.description:
            lines.append(f"  {t.description}")
        for a in t.attachments:
            lines.append(f"  attachment: {a.name} <{a.url}>")
        for c in t.comments:
            lines.append(f"  {c.created_at:%Y-%m-%d %H:%M} {c.author_name}: {c.content}")
        return "\n".join(lines)

    if sub == "rm":
        return f"Task {task_id} deleted." if store.delete_task(task_id) else f"No task {task_id}."

    if not rest:
        return usage
    value = " ".join(rest)

    try:
        if sub == "status":
            updated = store.update_task_status(task_id, TaskStatus(value))
        elif sub == "assign":
            updated = store.update_task(task_id, assignee_id=_resolve_user(state, value))
        elif sub == "due":
            updated = store.update_task(task_id, due_date=parse_due_date(value))
        elif sub == "priority":
            updated = store.update_task(task_id, priority=Priority(value))
        elif sub == "rename":
            if not value.strip():
                raise ValidationError("Task title is required")
            updated = store.update_task(task_id, title=value.strip())
        elif sub == "describe":
            updated = store.update_task(task_id, description=value.strip())
        elif sub == "attach":
            a = store.add_attachment(task_id, " ".join(rest[1:]) or rest[0], rest[0])
            return f"Attached {a.name}." if a else f"No task {task_id}."
        else:
            return usage
    except ValidationError:
        raise
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if updated is None:
        return f"No task {task_id}."
    return f"Task updated: {_fmt_task(updated, store.today())}"


def cmd_comment(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /comment <task_id> <text...>"
    content = " ".join(args[1:]).strip()
    comment = state.store.add_comment(args[0], content)
    return "Comment added." if comment else f"No task {args[0]}."


def cmd_notifications(state: AppState, args: list[str]) -> str:
    """
    /notifications          -> feed, newest first
    /notifications read <id>
    /notifications readall
    """
    store = state.store
    if args and args[0].lower() == "readall":
        n = store.mark_all_notifications_as_read()
        return f"Marked {n} notification(s) as read."
    if args and args[0].lower() == "read" and len(args) == 2:
        ok = store.mark_notification_as_read(args[1])
        return "Marked as read." if ok else f"No notification {args[1]}."

    feed = sorted_notifications(store)
    if not feed:
        return "No notifications."
    lines = [f"Notifications ({store.get_unread_notifications_count()} unread):"]
    for n in feed:
        flag = "*" if not n.read else " "
        lines.append(f" {flag} [{n.id}] {n.created_at:%Y-%m-%d %H:%M} {n.type.value}: {n.content}")
    return "\n".join(lines)


def cmd_history(state: AppState, args: list[str]) -> str:
    """
    /history       -> all tasks grouped by day of last update
    /history done  -> completed tasks, most recent first
    """
    today = state.store.today()
    if args and args[0].lower() == "done":
        done = completed_history(state.store)
        if not done:
            return "No completed tasks yet."
        lines = [f"Completed tasks ({len(done)}):"]
        lines += [f"  {t.updated_at:%Y-%m-%d %H:%M} {_fmt_task(t, today)}" for t in done]
        return "\n".join(lines)

    groups = task_history(state.store)
    if not groups:
        return "No activity yet."
    lines = ["Recent activity:"]
    for day, tasks in groups:
        lines.append(f"  {day.isoformat()}")
        lines += [f"    {t.updated_at:%H:%M} {_fmt_task(t, today)}" for t in tasks]
    return "\n".join(lines)


def cmd_sweep(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit is not None:
        emit("Checking due dates...")
    emitted = state.store.run_due_date_sweep()
    return f"Due-date check done: {len(emitted)} new notification(s)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Dashboard: my tasks, due today, upcoming, overdue.")
registry.register("users", cmd_users, help_text="List users.")
registry.register("projects", cmd_projects, help_text="List projects with progress; /projects <text> searches name and description.")
registry.register("project", cmd_project, help_text="/project add | rename | describe | rm.")
registry.register("tasks", cmd_tasks, help_text="Show filtered tasks by status.")
registry.register("filter", cmd_filter, help_text="/filter key=value ... | /filter clear.")
registry.register("task", cmd_task, help_text="/task add | show | status | assign | due | priority | rename | describe | attach | rm.")
registry.register("comment", cmd_comment, help_text="/comment <task_id> <text>.")
registry.register(
    "notifications", cmd_notifications, help_text="/notifications [read <id> | readall].", aliases=["n"]
)
registry.register("history", cmd_history, help_text="Recently updated tasks grouped by day; /history done lists completed tasks.")
registry.register("sweep", cmd_sweep, help_text="Run the due-date check now.")
