# tests/test_commands.py

from __future__ import annotations

from taskdeck.cli.commands import CommandRegistry
from taskdeck.cli.commands import registry as command_registry
from taskdeck.tasks.task_api import ValidationError
from taskdeck.tasks.task_models import DueDateBucket, NotificationType, Priority, TaskStatus


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bb"])

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/BB", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_command_registry_reports_validation_errors(state) -> None:
    reg = CommandRegistry()

    def bad(state, args):
        raise ValidationError("Task title is required")

    reg.register("bad", bad, "bad")

    assert reg.handle(state, "/bad") == "Error: Task title is required"


def test_help_lists_registered_commands(state) -> None:
    out = command_registry.handle(state, "/help") or ""
    assert "/task" in out and "/filter" in out and "/sweep" in out
    assert command_registry.handle(state, "/?") == out


def test_project_and_task_flow(state) -> None:
    store = state.store

    out = command_registry.handle(state, "/project add Mobile app") or ""
    assert out.startswith("Project created")
    project = store.projects[-1]
    assert project.name == "Mobile app"

    out = command_registry.handle(state, f"/task add {project.id} Build login screen") or ""
    assert out.startswith("Task created")
    task = store.tasks[-1]
    assert task.title == "Build login screen"
    assert task.project_name == "Mobile app"

    command_registry.handle(state, f"/task status {task.id} in-progress")
    command_registry.handle(state, f"/task priority {task.id} high")
    command_registry.handle(state, f"/task assign {task.id} user-2")
    command_registry.handle(state, f"/task due {task.id} 2024-05-20")
    command_registry.handle(state, f"/comment {task.id} Started on it")

    current = store.get_task_by_id(task.id)
    assert current is not None
    assert current.status == TaskStatus.IN_PROGRESS
    assert current.priority == Priority.HIGH
    assert current.assignee_name == "Jane Smith"
    assert current.due_date is not None and current.due_date.day == 20
    assert [c.content for c in current.comments] == ["Started on it"]

    shown = command_registry.handle(state, f"/task show {task.id}") or ""
    assert "Started on it" in shown

    command_registry.handle(state, f"/project rename {project.id} Mobile 2")
    renamed = store.get_task_by_id(task.id)
    assert renamed is not None and renamed.project_name == "Mobile 2"

    assert command_registry.handle(state, f"/task rm {task.id}") == f"Task {task.id} deleted."
    assert store.get_task_by_id(task.id) is None


def test_task_commands_report_bad_input(state, project) -> None:
    assert command_registry.handle(state, f"/task add {project.id}") == "Error: Task title is required"
    assert (command_registry.handle(state, "/task add") or "").startswith("/task add")
    assert command_registry.handle(state, "/task add project-missing Title") == "Error: Unknown project: project-missing"
    assert command_registry.handle(state, "/project add") == "Error: Project name is required"

    task = state.store.create_task(title="T", project_id=project.id)
    out = command_registry.handle(state, f"/task status {task.id} blocked") or ""
    assert out.startswith("Error:")
    assert command_registry.handle(state, f"/task assign {task.id} user-99") == "Error: Unknown user: user-99"
    assert command_registry.handle(state, "/task status task-missing done") == "No task task-missing."


def test_filter_command_sets_and_clears_options(state, project) -> None:
    store = state.store
    hit = store.create_task(title="Quarterly report", project_id=project.id, priority="high")
    store.create_task(title="Other", project_id=project.id, priority="high", status="done")

    out = command_registry.handle(state, "/filter status=todo,in-progress priority=high due=noDueDate q=quarterly report")

    assert out == "Filters set. 1 task(s) match."
    opts = store.filter_options
    assert opts.status == frozenset({TaskStatus.TODO, TaskStatus.IN_PROGRESS})
    assert opts.due_date == DueDateBucket.NO_DUE_DATE
    assert opts.search_query == "quarterly report"
    assert [t.id for t in store.filtered_tasks] == [hit.id]

    board = command_registry.handle(state, "/tasks") or ""
    assert "Quarterly report" in board and "Other" not in board

    assert command_registry.handle(state, "/filter clear") == "Filters cleared."
    assert store.filter_options.is_empty()
    assert (command_registry.handle(state, "/filter bogus=1") or "").startswith("Error:")


def test_notifications_and_sweep_commands(state, project, clock) -> None:
    store = state.store
    store.create_task(title="Due now", project_id=project.id, assignee_id="user-2", due_date=clock())
    notes: list[str] = []

    assert command_registry.handle(state, "/sweep", emit=notes.append) == "Due-date check done: 1 new notification(s)."
    assert notes == ["Checking due dates..."]
    assert store.notifications[0].type == NotificationType.DUE_DATE

    feed = command_registry.handle(state, "/n") or ""
    assert "(3 unread)" in feed

    first = store.notifications[0]
    assert command_registry.handle(state, f"/notifications read {first.id}") == "Marked as read."
    assert command_registry.handle(state, "/notifications readall") == "Marked 2 notification(s) as read."
    assert store.get_unread_notifications_count() == 0


def test_status_and_history_commands(state, project, clock) -> None:
    state.store.create_task(title="Mine", project_id=project.id, assignee_id="user-1", due_date=clock())

    status = command_registry.handle(state, "/status") or ""
    assert "Dashboard for John Doe" in status
    assert "Due today: 1" in status

    history = command_registry.handle(state, "/history") or ""
    assert "Mine" in history


def test_projects_command_searches_name_and_description(state, project) -> None:
    state.store.create_project(name="Mobile app", description="Native clients")

    listing = command_registry.handle(state, "/projects") or ""
    assert "Website" in listing and "Mobile app" in listing

    found = command_registry.handle(state, "/projects RELAUNCH") or ""
    assert found.startswith("Projects matching 'RELAUNCH':")
    assert "Website" in found and "Mobile app" not in found

    assert command_registry.handle(state, "/projects zzz") == "No projects match 'zzz'."


def test_history_done_lists_completed_tasks(state, project) -> None:
    assert command_registry.handle(state, "/history done") == "No completed tasks yet."

    finished = state.store.create_task(title="Finished", project_id=project.id)
    state.store.create_task(title="Still open", project_id=project.id)
    state.store.update_task_status(finished.id, "done")

    out = command_registry.handle(state, "/history done") or ""
    assert out.startswith("Completed tasks (1):")
    assert "Finished" in out and "Still open" not in out


def test_task_describe_sets_description(state, project) -> None:
    task = state.store.create_task(title="Write docs", project_id=project.id)

    out = command_registry.handle(state, f"/task describe {task.id} Cover install and config") or ""

    assert out.startswith("Task updated")
    current = state.store.get_task_by_id(task.id)
    assert current is not None and current.description == "Cover install and config"
    assert "Cover install and config" in (command_registry.handle(state, f"/task show {task.id}") or "")
