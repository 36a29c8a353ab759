"""Task commands: list, add, move, update, complete, batch-move, batch-update."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import click

from todoist_cli.cli.logging import cli_command, get_cli_logger
from todoist_cli.cli.output import emit_success
from todoist_cli.cli.registry import get_context
from todoist_cli.cli.resilience import (
    MEDIUM_TIMEOUT,
    SLOW_TIMEOUT,
    handle_errors,
    handle_keyboard_interrupt,
    with_sync_timeout,
)
from todoist_cli.core.commands import parse_label_list
from todoist_cli.core.tasks import (
    add_task,
    batch_move_tasks,
    batch_update_tasks,
    complete_task,
    list_tasks,
    move_task,
    update_task,
)

logger = get_cli_logger()


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------


def format_task_line(task: Mapping[str, Any]) -> str:
    """``id<TAB>content (p4, due X, [path], {section}, @a @b)``"""
    details: List[str] = []
    if task.get("priority", 1) > 1:
        details.append(f"p{task['priority']}")
    due = task.get("due")
    if due:
        details.append(f"due {due.get('datetime') or due.get('date') or due.get('string')}")
    details.append(f"[{task.get('project_path')}]")
    if task.get("section"):
        details.append(f"{{{task['section']}}}")
    if task.get("labels"):
        details.append("@" + " @".join(task["labels"]))
    return f"{task['id']}\t{task['content']} ({', '.join(details)})"


def format_task_detailed(task: Mapping[str, Any]) -> List[str]:
    lines = [f"Task: {task['content']}", f"  ID: {task['id']}", f"  Project: {task['project_path']}"]
    if task.get("section"):
        lines.append(f"  Section: {task['section']}")
    due = task.get("due")
    if due:
        lines.append(f"  Due: {due.get('datetime') or due.get('date') or due.get('string')}")
    lines.append(f"  Priority: {task.get('priority', 1)}")
    if task.get("labels"):
        lines.append("  Labels: @" + ", @".join(task["labels"]))
    if task.get("description"):
        lines.append(f"  Description: {task['description']}")
    if task.get("url"):
        lines.append(f"  URL: {task['url']}")
    lines.append("")
    return lines


def _location(loc: Mapping[str, Any]) -> str:
    text = loc.get("project_path") or ""
    if loc.get("section"):
        text += f" / {loc['section']}"
    if loc.get("parent"):
        text += f" (under: {loc['parent']})"
    return text


def _render_list(detailed: bool):
    def render(data: Mapping[str, Any]) -> Iterable[str]:
        if not data["tasks"]:
            filters = data.get("filters") or {}
            if filters.get("project"):
                yield f'No tasks found in projects matching "{filters["project"]}"'
            elif filters.get("labels"):
                yield "No tasks found with labels: @" + ", @".join(filters["labels"])
            else:
                yield "No tasks found"
            return
        for task in data["tasks"]:
            if detailed:
                yield from format_task_detailed(task)
            else:
                yield format_task_line(task)

    return render


def _render_added(data: Mapping[str, Any]) -> Iterable[str]:
    task = data["task"]
    yield f"Task created: {task['id']}"
    yield f"Content: {task['content']}"
    yield f"Project: {task['project_path']}"
    if task.get("section"):
        yield f"Section: {task['section']}"


def _render_moved(data: Mapping[str, Any]) -> Iterable[str]:
    yield f"Task moved: {data['task']['content']}"
    yield f"From: {_location(data['from'])}"
    yield f"To: {_location(data['to'])}"


def _render_updated(data: Mapping[str, Any]) -> Iterable[str]:
    yield f"Task updated: {data['task']['content']}"
    for key, value in data["changes"].items():
        if key == "labels":
            value = ", ".join(value) if value else "(none)"
        elif key == "due":
            value = value.get("string") or value.get("date")
        yield f"  {key}: {value}"


def _render_completed(data: Mapping[str, Any]) -> Iterable[str]:
    yield f"Task completed: {data['task']['content']} ({data['task']['id']})"


def _render_batch(verb: str):
    def render(data: Mapping[str, Any]) -> Iterable[str]:
        yield f"{verb} {data['count']} task(s):"
        for task in data["tasks"]:
            yield f"  {task['id']}\t{task['content']}"

    return render


def _batch_warnings(data: Mapping[str, Any]) -> List[str]:
    return [f"Skipped '{u['token']}': {u['error']}" for u in data.get("unresolved", [])]


def _update_options(
    content: Optional[str],
    description: Optional[str],
    priority: Optional[int],
    due: Optional[str],
    date: Optional[str],
    labels: Optional[str],
    add_labels: Optional[str],
    remove_labels: Optional[str],
) -> Dict[str, Any]:
    return {
        "content": content,
        "description": description,
        "priority": priority,
        "due_string": due,
        "due_date": date,
        "labels": parse_label_list(labels) if labels is not None else None,
        "add_labels": parse_label_list(add_labels),
        "remove_labels": parse_label_list(remove_labels),
    }


def _update_option_decorators(func):
    options = [
        click.option("--content", help="New task content."),
        click.option("--description", help="New description."),
        click.option("--priority", type=click.IntRange(1, 4), help="Priority 1 (normal) to 4 (urgent)."),
        click.option("--due", help='Natural-language due string, e.g. "next monday".'),
        click.option("--date", help="Due date as YYYY-MM-DD."),
        click.option("--labels", help="Replace labels (comma-separated)."),
        click.option("--add-labels", help="Add labels (comma-separated)."),
        click.option("--remove-labels", help="Remove labels (comma-separated)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group("tasks")
def tasks() -> None:
    """Task commands."""
    pass


@tasks.command("list")
@click.option("--project", help="Project ID, or words matched against project paths.")
@click.option("--label", "labels", multiple=True, help="Require a label (repeatable).")
@click.option("--detailed", is_flag=True, help="Multi-line output per task.")
@click.pass_context
@cli_command("tasks-list")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Task listing timed out")
def list_cmd(
    ctx: click.Context, project: Optional[str], labels: Tuple[str, ...], detailed: bool
) -> None:
    """List active tasks sorted by project, then due date."""
    cli_ctx = get_context(ctx)
    result = list_tasks(cli_ctx.snapshot, project=project, labels=labels)
    emit_success(result, text=_render_list(detailed))


@tasks.command("add")
@click.argument("content")
@click.option("--project", help="Project ID, path or name.")
@click.option("--section", help="Section ID or name (within the project).")
@click.option("--parent", help="Parent task ID or content.")
@click.option("--priority", type=click.IntRange(1, 4), help="Priority 1 (normal) to 4 (urgent).")
@click.option("--due", help='Natural-language due string, e.g. "tomorrow".')
@click.option("--date", help="Due date as YYYY-MM-DD.")
@click.option("--description", help="Task description.")
@click.option("--label", "labels", multiple=True, help="Label to apply (repeatable).")
@click.pass_context
@cli_command("tasks-add")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Task creation timed out")
def add_cmd(
    ctx: click.Context,
    content: str,
    project: Optional[str],
    section: Optional[str],
    parent: Optional[str],
    priority: Optional[int],
    due: Optional[str],
    date: Optional[str],
    description: Optional[str],
    labels: Tuple[str, ...],
) -> None:
    """Create a task. CONTENT is the task text."""
    cli_ctx = get_context(ctx)
    result = add_task(
        cli_ctx.snapshot,
        content,
        project=project,
        section=section,
        parent=parent,
        priority=priority,
        due_string=due,
        due_date=date,
        labels=labels,
        description=description,
    )
    emit_success(result, text=_render_added)


@tasks.command("move")
@click.argument("task")
@click.option("--project", help="Destination project (ID, path or name).")
@click.option("--section", help="Destination section; scoped to --project when given.")
@click.option("--parent", help="Make the task a subtask of this task.")
@click.option("--no-parent", is_flag=True, help="Promote a subtask to a top-level task.")
@click.option("--no-section", is_flag=True, help="Move the task to its project root.")
@click.pass_context
@cli_command("tasks-move")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Task move timed out")
def move_cmd(
    ctx: click.Context,
    task: str,
    project: Optional[str],
    section: Optional[str],
    parent: Optional[str],
    no_parent: bool,
    no_section: bool,
) -> None:
    """Move TASK (ID or content) to a project, section or parent task."""
    cli_ctx = get_context(ctx)
    result = move_task(
        cli_ctx.snapshot,
        task,
        project=project,
        section=section,
        parent=parent,
        no_parent=no_parent,
        no_section=no_section,
    )
    emit_success(result, text=_render_moved)


@tasks.command("update")
@click.argument("task")
@_update_option_decorators
@click.pass_context
@cli_command("tasks-update")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Task update timed out")
def update_cmd(
    ctx: click.Context,
    task: str,
    content: Optional[str],
    description: Optional[str],
    priority: Optional[int],
    due: Optional[str],
    date: Optional[str],
    labels: Optional[str],
    add_labels: Optional[str],
    remove_labels: Optional[str],
) -> None:
    """Update fields of TASK (ID or content)."""
    cli_ctx = get_context(ctx)
    result = update_task(
        cli_ctx.snapshot,
        task,
        **_update_options(
            content, description, priority, due, date, labels, add_labels, remove_labels
        ),
    )
    emit_success(result, text=_render_updated)


@tasks.command("complete")
@click.argument("task")
@click.pass_context
@cli_command("tasks-complete")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Task completion timed out")
def complete_cmd(ctx: click.Context, task: str) -> None:
    """Mark TASK (ID or content) as done."""
    cli_ctx = get_context(ctx)
    emit_success(complete_task(cli_ctx.snapshot, task), text=_render_completed)


@tasks.command("batch-move")
@click.argument("task_tokens", nargs=-1)
@click.option("--filter", "filter_query", help="Todoist filter query selecting the tasks.")
@click.option("--project", help="Destination project.")
@click.option("--section", help="Destination section; scoped to --project when given.")
@click.option("--parent", help="Destination parent task.")
@click.option("--continue-on-error", is_flag=True, help="Skip tokens that do not resolve.")
@click.pass_context
@cli_command("tasks-batch-move")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Batch move timed out")
def batch_move_cmd(
    ctx: click.Context,
    task_tokens: Tuple[str, ...],
    filter_query: Optional[str],
    project: Optional[str],
    section: Optional[str],
    parent: Optional[str],
    continue_on_error: bool,
) -> None:
    """Move many tasks in one request.

    TASK_TOKENS are IDs or contents. A comma-separated list of task IDs
    (as printed by ``todoist find --ids``) is expanded; any other token is
    matched whole, commas included.
    """
    cli_ctx = get_context(ctx)
    result = batch_move_tasks(
        cli_ctx.snapshot,
        task_tokens,
        filter_query=filter_query,
        continue_on_error=continue_on_error,
        project=project,
        section=section,
        parent=parent,
    )
    emit_success(result, text=_render_batch("Moved"), warnings=_batch_warnings(result))


@tasks.command("batch-update")
@click.argument("task_tokens", nargs=-1)
@click.option("--filter", "filter_query", help="Todoist filter query selecting the tasks.")
@_update_option_decorators
@click.option("--continue-on-error", is_flag=True, help="Skip tokens that do not resolve.")
@click.pass_context
@cli_command("tasks-batch-update")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Batch update timed out")
def batch_update_cmd(
    ctx: click.Context,
    task_tokens: Tuple[str, ...],
    filter_query: Optional[str],
    content: Optional[str],
    description: Optional[str],
    priority: Optional[int],
    due: Optional[str],
    date: Optional[str],
    labels: Optional[str],
    add_labels: Optional[str],
    remove_labels: Optional[str],
    continue_on_error: bool,
) -> None:
    """Apply the same update to many tasks in one request."""
    cli_ctx = get_context(ctx)
    result = batch_update_tasks(
        cli_ctx.snapshot,
        task_tokens,
        filter_query=filter_query,
        continue_on_error=continue_on_error,
        **_update_options(
            content, description, priority, due, date, labels, add_labels, remove_labels
        ),
    )
    emit_success(result, text=_render_batch("Updated"), warnings=_batch_warnings(result))
