"""Comment commands."""

from typing import Any, Iterable, List, Mapping, Optional, Tuple

import click

from todoist_cli.cli.logging import cli_command
from todoist_cli.cli.output import emit_success
from todoist_cli.cli.registry import get_context
from todoist_cli.cli.resilience import (
    MEDIUM_TIMEOUT,
    SLOW_TIMEOUT,
    handle_errors,
    handle_keyboard_interrupt,
    with_sync_timeout,
)
from todoist_cli.core.comments import add_comment, add_comments


def _render_added(data: Mapping[str, Any]) -> Iterable[str]:
    target = data["target"]
    yield f"Comment added: {data['comment']['id']}"
    yield f"On {target['type']}: {target['label']} ({target['id']})"


@click.group("comments")
def comments() -> None:
    """Comment commands."""
    pass


@comments.command("add")
@click.argument("content")
@click.option("--task", help="Task to comment on (ID or content).")
@click.option("--project", help="Project to comment on (ID, path or name).")
@click.pass_context
@cli_command("comments-add")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Adding comment timed out")
def add_cmd(
    ctx: click.Context, content: str, task: Optional[str], project: Optional[str]
) -> None:
    """Add a comment to a task or a project."""
    cli_ctx = get_context(ctx)
    result = add_comment(cli_ctx.snapshot, content, task=task, project=project)
    emit_success(result, text=_render_added)


def _render_batch_added(data: Mapping[str, Any]) -> Iterable[str]:
    yield f"Added comment to {data['count']} target(s):"
    for comment in data["comments"]:
        target = comment["target"]
        yield f"  {target['type']} {target['id']}\t{target['label']}"


def _batch_warnings(data: Mapping[str, Any]) -> List[str]:
    return [f"Skipped '{u['token']}': {u['error']}" for u in data.get("unresolved", [])]


@comments.command("batch-add")
@click.argument("content")
@click.option("--task", "tasks", multiple=True, help="Task to comment on (repeatable).")
@click.option("--project", "projects", multiple=True, help="Project to comment on (repeatable).")
@click.option("--continue-on-error", is_flag=True, help="Skip tokens that do not resolve.")
@click.pass_context
@cli_command("comments-batch-add")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Adding comments timed out")
def batch_add_cmd(
    ctx: click.Context,
    content: str,
    tasks: Tuple[str, ...],
    projects: Tuple[str, ...],
    continue_on_error: bool,
) -> None:
    """Add the same comment to many tasks and projects in one request.

    Every --task and --project is resolved before anything is written.
    """
    cli_ctx = get_context(ctx)
    result = add_comments(
        cli_ctx.snapshot,
        content,
        tasks=tasks,
        projects=projects,
        continue_on_error=continue_on_error,
    )
    emit_success(result, text=_render_batch_added, warnings=_batch_warnings(result))
