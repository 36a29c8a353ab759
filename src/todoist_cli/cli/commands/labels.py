"""Label commands."""

from typing import Any, Iterable, Mapping

import click

from todoist_cli.cli.logging import cli_command
from todoist_cli.cli.output import emit_success
from todoist_cli.cli.registry import get_context
from todoist_cli.cli.resilience import (
    MEDIUM_TIMEOUT,
    handle_errors,
    handle_keyboard_interrupt,
    with_sync_timeout,
)
from todoist_cli.core.search import list_labels


def _render_list(data: Mapping[str, Any]) -> Iterable[str]:
    if not data["labels"]:
        yield "No labels found"
        return
    for label in data["labels"]:
        line = f"{label['id']}\t@{label['name']}"
        if "task_count" in label:
            line += f" ({label['task_count']} task(s))"
        yield line


@click.group("labels")
def labels() -> None:
    """Label commands."""
    pass


@labels.command("list")
@click.option("--counts", is_flag=True, help="Include active task counts.")
@click.pass_context
@cli_command("labels-list")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Label listing timed out")
def list_cmd(ctx: click.Context, counts: bool) -> None:
    """List personal labels."""
    cli_ctx = get_context(ctx)
    emit_success(list_labels(cli_ctx.snapshot, with_counts=counts), text=_render_list)
