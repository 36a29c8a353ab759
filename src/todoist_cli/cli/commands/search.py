"""Lookup commands: ``search`` by name and ``find`` by Todoist filter."""

from typing import Any, Iterable, Mapping, Optional

import click

from todoist_cli.cli.logging import cli_command, get_cli_logger
from todoist_cli.cli.output import emit_success
from todoist_cli.cli.registry import get_context
from todoist_cli.cli.resilience import (
    MEDIUM_TIMEOUT,
    handle_errors,
    handle_keyboard_interrupt,
    with_sync_timeout,
)
from todoist_cli.core.paths import PATH_DELIMITER
from todoist_cli.core.search import SEARCH_KINDS, find_tasks, search as run_search

logger = get_cli_logger()


def _render_search(data: Mapping[str, Any]) -> Iterable[str]:
    results = data["results"]
    if not results:
        yield f"No {data['kind']}s found"
        return
    for item in results:
        if data["kind"] == "task":
            line = f"{item['id']}\t{item['content']} [{item['project_path']}]"
            if item.get("parent_path"):
                line += f" (under: {PATH_DELIMITER.join(item['parent_path'])})"
            yield line
        elif data["kind"] == "project":
            yield f"{item['id']}\t{item['path']}"
        else:
            yield f"{item['id']}\t{item['project_path']} / {item['name']}"


@click.command("search")
@click.argument("kind", type=click.Choice(SEARCH_KINDS))
@click.argument("query", required=False)
@click.option("--all", "list_all", is_flag=True, help="List every record of KIND.")
@click.option("--exact", is_flag=True, help="Match the whole name (case-insensitive).")
@click.option("--show-parents", is_flag=True, help="Show parent task chains for subtasks.")
@click.pass_context
@cli_command("search")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Search timed out")
def search(
    ctx: click.Context,
    kind: str,
    query: Optional[str],
    list_all: bool,
    exact: bool,
    show_parents: bool,
) -> None:
    """Find tasks, projects or sections whose name contains QUERY."""
    cli_ctx = get_context(ctx)
    result = run_search(
        cli_ctx.snapshot,
        kind,
        query,
        list_all=list_all,
        exact=exact,
        show_parents=show_parents,
    )
    emit_success(result, text=_render_search)


def _render_find(ids_only: bool):
    def render(data: Mapping[str, Any]) -> Iterable[str]:
        if ids_only:
            yield ",".join(data["ids"])
            return
        if not data["tasks"]:
            yield f"No tasks match filter: {data['filter']}"
            return
        for task in data["tasks"]:
            where = task["project_path"]
            if task.get("section"):
                where += f" / {task['section']}"
            line = f"{task['id']}\t{task['content']} [{where}]"
            if task.get("parent"):
                line += f" (under: {task['parent']})"
            yield line

    return render


@click.command("find")
@click.argument("filter_query")
@click.option("--ids", "ids_only", is_flag=True, help="Print matching IDs, comma-separated.")
@click.pass_context
@cli_command("find")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Filter query timed out")
def find(ctx: click.Context, filter_query: str, ids_only: bool) -> None:
    """Run a Todoist filter query, e.g. "p:Work & @next".

    The --ids output feeds straight into ``tasks batch-move``.
    """
    cli_ctx = get_context(ctx)
    emit_success(find_tasks(cli_ctx.snapshot, filter_query), text=_render_find(ids_only))
