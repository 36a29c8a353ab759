"""Account history commands: ``activity``, ``completed`` and ``karma``."""

from typing import Any, Iterable, Mapping, Optional

import click

from todoist_cli.cli.logging import cli_command
from todoist_cli.cli.output import emit_success
from todoist_cli.cli.registry import get_context
from todoist_cli.cli.resilience import (
    FAST_TIMEOUT,
    SLOW_TIMEOUT,
    handle_errors,
    handle_keyboard_interrupt,
    with_sync_timeout,
)
from todoist_cli.core.activity import (
    ACTIVITY_EVENT_TYPES,
    ACTIVITY_OBJECT_TYPES,
    activity_log,
    completed_tasks,
    productivity_stats,
)


def _event_line(event: Mapping[str, Any], indent: str, *, with_type: bool = False) -> str:
    kind = f"{event['object_type']} " if with_type else ""
    line = f"{indent}- [{event['event_date']}] {kind}{event['event_type']}"
    extra = event.get("extra_data") or {}
    detail = extra.get("content") or extra.get("name")
    if detail:
        line += f": {detail}"
    return line


def _render_activity(data: Mapping[str, Any]) -> Iterable[str]:
    if not data["count"]:
        yield "No activity found"
        return
    groups = data["groups"]
    for project in groups["projects"]:
        yield f"{project['path']} ({project['id']})"
        for event in project["project_events"]:
            yield _event_line(event, "  ")
        if project["comments"]:
            yield "  Comments:"
            for event in project["comments"]:
                yield _event_line(event, "    ")
        for item in project["items"]:
            yield f"  Task {item['id']}: {item['content'] or '(unknown)'}"
            for event in item["item_events"]:
                yield _event_line(event, "    ")
            if item["comments"]:
                yield "    Comments:"
                for event in item["comments"]:
                    yield _event_line(event, "      ")
    if groups["other_events"]:
        yield "Other events:"
        for event in groups["other_events"]:
            yield _event_line(event, "  ", with_type=True)
    yield f"Total activities: {data['count']}"


@click.command("activity")
@click.option("--project", help="Only events inside this project.")
@click.option("--task", help="Only events of this task.")
@click.option("--object-type", type=click.Choice(ACTIVITY_OBJECT_TYPES), help="Filter by object type.")
@click.option("--event-type", type=click.Choice(ACTIVITY_EVENT_TYPES), help="Filter by event type.")
@click.option("--since", help="Start date (YYYY-MM-DD).")
@click.option("--until", help="End date (YYYY-MM-DD, inclusive).")
@click.option("--limit", type=click.IntRange(min=1), default=50, show_default=True,
              help="Maximum number of events.")
@click.option("--include-deleted", is_flag=True, help="Include deletion events.")
@click.pass_context
@cli_command("activity")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Activity log timed out")
def activity(
    ctx: click.Context,
    project: Optional[str],
    task: Optional[str],
    object_type: Optional[str],
    event_type: Optional[str],
    since: Optional[str],
    until: Optional[str],
    limit: int,
    include_deleted: bool,
) -> None:
    """Show the activity log grouped by project and task."""
    cli_ctx = get_context(ctx)
    result = activity_log(
        cli_ctx.snapshot,
        project=project,
        task=task,
        object_type=object_type,
        event_type=event_type,
        since=since,
        until=until,
        limit=limit,
        include_deleted=include_deleted,
    )
    emit_success(result, text=_render_activity)


def _render_completed(data: Mapping[str, Any]) -> Iterable[str]:
    if not data["tasks"]:
        yield "No completed tasks found"
        return
    yield f"Completed {data['count']} task(s):"
    for task in data["tasks"]:
        yield f"  {task['completed_at']}\t{task['id']}\t{task['content']} [{task['project_path']}]"


@click.command("completed")
@click.option("--project", help="Only tasks completed in this project.")
@click.option("--since", help="Start date (YYYY-MM-DD).")
@click.option("--until", help="End date (YYYY-MM-DD, inclusive).")
@click.option("--limit", type=click.IntRange(min=1), default=50, show_default=True,
              help="Maximum number of tasks.")
@click.pass_context
@cli_command("completed")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Completed task listing timed out")
def completed(
    ctx: click.Context,
    project: Optional[str],
    since: Optional[str],
    until: Optional[str],
    limit: int,
) -> None:
    """List completed tasks."""
    cli_ctx = get_context(ctx)
    result = completed_tasks(
        cli_ctx.snapshot, project=project, since=since, until=until, limit=limit
    )
    emit_success(result, text=_render_completed)


def _streak(current: Any, best: Any) -> str:
    return f"streak {current if current is not None else 0}, best {best if best is not None else 0}"


def _render_karma(data: Mapping[str, Any]) -> Iterable[str]:
    trend = f" ({data['karma_trend']})" if data.get("karma_trend") else ""
    yield f"Karma: {data['karma']}{trend}"
    yield f"Completed tasks: {data['completed_count']}"
    if data.get("daily_goal") is not None:
        yield f"Daily goal: {data['daily_goal']} ({_streak(data['daily_streak'], data['max_daily_streak'])})"
    if data.get("weekly_goal") is not None:
        yield f"Weekly goal: {data['weekly_goal']} ({_streak(data['weekly_streak'], data['max_weekly_streak'])})"
    if data.get("ignored_days"):
        yield "Ignored days: " + ", ".join(data["ignored_days"])
    if data.get("karma_updates"):
        yield "Recent karma updates:"
        for update in data["karma_updates"]:
            reasons = ", ".join(update["positive_reasons"] + update["negative_reasons"])
            yield f"  {update['date']}: {update['karma']}" + (f" ({reasons})" if reasons else "")


@click.command("karma")
@click.pass_context
@cli_command("karma")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(FAST_TIMEOUT, "Karma lookup timed out")
def karma(ctx: click.Context) -> None:
    """Show karma, daily and weekly goals, and streaks."""
    cli_ctx = get_context(ctx)
    emit_success(productivity_stats(cli_ctx.snapshot), text=_render_karma)
