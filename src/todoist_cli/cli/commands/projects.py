"""Project commands: list, add, bulk-add, update, move."""

from typing import Any, Iterable, Mapping, Optional, Tuple

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
from todoist_cli.core.commands import VALID_COLORS, VALID_VIEW_STYLES
from todoist_cli.core.projects import (
    add_project,
    add_projects,
    list_projects,
    move_project,
    update_project,
)

logger = get_cli_logger()

_color_option = click.option(
    "--color", type=click.Choice(VALID_COLORS), help="Project color name."
)
_view_option = click.option(
    "--view", "view_style", type=click.Choice(VALID_VIEW_STYLES), help="Project layout."
)


def _render_list(detailed: bool):
    def render(data: Mapping[str, Any]) -> Iterable[str]:
        if not data["projects"]:
            yield "No projects found"
            return
        for project in data["projects"]:
            if detailed:
                yield f"Project: {project['path']}"
                yield f"  ID: {project['id']}"
                if project.get("color"):
                    yield f"  Color: {project['color']}"
                if project.get("view_style"):
                    yield f"  View: {project['view_style']}"
                if project.get("is_favorite"):
                    yield "  Favorite: yes"
                if project.get("sections"):
                    yield "  Sections:"
                    for section in project["sections"]:
                        yield f"    {section['id']}\t{section['name']}"
                yield ""
            else:
                yield f"{project['id']}\t{project['path']}"
                for section in project.get("sections", []):
                    yield f"  {section['id']}\t{section['name']}"

    return render


def _render_created(data: Mapping[str, Any]) -> Iterable[str]:
    projects = data["projects"] if "projects" in data else [data["project"]]
    if len(projects) > 1:
        yield f"Created {len(projects)} projects:"
    for project in projects:
        yield f"Project created: {project['id']}\t{project['path']}"


def _render_updated(data: Mapping[str, Any]) -> Iterable[str]:
    yield f"Project updated: {data['project']['path']}"
    for key, value in data["changes"].items():
        yield f"  {key}: {value}"


def _render_moved(data: Mapping[str, Any]) -> Iterable[str]:
    yield f"Project moved: {data['project']['name']}"
    yield f"From: {data['from']}"
    yield f"To: {data['to']}"


@click.group("projects")
def projects() -> None:
    """Project commands."""
    pass


@projects.command("list")
@click.option("--detailed", is_flag=True, help="Show color, view and favorite state.")
@click.pass_context
@cli_command("projects-list")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Project listing timed out")
def list_cmd(ctx: click.Context, detailed: bool) -> None:
    """List projects with their full paths and sections."""
    cli_ctx = get_context(ctx)
    emit_success(list_projects(cli_ctx.snapshot), text=_render_list(detailed))


@projects.command("add")
@click.argument("name")
@click.option("--parent", help="Parent project (ID, path or name).")
@_color_option
@_view_option
@click.option("--favorite", is_flag=True, help="Mark as favorite.")
@click.pass_context
@cli_command("projects-add")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Project creation timed out")
def add_cmd(
    ctx: click.Context,
    name: str,
    parent: Optional[str],
    color: Optional[str],
    view_style: Optional[str],
    favorite: bool,
) -> None:
    """Create project NAME, optionally under a parent."""
    cli_ctx = get_context(ctx)
    result = add_project(
        cli_ctx.snapshot,
        name,
        parent=parent,
        color=color,
        view_style=view_style,
        is_favorite=favorite,
    )
    emit_success(result, text=_render_created)


@projects.command("bulk-add")
@click.argument("names", nargs=-1, required=True)
@click.option("--parent", help="Parent project for every new project.")
@_color_option
@_view_option
@click.pass_context
@cli_command("projects-bulk-add")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Bulk project creation timed out")
def bulk_add_cmd(
    ctx: click.Context,
    names: Tuple[str, ...],
    parent: Optional[str],
    color: Optional[str],
    view_style: Optional[str],
) -> None:
    """Create several sibling projects in one request."""
    cli_ctx = get_context(ctx)
    result = add_projects(
        cli_ctx.snapshot, names, parent=parent, color=color, view_style=view_style
    )
    emit_success(result, text=_render_created)


@projects.command("update")
@click.argument("project")
@click.option("--name", help="New project name.")
@_color_option
@_view_option
@click.option("--favorite/--no-favorite", default=None, help="Set or clear favorite.")
@click.pass_context
@cli_command("projects-update")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Project update timed out")
def update_cmd(
    ctx: click.Context,
    project: str,
    name: Optional[str],
    color: Optional[str],
    view_style: Optional[str],
    favorite: Optional[bool],
) -> None:
    """Rename or restyle PROJECT (ID, path or name)."""
    cli_ctx = get_context(ctx)
    result = update_project(
        cli_ctx.snapshot,
        project,
        name=name,
        color=color,
        view_style=view_style,
        is_favorite=favorite,
    )
    emit_success(result, text=_render_updated)


@projects.command("move")
@click.argument("project")
@click.option("--parent", help="New parent project (ID, path or name).")
@click.option("--root", "to_root", is_flag=True, help="Move to the top level.")
@click.pass_context
@cli_command("projects-move")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Project move timed out")
def move_cmd(
    ctx: click.Context, project: str, parent: Optional[str], to_root: bool
) -> None:
    """Reparent PROJECT under --parent, or to the top level with --root."""
    cli_ctx = get_context(ctx)
    result = move_project(cli_ctx.snapshot, project, parent=parent, to_root=to_root)
    emit_success(result, text=_render_moved)
