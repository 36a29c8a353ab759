"""Section commands: list, add, bulk-add, update, remove, bulk-remove."""

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
from todoist_cli.core.sections import (
    add_section,
    add_sections,
    list_sections,
    remove_section,
    remove_sections,
    update_section,
)

logger = get_cli_logger()


def _render_list(data: Mapping[str, Any]) -> Iterable[str]:
    if not data["sections"]:
        yield "No sections found"
        return
    for section in data["sections"]:
        yield f"{section['id']}\t{section['project_path']} / {section['name']}"


def _render_created(data: Mapping[str, Any]) -> Iterable[str]:
    sections = data["sections"] if "sections" in data else [data["section"]]
    for section in sections:
        yield f"Section created: {section['id']}\t{section['project_path']} / {section['name']}"


def _render_updated(data: Mapping[str, Any]) -> Iterable[str]:
    before, after = data["from"], data["section"]
    yield f"Section updated: {after['id']}"
    yield f"From: {before['project_path']} / {before['name']}"
    yield f"To: {after['project_path']} / {after['name']}"


def _render_removed(data: Mapping[str, Any]) -> Iterable[str]:
    sections = [data["section"]] if "section" in data else data["sections"]
    for section in sections:
        yield f"Section deleted: {section['project_path']} / {section['name']} ({section['id']})"
    moved = data["tasks_before_deletion"]
    if moved:
        yield f"Moved {len(moved)} task(s) to project root"
        if data["verified"]:
            yield "Verified: all moved tasks survived"
        else:
            yield (
                f"WARNING: only {len(data['tasks_surviving'])} of "
                f"{len(moved)} moved task(s) found after deletion"
            )


def _unresolved_warnings(data: Mapping[str, Any]):
    return [f"Skipped '{u['token']}': {u['error']}" for u in data.get("unresolved", [])]


@click.group("sections")
def sections() -> None:
    """Section commands."""
    pass


@sections.command("list")
@click.option("--project", help="Only sections of this project (ID, path or name).")
@click.pass_context
@cli_command("sections-list")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Section listing timed out")
def list_cmd(ctx: click.Context, project: Optional[str]) -> None:
    """List sections with their project paths."""
    cli_ctx = get_context(ctx)
    emit_success(list_sections(cli_ctx.snapshot, project=project), text=_render_list)


@sections.command("add")
@click.argument("name")
@click.option("--project", required=True, help="Project (ID, path or name).")
@click.option("--order", type=int, help="Position among the project's sections.")
@click.pass_context
@cli_command("sections-add")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Section creation timed out")
def add_cmd(ctx: click.Context, name: str, project: str, order: Optional[int]) -> None:
    """Create section NAME in a project."""
    cli_ctx = get_context(ctx)
    result = add_section(cli_ctx.snapshot, name, project=project, order=order)
    emit_success(result, text=_render_created)


@sections.command("bulk-add")
@click.argument("names", nargs=-1, required=True)
@click.option("--project", required=True, help="Project (ID, path or name).")
@click.option("--start-order", type=int, help="Order of the first new section.")
@click.pass_context
@cli_command("sections-bulk-add")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Bulk section creation timed out")
def bulk_add_cmd(
    ctx: click.Context, names: Tuple[str, ...], project: str, start_order: Optional[int]
) -> None:
    """Create several sections in one project with one request."""
    cli_ctx = get_context(ctx)
    result = add_sections(cli_ctx.snapshot, names, project=project, start_order=start_order)
    emit_success(result, text=_render_created)


@sections.command("update")
@click.argument("section")
@click.option("--project", help="Project the section lives in (narrows the lookup).")
@click.option("--name", help="New section name.")
@click.option("--move-to", help="Move the section to this project.")
@click.pass_context
@cli_command("sections-update")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(MEDIUM_TIMEOUT, "Section update timed out")
def update_cmd(
    ctx: click.Context,
    section: str,
    project: Optional[str],
    name: Optional[str],
    move_to: Optional[str],
) -> None:
    """Rename SECTION and/or move it to another project."""
    cli_ctx = get_context(ctx)
    result = update_section(
        cli_ctx.snapshot, section, project_scope=project, name=name, move_to=move_to
    )
    emit_success(result, text=_render_updated)


@sections.command("remove")
@click.argument("section")
@click.option("--project", help="Project the section lives in (narrows the lookup).")
@click.option("--force", is_flag=True, help="Move tasks to the project root, then delete.")
@click.pass_context
@cli_command("sections-remove")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Section removal timed out")
def remove_cmd(
    ctx: click.Context, section: str, project: Optional[str], force: bool
) -> None:
    """Delete SECTION. Refuses when it still holds tasks unless --force."""
    cli_ctx = get_context(ctx)
    result = remove_section(cli_ctx.snapshot, section, project=project, force=force)
    emit_success(result, text=_render_removed)


@sections.command("bulk-remove")
@click.argument("section_tokens", nargs=-1, required=True)
@click.option("--project", help="Project the sections live in (narrows the lookup).")
@click.option("--force", is_flag=True, help="Move tasks to the project root, then delete.")
@click.option("--continue-on-error", is_flag=True, help="Skip sections that do not resolve.")
@click.pass_context
@cli_command("sections-bulk-remove")
@handle_keyboard_interrupt()
@handle_errors()
@with_sync_timeout(SLOW_TIMEOUT, "Bulk section removal timed out")
def bulk_remove_cmd(
    ctx: click.Context,
    section_tokens: Tuple[str, ...],
    project: Optional[str],
    force: bool,
    continue_on_error: bool,
) -> None:
    """Delete several sections."""
    cli_ctx = get_context(ctx)
    result = remove_sections(
        cli_ctx.snapshot,
        section_tokens,
        project=project,
        force=force,
        continue_on_error=continue_on_error,
    )
    emit_success(result, text=_render_removed, warnings=_unresolved_warnings(result))
