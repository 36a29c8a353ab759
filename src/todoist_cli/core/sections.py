"""Section operations: list, add, bulk add, update/move, remove, bulk remove.

Removing a section deletes the tasks still inside it, so removal refuses to
touch a non-empty section unless forced. A forced removal first moves the
section's tasks to their project root, then deletes, then checks that every
moved task survived.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from todoist_cli.core.commands import (
    ItemMove,
    SectionAdd,
    SectionDelete,
    SectionMove,
    SectionUpdate,
    SyncCommand,
    ValidationError,
)
from todoist_cli.core.models import Section, Task
from todoist_cli.core.resolver import resolve_many, resolve_project, resolve_section
from todoist_cli.core.snapshot import Snapshot

logger = logging.getLogger(__name__)


class SectionNotEmptyError(ValidationError):
    """Refused to remove sections that still hold tasks."""

    def __init__(self, tasks_by_section: Dict[str, List[Task]], names: Dict[str, str]):
        total = sum(len(tasks) for tasks in tasks_by_section.values())
        listed = ", ".join(f'"{names[sid]}"' for sid in tasks_by_section)
        super().__init__(
            f"Section {listed} contains {total} task(s). "
            "They will be moved to the project root. Use --force to proceed."
        )
        self.tasks_by_section = tasks_by_section
        self.names = names

    def task_lines(self) -> List[str]:
        return [
            f"  - {task.content} ({task.id})"
            for tasks in self.tasks_by_section.values()
            for task in tasks
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": [
                {
                    "id": section_id,
                    "name": self.names[section_id],
                    "tasks": [{"id": t.id, "content": t.content} for t in tasks],
                }
                for section_id, tasks in self.tasks_by_section.items()
            ]
        }


def section_summary(section: Section, snapshot: Snapshot) -> Dict[str, Any]:
    data = section.to_dict()
    data["project_path"] = snapshot.project_path(section.project_id)
    return data


def _resolve_project_id(snapshot: Snapshot, token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    return resolve_project(token, snapshot.projects, index=snapshot.project_index).id


def _resolve(snapshot: Snapshot, token: str, project_id: Optional[str]) -> Section:
    return resolve_section(
        token,
        snapshot.sections,
        project_id=project_id,
        project_label=snapshot.project_path(project_id) if project_id else None,
        label_of=snapshot.section_label,
    )


def list_sections(snapshot: Snapshot, *, project: Optional[str] = None) -> Dict[str, Any]:
    project_id = _resolve_project_id(snapshot, project)
    sections = snapshot.sections
    if project_id is not None:
        sections = [s for s in sections if s.project_id == project_id]
    ordered = sorted(
        sections, key=lambda s: (snapshot.project_path(s.project_id).lower(), s.order)
    )
    return {
        "sections": [section_summary(s, snapshot) for s in ordered],
        "count": len(ordered),
    }


def add_sections(
    snapshot: Snapshot,
    names: Sequence[str],
    *,
    project: str,
    start_order: Optional[int] = None,
) -> Dict[str, Any]:
    """Create sections in one project with a single sync request.

    With ``start_order``, sections get consecutive orders from that value.
    """
    names = [n.strip() for n in names if n and n.strip()]
    if not names:
        raise ValidationError("At least one section name is required")
    if not project:
        raise ValidationError("A project is required to add sections")

    project_id = _resolve_project_id(snapshot, project)
    commands = [
        SectionAdd(
            name=name,
            project_id=project_id,
            section_order=start_order + i if start_order is not None else None,
        )
        for i, name in enumerate(names)
    ]
    result = snapshot.client.sync(commands).raise_for_status()
    logger.info("Created %d section(s) in project %s", len(commands), project_id)
    created = [
        {
            "id": result.created_id(cmd),
            "name": cmd.name,
            "project_id": project_id,
            "project_path": snapshot.project_path(project_id),
            "order": cmd.section_order,
        }
        for cmd in commands
    ]
    snapshot.refresh("sections")
    return {"sections": created, "count": len(created)}


def add_section(
    snapshot: Snapshot, name: str, *, project: str, order: Optional[int] = None
) -> Dict[str, Any]:
    result = add_sections(snapshot, [name], project=project, start_order=order)
    return {"section": result["sections"][0]}


def update_section(
    snapshot: Snapshot,
    token: str,
    *,
    project_scope: Optional[str] = None,
    name: Optional[str] = None,
    move_to: Optional[str] = None,
) -> Dict[str, Any]:
    """Rename a section and/or move it to another project."""
    if not name and not move_to:
        raise ValidationError("No updates specified")

    section = _resolve(snapshot, token, _resolve_project_id(snapshot, project_scope))
    commands: List[SyncCommand] = []
    if name:
        commands.append(SectionUpdate(id=section.id, name=name))
    target_project_id = None
    if move_to:
        target_project_id = _resolve_project_id(snapshot, move_to)
        if target_project_id != section.project_id:
            commands.append(SectionMove(id=section.id, project_id=target_project_id))

    if commands:
        snapshot.client.sync(commands).raise_for_status()
        logger.info("Updated section %s", section.id)

    final_project = target_project_id or section.project_id
    return {
        "section": {
            "id": section.id,
            "name": name or section.name,
            "project_id": final_project,
            "project_path": snapshot.project_path(final_project),
        },
        "from": {
            "name": section.name,
            "project_path": snapshot.project_path(section.project_id),
        },
    }


def _remove(
    snapshot: Snapshot,
    sections: List[Section],
    *,
    force: bool,
) -> Dict[str, Any]:
    tasks_by_section: Dict[str, List[Task]] = {}
    for section in sections:
        tasks = snapshot.tasks_in_section(section.id)
        if tasks:
            tasks_by_section[section.id] = tasks
    if tasks_by_section and not force:
        raise SectionNotEmptyError(tasks_by_section, {s.id: s.name for s in sections})

    client = snapshot.client
    moved: List[Task] = [t for tasks in tasks_by_section.values() for t in tasks]
    if moved:
        by_id = {s.id: s for s in sections}
        moves = [
            ItemMove(id=task.id, project_id=by_id[task.section_id].project_id)
            for task in moved
        ]
        client.sync(moves).raise_for_status()
        logger.info("Moved %d task(s) to project root", len(moves))

    client.sync([SectionDelete(id=s.id) for s in sections]).raise_for_status()
    logger.info("Deleted %d section(s)", len(sections))

    snapshot.refresh("tasks", "sections")
    moved_ids = {t.id for t in moved}
    surviving = [t for t in snapshot.tasks if t.id in moved_ids]
    return {
        "sections": [section_summary(s, snapshot) for s in sections],
        "tasks_before_deletion": [{"id": t.id, "content": t.content} for t in moved],
        "tasks_surviving": [
            {
                "id": t.id,
                "content": t.content,
                "project_id": t.project_id,
                "section_id": t.section_id,
            }
            for t in surviving
        ],
        "verified": len(surviving) == len(moved),
        "status": "deleted",
    }


def remove_section(
    snapshot: Snapshot,
    token: str,
    *,
    project: Optional[str] = None,
    force: bool = False,
) -> Dict[str, Any]:
    snapshot.load_all()
    section = _resolve(snapshot, token, _resolve_project_id(snapshot, project))
    result = _remove(snapshot, [section], force=force)
    result["section"] = result.pop("sections")[0]
    return result


def remove_sections(
    snapshot: Snapshot,
    tokens: Sequence[str],
    *,
    project: Optional[str] = None,
    force: bool = False,
    continue_on_error: bool = False,
) -> Dict[str, Any]:
    if not tokens:
        raise ValidationError("At least one section is required")
    snapshot.load_all()
    project_id = _resolve_project_id(snapshot, project)
    batch = resolve_many(
        tokens,
        lambda t: _resolve(snapshot, t, project_id),
        continue_on_error=continue_on_error,
    )
    if not batch.resolved:
        raise ValidationError("No valid sections found to remove")
    result = _remove(snapshot, batch.resolved, force=force)
    result["unresolved"] = [
        {"token": f.token, "error": str(f)} for f in batch.failures
    ]
    return result
