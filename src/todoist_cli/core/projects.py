"""Project operations: list with sections, add, bulk add, update, move."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from todoist_cli.core.commands import (
    ProjectAdd,
    ProjectMove,
    ProjectUpdate,
    ValidationError,
)
from todoist_cli.core.models import Project
from todoist_cli.core.resolver import resolve_project
from todoist_cli.core.snapshot import Snapshot

logger = logging.getLogger(__name__)


def project_summary(project: Project, snapshot: Snapshot) -> Dict[str, Any]:
    data = project.to_dict()
    data["path"] = snapshot.project_index.path(project)
    return data


def list_projects(snapshot: Snapshot, *, with_sections: bool = True) -> Dict[str, Any]:
    """All projects sorted by name, each with its path and (ordered) sections."""
    projects = sorted(snapshot.projects, key=lambda p: p.name.lower())
    items = []
    for project in projects:
        item = project_summary(project, snapshot)
        if with_sections:
            item["sections"] = [s.to_dict() for s in snapshot.sections_in(project.id)]
        items.append(item)
    return {"projects": items, "count": len(items)}


def _resolve_parent(snapshot: Snapshot, parent: Optional[str]) -> Optional[Project]:
    if not parent:
        return None
    return resolve_project(parent, snapshot.projects, index=snapshot.project_index)


def _created_summary(
    command: ProjectAdd, created_id: Optional[str], parent: Optional[Project], snapshot: Snapshot
) -> Dict[str, Any]:
    path = command.name
    if parent is not None:
        path = f"{snapshot.project_index.path(parent)} » {command.name}"
    return {
        "id": created_id,
        "name": command.name,
        "parent_id": parent.id if parent else None,
        "path": path,
        "color": command.color,
        "view_style": command.view_style,
        "is_favorite": bool(command.is_favorite),
    }


def add_projects(
    snapshot: Snapshot,
    names: Sequence[str],
    *,
    parent: Optional[str] = None,
    color: Optional[str] = None,
    view_style: Optional[str] = None,
    is_favorite: bool = False,
) -> Dict[str, Any]:
    """Create one or more sibling projects in a single sync request."""
    names = [n.strip() for n in names if n and n.strip()]
    if not names:
        raise ValidationError("At least one project name is required")

    parent_project = _resolve_parent(snapshot, parent)
    commands = [
        ProjectAdd(
            name=name,
            parent_id=parent_project.id if parent_project else None,
            color=color,
            view_style=view_style,
            is_favorite=is_favorite or None,
        )
        for name in names
    ]
    result = snapshot.client.sync(commands).raise_for_status()
    logger.info("Created %d project(s)", len(commands))
    created = [
        _created_summary(cmd, result.created_id(cmd), parent_project, snapshot)
        for cmd in commands
    ]
    snapshot.refresh("projects")
    return {"projects": created, "count": len(created)}


def add_project(snapshot: Snapshot, name: str, **options: Any) -> Dict[str, Any]:
    result = add_projects(snapshot, [name], **options)
    return {"project": result["projects"][0]}


def update_project(
    snapshot: Snapshot,
    token: str,
    *,
    name: Optional[str] = None,
    color: Optional[str] = None,
    view_style: Optional[str] = None,
    is_favorite: Optional[bool] = None,
) -> Dict[str, Any]:
    project = resolve_project(token, snapshot.projects, index=snapshot.project_index)
    command = ProjectUpdate(
        id=project.id,
        name=name,
        color=color,
        view_style=view_style,
        is_favorite=is_favorite,
    )
    if command.is_empty:
        raise ValidationError("No updates specified")
    snapshot.client.sync([command]).raise_for_status()
    logger.info("Updated project %s", project.id)
    return {
        "project": project_summary(project, snapshot),
        "changes": command.changes,
    }


def _descendant_ids(snapshot: Snapshot, project_id: str) -> List[str]:
    return [
        p.id
        for p in snapshot.projects
        if p.id != project_id and project_id in snapshot.project_index.ids(p)
    ]


def move_project(
    snapshot: Snapshot,
    token: str,
    *,
    parent: Optional[str] = None,
    to_root: bool = False,
) -> Dict[str, Any]:
    """Reparent a project under ``parent``, or to the top level."""
    if bool(parent) == bool(to_root):
        raise ValidationError("Give exactly one of --parent or --root")

    project = resolve_project(token, snapshot.projects, index=snapshot.project_index)
    new_parent = _resolve_parent(snapshot, parent)
    if new_parent is not None:
        if new_parent.id == project.id:
            raise ValidationError("A project cannot be its own parent")
        if new_parent.id in _descendant_ids(snapshot, project.id):
            raise ValidationError(
                f"Cannot move '{project.name}' under its own descendant "
                f"'{snapshot.project_index.path(new_parent)}'"
            )

    before = snapshot.project_index.path(project)
    command = ProjectMove(id=project.id, parent_id=new_parent.id if new_parent else None)
    snapshot.client.sync([command]).raise_for_status()
    logger.info("Moved project %s", project.id)

    after = project.name
    if new_parent is not None:
        after = f"{snapshot.project_index.path(new_parent)} » {project.name}"
    snapshot.refresh("projects")
    return {
        "project": {"id": project.id, "name": project.name},
        "from": before,
        "to": after,
        "parent_id": new_parent.id if new_parent else None,
    }
