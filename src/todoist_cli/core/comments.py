"""Attach comments to tasks or projects."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from todoist_cli.core.commands import NoteAdd, ProjectNoteAdd, SyncCommand, ValidationError
from todoist_cli.core.resolver import resolve_many, resolve_project, resolve_task
from todoist_cli.core.snapshot import Snapshot
from todoist_cli.core.tasks import split_tokens

logger = logging.getLogger(__name__)


def add_comment(
    snapshot: Snapshot,
    content: str,
    *,
    task: Optional[str] = None,
    project: Optional[str] = None,
) -> Dict[str, Any]:
    if not content or not content.strip():
        raise ValidationError("Comment content is required", field="content")
    if bool(task) == bool(project):
        raise ValidationError("Give exactly one of --task or --project")

    if task:
        target = resolve_task(task, snapshot.tasks)
        comment = snapshot.client.add_comment(content, task_id=target.id)
        on = {"type": "task", "id": target.id, "label": target.content}
    else:
        target = resolve_project(project, snapshot.projects, index=snapshot.project_index)
        comment = snapshot.client.add_comment(content, project_id=target.id)
        on = {"type": "project", "id": target.id, "label": snapshot.project_index.path(target)}

    logger.info("Added comment %s to %s %s", comment.id, on["type"], on["id"])
    return {"comment": comment.to_dict(), "target": on}


def add_comments(
    snapshot: Snapshot,
    content: str,
    *,
    tasks: Sequence[str] = (),
    projects: Sequence[str] = (),
    continue_on_error: bool = False,
) -> Dict[str, Any]:
    """Add the same comment to many tasks and projects in one sync request.

    Task and project tokens are resolved against a single snapshot before
    anything is sent. Without ``continue_on_error`` an unresolved token
    aborts the whole batch.
    """
    if not content or not content.strip():
        raise ValidationError("Comment content is required", field="content")
    if not tasks and not projects:
        raise ValidationError("At least one --task or --project is required")

    snapshot.load_all()
    task_batch = resolve_many(
        split_tokens(tasks, snapshot.tasks),
        lambda t: resolve_task(t, snapshot.tasks),
        continue_on_error=continue_on_error,
    )
    project_batch = resolve_many(
        projects,
        lambda p: resolve_project(p, snapshot.projects, index=snapshot.project_index),
        continue_on_error=continue_on_error,
    )

    targets: List[Dict[str, Any]] = []
    commands: List[SyncCommand] = []
    for task in task_batch.resolved:
        targets.append({"type": "task", "id": task.id, "label": task.content})
        commands.append(NoteAdd(item_id=task.id, content=content))
    for project in project_batch.resolved:
        targets.append(
            {"type": "project", "id": project.id, "label": snapshot.project_index.path(project)}
        )
        commands.append(ProjectNoteAdd(project_id=project.id, content=content))
    if not commands:
        raise ValidationError("No valid tasks or projects found to comment on")

    result = snapshot.client.sync(commands)
    result.raise_for_status()
    logger.info("Added comment to %d target(s)", len(commands))

    comments = [
        {"id": result.created_id(command), "target": target}
        for command, target in zip(commands, targets)
    ]
    return {
        "content": content,
        "comments": comments,
        "count": len(comments),
        "unresolved": [
            {"token": f.token, "kind": f.kind, "error": str(f)}
            for f in [*task_batch.failures, *project_batch.failures]
        ],
    }
