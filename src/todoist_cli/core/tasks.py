"""
Task operations: list, add, move, update, complete, and their batch forms.

Every function takes a ``Snapshot`` (one fetched copy of the account for the
running command) plus user tokens, resolves the tokens against the snapshot,
and performs the write through ``snapshot.client``. Results are plain dicts
ready for the JSON envelope. Failures raise; nothing here prints or exits.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from todoist_cli.core.commands import (
    ItemClose,
    ItemMove,
    ItemUpdate,
    ValidationError,
    merge_labels,
)
from todoist_cli.core.models import Task
from todoist_cli.core.resolver import (
    NotFoundError,
    ResolutionError,
    resolve_label,
    resolve_many,
    resolve_project,
    resolve_section,
    resolve_task,
)
from todoist_cli.core.snapshot import Snapshot

logger = logging.getLogger(__name__)

_GOALS_PREFIX = re.compile(r"^goals:\s*", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Presentation helpers
# ---------------------------------------------------------------------------


def task_summary(task: Task, snapshot: Snapshot) -> Dict[str, Any]:
    """Task dict enriched with its project path and section name."""
    section = snapshot.section(task.section_id)
    data = task.to_dict()
    data["project_path"] = snapshot.project_path(task.project_id)
    data["section"] = section.name if section else None
    return data


def task_location(task: Task, snapshot: Snapshot) -> Dict[str, Any]:
    """Where a task lives: project, section and parent."""
    section = snapshot.section(task.section_id)
    parent = snapshot.task(task.parent_id)
    return {
        "project_id": task.project_id,
        "project_path": snapshot.project_path(task.project_id),
        "section_id": task.section_id,
        "section": section.name if section else None,
        "parent_id": task.parent_id,
        "parent": parent.content if parent else None,
    }


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def matches_project_filter(project_path: str, query: str) -> bool:
    """Word-wise fuzzy match of a project path against a filter phrase.

    Every filter word must overlap (either contains the other) with some
    word of the path.
    """
    path_words = [w for w in re.split(r"[\s»]+", project_path.lower()) if w]
    filter_words = [w for w in query.lower().split() if w]
    if not filter_words:
        return True
    return all(
        any(fw in pw or pw in fw for pw in path_words) for fw in filter_words
    )


def normalize_label(label: str) -> str:
    return _GOALS_PREFIX.sub("", label).lower()


def has_all_labels(task: Task, labels: Sequence[str]) -> bool:
    task_labels = {normalize_label(label) for label in task.labels}
    return all(label.lower() in task_labels for label in labels)


def canonical_labels(snapshot: Snapshot, names: Sequence[str]) -> List[str]:
    """Spell each label the way the account stores it.

    A name is matched by label id or exact name (case-insensitive). Names
    with no personal label yet are kept as typed; Todoist creates them on
    first use.
    """
    if not names:
        return []
    spelled: List[str] = []
    for name in names:
        try:
            spelled.append(resolve_label(name, snapshot.labels).name)
        except NotFoundError:
            logger.info("Label %r is new and will be created by Todoist", name)
            spelled.append(str(name).strip())
    return list(dict.fromkeys(spelled))


def sort_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Sort by project id, then due date (undated last)."""

    def key(task: Task):
        due = task.due.date if task.due and task.due.date else None
        return (task.project_id or "", due is None, due or "")

    return sorted(tasks, key=key)


def filter_tasks(
    snapshot: Snapshot,
    *,
    project: Optional[str] = None,
    labels: Sequence[str] = (),
) -> List[Task]:
    tasks = list(snapshot.tasks)
    if project:
        needle = project.strip()
        if needle in snapshot.project_index:
            tasks = [t for t in tasks if t.project_id == needle]
        else:
            tasks = [
                t
                for t in tasks
                if matches_project_filter(snapshot.project_path(t.project_id), needle)
            ]
    if labels:
        tasks = [t for t in tasks if has_all_labels(t, labels)]
    return sort_tasks(tasks)


def list_tasks(
    snapshot: Snapshot,
    *,
    project: Optional[str] = None,
    labels: Sequence[str] = (),
) -> Dict[str, Any]:
    tasks = filter_tasks(snapshot, project=project, labels=labels)
    return {
        "tasks": [task_summary(t, snapshot) for t in tasks],
        "count": len(tasks),
        "filters": {"project": project, "labels": list(labels)},
    }


# ---------------------------------------------------------------------------
# Single-task writes
# ---------------------------------------------------------------------------


def add_task(
    snapshot: Snapshot,
    content: str,
    *,
    project: Optional[str] = None,
    section: Optional[str] = None,
    parent: Optional[str] = None,
    priority: Optional[int] = None,
    due_string: Optional[str] = None,
    due_date: Optional[str] = None,
    labels: Sequence[str] = (),
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a task.

    With ``parent`` and no ``project``, the task goes into the parent's
    project (and section). ``section`` is resolved within the target project
    when one is known.
    """
    if not content or not content.strip():
        raise ValidationError("Task content is required", field="content")
    if priority is not None and priority not in (1, 2, 3, 4):
        raise ValidationError(
            f"Invalid priority {priority!r}. Must be one of 1, 2, 3, 4.", field="priority"
        )
    if due_string and due_date:
        raise ValidationError("Use either a due string or a due date, not both")

    parent_task = resolve_task(parent, snapshot.tasks) if parent else None

    project_id: Optional[str] = None
    if project:
        project_id = resolve_project(
            project, snapshot.projects, index=snapshot.project_index
        ).id
    elif parent_task is not None:
        project_id = parent_task.project_id

    section_id: Optional[str] = None
    if section:
        section_id = resolve_section(
            section,
            snapshot.sections,
            project_id=project_id,
            project_label=snapshot.project_path(project_id) if project_id else None,
            label_of=snapshot.section_label,
        ).id
    elif parent_task is not None and not project:
        section_id = parent_task.section_id

    created = snapshot.client.add_task(
        content.strip(),
        description=description,
        project_id=project_id,
        section_id=section_id,
        parent_id=parent_task.id if parent_task else None,
        priority=priority,
        due_string=due_string,
        due_date=due_date,
        labels=canonical_labels(snapshot, labels) or None,
    )
    logger.info("Created task %s", created.id)
    snapshot.refresh("tasks")
    return {"task": task_summary(created, snapshot)}


@dataclass(frozen=True)
class MoveDestination:
    """A resolved move target, shared by every task of one command.

    Exactly one of the fields describes the target: a project, a section, a
    parent task, or a "detach" flag whose target depends on each task.
    """

    project_id: Optional[str] = None
    section_id: Optional[str] = None
    parent: Optional[Task] = None
    no_parent: bool = False
    no_section: bool = False

    def command_for(self, task: Task, snapshot: Snapshot) -> ItemMove:
        if self.parent is not None:
            if self.parent.id == task.id:
                raise ValidationError("A task cannot be its own parent")
            return ItemMove(id=task.id, parent_id=self.parent.id)
        if self.no_parent and task.section_id:
            return ItemMove(id=task.id, section_id=task.section_id)
        if self.no_parent or self.no_section:
            return ItemMove(id=task.id, project_id=task.project_id or _inbox_id(snapshot))
        if self.section_id:
            return ItemMove(id=task.id, section_id=self.section_id)
        return ItemMove(id=task.id, project_id=self.project_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "section_id": self.section_id,
            "parent_id": self.parent.id if self.parent is not None else None,
        }


def resolve_destination(
    snapshot: Snapshot,
    *,
    project: Optional[str] = None,
    section: Optional[str] = None,
    parent: Optional[str] = None,
    no_parent: bool = False,
    no_section: bool = False,
) -> MoveDestination:
    """Validate move options and resolve their tokens against the snapshot."""
    chosen = [
        name
        for name, value in (
            ("parent", parent),
            ("no_parent", no_parent),
            ("no_section", no_section),
        )
        if value
    ]
    if len(chosen) > 1 or (chosen and (project or section)):
        raise ValidationError(
            "Choose one destination: --project/--section, --parent, "
            "--no-parent or --no-section"
        )

    if parent:
        return MoveDestination(parent=resolve_task(parent, snapshot.tasks))
    if no_parent or no_section:
        return MoveDestination(no_parent=no_parent, no_section=no_section)

    project_id = None
    if project:
        project_id = resolve_project(
            project, snapshot.projects, index=snapshot.project_index
        ).id
    if section:
        target_section = resolve_section(
            section,
            snapshot.sections,
            project_id=project_id,
            project_label=snapshot.project_path(project_id) if project_id else None,
            label_of=snapshot.section_label,
        )
        return MoveDestination(
            project_id=target_section.project_id, section_id=target_section.id
        )
    if project_id:
        return MoveDestination(project_id=project_id)

    raise ValidationError(
        "A destination is required: --project, --section, --parent, "
        "--no-parent or --no-section"
    )


def build_move(snapshot: Snapshot, task: Task, **destination: Any) -> ItemMove:
    """Translate move options into one ``ItemMove`` for ``task``."""
    return resolve_destination(snapshot, **destination).command_for(task, snapshot)


def _inbox_id(snapshot: Snapshot) -> str:
    for project in snapshot.projects:
        if project.is_inbox_project:
            return project.id
    raise ValidationError("Task has no project and no Inbox project was found")


def move_task(
    snapshot: Snapshot,
    token: str,
    **destination: Any,
) -> Dict[str, Any]:
    """Move one task and report its location before and after."""
    task = resolve_task(token, snapshot.tasks)
    command = build_move(snapshot, task, **destination)
    before = task_location(task, snapshot)

    snapshot.client.sync([command]).raise_for_status()
    logger.info("Moved task %s", task.id)

    after_task = snapshot.client.get_task(task.id)
    return {
        "task": {"id": task.id, "content": task.content},
        "from": before,
        "to": task_location(after_task, snapshot),
    }


def build_update(
    task: Task,
    *,
    content: Optional[str] = None,
    description: Optional[str] = None,
    priority: Optional[int] = None,
    due_string: Optional[str] = None,
    due_date: Optional[str] = None,
    labels: Optional[Sequence[str]] = None,
    add_labels: Sequence[str] = (),
    remove_labels: Sequence[str] = (),
) -> ItemUpdate:
    if sum(1 for opt in (labels is not None, bool(add_labels), bool(remove_labels)) if opt) > 1:
        raise ValidationError(
            "Use only one of --labels, --add-labels or --remove-labels"
        )
    if due_string and due_date:
        raise ValidationError("Use either a due string or a due date, not both")
    new_labels = merge_labels(
        task.labels, set_to=labels, add=add_labels, remove=remove_labels
    )
    command = ItemUpdate(
        id=task.id,
        content=content,
        description=description,
        priority=priority,
        labels=new_labels,
        due_string=due_string,
        due_date=due_date,
    )
    if command.is_empty:
        raise ValidationError("No updates specified")
    return command


def _spell_label_changes(snapshot: Snapshot, changes: Dict[str, Any]) -> Dict[str, Any]:
    spelled = dict(changes)
    for key in ("labels", "add_labels", "remove_labels"):
        if spelled.get(key):
            spelled[key] = canonical_labels(snapshot, spelled[key])
    return spelled


def update_task(snapshot: Snapshot, token: str, **changes: Any) -> Dict[str, Any]:
    task = resolve_task(token, snapshot.tasks)
    command = build_update(task, **_spell_label_changes(snapshot, changes))
    snapshot.client.sync([command]).raise_for_status()
    logger.info("Updated task %s", task.id)
    return {
        "task": {"id": task.id, "content": task.content},
        "changes": command.changes,
    }


def complete_task(snapshot: Snapshot, token: str) -> Dict[str, Any]:
    task = resolve_task(token, snapshot.tasks)
    snapshot.client.sync([ItemClose(id=task.id)]).raise_for_status()
    logger.info("Completed task %s", task.id)
    return {"task": task_summary(task, snapshot), "completed": True}


# ---------------------------------------------------------------------------
# Batch writes
# ---------------------------------------------------------------------------


def split_tokens(tokens: Iterable[str], tasks: Iterable[Task]) -> List[str]:
    """Expand comma-joined id lists (as printed by ``find --ids``).

    A token is split only when every comma-separated part is the id of a
    task in ``tasks`` and no task has the token itself as its content.
    Anything else, such as content that contains a comma, stays whole.
    """
    tasks = list(tasks)
    ids = {t.id for t in tasks}
    contents = {t.content.strip().casefold() for t in tasks}
    expanded: List[str] = []
    for token in tokens:
        token = str(token)
        parts = [part.strip() for part in token.split(",") if part.strip()]
        if (
            "," in token
            and parts
            and all(part in ids for part in parts)
            and token.strip().casefold() not in contents
        ):
            expanded.extend(parts)
        else:
            expanded.append(token)
    return expanded


def select_tasks(
    snapshot: Snapshot,
    tokens: Sequence[str] = (),
    *,
    filter_query: Optional[str] = None,
    continue_on_error: bool = False,
) -> Dict[str, Any]:
    """Pick the tasks a batch command acts on.

    Returns ``{"tasks": [...], "unresolved": [...]}``. A filter query is
    evaluated server-side; tokens are resolved against the snapshot.
    """
    if filter_query and tokens:
        raise ValidationError("Give task tokens or --filter, not both")
    if filter_query:
        return {"tasks": snapshot.client.get_tasks(filter=filter_query), "unresolved": []}

    tokens = split_tokens(tokens, snapshot.tasks)
    if not tokens:
        raise ValidationError("At least one task (or --filter) is required")
    batch = resolve_many(
        tokens,
        lambda t: resolve_task(t, snapshot.tasks),
        continue_on_error=continue_on_error,
    )
    return {
        "tasks": batch.resolved,
        "unresolved": [_failure_dict(f) for f in batch.failures],
    }


def _failure_dict(error: ResolutionError) -> Dict[str, Any]:
    return {"token": error.token, "kind": error.kind, "error": str(error)}


def _submit_batch(
    snapshot: Snapshot,
    commands: List[Any],
    tasks: List[Task],
    unresolved: List[Dict[str, Any]],
) -> Dict[str, Any]:
    if not commands:
        raise ValidationError("No tasks matched")
    result = snapshot.client.sync(commands)
    result.raise_for_status()
    logger.info("Batch applied %d command(s)", len(commands))
    return {
        "tasks": [{"id": t.id, "content": t.content} for t in tasks],
        "count": len(tasks),
        "unresolved": unresolved,
    }


def batch_move_tasks(
    snapshot: Snapshot,
    tokens: Sequence[str] = (),
    *,
    filter_query: Optional[str] = None,
    continue_on_error: bool = False,
    **destination: Any,
) -> Dict[str, Any]:
    """Move many tasks to one destination with a single sync request.

    The destination is resolved once, before any task is selected, so a
    bad destination fails without touching the task list.
    """
    snapshot.load_all()
    target = resolve_destination(snapshot, **destination)
    selection = select_tasks(
        snapshot, tokens, filter_query=filter_query, continue_on_error=continue_on_error
    )
    tasks: List[Task] = selection["tasks"]
    commands = [target.command_for(task, snapshot) for task in tasks]
    result = _submit_batch(snapshot, commands, tasks, selection["unresolved"])
    result["destination"] = target.to_dict()
    return result


def batch_update_tasks(
    snapshot: Snapshot,
    tokens: Sequence[str] = (),
    *,
    filter_query: Optional[str] = None,
    continue_on_error: bool = False,
    **changes: Any,
) -> Dict[str, Any]:
    """Apply the same update to many tasks with a single sync request."""
    snapshot.load_all()
    changes = _spell_label_changes(snapshot, changes)
    selection = select_tasks(
        snapshot, tokens, filter_query=filter_query, continue_on_error=continue_on_error
    )
    tasks: List[Task] = selection["tasks"]
    commands = [build_update(task, **changes) for task in tasks]
    result = _submit_batch(snapshot, commands, tasks, selection["unresolved"])
    result["changes"] = commands[0].changes if commands else {}
    return result
