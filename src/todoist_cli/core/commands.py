"""Typed Sync API commands.

Each write against the Sync API is a command ``{type, uuid, args[, temp_id]}``.
One frozen dataclass per command kind carries exactly the arguments that kind
accepts; optional arguments are omitted from the payload when unset, never
sent as null. Every instance gets a fresh ``uuid`` which the Sync API uses as
an idempotency key.

Example:
    cmd = ItemMove(id="123", section_id="456")
    cmd.to_payload()
    # {"type": "item_move", "uuid": "...", "args": {"id": "123", "section_id": "456"}}
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

VALID_COLORS: Tuple[str, ...] = (
    "berry_red",
    "red",
    "orange",
    "yellow",
    "olive_green",
    "lime_green",
    "green",
    "mint_green",
    "teal",
    "sky_blue",
    "light_blue",
    "blue",
    "grape",
    "violet",
    "lavender",
    "magenta",
    "salmon",
    "charcoal",
    "grey",
    "taupe",
)

VALID_VIEW_STYLES: Tuple[str, ...] = ("list", "board")

VALID_PRIORITIES: Tuple[int, ...] = (1, 2, 3, 4)


def _new_uuid() -> str:
    return str(uuid.uuid4())


class ValidationError(ValueError):
    """Invalid user input: a bad option combination or out-of-range value.

    Attributes:
        field: The option at fault, when a single one is to blame.
    """

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def _validate_color(color: Optional[str]) -> None:
    if color is not None and color not in VALID_COLORS:
        raise ValidationError(
            f"Invalid color {color!r}. Valid colors are: {', '.join(VALID_COLORS)}",
            field="color",
        )


def _validate_view_style(view_style: Optional[str]) -> None:
    if view_style is not None and view_style not in VALID_VIEW_STYLES:
        raise ValidationError(
            f"Invalid view style {view_style!r}. "
            f"Valid views are: {', '.join(VALID_VIEW_STYLES)}",
            field="view_style",
        )


def _validate_priority(priority: Optional[int]) -> None:
    if priority is not None and priority not in VALID_PRIORITIES:
        raise ValidationError(
            f"Invalid priority {priority!r}. Must be one of 1, 2, 3, 4.",
            field="priority",
        )


def _compact(args: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in args.items() if value is not None}


@dataclass(frozen=True)
class SyncCommand:
    """Base class for all sync commands."""

    type: ClassVar[str] = ""
    creates: ClassVar[bool] = False

    def args(self) -> Dict[str, Any]:
        raise NotImplementedError

    @property
    def target_id(self) -> Optional[str]:
        """Id of the record the command acts on, if it already exists."""
        return getattr(self, "id", None)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type,
            "uuid": self.uuid,  # type: ignore[attr-defined]
            "args": self.args(),
        }
        if self.creates:
            payload["temp_id"] = self.temp_id  # type: ignore[attr-defined]
        return payload


# ---------------------------------------------------------------------------
# Items (tasks)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemMove(SyncCommand):
    """Move a task to a project root, a section, or under a parent task.

    Exactly one destination must be given.
    """

    type: ClassVar[str] = "item_move"

    id: str
    project_id: Optional[str] = None
    section_id: Optional[str] = None
    parent_id: Optional[str] = None
    uuid: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        destinations = [d for d in (self.project_id, self.section_id, self.parent_id) if d]
        if len(destinations) != 1:
            raise ValidationError(
                "item_move needs exactly one of project_id, section_id or parent_id"
            )

    def args(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "project_id": self.project_id,
                "section_id": self.section_id,
                "parent_id": self.parent_id,
            }
        )


@dataclass(frozen=True)
class ItemUpdate(SyncCommand):
    """Update task fields. Only set fields are sent."""

    type: ClassVar[str] = "item_update"

    id: str
    content: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[int] = None
    labels: Optional[Tuple[str, ...]] = None
    due_string: Optional[str] = None
    due_date: Optional[str] = None
    uuid: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        _validate_priority(self.priority)

    @property
    def changes(self) -> Dict[str, Any]:
        """The fields this update sets, keyed by their API names."""
        changes: Dict[str, Any] = _compact(
            {
                "content": self.content,
                "description": self.description,
                "priority": self.priority,
                "labels": list(self.labels) if self.labels is not None else None,
            }
        )
        if self.due_string is not None:
            changes["due"] = {"string": self.due_string}
        elif self.due_date is not None:
            changes["due"] = {"date": self.due_date}
        return changes

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def args(self) -> Dict[str, Any]:
        return {"id": self.id, **self.changes}


@dataclass(frozen=True)
class ItemClose(SyncCommand):
    """Complete a task."""

    type: ClassVar[str] = "item_close"

    id: str
    uuid: str = field(default_factory=_new_uuid)

    def args(self) -> Dict[str, Any]:
        return {"id": self.id}


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectAdd(SyncCommand):
    """Create a project, optionally nested under ``parent_id``."""

    type: ClassVar[str] = "project_add"
    creates: ClassVar[bool] = True

    name: str
    parent_id: Optional[str] = None
    color: Optional[str] = None
    view_style: Optional[str] = None
    is_favorite: Optional[bool] = None
    child_order: Optional[int] = None
    uuid: str = field(default_factory=_new_uuid)
    temp_id: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Project name is required", field="name")
        _validate_color(self.color)
        _validate_view_style(self.view_style)

    @property
    def target_id(self) -> Optional[str]:
        return None

    def args(self) -> Dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "parent_id": self.parent_id,
                "color": self.color,
                "view_style": self.view_style,
                "is_favorite": self.is_favorite or None,
                "child_order": self.child_order,
            }
        )


@dataclass(frozen=True)
class ProjectUpdate(SyncCommand):
    """Update project attributes (reparenting is ``ProjectMove``)."""

    type: ClassVar[str] = "project_update"

    id: str
    name: Optional[str] = None
    color: Optional[str] = None
    view_style: Optional[str] = None
    is_favorite: Optional[bool] = None
    uuid: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        _validate_color(self.color)
        _validate_view_style(self.view_style)

    @property
    def changes(self) -> Dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "color": self.color,
                "view_style": self.view_style,
                "is_favorite": self.is_favorite,
            }
        )

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def args(self) -> Dict[str, Any]:
        return {"id": self.id, **self.changes}


@dataclass(frozen=True)
class ProjectMove(SyncCommand):
    """Reparent a project. ``parent_id=None`` moves it to the top level."""

    type: ClassVar[str] = "project_move"

    id: str
    parent_id: Optional[str] = None
    uuid: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        if self.parent_id is not None and str(self.parent_id) == str(self.id):
            raise ValidationError("A project cannot be its own parent")

    def args(self) -> Dict[str, Any]:
        # parent_id is sent explicitly, null means "move to root"
        return {"id": self.id, "parent_id": self.parent_id}


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SectionAdd(SyncCommand):
    """Create a section in a project."""

    type: ClassVar[str] = "section_add"
    creates: ClassVar[bool] = True

    name: str
    project_id: str
    section_order: Optional[int] = None
    uuid: str = field(default_factory=_new_uuid)
    temp_id: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Section name is required", field="name")

    @property
    def target_id(self) -> Optional[str]:
        return None

    def args(self) -> Dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "project_id": self.project_id,
                "section_order": self.section_order,
            }
        )


@dataclass(frozen=True)
class SectionUpdate(SyncCommand):
    """Rename a section."""

    type: ClassVar[str] = "section_update"

    id: str
    name: str
    uuid: str = field(default_factory=_new_uuid)

    def args(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class SectionMove(SyncCommand):
    """Move a section (with its tasks) to another project."""

    type: ClassVar[str] = "section_move"

    id: str
    project_id: str
    uuid: str = field(default_factory=_new_uuid)

    def args(self) -> Dict[str, Any]:
        return {"id": self.id, "project_id": self.project_id}


@dataclass(frozen=True)
class SectionDelete(SyncCommand):
    """Delete a section. Tasks still inside are deleted with it."""

    type: ClassVar[str] = "section_delete"

    id: str
    uuid: str = field(default_factory=_new_uuid)

    def args(self) -> Dict[str, Any]:
        return {"id": self.id}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


def _validate_content(content: str) -> None:
    if not content or not content.strip():
        raise ValidationError("Comment content is required", field="content")


@dataclass(frozen=True)
class NoteAdd(SyncCommand):
    """Add a comment to a task."""

    type: ClassVar[str] = "note_add"
    creates: ClassVar[bool] = True

    item_id: str
    content: str
    uuid: str = field(default_factory=_new_uuid)
    temp_id: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        _validate_content(self.content)

    @property
    def target_id(self) -> Optional[str]:
        return self.item_id

    def args(self) -> Dict[str, Any]:
        return {"item_id": self.item_id, "content": self.content}


@dataclass(frozen=True)
class ProjectNoteAdd(SyncCommand):
    """Add a comment to a project."""

    type: ClassVar[str] = "project_note_add"
    creates: ClassVar[bool] = True

    project_id: str
    content: str
    uuid: str = field(default_factory=_new_uuid)
    temp_id: str = field(default_factory=_new_uuid)

    def __post_init__(self) -> None:
        _validate_content(self.content)

    @property
    def target_id(self) -> Optional[str]:
        return self.project_id

    def args(self) -> Dict[str, Any]:
        return {"project_id": self.project_id, "content": self.content}


def payloads(commands: Sequence[SyncCommand]) -> List[Dict[str, Any]]:
    """Serialize commands for one grouped sync request."""
    return [command.to_payload() for command in commands]


def parse_label_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated label list, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def merge_labels(
    existing: Sequence[str],
    *,
    set_to: Optional[Sequence[str]] = None,
    add: Optional[Sequence[str]] = None,
    remove: Optional[Sequence[str]] = None,
) -> Optional[Tuple[str, ...]]:
    """Compute a task's new label list, or None when labels are untouched.

    ``set_to`` replaces the labels, ``add`` appends unseen labels keeping
    existing order, ``remove`` drops the given labels.
    """
    if set_to is not None:
        return tuple(dict.fromkeys(set_to))
    if add:
        return tuple(dict.fromkeys([*existing, *add]))
    if remove:
        dropped = set(remove)
        return tuple(label for label in existing if label not in dropped)
    return None
