"""Record types for Todoist projects, sections, tasks, labels and comments.

The shapes are dictated by the Todoist REST API; these dataclasses only
normalize them (ids become strings, missing optional fields become None) so
the path builder and resolver can treat every collection uniformly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


def _opt_id(value: Any) -> Optional[str]:
    """Normalize an optional identifier to ``str`` (ids may arrive as ints)."""
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class Due:
    """Due date block attached to a task."""

    date: Optional[str] = None
    string: Optional[str] = None
    datetime: Optional[str] = None
    is_recurring: bool = False

    @classmethod
    def from_api(cls, data: Optional[Mapping[str, Any]]) -> Optional["Due"]:
        if not data:
            return None
        return cls(
            date=data.get("date"),
            string=data.get("string"),
            datetime=data.get("datetime"),
            is_recurring=bool(data.get("is_recurring", False)),
        )

    def display(self) -> str:
        """Return the most specific due value for display."""
        return self.datetime or self.date or self.string or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "string": self.string,
            "datetime": self.datetime,
            "is_recurring": self.is_recurring,
        }


@dataclass(frozen=True)
class Project:
    """A Todoist project. ``parent_id`` links projects into a forest."""

    id: str
    name: str
    parent_id: Optional[str] = None
    color: Optional[str] = None
    is_favorite: bool = False
    view_style: Optional[str] = None
    order: int = 0
    url: Optional[str] = None
    is_inbox_project: bool = False

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Project":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            parent_id=_opt_id(data.get("parent_id")),
            color=data.get("color"),
            is_favorite=bool(data.get("is_favorite", False)),
            view_style=data.get("view_style"),
            order=int(data.get("order") or data.get("child_order") or 0),
            url=data.get("url"),
            is_inbox_project=bool(
                data.get("is_inbox_project") or data.get("inbox_project", False)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "color": self.color,
            "is_favorite": self.is_favorite,
            "view_style": self.view_style,
            "order": self.order,
            "url": self.url,
        }


@dataclass(frozen=True)
class Section:
    """A section inside a project. Sections do not nest."""

    id: str
    name: str
    project_id: Optional[str] = None
    order: int = 0

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Section":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            project_id=_opt_id(data.get("project_id")),
            order=int(data.get("order") or data.get("section_order") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "project_id": self.project_id,
            "order": self.order,
        }


@dataclass(frozen=True)
class Task:
    """An active task.

    ``project_id`` of None means the task lives in the Inbox. ``parent_id``
    links tasks into their own forest, independent of the project tree.
    """

    id: str
    content: str
    description: str = ""
    project_id: Optional[str] = None
    section_id: Optional[str] = None
    parent_id: Optional[str] = None
    labels: Tuple[str, ...] = field(default_factory=tuple)
    priority: int = 1
    due: Optional[Due] = None
    order: int = 0
    url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Task":
        return cls(
            id=str(data["id"]),
            content=data.get("content", ""),
            description=data.get("description") or "",
            project_id=_opt_id(data.get("project_id")),
            section_id=_opt_id(data.get("section_id")),
            parent_id=_opt_id(data.get("parent_id")),
            labels=tuple(data.get("labels") or ()),
            priority=int(data.get("priority") or 1),
            due=Due.from_api(data.get("due")),
            order=int(data.get("order") or data.get("child_order") or 0),
            url=data.get("url"),
        )

    @property
    def name(self) -> str:
        """Alias so tasks can act as parents in a path index."""
        return self.content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "description": self.description,
            "project_id": self.project_id,
            "section_id": self.section_id,
            "parent_id": self.parent_id,
            "labels": list(self.labels),
            "priority": self.priority,
            "due": self.due.to_dict() if self.due else None,
            "url": self.url,
        }


@dataclass(frozen=True)
class Label:
    """A personal label."""

    id: str
    name: str
    color: Optional[str] = None
    order: int = 0
    is_favorite: bool = False

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Label":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            color=data.get("color"),
            order=int(data.get("order") or data.get("item_order") or 0),
            is_favorite=bool(data.get("is_favorite", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "order": self.order,
            "is_favorite": self.is_favorite,
        }


@dataclass(frozen=True)
class Comment:
    """A comment attached to a task or a project."""

    id: str
    content: str
    task_id: Optional[str] = None
    project_id: Optional[str] = None
    posted_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Comment":
        return cls(
            id=str(data["id"]),
            content=data.get("content", ""),
            task_id=_opt_id(data.get("task_id")),
            project_id=_opt_id(data.get("project_id")),
            posted_at=data.get("posted_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "task_id": self.task_id,
            "project_id": self.project_id,
            "posted_at": self.posted_at,
        }


def projects_from_api(items: List[Mapping[str, Any]]) -> List[Project]:
    return [Project.from_api(item) for item in items]


def sections_from_api(items: List[Mapping[str, Any]]) -> List[Section]:
    return [Section.from_api(item) for item in items]


def tasks_from_api(items: List[Mapping[str, Any]]) -> List[Task]:
    return [Task.from_api(item) for item in items]


def labels_from_api(items: List[Mapping[str, Any]]) -> List[Label]:
    return [Label.from_api(item) for item in items]
