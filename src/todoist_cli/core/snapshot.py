"""Per-invocation cache of remote collections.

A command fetches each collection at most once and resolves every token
against that copy, so a batch of N tokens costs one fetch per collection
rather than N. After writes, ``refresh`` drops a collection so the next
access reports the "after" state.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from todoist_cli.core.models import (
    Label,
    Project,
    Section,
    Task,
    projects_from_api,
    sections_from_api,
    tasks_from_api,
)
from todoist_cli.core.paths import PathIndex, project_path_label

logger = logging.getLogger(__name__)

COLLECTIONS = ("projects", "sections", "tasks", "labels")


def _live(items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # Sync reads include archived, deleted and completed records
    return [
        item
        for item in items
        if not item.get("is_deleted")
        and not item.get("is_archived")
        and not item.get("checked")
    ]


class Snapshot:
    """Lazily fetched, cached view of the account for one command.

    Args:
        client: Anything exposing ``get_projects``, ``get_sections``,
            ``get_tasks``, ``get_labels`` and optionally ``sync_read``.
            May be None for snapshots built with ``from_records``.
    """

    def __init__(self, client: Any = None):
        self._client = client
        self._data: Dict[str, list] = {}
        self._project_index: Optional[PathIndex[Project]] = None
        self._task_index: Optional[PathIndex[Task]] = None

    @classmethod
    def from_records(
        cls,
        *,
        projects: Optional[Iterable[Project]] = None,
        sections: Optional[Iterable[Section]] = None,
        tasks: Optional[Iterable[Task]] = None,
        labels: Optional[Iterable[Label]] = None,
        client: Any = None,
    ) -> "Snapshot":
        snapshot = cls(client)
        for name, records in (
            ("projects", projects),
            ("sections", sections),
            ("tasks", tasks),
            ("labels", labels),
        ):
            if records is not None:
                snapshot._data[name] = list(records)
        return snapshot

    @property
    def client(self) -> Any:
        return self._client

    def _fetch(self, kind: str) -> list:
        if kind not in self._data:
            if self._client is None:
                self._data[kind] = []
            else:
                logger.debug("Fetching %s", kind)
                fetch = getattr(self._client, f"get_{kind}")
                self._data[kind] = list(fetch())
        return self._data[kind]

    @property
    def projects(self) -> List[Project]:
        return self._fetch("projects")

    @property
    def sections(self) -> List[Section]:
        return self._fetch("sections")

    @property
    def tasks(self) -> List[Task]:
        return self._fetch("tasks")

    @property
    def labels(self) -> List[Label]:
        return self._fetch("labels")

    def load_all(self) -> "Snapshot":
        """Fetch projects, sections and tasks in one sync read.

        Batch commands call this up front so resolving many tokens costs a
        single request. Snapshots without a client keep their records.
        """
        if self._client is None:
            return self
        logger.debug("Fetching projects, sections and tasks in one sync read")
        data = self._client.sync_read(["projects", "sections", "items"])
        self._data["projects"] = projects_from_api(_live(data.get("projects") or []))
        self._data["sections"] = sections_from_api(_live(data.get("sections") or []))
        self._data["tasks"] = tasks_from_api(_live(data.get("items") or []))
        self._project_index = None
        self._task_index = None
        return self

    def refresh(self, *kinds: str) -> None:
        """Forget cached collections (all of them when no kind is given)."""
        for kind in kinds or COLLECTIONS:
            if kind not in COLLECTIONS:
                raise ValueError(f"Unknown collection: {kind}")
            self._data.pop(kind, None)
            if kind == "projects":
                self._project_index = None
            elif kind == "tasks":
                self._task_index = None

    @property
    def project_index(self) -> PathIndex[Project]:
        if self._project_index is None:
            self._project_index = PathIndex(self.projects)
        return self._project_index

    @property
    def task_index(self) -> PathIndex[Task]:
        if self._task_index is None:
            self._task_index = PathIndex(self.tasks)
        return self._task_index

    def project_path(self, project_id: Optional[str]) -> str:
        return project_path_label(project_id, self.project_index)

    def project(self, project_id: Optional[str]) -> Optional[Project]:
        return self.project_index.get(project_id)

    def section(self, section_id: Optional[str]) -> Optional[Section]:
        if not section_id:
            return None
        for section in self.sections:
            if section.id == str(section_id):
                return section
        return None

    def task(self, task_id: Optional[str]) -> Optional[Task]:
        return self.task_index.get(task_id)

    def sections_in(self, project_id: str) -> List[Section]:
        return sorted(
            (s for s in self.sections if s.project_id == str(project_id)),
            key=lambda s: s.order,
        )

    def tasks_in_section(self, section_id: str) -> List[Task]:
        return [t for t in self.tasks if t.section_id == str(section_id)]

    def section_label(self, section: Section) -> str:
        """``"<project path> / <section>"`` for disambiguation listings."""
        project = self.project_path(section.project_id)
        return f"{project} / {section.name}"
