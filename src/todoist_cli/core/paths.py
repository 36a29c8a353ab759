"""Hierarchical path building for parent-linked records.

Projects (and tasks acting as parents) form a forest through ``parent_id``.
A record's path is the root-to-record sequence of names joined with
``PATH_DELIMITER``, e.g. ``"Work » Sprint » Backlog"``.

Usage:
    index = PathIndex(projects)
    index.path("2")            # "Work » Sprint"
    index.lookup(project).ids  # ["1", "2"]

Build one ``PathIndex`` per collection and reuse it for every path query
against that collection; ``build_path`` is a one-shot convenience that builds
a throwaway index.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar, Union

PATH_DELIMITER = " » "
INBOX_LABEL = "Inbox"
UNKNOWN_PROJECT_LABEL = "Unknown Project"

R = TypeVar("R")


def _default_name(record: Any) -> str:
    return getattr(record, "name", "")


def _default_parent(record: Any) -> Optional[str]:
    return getattr(record, "parent_id", None)


@dataclass(frozen=True)
class RecordPath:
    """Resolved ancestry for one record."""

    segments: List[str] = field(default_factory=list)
    ids: List[str] = field(default_factory=list)

    @property
    def path(self) -> str:
        return PATH_DELIMITER.join(self.segments)

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "segments": list(self.segments), "ids": list(self.ids)}


class PathIndex(Generic[R]):
    """Id lookup over a flat record collection plus memoized ancestry paths.

    Args:
        records: The full collection the target records belong to.
        name_of: Extracts the display name (``record.name`` by default).
        parent_of: Extracts the parent id (``record.parent_id`` by default).
    """

    def __init__(
        self,
        records: Iterable[R],
        *,
        name_of: Callable[[R], str] = _default_name,
        parent_of: Callable[[R], Optional[str]] = _default_parent,
    ):
        self._records: List[R] = list(records)
        self._by_id: Dict[str, R] = {str(getattr(r, "id")): r for r in self._records}
        self._name_of = name_of
        self._parent_of = parent_of
        self._cache: Dict[str, RecordPath] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return str(record_id) in self._by_id

    @property
    def records(self) -> List[R]:
        return list(self._records)

    def get(self, record_id: Optional[str]) -> Optional[R]:
        if record_id is None:
            return None
        return self._by_id.get(str(record_id))

    def _key(self, target: Union[R, str]) -> Optional[str]:
        if isinstance(target, str):
            return target if target in self._by_id else None
        record_id = str(getattr(target, "id"))
        return record_id if record_id in self._by_id else None

    def lookup(self, target: Union[R, str]) -> RecordPath:
        """Return the ancestry of ``target`` (a record or a record id).

        A record that is not part of the collection still yields a one-segment
        path built from its own name. Unknown ids yield an empty path.
        """
        key = self._key(target)
        if key is None:
            if isinstance(target, str):
                return RecordPath()
            return self._walk(target)
        cached = self._cache.get(key)
        if cached is None:
            cached = self._walk(self._by_id[key])
            self._cache[key] = cached
        return cached

    def _walk(self, record: R) -> RecordPath:
        segments = [self._name_of(record)]
        ids = [str(getattr(record, "id"))]
        visited = {ids[0]}
        parent_id = self._parent_of(record)

        # Bounded by the collection size even if the visited check were bypassed.
        for _ in range(len(self._records)):
            if not parent_id:
                break
            parent_key = str(parent_id)
            if parent_key in visited:
                break
            parent = self._by_id.get(parent_key)
            if parent is None:
                break
            visited.add(parent_key)
            segments.insert(0, self._name_of(parent))
            ids.insert(0, parent_key)
            parent_id = self._parent_of(parent)

        return RecordPath(segments=segments, ids=ids)

    def segments(self, target: Union[R, str]) -> List[str]:
        return list(self.lookup(target).segments)

    def ids(self, target: Union[R, str]) -> List[str]:
        return list(self.lookup(target).ids)

    def path(self, target: Union[R, str]) -> str:
        return self.lookup(target).path

    def paths(self) -> Dict[str, str]:
        """Map every record id in the collection to its path."""
        return {record_id: self.path(record_id) for record_id in self._by_id}


def build_path_segments(record: R, records: Iterable[R], **kwargs: Any) -> List[str]:
    """One-shot ancestry segments for ``record`` within ``records``."""
    return PathIndex(records, **kwargs).segments(record)


def build_path(record: R, records: Iterable[R], **kwargs: Any) -> str:
    """One-shot joined path for ``record`` within ``records``."""
    return PathIndex(records, **kwargs).path(record)


def project_path_label(project_id: Optional[str], index: PathIndex) -> str:
    """Display path for a task's container project.

    Tasks without a project live in the Inbox; a project id that is missing
    from the snapshot is reported rather than raised.
    """
    if not project_id:
        return INBOX_LABEL
    if project_id not in index:
        return UNKNOWN_PROJECT_LABEL
    return index.path(project_id)
