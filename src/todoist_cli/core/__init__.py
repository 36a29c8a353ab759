"""Path building, token resolution and Todoist operations for todoist-cli."""

from todoist_cli.core.paths import (
    PATH_DELIMITER,
    PathIndex,
    RecordPath,
    build_path,
    build_path_segments,
    project_path_label,
)

from todoist_cli.core.resolver import (
    AmbiguousError,
    BatchResolution,
    Candidate,
    EmptyTokenError,
    MatchMode,
    NotFoundError,
    ResolutionError,
    resolve_label,
    resolve_many,
    resolve_project,
    resolve_section,
    resolve_task,
)

from todoist_cli.core.snapshot import Snapshot

__all__ = [
    "PATH_DELIMITER",
    "PathIndex",
    "RecordPath",
    "build_path",
    "build_path_segments",
    "project_path_label",
    "AmbiguousError",
    "BatchResolution",
    "Candidate",
    "EmptyTokenError",
    "MatchMode",
    "NotFoundError",
    "ResolutionError",
    "resolve_label",
    "resolve_many",
    "resolve_project",
    "resolve_section",
    "resolve_task",
    "Snapshot",
]
