"""Listing-style lookups: search by name, server-side filters, labels."""

import logging
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from todoist_cli.core.commands import ValidationError
from todoist_cli.core.snapshot import Snapshot

logger = logging.getLogger(__name__)

SEARCH_KINDS = ("task", "project", "section")

R = TypeVar("R")


def _match(
    records: Iterable[R], texts_of: Callable[[R], Sequence[str]], query: str, exact: bool
) -> List[R]:
    needle = query.strip().casefold()
    if exact:
        return [r for r in records if any(t.casefold() == needle for t in texts_of(r))]
    return [r for r in records if any(needle in t.casefold() for t in texts_of(r))]


def search(
    snapshot: Snapshot,
    kind: str,
    query: Optional[str] = None,
    *,
    list_all: bool = False,
    exact: bool = False,
    show_parents: bool = False,
) -> Dict[str, Any]:
    """Find tasks, projects or sections whose name contains (or equals) ``query``.

    Unlike resolution, search returns every match and never fails on
    ambiguity. ``list_all`` returns the whole collection.
    """
    if kind not in SEARCH_KINDS:
        raise ValidationError(
            f"Unknown search type '{kind}'. Use one of: {', '.join(SEARCH_KINDS)}"
        )
    if not list_all and not (query and query.strip()):
        raise ValidationError("Search query is required unless using --all")

    results: List[Dict[str, Any]]
    if kind == "task":
        tasks = snapshot.tasks if list_all else _match(
            snapshot.tasks, lambda t: (t.content,), query or "", exact
        )
        results = []
        for task in tasks:
            item = {
                "id": task.id,
                "content": task.content,
                "project_id": task.project_id,
                "project_path": snapshot.project_path(task.project_id),
                "section_id": task.section_id,
                "parent_id": task.parent_id,
                "url": task.url,
            }
            if show_parents and task.parent_id:
                item["parent_path"] = snapshot.task_index.segments(task.parent_id)
            results.append(item)
    elif kind == "project":
        projects = snapshot.projects if list_all else _match(
            snapshot.projects,
            lambda p: (p.name, snapshot.project_index.path(p)),
            query or "",
            exact,
        )
        results = [
            {
                "id": p.id,
                "name": p.name,
                "parent_id": p.parent_id,
                "path": snapshot.project_index.path(p),
                "url": p.url,
            }
            for p in projects
        ]
    else:
        sections = snapshot.sections if list_all else _match(
            snapshot.sections, lambda s: (s.name,), query or "", exact
        )
        results = [
            {
                "id": s.id,
                "name": s.name,
                "project_id": s.project_id,
                "project_path": snapshot.project_path(s.project_id),
            }
            for s in sections
        ]

    return {"kind": kind, "query": query, "results": results, "count": len(results)}


def find_tasks(snapshot: Snapshot, filter_query: str) -> Dict[str, Any]:
    """Run a Todoist filter query (e.g. ``"p:Work & @next"``) server-side."""
    if not filter_query or not filter_query.strip():
        raise ValidationError("A filter query is required")
    tasks = snapshot.client.get_tasks(filter=filter_query)
    results = []
    for task in tasks:
        section = snapshot.section(task.section_id)
        parent = snapshot.task(task.parent_id)
        results.append(
            {
                "id": task.id,
                "content": task.content,
                "project_id": task.project_id,
                "project_path": snapshot.project_path(task.project_id),
                "section_id": task.section_id,
                "section": section.name if section else None,
                "parent_id": task.parent_id,
                "parent": parent.content if parent else None,
                "labels": list(task.labels),
            }
        )
    return {
        "filter": filter_query,
        "tasks": results,
        "ids": [t["id"] for t in results],
        "count": len(results),
    }


def list_labels(snapshot: Snapshot, *, with_counts: bool = False) -> Dict[str, Any]:
    """Personal labels sorted by name, optionally with active-task counts."""
    labels = sorted(snapshot.labels, key=lambda label: label.name.lower())
    counts: Counter = Counter()
    if with_counts:
        for task in snapshot.tasks:
            counts.update(task.labels)
    items = []
    for label in labels:
        item = label.to_dict()
        if with_counts:
            item["task_count"] = counts.get(label.name, 0)
        items.append(item)
    return {"labels": items, "count": len(items)}
