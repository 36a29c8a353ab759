"""
Account history from the Sync API: the activity log, completed tasks and
productivity (karma) stats.

These are read-only reports. Project and task tokens given as filters are
resolved against the snapshot like everywhere else; results are labelled
with project paths from the same snapshot, falling back to the names the
API returns for archived or deleted projects.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from todoist_cli.core.commands import ValidationError
from todoist_cli.core.resolver import resolve_project, resolve_task
from todoist_cli.core.snapshot import Snapshot

logger = logging.getLogger(__name__)

ACTIVITY_OBJECT_TYPES = ("item", "project", "section", "note")
ACTIVITY_EVENT_TYPES = (
    "added",
    "updated",
    "completed",
    "uncompleted",
    "deleted",
    "archived",
    "unarchived",
)

ACTIVITY_PAGE_SIZE = 100
COMPLETED_PAGE_SIZE = 200

KARMA_REASONS: Dict[str, str] = {
    "1": "You added tasks",
    "2": "You completed tasks",
    "3": "Usage of advanced features",
    "4": "You are using Todoist",
    "5": "Signed up for Todoist Beta",
    "6": "Used Todoist Support section",
    "7": "For using Todoist Pro",
    "8": "Getting Started Guide task completed",
    "9": "Daily Goal reached",
    "10": "Weekly Goal reached",
    "50": "You have tasks that are over x days overdue",
    "52": "Inactive for a longer period of time",
}

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_COMMENT_TYPES = ("note", "comment")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def parse_day(value: Optional[str], field: str, *, end_of_day: bool = False) -> Optional[str]:
    """Normalize ``YYYY-MM-DD`` or an ISO datetime to ``YYYY-MM-DDTHH:MM:SS``.

    A bare date means midnight, or 23:59:59 with ``end_of_day``.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(
            f"Invalid date {value!r}. Use YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS",
            field=field,
        ) from e
    if end_of_day and len(text) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S")


def date_range(since: Optional[str], until: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    start = parse_day(since, "since")
    end = parse_day(until, "until", end_of_day=True)
    if start and end and start > end:
        raise ValidationError("--since must not be later than --until", field="since")
    return start, end


def _check_limit(limit: Optional[int]) -> None:
    if limit is not None and limit < 1:
        raise ValidationError("--limit must be at least 1", field="limit")


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


def _opt_str(value: Any) -> Optional[str]:
    return None if value is None or value == "" else str(value)


def clean_event(event: Mapping[str, Any], *, nested: bool = False) -> Dict[str, Any]:
    """Keep the fields worth showing; parent ids are dropped when ``nested``."""
    cleaned: Dict[str, Any] = {
        "event_type": event.get("event_type"),
        "object_type": event.get("object_type"),
        "object_id": _opt_str(event.get("object_id")),
        "event_date": event.get("event_date"),
    }
    if not nested:
        for key in ("parent_project_id", "parent_item_id"):
            if event.get(key):
                cleaned[key] = str(event[key])
    extra = {
        key: value
        for key, value in (event.get("extra_data") or {}).items()
        if not key.startswith("v2_")
    }
    if extra:
        cleaned["extra_data"] = extra
    return cleaned


def fetch_events(
    client: Any,
    *,
    limit: Optional[int] = None,
    include_deleted: bool = False,
    **filters: Any,
) -> List[Dict[str, Any]]:
    """Page through the activity log until ``limit`` events are collected.

    Duplicate events (the same change reported on two pages) are dropped,
    as are ``deleted`` events unless ``include_deleted`` is set.
    """
    events: List[Dict[str, Any]] = []
    seen = set()
    offset = 0
    while True:
        page = client.get_activity(limit=ACTIVITY_PAGE_SIZE, offset=offset, **filters)
        batch = page.get("events") or []
        for event in batch:
            key = (
                event.get("object_type"),
                str(event.get("object_id")),
                event.get("event_type"),
                event.get("event_date"),
            )
            if key in seen:
                continue
            seen.add(key)
            if not include_deleted and event.get("event_type") == "deleted":
                continue
            events.append(event)
        offset += len(batch)
        logger.debug("Fetched %d activity event(s), %d kept", offset, len(events))
        if len(batch) < ACTIVITY_PAGE_SIZE:
            break
        if limit is not None and len(events) >= limit:
            break
    return events[:limit] if limit is not None else events


def _project_label(
    project_id: str, snapshot: Snapshot, names: Mapping[str, str]
) -> str:
    if snapshot.project(project_id) is not None:
        return snapshot.project_path(project_id)
    return names.get(project_id) or f"Project {project_id}"


def group_activity(events: List[Mapping[str, Any]], snapshot: Snapshot) -> Dict[str, Any]:
    """Group events by project, then by task, with comments under their owner.

    Events that cannot be placed (sections, comments on unknown tasks,
    tasks with no project) end up in ``other_events``.
    """
    projects: Dict[str, Dict[str, Any]] = {}
    item_owner: Dict[str, str] = {}
    names: Dict[str, str] = {}
    other: List[Dict[str, Any]] = []

    def project_group(project_id: str) -> Dict[str, Any]:
        if project_id not in projects:
            projects[project_id] = {
                "id": project_id,
                "project_events": [],
                "comments": [],
                "items": {},
            }
        return projects[project_id]

    def item_group(project_id: str, item_id: str, event: Mapping[str, Any]) -> Dict[str, Any]:
        items = project_group(project_id)["items"]
        if item_id not in items:
            task = snapshot.task(item_id)
            content = (event.get("extra_data") or {}).get("content")
            items[item_id] = {
                "id": item_id,
                "content": content or (task.content if task else None),
                "item_events": [],
                "comments": [],
            }
        return items[item_id]

    notes = []
    for event in events:
        object_type = event.get("object_type")
        object_id = _opt_str(event.get("object_id"))
        parent_project = _opt_str(event.get("parent_project_id"))
        if object_type == "project" and object_id:
            name = (event.get("extra_data") or {}).get("name")
            if name:
                names.setdefault(object_id, name)
            project_group(object_id)["project_events"].append(clean_event(event, nested=True))
        elif object_type == "item" and object_id and parent_project:
            item_owner[object_id] = parent_project
            item_group(parent_project, object_id, event)["item_events"].append(
                clean_event(event, nested=True)
            )
        elif object_type in _COMMENT_TYPES:
            notes.append(event)
        else:
            other.append(clean_event(event))

    for event in notes:
        parent_item = _opt_str(event.get("parent_item_id"))
        parent_project = _opt_str(event.get("parent_project_id"))
        if parent_item and parent_item in item_owner:
            owner = item_owner[parent_item]
            projects[owner]["items"][parent_item]["comments"].append(
                clean_event(event, nested=True)
            )
        elif parent_project and not parent_item:
            project_group(parent_project)["comments"].append(clean_event(event, nested=True))
        else:
            other.append(clean_event(event))

    grouped = []
    for project_id, group in projects.items():
        group["path"] = _project_label(project_id, snapshot, names)
        group["items"] = list(group["items"].values())
        grouped.append(group)
    return {"projects": grouped, "other_events": other}


def activity_log(
    snapshot: Snapshot,
    *,
    project: Optional[str] = None,
    task: Optional[str] = None,
    object_type: Optional[str] = None,
    event_type: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    limit: Optional[int] = None,
    include_deleted: bool = False,
) -> Dict[str, Any]:
    """Read the activity log, optionally narrowed to one project or task."""
    if project and task:
        raise ValidationError("Give at most one of --project or --task")
    if object_type is not None and object_type not in ACTIVITY_OBJECT_TYPES:
        raise ValidationError(
            f"Unknown object type '{object_type}'. "
            f"Use one of: {', '.join(ACTIVITY_OBJECT_TYPES)}",
            field="object_type",
        )
    if event_type is not None and event_type not in ACTIVITY_EVENT_TYPES:
        raise ValidationError(
            f"Unknown event type '{event_type}'. "
            f"Use one of: {', '.join(ACTIVITY_EVENT_TYPES)}",
            field="event_type",
        )
    _check_limit(limit)
    start, end = date_range(since, until)

    filters: Dict[str, Any] = {
        "object_type": object_type,
        "event_type": event_type,
        "since": start,
        "until": end,
    }
    if project:
        target = resolve_project(project, snapshot.projects, index=snapshot.project_index)
        filters["parent_project_id"] = target.id
    if task:
        if object_type not in (None, "item"):
            raise ValidationError("--task shows task events; drop --object-type")
        target_task = resolve_task(task, snapshot.tasks)
        filters["object_type"] = "item"
        filters["object_id"] = target_task.id

    events = fetch_events(
        snapshot.client,
        limit=limit,
        include_deleted=include_deleted,
        **{k: v for k, v in filters.items() if v is not None},
    )
    return {
        "events": [clean_event(e) for e in events],
        "groups": group_activity(events, snapshot),
        "count": len(events),
        "filters": {
            "project": project,
            "task": task,
            "object_type": object_type,
            "event_type": event_type,
            "since": start,
            "until": end,
            "limit": limit,
            "include_deleted": include_deleted,
        },
    }


# ---------------------------------------------------------------------------
# Completed tasks
# ---------------------------------------------------------------------------


def completed_tasks(
    snapshot: Snapshot,
    *,
    project: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Tasks completed in a date range, newest first as the API returns them."""
    _check_limit(limit)
    start, end = date_range(since, until)
    project_id = None
    if project:
        project_id = resolve_project(
            project, snapshot.projects, index=snapshot.project_index
        ).id

    items: List[Mapping[str, Any]] = []
    names: Dict[str, str] = {}
    offset = 0
    while True:
        page_size = COMPLETED_PAGE_SIZE
        if limit is not None:
            page_size = min(page_size, limit - len(items))
        page = snapshot.client.get_completed(
            project_id=project_id, since=start, until=end, limit=page_size, offset=offset
        )
        batch = page.get("items") or []
        items.extend(batch)
        for key, value in (page.get("projects") or {}).items():
            if isinstance(value, Mapping) and value.get("name"):
                names[str(key)] = value["name"]
        offset += len(batch)
        if len(batch) < page_size or (limit is not None and len(items) >= limit):
            break

    tasks = []
    for item in items:
        pid = _opt_str(item.get("project_id"))
        tasks.append(
            {
                "id": _opt_str(item.get("task_id") or item.get("id")),
                "completion_id": _opt_str(item.get("id")),
                "content": item.get("content", ""),
                "completed_at": item.get("completed_at"),
                "project_id": pid,
                "project_path": _project_label(pid, snapshot, names) if pid else "Inbox",
                "section_id": _opt_str(item.get("section_id")),
            }
        )
    return {
        "tasks": tasks,
        "count": len(tasks),
        "filters": {"project": project, "since": start, "until": end, "limit": limit},
    }


# ---------------------------------------------------------------------------
# Productivity stats
# ---------------------------------------------------------------------------


def _reasons(codes: Any) -> List[str]:
    return [KARMA_REASONS.get(str(code), f"Reason {code}") for code in codes or []]


def productivity_stats(snapshot: Snapshot) -> Dict[str, Any]:
    """Karma, goals, streaks and recent karma changes."""
    data = snapshot.client.get_productivity_stats()
    goals = data.get("goals") or {}

    def streak(name: str) -> Optional[int]:
        return (goals.get(name) or {}).get("count")

    ignored = [
        WEEKDAYS[day - 1]
        for day in goals.get("ignore_days") or []
        if isinstance(day, int) and 1 <= day <= 7
    ]
    return {
        "karma": data.get("karma"),
        "karma_trend": data.get("karma_trend"),
        "karma_last_update": data.get("karma_last_update"),
        "completed_count": data.get("completed_count"),
        "daily_goal": goals.get("daily_goal"),
        "weekly_goal": goals.get("weekly_goal"),
        "ignored_days": ignored,
        "daily_streak": streak("current_daily_streak"),
        "max_daily_streak": streak("max_daily_streak"),
        "weekly_streak": streak("current_weekly_streak"),
        "max_weekly_streak": streak("max_weekly_streak"),
        "karma_updates": [
            {
                "date": update.get("time"),
                "karma": update.get("new_karma"),
                "positive_karma": update.get("positive_karma"),
                "negative_karma": update.get("negative_karma"),
                "positive_reasons": _reasons(update.get("positive_karma_reasons")),
                "negative_reasons": _reasons(update.get("negative_karma_reasons")),
            }
            for update in data.get("karma_update_reasons") or []
        ],
        "days": [
            {"date": day.get("date"), "completed": day.get("total_completed", 0)}
            for day in data.get("days_items") or []
        ],
    }
