"""
Root pytest configuration and shared fixtures.

Provides a small sample account (projects, sections, tasks, labels) and an
in-memory ``FakeClient`` that stands in for ``TodoistClient``: reads return
the sample records, sync commands are applied to them so "after" state can
be verified, and any command can be made to fail.
"""

import itertools
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pytest
from click.testing import CliRunner

from todoist_cli.cli.main import cli
from todoist_cli.core.client import SyncResult, TodoistAPIError
from todoist_cli.core.commands import (
    ItemClose,
    ItemMove,
    ItemUpdate,
    NoteAdd,
    ProjectAdd,
    ProjectMove,
    ProjectNoteAdd,
    ProjectUpdate,
    SectionAdd,
    SectionDelete,
    SectionMove,
    SectionUpdate,
    SyncCommand,
)
from todoist_cli.core.models import Comment, Due, Label, Project, Section, Task
from todoist_cli.core.observability import reset_request_id, set_request_id
from todoist_cli.core.snapshot import Snapshot


def sample_projects() -> List[Project]:
    return [
        Project(id="100", name="Inbox", is_inbox_project=True),
        Project(id="1", name="Work"),
        Project(id="2", name="Sprint", parent_id="1"),
        Project(id="3", name="Personal"),
        Project(id="4", name="Backlog", parent_id="2"),
    ]


def sample_sections() -> List[Section]:
    return [
        Section(id="10", name="Planning", project_id="1", order=1),
        Section(id="11", name="Planning", project_id="3", order=1),
        Section(id="12", name="Review", project_id="2", order=2),
        Section(id="13", name="Ideas", project_id="1", order=2),
    ]


def sample_tasks() -> List[Task]:
    return [
        Task(
            id="5",
            content="Buy milk",
            project_id="3",
            labels=("errand",),
            due=Due(date="2026-10-20", string="Oct 20"),
        ),
        Task(id="6", content="Buy milk and eggs", project_id="3", section_id="11"),
        Task(
            id="7",
            content="Write report",
            project_id="1",
            section_id="10",
            priority=4,
            labels=("work", "goals:focus"),
            due=Due(date="2026-10-19", datetime="2026-10-19T09:00:00"),
        ),
        Task(id="8", content="Draft outline", project_id="1", section_id="10", parent_id="7"),
        Task(id="9", content="Call plumber", project_id="100"),
    ]


def sample_labels() -> List[Label]:
    return [
        Label(id="l2", name="work"),
        Label(id="l1", name="errand"),
        Label(id="l3", name="focus"),
    ]


class FakeClient:
    """In-memory stand-in for ``TodoistClient``.

    Args:
        failing: Target ids whose sync commands report an error status.
        filter_results: Maps a filter query to the task ids it returns.
        activity: Activity log events, newest first.
        completed: Completed-task records as the Sync API returns them.
        stats: Productivity stats payload.
    """

    def __init__(
        self,
        projects: Optional[Iterable[Project]] = None,
        sections: Optional[Iterable[Section]] = None,
        tasks: Optional[Iterable[Task]] = None,
        labels: Optional[Iterable[Label]] = None,
        *,
        failing: Sequence[str] = (),
        filter_results: Optional[Dict[str, List[str]]] = None,
        activity: Optional[List[Dict[str, Any]]] = None,
        completed: Optional[List[Dict[str, Any]]] = None,
        stats: Optional[Dict[str, Any]] = None,
    ):
        self.projects = list(sample_projects() if projects is None else projects)
        self.sections = list(sample_sections() if sections is None else sections)
        self.tasks = list(sample_tasks() if tasks is None else tasks)
        self.labels = list(sample_labels() if labels is None else labels)
        self.failing = set(failing)
        self.filter_results = filter_results or {}
        self.activity = list(activity or [])
        self.completed = list(completed or [])
        self.stats = dict(stats or {})
        self.history_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.fetches: Dict[str, int] = {}
        self.sync_calls: List[List[SyncCommand]] = []
        self.added_tasks: List[Dict[str, Any]] = []
        self.comments: List[Comment] = []
        self.closed = False
        self._ids = itertools.count(900)

    def _count(self, name: str) -> None:
        self.fetches[name] = self.fetches.get(name, 0) + 1

    # -- reads ---------------------------------------------------------------

    def get_projects(self) -> List[Project]:
        self._count("projects")
        return list(self.projects)

    def get_sections(self, project_id: Optional[str] = None) -> List[Section]:
        self._count("sections")
        return [s for s in self.sections if project_id is None or s.project_id == project_id]

    def get_tasks(self, *, filter: Optional[str] = None, **filters: Any) -> List[Task]:
        self._count("tasks")
        if filter is not None:
            wanted = self.filter_results.get(filter, [])
            return [t for t in self.tasks if t.id in wanted]
        return list(self.tasks)

    def get_task(self, task_id: str) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise TodoistAPIError(f"API error 404: task {task_id} not found", status_code=404)

    def get_labels(self) -> List[Label]:
        self._count("labels")
        return list(self.labels)

    def sync_read(self, resource_types: Sequence[str]) -> Dict[str, Any]:
        self._count("sync_read")
        return {
            "projects": [
                {**p.to_dict(), "inbox_project": p.is_inbox_project} for p in self.projects
            ],
            "sections": [s.to_dict() for s in self.sections],
            "items": [t.to_dict() for t in self.tasks],
        }

    def get_activity(self, *, limit: int = 30, offset: int = 0, **filters: Any) -> Dict[str, Any]:
        self.history_calls.append(("activity", {"limit": limit, "offset": offset, **filters}))
        events = [
            e
            for e in self.activity
            if all(str(e.get(key)) == str(value) for key, value in filters.items()
                   if key not in ("since", "until"))
        ]
        page = events[offset : offset + limit]
        return {"events": page, "count": len(page)}

    def get_completed(
        self, *, project_id: Optional[str] = None, limit: int = 30, offset: int = 0, **dates: Any
    ) -> Dict[str, Any]:
        self.history_calls.append(
            ("completed", {"project_id": project_id, "limit": limit, "offset": offset, **dates})
        )
        items = [i for i in self.completed if project_id is None or i["project_id"] == project_id]
        return {
            "items": items[offset : offset + limit],
            "projects": {"77": {"id": "77", "name": "Archived trip"}},
        }

    def get_productivity_stats(self) -> Dict[str, Any]:
        self.history_calls.append(("stats", {}))
        return dict(self.stats)

    # -- writes --------------------------------------------------------------

    def add_task(self, content: str, **fields: Any) -> Task:
        body = {k: v for k, v in fields.items() if v is not None}
        self.added_tasks.append({"content": content, **body})
        task = Task(
            id=str(next(self._ids)),
            content=content,
            description=body.get("description") or "",
            project_id=body.get("project_id"),
            section_id=body.get("section_id"),
            parent_id=body.get("parent_id"),
            labels=tuple(body.get("labels") or ()),
            priority=body.get("priority") or 1,
        )
        self.tasks.append(task)
        return task

    def add_comment(
        self, content: str, *, task_id: Optional[str] = None, project_id: Optional[str] = None
    ) -> Comment:
        comment = Comment(
            id=str(next(self._ids)), content=content, task_id=task_id, project_id=project_id
        )
        self.comments.append(comment)
        return comment

    def sync(self, commands: Sequence[SyncCommand]) -> SyncResult:
        commands = list(commands)
        self.sync_calls.append(commands)
        statuses: Dict[str, Any] = {}
        mapping: Dict[str, str] = {}
        for command in commands:
            if command.target_id in self.failing:
                statuses[command.uuid] = {"error_code": 20, "error": "Item not found"}
                continue
            if command.creates:
                mapping[command.temp_id] = str(next(self._ids))
            self._apply(command, mapping)
            statuses[command.uuid] = "ok"
        return SyncResult(commands=commands, statuses=statuses, temp_id_mapping=mapping)

    def _apply(self, command: SyncCommand, mapping: Dict[str, str]) -> None:
        if isinstance(command, ItemMove):
            self.tasks = [self._moved(t, command) if t.id == command.id else t for t in self.tasks]
        elif isinstance(command, ItemUpdate):
            self.tasks = [
                replace(
                    t,
                    content=command.content or t.content,
                    labels=command.labels if command.labels is not None else t.labels,
                    priority=command.priority or t.priority,
                )
                if t.id == command.id
                else t
                for t in self.tasks
            ]
        elif isinstance(command, ItemClose):
            self.tasks = [t for t in self.tasks if t.id != command.id]
        elif isinstance(command, ProjectAdd):
            self.projects.append(
                Project(id=mapping[command.temp_id], name=command.name, parent_id=command.parent_id)
            )
        elif isinstance(command, ProjectUpdate):
            self.projects = [
                replace(p, name=command.name or p.name) if p.id == command.id else p
                for p in self.projects
            ]
        elif isinstance(command, ProjectMove):
            self.projects = [
                replace(p, parent_id=command.parent_id) if p.id == command.id else p
                for p in self.projects
            ]
        elif isinstance(command, SectionAdd):
            self.sections.append(
                Section(id=mapping[command.temp_id], name=command.name, project_id=command.project_id)
            )
        elif isinstance(command, SectionUpdate):
            self.sections = [
                replace(s, name=command.name) if s.id == command.id else s for s in self.sections
            ]
        elif isinstance(command, SectionMove):
            self.sections = [
                replace(s, project_id=command.project_id) if s.id == command.id else s
                for s in self.sections
            ]
        elif isinstance(command, SectionDelete):
            # Deleting a section deletes the tasks still in it
            self.sections = [s for s in self.sections if s.id != command.id]
            self.tasks = [t for t in self.tasks if t.section_id != command.id]
        elif isinstance(command, NoteAdd):
            self.comments.append(
                Comment(id=mapping[command.temp_id], content=command.content, task_id=command.item_id)
            )
        elif isinstance(command, ProjectNoteAdd):
            self.comments.append(
                Comment(
                    id=mapping[command.temp_id],
                    content=command.content,
                    project_id=command.project_id,
                )
            )

    def _moved(self, task: Task, command: ItemMove) -> Task:
        if command.parent_id:
            parent = self.get_task(command.parent_id)
            return replace(
                task,
                parent_id=parent.id,
                project_id=parent.project_id,
                section_id=parent.section_id,
            )
        if command.section_id:
            section = next(s for s in self.sections if s.id == command.section_id)
            return replace(
                task, section_id=section.id, project_id=section.project_id, parent_id=None
            )
        return replace(task, project_id=command.project_id, section_id=None, parent_id=None)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client():
    """A fresh in-memory client over the sample account."""
    return FakeClient()


@pytest.fixture
def snapshot(fake_client):
    """A snapshot that fetches lazily from ``fake_client``."""
    return Snapshot(fake_client)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep real credentials and config files out of every test."""
    for name in (
        "TODOIST_API_TOKEN",
        "TODOIST_CLI_CONFIG_FILE",
        "TODOIST_REST_URL",
        "TODOIST_SYNC_URL",
        "TODOIST_CLI_TIMEOUT",
        "TODOIST_CLI_MAX_RETRIES",
        "TODOIST_CLI_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _clear_request_id():
    """Start every test outside any command's request id."""
    token = set_request_id("")
    yield
    reset_request_id(token)


@pytest.fixture
def cli_runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner, fake_client):
    """Run the CLI against ``fake_client`` with a dummy token."""

    def _invoke(
        *args: str,
        env: Optional[Dict[str, str]] = None,
        client: Optional[FakeClient] = None,
    ):
        active = client or fake_client
        return cli_runner.invoke(
            cli,
            list(args),
            obj={"client_factory": lambda config: active},
            env={"TODOIST_API_TOKEN": "test-token", **(env or {})},
        )

    return _invoke
