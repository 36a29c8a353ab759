"""Tests for task operations against the in-memory client."""

import pytest

from todoist_cli.core.client import SyncCommandError
from todoist_cli.core.commands import ItemMove, ItemUpdate, ValidationError
from todoist_cli.core.resolver import AmbiguousError, NotFoundError
from todoist_cli.core.models import Project, Task
from todoist_cli.core.snapshot import Snapshot
from todoist_cli.core.tasks import (
    add_task,
    batch_move_tasks,
    batch_update_tasks,
    build_move,
    complete_task,
    filter_tasks,
    has_all_labels,
    list_tasks,
    matches_project_filter,
    move_task,
    normalize_label,
    split_tokens,
    update_task,
)
from tests.conftest import FakeClient


class TestListing:
    """list_tasks and its filters."""

    def test_sorted_by_project_then_due(self, snapshot):
        ids = [t["id"] for t in list_tasks(snapshot)["tasks"]]
        # project "1": 7 (dated) before 8 (undated); then "100"; then "3"
        assert ids == ["7", "8", "9", "5", "6"]

    def test_summary_fields(self, snapshot):
        task = next(t for t in list_tasks(snapshot)["tasks"] if t["id"] == "7")
        assert task["project_path"] == "Work"
        assert task["section"] == "Planning"
        assert task["labels"] == ["work", "goals:focus"]

    def test_project_filter_by_id(self, snapshot):
        result = list_tasks(snapshot, project="3")
        assert {t["id"] for t in result["tasks"]} == {"5", "6"}
        assert result["filters"] == {"project": "3", "labels": []}

    def test_project_filter_by_words(self, snapshot):
        assert {t.id for t in filter_tasks(snapshot, project="work")} == {"7", "8"}

    def test_label_filter_strips_goals_prefix(self, snapshot):
        assert [t.id for t in filter_tasks(snapshot, labels=["focus"])] == ["7"]
        assert [t.id for t in filter_tasks(snapshot, labels=["work", "FOCUS"])] == ["7"]

    def test_no_matches(self, snapshot):
        result = list_tasks(snapshot, labels=["nothing"])
        assert result["tasks"] == []
        assert result["count"] == 0

    def test_matches_project_filter(self):
        assert matches_project_filter("Work » Sprint", "sprint")
        assert matches_project_filter("Work » Sprint", "wor spr")
        assert not matches_project_filter("Work » Sprint", "home")
        assert matches_project_filter("Anything", "")

    def test_label_helpers(self, snapshot):
        assert normalize_label("goals:Health") == "health"
        assert has_all_labels(snapshot.task("5"), ["ERRAND"])


class TestAddTask:
    """add_task resolves destinations before creating."""

    def test_add_to_project_and_section(self, fake_client, snapshot):
        result = add_task(snapshot, "Plan Q4", project="Work", section="Planning", priority=3)
        assert fake_client.added_tasks[-1] == {
            "content": "Plan Q4",
            "project_id": "1",
            "section_id": "10",
            "priority": 3,
        }
        assert result["task"]["project_path"] == "Work"
        assert result["task"]["section"] == "Planning"

    def test_section_scoped_to_project(self, fake_client, snapshot):
        add_task(snapshot, "Shop", project="Personal", section="Planning")
        assert fake_client.added_tasks[-1]["section_id"] == "11"

    def test_unscoped_duplicate_section_is_ambiguous(self, fake_client, snapshot):
        with pytest.raises(AmbiguousError):
            add_task(snapshot, "Shop", section="Planning")
        assert fake_client.added_tasks == []

    def test_subtask_inherits_parent_location(self, fake_client, snapshot):
        add_task(snapshot, "Collect data", parent="Write report")
        added = fake_client.added_tasks[-1]
        assert added["parent_id"] == "7"
        assert added["project_id"] == "1"
        assert added["section_id"] == "10"

    def test_labels_and_due(self, fake_client, snapshot):
        add_task(snapshot, "Call mom", due_string="tomorrow", labels=("Errand", "new-label"))
        added = fake_client.added_tasks[-1]
        assert added["due_string"] == "tomorrow"
        assert added["labels"] == ["errand", "new-label"]

    def test_validation(self, snapshot):
        with pytest.raises(ValidationError):
            add_task(snapshot, "  ")
        with pytest.raises(ValidationError):
            add_task(snapshot, "x", priority=9)
        with pytest.raises(ValidationError):
            add_task(snapshot, "x", due_string="today", due_date="2026-10-19")

    def test_unknown_project_creates_nothing(self, fake_client, snapshot):
        with pytest.raises(NotFoundError):
            add_task(snapshot, "x", project="Nowhere")
        assert fake_client.added_tasks == []


class TestBuildMove:
    """Destination options map to a single ItemMove."""

    def test_section_within_project(self, snapshot):
        task = snapshot.task("5")
        move = build_move(snapshot, task, project="Personal", section="Planning")
        assert (move.section_id, move.project_id) == ("11", None)

    def test_project_only(self, snapshot):
        move = build_move(snapshot, snapshot.task("5"), project="Work » Sprint")
        assert move.project_id == "2"

    def test_parent(self, snapshot):
        move = build_move(snapshot, snapshot.task("9"), parent="7")
        assert move.parent_id == "7"

    def test_cannot_parent_itself(self, snapshot):
        with pytest.raises(ValidationError):
            build_move(snapshot, snapshot.task("7"), parent="Write report")

    def test_no_parent_keeps_section(self, snapshot):
        move = build_move(snapshot, snapshot.task("8"), no_parent=True)
        assert move.section_id == "10"

    def test_no_section_moves_to_project_root(self, snapshot):
        move = build_move(snapshot, snapshot.task("7"), no_section=True)
        assert move.project_id == "1"

    def test_projectless_task_goes_to_inbox(self, snapshot):
        move = build_move(snapshot, Task(id="42", content="Loose"), no_section=True)
        assert move.project_id == "100"

    def test_conflicting_destinations(self, snapshot):
        with pytest.raises(ValidationError, match="Choose one destination"):
            build_move(snapshot, snapshot.task("5"), project="Work", parent="7")
        with pytest.raises(ValidationError, match="Choose one destination"):
            build_move(snapshot, snapshot.task("5"), no_parent=True, no_section=True)

    def test_destination_required(self, snapshot):
        with pytest.raises(ValidationError, match="A destination is required"):
            build_move(snapshot, snapshot.task("5"))


class TestMoveTask:
    """move_task reports before and after locations."""

    def test_move_to_section(self, fake_client, snapshot):
        result = move_task(snapshot, "Buy milk", project="Work", section="Ideas")
        assert result["from"]["project_path"] == "Personal"
        assert result["to"]["project_path"] == "Work"
        assert result["to"]["section"] == "Ideas"
        [[command]] = fake_client.sync_calls
        assert isinstance(command, ItemMove)

    def test_ambiguous_task_sends_nothing(self, fake_client, snapshot):
        with pytest.raises(AmbiguousError):
            move_task(snapshot, "milk", project="Work")
        assert fake_client.sync_calls == []

    def test_server_refusal_raises(self):
        snapshot = Snapshot(FakeClient(failing=["5"]))
        with pytest.raises(SyncCommandError):
            move_task(snapshot, "5", project="Work")


class TestUpdateAndComplete:
    """Single-task writes."""

    def test_update_fields(self, fake_client, snapshot):
        result = update_task(snapshot, "7", content="Write final report", priority=2)
        assert result["changes"] == {"content": "Write final report", "priority": 2}
        [[command]] = fake_client.sync_calls
        assert isinstance(command, ItemUpdate)

    def test_add_labels_merges(self, snapshot):
        result = update_task(snapshot, "7", add_labels=["urgent", "work"])
        assert result["changes"]["labels"] == ["work", "goals:focus", "urgent"]

    def test_labels_take_account_spelling(self, snapshot):
        """Known labels are matched by name or id and spelled as stored."""
        result = update_task(snapshot, "9", labels=["ERRAND", "l2", "someday"])
        assert result["changes"]["labels"] == ["errand", "work", "someday"]

    def test_remove_labels(self, snapshot):
        result = update_task(snapshot, "5", remove_labels=["errand"])
        assert result["changes"]["labels"] == []

    def test_label_options_are_exclusive(self, snapshot):
        with pytest.raises(ValidationError):
            update_task(snapshot, "5", labels=["a"], add_labels=["b"])

    def test_empty_update(self, fake_client, snapshot):
        with pytest.raises(ValidationError, match="No updates specified"):
            update_task(snapshot, "5")
        assert fake_client.sync_calls == []

    def test_complete(self, fake_client, snapshot):
        result = complete_task(snapshot, "Call plumber")
        assert result["completed"] is True
        assert result["task"]["project_path"] == "Inbox"
        assert all(t.id != "9" for t in fake_client.tasks)


class TestBatch:
    """Batch operations resolve once and write once."""

    def test_split_tokens_expands_id_lists(self, snapshot):
        assert split_tokens(["5,6", " 7 "], snapshot.tasks) == ["5", "6", " 7 "]

    def test_split_tokens_keeps_content_with_commas(self):
        tasks = [
            Task(id="5", content="Buy milk"),
            Task(id="6", content="Buy milk, eggs"),
        ]
        assert split_tokens(["Buy milk, eggs", "5,Nope"], tasks) == [
            "Buy milk, eggs",
            "5,Nope",
        ]

    def test_content_with_comma_moves_only_that_task(self):
        """A comma inside task content never selects other tasks."""
        client = FakeClient(
            projects=[Project(id="1", name="Shop")],
            sections=[],
            tasks=[
                Task(id="5", content="Buy milk"),
                Task(id="6", content="Buy milk, eggs"),
            ],
        )
        result = batch_move_tasks(Snapshot(client), ["Buy milk, eggs"], project="Shop")
        assert [t["id"] for t in result["tasks"]] == ["6"]
        [commands] = client.sync_calls
        assert [c.id for c in commands] == ["6"]
        assert next(t for t in client.tasks if t.id == "5").project_id is None

    def test_content_equal_to_id_list_wins(self):
        """Exact content beats splitting even when every part is an id."""
        client = FakeClient(
            tasks=[
                Task(id="5", content="Buy milk"),
                Task(id="6", content="Pay bills"),
                Task(id="7", content="5,6"),
            ]
        )
        result = batch_move_tasks(Snapshot(client), ["5,6"], project="Work")
        assert [t["id"] for t in result["tasks"]] == ["7"]

    def test_batch_move_one_request(self, fake_client, snapshot):
        result = batch_move_tasks(snapshot, ["5,6", "Call plumber"], project="Work")
        assert result["count"] == 3
        assert result["destination"] == {"project_id": "1", "section_id": None, "parent_id": None}
        assert len(fake_client.sync_calls) == 1
        assert fake_client.fetches == {"sync_read": 1}

    def test_destination_resolved_once(self, monkeypatch, fake_client, snapshot):
        """The destination is looked up once however many tasks move."""
        from todoist_cli.core import tasks as tasks_module

        calls = []
        real = tasks_module.resolve_section

        def counting(*args, **kwargs):
            calls.append(args[0])
            return real(*args, **kwargs)

        monkeypatch.setattr(tasks_module, "resolve_section", counting)
        result = batch_move_tasks(
            snapshot, ["5", "6", "9"], project="Work", section="Ideas"
        )
        assert calls == ["Ideas"]
        assert result["destination"] == {"project_id": "1", "section_id": "13", "parent_id": None}
        assert {c.section_id for c in fake_client.sync_calls[0]} == {"13"}

    def test_batch_parent_excludes_itself(self, fake_client, snapshot):
        """Moving a parent under itself is refused before anything is sent."""
        with pytest.raises(ValidationError, match="own parent"):
            batch_move_tasks(snapshot, ["5", "7"], parent="7")
        assert fake_client.sync_calls == []

    def test_bad_destination_sends_nothing(self, fake_client, snapshot):
        with pytest.raises(NotFoundError):
            batch_move_tasks(snapshot, ["5", "6"], project="Garden")
        assert fake_client.sync_calls == []

    def test_batch_move_by_filter(self):
        client = FakeClient(filter_results={"@errand": ["5"]})
        result = batch_move_tasks(Snapshot(client), filter_query="@errand", project="Work")
        assert [t["id"] for t in result["tasks"]] == ["5"]

    def test_tokens_and_filter_are_exclusive(self, snapshot):
        with pytest.raises(ValidationError):
            batch_move_tasks(snapshot, ["5"], filter_query="@errand", project="Work")

    def test_nothing_selected(self, snapshot):
        with pytest.raises(ValidationError):
            batch_move_tasks(snapshot, [], project="Work")

    def test_empty_filter_result(self):
        with pytest.raises(ValidationError, match="No tasks matched"):
            batch_move_tasks(Snapshot(FakeClient()), filter_query="none", project="Work")

    def test_unresolved_token_aborts_by_default(self, fake_client, snapshot):
        with pytest.raises(NotFoundError):
            batch_move_tasks(snapshot, ["5", "nope"], project="Work")
        assert fake_client.sync_calls == []

    def test_continue_on_error_skips(self, fake_client, snapshot):
        result = batch_move_tasks(
            snapshot, ["5", "nope", "milk"], project="Work", continue_on_error=True
        )
        assert [t["id"] for t in result["tasks"]] == ["5"]
        assert [u["token"] for u in result["unresolved"]] == ["nope", "milk"]

    def test_partial_failure_reports_each_command(self):
        client = FakeClient(failing=["6"])
        with pytest.raises(SyncCommandError) as exc_info:
            batch_update_tasks(Snapshot(client), ["5", "6"], priority=3)
        err = exc_info.value
        assert [f.target_id for f in err.failures] == ["6"]
        assert len(err.succeeded) == 1

    def test_batch_update_changes(self, fake_client, snapshot):
        result = batch_update_tasks(snapshot, ["5", "9"], add_labels=["home"])
        assert result["count"] == 2
        assert result["changes"] == {"labels": ["errand", "home"]}
        commands = fake_client.sync_calls[0]
        assert [c.labels for c in commands] == [("errand", "home"), ("home",)]
