"""Tests for section operations, including guarded removal."""

import pytest

from todoist_cli.core.client import SyncCommandError
from todoist_cli.core.commands import ItemMove, SectionDelete, ValidationError
from todoist_cli.core.resolver import AmbiguousError, NotFoundError
from todoist_cli.core.sections import (
    SectionNotEmptyError,
    add_section,
    add_sections,
    list_sections,
    remove_section,
    remove_sections,
    update_section,
)
from todoist_cli.core.snapshot import Snapshot
from tests.conftest import FakeClient


class TestListAndAdd:
    def test_list_all_sorted_by_project_path(self, snapshot):
        result = list_sections(snapshot)
        assert [(s["project_path"], s["name"]) for s in result["sections"]] == [
            ("Personal", "Planning"),
            ("Work", "Planning"),
            ("Work", "Ideas"),
            ("Work » Sprint", "Review"),
        ]

    def test_list_one_project(self, snapshot):
        result = list_sections(snapshot, project="Work")
        assert [s["id"] for s in result["sections"]] == ["10", "13"]

    def test_add_with_order(self, fake_client, snapshot):
        result = add_section(snapshot, "Done", project="Work", order=5)
        assert result["section"]["project_path"] == "Work"
        assert result["section"]["order"] == 5
        assert result["section"]["id"] is not None
        assert fake_client.sync_calls[0][0].args()["section_order"] == 5

    def test_bulk_add_consecutive_orders(self, fake_client, snapshot):
        result = add_sections(snapshot, ["A", "B", "C"], project="Personal", start_order=2)
        assert [s["order"] for s in result["sections"]] == [2, 3, 4]
        assert len(fake_client.sync_calls) == 1

    def test_add_requires_project_and_names(self, snapshot):
        with pytest.raises(ValidationError):
            add_sections(snapshot, ["A"], project="")
        with pytest.raises(ValidationError):
            add_sections(snapshot, [" "], project="Work")


class TestUpdateSection:
    def test_rename_scoped(self, fake_client, snapshot):
        result = update_section(snapshot, "Planning", project_scope="Personal", name="Plans")
        assert result["section"]["id"] == "11"
        assert result["section"]["name"] == "Plans"
        assert result["from"] == {"name": "Planning", "project_path": "Personal"}

    def test_unscoped_duplicate_is_ambiguous(self, snapshot):
        with pytest.raises(AmbiguousError) as exc_info:
            update_section(snapshot, "Planning", name="Plans")
        labels = [c.label for c in exc_info.value.candidates]
        assert labels == ["Work / Planning", "Personal / Planning"]

    def test_move_to_other_project(self, fake_client, snapshot):
        result = update_section(snapshot, "Review", move_to="Personal")
        assert result["section"]["project_path"] == "Personal"
        assert [c.type for c in fake_client.sync_calls[0]] == ["section_move"]

    def test_move_to_same_project_sends_nothing(self, fake_client, snapshot):
        update_section(snapshot, "Review", move_to="Work » Sprint")
        assert fake_client.sync_calls == []

    def test_nothing_to_update(self, snapshot):
        with pytest.raises(ValidationError):
            update_section(snapshot, "Review")


class TestRemoveSection:
    def test_empty_section_deleted(self, fake_client, snapshot):
        result = remove_section(snapshot, "Review")
        assert result["status"] == "deleted"
        assert result["tasks_before_deletion"] == []
        assert result["verified"] is True
        assert [type(c) for c in fake_client.sync_calls[0]] == [SectionDelete]

    def test_lookup_uses_one_sync_read(self, fake_client, snapshot):
        """Resolution reads everything at once; only verification refetches."""
        remove_section(snapshot, "Review")
        assert fake_client.fetches["sync_read"] == 1
        assert "projects" not in fake_client.fetches

    def test_non_empty_refused_without_force(self, fake_client, snapshot):
        with pytest.raises(SectionNotEmptyError) as exc_info:
            remove_section(snapshot, "Planning", project="Work")
        err = exc_info.value
        assert "contains 2 task(s)" in str(err)
        assert err.task_lines() == ["  - Write report (7)", "  - Draft outline (8)"]
        assert err.to_dict()["sections"][0]["id"] == "10"
        assert fake_client.sync_calls == []

    def test_force_moves_then_deletes_then_verifies(self, fake_client, snapshot):
        result = remove_section(snapshot, "Planning", project="Work", force=True)
        moves, deletes = fake_client.sync_calls
        assert all(isinstance(c, ItemMove) and c.project_id == "1" for c in moves)
        assert [c.id for c in deletes] == ["10"]
        assert {t["id"] for t in result["tasks_surviving"]} == {"7", "8"}
        assert all(t["section_id"] is None for t in result["tasks_surviving"])
        assert result["verified"] is True
        assert result["section"]["name"] == "Planning"

    def test_refused_move_stops_before_delete(self):
        client = FakeClient(failing=["8"])
        snapshot = Snapshot(client)
        with pytest.raises(SyncCommandError):
            remove_section(snapshot, "10", force=True)
        assert len(client.sync_calls) == 1
        assert any(s.id == "10" for s in client.sections)

    def test_bulk_remove_continue_on_error(self, fake_client, snapshot):
        result = remove_sections(
            snapshot, ["Review", "Nope", "Ideas"], continue_on_error=True
        )
        assert [s["name"] for s in result["sections"]] == ["Review", "Ideas"]
        assert [u["token"] for u in result["unresolved"]] == ["Nope"]
        assert len(fake_client.sync_calls) == 1

    def test_bulk_remove_aborts_on_unknown(self, fake_client, snapshot):
        with pytest.raises(NotFoundError):
            remove_sections(snapshot, ["Review", "Nope"])
        assert fake_client.sync_calls == []

    def test_bulk_remove_nothing_resolved(self, snapshot):
        with pytest.raises(ValidationError, match="No valid sections"):
            remove_sections(snapshot, ["Nope"], continue_on_error=True)
