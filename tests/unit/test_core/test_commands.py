"""Tests for typed sync commands and label helpers."""

import pytest

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
    ValidationError,
    merge_labels,
    parse_label_list,
    payloads,
)


class TestPayloads:
    """Serialized shape of each command."""

    def test_item_move_sends_only_destination(self):
        payload = ItemMove(id="7", section_id="10", uuid="u1").to_payload()
        assert payload == {
            "type": "item_move",
            "uuid": "u1",
            "args": {"id": "7", "section_id": "10"},
        }

    def test_fresh_uuid_per_instance(self):
        assert ItemClose(id="1").uuid != ItemClose(id="1").uuid

    def test_create_commands_carry_temp_id(self):
        payload = ProjectAdd(name="New", temp_id="t1", uuid="u1").to_payload()
        assert payload["temp_id"] == "t1"
        assert payload["args"] == {"name": "New"}

    def test_non_create_commands_have_no_temp_id(self):
        assert "temp_id" not in SectionDelete(id="10").to_payload()

    def test_project_move_sends_null_parent(self):
        """Moving to the root sends parent_id explicitly as null."""
        assert ProjectMove(id="2").args() == {"id": "2", "parent_id": None}

    def test_section_add_order(self):
        assert SectionAdd(name="Later", project_id="1", section_order=3).args() == {
            "name": "Later",
            "project_id": "1",
            "section_order": 3,
        }

    def test_section_update_and_move(self):
        assert SectionUpdate(id="10", name="Plan").args() == {"id": "10", "name": "Plan"}
        assert SectionMove(id="10", project_id="3").args() == {"id": "10", "project_id": "3"}

    def test_payloads_keeps_order(self):
        commands = [ItemClose(id="1"), ItemClose(id="2")]
        assert [p["args"]["id"] for p in payloads(commands)] == ["1", "2"]

    def test_target_id(self):
        assert ItemClose(id="5").target_id == "5"
        assert ProjectAdd(name="X").target_id is None

    def test_note_add(self):
        payload = NoteAdd(item_id="7", content="Looks good", uuid="u1", temp_id="t1").to_payload()
        assert payload == {
            "type": "note_add",
            "uuid": "u1",
            "temp_id": "t1",
            "args": {"item_id": "7", "content": "Looks good"},
        }
        assert NoteAdd(item_id="7", content="x").target_id == "7"

    def test_project_note_add(self):
        payload = ProjectNoteAdd(project_id="4", content="Kickoff").to_payload()
        assert payload["type"] == "project_note_add"
        assert payload["args"] == {"project_id": "4", "content": "Kickoff"}


class TestValidation:
    """Constructor checks."""

    def test_item_move_needs_one_destination(self):
        with pytest.raises(ValidationError):
            ItemMove(id="7")
        with pytest.raises(ValidationError):
            ItemMove(id="7", project_id="1", section_id="10")

    def test_invalid_color(self):
        with pytest.raises(ValidationError, match="Invalid color"):
            ProjectAdd(name="X", color="chartreuse")

    def test_invalid_view_style(self):
        with pytest.raises(ValidationError, match="Invalid view style"):
            ProjectUpdate(id="1", view_style="calendar")

    def test_blank_names(self):
        with pytest.raises(ValidationError):
            ProjectAdd(name="  ")
        with pytest.raises(ValidationError):
            SectionAdd(name="", project_id="1")

    def test_project_cannot_parent_itself(self):
        with pytest.raises(ValidationError):
            ProjectMove(id="2", parent_id="2")

    def test_invalid_priority(self):
        with pytest.raises(ValidationError):
            ItemUpdate(id="1", priority=5)

    def test_blank_comment(self):
        with pytest.raises(ValidationError) as excinfo:
            NoteAdd(item_id="7", content=" ")
        assert excinfo.value.field == "content"

    def test_field_names_the_bad_option(self):
        with pytest.raises(ValidationError) as excinfo:
            ProjectAdd(name="X", color="chartreuse")
        assert excinfo.value.field == "color"

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)


class TestItemUpdate:
    """Update change sets."""

    def test_changes_use_api_names(self):
        update = ItemUpdate(id="7", content="New", labels=("a", "b"), due_string="tomorrow")
        assert update.changes == {
            "content": "New",
            "labels": ["a", "b"],
            "due": {"string": "tomorrow"},
        }

    def test_due_date(self):
        assert ItemUpdate(id="7", due_date="2026-11-01").changes == {
            "due": {"date": "2026-11-01"}
        }

    def test_empty_labels_clear(self):
        assert ItemUpdate(id="7", labels=()).changes == {"labels": []}

    def test_is_empty(self):
        assert ItemUpdate(id="7").is_empty
        assert not ItemUpdate(id="7", priority=2).is_empty

    def test_project_update_favorite_false_is_a_change(self):
        assert ProjectUpdate(id="1", is_favorite=False).changes == {"is_favorite": False}


class TestLabelHelpers:
    """parse_label_list and merge_labels."""

    def test_parse_label_list(self):
        assert parse_label_list(" a, b ,,c ") == ["a", "b", "c"]
        assert parse_label_list(None) == []
        assert parse_label_list("") == []

    def test_set_replaces(self):
        assert merge_labels(["a"], set_to=["b", "b", "c"]) == ("b", "c")

    def test_set_to_empty_clears(self):
        assert merge_labels(["a"], set_to=[]) == ()

    def test_add_keeps_existing_order(self):
        assert merge_labels(["a", "b"], add=["c", "a"]) == ("a", "b", "c")

    def test_remove(self):
        assert merge_labels(["a", "b", "c"], remove=["b"]) == ("a", "c")

    def test_untouched(self):
        assert merge_labels(["a"]) is None
