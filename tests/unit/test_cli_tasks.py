"""CLI tests for task commands.

Tests cover:
- Listing in text and JSON modes
- Single-task writes (add, move, update, complete)
- Batch moves fed by ``find --ids``
"""

import json

from todoist_cli.core.models import Task
from tests.conftest import FakeClient


def _envelope(result):
    return json.loads(result.stdout)


class TestTasksList:
    def test_text_lines(self, invoke):
        """One line per task with priority, due, path, section and labels."""
        result = invoke("tasks", "list")
        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == (
            "7\tWrite report (p4, due 2026-10-19T09:00:00, [Work], {Planning}, @work @goals:focus)"
        )
        assert "9\tCall plumber ([Inbox])" in lines
        assert len(lines) == 5

    def test_json_envelope(self, invoke):
        """--json emits one response-v2 envelope on stdout."""
        result = invoke("--json", "tasks", "list", "--label", "errand")
        assert result.exit_code == 0
        payload = _envelope(result)
        assert payload["success"] is True
        assert payload["error"] is None
        assert payload["meta"]["version"] == "response-v2"
        assert payload["meta"]["request_id"].startswith("cli_")
        assert [t["id"] for t in payload["data"]["tasks"]] == ["5"]
        assert payload["data"]["filters"] == {"project": None, "labels": ["errand"]}

    def test_project_filter_matches_path_words(self, invoke):
        """Project filters match words of the full path."""
        result = invoke("--json", "tasks", "list", "--project", "work sprint")
        assert _envelope(result)["data"]["count"] == 0
        result = invoke("--json", "tasks", "list", "--project", "work")
        assert {t["id"] for t in _envelope(result)["data"]["tasks"]} == {"7", "8"}

    def test_empty_result_message(self, invoke):
        """An empty listing is still a success."""
        result = invoke("tasks", "list", "--project", "Garden")
        assert result.exit_code == 0
        assert result.stdout.strip() == 'No tasks found in projects matching "Garden"'

    def test_detailed(self, invoke):
        """--detailed prints a block per task."""
        result = invoke("tasks", "list", "--label", "work", "--detailed")
        assert "Task: Write report" in result.stdout
        assert "  Labels: @work, @goals:focus" in result.stdout

    def test_client_closed_after_command(self, invoke, fake_client):
        """The client is released when the command finishes."""
        invoke("tasks", "list")
        assert fake_client.closed is True


class TestTasksWrites:
    def test_add_into_section(self, invoke, fake_client):
        """The section is looked up inside the chosen project."""
        result = invoke("tasks", "add", "Pay rent", "--project", "Personal", "--section", "Planning")
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == [
            "Task created: 900",
            "Content: Pay rent",
            "Project: Personal",
            "Section: Planning",
        ]
        assert fake_client.added_tasks[0]["section_id"] == "11"

    def test_add_rejects_bad_priority(self, invoke, fake_client):
        """Priority is validated before anything is sent."""
        result = invoke("tasks", "add", "Pay rent", "--priority", "5")
        assert result.exit_code == 2
        assert fake_client.added_tasks == []

    def test_move_by_exact_content(self, invoke, fake_client):
        """An exact content match wins over longer partial matches."""
        result = invoke("tasks", "move", "Buy milk", "--project", "Work » Sprint")
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == [
            "Task moved: Buy milk",
            "From: Personal",
            "To: Work » Sprint",
        ]

    def test_move_reports_section_and_parent(self, invoke):
        """Locations include section and parent task."""
        result = invoke("--json", "tasks", "move", "Draft outline", "--no-parent")
        data = _envelope(result)["data"]
        assert data["from"]["parent"] == "Write report"
        assert data["to"]["parent"] is None
        assert data["to"]["section"] == "Planning"

    def test_move_needs_destination(self, invoke):
        """A move with no destination is a validation error."""
        result = invoke("--json", "tasks", "move", "Buy milk")
        assert result.exit_code == 1
        error = json.loads(result.stderr.strip().splitlines()[-1])
        assert error["data"]["error_code"] == "VALIDATION_ERROR"

    def test_update_adds_label(self, invoke):
        """--add-labels keeps the labels already on the task."""
        result = invoke("--json", "tasks", "update", "7", "--add-labels", "urgent")
        assert result.exit_code == 0, result.output
        labels = _envelope(result)["data"]["changes"]["labels"]
        assert "urgent" in labels
        assert "work" in labels

    def test_update_text(self, invoke):
        result = invoke("tasks", "update", "Write report", "--priority", "2")
        assert result.stdout.splitlines() == ["Task updated: Write report", "  priority: 2"]

    def test_complete(self, invoke, fake_client):
        result = invoke("tasks", "complete", "plumber")
        assert result.stdout.strip() == "Task completed: Call plumber (9)"
        assert all(t.id != "9" for t in fake_client.tasks)


class TestBatchMove:
    def test_pipeline_from_find_ids(self, invoke):
        """IDs printed by ``find --ids`` feed straight into batch-move."""
        client = FakeClient(filter_results={"p:Personal": ["5", "6"]})
        found = invoke("find", "p:Personal", "--ids", client=client)
        assert found.stdout.strip() == "5,6"

        result = invoke(
            "tasks", "batch-move", found.stdout.strip(), "--project", "Work", client=client
        )
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == [
            "Moved 2 task(s):",
            "  5\tBuy milk",
            "  6\tBuy milk and eggs",
        ]
        assert len(client.sync_calls) == 1
        assert {t.project_id for t in client.tasks if t.id in ("5", "6")} == {"1"}

    def test_filter_option(self, invoke):
        client = FakeClient(filter_results={"today": ["7"]})
        result = invoke("--json", "tasks", "batch-move", "--filter", "today", "--project", "Personal", client=client)
        data = _envelope(result)["data"]
        assert data["count"] == 1
        assert data["destination"]["project_id"] == "3"

    def test_continue_on_error_warns(self, invoke, fake_client):
        """Unresolved tokens become warnings; resolved ones are still moved."""
        result = invoke(
            "tasks", "batch-move", "5", "Nope", "--project", "Work", "--continue-on-error"
        )
        assert result.exit_code == 0, result.output
        assert "Moved 1 task(s):" in result.stdout
        assert "Warning: Skipped 'Nope': Task not found: Nope" in result.stderr

    def test_content_with_comma_is_one_token(self, invoke):
        """Only a list made entirely of known ids is split on commas."""
        client = FakeClient(
            tasks=[
                Task(id="5", content="Buy milk", project_id="3"),
                Task(id="6", content="Buy milk, eggs", project_id="3"),
            ]
        )
        result = invoke("tasks", "batch-move", "Buy milk, eggs", "--project", "Work", client=client)
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == ["Moved 1 task(s):", "  6\tBuy milk, eggs"]
        assert {t.id: t.project_id for t in client.tasks} == {"5": "3", "6": "1"}

    def test_continue_on_error_json_warnings(self, invoke):
        result = invoke(
            "--json", "tasks", "batch-move", "5", "Nope", "--project", "Work", "--continue-on-error"
        )
        payload = _envelope(result)
        assert payload["meta"]["warnings"] == ["Skipped 'Nope': Task not found: Nope"]
        assert payload["data"]["unresolved"][0]["token"] == "Nope"

    def test_unknown_token_aborts_whole_batch(self, invoke, fake_client):
        """Without --continue-on-error nothing is sent."""
        result = invoke("tasks", "batch-move", "5", "Nope", "--project", "Work")
        assert result.exit_code == 1
        assert "Task not found: Nope" in result.stderr
        assert fake_client.sync_calls == []

    def test_batch_update_priority(self, invoke, fake_client):
        result = invoke("tasks", "batch-update", "5,6", "--priority", "3")
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines()[0] == "Updated 2 task(s):"
        assert {t.priority for t in fake_client.tasks if t.id in ("5", "6")} == {3}
