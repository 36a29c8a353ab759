"""Tests for request correlation and secret redaction."""

from todoist_cli.core.observability import (
    generate_request_id,
    get_request_id,
    redact_sensitive_data,
    reset_request_id,
    set_request_id,
)

TOKEN = "0123456789abcdef0123456789abcdef01234567"


class TestRequestId:
    def test_generated_format(self):
        request_id = generate_request_id()
        assert request_id.startswith("cli_")
        assert len(request_id) == 16
        assert generate_request_id() != request_id

    def test_set_and_reset(self):
        assert get_request_id() == ""
        token = set_request_id("cli_abc")
        assert get_request_id() == "cli_abc"
        reset_request_id(token)
        assert get_request_id() == ""


class TestRedaction:
    def test_bearer_header(self):
        redacted = redact_sensitive_data(f"Authorization: Bearer {TOKEN}")
        assert TOKEN not in redacted
        assert "[REDACTED:BEARER_TOKEN]" in redacted

    def test_bare_todoist_token(self):
        assert redact_sensitive_data(f"token was {TOKEN}") == "token was [REDACTED:TODOIST_TOKEN]"

    def test_sensitive_keys(self):
        data = {"api_token": TOKEN, "Authorization": "x", "project": "Work"}
        assert redact_sensitive_data(data) == {
            "api_token": "[REDACTED]",
            "Authorization": "[REDACTED]",
            "project": "Work",
        }

    def test_nested_structures(self):
        data = {"requests": [{"headers": {"auth": "x"}}, f"Bearer {TOKEN}"]}
        redacted = redact_sensitive_data(data)
        assert redacted["requests"][0]["headers"]["auth"] == "[REDACTED]"
        assert TOKEN not in redacted["requests"][1]

    def test_tuples_stay_tuples(self):
        assert redact_sensitive_data(("a", TOKEN)) == ("a", "[REDACTED:TODOIST_TOKEN]")

    def test_non_strings_untouched(self):
        assert redact_sensitive_data(42) == 42
        assert redact_sensitive_data(None) is None

    def test_max_depth(self):
        assert redact_sensitive_data({"a": {"b": "c"}}, max_depth=1) == {"a": "[MAX_DEPTH_EXCEEDED]"}

    def test_ordinary_text_unchanged(self):
        text = "Moved task 'Buy milk' to Work » Sprint"
        assert redact_sensitive_data(text) == text
