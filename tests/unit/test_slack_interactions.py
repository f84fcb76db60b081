"""Unit tests for Slack payload parsing."""

import json
from typing import Any

import pytest

from release_announcer.slack.interactions import InteractionPayloadError, is_direct_message, parse_interaction, parse_slash_command


def block_actions_payload(**overrides: Any) -> dict[str, Any]:
    """A block_actions payload for a click on the send button."""
    payload: dict[str, Any] = {
        "type": "block_actions",
        "user": {"id": "U1", "name": "jane"},
        "channel": {"id": "C123", "name": "general"},
        "response_url": "https://hooks.slack.com/actions/T/1/abc",
        "actions": [{"action_id": "send_announcement", "value": '{"mode": "full"}'}],
        "state": {
            "values": {
                "changes_0": {"select_changes_0": {"type": "checkboxes", "selected_options": [{"value": "0"}, {"value": "2"}]}},
                "changes_1": {"select_changes_1": {"type": "checkboxes", "selected_options": [{"value": "11"}]}},
                "other": {"something_else": {"selected_options": [{"value": "5"}]}},
            }
        },
        "message": {
            "blocks": [
                {"type": "section", "text": {"type": "mrkdwn", "text": "*Preview of release announcement:*"}},
                {"type": "section", "block_id": "preview_0", "text": {"type": "mrkdwn", "text": "header\n• one"}},
                {"type": "section", "block_id": "preview_1", "text": {"type": "mrkdwn", "text": "• two"}},
            ]
        },
    }
    payload.update(overrides)
    return payload


class TestParseInteraction:
    """Tests for parse_interaction."""

    def test_fields(self) -> None:
        """Every field of interest is extracted."""
        interaction = parse_interaction(block_actions_payload())
        assert interaction.action_id == "send_announcement"
        assert interaction.token == '{"mode": "full"}'
        assert interaction.checked_indices == (0, 2, 11)
        assert interaction.rendered_text == "header\n• one\n• two"
        assert interaction.channel_id == "C123"
        assert interaction.user_id == "U1"
        assert interaction.response_url == "https://hooks.slack.com/actions/T/1/abc"
        assert interaction.is_direct_message is False

    def test_json_string_payload(self) -> None:
        """The payload form field may be passed as a JSON string."""
        interaction = parse_interaction(json.dumps(block_actions_payload()))
        assert interaction.action_id == "send_announcement"

    def test_missing_state_and_message(self) -> None:
        """Absent state and message yield empty selections and no text."""
        interaction = parse_interaction(block_actions_payload(state=None, message=None))
        assert interaction.checked_indices == ()
        assert interaction.rendered_text is None

    def test_non_numeric_values_are_ignored(self) -> None:
        """Selection values that are not indices are skipped."""
        state = {"values": {"changes_0": {"select_changes_0": {"selected_options": [{"value": "x"}, {"value": "1"}]}}}}
        assert parse_interaction(block_actions_payload(state=state)).checked_indices == (1,)

    def test_no_actions(self) -> None:
        """A payload without actions is rejected."""
        with pytest.raises(InteractionPayloadError):
            parse_interaction(block_actions_payload(actions=[]))


@pytest.mark.parametrize(
    "channel_id,channel_name,expected",
    [
        pytest.param("D0123", None, True, id="dm id"),
        pytest.param("C0123", "directmessage", True, id="dm name"),
        pytest.param("C0123", "general", False, id="channel"),
        pytest.param("G0123", "private", False, id="private channel"),
    ],
)
def test_is_direct_message(channel_id: str, channel_name: str | None, expected: bool) -> None:
    """Direct messages are detected by id prefix or name."""
    assert is_direct_message(channel_id, channel_name) is expected


@pytest.mark.parametrize(
    "text,expected",
    [
        pytest.param("67", "67", id="plain"),
        pytest.param("  2.1.0 ", "2.1.0", id="whitespace"),
        pytest.param("/release 67", "67", id="leading command"),
        pytest.param("", "", id="empty"),
    ],
)
def test_slash_command_release_id(text: str, expected: str) -> None:
    """The release id is the command text without an optional /release prefix."""
    command = parse_slash_command({"text": text, "channel_id": "C1", "channel_name": "general", "user_id": "U1"})
    assert command.release_id == expected
    assert command.channel_id == "C1"
