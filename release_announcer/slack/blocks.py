"""Build Slack Block Kit payloads for announcement previews."""

from typing import Any, Sequence

import structlog

from release_announcer.announcements.formatter import chunk_text
from release_announcer.announcements.models import Change, ChangeKind
from release_announcer.utils.constants import (
    CANCEL_ANNOUNCEMENT_ACTION_ID,
    SELECT_CHANGES_ACTION_PREFIX,
    SEND_ANNOUNCEMENT_ACTION_ID,
    SLACK_MAX_CHECKBOX_OPTIONS,
    SLACK_MAX_OPTION_TEXT_LENGTH,
    SLACK_MAX_SECTION_TEXT_LENGTH,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

SLACK_MAX_BLOCKS = 50
PREVIEW_BLOCK_PREFIX = "preview_"


def section(text: str, block_id: str | None = None) -> dict[str, Any]:
    """A mrkdwn section block."""
    block: dict[str, Any] = {"type": "section", "text": {"type": "mrkdwn", "text": text}}
    if block_id:
        block["block_id"] = block_id
    return block


def option_label(change: Change) -> str:
    """Short plain-text label of a change for a checkbox option."""
    if change.kind == ChangeKind.TICKET:
        label = f"{change.primary_key} {change.summary}"
    elif change.kind == ChangeKind.ISSUE:
        label = f"#{change.primary_key} {change.summary}"
    else:
        label = change.summary or change.primary_key
    if len(label) > SLACK_MAX_OPTION_TEXT_LENGTH:
        label = label[: SLACK_MAX_OPTION_TEXT_LENGTH - 3] + "..."
    return label


def checkbox_blocks(changes: Sequence[Change]) -> list[dict[str, Any]]:
    """Actions blocks holding one pre-checked checkbox per change, in groups Slack accepts."""
    blocks: list[dict[str, Any]] = []
    for group, start in enumerate(range(0, len(changes), SLACK_MAX_CHECKBOX_OPTIONS)):
        options = [
            {"text": {"type": "plain_text", "text": option_label(change)}, "value": str(index)}
            for index, change in enumerate(changes[start : start + SLACK_MAX_CHECKBOX_OPTIONS], start=start)
        ]
        blocks.append(
            {
                "type": "actions",
                "block_id": f"changes_{group}",
                "elements": [
                    {
                        "type": "checkboxes",
                        "action_id": f"{SELECT_CHANGES_ACTION_PREFIX}{group}",
                        "options": options,
                        "initial_options": options,
                    }
                ],
            }
        )
    return blocks


def preview_blocks(
    preview_text: str,
    changes: Sequence[Change],
    token: str,
    max_section_length: int = SLACK_MAX_SECTION_TEXT_LENGTH,
) -> list[dict[str, Any]]:
    """Blocks of the interactive preview: rendered text, change checkboxes and send/cancel buttons.

    Checkboxes are left out when they would push the message past Slack's
    block limit; the send action then includes every change.
    """
    blocks: list[dict[str, Any]] = [section("*Preview of release announcement:*")]
    blocks.extend(
        section(chunk, block_id=f"{PREVIEW_BLOCK_PREFIX}{index}") for index, chunk in enumerate(chunk_text(preview_text, max_section_length))
    )

    selection = checkbox_blocks(changes)
    if selection and len(blocks) + len(selection) + 3 <= SLACK_MAX_BLOCKS:
        blocks.append({"type": "divider"})
        blocks.append(section("*Uncheck any changes to leave out of the announcement:*"))
        blocks.extend(selection)
    elif selection:
        logger.warning("Too many changes for checkbox selection, all changes will be sent", change_count=len(changes))

    blocks.append(
        {
            "type": "actions",
            "block_id": "announcement_actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "✅ Send to Channel"},
                    "style": "primary",
                    "action_id": SEND_ANNOUNCEMENT_ACTION_ID,
                    "value": token,
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "❌ Cancel"},
                    "style": "danger",
                    "action_id": CANCEL_ANNOUNCEMENT_ACTION_ID,
                    "value": token,
                },
            ],
        }
    )
    return blocks


def preview_response(preview_text: str, changes: Sequence[Change], token: str) -> dict[str, Any]:
    """Ephemeral slash command response carrying the interactive preview."""
    return {
        "response_type": "ephemeral",
        "text": "Release announcement preview:",
        "blocks": preview_blocks(preview_text, changes, token),
    }


def replace_original_response(text: str) -> dict[str, Any]:
    """Ephemeral response replacing the interactive preview."""
    return {"text": text, "response_type": "ephemeral", "replace_original": True}
