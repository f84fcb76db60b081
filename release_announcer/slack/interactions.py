"""Parse Slack slash command and interactive message payloads."""

import json
import re
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from release_announcer.utils.constants import SELECT_CHANGES_ACTION_PREFIX

from .blocks import PREVIEW_BLOCK_PREFIX

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

RELEASE_COMMAND_PATTERN = re.compile(r"^/release\b\s*", re.IGNORECASE)
DIRECT_MESSAGE_CHANNEL_NAME = "directmessage"


def is_direct_message(channel_id: str, channel_name: str | None = None) -> bool:
    """Whether a channel is a direct message conversation."""
    return channel_id.startswith("D") or channel_name == DIRECT_MESSAGE_CHANNEL_NAME


class SlashCommand(BaseModel):
    """A `/release` slash command invocation."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    channel_id: str = ""
    channel_name: str | None = None
    user_id: str = ""
    response_url: str | None = None

    @property
    def release_id(self) -> str:
        """Release id typed after the command, with an optional leading `/release` removed."""
        return RELEASE_COMMAND_PATTERN.sub("", self.text.strip()).strip()


class Interaction(BaseModel):
    """A button click on an announcement preview."""

    model_config = ConfigDict(frozen=True)

    action_id: str
    token: str | None = None
    checked_indices: tuple[int, ...] = ()
    rendered_text: str | None = None
    channel_id: str = ""
    channel_name: str | None = None
    user_id: str = ""
    response_url: str | None = None

    @property
    def is_direct_message(self) -> bool:
        """Whether the interaction happened in a direct message conversation."""
        return is_direct_message(self.channel_id, self.channel_name)


class InteractionPayloadError(ValueError):
    """Raised when an interaction payload has no usable action."""

    pass


def parse_slash_command(form: dict[str, Any]) -> SlashCommand:
    """Build a SlashCommand from the form fields Slack posts."""
    return SlashCommand(
        text=form.get("text") or "",
        channel_id=form.get("channel_id") or "",
        channel_name=form.get("channel_name"),
        user_id=form.get("user_id") or "",
        response_url=form.get("response_url"),
    )


def checked_indices(state_values: dict[str, Any]) -> tuple[int, ...]:
    """Collect the checked option indices of every change selection group."""
    indices: list[int] = []
    for block_actions in state_values.values():
        for action_id, action_state in block_actions.items():
            if not action_id.startswith(SELECT_CHANGES_ACTION_PREFIX):
                continue
            for option in action_state.get("selected_options") or []:
                try:
                    indices.append(int(option.get("value", "")))
                except ValueError:
                    logger.debug("Ignoring non-numeric selection value", action_id=action_id, value=option.get("value"))
    return tuple(indices)


def rendered_preview_text(message: dict[str, Any]) -> str | None:
    """Join the preview section texts of the original message."""
    texts = [
        block["text"]["text"]
        for block in message.get("blocks") or []
        if block.get("type") == "section" and str(block.get("block_id", "")).startswith(PREVIEW_BLOCK_PREFIX) and block.get("text")
    ]
    return "\n".join(texts) if texts else None


def parse_interaction(payload: dict[str, Any] | str) -> Interaction:
    """Build an Interaction from a block_actions payload (dict or its JSON string).

    Raises:
        InteractionPayloadError: If the payload carries no action.
    """
    if isinstance(payload, str):
        payload = json.loads(payload)

    actions = payload.get("actions") or []
    if not actions:
        raise InteractionPayloadError("Interaction payload contains no actions")
    action = actions[0]
    channel = payload.get("channel") or {}
    user = payload.get("user") or {}
    state_values = (payload.get("state") or {}).get("values") or {}

    interaction = Interaction(
        action_id=action.get("action_id", ""),
        token=action.get("value"),
        checked_indices=checked_indices(state_values),
        rendered_text=rendered_preview_text(payload.get("message") or {}),
        channel_id=channel.get("id") or "",
        channel_name=channel.get("name"),
        user_id=user.get("id") or "",
        response_url=payload.get("response_url"),
    )
    logger.debug(
        "Parsed interaction",
        action_id=interaction.action_id,
        channel_id=interaction.channel_id,
        user_id=interaction.user_id,
        checked=len(interaction.checked_indices),
    )
    return interaction
