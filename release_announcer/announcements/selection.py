"""Encode pending announcements into round-trip tokens and reconcile user selections.

The token rides inside an interactive message (Slack button value) and is
echoed back when the user submits. Interactive payloads cap its size, so an
oversized announcement is replaced by a simplified token and the candidate
changes are recovered from the rendered preview text instead.
"""

from typing import Annotated, Iterable, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from release_announcer.utils.constants import SELECTION_DIGEST_LENGTH

from .formatter import parse_change_lines, render_change_line
from .models import Change, Destination, PendingAnnouncement

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class FullSelectionToken(BaseModel):
    """Token carrying every candidate change."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["full"] = "full"
    release_id: str
    destination: Destination
    changes: list[Change]


class SimplifiedSelectionToken(BaseModel):
    """Token used when the full token would not fit the transport."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["simplified"] = "simplified"
    release_id: str
    destination: Destination
    change_count: int
    changes_digest: str


SelectionToken = Annotated[FullSelectionToken | SimplifiedSelectionToken, Field(discriminator="mode")]

selection_token_adapter: TypeAdapter[FullSelectionToken | SimplifiedSelectionToken] = TypeAdapter(SelectionToken)


def changes_digest(changes: Iterable[Change], length: int = SELECTION_DIGEST_LENGTH) -> str:
    """Fingerprint of the rendered change lines, used for diagnostics only."""
    return "".join(render_change_line(change) for change in changes)[:length]


def encode_selection_token(pending: PendingAnnouncement, max_token_bytes: int) -> str:
    """Serialize a pending announcement into a token no larger than max_token_bytes when possible.

    Args:
        pending: The announcement awaiting selection.
        max_token_bytes: Largest UTF-8 size the transport can carry.

    Returns:
        A full token if it fits, otherwise a simplified token.
    """
    full = FullSelectionToken(release_id=pending.release_id, destination=pending.destination, changes=pending.changes)
    token = full.model_dump_json(exclude_none=True)
    token_size = len(token.encode("utf-8"))
    if token_size <= max_token_bytes:
        return token

    logger.info(
        "Selection token too large, falling back to simplified token",
        release_id=pending.release_id,
        token_size=token_size,
        max_token_bytes=max_token_bytes,
        change_count=len(pending.changes),
    )
    simplified = SimplifiedSelectionToken(
        release_id=pending.release_id,
        destination=pending.destination,
        change_count=len(pending.changes),
        changes_digest=changes_digest(pending.changes),
    )
    return simplified.model_dump_json(exclude_none=True)


def decode_selection_token(token: str | None) -> FullSelectionToken | SimplifiedSelectionToken | None:
    """Parse a token echoed back by the transport; returns None when it is missing or malformed."""
    if not token:
        return None
    try:
        return selection_token_adapter.validate_json(token)
    except ValidationError as exc:
        logger.warning("Discarding malformed selection token", error=str(exc), token_length=len(token))
        return None


def reconcile_selection(
    token: str | None,
    checked_indices: Iterable[int],
    rendered_message_text: str | None = None,
) -> list[Change]:
    """Resolve the changes the user kept selected.

    An empty selection means the checkbox state was lost (every box starts
    checked), so every recoverable change is returned.

    Args:
        token: Token produced by encode_selection_token.
        checked_indices: Indices of the checked options.
        rendered_message_text: Preview text, used when the token carries no changes.

    Returns:
        The selected changes in index order; empty only if nothing is recoverable.
    """
    decoded = decode_selection_token(token)
    match decoded:
        case FullSelectionToken(changes=changes):
            candidates = list(changes)
        case SimplifiedSelectionToken(change_count=change_count):
            candidates = parse_change_lines(rendered_message_text)
            if len(candidates) != change_count:
                logger.warning(
                    "Recovered change count differs from token",
                    expected=change_count,
                    recovered=len(candidates),
                )
        case _:
            candidates = parse_change_lines(rendered_message_text)

    indices = sorted(set(checked_indices))
    if not indices:
        logger.debug("No checked indices submitted, including all changes", change_count=len(candidates))
        return candidates

    return [candidates[index] for index in indices if 0 <= index < len(candidates)]
