"""Render announcements as Slack mrkdwn text and split them into bounded chunks."""

import html
import re
from typing import Sequence

import structlog
from pydantic import ValidationError

from release_announcer.utils.constants import (
    ANNOUNCEMENT_HEADER_TEMPLATE,
    BULLET,
    DEFAULT_RELEASE_BRANCH_PREFIX,
    ELLIPSIS,
    NO_CHANGES_TEXT,
    TEMPLATE_CHANGE_COUNT_PLACEHOLDER,
    TEMPLATE_RELEASE_NUMBER_PLACEHOLDER,
)

from .models import Change, ChangeKind
from .releases import release_branch

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

BULLET_PREFIX = f"{BULLET} "

TICKET_LINE_PATTERN = re.compile(
    rf"^{BULLET} <(?P<url>[^|>\s]+)\|(?P<summary>.*?)>(?: <(?P<secondary_url>[^|>\s]+)\|\(#(?P<secondary_key>\d+)\)>)?\s*$"
)
ISSUE_LINE_PATTERN = re.compile(rf"^{BULLET} (?P<summary>.*?) <(?P<url>[^|>\s]+)\|\(#(?P<key>\d+)\)>\s*$")


def render_change_line(change: Change) -> str:
    """Render a single change as a bulleted mrkdwn line."""
    if change.kind == ChangeKind.TICKET:
        line = f"{BULLET} <{change.url}|{change.summary}>"
        if change.secondary_url:
            line += f" <{change.secondary_url}|(#{change.secondary_key})>"
        return line
    if change.kind == ChangeKind.ISSUE:
        return f"{BULLET} {change.summary} <{change.url}|(#{change.primary_key})>"
    return f"{BULLET} {change.summary}"


def render_header(release_id: str, branch_prefix: str = DEFAULT_RELEASE_BRANCH_PREFIX) -> str:
    """Render the fixed header block naming the release branch."""
    return ANNOUNCEMENT_HEADER_TEMPLATE.format(branch=release_branch(release_id, branch_prefix))


def render_announcement(
    changes: Sequence[Change],
    release_id: str,
    custom_template: str | None = None,
    branch_prefix: str = DEFAULT_RELEASE_BRANCH_PREFIX,
    empty_text: str = NO_CHANGES_TEXT,
) -> str:
    """Render the announcement for a release.

    A custom template, even an empty one, bypasses all formatting; only the
    ``{{releaseNumber}}`` and ``{{changeCount}}`` placeholders are replaced.
    """
    if custom_template is not None:
        return custom_template.replace(TEMPLATE_RELEASE_NUMBER_PLACEHOLDER, release_id).replace(
            TEMPLATE_CHANGE_COUNT_PLACEHOLDER, str(len(changes))
        )

    header = render_header(release_id, branch_prefix)
    if not changes:
        return f"{header} {empty_text}"
    return header + "\n" + "\n".join(render_change_line(change) for change in changes)


def chunk_text(text: str, max_length: int) -> list[str]:
    """Split text into chunks of at most max_length characters along line boundaries.

    Lines are packed greedily. A line that alone exceeds max_length is cut to
    ``max_length - 3`` characters plus an ellipsis and emitted as its own chunk.

    Args:
        text: Text to split.
        max_length: Maximum chunk length; must leave room for the ellipsis.

    Returns:
        Non-empty, stripped chunks in their original order.

    Raises:
        ValueError: If max_length leaves no room for the ellipsis of a truncated line.
    """
    if max_length <= len(ELLIPSIS):
        raise ValueError(f"max_length must be greater than {len(ELLIPSIS)}, got {max_length}")
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    current: list[str] = []
    current_length = 0

    def flush() -> None:
        nonlocal current, current_length
        chunk = "\n".join(current).strip()
        if chunk:
            chunks.append(chunk)
        current = []
        current_length = 0

    for line in text.split("\n"):
        if len(line) > max_length:
            flush()
            logger.debug("Truncating line longer than chunk size", line_length=len(line), max_length=max_length)
            truncated = (line[: max_length - len(ELLIPSIS)] + ELLIPSIS).strip()
            chunks.append(truncated)
            continue

        added_length = len(line) + (1 if current else 0)
        if current and current_length + added_length > max_length:
            flush()
            added_length = len(line)
        current.append(line)
        current_length += added_length

    flush()
    return chunks


def parse_change_lines(text: str | None) -> list[Change]:
    """Recover changes from the bullet lines of a rendered announcement.

    Commit ids and authors are not part of the rendered text, so recovered
    changes carry empty values for them.
    """
    if not text:
        return []

    changes: list[Change] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line.startswith(BULLET_PREFIX):
            continue
        changes.append(_parse_change_line(line))
    return changes


def _parse_change_line(line: str) -> Change:
    ticket_match = TICKET_LINE_PATTERN.match(line)
    if ticket_match:
        url = ticket_match.group("url")
        try:
            return Change(
                kind=ChangeKind.TICKET,
                primary_key=url.rstrip("/").rsplit("/", 1)[-1],
                summary=html.unescape(ticket_match.group("summary")),
                url=url,
                secondary_key=ticket_match.group("secondary_key"),
                secondary_url=ticket_match.group("secondary_url"),
            )
        except ValidationError:
            logger.debug("Rendered line links to a non-ticket url", line=line)

    issue_match = ISSUE_LINE_PATTERN.match(line)
    if issue_match:
        return Change(
            kind=ChangeKind.ISSUE,
            primary_key=issue_match.group("key"),
            summary=html.unescape(issue_match.group("summary")),
            url=issue_match.group("url"),
        )

    return Change(kind=ChangeKind.PLAIN, primary_key="", summary=html.unescape(line[len(BULLET_PREFIX) :]))
