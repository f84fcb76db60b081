"""Extract ticket and issue references from commit text."""

import re
from functools import lru_cache

from release_announcer.utils.constants import ISSUE_REFERENCE_PATTERN, TICKET_REFERENCE_TEMPLATE

from .models import ExtractedReferences


@lru_cache(maxsize=32)
def ticket_pattern(ticket_project_key: str) -> re.Pattern[str]:
    """Compile the case-insensitive ticket key pattern for a project key."""
    return re.compile(TICKET_REFERENCE_TEMPLATE.format(project_key=re.escape(ticket_project_key)), re.IGNORECASE)


def _unique(values: list[str]) -> tuple[str, ...]:
    # dict preserves first-appearance order
    return tuple(dict.fromkeys(values))


def extract_references(text: str, ticket_project_key: str) -> ExtractedReferences:
    """Find all ticket keys and issue numbers in a commit's text.

    Ticket keys are matched as whole words, case-insensitively, and
    normalized to uppercase. Issue numbers are the digits of every ``#NNN``
    token. Both sequences keep the order of first appearance.

    Args:
        text: Commit title and message.
        ticket_project_key: Ticket project prefix, e.g. ``ABC``.

    Returns:
        The references found; empty when nothing matched.
    """
    if not text:
        return ExtractedReferences()

    ticket_keys: tuple[str, ...] = ()
    if ticket_project_key:
        ticket_keys = _unique([match.upper() for match in ticket_pattern(ticket_project_key).findall(text)])
    issue_keys = _unique(ISSUE_REFERENCE_PATTERN.findall(text))
    return ExtractedReferences(ticket_keys=ticket_keys, issue_keys=issue_keys)
