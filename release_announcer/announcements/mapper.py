"""Map compared commits to announcement changes."""

from typing import Iterable

import structlog

from release_announcer.utils.constants import TRAILING_BARE_ISSUE_PATTERN, TRAILING_PARENTHESIZED_ISSUE_PATTERN

from .models import Change, ChangeKind, Commit, MappingStats
from .references import extract_references

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def clean_title(title: str) -> str:
    """Strip a trailing ``(#123)`` or ``#123`` decoration from a commit title."""
    cleaned = TRAILING_PARENTHESIZED_ISSUE_PATTERN.sub("", title, count=1)
    return TRAILING_BARE_ISSUE_PATTERN.sub("", cleaned, count=1)


def ticket_url(ticket_url_base: str, key: str) -> str:
    """Build the browse URL of a ticket."""
    return f"{ticket_url_base.rstrip('/')}/browse/{key}"


def issue_url(issue_url_base: str, key: str) -> str:
    """Build the pull request URL of an issue reference."""
    return f"{issue_url_base.rstrip('/')}/pull/{key}"


def deduplicate_commits(commits: Iterable[Commit]) -> list[Commit]:
    """Drop commits whose short id was already seen, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[Commit] = []
    for commit in commits:
        if commit.short_id in seen:
            logger.debug("Skipping duplicate commit", commit_id=commit.short_id)
            continue
        seen.add(commit.short_id)
        unique.append(commit)
    return unique


def map_commits_with_stats(
    commits: Iterable[Commit],
    ticket_project_key: str,
    ticket_url_base: str,
    issue_url_base: str,
    keep_unreferenced: bool = False,
) -> tuple[list[Change], MappingStats]:
    """Map commits to changes and count what happened to each commit.

    A ticket reference always becomes the primary link; a co-occurring issue
    reference is attached as the secondary link. Commits without any
    reference are dropped unless ``keep_unreferenced`` is set.

    Args:
        commits: Commits in comparison order, possibly with repeats.
        ticket_project_key: Ticket project prefix, e.g. ``ABC``.
        ticket_url_base: Base URL of the ticket tracker.
        issue_url_base: Base URL of the code host repository.
        keep_unreferenced: Emit plain changes for commits without references.

    Returns:
        Tuple of (changes, stats).
    """
    commits = list(commits)
    unique_commits = deduplicate_commits(commits)
    stats = MappingStats(total_commits=len(commits), unique_commits=len(unique_commits))
    changes: list[Change] = []

    for commit in unique_commits:
        references = extract_references(f"{commit.title} {commit.full_message}", ticket_project_key)

        if references.ticket_keys:
            key = references.ticket_keys[0]
            secondary_key = references.issue_keys[0] if references.issue_keys else None
            changes.append(
                Change(
                    kind=ChangeKind.TICKET,
                    primary_key=key,
                    summary=clean_title(commit.title),
                    url=ticket_url(ticket_url_base, key),
                    secondary_key=secondary_key,
                    secondary_url=issue_url(issue_url_base, secondary_key) if secondary_key else None,
                    commit_id=commit.short_id,
                    commit_author=commit.author_name,
                )
            )
            stats.with_ticket += 1
            stats.total_ticket_references += len(references.ticket_keys)
        elif references.issue_keys:
            key = references.issue_keys[0]
            changes.append(
                Change(
                    kind=ChangeKind.ISSUE,
                    primary_key=key,
                    summary=clean_title(commit.title),
                    url=issue_url(issue_url_base, key),
                    commit_id=commit.short_id,
                    commit_author=commit.author_name,
                )
            )
            stats.with_issue += 1
        elif keep_unreferenced:
            changes.append(
                Change(
                    kind=ChangeKind.PLAIN,
                    primary_key=commit.short_id,
                    summary=commit.title,
                    commit_id=commit.short_id,
                    commit_author=commit.author_name,
                )
            )
            stats.plain += 1
        else:
            logger.debug("Dropping commit without references", commit_id=commit.short_id, title=commit.title)
            stats.skipped += 1

    stats.included = len(changes)
    logger.info(
        "Mapped commits to changes",
        total_commits=stats.total_commits,
        unique_commits=stats.unique_commits,
        included=stats.included,
        with_ticket=stats.with_ticket,
        with_issue=stats.with_issue,
        skipped=stats.skipped,
    )
    return changes, stats


def map_commits(
    commits: Iterable[Commit],
    ticket_project_key: str,
    ticket_url_base: str,
    issue_url_base: str,
    keep_unreferenced: bool = False,
) -> list[Change]:
    """Map commits to changes; see map_commits_with_stats."""
    changes, _ = map_commits_with_stats(commits, ticket_project_key, ticket_url_base, issue_url_base, keep_unreferenced)
    return changes
