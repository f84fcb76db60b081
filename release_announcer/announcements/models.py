"""Data models for release announcements."""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Iterator, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from release_announcer.utils.constants import SHORT_SHA_LENGTH

TICKET_KEY_SHAPE = re.compile(r".+-\d+")


class ReferenceKind(str, Enum):
    """Kinds of references found in commit messages."""

    TICKET = "ticket"
    ISSUE = "issue"


class ChangeKind(str, Enum):
    """Kinds of announcement lines."""

    TICKET = "ticket"
    ISSUE = "issue"
    PLAIN = "plain"


class Commit(BaseModel):
    """A commit returned by the branch comparison."""

    model_config = ConfigDict(frozen=True)

    short_id: str
    title: str
    full_message: str
    author_name: str = ""
    author_date: datetime | None = None

    @classmethod
    def from_github(cls, data: dict[str, Any]) -> Self:
        """Build a commit from a raw GitHub compare/commit API entry."""
        commit = data.get("commit") or {}
        message: str = commit.get("message") or ""
        author = commit.get("author") or {}
        return cls(
            short_id=(data.get("sha") or "")[:SHORT_SHA_LENGTH],
            title=message.split("\n")[0],
            full_message=message,
            author_name=author.get("name") or "",
            author_date=author.get("date"),
        )


class ReferenceMatch(BaseModel):
    """A single reference found in commit text."""

    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    key: str


class ExtractedReferences(BaseModel):
    """Ordered, de-duplicated references found in one commit's text."""

    model_config = ConfigDict(frozen=True)

    ticket_keys: tuple[str, ...] = ()
    issue_keys: tuple[str, ...] = ()

    def matches(self) -> Iterator[ReferenceMatch]:
        """Yield ticket matches followed by issue matches, each in appearance order."""
        for key in self.ticket_keys:
            yield ReferenceMatch(kind=ReferenceKind.TICKET, key=key)
        for key in self.issue_keys:
            yield ReferenceMatch(kind=ReferenceKind.ISSUE, key=key)


class Change(BaseModel):
    """One announcement line derived from a single commit."""

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    primary_key: str
    summary: str
    url: str | None = None
    secondary_key: str | None = None
    secondary_url: str | None = None
    commit_id: str = ""
    commit_author: str = ""

    @model_validator(mode="after")
    def check_kind_invariants(self) -> Self:
        """Ensure the link fields agree with the change kind."""
        if self.kind == ChangeKind.TICKET:
            if not self.url or not TICKET_KEY_SHAPE.fullmatch(self.primary_key):
                raise ValueError(f"Ticket change requires a url and a ticket key, got {self.primary_key!r}")
        elif self.kind == ChangeKind.ISSUE:
            if not self.url or not self.primary_key.isdigit():
                raise ValueError(f"Issue change requires a url and a numeric key, got {self.primary_key!r}")
        elif self.url is not None:
            raise ValueError("Plain change must not carry a url")
        return self


class Destination(BaseModel):
    """Channel an announcement is published to."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    channel_name: str | None = None


class PendingAnnouncement(BaseModel):
    """A rendered-but-unpublished announcement awaiting user selection."""

    release_id: str
    destination: Destination
    changes: list[Change] = Field(default_factory=list)
    total_change_count: int

    @model_validator(mode="before")
    @classmethod
    def default_total_change_count(cls, data: Any) -> Any:
        """Default the total change count to the number of carried changes."""
        if isinstance(data, dict) and data.get("total_change_count") is None:
            data = {**data, "total_change_count": len(data.get("changes") or [])}
        return data


class MappingStats(BaseModel):
    """Counters describing how a commit list was mapped to changes."""

    total_commits: int = 0
    unique_commits: int = 0
    included: int = 0
    with_ticket: int = 0
    with_issue: int = 0
    plain: int = 0
    skipped: int = 0
    total_ticket_references: int = 0


class AnnouncementResult(BaseModel):
    """Result of a one-shot announcement."""

    release_id: str
    previous_release_id: str
    channel_id: str
    message: str
    message_count: int = 1
    stats: MappingStats


class PreparedRelease(BaseModel):
    """Changes collected for a release, before rendering."""

    release_id: str
    previous_release_id: str
    changes: list[Change] = Field(default_factory=list)
    stats: MappingStats = Field(default_factory=MappingStats)
