"""Release announcement generation module."""

from .exceptions import AnnouncementError, InvalidReleaseFormatError, ReleaseUnderflowError, SourceNotFoundError
from .formatter import chunk_text, parse_change_lines, render_announcement, render_change_line
from .mapper import map_commits, map_commits_with_stats
from .models import (
    AnnouncementResult,
    Change,
    ChangeKind,
    Commit,
    Destination,
    ExtractedReferences,
    MappingStats,
    PendingAnnouncement,
    ReferenceKind,
    ReferenceMatch,
)
from .references import extract_references
from .releases import previous_release, release_branch
from .selection import (
    FullSelectionToken,
    SimplifiedSelectionToken,
    decode_selection_token,
    encode_selection_token,
    reconcile_selection,
)

__all__ = [
    "AnnouncementError",
    "InvalidReleaseFormatError",
    "ReleaseUnderflowError",
    "SourceNotFoundError",
    "AnnouncementResult",
    "Change",
    "ChangeKind",
    "Commit",
    "Destination",
    "ExtractedReferences",
    "MappingStats",
    "PendingAnnouncement",
    "ReferenceKind",
    "ReferenceMatch",
    "extract_references",
    "map_commits",
    "map_commits_with_stats",
    "render_announcement",
    "render_change_line",
    "chunk_text",
    "parse_change_lines",
    "FullSelectionToken",
    "SimplifiedSelectionToken",
    "encode_selection_token",
    "decode_selection_token",
    "reconcile_selection",
    "previous_release",
    "release_branch",
]
