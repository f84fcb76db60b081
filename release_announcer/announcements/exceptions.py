"""Custom exceptions raised by the announcement pipeline."""


class AnnouncementError(Exception):
    """Base class for errors raised while preparing an announcement."""

    pass


class InvalidReleaseFormatError(AnnouncementError):
    """Raised when a release id is neither dotted nor an integer."""

    def __init__(self, release_id: str) -> None:
        """Initializes the exception with the offending release id."""
        super().__init__(f"Invalid release number format: {release_id}")
        self.release_id = release_id


class ReleaseUnderflowError(AnnouncementError):
    """Raised when no valid previous release exists for a release id."""

    def __init__(self, release_id: str) -> None:
        """Initializes the exception with the offending release id."""
        super().__init__(f"Cannot determine previous release for release number: {release_id}")
        self.release_id = release_id


class SourceNotFoundError(AnnouncementError):
    """Raised when the commit source cannot find one of the compared refs."""

    def __init__(self, base: str, head: str, repo: str | None = None) -> None:
        """Initializes the exception with the refs that were compared."""
        super().__init__(f"Could not compare {base}...{head}" + (f" in {repo}" if repo else ""))
        self.base = base
        self.head = head
        self.repo = repo


class PublishError(AnnouncementError):
    """Raised when the publish sink rejects part of an announcement."""

    def __init__(self, channel_id: str, published: int, total: int) -> None:
        """Initializes the exception with how far publishing got."""
        super().__init__(f"Published {published} of {total} message(s) to channel {channel_id}")
        self.channel_id = channel_id
        self.published = published
        self.total = total


class ChannelNotFoundError(AnnouncementError):
    """Raised when a destination channel cannot be resolved by name."""

    def __init__(self, channel_name: str) -> None:
        """Initializes the exception with the channel name that was looked up."""
        super().__init__(f"Channel not found: {channel_name}")
        self.channel_name = channel_name
