"""Base ABC for commit sources."""

from abc import ABC, abstractmethod
from typing import Any

from release_announcer.announcements.models import Commit


class CommitSourceBase(ABC):
    """Base ABC for clients that can compare two refs of a repository."""

    @abstractmethod
    async def get_repository(self) -> Any:
        """Get the repository the source reads from."""
        pass

    @abstractmethod
    async def compare_commits(self, base: str, head: str) -> list[Commit]:
        """List the commits reachable from head but not from base, oldest first.

        Raises:
            SourceNotFoundError: If either ref does not exist.
        """
        pass
