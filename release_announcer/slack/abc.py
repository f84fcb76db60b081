"""Base ABC for announcement publishers."""

from abc import ABC, abstractmethod
from typing import Any


class PublisherBase(ABC):
    """Base ABC for messaging clients that announcements are published through."""

    @abstractmethod
    async def publish(self, channel_id: str, text: str) -> bool:
        """Post text to a channel; returns whether the post succeeded."""
        pass

    @abstractmethod
    async def post_ephemeral(self, channel_id: str, user_id: str, text: str) -> Any:
        """Post a message only visible to one user in a channel."""
        pass

    @abstractmethod
    async def get_channel_info(self, channel_id: str) -> dict[str, Any]:
        """Get a channel the bot can see."""
        pass

    @abstractmethod
    async def find_channel_by_name(self, channel_name: str) -> dict[str, Any] | None:
        """Find a channel by its name, with or without a leading '#'."""
        pass

    @abstractmethod
    async def respond(self, response_url: str, payload: dict[str, Any]) -> None:
        """Reply to an interaction through its response URL."""
        pass
