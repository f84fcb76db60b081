"""Slack Web API client built on httpx."""

from types import TracebackType
from typing import Any, Self

import httpx
import structlog

from release_announcer.utils.retry import retry_on_rate_limit

from .abc import PublisherBase
from .exceptions import SlackAPIError, SlackRateLimitedError

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0


class SlackClient(PublisherBase):
    """Minimal async Slack Web API client for publishing announcements."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://slack.com/api",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client with a bot token and an optional shared HTTP client."""
        self.api_url = api_url.rstrip("/")
        self._token = token
        self._http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS)

    async def __aenter__(self) -> Self:
        """Enter the async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Close the underlying HTTP client."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    @retry_on_rate_limit()
    async def call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Call a Web API method and return its JSON body.

        Raises:
            SlackRateLimitedError: If Slack answers HTTP 429.
            SlackAPIError: If the call fails or Slack answers ok=false.
        """
        response = await self._http.post(
            f"{self.api_url}/{method}",
            json=payload,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json; charset=utf-8",
            },
        )
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise SlackRateLimitedError(method, float(retry_after) if retry_after else None)
        if response.status_code >= 400:
            raise SlackAPIError(method, f"HTTP {response.status_code}")

        data: dict[str, Any] = response.json()
        if not data.get("ok"):
            raise SlackAPIError(method, data.get("error", "unknown_error"))
        logger.debug("Slack API call succeeded", method=method)
        return data

    async def post_message(self, channel_id: str, text: str) -> dict[str, Any]:
        """Post a mrkdwn message to a channel."""
        return await self.call("chat.postMessage", {"channel": channel_id, "text": text, "mrkdwn": True})

    async def publish(self, channel_id: str, text: str) -> bool:
        """Post text to a channel; failures are logged and reported as False."""
        try:
            await self.post_message(channel_id, text)
        except (SlackAPIError, httpx.HTTPError) as exc:
            logger.error("Failed to publish message", channel_id=channel_id, error=str(exc))
            return False
        logger.info("Published message", channel_id=channel_id, length=len(text))
        return True

    async def post_ephemeral(self, channel_id: str, user_id: str, text: str) -> dict[str, Any]:
        """Post a message only visible to one user in a channel."""
        return await self.call("chat.postEphemeral", {"channel": channel_id, "user": user_id, "text": text})

    async def get_channel_info(self, channel_id: str) -> dict[str, Any]:
        """Get a channel the bot can see."""
        data = await self.call("conversations.info", {"channel": channel_id})
        return data.get("channel", {})

    async def find_channel_by_name(self, channel_name: str) -> dict[str, Any] | None:
        """Find a public or private channel by name, handling pagination."""
        wanted = channel_name.lstrip("#")
        cursor: str | None = None
        while True:
            payload: dict[str, Any] = {"types": "public_channel,private_channel", "limit": 200}
            if cursor:
                payload["cursor"] = cursor
            data = await self.call("conversations.list", payload)
            for channel in data.get("channels", []):
                if channel.get("name") == wanted:
                    return channel
            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                logger.info("Channel not found", channel_name=channel_name)
                return None

    async def respond(self, response_url: str, payload: dict[str, Any]) -> None:
        """Reply to an interaction through its response URL."""
        response = await self._http.post(response_url, json=payload)
        response.raise_for_status()
