"""Exceptions raised by the Slack Web API client."""


class SlackAPIError(Exception):
    """Raised when a Slack Web API call returns ok=false or a non-2xx status."""

    def __init__(self, method: str, error: str) -> None:
        """Initializes the exception with the API method and Slack's error code."""
        super().__init__(f"Slack API call {method} failed: {error}")
        self.method = method
        self.error = error


class SlackRateLimitedError(SlackAPIError):
    """Raised when Slack answers HTTP 429."""

    def __init__(self, method: str, retry_after: float | None = None) -> None:
        """Initializes the exception with the Retry-After delay in seconds, if any."""
        super().__init__(method, "ratelimited")
        self.retry_after = retry_after
