"""Retry decorator for rate-limited GitHub and Slack API calls.

GitHub rate limits are surfaced by githubkit either as dedicated exceptions
carrying a ``retry_after`` timedelta or as 403/429 responses with
``retry-after`` / ``x-ratelimit-reset`` headers. Slack rate limits surface as
SlackRateLimitedError carrying the Retry-After header in seconds.
"""

import asyncio
import functools
import time
from typing import Any, Callable, TypeVar

import structlog
from githubkit.exception import PrimaryRateLimitExceeded, RequestFailed, SecondaryRateLimitExceeded

from release_announcer.slack.exceptions import SlackRateLimitedError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _github_wait_time(exc: RequestFailed, default: float) -> float:
    """Read the wait time from GitHub's rate limit headers."""
    retry_after = exc.response.headers.get("retry-after")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            logger.warning("Invalid retry-after header value", retry_after=retry_after)
    rate_limit_reset = exc.response.headers.get("x-ratelimit-reset")
    if rate_limit_reset:
        try:
            reset_timestamp = int(rate_limit_reset)
        except ValueError:
            logger.warning("Invalid x-ratelimit-reset header value", rate_limit_reset=rate_limit_reset)
        else:
            now = int(time.time())
            if reset_timestamp > now:
                return reset_timestamp - now + 1
    return default


def _is_github_rate_limit(exc: RequestFailed) -> bool:
    """GitHub answers rate limits with 429, or with 403 and an exhausted quota."""
    response = exc.response
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    headers = response.headers
    return headers.get("x-ratelimit-remaining") == "0" or "retry-after" in headers or "rate limit" in response.text.lower()


def _rate_limit_wait_time(exc: Exception, default: float) -> float | None:
    """Seconds to wait before retrying, or None if exc is not a rate limit error."""
    if isinstance(exc, (PrimaryRateLimitExceeded, SecondaryRateLimitExceeded)):
        return exc.retry_after.total_seconds() if exc.retry_after else default
    if isinstance(exc, SlackRateLimitedError):
        return exc.retry_after if exc.retry_after is not None else default
    if isinstance(exc, RequestFailed) and _is_github_rate_limit(exc):
        return _github_wait_time(exc, default)
    return None


def retry_on_rate_limit(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
) -> Callable[[F], F]:
    """Decorator for retrying async API calls that hit a rate limit.

    Honors the wait time advertised by the API, capped at max_delay, and
    falls back to exponential backoff when none is given. Any other error
    propagates immediately.

    Args:
        max_retries: Maximum number of retry attempts.
        initial_delay: Delay in seconds used when the API gives no hint.
        max_delay: Upper bound for any single wait.
        exponential_base: Growth factor of the fallback delay.

    Returns:
        Decorated function with retry logic.
    """

    def decorator(func: F) -> F:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"Function {func.__name__} decorated with @retry_on_rate_limit must be async.")

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    wait_time = _rate_limit_wait_time(exc, delay)
                    if wait_time is None:
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Max retries reached for rate limit error",
                            function=func.__name__,
                            attempt=attempt + 1,
                            error_type=type(exc).__name__,
                        )
                        raise
                    wait_time = min(wait_time, max_delay)
                    logger.warning(
                        f"Rate limit hit, retrying in {wait_time} seconds",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        error_type=type(exc).__name__,
                    )
                    await asyncio.sleep(wait_time)
                    delay = min(delay * exponential_base, max_delay)
                    attempt += 1

        return async_wrapper  # type: ignore

    return decorator
