"""In-memory, per-client request rate limiter."""

import threading
import time
from dataclasses import dataclass
from typing import Callable

import structlog

from release_announcer.utils.constants import DEFAULT_RATE_LIMIT_MAX_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitStatus:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        """Whole seconds until the client's window resets."""
        return max(0, int(self.reset_at - now + 0.999))


@dataclass
class _Window:
    started_at: float
    count: int


class SlidingWindowRateLimiter:
    """Counts requests per client within a window that starts at the client's first request.

    Instances own their state; share one instance between request handlers
    rather than relying on module globals.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter with its window size, request budget and clock."""
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, client_id: str) -> RateLimitStatus:
        """Record a request from client_id and report whether it is allowed."""
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            window = self._windows.get(client_id)
            if window is None:
                window = _Window(started_at=now, count=0)
                self._windows[client_id] = window
            window.count += 1
            status = RateLimitStatus(
                allowed=window.count <= self.max_requests,
                remaining=max(0, self.max_requests - window.count),
                reset_at=window.started_at + self.window_seconds,
            )
        if not status.allowed:
            logger.warning("Rate limit exceeded", client_id=client_id, count=window.count, max_requests=self.max_requests)
        return status

    def reset(self) -> None:
        """Forget all recorded requests."""
        with self._lock:
            self._windows.clear()

    def _evict_expired(self, now: float) -> None:
        expired = [client_id for client_id, window in self._windows.items() if now - window.started_at >= self.window_seconds]
        for client_id in expired:
            del self._windows[client_id]

    def now(self) -> float:
        """Current time on the limiter's clock."""
        return self._clock()
