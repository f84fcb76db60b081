"""Utility modules for shared functionality."""

from .constants import (
    BULLET,
    DEFAULT_RELEASE_BRANCH_PREFIX,
    ISSUE_REFERENCE_PATTERN,
    SLACK_MAX_BUTTON_VALUE_LENGTH,
    SLACK_MAX_SECTION_TEXT_LENGTH,
)
from .rate_limit import RateLimitStatus, SlidingWindowRateLimiter
from .retry import retry_on_rate_limit

__all__ = [
    "BULLET",
    "DEFAULT_RELEASE_BRANCH_PREFIX",
    "ISSUE_REFERENCE_PATTERN",
    "SLACK_MAX_BUTTON_VALUE_LENGTH",
    "SLACK_MAX_SECTION_TEXT_LENGTH",
    "RateLimitStatus",
    "SlidingWindowRateLimiter",
    "retry_on_rate_limit",
]
