"""Models for configuration between CLI arguments and environment variables."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from release_announcer.utils.constants import DEFAULT_RATE_LIMIT_MAX_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS, SLACK_MAX_MESSAGE_LENGTH


class GitHubAuthenticationType(str, Enum):
    """Enum for GitHub authentication types."""

    PAT = "pat"
    APP = "app"


@dataclass
class GitHubConfig:
    """Connection settings for the GitHub commit source."""

    repo: str
    github_api_url: str
    github_authentication_type: GitHubAuthenticationType
    github_pat_token: str | None = None
    github_app_id: int | None = None
    github_app_private_key_path: Path | None = None
    github_app_installation_id: int | None = None


@dataclass
class AnnouncementConfig:
    """Reconciled configuration for building and publishing announcements."""

    github: GitHubConfig
    ticket_project_key: str
    ticket_url_base: str
    issue_url_base: str
    slack_bot_token: str | None = None
    slack_api_url: str = "https://slack.com/api"
    release_branch_prefix: str = "releases/"
    keep_unreferenced: bool = False
    max_token_bytes: int = 2000
    max_message_length: int = SLACK_MAX_MESSAGE_LENGTH
    rate_limit_window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    rate_limit_max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS
    debug: bool = False
