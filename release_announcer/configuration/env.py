"""Pydantic Settings model for application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from release_announcer.utils.constants import SLACK_MAX_MESSAGE_LENGTH


class Settings(BaseSettings):
    """Environment variable settings for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Generic application-wide settings
    DEBUG: bool = False

    # GitHub API settings
    GITHUB_API_URL: str = "https://api.github.com"
    REPO: str | None = None

    # GitHub PAT settings
    GITHUB_PAT_TOKEN: str | None = None

    # GitHub App settings
    GITHUB_APP_ID: int | None = None
    GITHUB_APP_PRIVATE_KEY_PATH: Path | None = None
    GITHUB_APP_INSTALLATION_ID: int | None = None

    # Ticket tracker settings
    JIRA_SERVER: str | None = None
    JIRA_PROJECT: str | None = None

    # Issue links default to https://github.com/<REPO> when unset
    ISSUE_URL_BASE: str | None = None

    # Slack settings
    SLACK_BOT_TOKEN: str | None = None
    SLACK_API_URL: str = "https://slack.com/api"

    # Announcement settings
    RELEASE_BRANCH_PREFIX: str = "releases/"
    KEEP_UNREFERENCED: bool = False
    MAX_TOKEN_BYTES: int = 2000
    MAX_MESSAGE_LENGTH: int = SLACK_MAX_MESSAGE_LENGTH

    # Interaction rate limiting
    RATE_LIMIT_WINDOW_SECONDS: float = 300.0
    RATE_LIMIT_MAX_REQUESTS: int = 10


def get_settings() -> Settings:
    """Load settings from the environment and the .env file."""
    return Settings()
