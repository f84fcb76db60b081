"""Reconcile configuration between CLI arguments and environment variables."""

from pathlib import Path

import structlog

from release_announcer.configuration.env import Settings
from release_announcer.configuration.exceptions import GitHubAuthenticationConfigurationUndefinedError, RequiredConfigurationElementError
from release_announcer.configuration.models import AnnouncementConfig, GitHubAuthenticationType, GitHubConfig
from release_announcer.utils.github import default_issue_url_base, ensure_url_scheme, split_repository_in_configuration

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


async def validate_github_authentication_configuration(
    github_pat_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
) -> GitHubAuthenticationType:
    """Validates the GitHub authentication configuration.

    Raises:
        GitHubAuthenticationConfigurationUndefinedError: If neither or both of PAT and App
            configurations are defined, or the App configuration is incomplete.

    Returns:
        GitHubAuthenticationType: The type of GitHub authentication used.
    """
    app_settings = [
        ("GitHub App ID", "github_app_id", "GITHUB_APP_ID", github_app_id),
        ("GitHub App private key path", "github_app_private_key_path", "GITHUB_APP_PRIVATE_KEY_PATH", github_app_private_key_path),
        ("GitHub App installation ID", "github_app_installation_id", "GITHUB_APP_INSTALLATION_ID", github_app_installation_id),
    ]
    any_app_setting = any(value for *_, value in app_settings)

    if github_pat_token and any_app_setting:
        raise GitHubAuthenticationConfigurationUndefinedError("Both PAT and GitHub App configurations are defined. Please use one or the other.")
    if github_pat_token:
        return GitHubAuthenticationType.PAT
    if not any_app_setting:
        raise GitHubAuthenticationConfigurationUndefinedError(
            "No GitHub authentication configuration provided. Please provide either a PAT or a GitHub App configuration."
        )

    missing = [f"{name} (command line option {cli_name}, environment variable {env_name})" for name, cli_name, env_name, value in app_settings if not value]
    if missing:
        raise GitHubAuthenticationConfigurationUndefinedError("Incomplete GitHub App configuration - missing settings include " + ", ".join(missing))
    return GitHubAuthenticationType.APP


def _first_defined(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


async def reconcile_announcement_configuration(
    settings: Settings,
    cli_repo: str | None = None,
    cli_github_api_url: str | None = None,
    cli_github_pat_token: str | None = None,
    cli_jira_server: str | None = None,
    cli_jira_project: str | None = None,
    cli_issue_url_base: str | None = None,
    cli_keep_unreferenced: bool | None = None,
    cli_debug: bool | None = None,
    require_github_authentication: bool = True,
) -> AnnouncementConfig:
    """Merge CLI arguments over environment settings into an AnnouncementConfig.

    Raises:
        RequiredConfigurationElementError: If the repository, ticket project or ticket server is missing.
        GitHubAuthenticationConfigurationUndefinedError: If GitHub authentication is required but invalid.
    """
    repo = _first_defined(cli_repo, settings.REPO)
    if not repo:
        raise RequiredConfigurationElementError("GitHub repository", "--repo", "REPO")
    jira_project = _first_defined(cli_jira_project, settings.JIRA_PROJECT)
    if not jira_project:
        raise RequiredConfigurationElementError("Ticket project key", "--jira-project", "JIRA_PROJECT")
    jira_server = _first_defined(cli_jira_server, settings.JIRA_SERVER)
    if not jira_server:
        raise RequiredConfigurationElementError("Ticket server URL", "--jira-server", "JIRA_SERVER")

    github_pat_token = _first_defined(cli_github_pat_token, settings.GITHUB_PAT_TOKEN)
    if require_github_authentication:
        auth_type = await validate_github_authentication_configuration(
            github_pat_token=github_pat_token,
            github_app_id=settings.GITHUB_APP_ID,
            github_app_private_key_path=settings.GITHUB_APP_PRIVATE_KEY_PATH,
            github_app_installation_id=settings.GITHUB_APP_INSTALLATION_ID,
        )
    else:
        auth_type = GitHubAuthenticationType.PAT

    owner, repository = await split_repository_in_configuration(repo)
    issue_url_base = _first_defined(cli_issue_url_base, settings.ISSUE_URL_BASE) or default_issue_url_base(owner, repository)

    config = AnnouncementConfig(
        github=GitHubConfig(
            repo=f"{owner}/{repository}",
            github_api_url=_first_defined(cli_github_api_url, settings.GITHUB_API_URL) or "https://api.github.com",
            github_authentication_type=auth_type,
            github_pat_token=github_pat_token,
            github_app_id=settings.GITHUB_APP_ID,
            github_app_private_key_path=settings.GITHUB_APP_PRIVATE_KEY_PATH,
            github_app_installation_id=settings.GITHUB_APP_INSTALLATION_ID,
        ),
        ticket_project_key=jira_project.strip().upper(),
        ticket_url_base=ensure_url_scheme(jira_server),
        issue_url_base=issue_url_base.rstrip("/"),
        slack_bot_token=settings.SLACK_BOT_TOKEN,
        slack_api_url=settings.SLACK_API_URL,
        release_branch_prefix=settings.RELEASE_BRANCH_PREFIX,
        keep_unreferenced=settings.KEEP_UNREFERENCED if cli_keep_unreferenced is None else cli_keep_unreferenced,
        max_token_bytes=settings.MAX_TOKEN_BYTES,
        max_message_length=settings.MAX_MESSAGE_LENGTH,
        rate_limit_window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        rate_limit_max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        debug=settings.DEBUG if cli_debug is None else cli_debug,
    )
    logger.debug(
        "Reconciled announcement configuration",
        repo=config.github.repo,
        ticket_project_key=config.ticket_project_key,
        ticket_url_base=config.ticket_url_base,
        issue_url_base=config.issue_url_base,
        keep_unreferenced=config.keep_unreferenced,
    )
    return config
