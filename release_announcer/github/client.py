"""Builds the githubkit client used to read release branches."""

from pathlib import Path
from typing import TypeAlias

from githubkit import GitHub
from githubkit.auth import AppInstallationAuthStrategy, TokenAuthStrategy

from release_announcer.configuration.models import GitHubAuthenticationType, GitHubConfig

GitHubClient: TypeAlias = GitHub[AppInstallationAuthStrategy] | GitHub[TokenAuthStrategy]


def _app_installation_auth(config: GitHubConfig) -> AppInstallationAuthStrategy:
    if not (config.github_app_id and config.github_app_private_key_path and config.github_app_installation_id):
        raise RuntimeError("GitHub App authentication needs an app id, a private key path and an installation id.")
    return AppInstallationAuthStrategy(
        app_id=config.github_app_id,
        private_key=Path(config.github_app_private_key_path).read_text(),
        installation_id=config.github_app_installation_id,
    )


async def get_github_client(config: GitHubConfig) -> GitHubClient:
    """Return a client authenticated the way the configuration asks for.

    The configured API URL is honoured, so GitHub Enterprise Server works too.
    Raises RuntimeError when the credentials for the chosen type are missing.
    """
    if config.github_authentication_type == GitHubAuthenticationType.APP:
        return GitHub(auth=_app_installation_auth(config), base_url=config.github_api_url, http_cache=False)
    if not config.github_pat_token:
        raise RuntimeError("GitHub token authentication needs a personal access token.")
    return GitHub(auth=TokenAuthStrategy(config.github_pat_token), base_url=config.github_api_url, http_cache=False)
