"""Commit source adapter for the githubkit library."""

from typing import Any, Self

import structlog
from githubkit import Response
from githubkit.exception import RequestFailed
from githubkit.versions.latest.models import FullRepository

from release_announcer.announcements.exceptions import SourceNotFoundError
from release_announcer.announcements.models import Commit
from release_announcer.configuration.models import GitHubConfig
from release_announcer.utils.github import split_repository_in_configuration
from release_announcer.utils.retry import retry_on_rate_limit

from .abc import CommitSourceBase
from .client import GitHubClient, get_github_client

logger = structlog.get_logger(__name__)


class GitHubKitAdapter(CommitSourceBase):
    """Commit source backed by the GitHub REST API through githubkit."""

    def __init__(self, client: GitHubClient, owner: str, repo_name: str) -> None:
        """Initialize the adapter with an already-initialized client."""
        self.client = client
        self.owner = owner
        self.repo_name = repo_name

    @property
    def repo(self) -> str:
        """Repository in 'owner/repo' format."""
        return f"{self.owner}/{self.repo_name}"

    @classmethod
    async def create(cls, config: GitHubConfig) -> Self:
        """Create an adapter for the configured repository."""
        owner, repo_name = await split_repository_in_configuration(repo=config.repo)
        logger.info("Creating GitHub commit source", github_api_url=config.github_api_url, owner=owner, repo_name=repo_name)
        return cls(await get_github_client(config), owner, repo_name)

    @retry_on_rate_limit()
    async def get_repository(self) -> FullRepository:
        """Get the repository for the current client."""
        response: Response[FullRepository] = await self.client.rest.repos.async_get(owner=self.owner, repo=self.repo_name)
        return response.parsed_data

    @retry_on_rate_limit()
    async def _compare_page(self, base: str, head: str, page: int, per_page: int) -> dict[str, Any]:
        # Raw JSON avoids githubkit's strict commit verification model, which
        # rejects the verification payload the compare endpoint returns.
        response = await self.client.rest.repos.async_compare_commits(
            owner=self.owner,
            repo=self.repo_name,
            basehead=f"{base}...{head}",
            page=page,
            per_page=per_page,
        )
        return response.json()

    async def compare_commits(self, base: str, head: str, per_page: int = 100) -> list[Commit]:
        """List the commits between two refs, handling pagination.

        Raises:
            SourceNotFoundError: If GitHub answers 404 for either ref.
        """
        logger.info("Comparing refs", repo=self.repo, base=base, head=head)
        raw_commits: list[dict[str, Any]] = []
        page: int = 1
        while True:
            try:
                data = await self._compare_page(base, head, page, per_page)
            except RequestFailed as exc:
                if exc.response.status_code == 404:
                    logger.warning("Compared ref not found", repo=self.repo, base=base, head=head)
                    raise SourceNotFoundError(base, head, self.repo) from exc
                raise

            commits = data.get("commits") or []
            raw_commits.extend(commits)
            total_commits = data.get("total_commits", len(raw_commits))
            logger.debug(f"Fetched compare page {page}", page_commits=len(commits), total_commits=total_commits)
            if not commits or len(commits) < per_page or len(raw_commits) >= total_commits:
                break
            page += 1

        logger.info("Fetched commits between refs", repo=self.repo, base=base, head=head, commit_count=len(raw_commits))
        return [Commit.from_github(commit) for commit in raw_commits]
