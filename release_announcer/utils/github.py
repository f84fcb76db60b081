"""Contains utility functions for GitHub and ticket tracker URLs."""

GITHUB_WEB_URL = "https://github.com"


async def split_repository_in_configuration(repo: str | None) -> tuple[str, str]:
    """Splits an 'owner/repo' string into owner and repository name."""
    if repo is None:
        raise ValueError("A repository in the format 'owner/repo' is required.")
    parts = repo.strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Repository must be in the format 'owner/repo', got {repo!r}.")
    owner, repository = parts
    return owner, repository


def ensure_url_scheme(url: str) -> str:
    """Prefix https:// to a server address that has no scheme."""
    url = url.strip().rstrip("/")
    if not url or url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def default_issue_url_base(owner: str, repository: str) -> str:
    """Web URL of a repository, under which /pull/<number> links live."""
    return f"{GITHUB_WEB_URL}/{owner}/{repository}"
