"""Fixtures for unit tests."""

from typing import Callable, Generator

import httpx
import pytest
import structlog
from githubkit import Response
from githubkit.exception import RequestFailed

from release_announcer.announcements.models import Change, ChangeKind, Commit
from release_announcer.configuration.models import AnnouncementConfig, GitHubAuthenticationType, GitHubConfig

TICKET_URL_BASE = "https://example.atlassian.net"
ISSUE_URL_BASE = "https://github.com/acme/widgets"


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_commit() -> Callable[..., Commit]:
    """Factory for commits whose title defaults to the first message line."""

    def _make_commit(short_id: str, message: str, title: str | None = None, author_name: str = "Jane Doe") -> Commit:
        return Commit(
            short_id=short_id,
            title=message.split("\n")[0] if title is None else title,
            full_message=message,
            author_name=author_name,
        )

    return _make_commit


@pytest.fixture
def sample_changes() -> list[Change]:
    """One change of each kind."""
    return [
        Change(
            kind=ChangeKind.TICKET,
            primary_key="ABC-100",
            summary="Fix login",
            url=f"{TICKET_URL_BASE}/browse/ABC-100",
            secondary_key="42",
            secondary_url=f"{ISSUE_URL_BASE}/pull/42",
            commit_id="aaaaaaa",
        ),
        Change(
            kind=ChangeKind.ISSUE,
            primary_key="7",
            summary="Bump dependencies",
            url=f"{ISSUE_URL_BASE}/pull/7",
            commit_id="bbbbbbb",
        ),
        Change(kind=ChangeKind.PLAIN, primary_key="ccccccc", summary="Tidy README", commit_id="ccccccc"),
    ]


@pytest.fixture
def announcement_config() -> AnnouncementConfig:
    """Reconciled configuration pointing at an example repository."""
    return AnnouncementConfig(
        github=GitHubConfig(
            repo="acme/widgets",
            github_api_url="https://api.github.com",
            github_authentication_type=GitHubAuthenticationType.PAT,
            github_pat_token="ghp_example",
        ),
        ticket_project_key="ABC",
        ticket_url_base=TICKET_URL_BASE,
        issue_url_base=ISSUE_URL_BASE,
        slack_bot_token="xoxb-example",
    )


@pytest.fixture
def github_error() -> Callable[..., RequestFailed]:
    """Factory for githubkit request failures backed by real HTTP responses."""

    def _github_error(status_code: int, headers: dict[str, str] | None = None, body: str = "") -> RequestFailed:
        request = httpx.Request("GET", "https://api.github.com/repos/acme/widgets/compare/releases/66...releases/67")
        return RequestFailed(Response(httpx.Response(status_code, headers=headers, text=body, request=request), dict))

    return _github_error
