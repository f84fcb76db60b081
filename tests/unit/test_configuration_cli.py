"""Unit tests for the Typer command line interface."""

from typing import Callable
from unittest.mock import AsyncMock

import pytest
from pytest import MonkeyPatch
from typer.testing import CliRunner

from release_announcer.announcements.exceptions import SourceNotFoundError
from release_announcer.announcements.models import Commit
from release_announcer.configuration.cli import typer_app
from release_announcer.configuration.env import Settings
from release_announcer.github.abc import CommitSourceBase

runner = CliRunner()


@pytest.fixture
def environment(monkeypatch: MonkeyPatch) -> None:
    """A complete configuration in the environment."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REPO", "acme/widgets")
    monkeypatch.setenv("GITHUB_PAT_TOKEN", "ghp_example")
    monkeypatch.setenv("JIRA_SERVER", "example.atlassian.net")
    monkeypatch.setenv("JIRA_PROJECT", "ABC")


@pytest.fixture
def source(monkeypatch: MonkeyPatch, make_commit: Callable[..., Commit]) -> AsyncMock:
    """Replace the GitHub commit source used by the CLI."""
    mock = AsyncMock(spec=CommitSourceBase)
    mock.compare_commits.return_value = [
        make_commit("a000001", "ABC-100 fixes login (#42)", title="Fix login (#42)"),
        make_commit("a000002", "Tidy README"),
    ]
    monkeypatch.setattr("release_announcer.configuration.cli.create_commit_source", AsyncMock(return_value=mock))
    return mock


@pytest.mark.parametrize(
    "release,expected",
    [
        pytest.param("67", "66", id="flat"),
        pytest.param("2.1.0", "2.0", id="dotted"),
    ],
)
def test_previous_release(release: str, expected: str) -> None:
    """The previous release is printed."""
    result = runner.invoke(typer_app, ["previous-release", release])
    assert result.exit_code == 0
    assert result.output.strip() == expected


def test_previous_release_underflow() -> None:
    """Underflow exits with the user-facing message."""
    result = runner.invoke(typer_app, ["previous-release", "1"])
    assert result.exit_code == 1
    assert "Release numbers must be greater than 1." in result.output


@pytest.mark.usefixtures("environment")
def test_preview_prints_announcement(source: AsyncMock) -> None:
    """Preview prints the rendered announcement and stats."""
    result = runner.invoke(typer_app, ["preview", "67"])
    assert result.exit_code == 0, result.output
    assert "*Branch:* `releases/67`" in result.output
    assert "<https://example.atlassian.net/browse/ABC-100|Fix login>" in result.output
    assert "Tidy README" not in result.output
    assert "Compared against release 66" in result.output
    source.compare_commits.assert_awaited_once_with("releases/66", "releases/67")


@pytest.mark.usefixtures("environment")
def test_preview_keep_unreferenced(source: AsyncMock) -> None:
    """--keep-unreferenced includes commits without references."""
    result = runner.invoke(typer_app, ["preview", "67", "--keep-unreferenced"])
    assert result.exit_code == 0, result.output
    assert "• Tidy README" in result.output


@pytest.mark.usefixtures("environment")
def test_preview_missing_branches(source: AsyncMock) -> None:
    """Missing branches exit with the user-facing message."""
    source.compare_commits.side_effect = SourceNotFoundError("releases/66", "releases/67", "acme/widgets")
    result = runner.invoke(typer_app, ["preview", "67"])
    assert result.exit_code == 1
    assert "Could not find release branches in GitHub." in result.output


def test_preview_missing_configuration(monkeypatch: MonkeyPatch) -> None:
    """Missing required settings exit with a configuration error."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GITHUB_PAT_TOKEN", "ghp_example")
    result = runner.invoke(typer_app, ["preview", "67"])
    assert result.exit_code == 1
    assert "Configuration error" in result.output


@pytest.mark.usefixtures("environment")
def test_announce_requires_destination() -> None:
    """announce needs a channel id or name."""
    result = runner.invoke(typer_app, ["announce", "67"])
    assert result.exit_code == 1
    assert "--channel" in result.output


@pytest.mark.usefixtures("environment")
def test_announce_requires_slack_token() -> None:
    """announce needs a Slack bot token."""
    result = runner.invoke(typer_app, ["announce", "67", "--channel", "C123"])
    assert result.exit_code == 1
    assert "SLACK_BOT_TOKEN" in result.output
