"""Unit tests for the announcement workflow."""

import json
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from release_announcer.announcements.exceptions import (
    ChannelNotFoundError,
    InvalidReleaseFormatError,
    PublishError,
    ReleaseUnderflowError,
    SourceNotFoundError,
)
from release_announcer.announcements.models import Commit
from release_announcer.announcements.workflow import AnnouncementWorkflow, describe_error, interaction_rate_limiter, release_id_from_text
from release_announcer.configuration.models import AnnouncementConfig
from release_announcer.github.abc import CommitSourceBase
from release_announcer.slack.abc import PublisherBase
from release_announcer.slack.exceptions import SlackAPIError
from release_announcer.slack.interactions import SlashCommand
from release_announcer.utils.rate_limit import SlidingWindowRateLimiter

RESPONSE_URL = "https://hooks.slack.com/actions/T/1/abc"


@pytest.fixture
def commits(make_commit: Callable[..., Commit]) -> list[Commit]:
    """Commits between releases 66 and 67."""
    return [
        make_commit("a000001", "ABC-100 fixes login\n\nABC-100 fixes login (#42)", title="Fix login (#42)"),
        make_commit("a000002", "Bump dependencies (#7)"),
        make_commit("a000003", "Tidy README"),
        make_commit("a000004", "ABC-101 Add search"),
    ]


@pytest.fixture
def source(commits: list[Commit]) -> AsyncMock:
    """Commit source returning the release commits."""
    mock = AsyncMock(spec=CommitSourceBase)
    mock.compare_commits.return_value = commits
    return mock


@pytest.fixture
def publisher() -> AsyncMock:
    """Publisher that accepts every message."""
    mock = AsyncMock(spec=PublisherBase)
    mock.publish.return_value = True
    mock.get_channel_info.return_value = {"id": "C123", "name": "general"}
    return mock


@pytest.fixture
def workflow(announcement_config: AnnouncementConfig, source: AsyncMock, publisher: AsyncMock) -> AnnouncementWorkflow:
    """Workflow wired to mocks."""
    return AnnouncementWorkflow(announcement_config, source, publisher)


def interaction_payload(preview: dict[str, Any], action_id: str, checked: list[int] | None = None, channel_id: str = "C123") -> dict[str, Any]:
    """Simulate Slack echoing a preview back when a button is clicked."""
    buttons = preview["blocks"][-1]["elements"]
    button = next(button for button in buttons if button["action_id"] == action_id)
    values: dict[str, Any] = {}
    if checked is not None:
        values["changes_0"] = {"select_changes_0": {"selected_options": [{"value": str(index)} for index in checked]}}
    return {
        "type": "block_actions",
        "user": {"id": "U1"},
        "channel": {"id": channel_id, "name": "general"},
        "response_url": RESPONSE_URL,
        "actions": [{"action_id": action_id, "value": button["value"]}],
        "state": {"values": values},
        "message": {"blocks": preview["blocks"]},
    }


class TestCollectChanges:
    """Tests for collect_changes."""

    @pytest.mark.asyncio
    async def test_compares_release_branches(self, workflow: AnnouncementWorkflow, source: AsyncMock) -> None:
        """The previous release branch is the comparison base."""
        prepared = await workflow.collect_changes("67")
        source.compare_commits.assert_awaited_once_with("releases/66", "releases/67")
        assert prepared.previous_release_id == "66"
        assert [change.primary_key for change in prepared.changes] == ["ABC-100", "7", "ABC-101"]
        assert prepared.changes[0].summary == "Fix login"
        assert prepared.changes[0].secondary_key == "42"
        assert prepared.stats.skipped == 1

    @pytest.mark.asyncio
    async def test_keep_unreferenced_override(self, workflow: AnnouncementWorkflow) -> None:
        """Unreferenced commits can be kept per call."""
        prepared = await workflow.collect_changes("67", keep_unreferenced=True)
        assert len(prepared.changes) == 4

    @pytest.mark.asyncio
    async def test_invalid_release_does_not_call_source(self, workflow: AnnouncementWorkflow, source: AsyncMock) -> None:
        """Release ids are validated before any I/O."""
        with pytest.raises(InvalidReleaseFormatError):
            await workflow.collect_changes("abc")
        source.compare_commits.assert_not_awaited()


class TestDescribeError:
    """Tests for describe_error."""

    def test_invalid_format(self) -> None:
        """Invalid ids explain the expected format."""
        message = describe_error(InvalidReleaseFormatError("abc"), "abc")
        assert message == '❌ Invalid release number format: `abc`\n\nPlease provide a valid release number (e.g., "67" or "2.1.0").'

    def test_underflow(self) -> None:
        """Underflow explains the lower bound."""
        message = describe_error(ReleaseUnderflowError("1"), "1")
        assert message == "❌ Cannot determine previous release for: `1`\n\nRelease numbers must be greater than 1."

    def test_missing_branches(self) -> None:
        """Missing branches are listed with the repository."""
        message = describe_error(SourceNotFoundError("releases/66", "releases/67"), "67", "acme/widgets")
        assert message == (
            "❌ Could not find release branches in GitHub.\n\n"
            "Please check that these branches exist:\n"
            "• `releases/66` (previous release)\n"
            "• `releases/67` (current release)\n\n"
            "Repository: `acme/widgets`"
        )

    def test_other_errors(self) -> None:
        """Anything else is reported generically."""
        assert describe_error(RuntimeError("boom"), "67") == "❌ An error occurred: boom"


def test_release_id_from_text() -> None:
    """The release id is read back from the branch line."""
    assert release_id_from_text("no branch here", "releases/") is None
    assert release_id_from_text(None, "releases/") is None
    assert release_id_from_text("*Branch:* `releases/2.1.0`\n*Changes:*", "releases/") == "2.1.0"


def test_interaction_rate_limiter(announcement_config: AnnouncementConfig) -> None:
    """The limiter follows the configured window and request budget."""
    announcement_config.rate_limit_window_seconds = 60.0
    announcement_config.rate_limit_max_requests = 3
    limiter = interaction_rate_limiter(announcement_config)
    assert limiter.window_seconds == 60.0
    assert limiter.max_requests == 3


class TestHandleSlashCommand:
    """Tests for handle_slash_command."""

    @pytest.mark.asyncio
    async def test_missing_release(self, workflow: AnnouncementWorkflow) -> None:
        """An empty command asks for a release number."""
        response = await workflow.handle_slash_command(SlashCommand(text="  "))
        assert response == {"response_type": "ephemeral", "text": "Please provide a release number."}

    @pytest.mark.asyncio
    async def test_preview(self, workflow: AnnouncementWorkflow) -> None:
        """A valid command returns the interactive preview."""
        response = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="C123", channel_name="general"))
        assert response["response_type"] == "ephemeral"
        preview_text = response["blocks"][1]["text"]["text"]
        assert preview_text.startswith("*Deploying to prod* 🚀\n*Branch:* `releases/67`\n*Changes:*\n")
        assert "<https://example.atlassian.net/browse/ABC-100|Fix login> <https://github.com/acme/widgets/pull/42|(#42)>" in preview_text
        token = json.loads(response["blocks"][-1]["elements"][0]["value"])
        assert token["mode"] == "full"
        assert token["destination"]["channel_id"] == "C123"

    @pytest.mark.asyncio
    async def test_missing_branch_error(self, workflow: AnnouncementWorkflow, source: AsyncMock) -> None:
        """Source errors become user-facing messages."""
        source.compare_commits.side_effect = SourceNotFoundError("releases/66", "releases/67", "acme/widgets")
        response = await workflow.handle_slash_command(SlashCommand(text="/release 67"))
        assert response["text"].startswith("❌ Could not find release branches in GitHub.")

    @pytest.mark.asyncio
    async def test_invalid_release_error(self, workflow: AnnouncementWorkflow) -> None:
        """Invalid release ids are explained."""
        response = await workflow.handle_slash_command(SlashCommand(text="abc"))
        assert response["text"].startswith("❌ Invalid release number format: `abc`")


class TestHandleInteraction:
    """Tests for the interactive send and cancel round trip."""

    @pytest.mark.asyncio
    async def test_send_selected_changes(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """Only the checked changes are published to the channel."""
        preview = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="C123", channel_name="general"))
        response = await workflow.handle_interaction(interaction_payload(preview, "send_announcement", checked=[0, 2]))

        assert response is not None
        assert response["replace_original"] is True
        assert response["text"] == "✅ Release announcement for `67` has been sent to <#C123>.\n\n*Included:* 2 of 3 changes"
        publisher.get_channel_info.assert_awaited_once_with("C123")
        channel_id, message = publisher.publish.await_args.args
        assert channel_id == "C123"
        assert "ABC-100" in message
        assert "ABC-101" in message
        assert "Bump dependencies" not in message
        publisher.respond.assert_awaited_once_with(RESPONSE_URL, response)

    @pytest.mark.asyncio
    async def test_send_without_checkbox_state_includes_everything(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """Lost checkbox state fails open."""
        preview = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="C123"))
        response = await workflow.handle_interaction(interaction_payload(preview, "send_announcement"))
        assert response is not None
        assert "*Included:* 3 of 3 changes" in response["text"]

    @pytest.mark.asyncio
    async def test_send_with_simplified_token(
        self, announcement_config: AnnouncementConfig, source: AsyncMock, publisher: AsyncMock
    ) -> None:
        """Oversize announcements are recovered from the preview text."""
        announcement_config.max_token_bytes = 50
        workflow = AnnouncementWorkflow(announcement_config, source, publisher)
        preview = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="C123"))
        assert json.loads(preview["blocks"][-1]["elements"][0]["value"])["mode"] == "simplified"

        response = await workflow.handle_interaction(interaction_payload(preview, "send_announcement", checked=[1]))
        assert response is not None
        assert "*Included:* 1 of 3 changes" in response["text"]
        message = publisher.publish.await_args.args[1]
        assert message.endswith("• Bump dependencies <https://github.com/acme/widgets/pull/7|(#7)>")

    @pytest.mark.asyncio
    async def test_send_in_direct_message(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """From a DM the announcement goes to the user."""
        preview = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="D999", channel_name="directmessage"))
        response = await workflow.handle_interaction(interaction_payload(preview, "send_announcement", channel_id="D999"))
        assert response is not None
        assert "has been sent to your DMs." in response["text"]
        assert publisher.publish.await_args.args[0] == "U1"
        publisher.get_channel_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_falls_back_to_ephemeral(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """Without channel access the announcement is shown only to the user."""
        publisher.get_channel_info.side_effect = SlackAPIError("conversations.info", "channel_not_found")
        preview = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="C123"))
        response = await workflow.handle_interaction(interaction_payload(preview, "send_announcement"))
        assert response is not None
        assert "<#C123> (as ephemeral message - bot needs to be added to channel)" in response["text"]
        channel_id, user_id, text = publisher.post_ephemeral.await_args.args
        assert (channel_id, user_id) == ("C123", "U1")
        assert text.startswith("⚠️ Bot doesn't have permission to post to this channel.")
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_is_reported(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """A rejected publish replaces the preview with a failure notice."""
        publisher.publish.return_value = False
        preview = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="C123"))
        response = await workflow.handle_interaction(interaction_payload(preview, "send_announcement"))
        assert response is not None
        assert response["text"].startswith("❌ Failed to send announcement:")

    @pytest.mark.asyncio
    async def test_cancel(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """Cancelling replaces the preview and publishes nothing."""
        preview = await workflow.handle_slash_command(SlashCommand(text="67", channel_id="C123"))
        response = await workflow.handle_interaction(interaction_payload(preview, "cancel_announcement"))
        assert response is not None
        assert response["text"] == "❌ Release announcement for `67` was cancelled."
        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_checkbox_toggle_needs_no_reply(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """Checkbox clicks are acknowledged without a reply."""
        payload = {"actions": [{"action_id": "select_changes_0"}], "user": {"id": "U1"}, "channel": {"id": "C123"}}
        assert await workflow.handle_interaction(payload) is None
        publisher.respond.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limited(self, announcement_config: AnnouncementConfig, source: AsyncMock, publisher: AsyncMock) -> None:
        """Users over their budget are told to wait."""
        limiter = SlidingWindowRateLimiter(window_seconds=60, max_requests=1)
        workflow = AnnouncementWorkflow(announcement_config, source, publisher, limiter)
        payload = {"actions": [{"action_id": "select_changes_0"}], "user": {"id": "U1"}, "channel": {"id": "C123"}}
        assert await workflow.handle_interaction(payload) is None
        response = await workflow.handle_interaction(payload)
        assert response is not None
        assert response["text"].startswith("⏳ Too many requests.")


class TestAnnounce:
    """Tests for the one-shot announce operation."""

    @pytest.mark.asyncio
    async def test_announce_by_channel_name(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """Channels can be addressed by name."""
        publisher.find_channel_by_name.return_value = {"id": "C777", "name": "releases"}
        result = await workflow.announce("67", channel_name="#releases")
        publisher.find_channel_by_name.assert_awaited_once_with("#releases")
        assert result.channel_id == "C777"
        assert result.previous_release_id == "66"
        assert result.message_count == 1
        assert result.stats.with_ticket == 2
        assert result.stats.with_issue == 1
        assert result.stats.total_ticket_references == 2
        publisher.publish.assert_awaited_once_with("C777", result.message)

    @pytest.mark.asyncio
    async def test_announce_with_template(self, workflow: AnnouncementWorkflow) -> None:
        """Templates replace the rendered change list."""
        result = await workflow.announce("67", channel_id="C1", custom_template="Release {{releaseNumber}}: {{changeCount}} changes")
        assert result.message == "Release 67: 3 changes"

    @pytest.mark.asyncio
    async def test_announce_long_message_is_chunked(
        self, announcement_config: AnnouncementConfig, source: AsyncMock, publisher: AsyncMock
    ) -> None:
        """Messages over the length limit are posted in several parts."""
        announcement_config.max_message_length = 120
        workflow = AnnouncementWorkflow(announcement_config, source, publisher)
        result = await workflow.announce("67", channel_id="C1")
        assert result.message_count == publisher.publish.await_count
        assert result.message_count > 1
        assert all(len(call.args[1]) <= 120 for call in publisher.publish.await_args_list)

    @pytest.mark.asyncio
    async def test_unknown_channel(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """Unknown channel names are an error."""
        publisher.find_channel_by_name.return_value = None
        with pytest.raises(ChannelNotFoundError):
            await workflow.announce("67", channel_name="nowhere")

    @pytest.mark.asyncio
    async def test_publish_failure(self, workflow: AnnouncementWorkflow, publisher: AsyncMock) -> None:
        """A rejected message raises PublishError."""
        publisher.publish.return_value = False
        with pytest.raises(PublishError):
            await workflow.announce("67", channel_id="C1")


class TestRunDiagnostics:
    """Tests for run_diagnostics."""

    @pytest.mark.asyncio
    async def test_success(self, workflow: AnnouncementWorkflow, source: AsyncMock) -> None:
        """Repository access and ticket settings are reported."""
        repository = MagicMock()
        repository.full_name = "acme/widgets"
        repository.html_url = "https://github.com/acme/widgets"
        source.get_repository.return_value = repository
        results = await workflow.run_diagnostics()
        assert results["github"] == {"success": True, "repository": "acme/widgets", "repository_url": "https://github.com/acme/widgets"}
        assert results["jira"]["success"] is True
        assert results["jira"]["project_url"] == "https://example.atlassian.net/projects/ABC"

    @pytest.mark.asyncio
    async def test_github_failure(self, workflow: AnnouncementWorkflow, source: AsyncMock) -> None:
        """GitHub failures are reported, not raised."""
        source.get_repository.side_effect = RuntimeError("bad credentials")
        results = await workflow.run_diagnostics()
        assert results["github"] == {"success": False, "error": "bad credentials"}
