"""Orchestrate release announcements from slash command to published message."""

import re
from typing import Any

import httpx
import structlog

from release_announcer.configuration.models import AnnouncementConfig
from release_announcer.github.abc import CommitSourceBase
from release_announcer.slack.abc import PublisherBase
from release_announcer.slack.blocks import preview_response, replace_original_response
from release_announcer.slack.exceptions import SlackAPIError
from release_announcer.slack.interactions import Interaction, SlashCommand, is_direct_message, parse_interaction
from release_announcer.utils.constants import (
    CANCEL_ANNOUNCEMENT_ACTION_ID,
    NO_CHANGES_SELECTED_TEXT,
    SEND_ANNOUNCEMENT_ACTION_ID,
    SLACK_MAX_BUTTON_VALUE_LENGTH,
)
from release_announcer.utils.rate_limit import SlidingWindowRateLimiter

from .exceptions import (
    ChannelNotFoundError,
    InvalidReleaseFormatError,
    PublishError,
    ReleaseUnderflowError,
    SourceNotFoundError,
)
from .formatter import chunk_text, parse_change_lines, render_announcement
from .mapper import map_commits_with_stats
from .models import AnnouncementResult, Destination, PendingAnnouncement, PreparedRelease
from .releases import previous_release, release_branch
from .selection import FullSelectionToken, SimplifiedSelectionToken, decode_selection_token, encode_selection_token, reconcile_selection

logger = structlog.get_logger(__name__)

MISSING_RELEASE_TEXT = "Please provide a release number."
EPHEMERAL_FALLBACK_WARNING = "⚠️ Bot doesn't have permission to post to this channel. Here's your announcement:\n\n"


def describe_error(exc: Exception, release_id: str, repo: str | None = None) -> str:
    """Translate an exception raised while preparing an announcement into a user-facing message."""
    if isinstance(exc, InvalidReleaseFormatError):
        return f'❌ Invalid release number format: `{release_id}`\n\nPlease provide a valid release number (e.g., "67" or "2.1.0").'
    if isinstance(exc, ReleaseUnderflowError):
        return f"❌ Cannot determine previous release for: `{release_id}`\n\nRelease numbers must be greater than 1."
    if isinstance(exc, SourceNotFoundError):
        return (
            "❌ Could not find release branches in GitHub.\n\n"
            "Please check that these branches exist:\n"
            f"• `{exc.base}` (previous release)\n"
            f"• `{exc.head}` (current release)\n\n"
            f"Repository: `{exc.repo or repo}`"
        )
    return f"❌ An error occurred: {exc}"


def interaction_rate_limiter(config: AnnouncementConfig) -> SlidingWindowRateLimiter:
    """Build the per-user interaction limiter described by the configuration."""
    return SlidingWindowRateLimiter(window_seconds=config.rate_limit_window_seconds, max_requests=config.rate_limit_max_requests)


def release_id_from_text(text: str | None, branch_prefix: str) -> str | None:
    """Find the release id in the branch line of a rendered announcement."""
    if not text:
        return None
    match = re.search(rf"`{re.escape(branch_prefix)}([^`]+)`", text)
    return match.group(1) if match else None


class AnnouncementWorkflow:
    """Ties the commit source, the announcement pipeline and the publish sink together.

    The workflow is transport agnostic: handlers take and return plain
    payload dictionaries, so any HTTP layer can sit in front of them.
    """

    def __init__(
        self,
        config: AnnouncementConfig,
        source: CommitSourceBase,
        publisher: PublisherBase | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        """Initialize the workflow.

        Args:
            config: Reconciled announcement configuration
            source: Commit source used to compare release branches
            publisher: Messaging client; required for anything that posts
            rate_limiter: Limiter applied to interactions, keyed by user id
        """
        self.config = config
        self.source = source
        self.publisher = publisher
        self.rate_limiter = rate_limiter

    def _require_publisher(self) -> PublisherBase:
        if self.publisher is None:
            raise RuntimeError("A publisher is required to send announcements")
        return self.publisher

    async def collect_changes(self, release_id: str, keep_unreferenced: bool | None = None) -> PreparedRelease:
        """Compare a release branch with its predecessor and map the commits to changes.

        Raises:
            InvalidReleaseFormatError: If the release id cannot be parsed.
            ReleaseUnderflowError: If the release has no predecessor.
            SourceNotFoundError: If either release branch is missing.
        """
        previous_release_id = previous_release(release_id)
        base = release_branch(previous_release_id, self.config.release_branch_prefix)
        head = release_branch(release_id, self.config.release_branch_prefix)
        logger.info("Collecting release changes", release_id=release_id, base=base, head=head)

        commits = await self.source.compare_commits(base, head)
        changes, stats = map_commits_with_stats(
            commits,
            ticket_project_key=self.config.ticket_project_key,
            ticket_url_base=self.config.ticket_url_base,
            issue_url_base=self.config.issue_url_base,
            keep_unreferenced=self.config.keep_unreferenced if keep_unreferenced is None else keep_unreferenced,
        )
        return PreparedRelease(release_id=release_id, previous_release_id=previous_release_id, changes=changes, stats=stats)

    def render(self, prepared: PreparedRelease, custom_template: str | None = None) -> str:
        """Render the announcement text of prepared changes."""
        return render_announcement(
            prepared.changes,
            prepared.release_id,
            custom_template=custom_template,
            branch_prefix=self.config.release_branch_prefix,
        )

    async def handle_slash_command(self, command: SlashCommand) -> dict[str, Any]:
        """Answer a `/release` command with an interactive preview or an error message."""
        release_id = command.release_id
        if not release_id:
            return {"response_type": "ephemeral", "text": MISSING_RELEASE_TEXT}

        try:
            prepared = await self.collect_changes(release_id)
        except Exception as exc:
            logger.exception("Failed to prepare release announcement", release_id=release_id)
            return {"response_type": "ephemeral", "text": describe_error(exc, release_id, self.config.github.repo)}

        pending = PendingAnnouncement(
            release_id=release_id,
            destination=Destination(channel_id=command.channel_id, channel_name=command.channel_name),
            changes=prepared.changes,
        )
        token = encode_selection_token(pending, min(self.config.max_token_bytes, SLACK_MAX_BUTTON_VALUE_LENGTH))
        logger.info("Built announcement preview", release_id=release_id, change_count=len(prepared.changes))
        return preview_response(self.render(prepared), prepared.changes, token)

    async def handle_interaction(self, payload: dict[str, Any] | str) -> dict[str, Any] | None:
        """Handle a click on a preview and reply through the interaction's response URL.

        Checkbox toggles need no reply and return None.
        """
        interaction = parse_interaction(payload)

        if self.rate_limiter is not None:
            status = self.rate_limiter.check(interaction.user_id or interaction.channel_id)
            if not status.allowed:
                retry_after = status.retry_after(self.rate_limiter.now())
                return {"response_type": "ephemeral", "text": f"⏳ Too many requests. Please try again in {retry_after} seconds."}

        if interaction.action_id == SEND_ANNOUNCEMENT_ACTION_ID:
            response = await self.send_selected(interaction)
        elif interaction.action_id == CANCEL_ANNOUNCEMENT_ACTION_ID:
            response = self.cancel(interaction)
        else:
            logger.debug("Acknowledged interaction without reply", action_id=interaction.action_id)
            return None

        if interaction.response_url and self.publisher is not None:
            await self.publisher.respond(interaction.response_url, response)
        return response

    async def send_selected(self, interaction: Interaction) -> dict[str, Any]:
        """Publish the changes the user kept selected and describe where they went."""
        decoded = decode_selection_token(interaction.token)
        match decoded:
            case FullSelectionToken(changes=changes):
                total = len(changes)
            case SimplifiedSelectionToken(change_count=change_count):
                total = change_count
            case _:
                total = len(parse_change_lines(interaction.rendered_text))

        release_id = decoded.release_id if decoded else release_id_from_text(interaction.rendered_text, self.config.release_branch_prefix)
        if not release_id:
            return replace_original_response("❌ Failed to send announcement: release number not found in the preview.")

        selected = reconcile_selection(interaction.token, interaction.checked_indices, interaction.rendered_text)
        message = render_announcement(
            selected,
            release_id,
            branch_prefix=self.config.release_branch_prefix,
            empty_text=NO_CHANGES_SELECTED_TEXT,
        )
        destination = decoded.destination if decoded else Destination(channel_id=interaction.channel_id, channel_name=interaction.channel_name)

        try:
            sent_to = await self._deliver(destination, interaction.user_id, message)
        except (SlackAPIError, PublishError, httpx.HTTPError) as exc:
            logger.error("Failed to send announcement", release_id=release_id, channel_id=destination.channel_id, error=str(exc))
            return replace_original_response(f"❌ Failed to send announcement: {exc}")

        logger.info("Sent release announcement", release_id=release_id, sent_to=sent_to, included=len(selected), total=total)
        return replace_original_response(
            f"✅ Release announcement for `{release_id}` has been sent to {sent_to}.\n\n*Included:* {len(selected)} of {total} changes"
        )

    def cancel(self, interaction: Interaction) -> dict[str, Any]:
        """Replace the preview with a cancellation notice."""
        decoded = decode_selection_token(interaction.token)
        release_id = decoded.release_id if decoded else release_id_from_text(interaction.rendered_text, self.config.release_branch_prefix)
        logger.info("Cancelled release announcement", release_id=release_id, user_id=interaction.user_id)
        return replace_original_response(f"❌ Release announcement for `{release_id or 'unknown'}` was cancelled.")

    async def _deliver(self, destination: Destination, user_id: str, message: str) -> str:
        publisher = self._require_publisher()
        if is_direct_message(destination.channel_id, destination.channel_name):
            await self._publish_all(user_id, message)
            return "your DMs"

        try:
            await publisher.get_channel_info(destination.channel_id)
        except SlackAPIError as exc:
            logger.warning("No access to channel, falling back to ephemeral message", channel_id=destination.channel_id, error=str(exc))
            for chunk in chunk_text(EPHEMERAL_FALLBACK_WARNING + message, self.config.max_message_length):
                await publisher.post_ephemeral(destination.channel_id, user_id, chunk)
            return f"<#{destination.channel_id}> (as ephemeral message - bot needs to be added to channel)"

        await self._publish_all(destination.channel_id, message)
        return f"<#{destination.channel_id}>"

    async def _publish_all(self, channel_id: str, message: str) -> int:
        publisher = self._require_publisher()
        chunks = chunk_text(message, self.config.max_message_length)
        for published, chunk in enumerate(chunks):
            if not await publisher.publish(channel_id, chunk):
                raise PublishError(channel_id, published, len(chunks))
        return len(chunks)

    async def announce(
        self,
        release_id: str,
        channel_id: str | None = None,
        channel_name: str | None = None,
        custom_template: str | None = None,
        keep_unreferenced: bool | None = None,
    ) -> AnnouncementResult:
        """Collect, render and publish an announcement in one step.

        Raises:
            ChannelNotFoundError: If channel_name does not resolve to a channel.
            PublishError: If the publisher rejects a message.
        """
        publisher = self._require_publisher()
        if not channel_id:
            if not channel_name:
                raise ValueError("Either channel_id or channel_name is required")
            channel = await publisher.find_channel_by_name(channel_name)
            if not channel:
                raise ChannelNotFoundError(channel_name)
            channel_id = channel["id"]
            logger.info("Resolved channel by name", channel_name=channel_name, channel_id=channel_id)

        prepared = await self.collect_changes(release_id, keep_unreferenced=keep_unreferenced)
        message = self.render(prepared, custom_template)
        message_count = await self._publish_all(channel_id, message)
        logger.info("Announced release", release_id=release_id, channel_id=channel_id, message_count=message_count)
        return AnnouncementResult(
            release_id=release_id,
            previous_release_id=prepared.previous_release_id,
            channel_id=channel_id,
            message=message,
            message_count=message_count,
            stats=prepared.stats,
        )

    async def run_diagnostics(self) -> dict[str, dict[str, Any]]:
        """Check repository access and the ticket configuration."""
        results: dict[str, dict[str, Any]] = {}
        try:
            repository = await self.source.get_repository()
        except Exception as exc:
            logger.exception("GitHub diagnostics failed", repo=self.config.github.repo)
            results["github"] = {"success": False, "error": str(exc)}
        else:
            results["github"] = {
                "success": True,
                "repository": repository.full_name,
                "repository_url": repository.html_url,
            }

        ticket_key = self.config.ticket_project_key
        results["jira"] = {
            "success": bool(ticket_key and self.config.ticket_url_base),
            "jira_server": self.config.ticket_url_base,
            "project_key": ticket_key,
            "project_url": f"{self.config.ticket_url_base.rstrip('/')}/projects/{ticket_key}",
            "extraction_regex": rf"\b{ticket_key}-\d+\b",
        }
        return results
