"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
import json
import logging

import structlog
import typer
from dotenv import load_dotenv
from typer import Argument, Option
from typing_extensions import Annotated

from release_announcer.announcements.exceptions import AnnouncementError
from release_announcer.announcements.releases import previous_release
from release_announcer.announcements.workflow import AnnouncementWorkflow, describe_error
from release_announcer.configuration.env import get_settings
from release_announcer.configuration.exceptions import ConfigurationError
from release_announcer.configuration.models import AnnouncementConfig
from release_announcer.configuration.reconcile import reconcile_announcement_configuration
from release_announcer.github.adapter import GitHubKitAdapter
from release_announcer.slack.client import SlackClient
from release_announcer.slack.exceptions import SlackAPIError

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False, help="Announce release branch changes to Slack.")


def configure_logging(debug: bool) -> None:
    """Set the structlog level filter."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO))


@typer_app.callback()
def main_callback(
    ctx: typer.Context,
    repo: Annotated[str | None, Option(envvar="REPO", help="Repository name (owner/repo).")] = None,
    github_api_url: Annotated[str | None, Option(envvar="GITHUB_API_URL", help="GitHub API URL.")] = None,
    github_pat_token: Annotated[str | None, Option(envvar="GITHUB_PAT_TOKEN", help="GitHub Personal Access Token.")] = None,
    jira_server: Annotated[str | None, Option(envvar="JIRA_SERVER", help="Jira server address; https:// is added when missing.")] = None,
    jira_project: Annotated[str | None, Option(envvar="JIRA_PROJECT", help="Jira project key, e.g. ABC.")] = None,
    issue_url_base: Annotated[
        str | None, Option(envvar="ISSUE_URL_BASE", help="Base URL for #123 links. Defaults to the repository's GitHub URL.")
    ] = None,
    debug: Annotated[bool, Option(envvar="DEBUG", help="Enable debug mode.")] = False,
) -> None:
    """Store the shared connection options for the current context."""
    ctx.ensure_object(dict)
    ctx.obj["repo"] = repo
    ctx.obj["github_api_url"] = github_api_url
    ctx.obj["github_pat_token"] = github_pat_token
    ctx.obj["jira_server"] = jira_server
    ctx.obj["jira_project"] = jira_project
    ctx.obj["issue_url_base"] = issue_url_base
    ctx.obj["debug"] = debug
    configure_logging(debug)


def reconcile_from_context(ctx: typer.Context, keep_unreferenced: bool = False) -> AnnouncementConfig:
    """Merge the context's CLI options over the environment, exiting on invalid configuration."""
    try:
        return asyncio.run(
            reconcile_announcement_configuration(
                get_settings(),
                cli_repo=ctx.obj["repo"],
                cli_github_api_url=ctx.obj["github_api_url"],
                cli_github_pat_token=ctx.obj["github_pat_token"],
                cli_jira_server=ctx.obj["jira_server"],
                cli_jira_project=ctx.obj["jira_project"],
                cli_issue_url_base=ctx.obj["issue_url_base"],
                cli_keep_unreferenced=keep_unreferenced or None,
                cli_debug=ctx.obj["debug"] or None,
            )
        )
    except (ConfigurationError, ValueError) as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(1) from exc


async def create_commit_source(config: AnnouncementConfig) -> GitHubKitAdapter:
    """Create the GitHub commit source described by the configuration."""
    return await GitHubKitAdapter.create(config.github)


@typer_app.command(name="previous-release")
def previous_release_cli(
    release: Annotated[str, Argument(help="Release number, e.g. 67 or 2.1.0.")],
) -> None:
    """Print the release a release is compared against."""
    try:
        typer.echo(previous_release(release))
    except AnnouncementError as exc:
        typer.echo(describe_error(exc, release), err=True)
        raise typer.Exit(1) from exc


@typer_app.command(name="preview")
def preview_cli(
    ctx: typer.Context,
    release: Annotated[str, Argument(help="Release number, e.g. 67 or 2.1.0.")],
    template: Annotated[str | None, Option(help="Custom message using {{releaseNumber}} and {{changeCount}}.")] = None,
    keep_unreferenced: Annotated[bool, Option(envvar="KEEP_UNREFERENCED", help="Include commits without references.")] = False,
) -> None:
    """Print the announcement for a release without sending it."""
    config = reconcile_from_context(ctx, keep_unreferenced)

    async def run_preview() -> None:
        workflow = AnnouncementWorkflow(config, await create_commit_source(config))
        prepared = await workflow.collect_changes(release)
        typer.echo(workflow.render(prepared, template))
        typer.echo("")
        typer.echo(f"Compared against release {prepared.previous_release_id}")
        typer.echo(prepared.stats.model_dump_json(indent=2))

    try:
        asyncio.run(run_preview())
    except AnnouncementError as exc:
        typer.echo(describe_error(exc, release, config.github.repo), err=True)
        raise typer.Exit(1) from exc


@typer_app.command(name="announce")
def announce_cli(
    ctx: typer.Context,
    release: Annotated[str, Argument(help="Release number, e.g. 67 or 2.1.0.")],
    channel: Annotated[str | None, Option("--channel", help="Slack channel ID to post to.")] = None,
    channel_name: Annotated[str | None, Option("--channel-name", help="Slack channel name to post to, with or without '#'.")] = None,
    template: Annotated[str | None, Option(help="Custom message using {{releaseNumber}} and {{changeCount}}.")] = None,
    keep_unreferenced: Annotated[bool, Option(envvar="KEEP_UNREFERENCED", help="Include commits without references.")] = False,
) -> None:
    """Build the announcement for a release and post it to a Slack channel."""
    if not channel and not channel_name:
        typer.echo("Either --channel or --channel-name is required.", err=True)
        raise typer.Exit(1)
    config = reconcile_from_context(ctx, keep_unreferenced)
    if not config.slack_bot_token:
        typer.echo("Configuration error: the SLACK_BOT_TOKEN environment variable is required to send announcements.", err=True)
        raise typer.Exit(1)

    async def run_announce() -> None:
        async with SlackClient(config.slack_bot_token, config.slack_api_url) as slack:
            workflow = AnnouncementWorkflow(config, await create_commit_source(config), slack)
            result = await workflow.announce(release, channel_id=channel, channel_name=channel_name, custom_template=template)
        typer.echo(f"Sent {result.message_count} message(s) for release {result.release_id} to channel {result.channel_id}")
        typer.echo(result.stats.model_dump_json(indent=2))

    try:
        asyncio.run(run_announce())
    except AnnouncementError as exc:
        typer.echo(describe_error(exc, release, config.github.repo), err=True)
        raise typer.Exit(1) from exc
    except SlackAPIError as exc:
        typer.echo(f"❌ Failed to send announcement: {exc}", err=True)
        raise typer.Exit(1) from exc


@typer_app.command(name="check")
def check_cli(ctx: typer.Context) -> None:
    """Check GitHub repository access and the Jira configuration."""
    config = reconcile_from_context(ctx)

    async def run_check() -> dict[str, dict]:
        workflow = AnnouncementWorkflow(config, await create_commit_source(config))
        return await workflow.run_diagnostics()

    results = asyncio.run(run_check())
    typer.echo(json.dumps(results, indent=2))
    if not all(result["success"] for result in results.values()):
        raise typer.Exit(1)


if __name__ == "__main__":
    typer_app()
