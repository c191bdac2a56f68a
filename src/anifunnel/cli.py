"""Command-line interface for anifunnel."""

import asyncio
import sys
from pathlib import Path

import click

from anifunnel import __version__
from anifunnel.anilist.client import AniListClient
from anifunnel.anilist.errors import AniListError
from anifunnel.config import load_config
from anifunnel.core.database import AnifunnelDatabase
from anifunnel.core.matcher import MINIMUM_CONFIDENCE
from anifunnel.core.resolver import OverrideResolver
from anifunnel.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    envvar="ANIFUNNEL_CONFIG",
    help="Path to configuration file (defaults to built-in defaults)",
)
@click.pass_context
def cli(ctx, config):
    """anifunnel - Plex scrobbling to AniList."""
    try:
        cfg = load_config(config)
        ctx.ensure_object(dict)
        ctx.obj["config"] = cfg

        setup_logging(cfg.logging)

    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--bind-address",
    envvar="ANIFUNNEL_ADDRESS",
    default=None,
    help="Address to bind the server to",
)
@click.option(
    "--port",
    envvar="ANIFUNNEL_PORT",
    type=int,
    default=None,
    help="Port to bind the server to",
)
@click.option(
    "--multi-season",
    envvar="ANIFUNNEL_MULTI_SEASON",
    is_flag=True,
    help="Match against all Plex library seasons, not only the first",
)
@click.option(
    "--plex-user",
    envvar="ANILIST_PLEX_USER",
    default=None,
    help="Only process updates from a specific Plex username",
)
@click.pass_context
def serve(ctx, bind_address, port, multi_season, plex_user):
    """Start the daemon.

    Point a Plex webhook at the root URL and open the management API to
    authenticate with AniList.
    """
    try:
        config = ctx.obj["config"].with_overrides(
            api__host=bind_address,
            api__port=port,
            scrobble__multi_season=multi_season or None,
            scrobble__plex_user=plex_user,
        )
    except ValueError as e:
        click.secho(f"✗ Invalid option: {e}", fg="red", err=True)
        sys.exit(1)

    click.echo("Starting anifunnel daemon...")
    click.echo(f"Listening on {config.api.host}:{config.api.port}")
    click.echo(f"Multi-season matching: {'enabled' if config.scrobble.multi_season else 'disabled'}")
    if config.scrobble.plex_user:
        click.echo(f"Plex user filter: {config.scrobble.plex_user}")
    click.echo("")
    click.echo("Endpoints:")
    click.echo(f"  - Plex webhook:   http://{config.api.host}:{config.api.port}/")
    click.echo(f"  - Management API: http://{config.api.host}:{config.api.port}/api/")
    click.echo(f"  - Health check:   http://{config.api.host}:{config.api.port}/health")
    click.echo("")
    click.echo("Press Ctrl+C to stop")
    click.echo("")

    from anifunnel.daemon import start_daemon

    try:
        start_daemon(config)
    except KeyboardInterrupt:
        click.echo("\n\nDaemon stopped")
        sys.exit(0)


@cli.command()
@click.argument("title")
@click.pass_context
def match(ctx, title):
    """Show which watch list entry a Plex show title resolves to.

    Uses the stored AniList token and overrides, without updating progress.
    """
    config = ctx.obj["config"]
    database = AnifunnelDatabase(config.database.path)

    user = database.get_active_user()
    if user is None:
        click.secho("✗ No valid AniList token stored, authenticate first", fg="red", err=True)
        sys.exit(1)

    async def _fetch():
        client = AniListClient(
            user.token,
            user.user_id,
            api_url=config.anilist.api_url,
            timeout=config.anilist.timeout_seconds,
        )
        try:
            return await client.get_watching_list()
        finally:
            await client.close()

    try:
        watch_list = asyncio.run(_fetch())
    except AniListError as e:
        click.secho(f"✗ Failed to fetch watching list: {e}", fg="red", err=True)
        sys.exit(1)

    query = title.lower()
    scored = sorted(
        ((entry.media.title.find_match(query), entry) for entry in watch_list.entries),
        key=lambda item: item[0],
        reverse=True,
    )
    for confidence, entry in scored[:5]:
        colour = "green" if confidence >= MINIMUM_CONFIDENCE else None
        click.secho(f"  {confidence:.3f}  [{entry.id}] {entry.title}", fg=colour)
    click.echo("")

    resolved = OverrideResolver(database.overrides).resolve(title, watch_list)
    if resolved is None:
        click.secho("⊘ No match", fg="yellow")
        sys.exit(0)

    source = "title override" if resolved.via_override else "title matching"
    click.secho(f"✓ {resolved.entry.title} (id {resolved.entry.id}) via {source}", fg="green")
    click.echo(f"  Progress:       {resolved.entry.progress}")
    click.echo(f"  Episode offset: {resolved.episode_offset}")


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information."""
    click.echo(f"anifunnel v{__version__}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
