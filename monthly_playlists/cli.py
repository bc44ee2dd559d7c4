"""
Command-line interface for monthly-playlists.

Commands:
    monthly-playlists                     Same as `sync`
    monthly-playlists sync                Sort Liked Songs into monthly playlists
    monthly-playlists sync --dry-run      Show what would be created/added
    monthly-playlists login               Authorize (again) and store the credential
    monthly-playlists status              Show the stored credential
    monthly-playlists prune               Delete the monthly playlists

Global options:
    --config <config.yaml>                Non-secret settings (optional)
    --log-dir <dir>                       Also write log files to this directory
    --verbose                             Debug output on the console

Configuration:
    SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET and SPOTIFY_REDIRECT_URI must be
    set in the environment or in a .env file in the current directory.

Exit codes:
    0    Success
    1    Configuration error
    2    Credential file error
    3    Authorization error
    4    Spotify API error
    130  Interrupted
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import click

from monthly_playlists import __version__
from monthly_playlists.auth.credentials import CredentialStore
from monthly_playlists.auth.session import AuthSession
from monthly_playlists.core.config import Config, load_config
from monthly_playlists.core.context import SyncContext
from monthly_playlists.core.exceptions import (
    AuthError,
    ConfigError,
    CredentialStoreError,
    MonthlyPlaylistsError,
    RemoteError,
)
from monthly_playlists.core.logger import get_logger, setup_logging, shutdown_logging
from monthly_playlists.spotify.client import DEFAULT_PRUNE_PATTERN, RemoteLibraryClient
from monthly_playlists.sync.monthly import MonthBucketSync, SyncReport

logger = get_logger(__name__)


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Path to config.yaml (default: ./config.yaml if present)"
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Write log_full/log_errors files to this directory"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    log_dir: Path | None,
    verbose: bool,
    version: bool
) -> None:
    """
    monthly-playlists: sort your Spotify Liked Songs into monthly playlists.

    Every saved track is added to a playlist named after the month it was
    saved in, e.g. "January '24". Missing playlists are created and tracks
    already present are never added twice.

    \b
    USAGE:
        monthly-playlists                 # Sync (authorizes on first run)
        monthly-playlists sync --dry-run  # Preview without changes
        monthly-playlists prune           # Delete all monthly playlists
    """
    if version:
        click.echo(f"monthly-playlists {__version__}")
        ctx.exit(0)

    ctx.obj = {
        "config_path": config_path,
        "log_dir": log_dir,
        "verbose": verbose,
    }

    if ctx.invoked_subcommand is None:
        ctx.invoke(sync)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would change without changing anything")
@click.option("--private", is_flag=True, help="Create new playlists as private")
@click.option("--no-progress", is_flag=True, help="Hide the progress bar")
@click.pass_obj
def sync(options: dict[str, Any], dry_run: bool, private: bool, no_progress: bool) -> None:
    """Add saved tracks to their month's playlist."""

    def action(config: Config) -> None:
        context = SyncContext.open(config, _read_code)
        engine = MonthBucketSync(
            context.client,
            public=config.sync.public and not private,
            collaborative=config.sync.collaborative,
            description=config.sync.description,
            dry_run=dry_run,
            progress=not no_progress
        )
        _print_report(engine.run())

    _run(options, action)


@cli.command()
@click.pass_obj
def login(options: dict[str, Any]) -> None:
    """Authorize with Spotify and store a new credential."""

    def action(config: Config) -> None:
        store = CredentialStore(config.storage.credential_path)
        session = AuthSession.from_config(config, store)

        code = session.parse_response_code(_read_code(session.authorization_url()))
        credential = session.exchange(code)
        saved = session.persist(credential)

        client = RemoteLibraryClient(session.authorized_transport(credential))
        user = client.current_user()

        click.echo(f"Logged in as {user.display_name or user.id}")
        if saved:
            click.echo(f"Credential saved to {store.path}")
        else:
            click.echo(
                f"Warning: could not save the credential to {store.path}, "
                "the next run will ask to log in again",
                err=True
            )

    _run(options, action)


@cli.command()
@click.pass_obj
def status(options: dict[str, Any]) -> None:
    """Show where the credential is stored and when it expires."""

    def action(config: Config) -> None:
        store = CredentialStore(config.storage.credential_path)
        click.echo(f"Credential file: {store.path}")

        if not store.exists():
            click.echo("No credential stored. Run `monthly-playlists login`.")
            return

        credential = store.load()

        expires = datetime.fromtimestamp(credential.expires_at).astimezone()
        if credential.is_stale(datetime.now().timestamp(), margin=0):
            state = "expired, refreshed on next run"
        else:
            state = "valid"
        click.echo(f"Access token expires: {expires:%Y-%m-%d %H:%M:%S %Z} ({state})")
        if credential.scope:
            click.echo(f"Scopes: {credential.scope}")

    _run(options, action)


@cli.command()
@click.option(
    "--pattern",
    default=DEFAULT_PRUNE_PATTERN,
    show_default=True,
    help="Regular expression matched against playlist names"
)
@click.option("--dry-run", is_flag=True, help="Only list the matching playlists")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def prune(options: dict[str, Any], pattern: str, dry_run: bool, yes: bool) -> None:
    """Delete playlists whose name matches PATTERN (monthly playlists by default)."""

    def action(config: Config) -> None:
        client = SyncContext.open(config, _read_code).client

        if yes and not dry_run:
            deleted = client.delete_playlists_matching(pattern)
            click.echo(f"Deleted {len(deleted)} playlists")
            return

        matches = client.delete_playlists_matching(pattern, dry_run=True)
        if not matches:
            click.echo("No matching playlists")
            return

        for playlist in matches:
            click.echo(f"  {playlist.name}")
        if dry_run:
            click.echo(f"{len(matches)} playlists would be deleted")
            return

        if not click.confirm(f"Delete these {len(matches)} playlists?"):
            click.echo("Aborted")
            return

        for playlist in matches:
            client.delete_playlist(playlist.id)
        click.echo(f"Deleted {len(matches)} playlists")

    _run(options, action)


# =============================================================================
# Helpers
# =============================================================================

def _read_code(url: str) -> str:
    """Show the authorization URL and read back the redirect the user pastes."""
    click.echo("Open this URL in your browser and allow access:")
    click.echo(f"\n    {url}\n")
    return click.prompt("Paste the URL you were redirected to (or just the code)")


def _print_report(report: SyncReport) -> None:
    if not report.added:
        click.echo("No saved tracks")
        return

    for label, count in report.added.items():
        marker = " (new playlist)" if label in report.created else ""
        click.echo(f"{label}: +{count}{marker}")

    verb = "Would add" if report.dry_run else "Added"
    click.echo(f"{verb} {report.total_added} tracks in total")


def _run(options: dict[str, Any], action: Callable[[Config], None]) -> None:
    """
    Load the configuration, set up logging and run a command body.

    Maps each error kind to its exit code and always closes the log files.
    """
    try:
        config = load_config(options["config_path"])

        setup_logging(
            level="DEBUG" if options["verbose"] else config.logging.level,
            log_dir=options["log_dir"] or config.logging.directory
        )
        action(config)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except CredentialStoreError as e:
        click.echo(f"Credential error: {e.message}", err=True)
        click.echo("Run `monthly-playlists login` to authorize again", err=True)
        logger.error(f"Credential error: {e.message}", exc_info=True)
        sys.exit(2)

    except AuthError as e:
        click.echo(f"Authorization error: {e.message}", err=True)
        logger.error(f"Authorization error: {e.message}", exc_info=True)
        sys.exit(3)

    except RemoteError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_rate_limit:
            click.echo("Spotify rate limit reached, wait a few minutes and run again", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(4)

    except MonthlyPlaylistsError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    finally:
        shutdown_logging()


def main() -> None:
    """Entry point for the `monthly-playlists` console script."""
    cli()


if __name__ == "__main__":
    main()
