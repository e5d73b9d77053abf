"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import signal
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from yt_sync import __version__
from yt_sync.api.playlist import PlaylistClient
from yt_sync.api.rate_limiter import AdaptiveRateLimiter
from yt_sync.core.orchestrator import SyncOrchestrator
from yt_sync.exceptions import YtSyncError
from yt_sync.media.fetcher import YtDlpFetcher
from yt_sync.models.config import MediaFormat, SyncTarget
from yt_sync.models.results import RunReport
from yt_sync.storage.config_manager import ConfigManager, LoadedConfig
from yt_sync.utils.config_validator import (
    export_schema,
    validate_config_schema,
    validate_target_conflicts,
)
from yt_sync.utils.structured_logger import create_structured_logger

from .formatters import print_plan_table, print_summary_panel, print_validation_table
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("yt_sync")
# Raised to DEBUG by -vv
logging.getLogger("yt_dlp").setLevel(logging.WARNING)

app = typer.Typer(
    name="yt-sync",
    help=(
        "Keep local directories in sync with YouTube playlists. Use 'yt-sync"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "yt-sync"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.toml"


def _set_verbosity(verbose: int) -> None:
    if verbose >= 1:
        logging.getLogger("yt_sync").setLevel("DEBUG")
    if verbose >= 2:
        logging.getLogger("yt_dlp").setLevel("DEBUG")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for debug, -vv to include yt-dlp).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
):
    """YouTube playlist sync"""
    if version:
        console.print(f"[bold]yt-sync[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    _set_verbosity(verbose)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    config: Path = typer.Option(  # noqa: B008
        CONFIG_FILE, "--config", "-c", help="Path of the configuration file."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Create a default configuration file with two example playlists."""
    config_manager = ConfigManager(config)
    if config.exists() and not force:
        if not typer.confirm("Configuration file already exists. Overwrite it?"):
            raise typer.Abort()
        force = True
    try:
        config_manager.save_default_config(force=force)
    except YtSyncError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"\n[bold green]✓ Configuration saved to '{config}'[/bold green]")
    console.print("Add your playlists to it, then run: [cyan]yt-sync sync[/cyan]")


def _load_targets(
    config: Path,
    cli_options: dict,
    playlist_id: str | None,
    location: Path | None,
    media_format: MediaFormat,
    save_playlist: bool | None,
) -> LoadedConfig:
    """Loads configured targets, or builds the single ad-hoc target given on the command line."""
    config_manager = ConfigManager(config)

    if playlist_id:
        file_options = {}
        if config.is_file():
            file_options = config_manager.read_document().get("options") or {}
        options = config_manager.build_options(file_options, cli_options)
        try:
            target = SyncTarget(
                id=playlist_id,
                location=location or Path.cwd(),
                format=media_format,
                save_playlist=bool(save_playlist),
            )
        except ValidationError as e:
            console.print(f"[red]✗ Invalid playlist target: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e
        return LoadedConfig(targets=[target], options=options)

    if not config.is_file():
        config_manager.save_default_config()
        console.print(
            f"[yellow]No configuration found. A default one was created at "
            f"'{config}'.[/yellow]\nEdit it and run [cyan]yt-sync sync[/cyan] again."
        )
        raise typer.Exit(code=1)

    return config_manager.load_config(cli_options)


async def _run_sync(
    loaded: LoadedConfig, json_log: Path | None, cookies: str | None
) -> tuple[RunReport, dict]:
    options = loaded.options
    base_logger, events = (None, None)
    if json_log:
        base_logger, events = create_structured_logger(json_log)

    rate_limiter = AdaptiveRateLimiter()
    playlist_client = PlaylistClient(rate_limiter=rate_limiter, cookie_file=cookies)
    fetcher = YtDlpFetcher(
        rate_limiter=rate_limiter, cookie_file=cookies, verbose=options.verbose
    )

    loop = asyncio.get_running_loop()
    try:
        async with ProgressManager(
            console=console, dry_run=options.dry_run
        ) as progress_manager:
            orchestrator = SyncOrchestrator(
                options, playlist_client, fetcher, progress_manager, events
            )
            try:
                loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
            except NotImplementedError:
                # Proactor event loops on Windows have no signal handlers
                log.debug("Graceful cancellation on Ctrl+C is not supported here.")

            if options.dry_run:
                console.print("[bold cyan]🔍 Starting dry run...[/bold cyan]")
            else:
                console.print("[bold cyan]🎵 Starting sync session...[/bold cyan]")

            try:
                report = await orchestrator.run(loaded.targets, loaded.errors)
            finally:
                try:
                    loop.remove_signal_handler(signal.SIGINT)
                except NotImplementedError:
                    pass
            progress_stats = progress_manager.get_statistics()
    finally:
        if base_logger:
            base_logger.close()

    return report, progress_stats


@app.command(name="sync")
def sync_command(
    config: Path = typer.Option(  # noqa: B008
        CONFIG_FILE, "--config", "-c", help="Path of the configuration file."
    ),
    # --- Ad-hoc target ---
    playlist_id: str | None = typer.Option(
        None,
        "--playlist-id",
        "-p",
        help="Sync this playlist instead of the configured ones.",
    ),
    location: Path | None = typer.Option(  # noqa: B008
        None,
        "--location",
        "-l",
        help="Directory for --playlist-id (default: current directory).",
    ),
    media_format: MediaFormat = typer.Option(  # noqa: B008
        MediaFormat.AUDIO,
        "--format",
        "-f",
        help="Format for --playlist-id: audio (Opus) or video (MKV).",
    ),
    save_playlist: bool | None = typer.Option(
        None,
        "--save-playlist/--no-save-playlist",
        help="Write an .m3u manifest next to the directory for --playlist-id.",
    ),
    # --- Behaviour ---
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be downloaded and removed without touching any file.",
    ),
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Concurrent downloads per playlist (overrides the config).",
    ),
    retries: int | None = typer.Option(
        None,
        "-r",
        "--retries",
        help="Attempts per item before it is reported failed (overrides the config).",
    ),
    no_prune: bool = typer.Option(
        False,
        "--no-prune",
        help="Keep local files that are no longer in the playlist.",
    ),
    keep_mismatched: bool = typer.Option(
        False,
        "--keep-mismatched",
        help="Keep files that exist in the other format instead of re-downloading them.",
    ),
    cookies: str | None = typer.Option(
        None,
        "--cookies",
        help="Netscape cookie file passed to yt-dlp (for age-restricted items).",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for debug, -vv to include yt-dlp).",
    ),
    json_log: Path | None = typer.Option(  # noqa: B008
        None,
        "--json-log",
        help="Directory to write a JSON-lines event log into.",
    ),
):
    """Sync the configured playlists (or one given with --playlist-id)."""
    _set_verbosity(verbose)

    cli_options = {
        "max_downloads": workers,
        "max_attempts": retries,
        "prune": False if no_prune else None,
        "redownload_on_format_mismatch": False if keep_mismatched else None,
        "dry_run": dry_run,
        "verbose": verbose >= 2 or None,
    }

    try:
        loaded = _load_targets(
            config, cli_options, playlist_id, location, media_format, save_playlist
        )
    except YtSyncError as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1) from e

    report, progress_stats = asyncio.run(_run_sync(loaded, json_log, cookies))

    if report.dry_run:
        for result in report.results:
            print_plan_table(result)
    print_summary_panel(report, progress_stats)
    raise typer.Exit(code=report.exit_code)


@app.command()
def validate(
    config: Path = typer.Option(  # noqa: B008
        CONFIG_FILE, "--config", "-c", help="Path of the configuration file."
    ),
    schema_out: Path | None = typer.Option(  # noqa: B008
        None,
        "--export-schema",
        help="Also write the configuration JSON schema to this file.",
    ),
):
    """Validate the configuration file and list its playlists."""
    if schema_out:
        export_schema(schema_out)
        console.print(f"[green]✓ Schema written to '{schema_out}'[/green]")

    config_manager = ConfigManager(config)
    try:
        document = config_manager.read_document()
        _, schema_errors = validate_config_schema(document)
        _, conflict_errors = validate_target_conflicts(document.get("items") or [])
        loaded = config_manager.load_config()
    except YtSyncError as e:
        console.print(f"[red]✗ Configuration is invalid: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    for message in schema_errors + conflict_errors:
        console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    print_validation_table(config, loaded.targets, loaded.options, loaded.errors)
    if loaded.errors or schema_errors or conflict_errors:
        raise typer.Exit(code=1)

