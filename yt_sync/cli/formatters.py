"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from yt_sync.models.config import SyncOptions, SyncTarget, get_format_info
from yt_sync.models.plan import Action, Plan
from yt_sync.models.results import RunReport, SyncResult, TargetState
from yt_sync.utils.formatting import format_duration


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Run `yt-sync init` to create a default configuration.",
            "• Run `yt-sync validate` to check the configuration file.",
            "• Make sure at least one [[items]] table is defined.",
        ],
        "ConfigError": [
            "• Check the target's `location` exists or can be created.",
            "• `format` must be either \"audio\" or \"video\".",
        ],
        "RemoteNotFound": [
            "• Check the playlist id is correct.",
            "• Private playlists cannot be listed; make the playlist unlisted or public.",
        ],
        "RemoteUnavailable": [
            "• Check your internet connection.",
            "• YouTube may be rate-limiting you. Try again later or reduce `--workers`.",
            "• Update yt-dlp: extractor breakage is usually fixed upstream quickly.",
        ],
        "DownloadError": [
            "• Update yt-dlp to the latest release.",
            "• Make sure ffmpeg is installed and on your PATH.",
        ],
        "ManifestWriteError": [
            "• Check the parent directory of the target location is writable.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -v for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_validation_table(
    config_path: Path,
    targets: list[SyncTarget],
    options: SyncOptions,
    errors: dict[str, str] | None = None,
):
    """Displays the configured targets and options."""
    console = Console()

    table = Table(box=box.ROUNDED, title=f"Targets ([dim]{escape(str(config_path))}[/dim])")
    table.add_column("Playlist", style="bold magenta", no_wrap=True)
    table.add_column("Location")
    table.add_column("Format")
    table.add_column("Manifest", justify="center")

    for target in targets:
        info = get_format_info(target.format)
        table.add_row(
            target.playlist_id,
            escape(str(target.location)),
            f"[{info['color']}]{info['name']}[/{info['color']}]",
            "✓" if target.save_playlist else "✗",
        )
    for key, message in (errors or {}).items():
        table.add_row(escape(key), f"[red]{escape(message)}[/red]", "[red]invalid[/red]", "")

    options_table = Table(show_header=False, box=None, padding=(0, 2))
    options_table.add_column(style="bold cyan")
    options_table.add_column()
    options_table.add_row("Max Attempts:", str(options.max_attempts))
    options_table.add_row("Concurrent Playlists:", str(options.max_targets))
    options_table.add_row("Concurrent Downloads:", str(options.max_downloads))
    options_table.add_row("Prune Orphans:", "✓ Enabled" if options.prune else "✗ Disabled")
    options_table.add_row(
        "Fix Format Mismatch:",
        "✓ Enabled" if options.redownload_on_format_mismatch else "✗ Disabled",
    )

    console.print(table)
    border = "yellow" if errors else "green"
    title = (
        "[bold yellow]⚠ Validated With Errors[/bold yellow]"
        if errors
        else "[bold green]✓ Validated Settings[/bold green]"
    )
    console.print(Panel(options_table, title=title, border_style=border))


def print_plan_table(result: SyncResult):
    """Displays the plan of a dry run for one target."""
    console = Console()
    plan: Plan | None = result.plan
    if plan is None:
        return

    styles = {
        Action.DOWNLOAD: "green",
        Action.KEEP: "dim",
        Action.REMOVE: "red",
        Action.NOOP: "yellow",
    }
    table = Table(box=box.SIMPLE, title=escape(result.target.label), title_style="bold")
    table.add_column("Action", no_wrap=True)
    table.add_column("Id", style="magenta", no_wrap=True)
    table.add_column("Title / File")
    table.add_column("Reason", style="dim")

    for entry in plan:
        style = styles[entry.action]
        if entry.remote is not None:
            name = entry.remote.title
        elif entry.local is not None:
            name = entry.local.path.name
        else:
            name = ""
        table.add_row(
            f"[{style}]{entry.action.value}[/{style}]",
            entry.item_id,
            escape(name),
            entry.reason,
        )
    console.print(table)


def _target_row(result: SyncResult) -> tuple[str, ...]:
    if result.state == TargetState.FAILED:
        status = f"[red]✗ failed ({result.failed_in.value if result.failed_in else '?'})[/red]"
    elif result.failed:
        status = "[yellow]⚠ partial[/yellow]"
    else:
        status = "[green]✓ done[/green]"
    return (
        escape(result.target.playlist_id),
        escape(str(result.target.location)),
        status,
        str(len(result.succeeded)),
        str(len(result.kept)),
        str(len(result.removed)),
        str(len(result.failed)),
    )


def print_summary_panel(report: RunReport, progress_stats: dict | None = None):
    """Displays the final summary of a sync run, one row per target."""
    console = Console()

    table = Table(box=box.ROUNDED, expand=False)
    table.add_column("Playlist", style="bold magenta", no_wrap=True)
    table.add_column("Location")
    table.add_column("Status")
    table.add_column("Downloaded", justify="right", style="green")
    table.add_column("Kept", justify="right")
    table.add_column("Removed", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")

    for result in report.results:
        table.add_row(*_target_row(result))
    for key in report.config_errors:
        table.add_row(escape(key), "", "[red]✗ invalid config[/red]", "", "", "", "")

    # Failure reasons, target errors first
    failures = Table(show_header=False, box=None, padding=(0, 2))
    failures.add_column(style="bold red", no_wrap=True)
    failures.add_column()
    for key, message in report.config_errors.items():
        failures.add_row(escape(key), escape(message))
    for result in report.results:
        if result.error:
            failures.add_row(escape(result.target.playlist_id), escape(result.error))
        for item_id, error in result.failed.items():
            failures.add_row(f"  {escape(item_id)}", escape(error))

    totals = Table(show_header=False, box=None, padding=(0, 2))
    totals.add_column(style="bold cyan", justify="right", width=20)
    totals.add_column(style="white", justify="left")
    totals.add_row("✓ Downloaded:", f"[bold green]{report.downloaded}[/bold green]")
    totals.add_row("○ Kept:", str(report.kept))
    totals.add_row("− Removed:", f"[yellow]{report.removed}[/yellow]")
    if report.failed_items:
        totals.add_row("✗ Failed Items:", f"[bold red]{report.failed_items}[/bold red]")
    if report.failed_targets:
        totals.add_row("✗ Failed Playlists:", f"[bold red]{report.failed_targets}[/bold red]")
    totals.add_row("Time Elapsed:", f"[blue]{format_duration(report.duration_s)}[/blue]")
    if progress_stats:
        totals.add_row(
            "Peak Concurrent:",
            f"[green]{progress_stats.get('peak_concurrent', 0)}[/green]",
        )

    content = Table.grid(padding=(1, 0))
    content.add_row(table)
    if failures.row_count:
        content.add_row(Text("Failures", style="bold red"))
        content.add_row(failures)
    content.add_row(totals)

    if report.dry_run:
        title = "🔍 [bold]Dry Run Summary[/bold]"
        border_color = "yellow"
    elif report.exit_code == 0:
        title = "🎵 [bold]Sync Complete![/bold]"
        border_color = "green"
    else:
        title = "⚠ [bold]Sync Finished With Errors[/bold]"
        border_color = "red"

    console.print()
    console.print(
        Panel(
            content,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
