"""
Manages a Rich Live display for concurrent sync targets.
Shows overall target progress, active downloads and running totals.
"""

import asyncio
from datetime import datetime

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text


class ProgressManager:
    """
    Live progress for a sync run: one overall bar across targets and one
    spinner per in-flight download.
    """

    def __init__(self, console: Console, dry_run: bool = False):
        self.console = console
        self.dry_run = dry_run

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )

        self.overall_progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            console=console,
        )

        self._live: Live | None = None
        self._overall_task_id: TaskID | None = None
        self._active_tasks: dict[TaskID, str] = {}
        self._stats = {
            "targets": 0,
            "targets_done": 0,
            "downloaded": 0,
            "failed": 0,
            "active_downloads": 0,
            "peak_concurrent": 0,
            "start_time": None,
        }

    def initialize_session(self, total_targets: int):
        self._stats["targets"] = total_targets
        self._stats["start_time"] = datetime.now()
        if not self.dry_run:
            self._overall_task_id = self.overall_progress.add_task(
                "Playlists", total=total_targets, start=True
            )

    def target_finished(self):
        self._stats["targets_done"] += 1
        if self._overall_task_id is not None:
            self.overall_progress.update(
                self._overall_task_id, completed=self._stats["targets_done"]
            )
        self._refresh()

    def add_item_task(self, description: str) -> TaskID | None:
        if self.dry_run:
            return None
        if len(description) > 60:
            description = description[:57] + "..."
        task_id = self.progress.add_task(description, total=None, start=True)
        self._active_tasks[task_id] = description
        self._stats["active_downloads"] = len(self._active_tasks)
        self._stats["peak_concurrent"] = max(
            self._stats["peak_concurrent"], self._stats["active_downloads"]
        )
        self._refresh()
        return task_id

    def finish_item_task(self, task_id: TaskID | None, success: bool = True):
        if task_id is None or self.dry_run:
            return
        try:
            self.progress.remove_task(task_id)
        except KeyError:
            pass
        self._active_tasks.pop(task_id, None)
        self._stats["active_downloads"] = len(self._active_tasks)
        if success:
            self._stats["downloaded"] += 1
        else:
            self._stats["failed"] += 1
        self._refresh()

    def get_statistics(self) -> dict:
        return self._stats.copy()

    def _generate_stats(self) -> Table:
        stats_table = Table.grid(padding=(0, 2))
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_column(style="bold cyan", justify="right")
        stats_table.add_column(style="white")
        stats_table.add_row(
            "Downloaded:",
            f"[green]{self._stats['downloaded']}[/green]",
            "Failed:",
            f"[red]{self._stats['failed']}[/red]",
        )
        stats_table.add_row(
            "Active:",
            f"[cyan]{self._stats['active_downloads']}[/cyan]",
            "Peak:",
            f"[magenta]{self._stats['peak_concurrent']}[/magenta]",
        )
        return stats_table

    def _render(self) -> Panel:
        parts = [self._generate_stats(), Text("")]
        if self._overall_task_id is not None:
            parts.append(self.overall_progress)
        if self._active_tasks:
            parts.append(self.progress)
        return Panel(Group(*parts), title="[bold]🎵 yt-sync[/bold]", border_style="cyan")

    def _refresh(self):
        if self._live and not self.dry_run:
            self._live.update(self._render())

    async def __aenter__(self):
        if self.dry_run:
            return self
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live and not self.dry_run:
            await asyncio.sleep(0.1)
            self._live.stop()
            self._live = None
