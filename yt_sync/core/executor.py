"""
Executes the Download entries of a plan against the fetcher.
"""

import asyncio
import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path

from rich.markup import escape

from yt_sync.cli.progress_manager import ProgressManager
from yt_sync.exceptions import FetchFailed, IntegrityError
from yt_sync.media.fetcher import Fetcher
from yt_sync.media.integrity import FileIntegrityChecker
from yt_sync.models.config import SyncOptions, SyncTarget
from yt_sync.models.plan import Action, LocalArtifact, PlanEntry, RemoteItem
from yt_sync.models.results import (
    FetchFatal,
    FetchResult,
    FetchRetryable,
    FetchSuccess,
    ItemOutcome,
)
from yt_sync.storage.scanner import remove_artifact, temp_dir_for
from yt_sync.utils.path import artifact_filename
from yt_sync.utils.structured_logger import SyncEventLogger

log = logging.getLogger(__name__)

CANCELLED = "cancelled"


class DownloadExecutor:
    """
    Fetches, validates and atomically places the items a plan asks for.

    Entries run in plan order under a bounded semaphore. Each entry is retried
    with exponential backoff up to ``options.max_attempts`` times; a failure
    is recorded in its ItemOutcome and never affects the other entries.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        options: SyncOptions,
        progress_manager: ProgressManager | None = None,
        cancel_event: asyncio.Event | None = None,
        events: SyncEventLogger | None = None,
        integrity_checker: type[FileIntegrityChecker] = FileIntegrityChecker,
    ):
        self.fetcher = fetcher
        self.options = options
        self.progress_manager = progress_manager
        self.cancel_event = cancel_event or asyncio.Event()
        self.events = events
        self.integrity_checker = integrity_checker

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    async def execute(
        self, entries: Sequence[PlanEntry], target: SyncTarget
    ) -> list[ItemOutcome]:
        """
        Runs every Download entry and returns one outcome per entry, in plan order.

        Returns only once every entry has resolved, so callers can treat the
        result as a barrier.
        """
        downloads = [e for e in entries if e.action == Action.DOWNLOAD]
        if not downloads:
            return []

        temp_root = temp_dir_for(target.location)
        # Leftovers of an interrupted run are never reused
        shutil.rmtree(temp_root, ignore_errors=True)
        temp_root.mkdir(parents=True, exist_ok=True)

        semaphore = asyncio.Semaphore(self.options.max_downloads)
        try:
            outcomes = await asyncio.gather(
                *(self._run_entry(entry, target, temp_root, semaphore) for entry in downloads)
            )
        finally:
            shutil.rmtree(temp_root, ignore_errors=True)
        return list(outcomes)

    async def _run_entry(
        self,
        entry: PlanEntry,
        target: SyncTarget,
        temp_root: Path,
        semaphore: asyncio.Semaphore,
    ) -> ItemOutcome:
        async with semaphore:
            if self.cancelled:
                return ItemOutcome(entry=entry, error=CANCELLED)
            outcome = await self._fetch_with_retry(entry, target, temp_root)

        title = escape(entry.remote.title if entry.remote else entry.item_id)
        if outcome.succeeded:
            log.info(f"  [green]✓ Downloaded:[/] {title}")
            if self.events:
                self.events.item_downloaded(
                    target.playlist_id, entry.item_id, str(outcome.artifact.path), outcome.attempts
                )
        else:
            log.error(f"  [red]✗ Failed:[/] {title} ({escape(outcome.error or '')})")
            if self.events:
                self.events.item_failed(
                    target.playlist_id, entry.item_id, outcome.error or "", outcome.attempts
                )
        return outcome

    async def _fetch_with_retry(
        self, entry: PlanEntry, target: SyncTarget, temp_root: Path
    ) -> ItemOutcome:
        item = entry.remote
        outcome = ItemOutcome(entry=entry)
        if item is None:
            outcome.error = "no remote item to download"
            return outcome

        task_id = None
        if self.progress_manager:
            task_id = self.progress_manager.add_item_task(item.title)

        item_temp = temp_root / item.id
        try:
            for attempt in range(1, self.options.max_attempts + 1):
                if attempt > 1 and self.cancelled:
                    outcome.error = CANCELLED
                    break
                outcome.attempts = attempt
                result = await self._attempt(entry, item, target, item_temp)

                if isinstance(result, FetchSuccess):
                    outcome.artifact = result.artifact
                    outcome.error = None
                    break

                outcome.error = result.error
                if isinstance(result, FetchFatal):
                    log.debug(f"Not retrying '{item.id}': {result.error}")
                    break

                log.debug(
                    f"Fetch attempt {attempt}/{self.options.max_attempts} for "
                    f"'{item.id}' failed: {result.error}."
                )
                if attempt < self.options.max_attempts:
                    await self._backoff(self.options.backoff_base * (2 ** (attempt - 1)))
        finally:
            shutil.rmtree(item_temp, ignore_errors=True)
            if self.progress_manager:
                self.progress_manager.finish_item_task(task_id, success=outcome.succeeded)

        return outcome

    async def _attempt(
        self, entry: PlanEntry, item: RemoteItem, target: SyncTarget, item_temp: Path
    ) -> FetchResult:
        """One fetch-validate-place cycle. Temporary files are discarded on any failure."""
        shutil.rmtree(item_temp, ignore_errors=True)
        try:
            result = await self.fetcher.fetch(item, target.format, item_temp)
        except asyncio.CancelledError:
            raise
        except FetchFailed as e:
            return FetchRetryable(str(e)) if e.retryable else FetchFatal(str(e))
        except Exception as e:
            log.debug(f"Fetcher raised for '{item.id}'", exc_info=True)
            return FetchRetryable(f"{type(e).__name__}: {e}")

        if not isinstance(result, FetchSuccess):
            return result

        try:
            artifact = self._place(entry, item, result.artifact, target)
        except IntegrityError as e:
            return FetchRetryable(str(e))
        except OSError as e:
            return FetchRetryable(f"Could not place file: {e}")

        # A format correction leaves the previous artifact behind; failing to
        # remove it is an item failure
        previous = entry.local
        if previous is not None and previous.path != artifact.path:
            try:
                remove_artifact(previous)
            except OSError as e:
                return FetchFatal(
                    f"Downloaded '{artifact.path.name}' but could not remove "
                    f"superseded file '{previous.path}': {e}"
                )
            log.debug(
                f"Replaced {escape(previous.path.name)} with {escape(artifact.path.name)}"
            )
        return FetchSuccess(artifact)

    def _place(
        self,
        entry: PlanEntry,
        item: RemoteItem,
        fetched: LocalArtifact,
        target: SyncTarget,
    ) -> LocalArtifact:
        """Validates the fetched file and renames it to its final name in one step."""
        if not self.integrity_checker.check(fetched.path, target.format):
            raise IntegrityError(f"Fetched file '{fetched.path.name}' failed integrity check.")

        final_path = target.location / artifact_filename(item, target.format)
        os.replace(fetched.path, final_path)
        return LocalArtifact(id=entry.item_id, path=final_path, format=target.format)

    async def _backoff(self, delay: float) -> None:
        """Sleeps for *delay* seconds, waking early if the run is cancelled."""
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self.cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
