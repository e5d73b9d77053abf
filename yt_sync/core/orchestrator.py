"""
Drives every configured target through listing, scanning, reconciling,
executing and manifest writing, and aggregates the results of the run.
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from pathlib import Path

from rich.markup import escape

from yt_sync.api.playlist import PlaylistClient
from yt_sync.cli.progress_manager import ProgressManager
from yt_sync.exceptions import SyncCancelled, YtSyncError
from yt_sync.media.fetcher import Fetcher
from yt_sync.media.integrity import FileIntegrityChecker
from yt_sync.models.config import SyncOptions, SyncTarget
from yt_sync.models.plan import Action, Plan
from yt_sync.models.results import ItemOutcome, RunReport, SyncResult, TargetState
from yt_sync.storage.manifest import write_manifest
from yt_sync.storage.scanner import DirectorySnapshot, remove_artifact, scan_directory
from yt_sync.utils.formatting import format_duration, pluralize
from yt_sync.utils.path import create_dir, ensure_writable_location
from yt_sync.utils.structured_logger import SyncEventLogger

from .executor import DownloadExecutor
from .reconciler import reconcile

log = logging.getLogger(__name__)


class SyncOrchestrator:
    """
    Runs sync targets concurrently, each through its own state machine.

    A target-fatal error moves only that target to FAILED; the others carry
    on. Per-item failures are recorded in the target's result and never end
    the target early.
    """

    def __init__(
        self,
        options: SyncOptions,
        playlist_client: PlaylistClient,
        fetcher: Fetcher,
        progress_manager: ProgressManager | None = None,
        events: SyncEventLogger | None = None,
        integrity_checker: type[FileIntegrityChecker] = FileIntegrityChecker,
    ):
        self.options = options
        self.playlist_client = playlist_client
        self.fetcher = fetcher
        self.progress_manager = progress_manager
        self.events = events
        self.integrity_checker = integrity_checker
        self._cancel_event = asyncio.Event()

    def cancel(self) -> None:
        """Stops new work; in-flight fetches finish or discard their temp files."""
        if not self._cancel_event.is_set():
            log.warning("[yellow]Cancelling sync, waiting for running downloads...[/yellow]")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    async def run(
        self,
        targets: Sequence[SyncTarget],
        config_errors: dict[str, str] | None = None,
    ) -> RunReport:
        """
        Syncs every target and returns the aggregated report.

        Targets that failed validation are passed in *config_errors* and are
        reported without being attempted.
        """
        start = time.monotonic()
        report = RunReport(
            config_errors=dict(config_errors or {}), dry_run=self.options.dry_run
        )

        if self.events:
            self.events.session_started(len(targets), dry_run=self.options.dry_run)
        if self.progress_manager:
            self.progress_manager.initialize_session(len(targets))

        semaphore = asyncio.Semaphore(self.options.max_targets)

        async def worker(target: SyncTarget) -> SyncResult:
            async with semaphore:
                result = await self.sync_target(target)
            if self.progress_manager:
                self.progress_manager.target_finished()
            return result

        report.results = list(await asyncio.gather(*(worker(t) for t in targets)))
        report.duration_s = time.monotonic() - start

        if self.events:
            self.events.session_completed(
                report.duration_s,
                downloaded=report.downloaded,
                kept=report.kept,
                removed=report.removed,
                failed=report.failed_items,
            )
        return report

    async def sync_target(self, target: SyncTarget) -> SyncResult:
        """Runs one target to DONE or FAILED. Never raises for target-level errors."""
        result = SyncResult(target=target)
        start = time.monotonic()
        log.info(f"[bold cyan]Syncing[/] {escape(target.label)} ({target.format.value})")
        if self.events:
            self.events.target_started(
                target.playlist_id, str(target.location), target.format.value
            )

        try:
            await self._run_target(target, result)
        except YtSyncError as e:
            self._fail(result, str(e))
        except OSError as e:
            self._fail(result, f"Filesystem error: {e}")
        except Exception as e:
            log.debug(f"Unexpected error while syncing {target.label}", exc_info=True)
            self._fail(result, f"Unexpected error: {type(e).__name__}: {e}")

        result.duration_s = time.monotonic() - start
        if result.state == TargetState.DONE:
            self._log_target_summary(result)
            if self.events:
                self.events.target_completed(
                    target.playlist_id, result.state.value, result.duration_s
                )
        return result

    async def _run_target(self, target: SyncTarget, result: SyncResult) -> None:
        result.state = TargetState.INIT
        self._check_cancelled()
        ensure_writable_location(target.location)

        result.state = TargetState.LISTING
        remote = await self.playlist_client.list_items(target.playlist_id)
        self._check_cancelled()

        result.state = TargetState.SCANNING
        snapshot = await asyncio.to_thread(self._snapshot, target)
        result.unmanaged = list(snapshot.unmanaged)
        for path in snapshot.unmanaged:
            log.debug(f"Ignoring unmanaged file: {escape(str(path))}")

        result.state = TargetState.RECONCILING
        plan = reconcile(remote, snapshot.artifacts, target.format, self.options)
        result.plan = plan
        if self.events:
            self.events.target_planned(
                target.playlist_id,
                {action.value: count for action, count in plan.counts().items()},
            )

        if self.options.dry_run:
            result.kept = [e.item_id for e in plan.keeps]
            result.state = TargetState.DONE
            return

        result.state = TargetState.EXECUTING
        self._check_cancelled()
        outcomes = await self._executor().execute(plan.entries, target)
        self._record_outcomes(result, plan, outcomes)
        self._check_cancelled()
        self._remove_orphans(target, result, plan)

        result.state = TargetState.MANIFEST_WRITING
        result.manifest_path = await write_manifest(
            target, self._manifest_paths(plan, outcomes)
        )

        result.state = TargetState.DONE

    def _snapshot(self, target: SyncTarget) -> DirectorySnapshot:
        if self.options.dry_run:
            if not target.location.exists():
                return DirectorySnapshot(location=target.location)
        else:
            create_dir(target.location)
        return scan_directory(target.location, self.options.case_insensitive_ids)

    def _executor(self) -> DownloadExecutor:
        return DownloadExecutor(
            self.fetcher,
            self.options,
            progress_manager=self.progress_manager,
            cancel_event=self._cancel_event,
            events=self.events,
            integrity_checker=self.integrity_checker,
        )

    @staticmethod
    def _record_outcomes(
        result: SyncResult, plan: Plan, outcomes: Sequence[ItemOutcome]
    ) -> None:
        result.kept = [e.item_id for e in plan.keeps]
        for outcome in outcomes:
            if outcome.succeeded:
                result.succeeded.append(outcome.entry.item_id)
            else:
                result.failed[outcome.entry.item_id] = outcome.error or "unknown error"

    def _remove_orphans(self, target: SyncTarget, result: SyncResult, plan: Plan) -> None:
        for entry in plan.removals:
            if entry.local is None:
                continue
            try:
                remove_artifact(entry.local)
            except OSError as e:
                log.error(f"  [red]✗ Could not remove:[/] {escape(entry.local.path.name)} ({e})")
                result.failed[entry.item_id] = f"Could not remove '{entry.local.path}': {e}"
                continue
            result.removed.append(entry.item_id)
            log.info(f"  [yellow]- Removed:[/] {escape(entry.local.path.name)}")
            if self.events:
                self.events.item_removed(
                    target.playlist_id, entry.item_id, str(entry.local.path)
                )

    @staticmethod
    def _manifest_paths(plan: Plan, outcomes: Sequence[ItemOutcome]) -> list[Path]:
        """Kept and freshly downloaded artifacts, in remote order."""
        downloaded = {o.entry.item_id: o.artifact.path for o in outcomes if o.succeeded}
        paths = []
        for entry in plan:
            if entry.action == Action.KEEP and entry.local is not None:
                paths.append(entry.local.path)
            elif entry.action == Action.DOWNLOAD and entry.item_id in downloaded:
                paths.append(downloaded[entry.item_id])
        return paths

    def _check_cancelled(self) -> None:
        if self.cancelled:
            raise SyncCancelled("Sync was cancelled.")

    def _fail(self, result: SyncResult, message: str) -> None:
        result.failed_in = result.state
        result.state = TargetState.FAILED
        result.error = message
        log.error(
            f"[red]✗ {escape(result.target.label)} failed while "
            f"{result.failed_in.value}:[/] {escape(message)}"
        )
        if self.events:
            self.events.target_failed(
                result.target.playlist_id, result.failed_in.value, message
            )

    def _log_target_summary(self, result: SyncResult) -> None:
        if self.options.dry_run and result.plan is not None:
            plan = result.plan
            log.info(
                f"[dim]Dry run for {escape(result.target.label)}:[/] "
                f"{pluralize(len(plan.downloads), 'download')}, "
                f"{pluralize(len(plan.keeps), 'keep')}, "
                f"{pluralize(len(plan.removals), 'removal')}"
            )
            return
        colour = "green" if result.ok else "yellow"
        log.info(
            f"[{colour}]✓ {escape(result.target.label)}[/] in "
            f"{format_duration(result.duration_s)}: "
            f"{len(result.succeeded)} downloaded, {len(result.kept)} kept, "
            f"{len(result.removed)} removed, {len(result.failed)} failed"
        )
