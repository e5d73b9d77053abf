"""
Result types produced at the fetcher boundary, by the executor and by the orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .config import SyncTarget
from .plan import LocalArtifact, Plan, PlanEntry


@dataclass(frozen=True)
class FetchSuccess:
    """The fetcher produced a file in the temporary directory."""

    artifact: LocalArtifact


@dataclass(frozen=True)
class FetchRetryable:
    """A transient failure; another attempt may succeed."""

    error: str


@dataclass(frozen=True)
class FetchFatal:
    """A permanent failure for this run (private, removed, geo-blocked...)."""

    error: str


FetchResult = FetchSuccess | FetchRetryable | FetchFatal


@dataclass
class ItemOutcome:
    """The resolved result of executing one Download plan entry."""

    entry: PlanEntry
    artifact: LocalArtifact | None = None
    error: str | None = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.artifact is not None


class TargetState(str, Enum):
    INIT = "init"
    LISTING = "listing"
    SCANNING = "scanning"
    RECONCILING = "reconciling"
    EXECUTING = "executing"
    MANIFEST_WRITING = "manifest_writing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Final output for one target."""

    target: SyncTarget
    state: TargetState = TargetState.INIT
    succeeded: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    removed: list[str] = field(default_factory=list)
    unmanaged: list[Path] = field(default_factory=list)
    error: str | None = None
    failed_in: TargetState | None = None
    manifest_path: Path | None = None
    plan: Plan | None = None
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state == TargetState.DONE and not self.failed


@dataclass
class RunReport:
    """Aggregated results of one run over all configured targets."""

    results: list[SyncResult] = field(default_factory=list)
    config_errors: dict[str, str] = field(default_factory=dict)
    dry_run: bool = False
    duration_s: float = 0.0

    @property
    def downloaded(self) -> int:
        return sum(len(r.succeeded) for r in self.results)

    @property
    def kept(self) -> int:
        return sum(len(r.kept) for r in self.results)

    @property
    def removed(self) -> int:
        return sum(len(r.removed) for r in self.results)

    @property
    def failed_items(self) -> int:
        return sum(len(r.failed) for r in self.results)

    @property
    def failed_targets(self) -> int:
        return sum(1 for r in self.results if r.state == TargetState.FAILED) + len(
            self.config_errors
        )

    @property
    def exit_code(self) -> int:
        """0 only if every target finished cleanly."""
        if self.config_errors:
            return 1
        return 0 if all(r.ok for r in self.results) else 1
