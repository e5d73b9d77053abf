"""
Data structures describing remote items, local artifacts and the sync plan.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .config import MediaFormat


@dataclass(frozen=True)
class RemoteItem:
    """An entry of the remote playlist, as listed at the start of a run."""

    id: str
    title: str
    position: int


@dataclass(frozen=True)
class LocalArtifact:
    """A file in the target directory that maps back to a remote id."""

    id: str
    path: Path
    format: MediaFormat


class Action(str, Enum):
    DOWNLOAD = "download"
    KEEP = "keep"
    REMOVE = "remove"
    NOOP = "noop"


@dataclass(frozen=True)
class PlanEntry:
    """One decided action for one item id within one sync run."""

    item_id: str
    action: Action
    reason: str
    remote: RemoteItem | None = None
    local: LocalArtifact | None = None


@dataclass(frozen=True)
class Plan:
    """The ordered reconciler output: remote order first, then orphans."""

    entries: tuple[PlanEntry, ...] = field(default_factory=tuple)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def with_action(self, action: Action) -> list[PlanEntry]:
        return [e for e in self.entries if e.action == action]

    @property
    def downloads(self) -> list[PlanEntry]:
        return self.with_action(Action.DOWNLOAD)

    @property
    def keeps(self) -> list[PlanEntry]:
        return self.with_action(Action.KEEP)

    @property
    def removals(self) -> list[PlanEntry]:
        return self.with_action(Action.REMOVE)

    @property
    def is_converged(self) -> bool:
        """True when nothing needs to be downloaded or removed."""
        return not self.downloads and not self.removals

    def counts(self) -> dict[Action, int]:
        totals = dict.fromkeys(Action, 0)
        for entry in self.entries:
            totals[entry.action] += 1
        return totals
