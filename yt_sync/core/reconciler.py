"""
The state reconciler: a pure diff between a remote listing and a local snapshot.

Nothing in this module touches the filesystem or the network, so a plan is a
deterministic function of its two input snapshots and the options.
"""

import logging
from collections.abc import Iterable, Sequence

from yt_sync.exceptions import DuplicateIdError
from yt_sync.models.config import MediaFormat, SyncOptions
from yt_sync.models.plan import Action, LocalArtifact, Plan, PlanEntry, RemoteItem

from .identity import normalize_id

log = logging.getLogger(__name__)

REASON_PRESENT = "present locally"
REASON_MISSING = "missing locally"
REASON_FORMAT_MISMATCH = "format mismatch"
REASON_FORMAT_RETAINED = "format mismatch retained"
REASON_ORPHAN = "orphan"
REASON_ORPHAN_RETAINED = "orphan retained"


def _index_remote(
    remote: Iterable[RemoteItem], case_insensitive: bool
) -> list[tuple[str, RemoteItem]]:
    ordered = sorted(remote, key=lambda item: item.position)
    seen: set[str] = set()
    indexed = []
    for item in ordered:
        key = normalize_id(item.id, case_insensitive)
        if key in seen:
            raise DuplicateIdError(
                f"Remote id '{item.id}' appears more than once in the playlist."
            )
        seen.add(key)
        indexed.append((key, item))
    return indexed


def _index_local(
    local: Iterable[LocalArtifact], case_insensitive: bool
) -> dict[str, LocalArtifact]:
    by_id: dict[str, LocalArtifact] = {}
    for artifact in local:
        key = normalize_id(artifact.id, case_insensitive)
        if key in by_id:
            raise DuplicateIdError(
                f"Local id '{artifact.id}' is shared by '{by_id[key].path.name}' "
                f"and '{artifact.path.name}'."
            )
        by_id[key] = artifact
    return by_id


def decide(
    remote: RemoteItem | None,
    local: LocalArtifact | None,
    target_format: MediaFormat,
    options: SyncOptions,
) -> tuple[Action, str]:
    """The action for one id, from whether it exists remotely and locally."""
    if remote is not None and local is None:
        return Action.DOWNLOAD, REASON_MISSING
    if remote is not None and local is not None:
        if local.format == target_format:
            return Action.KEEP, REASON_PRESENT
        if options.redownload_on_format_mismatch:
            return Action.DOWNLOAD, REASON_FORMAT_MISMATCH
        return Action.KEEP, REASON_FORMAT_RETAINED
    if local is not None:
        if options.prune:
            return Action.REMOVE, REASON_ORPHAN
        return Action.NOOP, REASON_ORPHAN_RETAINED
    raise ValueError("An id must exist remotely, locally, or both.")


def reconcile(
    remote: Sequence[RemoteItem],
    local: Sequence[LocalArtifact],
    target_format: MediaFormat,
    options: SyncOptions,
) -> Plan:
    """
    Computes the plan converging *local* towards *remote*.

    Entries for remote items come first, in remote position order, followed by
    local-only items (orphans) in the order they were scanned.

    Raises:
        DuplicateIdError: If an id occurs twice in either snapshot.
    """
    case_insensitive = options.case_insensitive_ids
    remote_index = _index_remote(remote, case_insensitive)
    local_index = _index_local(local, case_insensitive)

    entries: list[PlanEntry] = []
    consumed: set[str] = set()
    for key, item in remote_index:
        artifact = local_index.get(key)
        action, reason = decide(item, artifact, target_format, options)
        entries.append(
            PlanEntry(
                item_id=key, action=action, reason=reason, remote=item, local=artifact
            )
        )
        consumed.add(key)

    for key, artifact in local_index.items():
        if key in consumed:
            continue
        action, reason = decide(None, artifact, target_format, options)
        entries.append(
            PlanEntry(item_id=key, action=action, reason=reason, local=artifact)
        )

    plan = Plan(entries=tuple(entries))
    counts = plan.counts()
    log.debug(
        "Plan: "
        + ", ".join(f"{action.value}={count}" for action, count in counts.items())
    )
    return plan
