from pathlib import Path

import pytest

from tests.conftest import remote_items
from yt_sync.core.reconciler import (
    REASON_FORMAT_MISMATCH,
    REASON_FORMAT_RETAINED,
    REASON_MISSING,
    REASON_ORPHAN,
    REASON_ORPHAN_RETAINED,
    REASON_PRESENT,
    reconcile,
)
from yt_sync.exceptions import DuplicateIdError, ReconcileError
from yt_sync.models.config import MediaFormat, SyncOptions
from yt_sync.models.plan import Action, LocalArtifact, RemoteItem

AUDIO = MediaFormat.AUDIO
VIDEO = MediaFormat.VIDEO


def local(item_id: str, media_format: MediaFormat = AUDIO) -> LocalArtifact:
    ext = "opus" if media_format == AUDIO else "mkv"
    return LocalArtifact(id=item_id, path=Path(f"/music/Song {item_id} [{item_id}].{ext}"), format=media_format)


def actions(plan) -> list[tuple[str, Action]]:
    return [(e.item_id, e.action) for e in plan]


def test_scenario_keep_existing_and_download_missing(options) -> None:
    plan = reconcile(remote_items("v1", "v2"), [local("v1")], AUDIO, options)

    assert actions(plan) == [("v1", Action.KEEP), ("v2", Action.DOWNLOAD)]
    assert [e.reason for e in plan] == [REASON_PRESENT, REASON_MISSING]
    assert plan.entries[0].local.id == "v1"
    assert plan.entries[1].local is None


def test_plan_covers_union_of_ids_exactly_once(options) -> None:
    remote = remote_items("a", "b", "c")
    artifacts = [local("c"), local("d"), local("a", VIDEO)]

    plan = reconcile(remote, artifacts, AUDIO, options)

    ids = [e.item_id for e in plan]
    assert sorted(ids) == ["a", "b", "c", "d"]
    assert len(ids) == len(set(ids))


def test_remote_entries_follow_position_then_orphans_in_scan_order(options) -> None:
    remote = [
        RemoteItem(id="late", title="Late", position=2),
        RemoteItem(id="early", title="Early", position=0),
        RemoteItem(id="middle", title="Middle", position=1),
    ]
    artifacts = [local("zzz"), local("middle"), local("aaa")]

    plan = reconcile(remote, artifacts, AUDIO, options)

    assert [e.item_id for e in plan] == ["early", "middle", "late", "zzz", "aaa"]


def test_orphans_are_removed(options) -> None:
    plan = reconcile(remote_items("a"), [local("a"), local("gone")], AUDIO, options)

    orphan = plan.entries[-1]
    assert (orphan.item_id, orphan.action, orphan.reason) == ("gone", Action.REMOVE, REASON_ORPHAN)
    assert orphan.remote is None


def test_orphans_retained_without_prune() -> None:
    opts = SyncOptions(prune=False)
    plan = reconcile(remote_items("a"), [local("gone")], AUDIO, opts)

    assert plan.entries[-1].action == Action.NOOP
    assert plan.entries[-1].reason == REASON_ORPHAN_RETAINED
    assert plan.removals == []


def test_format_mismatch_is_redownloaded(options) -> None:
    plan = reconcile(remote_items("x"), [local("x", AUDIO)], VIDEO, options)

    entry = plan.entries[0]
    assert (entry.action, entry.reason) == (Action.DOWNLOAD, REASON_FORMAT_MISMATCH)
    assert entry.local.format == AUDIO


def test_format_mismatch_can_be_retained() -> None:
    opts = SyncOptions(redownload_on_format_mismatch=False)
    plan = reconcile(remote_items("x"), [local("x", AUDIO)], VIDEO, opts)

    assert (plan.entries[0].action, plan.entries[0].reason) == (Action.KEEP, REASON_FORMAT_RETAINED)


def test_empty_remote_removes_everything(options) -> None:
    plan = reconcile([], [local("a"), local("b")], AUDIO, options)
    assert {e.action for e in plan} == {Action.REMOVE}


def test_empty_local_downloads_everything(options) -> None:
    plan = reconcile(remote_items("a", "b"), [], AUDIO, options)
    assert {e.action for e in plan} == {Action.DOWNLOAD}


def test_both_empty_gives_empty_plan(options) -> None:
    plan = reconcile([], [], AUDIO, options)
    assert len(plan) == 0
    assert plan.is_converged


def test_second_run_without_changes_is_converged(options) -> None:
    remote = remote_items("a", "b")
    first = reconcile(remote, [local("a")], AUDIO, options)
    after_downloads = [local("a")] + [local(e.item_id) for e in first.downloads]

    second = reconcile(remote, after_downloads, AUDIO, options)

    assert second.is_converged
    assert {e.action for e in second} <= {Action.KEEP, Action.NOOP}


def test_duplicate_remote_ids_raise(options) -> None:
    remote = [RemoteItem(id="a", title="One", position=0), RemoteItem(id="a", title="Two", position=1)]
    with pytest.raises(DuplicateIdError):
        reconcile(remote, [], AUDIO, options)


def test_duplicate_local_ids_raise(options) -> None:
    with pytest.raises(ReconcileError):
        reconcile([], [local("a", AUDIO), local("a", VIDEO)], AUDIO, options)


def test_case_insensitive_matching() -> None:
    opts = SyncOptions(case_insensitive_ids=True)
    plan = reconcile(remote_items("AbC"), [local("abc")], AUDIO, opts)
    assert actions(plan) == [("abc", Action.KEEP)]


def test_counts_cover_every_action(options) -> None:
    plan = reconcile(remote_items("a", "b"), [local("a"), local("c")], AUDIO, options)
    assert plan.counts() == {
        Action.DOWNLOAD: 1,
        Action.KEEP: 1,
        Action.REMOVE: 1,
        Action.NOOP: 0,
    }
