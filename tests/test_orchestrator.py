from pathlib import Path

import pytest

from tests.conftest import (
    ID1,
    ID2,
    ID3,
    AcceptingChecker,
    StubFetcher,
    StubPlaylistClient,
    create_file,
    remote_items,
)
from yt_sync.core.orchestrator import SyncOrchestrator
from yt_sync.exceptions import RemoteNotFound, RemoteUnavailable
from yt_sync.models.config import MediaFormat, SyncOptions, SyncTarget
from yt_sync.models.plan import Action
from yt_sync.models.results import FetchFatal, TargetState


def make_orchestrator(playlists, options, fetcher=None, errors=None) -> SyncOrchestrator:
    return SyncOrchestrator(
        options,
        StubPlaylistClient(playlists, errors),
        fetcher or StubFetcher(),
        integrity_checker=AcceptingChecker,
    )


def song(location: Path, item_id: str, ext: str = "opus") -> Path:
    return location / f"Song {item_id} [{item_id}].{ext}"


@pytest.fixture
def location(tmp_path: Path) -> Path:
    return tmp_path / "music"


async def test_scenario_keeps_existing_downloads_missing_and_writes_manifest(location, options) -> None:
    existing = create_file(song(location, ID1))
    target = SyncTarget(id="PL1", location=location, format=MediaFormat.AUDIO, save_playlist=True)
    fetcher = StubFetcher()
    orchestrator = make_orchestrator({"PL1": remote_items(ID1, ID2)}, options, fetcher)

    report = await orchestrator.run([target])

    [result] = report.results
    assert result.state == TargetState.DONE
    assert [(e.item_id, e.action) for e in result.plan] == [(ID1, Action.KEEP), (ID2, Action.DOWNLOAD)]
    assert fetcher.calls == [ID2]
    assert result.kept == [ID1]
    assert result.succeeded == [ID2]
    assert result.manifest_path == location.parent / "music.m3u"
    assert result.manifest_path.read_text(encoding="utf-8").splitlines() == [
        str(existing),
        str(song(location, ID2)),
    ]
    assert report.exit_code == 0


async def test_manifest_follows_remote_order_not_scan_order(location, options) -> None:
    create_file(location / f"A [{ID1}].opus")
    create_file(location / f"B [{ID2}].opus")
    target = SyncTarget(id="PL1", location=location, save_playlist=True)
    orchestrator = make_orchestrator({"PL1": remote_items(ID2, ID1)}, options)

    await orchestrator.run([target])

    lines = target.manifest_path.read_text(encoding="utf-8").splitlines()
    assert lines == [str(location / f"B [{ID2}].opus"), str(location / f"A [{ID1}].opus")]


async def test_second_run_downloads_nothing(location, options) -> None:
    target = SyncTarget(id="PL1", location=location, save_playlist=True)
    fetcher = StubFetcher()
    orchestrator = make_orchestrator({"PL1": remote_items(ID1, ID2)}, options, fetcher)

    await orchestrator.run([target])
    first_manifest = target.manifest_path.read_text(encoding="utf-8")
    report = await orchestrator.run([target])

    assert fetcher.calls == [ID1, ID2]
    assert report.results[0].plan.is_converged
    assert target.manifest_path.read_text(encoding="utf-8") == first_manifest


async def test_orphans_are_removed_after_downloads(location, options) -> None:
    orphan = create_file(song(location, ID3))
    target = SyncTarget(id="PL1", location=location)
    orchestrator = make_orchestrator({"PL1": remote_items(ID1)}, options)

    report = await orchestrator.run([target])

    assert report.results[0].removed == [ID3]
    assert not orphan.exists()
    assert song(location, ID1).exists()


async def test_bracketed_user_files_are_never_removed(location, options) -> None:
    user_file = create_file(location / "My Live Set [Remastered].mp3")
    target = SyncTarget(id="PL1", location=location)
    orchestrator = make_orchestrator({"PL1": remote_items(ID1)}, options)

    report = await orchestrator.run([target])

    [result] = report.results
    assert result.state == TargetState.DONE
    assert result.removed == []
    assert result.unmanaged == [user_file]
    assert user_file.exists()


async def test_failed_items_are_reported_and_left_out_of_manifest(location, options) -> None:
    target = SyncTarget(id="PL1", location=location, save_playlist=True)
    fetcher = StubFetcher(script={ID1: [FetchFatal("Video unavailable")]})
    orchestrator = make_orchestrator({"PL1": remote_items(ID1, ID2)}, options, fetcher)

    report = await orchestrator.run([target])

    [result] = report.results
    assert result.state == TargetState.DONE
    assert result.failed == {ID1: "Video unavailable"}
    assert not result.ok
    assert target.manifest_path.read_text(encoding="utf-8").splitlines() == [
        str(song(location, ID2))
    ]
    assert report.exit_code == 1


async def test_manifest_write_failure_keeps_downloads(location, options) -> None:
    target = SyncTarget(id="PL1", location=location, save_playlist=True)
    # A directory in the manifest's place makes the final rename fail
    target.manifest_path.mkdir(parents=True)
    orchestrator = make_orchestrator({"PL1": remote_items(ID1)}, options)

    report = await orchestrator.run([target])

    [result] = report.results
    assert result.state == TargetState.FAILED
    assert result.failed_in == TargetState.MANIFEST_WRITING
    assert result.succeeded == [ID1]
    assert song(location, ID1).exists()
    assert target.manifest_path.is_dir()
    assert report.exit_code == 1


async def test_remote_failure_does_not_affect_other_targets(tmp_path: Path, options) -> None:
    broken = SyncTarget(id="PLgone", location=tmp_path / "a")
    healthy = SyncTarget(id="PLok", location=tmp_path / "b")
    orchestrator = make_orchestrator(
        {"PLok": remote_items(ID1)},
        options,
        errors={"PLgone": RemoteNotFound("Playlist 'PLgone' not found")},
    )

    report = await orchestrator.run([broken, healthy])

    first, second = report.results
    assert first.state == TargetState.FAILED
    assert first.failed_in == TargetState.LISTING
    assert "not found" in first.error
    assert second.state == TargetState.DONE
    assert second.succeeded == [ID1]
    assert report.failed_targets == 1
    assert report.exit_code == 1


async def test_unavailable_remote_leaves_directory_untouched(location, options) -> None:
    existing = create_file(song(location, ID1))
    target = SyncTarget(id="PL1", location=location, save_playlist=True)
    orchestrator = make_orchestrator({}, options, errors={"PL1": RemoteUnavailable("timeout")})

    report = await orchestrator.run([target])

    assert report.results[0].state == TargetState.FAILED
    assert existing.exists()
    assert not target.manifest_path.exists()


async def test_location_that_is_a_file_fails_before_listing(tmp_path: Path, options) -> None:
    not_a_dir = create_file(tmp_path / "file.txt")
    client = StubPlaylistClient({"PL1": remote_items(ID1)})
    orchestrator = SyncOrchestrator(options, client, StubFetcher(), integrity_checker=AcceptingChecker)

    report = await orchestrator.run([SyncTarget(id="PL1", location=not_a_dir)])

    assert report.results[0].failed_in == TargetState.INIT
    assert client.calls == []


async def test_duplicate_local_ids_fail_while_reconciling(location, options) -> None:
    audio = create_file(song(location, ID1))
    video = create_file(song(location, ID1, "mkv"))
    orchestrator = make_orchestrator({"PL1": remote_items(ID2)}, options)

    report = await orchestrator.run([SyncTarget(id="PL1", location=location)])

    assert report.results[0].failed_in == TargetState.RECONCILING
    assert audio.exists() and video.exists()


async def test_dry_run_touches_nothing(location) -> None:
    opts = SyncOptions(dry_run=True)
    target = SyncTarget(id="PL1", location=location, save_playlist=True)
    fetcher = StubFetcher()
    orchestrator = make_orchestrator({"PL1": remote_items(ID1, ID2)}, opts, fetcher)

    report = await orchestrator.run([target])

    [result] = report.results
    assert result.state == TargetState.DONE
    assert len(result.plan.downloads) == 2
    assert fetcher.calls == []
    assert not location.exists()
    assert not target.manifest_path.exists()
    assert report.dry_run


async def test_cancelled_run_fails_every_target(location, options) -> None:
    orphan = create_file(song(location, ID3))
    target = SyncTarget(id="PL1", location=location, save_playlist=True)
    fetcher = StubFetcher()
    orchestrator = make_orchestrator({"PL1": remote_items(ID1)}, options, fetcher)
    orchestrator.cancel()

    report = await orchestrator.run([target])

    [result] = report.results
    assert result.state == TargetState.FAILED
    assert "cancelled" in result.error
    assert fetcher.calls == []
    assert orphan.exists()
    assert report.exit_code == 1


async def test_config_errors_are_reported(location, options) -> None:
    orchestrator = make_orchestrator({"PL1": remote_items(ID1)}, options)

    report = await orchestrator.run(
        [SyncTarget(id="PL1", location=location)], {"items[1]": "format: invalid"}
    )

    assert report.results[0].ok
    assert report.failed_targets == 1
    assert report.exit_code == 1
