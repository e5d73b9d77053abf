import os
from pathlib import Path

import pytest

from yt_sync.exceptions import ManifestWriteError
from yt_sync.models.config import SyncTarget
from yt_sync.storage.manifest import render_manifest, write_manifest


def make_target(tmp_path: Path, save_playlist: bool = True) -> SyncTarget:
    location = tmp_path / "Favourites"
    location.mkdir()
    return SyncTarget(id="PL1", location=location, save_playlist=save_playlist)


def test_render_manifest_is_newline_terminated() -> None:
    assert render_manifest([Path("/m/a.opus"), Path("/m/b.opus")]) == "/m/a.opus\n/m/b.opus\n"
    assert render_manifest([]) == ""


async def test_manifest_is_written_next_to_location_in_given_order(tmp_path: Path) -> None:
    target = make_target(tmp_path)
    paths = [target.location / "B [b].opus", target.location / "A [a].opus"]

    manifest = await write_manifest(target, paths)

    assert manifest == tmp_path / "Favourites.m3u"
    assert manifest.read_text(encoding="utf-8").splitlines() == [str(p) for p in paths]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["Favourites", "Favourites.m3u"]


async def test_manifest_is_fully_rewritten(tmp_path: Path) -> None:
    target = make_target(tmp_path)
    await write_manifest(target, [target.location / "Old [o].opus", target.location / "Keep [k].opus"])

    await write_manifest(target, [target.location / "Keep [k].opus"])

    content = target.manifest_path.read_text(encoding="utf-8")
    assert content == f"{target.location / 'Keep [k].opus'}\n"


async def test_disabled_manifest_leaves_stale_file_alone(tmp_path: Path) -> None:
    target = make_target(tmp_path, save_playlist=False)
    target.manifest_path.write_text("stale\n", encoding="utf-8")

    assert await write_manifest(target, [target.location / "A [a].opus"]) is None
    assert target.manifest_path.read_text(encoding="utf-8") == "stale\n"


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="permissions not enforced")
async def test_unwritable_parent_raises(tmp_path: Path) -> None:
    target = make_target(tmp_path)
    tmp_path.chmod(0o500)
    try:
        with pytest.raises(ManifestWriteError):
            await write_manifest(target, [])
    finally:
        tmp_path.chmod(0o700)
