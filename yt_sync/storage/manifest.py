"""
Writes the ordered M3U manifest of a target.
"""

import logging
import os
from collections.abc import Sequence
from pathlib import Path

import aiofiles

from yt_sync.exceptions import ManifestWriteError
from yt_sync.models.config import SyncTarget

log = logging.getLogger(__name__)


def render_manifest(paths: Sequence[Path]) -> str:
    """One path per line, newline-terminated, no header."""
    return "".join(f"{path}\n" for path in paths)


async def write_manifest(target: SyncTarget, paths: Sequence[Path]) -> Path | None:
    """
    Rewrites the manifest of *target* from scratch with *paths*, in order.

    Does nothing when the target does not save a playlist; an existing
    manifest from an earlier run is then left as it is.

    Returns:
        The manifest path, or None when the target does not save a playlist.

    Raises:
        ManifestWriteError: If the manifest cannot be written.
    """
    if not target.save_playlist:
        return None

    manifest_path = target.manifest_path
    temp_path = manifest_path.with_name(f".{manifest_path.name}.tmp")
    try:
        async with aiofiles.open(temp_path, "w", encoding="utf-8", newline="\n") as f:
            await f.write(render_manifest(paths))
        os.replace(temp_path, manifest_path)
    except OSError as e:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise ManifestWriteError(
            f"Failed to write playlist file '{manifest_path}': {e}"
        ) from e

    log.info(f"Generated playlist: '{manifest_path}' ({len(paths)} entries)")
    return manifest_path
