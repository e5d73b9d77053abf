"""
Takes snapshots of target directories and removes orphaned artifacts.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from yt_sync.core.identity import SIDECAR_SUFFIX, identify
from yt_sync.exceptions import IdentityError
from yt_sync.models.plan import LocalArtifact

log = logging.getLogger(__name__)

TEMP_DIR_NAME = ".yt-sync-tmp"


@dataclass
class DirectorySnapshot:
    """A point-in-time listing of a target directory."""

    location: Path
    artifacts: list[LocalArtifact] = field(default_factory=list)
    unmanaged: list[Path] = field(default_factory=list)


def scan_directory(location: Path, case_insensitive: bool = False) -> DirectorySnapshot:
    """
    Scans the top level of *location* for media files carrying an item id.

    Files whose id cannot be extracted are reported as unmanaged; they are
    never matched and never deleted. Hidden entries, sidecars and
    sub-directories are skipped. Artifacts keep the directory listing order
    (sorted by name, for stable plans).

    Raises:
        FileNotFoundError: If *location* does not exist or is not a directory.
    """
    if not location.is_dir():
        raise FileNotFoundError(
            f"Target directory '{location}' does not exist or is not a directory"
        )

    snapshot = DirectorySnapshot(location=location)
    for entry in sorted(os.scandir(location), key=lambda e: e.name):
        if entry.name.startswith(".") or not entry.is_file():
            continue
        if entry.name.endswith(SIDECAR_SUFFIX):
            continue
        path = location / entry.name
        try:
            snapshot.artifacts.append(identify(path, case_insensitive))
        except IdentityError as e:
            log.debug(f"Unmanaged file in {location}: {e}")
            snapshot.unmanaged.append(path)

    log.debug(
        f"Scanned {location}: {len(snapshot.artifacts)} artifacts, "
        f"{len(snapshot.unmanaged)} unmanaged files"
    )
    return snapshot


def remove_artifact(artifact: LocalArtifact) -> None:
    """Deletes an artifact and its sidecar, if any."""
    artifact.path.unlink(missing_ok=True)
    sidecar = artifact.path.with_name(artifact.path.stem + SIDECAR_SUFFIX)
    sidecar.unlink(missing_ok=True)
    log.debug(f"Removed {artifact.path}")


def temp_dir_for(location: Path) -> Path:
    """The per-target directory the fetcher writes into before final placement."""
    return location / TEMP_DIR_NAME
