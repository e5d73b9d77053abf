"""
Item identity: how remote ids and local files are matched.

Identity is id-based only. A local file carries its id either as a trailing
eleven-character ``[ID]`` in the file name (``Title [ID].opus``) or in a
yt-dlp ``.info.json`` sidecar next to it. Titles are never compared.
"""

import json
import logging
import re
from pathlib import Path

from yt_sync.exceptions import IdentityError
from yt_sync.models.config import format_for_extension
from yt_sync.models.plan import LocalArtifact

log = logging.getLogger(__name__)

# YouTube video ids are always eleven characters; anything else in brackets
# is part of the title
_ID_SUFFIX_RE = re.compile(r"\[(?P<id>[A-Za-z0-9_-]{11})\]\s*$")
SIDECAR_SUFFIX = ".info.json"


def normalize_id(raw_id: str, case_insensitive: bool = False) -> str:
    """Trims whitespace and, for case-insensitive id spaces, case-folds."""
    normalized = raw_id.strip()
    if case_insensitive:
        normalized = normalized.casefold()
    return normalized


def _id_from_sidecar(path: Path) -> str | None:
    sidecar = path.with_name(path.stem + SIDECAR_SUFFIX)
    if not sidecar.is_file():
        return None
    try:
        with open(sidecar, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise IdentityError(f"Unreadable sidecar '{sidecar.name}': {e}") from e
    item_id = data.get("id") if isinstance(data, dict) else None
    if not isinstance(item_id, str) or not item_id.strip():
        raise IdentityError(f"Sidecar '{sidecar.name}' has no usable 'id' field.")
    return item_id


def extract_id(path: Path) -> str:
    """
    Extracts the remote id a local file was downloaded from.

    Raises:
        IdentityError: If neither the file name nor a sidecar yields an id.
    """
    if match := _ID_SUFFIX_RE.search(path.stem):
        return match.group("id")
    if sidecar_id := _id_from_sidecar(path):
        return sidecar_id
    raise IdentityError(f"No item id found in '{path.name}'.")


def identify(path: Path, case_insensitive: bool = False) -> LocalArtifact:
    """
    Builds the LocalArtifact for a media file in a target directory.

    Raises:
        IdentityError: If the file is not a recognised media file or has no id.
    """
    media_format = format_for_extension(path.suffix)
    if media_format is None:
        raise IdentityError(f"'{path.name}' is not a recognised media file.")
    item_id = normalize_id(extract_id(path), case_insensitive)
    if not item_id:
        raise IdentityError(f"Empty item id in '{path.name}'.")
    return LocalArtifact(id=item_id, path=path, format=media_format)
