"""
Utilities for building artifact file names and checking target directories.
"""

import os
from pathlib import Path

from pathvalidate import sanitize_filename

from yt_sync.exceptions import ConfigError
from yt_sync.models.config import MediaFormat, get_format_info
from yt_sync.models.plan import RemoteItem

# Look-alike replacements keep titles readable where pathvalidate would drop characters
_TITLE_REPLACEMENTS = str.maketrans(
    {
        "<": "＂",
        ">": "＂",
        ":": "＂",
        '"': "＂",
        "\\": "＂",
        "|": "＂",
        "*": "＂",
        "“": "＂",
        "”": "＂",
        "?": "？",
        "/": "⧸",
    }
)

MAX_TITLE_LENGTH = 180


def sanitize_title(title: str) -> str:
    """Makes a remote title safe to use as part of a file name."""
    cleaned = sanitize_filename(title.translate(_TITLE_REPLACEMENTS).strip())
    # Brackets are reserved for the id suffix
    cleaned = cleaned.replace("[", "(").replace("]", ")")
    return cleaned[:MAX_TITLE_LENGTH].strip() or "untitled"


def artifact_filename(item: RemoteItem, media_format: MediaFormat) -> str:
    """The final file name of an item: 'Title [ID].ext'."""
    ext = get_format_info(media_format)["ext"]
    return f"{sanitize_title(item.title)} [{item.id}].{ext}"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def ensure_writable_location(location: Path) -> None:
    """
    Checks that a target location is, or can become, a writable directory.

    Raises:
        ConfigError: If the location is a file or no writable ancestor exists.
    """
    if location.exists():
        if not location.is_dir():
            raise ConfigError(f"Location '{location}' exists but is not a directory.")
        if not os.access(location, os.W_OK | os.X_OK):
            raise ConfigError(f"Location '{location}' is not writable.")
        return

    ancestor = location.parent
    while not ancestor.exists() and ancestor != ancestor.parent:
        ancestor = ancestor.parent
    if not ancestor.is_dir() or not os.access(ancestor, os.W_OK | os.X_OK):
        raise ConfigError(
            f"Location '{location}' cannot be created: '{ancestor}' is not writable."
        )
