"""
Pydantic models for sync targets and run options.
Provides robust validation for all settings.
"""

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class MediaFormat(str, Enum):
    """The two artifact formats a target can be mirrored in."""

    AUDIO = "audio"
    VIDEO = "video"


# Output extension and the extensions recognised when scanning a directory
FORMAT_MAP = {
    MediaFormat.AUDIO: {
        "name": "Audio (Opus)",
        "ext": "opus",
        "color": "green",
        "extensions": {".opus", ".m4a", ".mp3", ".ogg", ".oga", ".flac", ".wav", ".aac"},
    },
    MediaFormat.VIDEO: {
        "name": "Video (MKV)",
        "ext": "mkv",
        "color": "cyan",
        "extensions": {".mkv", ".mp4", ".webm", ".mov", ".avi"},
    },
}


def get_format_info(media_format: MediaFormat) -> dict:
    """Gets all information for a given format from the central map."""
    return FORMAT_MAP[MediaFormat(media_format)]


def format_for_extension(suffix: str) -> MediaFormat | None:
    """Maps a file suffix (with leading dot) to the format it belongs to."""
    suffix = suffix.lower()
    for media_format, info in FORMAT_MAP.items():
        if suffix in info["extensions"]:
            return media_format
    return None


_PLAYLIST_URL_RE = re.compile(r"[?&]list=(?P<id>[\w-]+)")


class SyncTarget(BaseModel):
    """One playlist-to-directory mapping from the configuration file."""

    playlist_id: str = Field(alias="id")
    location: Path
    format: MediaFormat = MediaFormat.AUDIO
    save_playlist: bool = False

    class Config:
        """Pydantic model configuration."""

        frozen = True
        populate_by_name = True
        str_strip_whitespace = True

    @field_validator("playlist_id")
    @classmethod
    def validate_playlist_id(cls, v: str) -> str:
        """Accepts a bare playlist id or a full playlist URL."""
        if match := _PLAYLIST_URL_RE.search(v):
            v = match.group("id")
        if not v or not re.fullmatch(r"[\w-]+", v):
            raise ValueError(f"Invalid playlist id: '{v}'")
        return v

    @field_validator("location", mode="before")
    @classmethod
    def validate_location(cls, v: str | Path) -> Path:
        """Expands '~', makes the location absolute and rejects empty ones."""
        if not str(v).strip():
            raise ValueError("Location cannot be empty.")
        return Path(v).expanduser().resolve()

    @property
    def manifest_path(self) -> Path:
        """The manifest lives next to the target directory, named after it."""
        return self.location.parent / f"{self.location.name}.m3u"

    @property
    def label(self) -> str:
        return f"{self.playlist_id} → {self.location}"


class SyncOptions(BaseModel):
    """Run-wide options passed explicitly to every component."""

    max_attempts: int = 3
    backoff_base: float = 1.5
    max_targets: int = 2
    max_downloads: int = 3
    prune: bool = True
    redownload_on_format_mismatch: bool = True
    case_insensitive_ids: bool = False
    dry_run: bool = False
    verbose: bool = False

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """Ensures a bounded, positive number of attempts."""
        if v < 1 or v > 10:
            raise ValueError("max_attempts must be between 1 and 10.")
        return v

    @field_validator("max_targets", "max_downloads")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 16:
            raise ValueError("Worker counts must be between 1 and 16.")
        return v

    @field_validator("backoff_base")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 0:
            raise ValueError("backoff_base cannot be negative.")
        return v

    @classmethod
    def get_option_keys(cls) -> set[str]:
        """Returns the keys accepted in the [options] table of the config file."""
        return set(cls.model_fields) - {"dry_run", "verbose"}
