"""
Provides methods for checking the integrity of fetched media files.
"""

import logging
from pathlib import Path

from mutagen import File as MutagenFile
from mutagen import MutagenError
from mutagen.oggopus import OggOpus, OggOpusHeaderError

from yt_sync.models.config import MediaFormat

log = logging.getLogger(__name__)

EBML_MAGIC = b"\x1a\x45\xdf\xa3"


class FileIntegrityChecker:
    """A collection of static methods for validating media file integrity."""

    @staticmethod
    def check_opus(filepath: Path) -> bool:
        """
        Performs a basic integrity check on an Ogg Opus file.

        Checks if the file can be opened by mutagen and has valid stream info.

        Args:
            filepath: Path to the Opus file.

        Returns:
            True if the file appears to be a valid Opus file, False otherwise.
        """
        try:
            audio = OggOpus(filepath)
            if audio.info and audio.info.length > 0:
                return True
            log.warning(
                f"Opus integrity check failed for '{filepath}': No valid stream info."
            )
            return False
        except OggOpusHeaderError:
            log.warning(
                f"Opus integrity check failed for '{filepath}': Missing Opus header."
            )
            return False
        except Exception as e:
            log.debug(f"Opus check failed for '{filepath}' with unexpected error: {e}")
            return False

    @staticmethod
    def check_audio(filepath: Path) -> bool:
        """Checks any mutagen-readable audio file for a positive duration."""
        try:
            audio = MutagenFile(filepath)
        except MutagenError as e:
            log.debug(f"Audio check failed for '{filepath}': {e}")
            return False
        return bool(audio and audio.info and getattr(audio.info, "length", 0) > 0)

    @staticmethod
    def check_matroska(filepath: Path) -> bool:
        """
        Checks that a file starts with the EBML header used by Matroska/WebM.

        mutagen does not parse Matroska, so only the container magic and a
        non-trivial size are verified.
        """
        try:
            with open(filepath, "rb") as f:
                header = f.read(len(EBML_MAGIC))
            if header != EBML_MAGIC:
                log.warning(
                    f"MKV integrity check failed for '{filepath}': Missing EBML header."
                )
                return False
            return filepath.stat().st_size > 1024
        except OSError as e:
            log.debug(f"MKV check failed for '{filepath}': {e}")
            return False

    @classmethod
    def check(cls, filepath: Path, media_format: MediaFormat) -> bool:
        """Dispatches to the check matching the file's format and extension."""
        suffix = filepath.suffix.lower()
        if media_format == MediaFormat.VIDEO:
            if suffix in (".mkv", ".webm"):
                return cls.check_matroska(filepath)
            return filepath.is_file() and filepath.stat().st_size > 0
        if suffix == ".opus":
            return cls.check_opus(filepath)
        return cls.check_audio(filepath)
