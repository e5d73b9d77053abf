"""
Fetches a single remote item into a temporary directory with yt-dlp.

The fetcher never writes to a final artifact path; it returns a closed
FetchResult and leaves placement to the executor.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError, ExtractorError

from yt_sync.api.rate_limiter import AdaptiveRateLimiter, is_throttling_error
from yt_sync.models.config import MediaFormat, get_format_info
from yt_sync.models.plan import LocalArtifact, RemoteItem
from yt_sync.models.results import FetchFatal, FetchResult, FetchRetryable, FetchSuccess

log = logging.getLogger(__name__)

# Errors that will not go away by retrying within the same run
_FATAL_MARKERS = (
    "private video",
    "video unavailable",
    "this video is not available",
    "has been removed",
    "copyright",
    "confirm your age",
    "members-only",
    "join this channel",
    "not available in your country",
    "premieres in",
    "is not a valid url",
)

_PARTIAL_SUFFIXES = (".part", ".ytdl", ".temp", ".webp", ".jpg", ".png", ".json")


class Fetcher(Protocol):
    """The capability the executor needs: fetch one item in one format."""

    async def fetch(
        self, item: RemoteItem, media_format: MediaFormat, temp_dir: Path
    ) -> FetchResult: ...


def classify_error(message: str) -> FetchResult:
    """Maps a yt-dlp error message to a retryable or fatal result."""
    lowered = message.lower()
    if any(marker in lowered for marker in _FATAL_MARKERS):
        return FetchFatal(message)
    return FetchRetryable(message)


class YtDlpFetcher:
    """Downloads items with yt-dlp: Opus audio or Matroska video."""

    WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

    def __init__(
        self,
        rate_limiter: AdaptiveRateLimiter | None = None,
        cookie_file: str | None = None,
        verbose: bool = False,
    ):
        self._rate_limiter = rate_limiter or AdaptiveRateLimiter()
        self._cookie_file = cookie_file
        self._verbose = verbose

    def build_options(
        self, item: RemoteItem, media_format: MediaFormat, temp_dir: Path
    ) -> dict[str, Any]:
        """Builds the yt-dlp options for one item (the API form of `-x --audio-format opus` or `--merge-output-format mkv`)."""
        opts: dict[str, Any] = {
            "outtmpl": str(temp_dir / f"{item.id}.%(ext)s"),
            "noplaylist": True,
            "overwrites": True,
            "quiet": not self._verbose,
            "no_warnings": not self._verbose,
            "noprogress": True,
            "writethumbnail": True,
            "logger": logging.getLogger("yt_dlp"),
        }
        if media_format == MediaFormat.AUDIO:
            opts["format"] = "bestaudio/best"
            opts["postprocessors"] = [
                {
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": get_format_info(media_format)["ext"],
                },
                {"key": "FFmpegMetadata"},
                {"key": "EmbedThumbnail"},
            ]
        else:
            opts["format"] = "bestvideo+bestaudio/best"
            opts["merge_output_format"] = get_format_info(media_format)["ext"]
            opts["postprocessors"] = [
                {"key": "FFmpegMetadata"},
                {"key": "EmbedThumbnail"},
            ]
        if self._cookie_file:
            opts["cookiefile"] = self._cookie_file
        return opts

    def _download(
        self, item: RemoteItem, media_format: MediaFormat, temp_dir: Path
    ) -> None:
        opts = self.build_options(item, media_format, temp_dir)
        with YoutubeDL(opts) as ydl:
            retcode = ydl.download([self.WATCH_URL.format(video_id=item.id)])
        if retcode:
            raise DownloadError(f"yt-dlp exited with code {retcode}")

    @staticmethod
    def find_output(item: RemoteItem, media_format: MediaFormat, temp_dir: Path) -> Path | None:
        """Locates the finished file yt-dlp produced for *item*."""
        expected = temp_dir / f"{item.id}.{get_format_info(media_format)['ext']}"
        if expected.is_file():
            return expected
        extensions = get_format_info(media_format)["extensions"]
        for candidate in sorted(temp_dir.glob(f"{item.id}.*")):
            if candidate.suffix.lower() in _PARTIAL_SUFFIXES:
                continue
            if candidate.suffix.lower() in extensions and candidate.is_file():
                return candidate
        return None

    async def fetch(
        self, item: RemoteItem, media_format: MediaFormat, temp_dir: Path
    ) -> FetchResult:
        """Downloads *item* into *temp_dir* and reports the outcome."""
        await self._rate_limiter.acquire()
        temp_dir.mkdir(parents=True, exist_ok=True)
        try:
            await asyncio.to_thread(self._download, item, media_format, temp_dir)
        except (DownloadError, ExtractorError) as e:
            message = str(e)
            if is_throttling_error(message):
                await self._rate_limiter.on_throttle()
                return FetchRetryable(message)
            return classify_error(message)
        except OSError as e:
            return FetchRetryable(f"I/O error while downloading: {e}")

        output = self.find_output(item, media_format, temp_dir)
        if output is None:
            return FetchRetryable("yt-dlp finished without producing an output file")
        return FetchSuccess(LocalArtifact(id=item.id, path=output, format=media_format))
