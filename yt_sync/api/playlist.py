"""
Lists the items of a remote playlist using yt-dlp's flat extraction.
"""

import asyncio
import logging
from typing import Any

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError, ExtractorError

from yt_sync.exceptions import RemoteNotFound, RemoteUnavailable
from yt_sync.models.plan import RemoteItem

from .rate_limiter import AdaptiveRateLimiter, is_throttling_error

log = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = (
    "does not exist",
    "playlist is private",
    "this playlist type is unviewable",
    "http error 404",
    "not found",
)


class PlaylistClient:
    """
    Async client producing the ordered RemoteItem list of a playlist.

    Extraction runs yt-dlp in a worker thread; no media is downloaded.
    """

    PLAYLIST_URL = "https://www.youtube.com/playlist?list={playlist_id}"

    def __init__(
        self,
        rate_limiter: AdaptiveRateLimiter | None = None,
        cookie_file: str | None = None,
    ):
        self._rate_limiter = rate_limiter or AdaptiveRateLimiter()
        self._cookie_file = cookie_file

    def _build_options(self) -> dict[str, Any]:
        opts: dict[str, Any] = {
            "extract_flat": "in_playlist",
            "skip_download": True,
            "quiet": True,
            "no_warnings": True,
            "ignoreerrors": False,
            "logger": logging.getLogger("yt_dlp"),
        }
        if self._cookie_file:
            opts["cookiefile"] = self._cookie_file
        return opts

    def _extract(self, url: str) -> dict[str, Any]:
        with YoutubeDL(self._build_options()) as ydl:
            info = ydl.extract_info(url, download=False)
            # entries may be lazy; materialise while the extractor is open
            entries = list(info.get("entries") or []) if info else []
        return {"title": (info or {}).get("title"), "entries": entries}

    async def list_items(self, playlist_id: str) -> list[RemoteItem]:
        """
        Fetches the playlist and returns its items in remote order.

        Raises:
            RemoteNotFound: If the playlist does not exist or is private.
            RemoteUnavailable: For any other listing failure.
        """
        url = self.PLAYLIST_URL.format(playlist_id=playlist_id)
        await self._rate_limiter.acquire()
        try:
            info = await asyncio.to_thread(self._extract, url)
        except (DownloadError, ExtractorError) as e:
            message = str(e)
            if is_throttling_error(message):
                await self._rate_limiter.on_throttle()
            elif any(marker in message.lower() for marker in _NOT_FOUND_MARKERS):
                raise RemoteNotFound(f"Playlist '{playlist_id}' not found: {message}") from e
            raise RemoteUnavailable(
                f"Could not list playlist '{playlist_id}': {message}"
            ) from e
        except OSError as e:
            raise RemoteUnavailable(
                f"Could not list playlist '{playlist_id}': {e}"
            ) from e

        items = parse_entries(info["entries"])
        log.debug(
            f"Playlist '{info.get('title') or playlist_id}' lists {len(items)} items"
        )
        return items


def parse_entries(entries: list[dict[str, Any] | None]) -> list[RemoteItem]:
    """Converts flat-extracted entries into RemoteItems, skipping entries without an id."""
    items = []
    for entry in entries:
        if not entry or not entry.get("id"):
            log.debug(f"Skipping playlist entry without id: {entry!r}")
            continue
        items.append(
            RemoteItem(
                id=str(entry["id"]).strip(),
                title=entry.get("title") or entry["id"],
                position=len(items),
            )
        )
    return items
