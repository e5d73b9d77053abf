from pathlib import Path

import pytest

from yt_sync.models.config import MediaFormat, SyncOptions, get_format_info
from yt_sync.models.plan import LocalArtifact, RemoteItem
from yt_sync.models.results import FetchSuccess

# Video ids as they appear in file names
ID1, ID2, ID3 = "dQw4w9WgXcQ", "9bZkp7q19f0", "kJQP7kiw5Fk"


def remote_items(*ids: str) -> list[RemoteItem]:
    return [RemoteItem(id=item_id, title=f"Song {item_id}", position=i) for i, item_id in enumerate(ids)]


def create_file(path: Path, content: bytes = b"data") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class StubPlaylistClient:
    """In-memory playlist listing; ``errors`` maps playlist ids to exceptions."""

    def __init__(self, playlists=None, errors=None):
        self.playlists: dict[str, list[RemoteItem]] = playlists or {}
        self.errors: dict[str, Exception] = errors or {}
        self.calls: list[str] = []

    async def list_items(self, playlist_id: str) -> list[RemoteItem]:
        self.calls.append(playlist_id)
        if playlist_id in self.errors:
            raise self.errors[playlist_id]
        return list(self.playlists.get(playlist_id, []))


class StubFetcher:
    """
    Writes a small file where yt-dlp would put its output.

    ``script`` maps item ids to a list of results or exceptions consumed one
    per attempt; once exhausted the fetch succeeds.
    """

    def __init__(self, script=None, content: bytes = b"media"):
        self.script: dict[str, list] = script or {}
        self.content = content
        self.calls: list[str] = []

    async def fetch(self, item: RemoteItem, media_format: MediaFormat, temp_dir: Path):
        self.calls.append(item.id)
        pending = self.script.get(item.id)
        if pending:
            outcome = pending.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        ext = get_format_info(media_format)["ext"]
        path = create_file(temp_dir / f"{item.id}.{ext}", self.content)
        return FetchSuccess(LocalArtifact(id=item.id, path=path, format=media_format))


class AcceptingChecker:
    @classmethod
    def check(cls, filepath: Path, media_format: MediaFormat) -> bool:
        return filepath.is_file()


class RejectingChecker:
    @classmethod
    def check(cls, filepath: Path, media_format: MediaFormat) -> bool:
        return False


@pytest.fixture
def options() -> SyncOptions:
    return SyncOptions(backoff_base=0)
