from __future__ import annotations

import os
from typing import AbstractSet

import pytest

from tordeck.core.state import AppState
from tordeck.models import FileEntry, SessionStats, TorrentMetadata, TorrentStatus, TorrentView


MAGNET = "magnet:?xt=urn:btih:" + "ab" * 20


def make_torrent(
    torrent_id: int,
    status: TorrentStatus = TorrentStatus.DOWNLOADING,
    *,
    name: str | None = None,
    info_hash: str | None = None,
    download_dir: str = "/downloads/x",
) -> TorrentView:
    return TorrentView(
        id=torrent_id,
        info_hash=info_hash or f"{torrent_id:040x}",
        name=name if name is not None else f"torrent-{torrent_id}",
        status=status,
        progress=0.5,
        download_dir=download_dir,
    )


def foo_metadata(info_hash: str = "ab" * 20) -> TorrentMetadata:
    return TorrentMetadata(
        info_hash=info_hash,
        name="Foo",
        files=(FileEntry("a.mkv", 700), FileEntry("b.nfo", 2), FileEntry("c.srt", 40)),
    )


class FakeFilesystem:
    """In-memory directories; paths are compared after normalisation."""

    def __init__(self, dirs=()):
        self.dirs = {os.path.normpath(d) for d in dirs}
        self.created: list[str] = []
        self.removed: list[str] = []

    def is_dir(self, path: str) -> bool:
        return os.path.normpath(path) in self.dirs

    def exists(self, path: str) -> bool:
        return self.is_dir(path)

    def create_dir(self, path: str) -> None:
        path = os.path.normpath(path)
        if path in self.dirs:
            raise FileExistsError(path)
        self.dirs.add(path)
        self.created.append(path)

    def remove_dir(self, path: str) -> None:
        path = os.path.normpath(path)
        self.dirs.discard(path)
        self.removed.append(path)


class FakeEngine:
    def __init__(self, metadata: TorrentMetadata | None = None, torrents=()):
        self.metadata = metadata or foo_metadata()
        self.torrents = list(torrents)
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None

    def _record(self, *call) -> None:
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    async def resolve_metadata(self, source: str) -> TorrentMetadata:
        self._record("resolve", source)
        return self.metadata

    async def add_torrent(self, source: str, target_dir: str, only_files: AbstractSet[int]) -> TorrentView:
        self._record("add", source, target_dir, frozenset(only_files))
        return TorrentView(
            id=99,
            info_hash=self.metadata.info_hash,
            name=self.metadata.name,
            status=TorrentStatus.INITIALIZING,
            progress=0.0,
            download_dir=target_dir,
        )

    async def list_torrents(self) -> list[TorrentView]:
        self._record("list")
        return list(self.torrents)

    async def session_stats(self) -> SessionStats:
        self._record("stats")
        return SessionStats(down_speed=2048.0, up_speed=512.0, active=2, paused=1, total=3)

    async def pause(self, torrent_id: int) -> None:
        self._record("pause", torrent_id)

    async def resume(self, torrent_id: int) -> None:
        self._record("resume", torrent_id)

    async def delete(self, torrent_id: int) -> None:
        self._record("delete", torrent_id)


@pytest.fixture
def fs():
    return FakeFilesystem(dirs=["/downloads"])


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def state(fs):
    app_state = AppState("/downloads", fs=fs)
    app_state.update_torrents(
        [
            make_torrent(1, TorrentStatus.DOWNLOADING),
            make_torrent(2, TorrentStatus.SEEDING),
            make_torrent(3, TorrentStatus.PAUSED),
        ]
    )
    return app_state
