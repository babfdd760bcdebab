"""Contract between the application state and a torrent engine."""

from __future__ import annotations

from typing import AbstractSet, Protocol, runtime_checkable

from .models import SessionStats, TorrentMetadata, TorrentView


@runtime_checkable
class TorrentEngine(Protocol):
    """Asynchronous torrent engine.

    Every method may raise ``EngineUnavailableError`` when the engine cannot
    be reached at all.
    """

    async def resolve_metadata(self, source: str) -> TorrentMetadata:
        """Resolve a magnet link, URL or ``.torrent`` path.

        Raises:
            EngineResolutionError: The source is malformed or metadata could
                not be fetched.
        """
        ...

    async def add_torrent(self, source: str, target_dir: str, only_files: AbstractSet[int]) -> TorrentView:
        """Add a torrent downloading only ``only_files`` into ``target_dir``.

        The file selection is part of the add request itself.

        Raises:
            DuplicateTorrentPathError: Same info-hash already stored under the
                same base directory.
            EngineOperationError: Any other refusal.
        """
        ...

    async def list_torrents(self) -> list[TorrentView]:
        """Return every torrent in engine order."""
        ...

    async def session_stats(self) -> SessionStats:
        """Global transfer rates and torrent counts."""
        ...

    async def pause(self, torrent_id: int) -> None:
        ...

    async def resume(self, torrent_id: int) -> None:
        ...

    async def delete(self, torrent_id: int) -> None:
        """Remove the torrent (and, depending on engine settings, its data)."""
        ...
