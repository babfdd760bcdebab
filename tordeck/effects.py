"""Runs engine requests and turns every outcome into an ``EngineResult``."""

from __future__ import annotations

from typing import Any

from .core.requests import (
    AddRequest,
    DeleteRequest,
    EngineRequest,
    EngineResult,
    PauseRequest,
    RefreshRequest,
    ResolveRequest,
    ResumeRequest,
    StatsRequest,
)
from .engine import TorrentEngine
from .errors import EngineOperationError, FolderExistsError, TordeckError
from .fs import Filesystem
from .logging import get_logger
from .models import TorrentView


LOG = get_logger(__name__)


async def execute(request: EngineRequest, engine: TorrentEngine, fs: Filesystem) -> EngineResult:
    try:
        value = await _dispatch(request, engine, fs)
    except TordeckError as exc:
        LOG.debug("%s failed: %s", type(request).__name__, exc)
        return EngineResult(request, error=exc)
    except Exception as exc:  # noqa: BLE001
        LOG.warning("%s failed unexpectedly: %s", type(request).__name__, exc)
        return EngineResult(request, error=EngineOperationError(str(exc) or type(exc).__name__))
    return EngineResult(request, value=value)


async def _dispatch(request: EngineRequest, engine: TorrentEngine, fs: Filesystem) -> Any:
    if isinstance(request, RefreshRequest):
        return await engine.list_torrents()
    if isinstance(request, StatsRequest):
        return await engine.session_stats()
    if isinstance(request, ResolveRequest):
        return await engine.resolve_metadata(request.source)
    if isinstance(request, AddRequest):
        return await add_into_subfolder(request, engine, fs)
    if isinstance(request, PauseRequest):
        return await engine.pause(request.torrent_id)
    if isinstance(request, ResumeRequest):
        return await engine.resume(request.torrent_id)
    if isinstance(request, DeleteRequest):
        return await engine.delete(request.torrent_id)
    raise TypeError(f"unknown request {request!r}")


async def add_into_subfolder(request: AddRequest, engine: TorrentEngine, fs: Filesystem) -> TorrentView:
    """Create the target subfolder, then add; the folder is removed again if the add fails."""
    try:
        fs.create_dir(request.target_dir)
    except FileExistsError as exc:
        raise FolderExistsError(request.target_dir) from exc

    try:
        return await engine.add_torrent(request.source, request.target_dir, request.only_files)
    except BaseException:
        fs.remove_dir(request.target_dir)
        raise
