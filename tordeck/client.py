import asyncio
import os
from datetime import timedelta
from pathlib import Path
from typing import AbstractSet, Any, List

from transmission_rpc import Client, Torrent
from transmission_rpc.error import TransmissionAuthError, TransmissionConnectError, TransmissionError

from .config import AppConfig
from .errors import DuplicateTorrentPathError, EngineOperationError, EngineResolutionError, EngineUnavailableError
from .logging import get_logger
from .models import FileEntry, SessionStats, TorrentMetadata, TorrentStatus, TorrentView, normalize_dir


LOG = get_logger(__name__)

URL_PREFIXES = ("magnet:", "http://", "https://")


class TransmissionEngine:
    """Torrent engine backed by a Transmission daemon over RPC."""

    def __init__(self, config: AppConfig, *, retries: int | None = None, backoff: float = 0.6):
        self.config = config
        self._client: Client | None = None
        self._default_retries = max(0, config.engine.retries if retries is None else retries)
        self._default_delay = max(0.1, backoff)
        self._file_counts: dict[str, int] = {}

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(
                host=self.config.rpc.host,
                port=self.config.rpc.port,
                username=self.config.rpc.username,
                password=self.config.rpc.password,
                timeout=self.config.rpc.timeout,
            )
        return self._client

    def reset(self) -> None:
        self._client = None

    async def _to_thread(self, func, *args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)

    async def _rpc(self, method_name: str, *args, retries: int | None = None, **kwargs):
        """Call Transmission RPC with bounded retries and backoff."""
        attempts = (self._default_retries if retries is None else retries) + 1
        delay = self._default_delay
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                method = getattr(self.client, method_name)
                return await self._to_thread(method, *args, **kwargs)
            except (TransmissionConnectError, TransmissionAuthError, OSError) as exc:
                last_error = exc
                self.reset()
                LOG.debug("RPC %s failed (%s/%s): %s", method_name, attempt + 1, attempts, exc)
            except TransmissionError as exc:
                # the daemon answered; retrying will not change its mind
                raise EngineOperationError(str(exc)) from exc

            if attempt < attempts - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 1.6, 5.0)

        raise EngineUnavailableError(f"Transmission RPC unreachable: {last_error}")

    async def _call(self, method_name: str, *args, retries: int | None = None, timeout: float | None = None, **kwargs):
        """RPC wrapper with asyncio timeout."""
        timeout = timeout or self.config.rpc.timeout * (self._default_retries + 1)
        try:
            return await asyncio.wait_for(self._rpc(method_name, *args, retries=retries, **kwargs), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise EngineUnavailableError(f"Transmission RPC {method_name} timed out") from exc

    async def list_torrents(self) -> List[TorrentView]:
        torrents = await self._call("get_torrents")
        return [self._map_torrent(t) for t in torrents]

    async def resolve_metadata(self, source: str) -> TorrentMetadata:
        """Fetch name and file list through a short-lived staging torrent.

        It lives in the staging directory and is removed afterwards,
        unless the daemon already had this torrent before it was added.
        """
        payload = self._payload(source)
        known = {t.info_hash for t in await self.list_torrents()}
        staging = self.config.paths.staging_dir
        staging.mkdir(parents=True, exist_ok=True)

        try:
            staged = await self._call(
                "add_torrent",
                payload,
                download_dir=str(staging),
                paused=not str(payload).startswith("magnet:"),
            )
        except EngineOperationError as exc:
            raise EngineResolutionError(str(exc)) from exc

        info_hash = str(getattr(staged, "hash_string", "") or "")
        try:
            torrent = await self._wait_for_metadata(staged.id)
        finally:
            if info_hash not in known:
                await self._call("remove_torrent", [staged.id], delete_data=True)

        files = self._files(torrent)
        self._file_counts[source] = len(files)
        return TorrentMetadata(
            info_hash=info_hash or str(getattr(torrent, "hash_string", "")),
            name=str(getattr(torrent, "name", "") or ""),
            files=tuple(files),
        )

    async def _wait_for_metadata(self, torrent_id: int) -> Torrent:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.engine.resolve_timeout
        while True:
            torrent = await self._call("get_torrent", torrent_id)
            if (self._as_float(getattr(torrent, "metadata_percent_complete", 1.0)) or 0.0) >= 1.0:
                return torrent
            if loop.time() >= deadline:
                raise EngineResolutionError("Timed out waiting for torrent metadata")
            await asyncio.sleep(self.config.engine.poll_interval)

    async def add_torrent(self, source: str, target_dir: str, only_files: AbstractSet[int]) -> TorrentView:
        payload = self._payload(source)
        # the file count comes from resolve_metadata; without it files_unwanted cannot be built
        count = self._file_counts.pop(source, None)
        if count is None:
            raise EngineOperationError("File list for this torrent is unknown, add it again")
        known = await self.list_torrents()

        kwargs: dict[str, Any] = {"download_dir": target_dir, "paused": False}
        if only_files:
            kwargs["files_wanted"] = sorted(only_files)
        unwanted = [idx for idx in range(count) if idx not in only_files]
        if unwanted:
            kwargs["files_unwanted"] = unwanted

        added = await self._call("add_torrent", payload, **kwargs)
        info_hash = str(getattr(added, "hash_string", "") or "")
        base_path = os.path.dirname(normalize_dir(target_dir))
        # Transmission answers a duplicate add with the torrent it already has
        existing = next((t for t in known if info_hash and t.info_hash == info_hash), None)
        if existing is not None:
            if existing.base_path == base_path:
                raise DuplicateTorrentPathError(info_hash, base_path)
            raise EngineOperationError(
                f"Transmission keeps one location per torrent, already stored in {existing.download_dir}"
            )

        LOG.info("Added %s into %s (%s files)", info_hash, target_dir, len(only_files))
        return TorrentView(
            id=added.id,
            info_hash=info_hash,
            name=str(getattr(added, "name", "") or ""),
            status=TorrentStatus.INITIALIZING,
            progress=0.0,
            download_dir=target_dir,
        )

    async def session_stats(self) -> SessionStats:
        stats = await self._call("get_session_stats")
        return SessionStats(
            down_speed=float(self._as_int(getattr(stats, "download_speed", 0))),
            up_speed=float(self._as_int(getattr(stats, "upload_speed", 0))),
            active=self._as_int(getattr(stats, "active_torrent_count", 0)),
            paused=self._as_int(getattr(stats, "paused_torrent_count", 0)),
            total=self._as_int(getattr(stats, "torrent_count", 0)),
        )

    async def pause(self, torrent_id: int) -> None:
        await self._call("stop_torrent", [torrent_id])

    async def resume(self, torrent_id: int) -> None:
        # bypass_queue=True, like Transmission's "Resume Now"
        await self._call("start_torrent", [torrent_id], bypass_queue=True)

    async def delete(self, torrent_id: int) -> None:
        await self._call("remove_torrent", [torrent_id], delete_data=self.config.engine.delete_data)

    @staticmethod
    def _payload(source: str) -> str | Path:
        text = source.strip()
        if text.startswith(URL_PREFIXES):
            return text
        path = Path(text).expanduser()
        if path.is_file():
            return path
        raise EngineResolutionError("Input must be a magnet, URL, or an existing .torrent file path")

    def _map_torrent(self, t: Torrent) -> TorrentView:
        raw_percent = self._as_float(getattr(t, "percent_done", None))
        if raw_percent is None:
            raw_percent = (self._as_float(getattr(t, "progress", None)) or 0.0) / 100.0
        progress = max(0.0, min(1.0, raw_percent))

        error_text = None
        if self._as_int(getattr(t, "error", 0)):
            error_text = str(getattr(t, "error_string", "") or "error")

        return TorrentView(
            id=t.id,
            info_hash=str(getattr(t, "hash_string", "") or ""),
            name=str(getattr(t, "name", "") or ""),
            status=self._status(t),
            progress=progress,
            down_speed=float(self._as_int(getattr(t, "rate_download", 0))),
            up_speed=float(self._as_int(getattr(t, "rate_upload", 0))),
            download_dir=str(getattr(t, "download_dir", "") or ""),
            error=error_text,
            size=self._as_int(getattr(t, "total_size", 0)),
            eta=self._eta_seconds(t),
            ratio=max(0.0, self._as_float(getattr(t, "ratio", 0.0)) or 0.0),
            uploaded=self._as_int(getattr(t, "uploaded_ever", 0)),
            peers=self._as_int(getattr(t, "peers_connected", 0)),
            seeders=self._as_int(getattr(t, "peers_sending_to_us", 0)),
            leechers=self._as_int(getattr(t, "peers_getting_from_us", 0)),
        )

    def _eta_seconds(self, t: Torrent) -> int | None:
        try:
            raw = getattr(t, "eta", None)
        except (KeyError, ValueError):
            return None
        if raw is None:
            return None
        if isinstance(raw, timedelta):
            return int(raw.total_seconds())
        return self._as_int(raw)

    def _status(self, t: Torrent) -> TorrentStatus:
        if self._as_int(getattr(t, "error", 0)):
            return TorrentStatus.ERROR
        raw = getattr(t, "status", "")
        status = str(getattr(raw, "value", raw)).lower()
        if status == "stopped":
            return TorrentStatus.PAUSED
        metadata = self._as_float(getattr(t, "metadata_percent_complete", None))
        if "check" in status or (metadata is not None and metadata < 1.0):
            return TorrentStatus.INITIALIZING
        if "seed" in status:
            return TorrentStatus.SEEDING
        return TorrentStatus.DOWNLOADING

    def _files(self, torrent: Torrent) -> list[FileEntry]:
        getter = getattr(torrent, "get_files", None)
        raw = getter() if callable(getter) else getattr(torrent, "files", [])
        if callable(raw):
            raw = raw()
        if isinstance(raw, dict):
            raw = list(raw.values())
        entries = []
        for f in raw or []:
            if isinstance(f, dict):
                name, size = f.get("name", ""), f.get("size", f.get("length", 0))
            else:
                name, size = getattr(f, "name", ""), getattr(f, "size", 0)
            entries.append(FileEntry(name=str(name), size=self._as_int(size)))
        return entries

    @staticmethod
    def _as_int(value: int | float | None) -> int:
        try:
            return int(value or 0)
        except Exception:
            return 0

    @staticmethod
    def _as_float(value: Any) -> float | None:
        try:
            if value is None:
                return None
            return float(value)
        except Exception:
            return None
