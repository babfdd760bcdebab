from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from transmission_rpc.error import TransmissionConnectError, TransmissionError

from tordeck.client import TransmissionEngine
from tordeck.config import AppConfig
from tordeck.errors import (
    DuplicateTorrentPathError,
    EngineOperationError,
    EngineResolutionError,
    EngineUnavailableError,
)
from tordeck.models import SessionStats, TorrentStatus

from conftest import MAGNET


pytestmark = pytest.mark.integration

HASH = "ab" * 20


def rpc_torrent(**overrides):
    fields = dict(
        id=1,
        hash_string=HASH,
        name="Foo",
        status="downloading",
        percent_done=0.25,
        rate_download=2048,
        rate_upload=0,
        download_dir="/downloads/Foo",
        error=0,
        error_string="",
        metadata_percent_complete=1.0,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def rpc_file(name, size):
    return SimpleNamespace(name=name, size=size)


@pytest.fixture
def client():
    mock = MagicMock()
    mock.get_torrents.return_value = []
    return mock


@pytest.fixture
def engine(client, tmp_path):
    config = AppConfig()
    config.engine.poll_interval = 0
    config.engine.resolve_timeout = 5
    config.paths.staging_dir = tmp_path / "staging"
    eng = TransmissionEngine(config, retries=0)
    eng._client = client
    return eng


@pytest.mark.asyncio
async def test_list_maps_status_and_progress(engine, client):
    client.get_torrents.return_value = [
        rpc_torrent(),
        rpc_torrent(id=2, status="seeding", percent_done=1.0),
        rpc_torrent(id=3, status="stopped"),
        rpc_torrent(id=4, error=3, error_string="disk full"),
        rpc_torrent(id=5, status="check pending"),
    ]
    views = await engine.list_torrents()
    assert [v.status for v in views] == [
        TorrentStatus.DOWNLOADING,
        TorrentStatus.SEEDING,
        TorrentStatus.PAUSED,
        TorrentStatus.ERROR,
        TorrentStatus.INITIALIZING,
    ]
    assert views[0].progress == 0.25
    assert views[0].down_speed == 2048.0
    assert views[0].base_path == "/downloads"
    assert views[3].error == "disk full"


@pytest.mark.asyncio
async def test_resolve_uses_staging_torrent_and_removes_it(engine, client, tmp_path):
    client.add_torrent.return_value = SimpleNamespace(id=5, hash_string=HASH, name="")
    files = [rpc_file("a.mkv", 700), rpc_file("b.nfo", 2), rpc_file("c.srt", 40)]
    client.get_torrent.side_effect = [
        rpc_torrent(id=5, metadata_percent_complete=0.1),
        rpc_torrent(id=5, get_files=lambda: files),
    ]

    meta = await engine.resolve_metadata(MAGNET)

    assert meta.info_hash == HASH
    assert meta.name == "Foo"
    assert [f.name for f in meta.files] == ["a.mkv", "b.nfo", "c.srt"]
    args, kwargs = client.add_torrent.call_args
    assert args == (MAGNET,)
    assert kwargs["download_dir"] == str(tmp_path / "staging")
    client.remove_torrent.assert_called_once_with([5], delete_data=True)


@pytest.mark.asyncio
async def test_resolve_keeps_torrent_the_daemon_already_had(engine, client):
    client.get_torrents.return_value = [rpc_torrent(id=5)]
    client.add_torrent.return_value = SimpleNamespace(id=5, hash_string=HASH, name="Foo")
    client.get_torrent.return_value = rpc_torrent(id=5, get_files=lambda: [rpc_file("a", 1)])
    await engine.resolve_metadata(MAGNET)
    client.remove_torrent.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_rejects_unknown_source(engine):
    with pytest.raises(EngineResolutionError):
        await engine.resolve_metadata("definitely/not/here.torrent")


@pytest.mark.asyncio
async def test_resolve_maps_daemon_refusal(engine, client):
    client.add_torrent.side_effect = TransmissionError("invalid or corrupt torrent file")
    with pytest.raises(EngineResolutionError):
        await engine.resolve_metadata(MAGNET)


@pytest.mark.asyncio
async def test_add_passes_file_selection(engine, client):
    engine._file_counts[MAGNET] = 3
    client.add_torrent.return_value = SimpleNamespace(id=9, hash_string=HASH, name="Foo")

    view = await engine.add_torrent(MAGNET, "/downloads/Foo", frozenset({0, 2}))

    client.add_torrent.assert_called_once_with(
        MAGNET,
        download_dir="/downloads/Foo",
        paused=False,
        files_wanted=[0, 2],
        files_unwanted=[1],
    )
    assert view.id == 9
    assert view.status is TorrentStatus.INITIALIZING
    assert view.download_dir == "/downloads/Foo"
    assert MAGNET not in engine._file_counts


@pytest.mark.asyncio
async def test_add_without_resolved_file_list_is_refused(engine, client):
    with pytest.raises(EngineOperationError):
        await engine.add_torrent(MAGNET, "/downloads/Foo", frozenset({0}))
    client.add_torrent.assert_not_called()


@pytest.mark.asyncio
async def test_file_count_is_used_once(engine, client):
    client.add_torrent.return_value = SimpleNamespace(id=5, hash_string=HASH, name="Foo")
    client.get_torrent.return_value = rpc_torrent(id=5, get_files=lambda: [rpc_file("a", 1), rpc_file("b", 2)])
    await engine.resolve_metadata(MAGNET)
    assert engine._file_counts == {MAGNET: 2}

    await engine.add_torrent(MAGNET, "/downloads/Foo", frozenset({1}))
    assert client.add_torrent.call_args.kwargs["files_unwanted"] == [0]
    assert engine._file_counts == {}
    with pytest.raises(EngineOperationError):
        await engine.add_torrent(MAGNET, "/downloads/Foo", frozenset({1}))


@pytest.mark.asyncio
async def test_add_detects_duplicate_in_same_base(engine, client):
    engine._file_counts[MAGNET] = 1
    client.get_torrents.return_value = [rpc_torrent(id=1, download_dir="/downloads/Foo")]
    client.add_torrent.return_value = SimpleNamespace(id=1, hash_string=HASH, name="Foo")
    with pytest.raises(DuplicateTorrentPathError):
        await engine.add_torrent(MAGNET, "/downloads/Foo-2", frozenset({0}))


@pytest.mark.asyncio
async def test_add_same_hash_elsewhere_is_refused_by_daemon(engine, client):
    engine._file_counts[MAGNET] = 1
    client.get_torrents.return_value = [rpc_torrent(id=1, download_dir="/other/Foo")]
    client.add_torrent.return_value = SimpleNamespace(id=1, hash_string=HASH, name="Foo")
    with pytest.raises(EngineOperationError):
        await engine.add_torrent(MAGNET, "/downloads/Foo", frozenset({0}))


@pytest.mark.asyncio
async def test_torrent_actions(engine, client):
    await engine.pause(3)
    await engine.resume(3)
    await engine.delete(3)
    client.stop_torrent.assert_called_once_with([3])
    client.start_torrent.assert_called_once_with([3], bypass_queue=True)
    client.remove_torrent.assert_called_once_with([3], delete_data=True)


@pytest.mark.asyncio
async def test_unreachable_daemon(engine, client):
    client.get_torrents.side_effect = TransmissionConnectError("connection refused")
    with pytest.raises(EngineUnavailableError):
        await engine.list_torrents()


@pytest.mark.asyncio
async def test_daemon_error_is_not_retried(engine, client):
    client.stop_torrent.side_effect = TransmissionError("no such torrent")
    with pytest.raises(EngineOperationError):
        await engine.pause(1)
    assert client.stop_torrent.call_count == 1


def test_payload_accepts_torrent_file(tmp_path):
    path = tmp_path / "x.torrent"
    path.write_bytes(b"d4:infod4:name1:xee")
    assert TransmissionEngine._payload(f"  {path}  ") == Path(path)
    assert TransmissionEngine._payload("https://example.org/x.torrent") == "https://example.org/x.torrent"


@pytest.mark.asyncio
async def test_list_maps_transfer_details(engine, client):
    client.get_torrents.return_value = [
        rpc_torrent(
            total_size=4096,
            eta=timedelta(minutes=3),
            ratio=1.5,
            uploaded_ever=6144,
            peers_connected=9,
            peers_sending_to_us=5,
            peers_getting_from_us=2,
        ),
        rpc_torrent(id=2, ratio=-1, eta=None),
    ]
    first, second = await engine.list_torrents()
    assert (first.size, first.eta, first.ratio, first.uploaded) == (4096, 180, 1.5, 6144)
    assert (first.peers, first.seeders, first.leechers) == (9, 5, 2)
    assert second.eta is None
    assert second.ratio == 0.0


@pytest.mark.asyncio
async def test_session_stats(engine, client):
    client.get_session_stats.return_value = SimpleNamespace(
        download_speed=1024,
        upload_speed=256,
        active_torrent_count=2,
        paused_torrent_count=1,
        torrent_count=3,
    )
    stats = await engine.session_stats()
    assert stats == SessionStats(down_speed=1024.0, up_speed=256.0, active=2, paused=1, total=3)
