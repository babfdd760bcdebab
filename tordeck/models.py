from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

import humanize


class TorrentStatus(str, Enum):
    DOWNLOADING = "downloading"
    SEEDING = "seeding"
    PAUSED = "paused"
    ERROR = "error"
    INITIALIZING = "initializing"


class Filter(str, Enum):
    ALL = "all"
    DOWNLOADING = "downloading"
    SEEDING = "seeding"
    PAUSED = "paused"
    ERROR = "error"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def matches(self, status: TorrentStatus) -> bool:
        return self is Filter.ALL or self.value == status.value

    def next(self) -> "Filter":
        members = list(Filter)
        return members[(members.index(self) + 1) % len(members)]

    @classmethod
    def parse(cls, value: str | None) -> "Filter":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.ALL


def normalize_dir(path: str) -> str:
    """Expand ``~`` and make a directory path absolute without resolving symlinks."""
    return os.path.normpath(os.path.abspath(os.path.expanduser(path)))


@dataclass(frozen=True)
class TorrentView:
    id: int
    info_hash: str
    name: str
    status: TorrentStatus
    progress: float
    down_speed: float = 0.0
    up_speed: float = 0.0
    download_dir: str = ""
    error: str | None = None
    size: int = 0
    eta: int | None = None
    ratio: float = 0.0
    uploaded: int = 0
    peers: int = 0
    seeders: int = 0
    leechers: int = 0

    @property
    def base_path(self) -> str:
        """Directory holding this torrent's subfolder."""
        if not self.download_dir:
            return ""
        return os.path.dirname(normalize_dir(self.download_dir))

    @property
    def display_name(self) -> str:
        return self.name.strip() or self.info_hash[:12] or f"#{self.id}"

    @property
    def percent_label(self) -> str:
        return f"{self.progress * 100.0:5.1f}%"

    @property
    def down_label(self) -> str:
        return _natural_rate(self.down_speed)

    @property
    def up_label(self) -> str:
        return _natural_rate(self.up_speed)

    @property
    def size_label(self) -> str:
        return humanize.naturalsize(self.size, binary=True)

    @property
    def done_label(self) -> str:
        done = int(self.size * self.progress)
        return f"{humanize.naturalsize(done, binary=True)} / {self.size_label}"

    @property
    def eta_label(self) -> str:
        # Transmission reports -1 when unknown and -2 when it will never finish
        if self.eta is None or self.eta == -1:
            return "-"
        if self.eta < 0:
            return "∞"
        return humanize.naturaldelta(self.eta)


class View(str, Enum):
    """What the details panel shows for the selected torrent."""

    TORRENTS = "torrents"
    INFO = "info"
    PEERS = "peers"


@dataclass(frozen=True)
class SessionStats:
    down_speed: float = 0.0
    up_speed: float = 0.0
    active: int = 0
    paused: int = 0
    total: int = 0

    @property
    def down_label(self) -> str:
        return _natural_rate(self.down_speed)

    @property
    def up_label(self) -> str:
        return _natural_rate(self.up_speed)


@dataclass(frozen=True)
class FileEntry:
    name: str
    size: int


@dataclass(frozen=True)
class TorrentMetadata:
    info_hash: str
    name: str
    files: tuple[FileEntry, ...]


def _natural_rate(value: float) -> str:
    return humanize.naturalsize(max(0.0, float(value or 0)), binary=True) + "/s"
