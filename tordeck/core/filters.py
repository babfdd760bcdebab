from __future__ import annotations

from typing import Iterable, Sequence

from ..models import Filter, TorrentView


def visible_list(torrents: Iterable[TorrentView], active: Filter) -> list[TorrentView]:
    """Torrents matching ``active`` in engine order."""
    return [t for t in torrents if active.matches(t.status)]


def clamp_selection(index: int | None, length: int) -> int | None:
    if length <= 0:
        return None
    if index is None:
        return 0
    return max(0, min(index, length - 1))


def count_by_filter(torrents: Sequence[TorrentView]) -> dict[Filter, int]:
    return {flt: sum(1 for t in torrents if flt.matches(t.status)) for flt in Filter}
