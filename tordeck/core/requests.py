"""Engine requests issued by the application state and their results.

Add-flow requests carry the id of the flow that issued them so a result that
arrives after the flow was cancelled can be recognised and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class ResolveRequest:
    flow_id: int
    source: str


@dataclass(frozen=True)
class AddRequest:
    flow_id: int
    source: str
    name: str
    info_hash: str
    base_path: str
    target_dir: str
    only_files: frozenset[int]


@dataclass(frozen=True)
class PauseRequest:
    torrent_id: int
    name: str


@dataclass(frozen=True)
class ResumeRequest:
    torrent_id: int
    name: str


@dataclass(frozen=True)
class DeleteRequest:
    torrent_id: int
    name: str


@dataclass(frozen=True)
class RefreshRequest:
    pass


@dataclass(frozen=True)
class StatsRequest:
    pass


EngineRequest = Union[
    ResolveRequest, AddRequest, PauseRequest, ResumeRequest, DeleteRequest, RefreshRequest, StatsRequest
]
FlowRequest = Union[ResolveRequest, AddRequest]


@dataclass(frozen=True)
class EngineResult:
    request: EngineRequest
    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
