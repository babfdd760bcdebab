"""Multi-step add-torrent workflow.

The flow is an explicit sequence of steps, each carrying only the data it
needs::

    InputSource -> ResolvingMetadata -> ChooseDirectory -> SelectFiles -> Submitting

Steps that wait on the engine (``ResolvingMetadata`` and ``Submitting``) hold
exactly one in-flight request; the flow accepts a result only for that
request. Failures raise ``TordeckError`` subclasses. ``InputValidationError``
leaves the flow where it was, anything else ends the flow.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Sequence, Union

from ..errors import (
    DuplicateTorrentPathError,
    EngineResolutionError,
    FolderExistsError,
    InputValidationError,
    InvalidDirectoryError,
)
from ..fs import Filesystem
from ..logging import get_logger
from ..models import TorrentMetadata, TorrentView, normalize_dir
from .requests import AddRequest, FlowRequest, ResolveRequest
from .text_input import TextInput


LOG = get_logger(__name__)

FALLBACK_FOLDER = "download"


@dataclass
class InputSource:
    text: TextInput = field(default_factory=TextInput)


@dataclass
class ResolvingMetadata:
    source: str


@dataclass
class ChooseDirectory:
    source: str
    metadata: TorrentMetadata
    default_path: str
    custom_path: TextInput


@dataclass
class FileChoice:
    name: str
    size: int
    selected: bool = True


@dataclass
class SelectFiles:
    source: str
    metadata: TorrentMetadata
    base_path: str
    target_dir: str
    files: list[FileChoice]
    cursor: int = 0

    def selected_indices(self) -> frozenset[int]:
        return frozenset(idx for idx, f in enumerate(self.files) if f.selected)


@dataclass
class Submitting:
    source: str
    name: str
    target_dir: str
    only_files: frozenset[int]


AddStep = Union[InputSource, ResolvingMetadata, ChooseDirectory, SelectFiles, Submitting]


def subfolder_name(metadata: TorrentMetadata) -> str:
    """Folder created under the chosen directory: torrent name, else first file name."""
    candidates = [metadata.name] + [f.name for f in metadata.files[:1]]
    for candidate in candidates:
        cleaned = sanitize_path_component(candidate)
        if cleaned:
            return cleaned
    return FALLBACK_FOLDER


def sanitize_path_component(value: str) -> str:
    return value.replace("/", "-").replace("\\", "-").strip()


class AddFlow:
    def __init__(self, flow_id: int, default_dir: str, fs: Filesystem):
        self.flow_id = flow_id
        self.default_dir = default_dir
        self.step: AddStep = InputSource()
        self.in_flight: FlowRequest | None = None
        self._fs = fs

    @property
    def busy(self) -> bool:
        return self.in_flight is not None

    @property
    def text_field(self) -> TextInput | None:
        if isinstance(self.step, InputSource):
            return self.step.text
        if isinstance(self.step, ChooseDirectory):
            return self.step.custom_path
        return None

    def _issue(self, request: FlowRequest) -> FlowRequest:
        if self.in_flight is not None:
            raise RuntimeError(f"flow {self.flow_id} already waiting on {self.in_flight!r}")
        self.in_flight = request
        return request

    def expects(self, request: FlowRequest) -> bool:
        return self.in_flight is not None and self.in_flight == request

    # InputSource

    def submit_source(self) -> ResolveRequest:
        if not isinstance(self.step, InputSource):
            raise InputValidationError("Not expecting a torrent source now")
        source = self.step.text.value.strip()
        if not source:
            raise InputValidationError("Enter a magnet link, URL or .torrent path")
        request = ResolveRequest(flow_id=self.flow_id, source=source)
        self._issue(request)
        self.step = ResolvingMetadata(source=source)
        LOG.info("Flow %s resolving %s", self.flow_id, source)
        return request

    # ResolvingMetadata

    def metadata_resolved(self, metadata: TorrentMetadata) -> None:
        if not isinstance(self.step, ResolvingMetadata):
            raise InputValidationError("Not waiting for torrent metadata")
        self.in_flight = None
        if not metadata.files:
            raise EngineResolutionError("Torrent has no files")
        self.step = ChooseDirectory(
            source=self.step.source,
            metadata=metadata,
            default_path=self.default_dir,
            custom_path=TextInput.prefilled(self.default_dir),
        )

    # ChooseDirectory

    def confirm_directory(self, torrents: Sequence[TorrentView]) -> None:
        step = self.step
        if not isinstance(step, ChooseDirectory):
            raise InputValidationError("Not choosing a directory now")
        base_path = normalize_dir(step.custom_path.value.strip() or step.default_path)
        if not self._fs.is_dir(base_path):
            raise InvalidDirectoryError(f"Not a directory: {base_path}")

        metadata = step.metadata
        if any(t.info_hash == metadata.info_hash and t.base_path == base_path for t in torrents):
            raise DuplicateTorrentPathError(metadata.info_hash, base_path)

        target_dir = os.path.join(base_path, subfolder_name(metadata))
        if self._fs.exists(target_dir):
            raise FolderExistsError(target_dir)

        self.step = SelectFiles(
            source=step.source,
            metadata=metadata,
            base_path=base_path,
            target_dir=target_dir,
            files=[FileChoice(name=f.name, size=f.size) for f in metadata.files],
        )
        LOG.info("Flow %s target %s", self.flow_id, target_dir)

    # SelectFiles

    def move_cursor(self, delta: int) -> None:
        if isinstance(self.step, SelectFiles) and self.step.files:
            last = len(self.step.files) - 1
            self.step.cursor = max(0, min(self.step.cursor + delta, last))

    def toggle_file(self, index: int | None = None) -> None:
        if not isinstance(self.step, SelectFiles):
            return
        idx = self.step.cursor if index is None else index
        if 0 <= idx < len(self.step.files):
            choice = self.step.files[idx]
            choice.selected = not choice.selected

    def select_all(self, selected: bool) -> None:
        if isinstance(self.step, SelectFiles):
            for choice in self.step.files:
                choice.selected = selected

    def submit_files(self) -> AddRequest:
        step = self.step
        if not isinstance(step, SelectFiles):
            raise InputValidationError("Not selecting files now")
        only_files = step.selected_indices()
        if not only_files:
            raise InputValidationError("Select at least one file")
        request = AddRequest(
            flow_id=self.flow_id,
            source=step.source,
            name=step.metadata.name or subfolder_name(step.metadata),
            info_hash=step.metadata.info_hash,
            base_path=step.base_path,
            target_dir=step.target_dir,
            only_files=only_files,
        )
        self._issue(request)
        self.step = Submitting(
            source=step.source,
            name=request.name,
            target_dir=step.target_dir,
            only_files=only_files,
        )
        LOG.info("Flow %s adding %s files into %s", self.flow_id, len(only_files), step.target_dir)
        return request

    # Submitting

    def torrent_added(self) -> None:
        if isinstance(self.step, Submitting):
            self.in_flight = None
