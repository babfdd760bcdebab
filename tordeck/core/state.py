from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Sequence, Union

from ..errors import (
    DuplicateTorrentPathError,
    EngineUnavailableError,
    FolderExistsError,
    InputValidationError,
    TordeckError,
)
from ..fs import Filesystem, LocalFilesystem
from ..logging import get_logger
from ..models import Filter, SessionStats, TorrentStatus, TorrentView, View
from .add_flow import AddFlow, ChooseDirectory, InputSource, ResolvingMetadata, SelectFiles, Submitting
from .dialogs import ConfirmDialog, DeleteTorrent, HelpOverlay, QuitApplication
from .filters import clamp_selection, count_by_filter, visible_list
from .requests import (
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


LOG = get_logger(__name__)

Dialog = Union[AddFlow, ConfirmDialog, HelpOverlay]

MAIN = "main"


@dataclass(frozen=True)
class Notice:
    text: str
    error: bool = False


@dataclass(frozen=True)
class ViewModel:
    mode: str
    filter: Filter
    torrents: tuple[TorrentView, ...]
    selected: int | None
    counts: dict[Filter, int]
    dialog: Dialog | None
    notice: Notice | None
    view_mode: View = View.TORRENTS
    stats: SessionStats | None = None


def dialog_kind(dialog: Dialog | None) -> str:
    if dialog is None:
        return MAIN
    if isinstance(dialog, ConfirmDialog):
        return "confirm"
    if isinstance(dialog, HelpOverlay):
        return "help"
    step_kinds = {
        InputSource: "add_source",
        ResolvingMetadata: "resolving",
        ChooseDirectory: "directory_pick",
        SelectFiles: "file_select",
        Submitting: "submitting",
    }
    return step_kinds[type(dialog.step)]


class AppState:
    """Owner of everything the UI shows.

    Operations return the engine requests they want issued; results come back
    through :meth:`apply_result`. Nothing here awaits the engine.
    """

    def __init__(
        self,
        default_dir: str,
        *,
        fs: Filesystem | None = None,
        active_filter: Filter = Filter.ALL,
        help_height: int = 12,
    ):
        self.default_dir = default_dir
        self.fs = fs or LocalFilesystem()
        self.torrents: list[TorrentView] = []
        self.active_filter = active_filter
        self.visible: list[TorrentView] = []
        self.selected: int | None = None
        self.dialog: Dialog | None = None
        self.notice: Notice | None = None
        self.help_height = help_height
        self.should_quit = False
        self.fatal: str | None = None
        self.view_mode = View.TORRENTS
        self.stats: SessionStats | None = None
        self._refreshing = False
        self._refresh_again = False
        self._stats_pending = False
        self._flow_ids = itertools.count(1)

    # mode machine

    @property
    def mode(self) -> str:
        return dialog_kind(self.dialog)

    @property
    def flow(self) -> AddFlow | None:
        return self.dialog if isinstance(self.dialog, AddFlow) else None

    def enter_dialog(self, dialog: Dialog) -> bool:
        if self.dialog is not None:
            LOG.debug("Dialog %s already open, ignoring %s", self.mode, type(dialog).__name__)
            return False
        self.dialog = dialog
        LOG.info("Entered %s", self.mode)
        return True

    def exit_dialog(self) -> None:
        if self.dialog is not None:
            LOG.info("Closed %s", self.mode)
        self.dialog = None

    def set_notice(self, text: str, *, error: bool = False) -> None:
        self.notice = Notice(text, error)
        if error:
            LOG.warning(text)

    def dismiss_notice(self) -> None:
        self.notice = None

    # torrent list

    @property
    def selected_torrent(self) -> TorrentView | None:
        if self.selected is None:
            return None
        return self.visible[self.selected]

    def update_torrents(self, torrents: Sequence[TorrentView]) -> None:
        self.torrents = list(torrents)
        self._recompute()

    def _recompute(self) -> None:
        previous = self.selected_torrent
        self.visible = visible_list(self.torrents, self.active_filter)
        if previous is not None:
            for idx, t in enumerate(self.visible):
                if t.id == previous.id:
                    self.selected = idx
                    return
        self.selected = clamp_selection(self.selected, len(self.visible))

    def _upsert(self, torrent: TorrentView) -> None:
        for idx, existing in enumerate(self.torrents):
            if existing.id == torrent.id:
                self.torrents[idx] = torrent
                break
        else:
            self.torrents.append(torrent)
        self._recompute()

    # main-mode operations

    def select_next(self) -> None:
        self._move_selection(1)

    def select_previous(self) -> None:
        self._move_selection(-1)

    def _move_selection(self, delta: int) -> None:
        if self.dialog is not None or not self.visible:
            return
        current = self.selected if self.selected is not None else 0
        self.selected = clamp_selection(current + delta, len(self.visible))

    def toggle_filter(self) -> None:
        self.set_filter(self.active_filter.next())

    def set_filter(self, active: Filter) -> None:
        if self.dialog is not None:
            return
        self.active_filter = active
        self._recompute()

    def toggle_pause_selected(self) -> list[EngineRequest]:
        torrent = self.selected_torrent
        if self.dialog is not None or torrent is None:
            return []
        if torrent.status in (TorrentStatus.PAUSED, TorrentStatus.ERROR):
            return self.resume_selected()
        return self.pause_selected()

    def pause_selected(self) -> list[EngineRequest]:
        torrent = self.selected_torrent
        if self.dialog is not None or torrent is None:
            return []
        return [PauseRequest(torrent.id, torrent.display_name)]

    def resume_selected(self) -> list[EngineRequest]:
        torrent = self.selected_torrent
        if self.dialog is not None or torrent is None:
            return []
        return [ResumeRequest(torrent.id, torrent.display_name)]

    def open_add_dialog(self) -> None:
        flow = AddFlow(next(self._flow_ids), self.default_dir, self.fs)
        if self.enter_dialog(flow):
            self.set_notice("Paste magnet/URL/path and press Enter")

    def request_delete_selected(self) -> None:
        torrent = self.selected_torrent
        if torrent is None:
            return
        self.enter_dialog(
            ConfirmDialog(
                prompt=f"Delete {torrent.display_name} and its data?",
                on_yes=DeleteTorrent(torrent.id, torrent.display_name),
            )
        )

    def request_quit(self) -> None:
        self.enter_dialog(ConfirmDialog(prompt="Quit tordeck?", on_yes=QuitApplication()))

    def open_help(self) -> None:
        self.enter_dialog(HelpOverlay(viewport_height=self.help_height))

    def close_help(self) -> None:
        if isinstance(self.dialog, HelpOverlay):
            self.exit_dialog()

    def resize_help(self, height: int) -> None:
        self.help_height = max(1, height)
        if isinstance(self.dialog, HelpOverlay):
            self.dialog.resize(self.help_height)

    def set_view(self, view: View) -> None:
        if self.dialog is None:
            self.view_mode = view

    def refresh(self) -> list[EngineRequest]:
        """Request a torrent list, at most one at a time.

        Asking while one is running queues exactly one more, issued when the
        running one lands.
        """
        if self._refreshing:
            self._refresh_again = True
            return []
        self._refreshing = True
        return [RefreshRequest()]

    def refresh_stats(self) -> list[EngineRequest]:
        if self._stats_pending:
            return []
        self._stats_pending = True
        return [StatsRequest()]

    # confirm dialog

    def confirm_accept(self) -> list[EngineRequest]:
        dialog = self.dialog
        if not isinstance(dialog, ConfirmDialog):
            return []
        self.exit_dialog()
        if not dialog.choice:
            self.set_notice("Cancelled")
            return []
        action = dialog.on_yes
        if isinstance(action, QuitApplication):
            LOG.info("Quit confirmed")
            self.should_quit = True
            return []
        return [DeleteRequest(action.torrent_id, action.name)]

    def confirm_decline(self) -> None:
        if isinstance(self.dialog, ConfirmDialog):
            self.exit_dialog()
            self.set_notice("Cancelled")

    # add flow

    def submit_add_source(self) -> list[EngineRequest]:
        return self._run_flow(lambda flow: [flow.submit_source()], "Fetching metadata...")

    def confirm_directory(self) -> list[EngineRequest]:
        def step(flow: AddFlow) -> list[EngineRequest]:
            flow.confirm_directory(self.torrents)
            return []

        return self._run_flow(step, "Select files and press Enter")

    def submit_files(self) -> list[EngineRequest]:
        return self._run_flow(lambda flow: [flow.submit_files()], "Starting download...")

    def _run_flow(self, step: Callable[[AddFlow], list[EngineRequest]], progress: str) -> list[EngineRequest]:
        flow = self.flow
        if flow is None or flow.busy:
            return []
        try:
            requests = step(flow)
        except InputValidationError as exc:
            self.set_notice(str(exc), error=True)
            return []
        except TordeckError as exc:
            self._abort_flow(exc)
            return []
        self.set_notice(progress)
        return requests

    def _abort_flow(self, exc: Exception) -> None:
        flow = self.flow
        if isinstance(exc, (FolderExistsError, DuplicateTorrentPathError)):
            message = str(exc)
        elif flow is not None and isinstance(flow.step, ResolvingMetadata):
            message = f"Could not resolve torrent: {exc}"
        else:
            message = f"Add failed: {exc}"
        self.set_notice(message, error=True)
        self.exit_dialog()

    # engine results

    def apply_result(self, result: EngineResult) -> list[EngineRequest]:
        if isinstance(result.error, EngineUnavailableError):
            self.fatal = f"Engine unavailable: {result.error}"
            self.should_quit = True
            LOG.error(self.fatal)
            return []

        request = result.request
        if isinstance(request, RefreshRequest):
            self._refreshing = False
            if result.ok:
                self.update_torrents(result.value)
            else:
                self.set_notice(f"Refresh failed: {result.error}", error=True)
            if self._refresh_again:
                self._refresh_again = False
                return self.refresh()
            return []

        if isinstance(request, StatsRequest):
            self._stats_pending = False
            if result.ok:
                self.stats = result.value
            else:
                LOG.warning("Session stats failed: %s", result.error)
            return []

        if isinstance(request, (ResolveRequest, AddRequest)):
            return self._apply_flow_result(request, result)

        if not result.ok:
            verb = {PauseRequest: "Pause", ResumeRequest: "Resume", DeleteRequest: "Delete"}[type(request)]
            self.set_notice(f"{verb} failed: {result.error}", error=True)
            return []
        if isinstance(request, PauseRequest):
            self.set_notice(f"Paused: {request.name}")
        elif isinstance(request, ResumeRequest):
            self.set_notice(f"Resumed: {request.name}")
        else:
            self.set_notice(f"Deleted: {request.name}")
        return self.refresh()

    def _apply_flow_result(self, request: ResolveRequest | AddRequest, result: EngineResult) -> list[EngineRequest]:
        flow = self.flow
        if flow is None or flow.flow_id != request.flow_id or not flow.expects(request):
            LOG.debug("Dropping stale result for flow %s", request.flow_id)
            return []

        if not result.ok:
            self._abort_flow(result.error)
            return []

        if isinstance(request, ResolveRequest):
            try:
                flow.metadata_resolved(result.value)
            except TordeckError as exc:
                self._abort_flow(exc)
                return []
            self.set_notice("Choose download directory and press Enter")
            return []

        flow.torrent_added()
        torrent: TorrentView = result.value
        self._upsert(torrent)
        self.exit_dialog()
        self.set_notice(f"Added: {torrent.display_name}")
        return self.refresh()

    # view model

    def view(self) -> ViewModel:
        return ViewModel(
            mode=self.mode,
            filter=self.active_filter,
            torrents=tuple(self.visible),
            selected=self.selected,
            counts=count_by_filter(self.torrents),
            dialog=self.dialog,
            notice=self.notice,
            view_mode=self.view_mode,
            stats=self.stats,
        )
