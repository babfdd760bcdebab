from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Union

from ..logging import get_logger
from ..models import Filter, View
from .add_flow import AddFlow, ChooseDirectory, InputSource, SelectFiles
from .dialogs import ConfirmDialog, HelpOverlay
from .requests import EngineRequest
from .state import AppState


LOG = get_logger(__name__)

NAV_CHARS = frozenset("hjkl")
FILTER_KEYS = {str(idx): flt for idx, flt in enumerate(Filter, start=1)}
VIEW_KEYS = {"t": View.TORRENTS, "i": View.INFO, "v": View.PEERS}


@dataclass(frozen=True)
class KeyPress:
    """Decoded key: a single character or a named key.

    Named keys: ``enter esc up down left right backspace delete home end
    pageup pagedown tab``.
    """

    key: str
    ctrl: bool = False

    @property
    def is_char(self) -> bool:
        return len(self.key) == 1 and not self.ctrl


@dataclass(frozen=True)
class Paste:
    text: str


InputEvent = Union[KeyPress, Paste]


def clean_paste(text: str) -> str:
    return "".join(text.splitlines())


class InputRouter:
    """Maps decoded input plus the current mode onto ``AppState`` operations."""

    def __init__(self, *, burst_window: float = 0.0, clock: Callable[[], float] = time.monotonic):
        self.burst_window = burst_window
        self._clock = clock
        self._last_char_at: float | None = None

    def handle(self, state: AppState, event: InputEvent) -> list[EngineRequest]:
        if isinstance(event, Paste):
            self._paste(state, event)
            return []

        if event.ctrl and event.key in ("c", "q"):
            if not isinstance(state.dialog, ConfirmDialog):
                state.exit_dialog()
                state.request_quit()
            return []

        dialog = state.dialog
        if dialog is None:
            return self._main(state, event)
        if isinstance(dialog, HelpOverlay):
            self._help(state, dialog, event)
            return []
        if isinstance(dialog, ConfirmDialog):
            return self._confirm(state, dialog, event)
        return self._add_flow(state, dialog, event)

    def _paste(self, state: AppState, event: Paste) -> None:
        flow = state.flow
        field = flow.text_field if flow is not None else None
        if field is None:
            LOG.debug("Paste ignored in %s", state.mode)
            return
        field.insert(clean_paste(event.text))

    def _is_burst(self, event: KeyPress) -> bool:
        if not event.is_char:
            self._last_char_at = None
            return False
        if self.burst_window <= 0 or event.key in NAV_CHARS:
            return False
        now = self._clock()
        last, self._last_char_at = self._last_char_at, now
        return last is not None and now - last <= self.burst_window

    def _main(self, state: AppState, event: KeyPress) -> list[EngineRequest]:
        if self._is_burst(event):
            LOG.debug("Dropped %r as part of a paste burst", event.key)
            return []
        key = event.key
        if key in ("down", "j"):
            state.select_next()
        elif key in ("up", "k"):
            state.select_previous()
        elif key in ("tab", "f"):
            state.toggle_filter()
        elif key in FILTER_KEYS:
            state.set_filter(FILTER_KEYS[key])
        elif key in VIEW_KEYS:
            state.set_view(VIEW_KEYS[key])
        elif key in ("p", " "):
            return state.toggle_pause_selected()
        elif key == "a":
            state.open_add_dialog()
        elif key == "d":
            state.request_delete_selected()
        elif key == "q":
            state.request_quit()
        elif key == "?":
            state.open_help()
        elif key == "r":
            return state.refresh()
        elif key in ("x", "esc"):
            state.dismiss_notice()
        return []

    def _help(self, state: AppState, overlay: HelpOverlay, event: KeyPress) -> None:
        key = event.key
        if key in ("?", "x", "esc"):
            state.close_help()
        elif key in ("up", "k"):
            overlay.scroll(-1)
        elif key in ("down", "j"):
            overlay.scroll(1)
        elif key == "pageup":
            overlay.page(-1)
        elif key == "pagedown":
            overlay.page(1)
        elif key in ("home", "g"):
            overlay.home()
        elif key in ("end", "G"):
            overlay.end()

    def _confirm(self, state: AppState, dialog: ConfirmDialog, event: KeyPress) -> list[EngineRequest]:
        key = event.key
        if key in ("left", "h", "y", "Y"):
            dialog.select(True)
        elif key in ("right", "l"):
            dialog.select(False)
        elif key in ("n", "N", "esc"):
            state.confirm_decline()
        elif key == "enter":
            return state.confirm_accept()
        return []

    def _add_flow(self, state: AppState, flow: AddFlow, event: KeyPress) -> list[EngineRequest]:
        key = event.key
        if key == "esc":
            state.exit_dialog()
            state.set_notice("Cancelled")
            return []
        if flow.busy:
            return []

        step = flow.step
        if isinstance(step, (InputSource, ChooseDirectory)):
            if key == "enter":
                if isinstance(step, InputSource):
                    return state.submit_add_source()
                return state.confirm_directory()
            self._edit(flow, event)
        elif isinstance(step, SelectFiles):
            if key == "enter":
                return state.submit_files()
            if key in ("up", "k"):
                flow.move_cursor(-1)
            elif key in ("down", "j"):
                flow.move_cursor(1)
            elif key == " ":
                flow.toggle_file()
            elif key == "a":
                flow.select_all(True)
            elif key == "n":
                flow.select_all(False)
        return []

    def _edit(self, flow: AddFlow, event: KeyPress) -> None:
        field = flow.text_field
        if field is None:
            return
        actions = {
            "backspace": field.backspace,
            "delete": field.delete,
            "left": field.left,
            "right": field.right,
            "home": field.home,
            "end": field.end,
        }
        if event.key in actions:
            actions[event.key]()
        elif event.is_char:
            field.insert(event.key)
