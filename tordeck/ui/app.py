from __future__ import annotations

from typing import Iterable

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DataTable, Header, Static

from ..client import TransmissionEngine
from ..config import AppConfig, save_config
from ..core.input import InputRouter, KeyPress, Paste
from ..core.requests import EngineRequest
from ..core.state import AppState
from ..effects import execute
from ..engine import TorrentEngine
from ..fs import LocalFilesystem
from ..logging import get_logger
from ..models import Filter
from .render import (
    TABLE_COLUMNS,
    render_details,
    render_dialog,
    render_filters,
    render_stats,
    render_status,
    torrent_row,
)


LOG = get_logger(__name__)

NAMED_KEYS = {
    "enter": "enter",
    "escape": "esc",
    "up": "up",
    "down": "down",
    "left": "left",
    "right": "right",
    "backspace": "backspace",
    "delete": "delete",
    "home": "home",
    "end": "end",
    "pageup": "pageup",
    "pagedown": "pagedown",
    "tab": "tab",
    "space": " ",
}

# rows used by the header, panel borders and the status line
CHROME_HEIGHT = 10


def decode_key(key: str, character: str | None) -> KeyPress | None:
    """Translate a Textual key event into a ``KeyPress``."""
    if key in NAMED_KEYS:
        return KeyPress(NAMED_KEYS[key])
    if key.startswith("ctrl+"):
        return KeyPress(key[len("ctrl+"):], ctrl=True)
    if character and len(character) == 1 and character.isprintable():
        return KeyPress(character)
    return None


class TordeckApp(App):
    DEFAULT_CSS = """
    #body {
        height: 1fr;
    }
    #sidebar {
        width: 24;
    }
    #filters, #stats {
        height: auto;
        border: round $accent;
        padding: 0 1;
    }
    #table {
        width: 1fr;
    }
    #details {
        width: 40;
        border: round $accent;
        padding: 0 1;
    }
    #status {
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    #dialog {
        dock: top;
        offset: 0 4;
        margin: 0 8;
        border: tall $accent;
        background: $panel;
        padding: 1 2;
        display: none;
    }
    """
    BINDINGS = [
        Binding("ctrl+c", "route('ctrl+c')", "Quit", show=False, priority=True),
        Binding("ctrl+q", "route('ctrl+q')", "Quit", show=False, priority=True),
        Binding("tab", "route('tab')", "Filter", show=False, priority=True),
    ]

    def __init__(self, config: AppConfig, engine: TorrentEngine | None = None):
        super().__init__()
        self.config = config
        self.engine = engine or TransmissionEngine(config)
        self.fs = LocalFilesystem()
        self.state = AppState(
            str(config.paths.download_dir),
            fs=self.fs,
            active_filter=Filter.parse(config.ui.filter),
            help_height=config.ui.help_height,
        )
        self.router = InputRouter(burst_window=config.ui.paste_guard_ms / 1000.0)
        self._mounted = False

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="body"):
            with Vertical(id="sidebar"):
                yield Static(id="filters")
                yield Static(id="stats")
            yield DataTable(id="table", zebra_stripes=True)
            yield Static(id="details")
        yield Static(id="status")
        yield Static(id="dialog")

    async def on_mount(self) -> None:
        table = self.query_one("#table", DataTable)
        table.add_columns(*TABLE_COLUMNS)
        table.cursor_type = "row"
        table.can_focus = False
        self._mounted = True
        self.set_interval(self.config.ui.refresh_interval, self._tick)
        self._tick()
        self._refresh_view()

    def _tick(self) -> None:
        self._issue(self.state.refresh() + self.state.refresh_stats())

    # input

    def on_key(self, event: events.Key) -> None:
        press = decode_key(event.key, event.character)
        if press is None:
            return
        event.stop()
        event.prevent_default()
        self._handle_press(press)

    def on_paste(self, event: events.Paste) -> None:
        event.stop()
        self.router.handle(self.state, Paste(event.text))
        self._refresh_view()

    def action_route(self, key: str) -> None:
        press = decode_key(key, None)
        if press is not None:
            self._handle_press(press)

    def _handle_press(self, press: KeyPress) -> None:
        requests = self.router.handle(self.state, press)
        self._persist_ui()
        self._issue(requests)
        self._after_update()

    def on_resize(self, event: events.Resize) -> None:
        self.state.resize_help(event.size.height - CHROME_HEIGHT)
        if self._mounted:
            self._refresh_view()

    # engine

    def _issue(self, requests: Iterable[EngineRequest]) -> None:
        for request in requests:
            LOG.debug("Dispatching %r", request)
            self.run_worker(self._run_request(request), group="engine", exit_on_error=False)

    async def _run_request(self, request: EngineRequest) -> None:
        result = await execute(request, self.engine, self.fs)
        self._issue(self.state.apply_result(result))
        self._after_update()

    def _after_update(self) -> None:
        if self.state.fatal:
            self.exit(return_code=1, message=self.state.fatal)
            return
        if self.state.should_quit:
            self.exit()
            return
        self._refresh_view()

    def _persist_ui(self) -> None:
        if self.config.ui.filter == self.state.active_filter.value:
            return
        self.config.ui.filter = self.state.active_filter.value
        try:
            save_config(self.config)
        except OSError as exc:
            LOG.warning("Config save failed: %s", exc)

    # rendering

    def _refresh_view(self) -> None:
        view = self.state.view()
        table = self.query_one("#table", DataTable)
        table.clear()
        for t in view.torrents:
            table.add_row(*torrent_row(t), key=str(t.id))
        if view.selected is not None:
            table.move_cursor(row=view.selected)

        self.query_one("#filters", Static).update(render_filters(view))
        self.query_one("#stats", Static).update(render_stats(view))
        self.query_one("#details", Static).update(render_details(view))
        self.query_one("#status", Static).update(render_status(view))

        dialog = self.query_one("#dialog", Static)
        text = render_dialog(view)
        dialog.display = text is not None
        if text is not None:
            dialog.update(text)
