import copy

import pytest

from tordeck.core.add_flow import AddFlow, ChooseDirectory, InputSource, SelectFiles
from tordeck.core.dialogs import ConfirmDialog, HelpOverlay
from tordeck.core.input import InputRouter, KeyPress, Paste, clean_paste
from tordeck.core.requests import AddRequest, EngineResult, RefreshRequest, ResolveRequest, ResumeRequest
from tordeck.core.state import AppState
from tordeck.models import Filter, View

from conftest import MAGNET, FakeFilesystem, foo_metadata


pytestmark = pytest.mark.unit


def press(router, state, *keys):
    out = []
    for key in keys:
        out.extend(router.handle(state, KeyPress(key)))
    return out


@pytest.fixture
def router():
    return InputRouter()


def test_add_magnet_selecting_two_of_three_files(state, router):
    press(router, state, "a")
    assert state.mode == "add_source"
    router.handle(state, Paste(MAGNET))
    [resolve] = press(router, state, "enter")
    assert resolve == ResolveRequest(flow_id=state.flow.flow_id, source=MAGNET)
    assert state.mode == "resolving"

    # keys other than Esc are ignored while waiting
    assert press(router, state, "enter", "x") == []
    state.apply_result(EngineResult(resolve, value=foo_metadata()))
    assert isinstance(state.flow.step, ChooseDirectory)

    assert press(router, state, "enter") == []
    assert isinstance(state.flow.step, SelectFiles)
    [add] = press(router, state, "down", " ", "enter")
    assert isinstance(add, AddRequest)
    assert add.target_dir == "/downloads/Foo"
    assert add.only_files == frozenset({0, 2})
    assert add.source == MAGNET


def test_existing_folder_aborts_flow(router):
    state = AppState("/downloads", fs=FakeFilesystem(dirs=["/downloads", "/downloads/Foo"]))
    press(router, state, "a")
    router.handle(state, Paste(MAGNET))
    [resolve] = press(router, state, "enter")
    state.apply_result(EngineResult(resolve, value=foo_metadata()))
    press(router, state, "enter")
    assert state.mode == "main"
    assert state.notice.error
    assert "already exists" in state.notice.text


@pytest.mark.parametrize("keys", [("q", "N"), ("q", "n"), ("q", "esc"), ("q", "enter"), ("q", "y", "l", "enter")])
def test_quit_declined(state, router, keys):
    press(router, state, *keys)
    assert not state.should_quit
    assert state.mode == "main"


@pytest.mark.parametrize("keys", [("q", "Y", "enter"), ("q", "left", "enter"), ("q", "h", "enter")])
def test_quit_accepted(state, router, keys):
    press(router, state, *keys)
    assert state.should_quit


def test_ctrl_c_replaces_open_dialog_with_quit_confirm(state, router):
    press(router, state, "a")
    router.handle(state, KeyPress("c", ctrl=True))
    assert isinstance(state.dialog, ConfirmDialog)
    router.handle(state, KeyPress("q", ctrl=True))
    assert isinstance(state.dialog, ConfirmDialog)


def test_esc_cancels_add_flow(state, router):
    press(router, state, "a", "m", "esc")
    assert state.mode == "main"
    assert state.notice.text == "Cancelled"


def test_main_keys(state, router):
    assert press(router, state, "j") == []
    assert state.selected == 1
    press(router, state, "k")
    assert state.selected == 0
    press(router, state, "tab")
    assert state.active_filter is Filter.DOWNLOADING
    press(router, state, "4")
    assert state.active_filter is Filter.PAUSED
    press(router, state, "1")
    assert press(router, state, "p") == [ResumeRequest(3, "torrent-3")]
    assert press(router, state, "r") == [RefreshRequest()]


def test_help_scrolling(state, router):
    state.resize_help(5)
    press(router, state, "?")
    overlay = state.dialog
    assert isinstance(overlay, HelpOverlay)
    press(router, state, "j", "j")
    assert overlay.scroll_offset == 2
    press(router, state, "pagedown")
    assert overlay.scroll_offset == 7
    press(router, state, "G")
    assert overlay.scroll_offset == overlay.max_offset
    press(router, state, "g")
    assert overlay.scroll_offset == 0
    press(router, state, "x")
    assert state.dialog is None


def _to_resolving(router, state):
    press(router, state, "a")
    router.handle(state, Paste(MAGNET))
    return press(router, state, "enter")[0]


def _to_file_select(router, state):
    resolve = _to_resolving(router, state)
    state.apply_result(EngineResult(resolve, value=foo_metadata()))
    press(router, state, "enter", "down")


SETUPS = {
    "main": lambda router, state: press(router, state, "j"),
    "help": lambda router, state: press(router, state, "?", "j"),
    "confirm": lambda router, state: press(router, state, "q"),
    "resolving": _to_resolving,
    "file_select": _to_file_select,
    "submitting": lambda router, state: (_to_file_select(router, state), press(router, state, "enter")),
}


def _snapshot(state):
    dialog = state.dialog
    detail = dialog.step if isinstance(dialog, AddFlow) else dialog
    return (
        state.mode,
        copy.deepcopy(detail),
        state.selected,
        state.active_filter,
        state.view_mode,
        state.notice,
        [t.id for t in state.visible],
        state.should_quit,
    )


@pytest.mark.parametrize("mode", list(SETUPS))
@pytest.mark.parametrize("text", ["y", "abc\n", "q\ny"])
def test_paste_outside_text_fields_changes_nothing(state, router, mode, text):
    SETUPS[mode](router, state)
    assert state.mode == mode
    before = _snapshot(state)
    router.handle(state, Paste(text))
    assert _snapshot(state) == before


def test_paste_only_reaches_text_fields(state, router):
    press(router, state, "a")
    router.handle(state, Paste("magnet:?xt=\nurn:btih:abc\r\n"))
    assert state.flow.text_field.value == "magnet:?xt=urn:btih:abc"


def test_text_editing_keys(state, router):
    press(router, state, "a", "x", "y", "z", "left", "backspace", "home", "delete")
    step = state.flow.step
    assert isinstance(step, InputSource)
    assert step.text.value == "z"


def test_file_select_all_none(state, router):
    press(router, state, "a")
    router.handle(state, Paste(MAGNET))
    [resolve] = press(router, state, "enter")
    state.apply_result(EngineResult(resolve, value=foo_metadata()))
    press(router, state, "enter", "n")
    assert state.flow.step.selected_indices() == frozenset()
    assert press(router, state, "enter") == []
    assert state.notice.error
    press(router, state, "a")
    assert state.flow.step.selected_indices() == {0, 1, 2}


def test_paste_burst_is_dropped_in_main(state):
    ticks = iter([0.0, 1.0, 1.01, 1.02, 2.0])
    router = InputRouter(burst_window=0.2, clock=lambda: next(ticks))
    press(router, state, "?")
    assert state.mode == "help"
    press(router, state, "esc")
    # "d" and "q" follow too quickly and are dropped
    press(router, state, "f", "d", "q")
    assert state.mode == "main"
    assert state.active_filter is Filter.DOWNLOADING
    press(router, state, "?")
    assert state.mode == "help"


def test_navigation_keys_bypass_burst_guard(state):
    router = InputRouter(burst_window=10.0, clock=lambda: 0.0)
    press(router, state, "j", "j")
    assert state.selected == 2


def test_clean_paste():
    assert clean_paste("a\nb\r\nc") == "abc"


def test_view_keys(state, router):
    press(router, state, "i")
    assert state.view_mode is View.INFO
    press(router, state, "v")
    assert state.view_mode is View.PEERS
    press(router, state, "?", "t")
    assert state.view_mode is View.PEERS
    press(router, state, "esc", "t")
    assert state.view_mode is View.TORRENTS
