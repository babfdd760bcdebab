"""Application state machine: dialogs, add workflow, filtering and input routing."""

from .add_flow import AddFlow, ChooseDirectory, FileChoice, InputSource, ResolvingMetadata, SelectFiles, Submitting
from .dialogs import ConfirmDialog, DeleteTorrent, HelpOverlay, QuitApplication
from .filters import clamp_selection, count_by_filter, visible_list
from .input import InputRouter, KeyPress, Paste
from .requests import (
    AddRequest,
    DeleteRequest,
    EngineRequest,
    EngineResult,
    PauseRequest,
    RefreshRequest,
    ResolveRequest,
    ResumeRequest,
)
from .state import AppState, Notice, ViewModel

__all__ = [
    "AddFlow",
    "AddRequest",
    "AppState",
    "ChooseDirectory",
    "ConfirmDialog",
    "DeleteRequest",
    "DeleteTorrent",
    "EngineRequest",
    "EngineResult",
    "FileChoice",
    "HelpOverlay",
    "InputRouter",
    "InputSource",
    "KeyPress",
    "Notice",
    "Paste",
    "PauseRequest",
    "QuitApplication",
    "RefreshRequest",
    "ResolveRequest",
    "ResolvingMetadata",
    "ResumeRequest",
    "SelectFiles",
    "Submitting",
    "ViewModel",
    "clamp_selection",
    "count_by_filter",
    "visible_list",
]
