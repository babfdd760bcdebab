from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class DeleteTorrent:
    torrent_id: int
    name: str


@dataclass(frozen=True)
class QuitApplication:
    pass


ConfirmAction = Union[DeleteTorrent, QuitApplication]


@dataclass
class ConfirmDialog:
    """Yes/No question bound to one action, run only on an explicit Yes."""

    prompt: str
    on_yes: ConfirmAction
    choice: bool = False

    def select(self, yes: bool) -> None:
        self.choice = yes


HELP_LINES: tuple[str, ...] = (
    "Selection",
    "  [↑/↓] [j/k]   Select torrent",
    "  [Tab] [f]     Next status filter",
    "  [1-5]         All / Downloading / Seeding / Paused / Error",
    "  [t] [i] [v]   Details: summary / info / peers",
    "",
    "Actions",
    "  [a]           Add torrent (magnet, URL or .torrent path)",
    "  [p] [Space]   Pause/Resume",
    "  [d]           Delete (confirm dialog)",
    "  [r]           Refresh now",
    "  [x] [Esc]     Dismiss message",
    "",
    "Add torrent",
    "  [Enter]       Next step",
    "  [Esc]         Cancel",
    "  [Space]       Toggle file",
    "  [a] / [n]     Select all / none",
    "",
    "Dialogs",
    "  [←/→] [h/l]   Choose Yes/No",
    "  [y] / [n]     Yes / No",
    "",
    "Exit",
    "  [q] [Ctrl+C]  Quit",
    "",
    "Press ? / x / Esc to close",
)


@dataclass
class HelpOverlay:
    lines: tuple[str, ...] = HELP_LINES
    viewport_height: int = 12
    scroll_offset: int = 0

    @property
    def content_length(self) -> int:
        return len(self.lines)

    @property
    def max_offset(self) -> int:
        return max(0, self.content_length - self.viewport_height)

    @property
    def visible_lines(self) -> tuple[str, ...]:
        return self.lines[self.scroll_offset : self.scroll_offset + self.viewport_height]

    def scroll(self, delta: int) -> None:
        self.scroll_offset = max(0, min(self.scroll_offset + delta, self.max_offset))

    def page(self, direction: int) -> None:
        self.scroll(direction * max(1, self.viewport_height))

    def home(self) -> None:
        self.scroll_offset = 0

    def end(self) -> None:
        self.scroll_offset = self.max_offset

    def resize(self, viewport_height: int) -> None:
        self.viewport_height = max(1, viewport_height)
        self.scroll(0)
