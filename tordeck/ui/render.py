"""Turn a ``ViewModel`` into Rich markup for the Textual widgets."""

from __future__ import annotations

import humanize
from rich.markup import escape

from ..core.add_flow import AddFlow, ChooseDirectory, InputSource, ResolvingMetadata, SelectFiles, Submitting
from ..core.dialogs import ConfirmDialog, HelpOverlay
from ..core.state import ViewModel
from ..core.text_input import TextInput
from ..models import Filter, TorrentStatus, TorrentView, View


STATUS_LABELS = {
    TorrentStatus.DOWNLOADING: "⬇️  Downloading",
    TorrentStatus.SEEDING: "⬆️  Seeding",
    TorrentStatus.PAUSED: "⏸  Paused",
    TorrentStatus.ERROR: "⚠️  Error",
    TorrentStatus.INITIALIZING: "🔎 Initializing",
}

HINTS = "[a] add  [p] pause/resume  [d] delete  [Tab] filter  [?] help  [q] quit"


TABLE_COLUMNS = ("Name", "Size", "Done", "ETA", "↓", "↑", "Ratio", "Status")


def torrent_row(t: TorrentView) -> tuple[str, ...]:
    return (
        escape(t.display_name),
        t.size_label,
        t.percent_label,
        t.eta_label,
        t.down_label,
        t.up_label,
        f"{t.ratio:.2f}",
        STATUS_LABELS[t.status],
    )


def render_filters(view: ViewModel) -> str:
    lines = ["[b]Filters[/]"]
    for idx, flt in enumerate(Filter, start=1):
        label = f"{idx} {flt.label} ({view.counts.get(flt, 0)})"
        lines.append(f"[reverse]{label}[/]" if flt is view.filter else label)
    return "\n".join(lines)


def render_status(view: ViewModel) -> str:
    if view.notice is None:
        return f"Ready · {escape(HINTS)}"
    text = escape(view.notice.text)
    if view.notice.error:
        return f"[red]{text}[/] · [dim]x to dismiss[/]"
    return f"[cyan]{text}[/]"


def render_stats(view: ViewModel) -> str:
    stats = view.stats
    down = stats.down_label if stats else "-"
    up = stats.up_label if stats else "-"
    active = str(stats.active) if stats else "-"
    return "\n".join(
        [
            "[b]Stats[/]",
            f"Down: [green]{down}[/]",
            f"Up: [yellow]{up}[/]",
            f"Active: {active}",
            f"Seeding: {view.counts.get(Filter.SEEDING, 0)}",
            f"Total: {view.counts.get(Filter.ALL, 0)}",
        ]
    )


def render_details(view: ViewModel) -> str:
    if view.selected is None:
        return "[dim]Nothing selected[/]"
    t = view.torrents[view.selected]
    if view.view_mode is View.INFO:
        return _render_info(t)
    if view.view_mode is View.PEERS:
        return _render_peers(t)
    lines = [
        f"[b]{escape(t.display_name)}[/]",
        f"Status: {STATUS_LABELS[t.status]}",
        f"Done: {t.percent_label}",
        f"ETA: {t.eta_label}",
        f"Speed: ↓ {t.down_label} / ↑ {t.up_label}",
        f"Path: {escape(t.download_dir)}",
    ]
    if t.error:
        lines.append(f"[red]Error: {escape(t.error)}[/]")
    return "\n".join(lines)


def _render_info(t: TorrentView) -> str:
    return "\n".join(
        [
            "[b]Info[/]",
            f"Name: {escape(t.display_name)}",
            f"Output: {escape(t.download_dir)}",
            f"Progress: {t.done_label}",
            f"Uploaded: {humanize.naturalsize(t.uploaded, binary=True)}",
            f"Ratio: {t.ratio:.2f}",
            f"Hash: {t.info_hash}",
        ]
    )


def _render_peers(t: TorrentView) -> str:
    if t.status is TorrentStatus.PAUSED:
        return "[b]Peers[/]\n\n[dim]Torrent is paused, no live peer data.[/]"
    return "\n".join(
        [
            "[b]Peers[/]",
            f"Connected: {t.peers}",
            f"Sending to us: {t.seeders}",
            f"Receiving from us: {t.leechers}",
        ]
    )


def _text_field(field: TextInput) -> str:
    before = escape(field.value[: field.cursor])
    at = escape(field.value[field.cursor : field.cursor + 1] or " ")
    after = escape(field.value[field.cursor + 1 :])
    return f"> {before}[reverse]{at}[/]{after}"


def render_dialog(view: ViewModel) -> str | None:
    dialog = view.dialog
    if dialog is None:
        return None
    if isinstance(dialog, HelpOverlay):
        body = "\n".join(escape(line) for line in dialog.visible_lines)
        footer = f"Scroll {dialog.scroll_offset}/{dialog.max_offset}" if dialog.max_offset else ""
        return f"[b]Help[/]\n\n{body}\n{footer}".rstrip()
    if isinstance(dialog, ConfirmDialog):
        yes = "[reverse] Yes [/]" if dialog.choice else " Yes "
        no = " No " if dialog.choice else "[reverse] No [/]"
        return f"[b]Confirm[/]\n\n{escape(dialog.prompt)}\n\n{yes}   {no}"
    return _render_add(dialog)


def _render_add(flow: AddFlow) -> str:
    step = flow.step
    if isinstance(step, InputSource):
        return f"[b]Add torrent[/]\n\nMagnet link, URL or .torrent path:\n{_text_field(step.text)}\n\n[dim]Enter next · Esc cancel[/]"
    if isinstance(step, ResolvingMetadata):
        return f"[b]Add torrent[/]\n\nFetching metadata for\n{escape(step.source)}\n\n[dim]Esc cancel[/]"
    if isinstance(step, ChooseDirectory):
        files = len(step.metadata.files)
        return (
            f"[b]{escape(step.metadata.name or 'Add torrent')}[/] ({files} files)\n\n"
            f"Download directory:\n{_text_field(step.custom_path)}\n\n"
            "[dim]Enter next · Esc cancel[/]"
        )
    if isinstance(step, SelectFiles):
        lines = [f"[b]Select files[/] → {escape(step.target_dir)}", ""]
        for idx, choice in enumerate(step.files):
            mark = "[x]" if choice.selected else "[ ]"
            line = f"{escape(mark)} {escape(choice.name)} ({humanize.naturalsize(choice.size, binary=True)})"
            lines.append(f"[reverse]{line}[/]" if idx == step.cursor else line)
        lines += ["", "[dim]Space toggle · a all · n none · Enter download · Esc cancel[/]"]
        return "\n".join(lines)
    if isinstance(step, Submitting):
        return f"[b]Add torrent[/]\n\nStarting {escape(step.name)}\ninto {escape(step.target_dir)}\n\n[dim]Esc close[/]"
    return "[b]Add torrent[/]"
