"""Diff list pane and file diff header rendering."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Sequence

from claudeplex.gitops.diff import DiffFileSummary
from claudeplex.models import DiffViewMode
from claudeplex.render.ansi import (
    BOLD,
    CLEAR_SCREEN,
    CYAN,
    DIM,
    GRAY,
    GREEN,
    HIDE_CURSOR,
    INVERSE,
    MAGENTA,
    RED,
    RESET,
    YELLOW,
    move_to,
    truncate,
    visible_len,
)

_CHANGE_COLORS = {
    "M": YELLOW,
    "A": GREEN,
    "D": RED,
    "R": MAGENTA,
    "C": CYAN,
    "U": RED,
    "?": GRAY,
}

LIST_HEADER_ROWS = 2
LIST_FOOTER_ROWS = 3

DIFFS_BUTTON = "[Diffs]"
FULL_BUTTON = "[Full]"
HEADER_MIN_WIDTH = 60


@dataclass(frozen=True)
class FilePosition:
    index: int
    row: int


def format_count(value: int) -> str:
    return "999+" if value > 999 else str(value)


def format_stats(insertions: int, deletions: int) -> str:
    parts = []
    if insertions > 0:
        parts.append(f"{GREEN}+{format_count(insertions)}{RESET}")
    if deletions > 0:
        parts.append(f"{RED}-{format_count(deletions)}{RESET}")
    return " ".join(parts)


def render_diff_list(
    files: Sequence[DiffFileSummary], selected: int, width: int, height: int
) -> tuple[str, list[FilePosition]]:
    """Changed-files list; returns the screen and the row of every visible file."""
    positions: list[FilePosition] = []
    title = "Changed Files"
    out = [HIDE_CURSOR, CLEAR_SCREEN, move_to(1, 1)]
    out.append(" " * max(0, (width - len(title)) // 2))
    out.append(f"{BOLD}{CYAN}{title}{RESET}\n")
    out.append(f"{DIM}{'─' * max(0, width - 1)}{RESET}\n")
    footer_row = max(1, height - 2)

    if not files:
        out.append(move_to(LIST_HEADER_ROWS + 2, 1))
        out.append(f"{DIM}No changes detected{RESET}\n\n")
        out.append(f"{DIM}Make some changes to{RESET}\n")
        out.append(f"{DIM}see them here.{RESET}")
        out.append(move_to(footer_row, 1))
        out.append(f"{DIM}{'─' * max(0, width - 1)}{RESET}\n")
        out.append(f"{DIM}Esc close{RESET}")
        return "".join(out), positions

    list_height = max(1, height - LIST_HEADER_ROWS - LIST_FOOTER_ROWS)
    start = max(0, selected - list_height // 2)
    end = min(len(files), start + list_height)

    for index in range(start, end):
        summary = files[index]
        row = LIST_HEADER_ROWS + 1 + index - start
        positions.append(FilePosition(index, row))
        out.append(move_to(row, 1))

        change = summary.change_type
        type_str = f"{_CHANGE_COLORS.get(change, '')}{change}{RESET} "
        if summary.binary:
            stats = "[bin]"
        else:
            stats = format_stats(summary.insertions, summary.deletions)
        stats_len = visible_len(stats)
        name = truncate(PurePosixPath(summary.file).name, max(5, width - 2 - stats_len - 2 - 1))
        gap = max(1, width - 2 - len(name) - stats_len - 1)
        content = name + " " * gap + stats
        if index == selected:
            out.append(f"{type_str}{INVERSE}{content}{RESET}\n")
        else:
            out.append(f"{type_str}{content}\n")

    if len(files) > list_height:
        marker = round(selected / max(1, len(files) - 1) * (list_height - 1))
        for offset in range(list_height):
            out.append(move_to(LIST_HEADER_ROWS + 1 + offset, width))
            out.append(f"{CYAN}█{RESET}" if offset == marker else f"{DIM}│{RESET}")

    out.append(move_to(footer_row, 1))
    out.append(f"{DIM}{'─' * max(0, width - 1)}{RESET}\n")
    out.append(f"{DIM}↵ view  q close{RESET}")
    return "".join(out), positions


def find_clicked_file(row: int, positions: Sequence[FilePosition]) -> int | None:
    for position in positions:
        if position.row == row:
            return position.index
    return None


@dataclass(frozen=True)
class HeaderButtons:
    """Inclusive 1-based column spans of the mode toggle buttons."""

    diffs_only: tuple[int, int]
    whole_file: tuple[int, int]

    def mode_at(self, col: int) -> DiffViewMode | None:
        if self.diffs_only[0] <= col <= self.diffs_only[1]:
            return DiffViewMode.DIFFS_ONLY
        if self.whole_file[0] <= col <= self.whole_file[1]:
            return DiffViewMode.WHOLE_FILE
        return None


BACK_LABEL = "← Back"


def render_file_header(
    file: str, insertions: int, deletions: int, width: int, mode: DiffViewMode = DiffViewMode.WHOLE_FILE
) -> tuple[str, HeaderButtons]:
    """One-row header: back hint, file name, stats and the [Diffs] [Full] toggle."""
    width = max(width, HEADER_MIN_WIDTH)
    out = [HIDE_CURSOR, CLEAR_SCREEN, move_to(1, 1)]
    out.append(f"{CYAN}{BOLD}{BACK_LABEL}{RESET} {DIM}[Esc]{RESET}{DIM} │ {RESET}")
    out.append(f"{BOLD}{PurePosixPath(file).name}{RESET}")
    stats = format_stats(insertions, deletions)
    if stats:
        out.append(f"  {stats}")

    buttons_width = len(DIFFS_BUTTON) + 1 + len(FULL_BUTTON)
    diffs_start = width - buttons_width + 1
    diffs_end = diffs_start + len(DIFFS_BUTTON) - 1
    full_start = diffs_end + 2
    full_end = full_start + len(FULL_BUTTON) - 1

    out.append(move_to(1, diffs_start))
    diffs_style = INVERSE if mode is DiffViewMode.DIFFS_ONLY else DIM
    full_style = INVERSE if mode is DiffViewMode.WHOLE_FILE else DIM
    out.append(f"{diffs_style}{DIFFS_BUTTON}{RESET} {full_style}{FULL_BUTTON}{RESET}")
    return "".join(out), HeaderButtons((diffs_start, diffs_end), (full_start, full_end))


def back_button_span() -> tuple[int, int]:
    """Columns of the back label plus its [Esc] hint."""
    return 1, len(BACK_LABEL) + len(" [Esc]")
