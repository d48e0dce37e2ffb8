"""One-row terminal tab bar."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from claudeplex.constants import (
    MAX_TERMINAL_HOTKEYS,
    MIN_TAB_WIDTH,
    NEW_TERMINAL_BUTTON,
    NO_TERMINALS,
    TAB_PREFIX_WIDTH,
    TERMINAL_HINTS,
)
from claudeplex.render.ansi import BOLD, CLEAR_LINE, CYAN, DIM, GRAY, HIDE_CURSOR, RESET, move_to

NEW_TERMINAL_INDEX = -1

_ACTIVE_TAB = "\x1b[46m\x1b[30m"


@dataclass(frozen=True)
class TabPosition:
    """Columns (1-based, inclusive) occupied by a tab; index -1 is the [+] button."""

    index: int
    start_col: int
    end_col: int


def render_terminal_bar(
    terminals: Sequence[dict[str, Any]], active_index: int, width: int
) -> tuple[str, list[TabPosition]]:
    """Render the bar and report where each tab landed for click handling."""
    positions: list[TabPosition] = []
    hints = TERMINAL_HINTS
    out = [HIDE_CURSOR, CLEAR_LINE, move_to(1, 1)]

    if not terminals:
        message = f"{NO_TERMINALS}. Press 'n' to create."
        out.append(f"{DIM}{message}{RESET}")
        out.append(" " * max(1, width - len(message) - len(hints) - 2))
        out.append(f"{DIM}{hints}{RESET}")
        return "".join(out), positions

    available = width - len(hints) - TAB_PREFIX_WIDTH
    max_tab_width = max(MIN_TAB_WIDTH, available // len(terminals) - 1)
    max_title = max_tab_width - 4

    col = 1
    for index, terminal in enumerate(terminals):
        title = str(terminal.get("title", ""))
        if len(title) > max_title:
            title = title[: max(0, max_title - 2)] + ".."
        number = index + 1
        text = f" {number}:{title} " if number <= MAX_TERMINAL_HOTKEYS else f" {title} "
        positions.append(TabPosition(index, col, col + len(text) - 1))
        if index == active_index:
            out.append(f"{_ACTIVE_TAB}{BOLD}{text}{RESET}")
        else:
            out.append(f"{DIM}{text}{RESET}")
        col += len(text)
        if index < len(terminals) - 1:
            out.append(f"{GRAY}|{RESET}")
            col += 1

    plus = f" {NEW_TERMINAL_BUTTON}"
    positions.append(TabPosition(NEW_TERMINAL_INDEX, col, col + len(plus) - 1))
    out.append(f"{CYAN}{plus}{RESET}")
    col += len(plus)

    out.append(" " * max(1, width - (col - 1) - len(hints) - 1))
    out.append(f"{DIM}{hints}{RESET}")
    return "".join(out), positions


def find_clicked_tab(col: int, positions: Sequence[TabPosition]) -> int | None:
    """Tab index under a click column, -1 for [+], None for empty space."""
    for position in positions:
        if position.start_col <= col <= position.end_col:
            return position.index
    return None
