"""Sidebar and fullscreen dialog rendering.

All functions are pure: they take controller state plus the pane size and
return the full screen as a string. `hit_test` maps a mouse click back onto
the same row layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from claudeplex import __version__
from claudeplex.constants import (
    APP_TITLE,
    FOOTER_ROW_COUNT,
    HEADER_ROW_COUNT,
    INPUT_MAX_WIDTH,
    LIST_ITEM_PADDING,
    MODAL_MAX_WIDTH,
    NEW_WORKTREE_BUTTON,
    WORKTREE_ITEM_PADDING,
)
from claudeplex.models import DeleteTargetKind, ModalKind
from claudeplex.render.ansi import (
    BOLD,
    CLEAR_SCREEN,
    CYAN,
    DIM,
    GRAY,
    GREEN,
    HIDE_CURSOR,
    INVERSE,
    RED,
    RESET,
    SHOW_CURSOR,
    WHITE,
    YELLOW,
    centered_pad,
    move_to,
    truncate,
    word_wrap,
)
from claudeplex.state import ControllerState, ListItemType, build_list_items

COLLAPSE_BUTTON = "◀"
EXPAND_BUTTON = "▸"
ITEM_PLUS_BUTTON = "[+]"

_FOOTER_HINTS = (
    ("↵", " ", "new session"),
    ("n", " ", "new worktree"),
    ("^T", "", "terminal"),
    ("^D", "", "diff"),
    ("d", " ", "delete"),
    ("r", " ", "rename"),
    ("^Q", "", "quit"),
)


def _visible_item_count(total: int, rows: int) -> int:
    return max(0, min(total, rows - FOOTER_ROW_COUNT - HEADER_ROW_COUNT))


def render_main(state: ControllerState, cols: int, rows: int) -> str:
    out = [HIDE_CURSOR, CLEAR_SCREEN, move_to(1, 1)]
    out.append(f"{BOLD}{CYAN}{APP_TITLE}{RESET}")
    out.append(" " * max(0, cols - len(APP_TITLE) - 2))
    out.append(f"{GRAY}{COLLAPSE_BUTTON}{RESET}\n")
    out.append(f"{DIM}{'─' * max(0, cols - 1)}{RESET}\n")

    items = build_list_items(state)
    for index, item in enumerate(items[: _visible_item_count(len(items), rows)]):
        line = INVERSE if index == state.selected_index else ""
        if item.type is ListItemType.SESSION and item.id == state.active_session_id:
            line += YELLOW
        elif item.type is ListItemType.WORKTREE and state.sessions_for(item.id):
            line += GREEN
        elif item.type is ListItemType.SESSION:
            line += GRAY

        if item.type is ListItemType.WORKTREE:
            icon = "◆" if item.worktree.is_main else "◇"
            name = truncate(item.label, cols - WORKTREE_ITEM_PADDING)
            line += f"{icon} {name}{RESET}"
            line += " " * max(0, cols - len(name) - WORKTREE_ITEM_PADDING)
            line += f"{CYAN}{ITEM_PLUS_BUTTON}{RESET}"
        else:
            line += f"  └ {truncate(item.label, cols - LIST_ITEM_PADDING)}{RESET}"
        out.append(line + "\n")

    out.append("\n")
    out.append(f"{CYAN}{NEW_WORKTREE_BUTTON}{RESET}\n")

    out.append(move_to(max(1, rows - FOOTER_ROW_COUNT + 1), 1))
    out.append(f"{DIM}{'─' * max(0, cols - 1)}{RESET}\n")
    for key, spacer, label in _FOOTER_HINTS:
        out.append(f"{CYAN}{key}{RESET} {spacer}{DIM}{label}{RESET}\n")
    out.append(f"{DIM}v{__version__}{RESET}")
    return "".join(out)


def render_collapsed(session_count: int) -> str:
    out = [HIDE_CURSOR, CLEAR_SCREEN, move_to(1, 1), f"{CYAN}{EXPAND_BUTTON}{RESET}"]
    if session_count:
        out.append(move_to(3, 1))
        out.append(f"{GREEN}{session_count}{RESET}")
    return "".join(out)


def _title_block(title: str, color: str, cols: int, start_row: int) -> list[str]:
    separator = min(MODAL_MAX_WIDTH, cols - 4)
    return [
        HIDE_CURSOR,
        CLEAR_SCREEN,
        move_to(start_row, 1),
        centered_pad(cols, len(title)),
        f"{BOLD}{color}{title}{RESET}\n\n",
        centered_pad(cols, separator),
        f"{DIM}{'─' * max(0, separator)}{RESET}\n\n",
    ]


def _option(pad: str, label: str, selected: bool, accent: str) -> str:
    if selected:
        return f"{pad}{BOLD}{accent}▸ {RESET}{BOLD}{INVERSE} {label} {RESET}"
    return f"{pad}  {WHITE}  {label} {RESET}"


def render_quit_modal(state: ControllerState, cols: int, rows: int) -> str:
    out = _title_block(f"Exit {APP_TITLE}", YELLOW, cols, rows // 3)
    count = len(state.sessions)
    info = f"{count} active session{'' if count == 1 else 's'}"
    out.append(f"{centered_pad(cols, len(info))}{CYAN}{info}{RESET}\n\n\n")

    pad = centered_pad(cols, 50, minimum=4)
    out.append(_option(pad, "Detach", state.modal.selection == 0, GREEN) + "\n")
    out.append(f"{pad}  {DIM}  Keep sessions running in background{RESET}\n")
    out.append(f"{pad}  {DIM}  Reattach later with: claudeplex{RESET}\n\n")
    out.append(_option(pad, "Kill All", state.modal.selection == 1, RED) + "\n")
    out.append(f"{pad}  {DIM}  Terminate all sessions and exit{RESET}\n")
    out.append(f"{pad}  {RED}{DIM}  Warning: Unsaved work will be lost{RESET}\n\n\n")

    hint = "↑↓ Select   Enter Confirm   Esc Cancel"
    out.append(f"{centered_pad(cols, len(hint))}{DIM}{hint}{RESET}")
    return "".join(out)


def render_delete_modal(state: ControllerState, cols: int, rows: int) -> str:
    target = state.modal.delete_target
    is_session = target is not None and target.kind is DeleteTargetKind.SESSION
    title = "Delete Session?" if is_session else "Delete Worktree?"
    name = target.name if target else ""
    out = _title_block(title, RED, cols, rows // 4)
    out.append(f"{centered_pad(cols, len(name) + 4)}{YELLOW}\"{truncate(name, cols - 10)}\"{RESET}\n\n")

    pad = centered_pad(cols, 56, minimum=4)
    if is_session:
        out.append(f"{pad}{CYAN}Sessions can be resumed later!{RESET}\n\n")
        out.append(f"{pad}{DIM}To resume this session, run:{RESET}\n")
        out.append(f"{pad}{GREEN}  claude --resume{RESET}\n\n")
        out.append(f"{pad}{DIM}This closes the pane; the conversation history is kept.{RESET}\n\n")
    else:
        count = len(state.sessions_for(target.id)) if target else 0
        out.append(f"{pad}{RED}{BOLD}Warning: This action cannot be undone!{RESET}\n\n")
        if count:
            out.append(f"{pad}{YELLOW}{count} session{'' if count == 1 else 's'} will be terminated{RESET}\n\n")
        out.append(f"{pad}{DIM}This will:{RESET}\n")
        out.append(f"{pad}{DIM}  • Delete the git worktree directory{RESET}\n")
        if count:
            out.append(f"{pad}{DIM}  • Terminate all associated sessions{RESET}\n")
        out.append("\n")

    opt_pad = centered_pad(cols, 40, minimum=4)
    out.append(_option(opt_pad, "No, Keep It", state.modal.selection == 0, GREEN) + "\n\n")
    out.append(_option(opt_pad, "Yes, Delete", state.modal.selection == 1, RED) + "\n\n\n")

    hint = "↑↓ Select   Enter Confirm   y/n Quick   Esc Cancel"
    out.append(f"{centered_pad(cols, len(hint))}{DIM}{hint}{RESET}")
    return "".join(out)


_INPUT_COPY = {
    ModalKind.NEW_SESSION: (
        "New Session",
        "Session name:",
        ("Create a new agent session in this worktree.", "Sessions run in parallel and can be switched anytime."),
    ),
    ModalKind.NEW_WORKTREE: (
        "New Worktree",
        "Branch name:",
        ("Create a new git worktree with its own branch.", "Worktrees allow working on multiple features in parallel."),
    ),
    ModalKind.RENAME: ("Rename", "New name:", ("Rename the selected session.",)),
}


def render_input_modal(state: ControllerState, cols: int, rows: int) -> str:
    title, prompt, context = _INPUT_COPY.get(state.modal.kind, ("Input", "Value:", ()))
    out = _title_block(title, CYAN, cols, rows // 3)

    ctx_pad = centered_pad(cols, 50, minimum=4)
    for line in context:
        out.append(f"{ctx_pad}{DIM}{line}{RESET}\n")
    out.append("\n")
    out.append(f"{centered_pad(cols, len(prompt) + 4, minimum=4)}{WHITE}{prompt}{RESET}\n\n")

    max_width = min(INPUT_MAX_WIDTH, cols - 10)
    text = state.modal.input_buffer
    shown = text[-max_width:] if len(text) > max_width else text
    input_pad = centered_pad(cols, max_width + 6, minimum=4)
    out.append(f"{input_pad}{CYAN}▸ {RESET}{WHITE}{shown}{RESET}{YELLOW}{INVERSE} {RESET}\n")
    out.append(f"{input_pad}  {DIM}{'─' * max(0, max_width + 2)}{RESET}\n\n\n")

    hint = "Enter Confirm   Esc Cancel"
    out.append(f"{centered_pad(cols, len(hint))}{DIM}{hint}{RESET}")
    out.append(SHOW_CURSOR)
    return "".join(out)


def render_error_modal(state: ControllerState, cols: int, rows: int) -> str:
    out = _title_block("Error", RED, cols, rows // 4)
    message = state.modal.error_message or "An unknown error occurred."
    width = min(56, cols - 8)
    msg_pad = centered_pad(cols, width, minimum=4)
    for line in word_wrap(message, width):
        out.append(f"{msg_pad}{WHITE}{line}{RESET}\n")
    out.append("\n\n")
    out.append(f"{centered_pad(cols, 10, minimum=4)}{BOLD}{CYAN}▸ {RESET}{BOLD}{INVERSE} OK {RESET}\n\n\n")
    hint = "Enter or Esc to dismiss"
    out.append(f"{centered_pad(cols, len(hint))}{DIM}{hint}{RESET}")
    return "".join(out)


def render(state: ControllerState, cols: int, rows: int) -> str:
    """Whole sidebar screen for the current modal/collapse state."""
    kind = state.modal.kind
    if kind is ModalKind.QUIT:
        return render_quit_modal(state, cols, rows)
    if kind is ModalKind.DELETE:
        return render_delete_modal(state, cols, rows)
    if kind is ModalKind.ERROR:
        return render_error_modal(state, cols, rows)
    if kind in _INPUT_COPY:
        return render_input_modal(state, cols, rows)
    if state.collapsed:
        return render_collapsed(len(state.sessions))
    return render_main(state, cols, rows)


class HitKind(str, Enum):
    NONE = "none"
    COLLAPSE = "collapse"
    ITEM = "item"
    ITEM_PLUS = "item-plus"
    NEW_WORKTREE = "new-worktree"


@dataclass(frozen=True)
class SidebarHit:
    kind: HitKind
    index: int = -1


def hit_test(state: ControllerState, x: int, y: int, cols: int, rows: int) -> SidebarHit:
    """Map a 1-based click position in the main view to what was clicked."""
    if y == 1:
        return SidebarHit(HitKind.COLLAPSE) if x >= cols - 2 else SidebarHit(HitKind.NONE)
    items = build_list_items(state)
    visible = _visible_item_count(len(items), rows)
    first_row = HEADER_ROW_COUNT
    index = y - first_row
    if 0 <= index < visible:
        item = items[index]
        if item.type is ListItemType.WORKTREE and x >= cols - len(ITEM_PLUS_BUTTON):
            return SidebarHit(HitKind.ITEM_PLUS, index)
        return SidebarHit(HitKind.ITEM, index)
    if y == first_row + visible + 1:
        return SidebarHit(HitKind.NEW_WORKTREE)
    return SidebarHit(HitKind.NONE)
