"""ANSI escape codes and width helpers shared by every pane renderer."""

from __future__ import annotations

import re

CSI = "\x1b["

RESET = f"{CSI}0m"
BOLD = f"{CSI}1m"
DIM = f"{CSI}2m"
INVERSE = f"{CSI}7m"

BLACK = f"{CSI}30m"
RED = f"{CSI}31m"
GREEN = f"{CSI}32m"
YELLOW = f"{CSI}33m"
BLUE = f"{CSI}34m"
MAGENTA = f"{CSI}35m"
CYAN = f"{CSI}36m"
WHITE = f"{CSI}37m"
GRAY = f"{CSI}90m"

BG_GRAY = f"{CSI}100m"
BG_BLUE = f"{CSI}44m"

CLEAR_SCREEN = f"{CSI}2J"
CLEAR_LINE = f"{CSI}2K"
HIDE_CURSOR = f"{CSI}?25l"
SHOW_CURSOR = f"{CSI}?25h"

ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def move_to(row: int, col: int) -> str:
    return f"{CSI}{row};{col}H"


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


def visible_len(text: str) -> int:
    return len(strip_ansi(text))


def truncate(text: str, limit: int) -> str:
    """Cut to `limit` characters, marking the cut with an ellipsis."""
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def pad(text: str, width: int, char: str = " ") -> str:
    if len(text) >= width:
        return text
    return text + char * (width - len(text))


def center(text: str, width: int) -> str:
    if len(text) >= width:
        return text
    left = (width - len(text)) // 2
    return " " * left + text + " " * (width - len(text) - left)


def centered_pad(width: int, content_width: int, minimum: int = 0) -> str:
    """Left padding that centers a block of content_width columns."""
    return " " * max(minimum, (width - content_width) // 2)


def word_wrap(text: str, width: int) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split(" "):
        if len(current) + len(word) + 1 <= width:
            current = f"{current} {word}" if current else word
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines
