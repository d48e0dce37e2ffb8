"""Raw terminal input/output for pane programs (controller and satellites)."""

from __future__ import annotations

import codecs
import contextlib
import os
import select
import sys
import termios
import tty
from typing import Iterator

from claudeplex.constants import DEFAULT_COLS, DEFAULT_ROWS
from claudeplex.keys import DISABLE_MOUSE, ENABLE_MOUSE, HIDE_CURSOR, SHOW_CURSOR

READ_CHUNK = 4096

_Utf8Decoder = codecs.getincrementaldecoder("utf-8")
_decoders: dict[int, codecs.IncrementalDecoder] = {}


@contextlib.contextmanager
def raw_terminal(fd: int | None = None, mouse: bool = True) -> Iterator[int]:
    """Raw input with output post-processing kept, so "\\n" still returns the carriage.

    Raw (not cbreak) keeps Ctrl+C, Ctrl+Q and Ctrl+S as ordinary bytes. The
    previous mode, mouse reporting and cursor are restored on every exit path.
    """
    fd = sys.stdin.fileno() if fd is None else fd
    if not os.isatty(fd):
        yield fd
        return
    saved = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        attrs = termios.tcgetattr(fd)
        attrs[1] |= termios.OPOST | termios.ONLCR
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
        write((ENABLE_MOUSE if mouse else "") + HIDE_CURSOR)
        yield fd
    finally:
        write((DISABLE_MOUSE if mouse else "") + SHOW_CURSOR)
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def read_input(fd: int, timeout: float | None) -> str | None:
    """Wait up to timeout for input. Returns "" on timeout, None on EOF.

    A UTF-8 sequence split across two reads is held back until it completes.
    """
    ready, _, _ = select.select([fd], [], [], timeout)
    if not ready:
        return ""
    data = os.read(fd, READ_CHUNK)
    decoder = _decoders.setdefault(fd, _Utf8Decoder(errors="ignore"))
    if not data:
        decoder.reset()
        return None
    return decoder.decode(data)


def terminal_size(fd: int | None = None) -> tuple[int, int]:
    """(cols, rows) of the pane, 80x24 when not a terminal."""
    try:
        size = os.get_terminal_size(sys.stdout.fileno() if fd is None else fd)
    except OSError:
        return DEFAULT_COLS, DEFAULT_ROWS
    return size.columns or DEFAULT_COLS, size.lines or DEFAULT_ROWS


def write(text: str) -> None:
    if not text:
        return
    sys.stdout.write(text)
    sys.stdout.flush()
