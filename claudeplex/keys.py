"""Decode raw terminal input into keys and SGR mouse events.

Panes run in raw mode with SGR mouse reporting (`\\x1b[?1006h`), so a
single read can carry several keystrokes, escape sequences and mouse
reports back to back.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

ENABLE_MOUSE = "\x1b[?1000h\x1b[?1006h"
DISABLE_MOUSE = "\x1b[?1000l\x1b[?1006l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_SCREEN = "\x1b[2J\x1b[H"

_MOUSE_RE = re.compile(r"\x1b\[<(\d+);(\d+);(\d+)([Mm])")

_SEQUENCES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageup",
    "\x1b[6~": "pagedown",
    "\x1b[Z": "shift-tab",
}
# Longest first so "\x1b[1~" wins over a shorter prefix.
_ORDERED_SEQUENCES = sorted(_SEQUENCES, key=len, reverse=True)

_CONTROL_NAMES = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x1b": "escape",
}


@dataclass(frozen=True)
class Key:
    """One keystroke. Printable input has name "char" and the character in `char`."""

    name: str
    char: str = ""

    @property
    def is_char(self) -> bool:
        return self.name == "char"

    def matches(self, *names: str) -> bool:
        """True when the key is any of the given names or printable characters."""
        return self.name in names or (self.is_char and self.char in names)


@dataclass(frozen=True)
class MouseEvent:
    """SGR mouse report; x and y are 1-based cell coordinates."""

    button: int
    x: int
    y: int
    pressed: bool

    @property
    def is_click(self) -> bool:
        return self.button == 0 and self.pressed

    @property
    def is_wheel_up(self) -> bool:
        return self.button == 64

    @property
    def is_wheel_down(self) -> bool:
        return self.button == 65


InputEvent = Union[Key, MouseEvent]


def parse_mouse(data: str) -> MouseEvent | None:
    match = _MOUSE_RE.match(data)
    if not match:
        return None
    button, x, y, kind = match.groups()
    return MouseEvent(int(button), int(x), int(y), kind == "M")


def parse_input(data: str) -> list[InputEvent]:
    """Split a raw read into events in arrival order."""
    events: list[InputEvent] = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == "\x1b":
            mouse = _MOUSE_RE.match(data, i)
            if mouse:
                button, x, y, kind = mouse.groups()
                events.append(MouseEvent(int(button), int(x), int(y), kind == "M"))
                i = mouse.end()
                continue
            sequence = next((s for s in _ORDERED_SEQUENCES if data.startswith(s, i)), None)
            if sequence:
                events.append(Key(_SEQUENCES[sequence]))
                i += len(sequence)
                continue
            following = data[i + 1] if i + 1 < len(data) else ""
            if following and following.isprintable() and following not in "[O":
                events.append(Key("alt", following))
                i += 2
                continue
            events.append(Key("escape"))
            i += 1
            continue
        if char in _CONTROL_NAMES:
            events.append(Key(_CONTROL_NAMES[char]))
        elif "\x01" <= char <= "\x1a":
            events.append(Key(f"ctrl-{chr(ord(char) + 96)}"))
        elif char.isprintable():
            events.append(Key("char", char))
        i += 1
    return events
