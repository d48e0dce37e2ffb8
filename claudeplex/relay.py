"""Keystroke relay between satellite panes and the controller.

Satellites have no channel to the controller other than tmux's key
injection, so a message is typed into the controller pane as three
injections:

    send-keys C-u                      (opens command mode)
    send-keys -l "TERM:switch:2"       (NAMESPACE:action[:data])
    send-keys Enter                    (terminates the line)

The controller feeds its raw input through `RelayDecoder`, which separates
these lines from ordinary keystrokes.

Reserved-input invariant: Ctrl+U (0x15) is never bound to a user action in
the controller. Only a complete `NAMESPACE:action` line that follows it is
honoured. A command-mode buffer that goes idle for longer than the relay
timeout, or grows past RELAY_MAX_LINE, is abandoned. Everything else is
handed back as ordinary input.

The reverse direction (controller -> satellite) is a `RENDER:<json>` line,
framed by the satellite with `RenderFrameReader`.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Union

from claudeplex.constants import RELAY_CLEAR_CHAR, RELAY_CLEAR_KEY, RELAY_MAX_LINE, RENDER_PREFIX
from claudeplex.logging_config import get_logger
from claudeplex.tmux.client import TmuxClient

logger = get_logger(__name__)


class RelayNamespace(str, Enum):
    """One namespace per satellite family."""

    TERM = "TERM"
    DIFF = "DIFF"
    FILEDIFF = "FILEDIFF"


_LINE_RE = re.compile(r"^(?P<ns>[A-Z]+):(?P<action>[a-z][a-z0-9-]*)(?::(?P<data>.*))?$", re.DOTALL)


@dataclass(frozen=True)
class RelayMessage:
    """Decoded satellite -> controller message."""

    namespace: RelayNamespace
    action: str
    data: str = ""

    def as_tuple(self) -> tuple[str, str, str]:
        return self.namespace.value, self.action, self.data

    def int_data(self) -> int | None:
        """Data parsed as an integer (tab indexes), None when not numeric."""
        try:
            return int(self.data)
        except ValueError:
            return None


def encode_relay(namespace: RelayNamespace, action: str, data: str | int | None = None) -> str:
    """Build the literal line for a relay message."""
    if data is None or data == "":
        return f"{namespace.value}:{action}"
    return f"{namespace.value}:{action}:{data}"


def decode_relay(line: str) -> RelayMessage | None:
    """Parse a relay line; None for anything that is not a known namespace."""
    match = _LINE_RE.match(line.strip("\r\n"))
    if not match:
        return None
    try:
        namespace = RelayNamespace(match.group("ns"))
    except ValueError:
        return None
    return RelayMessage(namespace, match.group("action"), match.group("data") or "")


def send_relay(
    tmux: TmuxClient,
    controller_pane: str,
    namespace: RelayNamespace,
    action: str,
    data: str | int | None = None,
) -> bool:
    """Deliver a message to the controller pane.

    No acknowledgement and no retry: when the controller pane is gone the
    message is dropped.
    """
    line = encode_relay(namespace, action, data)
    if not tmux.send_key(controller_pane, RELAY_CLEAR_KEY):
        logger.debug("Relay {} dropped: controller pane {} unreachable", line, controller_pane)
        return False
    if not tmux.send_keys(controller_pane, line, enter=True):
        logger.debug("Relay {} dropped mid-send", line)
        return False
    return True


RelayEvent = Union[RelayMessage, str]


class RelayDecoder:
    """Split controller input into relay messages and ordinary keystrokes.

    `feed()` returns events in arrival order: `RelayMessage` for decoded
    lines, `str` for input that belongs to the normal key handler.
    """

    def __init__(self, idle_timeout: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._buffer: str | None = None
        self._last_input = 0.0

    @property
    def active(self) -> bool:
        return self._buffer is not None

    def reset(self) -> None:
        self._buffer = None

    def feed(self, data: str) -> list[RelayEvent]:
        now = self._clock()
        if self._buffer is not None and now - self._last_input > self.idle_timeout:
            logger.debug("Relay command mode expired with {!r}", self._buffer)
            self._buffer = None
        self._last_input = now

        events: list[RelayEvent] = []
        passthrough: list[str] = []

        def flush() -> None:
            if passthrough:
                events.append("".join(passthrough))
                passthrough.clear()

        for char in data:
            if char == RELAY_CLEAR_CHAR:
                flush()
                self._buffer = ""
                continue
            if self._buffer is None:
                passthrough.append(char)
                continue
            if char in ("\r", "\n"):
                message = decode_relay(self._buffer)
                if message is None:
                    logger.debug("Discarding unrecognised relay line {!r}", self._buffer)
                else:
                    events.append(message)
                self._buffer = None
                continue
            if char == "\x1b":
                # Escape cancels command mode and still reaches the key handler.
                self._buffer = None
                passthrough.append(char)
                continue
            self._buffer += char
            if len(self._buffer) > RELAY_MAX_LINE:
                logger.debug("Relay buffer overflow, abandoning command mode")
                self._buffer = None

        flush()
        return events


def encode_render(payload: dict[str, Any]) -> str:
    """Literal line pushed into a satellite pane."""
    return RENDER_PREFIX + json.dumps(payload, separators=(",", ":"))


class RenderFrameReader:
    """Satellite-side framing of `RENDER:<json>` lines.

    A long push can arrive over several reads. Once the prefix has been
    seen, input accumulates until the terminating carriage return.
    """

    def __init__(self) -> None:
        self._pending: str | None = None

    def feed(self, data: str) -> tuple[list[dict[str, Any]], str]:
        """Return (decoded frames, leftover keyboard input)."""
        frames: list[dict[str, Any]] = []
        leftover: list[str] = []
        rest = data
        while rest:
            if self._pending is None:
                start = rest.find(RENDER_PREFIX)
                if start == -1:
                    leftover.append(rest)
                    break
                leftover.append(rest[:start])
                self._pending = ""
                rest = rest[start + len(RENDER_PREFIX) :]
                continue
            end = min((i for i in (rest.find("\r"), rest.find("\n")) if i != -1), default=-1)
            if end == -1:
                self._pending += rest
                break
            body = self._pending + rest[:end]
            self._pending = None
            rest = rest[end + 1 :]
            try:
                payload = json.loads(body)
            except json.JSONDecodeError:
                logger.debug("Dropping malformed render frame ({} chars)", len(body))
                continue
            if isinstance(payload, dict):
                frames.append(payload)
        return frames, "".join(leftover)
