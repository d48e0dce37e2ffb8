"""Shared event loop for satellite pane programs.

A satellite draws one pane, reads its own keyboard/mouse input, receives
`RENDER:<json>` pushes on the same stdin, and reports user actions to the
controller through the keystroke relay.
"""

from __future__ import annotations

import json
import signal
import time
from typing import Any

from claudeplex.constants import INPUT_WAKEUP_INTERVAL
from claudeplex.keys import Key, MouseEvent, parse_input
from claudeplex.logging_config import get_logger, setup_logging
from claudeplex.relay import RelayNamespace, RenderFrameReader, send_relay
from claudeplex.terminal_io import raw_terminal, read_input, terminal_size, write
from claudeplex.tmux.client import TmuxClient

logger = get_logger(__name__)


def parse_state_arg(raw: str | None) -> dict[str, Any]:
    """Decode the optional JSON startup argument; malformed input yields {}."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed satellite state argument ({} chars)", len(raw))
        return {}
    return value if isinstance(value, dict) else {}


class Satellite:
    """Base class: subclasses set `namespace` and implement render and input hooks."""

    namespace: RelayNamespace
    poll_interval: float | None = None

    def __init__(self, controller_pane: str, tmux: TmuxClient | None = None) -> None:
        self.controller_pane = controller_pane
        self.tmux = tmux or TmuxClient()
        self.frames = RenderFrameReader()
        self.running = True
        self.dirty = True
        self.cols, self.rows = terminal_size()
        self._last_poll = 0.0

    # Hooks -------------------------------------------------------------

    def render(self) -> str:
        raise NotImplementedError

    def handle_key(self, key: Key) -> None:
        pass

    def handle_mouse(self, event: MouseEvent) -> None:
        pass

    def apply_render(self, payload: dict[str, Any]) -> None:
        pass

    def poll(self) -> None:
        pass

    # Plumbing ----------------------------------------------------------

    def send(self, action: str, data: str | int | None = None) -> bool:
        return send_relay(self.tmux, self.controller_pane, self.namespace, action, data)

    def stop(self) -> None:
        self.running = False

    def invalidate(self) -> None:
        self.dirty = True

    def feed(self, data: str) -> None:
        """Route one read: render pushes first, the rest as keys and mouse events."""
        frames, leftover = self.frames.feed(data)
        for payload in frames:
            self.apply_render(payload)
            self.dirty = True
        for event in parse_input(leftover):
            if isinstance(event, MouseEvent):
                self.handle_mouse(event)
            else:
                self.handle_key(event)
            self.dirty = True

    def _on_signal(self, signum: int, _frame: object) -> None:
        if signum == signal.SIGWINCH:
            self.cols, self.rows = terminal_size()
            self.dirty = True
        else:
            self.stop()

    def _draw(self) -> None:
        if self.dirty:
            write(self.render())
            self.dirty = False

    def run(self) -> int:
        for signum in (signal.SIGINT, signal.SIGTERM, signal.SIGWINCH):
            signal.signal(signum, self._on_signal)
        with raw_terminal() as fd:
            while self.running:
                self._draw()
                timeout = min(self.poll_interval, INPUT_WAKEUP_INTERVAL) if self.poll_interval else INPUT_WAKEUP_INTERVAL
                data = read_input(fd, timeout)
                if data is None:
                    break
                if data:
                    self.feed(data)
                if self.poll_interval is not None and time.monotonic() - self._last_poll >= self.poll_interval:
                    self._last_poll = time.monotonic()
                    self.poll()
        return 0


def run_satellite(satellite: Satellite, component: str) -> int:
    setup_logging(component=component)
    logger.debug("Satellite {} started for controller {}", component, satellite.controller_pane)
    try:
        return satellite.run()
    finally:
        logger.debug("Satellite {} stopped", component)
