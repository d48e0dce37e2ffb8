"""Terminal tab bar satellite.

Usage: python -m claudeplex.satellites.terminal_bar <controller-pane> <session-id> [json]

The JSON state is `{"terminals": [{"id", "title", "paneId"}], "activeIndex": n}`.
"""

from __future__ import annotations

import sys
from typing import Any

from claudeplex.keys import Key, MouseEvent
from claudeplex.relay import RelayNamespace
from claudeplex.render.terminal_bar import NEW_TERMINAL_INDEX, TabPosition, find_clicked_tab, render_terminal_bar
from claudeplex.satellites.base import Satellite, parse_state_arg, run_satellite
from claudeplex.tmux.client import TmuxClient


class TerminalBar(Satellite):
    namespace = RelayNamespace.TERM

    def __init__(
        self,
        controller_pane: str,
        session_id: str,
        state: dict[str, Any] | None = None,
        tmux: TmuxClient | None = None,
    ) -> None:
        super().__init__(controller_pane, tmux)
        self.session_id = session_id
        self.terminals: list[dict[str, Any]] = []
        self.active_index = 0
        self.positions: list[TabPosition] = []
        self.apply_render(state or {})

    def apply_render(self, payload: dict[str, Any]) -> None:
        terminals = payload.get("terminals")
        if isinstance(terminals, list):
            self.terminals = [t for t in terminals if isinstance(t, dict)]
        active = payload.get("activeIndex")
        if isinstance(active, int):
            self.active_index = active

    def render(self) -> str:
        output, self.positions = render_terminal_bar(self.terminals, self.active_index, self.cols)
        return output

    def switch(self, index: int) -> None:
        if 0 <= index < len(self.terminals) and index != self.active_index:
            self.send("switch", index)

    def handle_key(self, key: Key) -> None:
        count = len(self.terminals)
        if key.is_char and key.char in "123456789":
            self.switch(int(key.char) - 1)
        elif key.matches("tab", "right", "l") and count:
            self.switch((self.active_index + 1) % count)
        elif key.matches("shift-tab", "left", "h") and count:
            self.switch((self.active_index - 1) % count)
        elif key.matches("n", "c"):
            self.send("new")
        elif key.matches("d") and count:
            self.send("delete", self.active_index)
        elif key.matches("enter"):
            self.send("focus")
        elif key.matches("escape"):
            self.send("escape")

    def handle_mouse(self, event: MouseEvent) -> None:
        if not event.is_click:
            return
        index = find_clicked_tab(event.x, self.positions)
        if index is None:
            return
        if index == NEW_TERMINAL_INDEX:
            self.send("new")
        elif index == self.active_index:
            self.send("focus")
        else:
            self.send("switch", index)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        print("Usage: terminal_bar <controller-pane> <session-id> [state-json]", file=sys.stderr)
        return 1
    state = parse_state_arg(args[2] if len(args) > 2 else None)
    return run_satellite(TerminalBar(args[0], args[1], state), "terminal-bar")


if __name__ == "__main__":
    sys.exit(main())
