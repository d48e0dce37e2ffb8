"""Changed-files list satellite.

Usage: python -m claudeplex.satellites.diff_list <controller-pane> <session-id> <worktree-path> [json]

Polls the worktree's diff summary every `diff_poll_interval` seconds. A
`RENDER:{"refresh": true}` push forces an immediate re-read and a
`RENDER:{"files": [...]}` push replaces the list outright.
"""

from __future__ import annotations

import sys
from typing import Any

from claudeplex.config import config
from claudeplex.gitops.diff import DiffFileSummary, diff_summary
from claudeplex.keys import Key, MouseEvent
from claudeplex.logging_config import get_logger
from claudeplex.relay import RelayNamespace
from claudeplex.render.diff import FilePosition, find_clicked_file, render_diff_list
from claudeplex.satellites.base import Satellite, parse_state_arg, run_satellite
from claudeplex.tmux.client import TmuxClient

logger = get_logger(__name__)


class DiffList(Satellite):
    namespace = RelayNamespace.DIFF

    def __init__(
        self,
        controller_pane: str,
        session_id: str,
        worktree_path: str,
        state: dict[str, Any] | None = None,
        tmux: TmuxClient | None = None,
        poll_interval: float | None = None,
    ) -> None:
        super().__init__(controller_pane, tmux)
        self.session_id = session_id
        self.worktree_path = worktree_path
        self.poll_interval = poll_interval if poll_interval is not None else config.diff_poll_interval
        self.files: list[DiffFileSummary] = []
        self.selected = 0
        self.positions: list[FilePosition] = []
        state = state or {}
        if "files" in state:
            self.apply_render(state)
        else:
            self.poll()

    def poll(self) -> None:
        files = diff_summary(self.worktree_path)
        if files != self.files:
            self.files = files
            self.selected = min(self.selected, max(0, len(files) - 1))
            self.dirty = True

    def apply_render(self, payload: dict[str, Any]) -> None:
        if payload.get("refresh"):
            self.poll()
        files = payload.get("files")
        if isinstance(files, list):
            self.files = [DiffFileSummary.from_payload(f) for f in files if isinstance(f, dict)]
            self.selected = min(self.selected, max(0, len(self.files) - 1))

    def render(self) -> str:
        output, self.positions = render_diff_list(self.files, self.selected, self.cols, self.rows)
        return output

    def view_selected(self) -> None:
        if 0 <= self.selected < len(self.files):
            self.send("viewfile", self.files[self.selected].file)

    def handle_key(self, key: Key) -> None:
        last = len(self.files) - 1
        if key.matches("down", "j"):
            self.selected = min(last, self.selected + 1) if last >= 0 else 0
        elif key.matches("up", "k"):
            self.selected = max(0, self.selected - 1)
        elif key.matches("g", "home"):
            self.selected = 0
        elif key.matches("G", "end"):
            self.selected = max(0, last)
        elif key.matches("enter"):
            self.view_selected()
        elif key.matches("r"):
            self.poll()
            self.send("refresh")
        elif key.matches("q", "escape"):
            self.send("close")

    def handle_mouse(self, event: MouseEvent) -> None:
        if event.is_wheel_down:
            self.handle_key(Key("down"))
            return
        if event.is_wheel_up:
            self.handle_key(Key("up"))
            return
        if not event.is_click:
            return
        index = find_clicked_file(event.y, self.positions)
        if index is None:
            return
        if index == self.selected:
            self.view_selected()
        else:
            self.selected = index


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 3:
        print("Usage: diff_list <controller-pane> <session-id> <worktree-path> [state-json]", file=sys.stderr)
        return 1
    state = parse_state_arg(args[3] if len(args) > 3 else None)
    return run_satellite(DiffList(args[0], args[1], args[2], state), "diff-list")


if __name__ == "__main__":
    sys.exit(main())
