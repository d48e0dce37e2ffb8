"""Scrollable file diff viewer.

Usage: python -m claudeplex.satellites.file_diff_content <controller-pane> <worktree-path> <file> <mode>
"""

from __future__ import annotations

import sys

from claudeplex.gitops.diff import render_file_diff
from claudeplex.keys import Key, MouseEvent
from claudeplex.models import DiffViewMode
from claudeplex.relay import RelayNamespace
from claudeplex.render.ansi import CLEAR_SCREEN, DIM, HIDE_CURSOR, RESET, move_to
from claudeplex.satellites.base import Satellite, run_satellite
from claudeplex.tmux.client import TmuxClient

WHEEL_STEP = 3


class FileDiffContent(Satellite):
    namespace = RelayNamespace.FILEDIFF

    def __init__(
        self,
        controller_pane: str,
        worktree_path: str,
        file: str,
        mode: DiffViewMode = DiffViewMode.WHOLE_FILE,
        tmux: TmuxClient | None = None,
    ) -> None:
        super().__init__(controller_pane, tmux)
        self.worktree_path = worktree_path
        self.file = file
        self.mode = mode
        self.scroll = 0
        self.lines = render_file_diff(worktree_path, file, mode).split("\n")

    @property
    def max_scroll(self) -> int:
        return max(0, len(self.lines) - self.rows + 1)

    def scroll_by(self, delta: int) -> None:
        self.scroll = max(0, min(self.max_scroll, self.scroll + delta))

    def render(self) -> str:
        visible = self.lines[self.scroll : self.scroll + self.rows - 1]
        out = [HIDE_CURSOR, CLEAR_SCREEN, move_to(1, 1), "\n".join(visible)]
        if len(self.lines) > self.rows - 1:
            status = f"{self.scroll + 1}-{self.scroll + len(visible)}/{len(self.lines)}"
            out.append(f"{move_to(self.rows, 1)}{DIM}{status}  j/k scroll  q close{RESET}")
        return "".join(out)

    def handle_key(self, key: Key) -> None:
        page = max(1, self.rows - 2)
        if key.matches("down", "j"):
            self.scroll_by(1)
        elif key.matches("up", "k"):
            self.scroll_by(-1)
        elif key.matches("pagedown", "space", " "):
            self.scroll_by(page)
        elif key.matches("pageup"):
            self.scroll_by(-page)
        elif key.matches("g", "home"):
            self.scroll = 0
        elif key.matches("G", "end"):
            self.scroll = self.max_scroll
        elif key.matches("escape", "q"):
            self.send("close")

    def handle_mouse(self, event: MouseEvent) -> None:
        if event.is_wheel_down:
            self.scroll_by(WHEEL_STEP)
        elif event.is_wheel_up:
            self.scroll_by(-WHEEL_STEP)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 3:
        print("Usage: file_diff_content <controller-pane> <worktree-path> <file> [mode]", file=sys.stderr)
        return 1
    mode = DiffViewMode.WHOLE_FILE
    if len(args) > 3 and args[3] in (m.value for m in DiffViewMode):
        mode = DiffViewMode(args[3])
    return run_satellite(FileDiffContent(args[0], args[1], args[2], mode), "file-diff-content")


if __name__ == "__main__":
    sys.exit(main())
