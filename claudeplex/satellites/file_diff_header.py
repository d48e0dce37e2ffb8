"""One-row header above the file diff content pane.

Usage: python -m claudeplex.satellites.file_diff_header <controller-pane> <file> <insertions> <deletions> [mode]
"""

from __future__ import annotations

import sys
from typing import Any

from claudeplex.keys import Key, MouseEvent
from claudeplex.models import DiffViewMode
from claudeplex.relay import RelayNamespace
from claudeplex.render.diff import HeaderButtons, back_button_span, render_file_header
from claudeplex.satellites.base import Satellite, run_satellite
from claudeplex.tmux.client import TmuxClient


def _to_int(value: str) -> int:
    try:
        return max(0, int(value))
    except ValueError:
        return 0


class FileDiffHeader(Satellite):
    namespace = RelayNamespace.FILEDIFF

    def __init__(
        self,
        controller_pane: str,
        file: str,
        insertions: int = 0,
        deletions: int = 0,
        mode: DiffViewMode = DiffViewMode.WHOLE_FILE,
        tmux: TmuxClient | None = None,
    ) -> None:
        super().__init__(controller_pane, tmux)
        self.file = file
        self.insertions = insertions
        self.deletions = deletions
        self.mode = mode
        self.buttons: HeaderButtons | None = None

    def apply_render(self, payload: dict[str, Any]) -> None:
        mode = payload.get("mode")
        if mode in (m.value for m in DiffViewMode):
            self.mode = DiffViewMode(mode)

    def render(self) -> str:
        output, self.buttons = render_file_header(self.file, self.insertions, self.deletions, self.cols, self.mode)
        return output

    def request_mode(self, mode: DiffViewMode) -> None:
        if mode is not self.mode:
            self.mode = mode
            self.send("mode", mode.value)

    def toggle_mode(self) -> None:
        other = DiffViewMode.DIFFS_ONLY if self.mode is DiffViewMode.WHOLE_FILE else DiffViewMode.WHOLE_FILE
        self.request_mode(other)

    def handle_key(self, key: Key) -> None:
        if key.matches("m", "tab"):
            self.toggle_mode()
        elif key.matches("escape", "q", "enter", "backspace"):
            self.send("close")

    def handle_mouse(self, event: MouseEvent) -> None:
        if not event.is_click:
            return
        start, end = back_button_span()
        if start <= event.x <= end:
            self.send("close")
            return
        mode = self.buttons.mode_at(event.x) if self.buttons else None
        if mode is not None:
            self.request_mode(mode)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 4:
        print("Usage: file_diff_header <controller-pane> <file> <insertions> <deletions> [mode]", file=sys.stderr)
        return 1
    mode = DiffViewMode.WHOLE_FILE
    if len(args) > 4 and args[4] in (m.value for m in DiffViewMode):
        mode = DiffViewMode(args[4])
    header = FileDiffHeader(args[0], args[1], _to_int(args[2]), _to_int(args[3]), mode)
    return run_satellite(header, "file-diff-header")


if __name__ == "__main__":
    sys.exit(main())
