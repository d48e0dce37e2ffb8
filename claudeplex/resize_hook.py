"""Resize enforcement for the one-row terminal tab bar.

tmux has no notion of a fixed-height pane: dragging a border or joining a
pane nearby redistributes rows into the tab bar. The fix-up has to run
inside tmux's hook context, which only accepts shell commands, so a small
script is generated per (agent, bar, body) pane triple and registered both
as the session's `after-resize-pane` hook and as the root-table
`MouseDragEnd1Border` binding.

The hook reports that something resized, not which border moved. The script
therefore compares each neighbour's height to the height recorded on its
previous run. The neighbour that shrank is the one the user dragged, and the
other neighbour absorbs the rows the bar gained.

Re-entrancy (the script's own resize-pane calls fire the hook again) is
guarded by a tmux global user option used as a `SharedFlag`.
"""

from __future__ import annotations

import shlex
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from claudeplex.constants import (
    BORDER_DRAG_KEY,
    PREV_AGENT_HEIGHT_OPTION,
    PREV_BODY_HEIGHT_OPTION,
    RESIZE_HOOK_NAME,
    RESIZE_LOCK_OPTION,
    RESIZE_SCRIPT_PREFIX,
)
from claudeplex.logging_config import get_logger
from claudeplex.tmux.client import TmuxClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class PaneTriple:
    """The three stacked panes whose middle one must keep a fixed height."""

    agent: str
    bar: str
    body: str


class SharedFlag:
    """A cross-process boolean stored as a tmux global user option.

    tmux offers no lock primitive reachable from both Python and the hook
    shell, so the flag is just a keyed value that every holder must clear on
    every exit path.
    """

    def __init__(self, tmux: TmuxClient, name: str = RESIZE_LOCK_OPTION) -> None:
        self.tmux = tmux
        self.name = name

    def is_set(self) -> bool:
        return bool(self.tmux.show_option(self.name, global_=True))

    def set(self) -> None:
        self.tmux.set_option(self.name, "1", global_=True)

    def clear(self) -> None:
        self.tmux.unset_option(self.name, global_=True)

    @contextmanager
    def held(self) -> Iterator[None]:
        self.set()
        try:
            yield
        finally:
            self.clear()


def script_path_for(triple: PaneTriple, script_dir: str | Path | None = None) -> Path:
    """Deterministic script location derived from the agent/bar pane pair."""
    directory = Path(script_dir or tempfile.gettempdir())
    agent = triple.agent.replace("%", "")
    bar = triple.bar.replace("%", "")
    return directory / f"{RESIZE_SCRIPT_PREFIX}{agent}-{bar}.sh"


def generate_script(triple: PaneTriple, target_height: int, tmux_binary: str = "tmux") -> str:
    """Render the reconciliation script for one pane triple.

    Steps:
        1. exit when the lock flag is held
        2. exit when the bar already has the target height
        3. read current and previously recorded neighbour heights
        4. hold the lock (cleared by an EXIT trap) and hand the bar's
           overshoot to the neighbour that did NOT shrink
        5. force the bar back to the target height
        6. record both neighbours' final heights for the next run
    """
    q = shlex.quote
    return f"""#!/bin/sh
# claudeplex: keep {triple.bar} at {target_height} row(s) between {triple.agent} and {triple.body}
TMUX_BIN={q(tmux_binary)}
AGENT={q(triple.agent)}
BAR={q(triple.bar)}
BODY={q(triple.body)}
TARGET={int(target_height)}

height() {{
  "$TMUX_BIN" display-message -p -t "$1" '#{{pane_height}}' 2>/dev/null
}}

[ -n "$("$TMUX_BIN" show-option -gqv {RESIZE_LOCK_OPTION})" ] && exit 0

BAR_H=$(height "$BAR")
[ -z "$BAR_H" ] && exit 0
[ "$BAR_H" -eq "$TARGET" ] && exit 0

AGENT_H=$(height "$AGENT")
BODY_H=$(height "$BODY")
PREV_AGENT=$("$TMUX_BIN" show-option -gqv {PREV_AGENT_HEIGHT_OPTION})
PREV_BODY=$("$TMUX_BIN" show-option -gqv {PREV_BODY_HEIGHT_OPTION})

"$TMUX_BIN" set-option -g {RESIZE_LOCK_OPTION} 1
trap '"$TMUX_BIN" set-option -gu {RESIZE_LOCK_OPTION}' EXIT

D=$((BAR_H - TARGET))
if [ "$D" -gt 0 ]; then
  if [ -n "$AGENT_H" ] && [ -n "$PREV_AGENT" ] && [ "$AGENT_H" -lt "$PREV_AGENT" ]; then
    "$TMUX_BIN" resize-pane -t "$BODY" -U "$D"
  elif [ -n "$BODY_H" ] && [ -n "$PREV_BODY" ] && [ "$BODY_H" -lt "$PREV_BODY" ]; then
    "$TMUX_BIN" resize-pane -t "$AGENT" -D "$D"
  fi
fi

"$TMUX_BIN" resize-pane -t "$BAR" -y "$TARGET"

AGENT_H=$(height "$AGENT")
BODY_H=$(height "$BODY")
[ -n "$AGENT_H" ] && "$TMUX_BIN" set-option -g {PREV_AGENT_HEIGHT_OPTION} "$AGENT_H"
[ -n "$BODY_H" ] && "$TMUX_BIN" set-option -g {PREV_BODY_HEIGHT_OPTION} "$BODY_H"
exit 0
"""


class ResizeEnforcer:
    """Installs and removes the generated hook for one tmux session."""

    def __init__(self, tmux: TmuxClient, script_dir: str | Path | None = None) -> None:
        self.tmux = tmux
        self.script_dir = Path(script_dir or tempfile.gettempdir())
        self.lock = SharedFlag(tmux)
        self.installed: PaneTriple | None = None
        self._script_path: Path | None = None

    def install(self, session_name: str, triple: PaneTriple, target_height: int) -> Path:
        """(Re)install enforcement for a triple, replacing any previous one."""
        if self._script_path and self.installed != triple:
            self._discard_script()

        path = script_path_for(triple, self.script_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(generate_script(triple, target_height, self.tmux.binary), encoding="utf-8")
        path.chmod(0o755)

        # Seed the previous heights so the first drag can be attributed.
        _, agent_h = self.tmux.pane_size(triple.agent)
        _, body_h = self.tmux.pane_size(triple.body)
        self.tmux.set_option(PREV_AGENT_HEIGHT_OPTION, str(agent_h), global_=True)
        self.tmux.set_option(PREV_BODY_HEIGHT_OPTION, str(body_h), global_=True)

        shell_command = f"sh {shlex.quote(str(path))}"
        self.tmux.set_hook(session_name, RESIZE_HOOK_NAME, f"run-shell {shlex.quote(shell_command)}")
        self.tmux.bind_key("root", BORDER_DRAG_KEY, "run-shell", shell_command)

        self.installed = triple
        self._script_path = path
        logger.debug("Resize enforcement installed for {} at {}", triple, path)
        return path

    def remove(self, session_name: str) -> None:
        """Drop the hook and restore the default border binding. Call before killing the governed panes."""
        self.tmux.remove_hook(session_name, RESIZE_HOOK_NAME)
        self.tmux.bind_key("root", BORDER_DRAG_KEY, "resize-pane", "-M")
        self._discard_script()
        self.installed = None

    def _discard_script(self) -> None:
        if self._script_path is None:
            return
        try:
            self._script_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.debug("Could not remove resize script {}: {}", self._script_path, exc)
        self._script_path = None
