"""Create or reattach the tmux session that hosts the sidebar controller."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from pathlib import Path

from claudeplex.config import AppConfig, config
from claudeplex.constants import SESSION_NAME_PREFIX, SESSION_PROJECT_MAX
from claudeplex.logging_config import get_logger
from claudeplex.runtime.binaries import resolve_python_binary
from claudeplex.tmux.client import TmuxClient

logger = get_logger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

# Keys tmux forwards to the sidebar no matter which pane has focus.
FORWARDED_KEYS = ("C-t", "C-g", "C-q", "C-d")
MAIN_PANE_PERCENT = 75

WELCOME_TEXT = """
  Claude++  parallel agent sessions, one git worktree each

  ----------------------------------------------------------

  SIDEBAR

  Up/Down, j/k   Navigate worktrees and sessions
  Enter          New session on a worktree, or switch to a session
  n              New worktree
  d              Delete selected item
  r              Rename selected session

  ANYWHERE

  Ctrl+T         New terminal in the active session
  Ctrl+D         Toggle the changed-files pane
  Ctrl+G         Collapse or expand the sidebar
  Ctrl+Q         Detach or kill everything

  TMUX

  Ctrl+B arrows  Move between panes
  Ctrl+B d       Detach (sessions keep running)

  ----------------------------------------------------------

  Select a worktree in the sidebar and press Enter to begin.
"""


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def path_hash(path: str) -> str:
    """Six base36 digits derived from the path with a 32-bit rolling hash."""
    h = 0
    for char in path:
        h = ((h << 5) - h + ord(char)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return _base36(abs(h))[:6]


def session_name_for(repo_path: str) -> str:
    """Stable tmux session name for a repository checkout."""
    project = os.path.basename(repo_path.rstrip("/")) or "project"
    return f"{SESSION_NAME_PREFIX}-{project[:SESSION_PROJECT_MAX]}-{path_hash(repo_path)}"


@dataclass(frozen=True)
class LaunchResult:
    session_name: str
    created: bool
    exit_code: int


class Launcher:
    """Builds the initial two-pane layout and attaches to it.

    The root pane of the new session becomes the sidebar and runs the
    controller; the pane split off to its right shows the welcome screen
    until the first agent session takes it over.
    """

    def __init__(self, tmux: TmuxClient, settings: AppConfig | None = None) -> None:
        self.tmux = tmux
        self.settings = settings or config

    def launch(self, repo_path: str, session_name: str | None = None, force_new: bool = False) -> LaunchResult:
        name = session_name or session_name_for(repo_path)
        if self.tmux.has_session(name):
            if not force_new:
                logger.info("Reattaching to existing session {}", name)
                return LaunchResult(name, False, self.tmux.attach_session(name))
            logger.info("Killing existing session {}", name)
            self.tmux.kill_session(name)

        sidebar_pane = self.create(repo_path, name)
        if sidebar_pane is None:
            return LaunchResult(name, False, 1)
        return LaunchResult(name, True, self.tmux.attach_session(name))

    def create(self, repo_path: str, name: str) -> str | None:
        """Build the session; returns the sidebar pane id or None on failure."""
        logger.info("Creating session {} for {}", name, repo_path)
        sidebar_pane = self.tmux.new_session(name, repo_path)
        if sidebar_pane is None:
            logger.error("tmux refused to create session {}", name)
            return None
        self.configure(name)

        main_pane = self.tmux.split_pane(
            sidebar_pane,
            vertical=False,
            percent=MAIN_PANE_PERCENT,
            cwd=repo_path,
        )
        if main_pane is None:
            logger.error("Could not split the main pane in {}", name)
            self.tmux.kill_session(name)
            return None

        self.tmux.send_keys(main_pane, shlex.quote(str(self.write_welcome_script(name))), enter=True)
        self.tmux.send_keys(sidebar_pane, self.controller_command(repo_path, name, main_pane, sidebar_pane), enter=True)
        self.bind_keys(name, sidebar_pane)
        self.tmux.resize_pane(sidebar_pane, width=self.settings.sidebar_width)
        self.tmux.select_pane(sidebar_pane)
        return sidebar_pane

    def configure(self, name: str) -> None:
        self.tmux.set_option("mouse", "on", global_=True)
        self.tmux.set_option("status", "off", target=name)
        self.tmux.set_option("pane-border-style", "fg=colour238", target=name)
        self.tmux.set_option("pane-active-border-style", "fg=colour39", target=name)

    def controller_command(self, repo_path: str, name: str, main_pane: str, sidebar_pane: str) -> str:
        argv = [resolve_python_binary(), "-m", "claudeplex.controller", repo_path, name, main_pane, sidebar_pane]
        return " ".join(shlex.quote(part) for part in argv)

    def write_welcome_script(self, name: str) -> Path:
        script_dir = Path(self.settings.script_dir)
        script_dir.mkdir(parents=True, exist_ok=True)
        script = script_dir / f"claudeplex-welcome-{name}.sh"
        script.write_text(f"#!/bin/sh\nclear\ncat << 'WELCOME'\n{WELCOME_TEXT}WELCOME\nread -r _\n", encoding="utf-8")
        script.chmod(0o755)
        return script

    def bind_keys(self, name: str, sidebar_pane: str) -> None:
        """Session hooks and root-table bindings that route to the sidebar."""
        self.tmux.set_hook(name, "client-attached", f"resize-pane -t {sidebar_pane} -x {self.settings.sidebar_width}")
        for key in FORWARDED_KEYS:
            self.tmux.bind_key("root", key, "send-keys", "-t", sidebar_pane, key)

        over_sidebar = f"#{{==:#{{pane_id}},{sidebar_pane}}}"
        for wheel in ("WheelUpPane", "WheelDownPane"):
            self.tmux.bind_key("root", wheel, "if-shell", "-F", over_sidebar, "", "copy-mode -e; send-keys -M")
