"""Thin wrapper over the tmux command line.

Every pane operation here is fire-and-forget. Concurrent transitions in the
controller and the satellites routinely race each other to panes that have
already been killed or moved, so a failing tmux command is reported as
`OperationOutcome.TARGET_GONE` and logged, never raised. The single fatal
outcome is a missing tmux binary, which raises `TmuxUnavailableError`.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from enum import Enum

from claudeplex.config import config
from claudeplex.constants import DEFAULT_COLS, DEFAULT_ROWS
from claudeplex.errors import TmuxUnavailableError
from claudeplex.logging_config import get_logger

logger = get_logger(__name__)


class OperationOutcome(str, Enum):
    """Result classification for a single tmux invocation."""

    SUCCESS = "success"
    TARGET_GONE = "target_gone"
    TOOL_UNAVAILABLE = "tool_unavailable"


@dataclass(frozen=True)
class TmuxResult:
    """Outcome plus captured output of one tmux command."""

    outcome: OperationOutcome
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is OperationOutcome.SUCCESS


class TmuxClient:
    """Stateless tmux command layer.

    Pane, window and session identifiers are opaque strings assigned by tmux
    (`%12`, `@3`, `cpp-repo-a1b2c3`). The client keeps no record of them.
    """

    def __init__(self, binary: str | None = None) -> None:
        self.binary = binary or config.tmux_binary

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def execute(self, *args: str) -> TmuxResult:
        """Run a tmux command and classify the outcome.

        Args:
            *args: tmux command arguments

        Returns:
            TmuxResult with stripped stdout on success, stderr otherwise.

        Raises:
            TmuxUnavailableError: the tmux binary cannot be executed.
        """
        try:
            result = subprocess.run(
                [self.binary, *args],
                capture_output=True,
                text=True,
                check=True,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise TmuxUnavailableError(f"tmux is not available ({self.binary}): {exc}") from exc
        except subprocess.CalledProcessError as exc:
            logger.debug("tmux {} failed: {}", args[0] if args else "", (exc.stderr or "").strip())
            return TmuxResult(OperationOutcome.TARGET_GONE, (exc.stderr or "").strip())
        return TmuxResult(OperationOutcome.SUCCESS, result.stdout.strip())

    def run(self, *args: str) -> str:
        """Run a tmux command and return its output ("" on failure)."""
        return self.execute(*args).output

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def has_session(self, name: str) -> bool:
        return self.execute("has-session", "-t", name).ok

    def new_session(self, name: str, cwd: str) -> str | None:
        """Create a detached session and return its root pane id."""
        result = self.execute("new-session", "-d", "-s", name, "-c", cwd, "-P", "-F", "#{pane_id}")
        return (result.output or None) if result.ok else None

    def kill_session(self, name: str) -> None:
        self.run("kill-session", "-t", name)

    def detach_client(self) -> None:
        self.run("detach-client")

    def attach_session(self, name: str) -> int:
        """Attach the current terminal to a session; blocks until detach."""
        try:
            completed = subprocess.run([self.binary, "attach-session", "-t", name], check=False)
        except (FileNotFoundError, PermissionError) as exc:
            raise TmuxUnavailableError(f"tmux is not available ({self.binary}): {exc}") from exc
        return completed.returncode

    # ------------------------------------------------------------------
    # Panes
    # ------------------------------------------------------------------

    def current_pane_id(self) -> str | None:
        """Pane this process runs in.

        Prefers TMUX_PANE (set per-pane by tmux) over display-message, which
        reports the focused pane rather than ours.
        """
        pane_id = os.environ.get("TMUX_PANE")
        if pane_id:
            return pane_id
        return self.run("display-message", "-p", "#{pane_id}") or None

    def new_background_pane(self, session: str, cwd: str | None = None) -> str | None:
        """Create a pane in a detached background window of the session."""
        args = ["new-window", "-d", "-t", f"{session}:", "-P", "-F", "#{pane_id}"]
        if cwd:
            args.extend(["-c", cwd])
        result = self.execute(*args)
        return (result.output or None) if result.ok else None

    def split_pane(
        self,
        target: str,
        *,
        vertical: bool,
        percent: int | None = None,
        lines: int | None = None,
        cwd: str | None = None,
        before: bool = False,
    ) -> str | None:
        """Split a pane and return the new sibling's id.

        Args:
            target: Pane to split.
            vertical: True stacks the new pane below (or above), False places it to the right (or left).
            percent: Size of the NEW pane as a share of the target.
            lines: Absolute size of the NEW pane in rows/columns.
            cwd: Working directory for the new pane's shell.
            before: Place the new pane above/left of the target.
        """
        args = ["split-window", "-v" if vertical else "-h", "-d", "-t", target]
        if before:
            args.append("-b")
        if percent is not None:
            args.extend(["-l", f"{percent}%"])
        elif lines is not None:
            args.extend(["-l", str(lines)])
        if cwd:
            args.extend(["-c", cwd])
        args.extend(["-P", "-F", "#{pane_id}"])
        result = self.execute(*args)
        return (result.output or None) if result.ok else None

    def resize_pane(self, pane_id: str, width: int | None = None, height: int | None = None) -> None:
        if width is None and height is None:
            return
        args = ["resize-pane", "-t", pane_id]
        if width is not None:
            args.extend(["-x", str(width)])
        if height is not None:
            args.extend(["-y", str(height)])
        self.run(*args)

    def select_pane(self, pane_id: str) -> None:
        self.run("select-pane", "-t", pane_id)

    def send_keys(self, pane_id: str, text: str, enter: bool = False) -> bool:
        """Type literal text into a pane, optionally followed by Enter."""
        ok = self.execute("send-keys", "-t", pane_id, "-l", text).ok
        if ok and enter:
            ok = self.execute("send-keys", "-t", pane_id, "Enter").ok
        return ok

    def send_key(self, pane_id: str, key: str) -> bool:
        """Send a named key (C-u, C-c, Enter, Escape) to a pane."""
        return self.execute("send-keys", "-t", pane_id, key).ok

    def break_pane(self, pane_id: str) -> None:
        """Move a pane into its own background window. The pane id survives."""
        self.run("break-pane", "-d", "-s", pane_id)

    def join_pane(
        self, source: str, target: str, *, vertical: bool, size: str | None = None, before: bool = False
    ) -> None:
        """Move a background pane next to target (right of it, or below when vertical)."""
        args = ["join-pane", "-d", "-v" if vertical else "-h"]
        if before:
            args.append("-b")
        if size:
            args.extend(["-l", size])
        args.extend(["-s", source, "-t", target])
        self.run(*args)

    def kill_pane(self, pane_id: str) -> None:
        self.run("kill-pane", "-t", pane_id)

    def respawn_pane(self, pane_id: str, command: str) -> None:
        """Replace the pane's process with command, without echoing it."""
        self.run("respawn-pane", "-k", "-t", pane_id, command)

    def pane_exists(self, pane_id: str) -> bool:
        return self.run("display-message", "-p", "-t", pane_id, "#{pane_id}") == pane_id

    def pane_window(self, pane_id: str) -> str | None:
        """Window id holding a pane, None when the pane is gone."""
        return self.run("display-message", "-p", "-t", pane_id, "#{window_id}") or None

    def pane_size(self, pane_id: str) -> tuple[int, int]:
        """Return (width, height) of a pane, 80x24 when unknown."""
        output = self.run("display-message", "-p", "-t", pane_id, "#{pane_width} #{pane_height}")
        try:
            width, height = (int(part) for part in output.split())
        except ValueError:
            return DEFAULT_COLS, DEFAULT_ROWS
        return width, height

    # ------------------------------------------------------------------
    # Hooks, bindings, options
    # ------------------------------------------------------------------

    def set_hook(self, session: str, hook: str, command: str) -> None:
        self.run("set-hook", "-t", session, hook, command)

    def remove_hook(self, session: str, hook: str) -> None:
        self.run("set-hook", "-u", "-t", session, hook)

    def bind_key(self, table: str, key: str, *command: str) -> None:
        self.run("bind-key", "-T", table, key, *command)

    def unbind_key(self, table: str, key: str) -> None:
        self.run("unbind-key", "-T", table, key)

    def set_option(self, name: str, value: str, *, global_: bool = False, target: str | None = None) -> None:
        args = ["set-option"]
        if global_:
            args.append("-g")
        if target:
            args.extend(["-t", target])
        args.extend([name, value])
        self.run(*args)

    def show_option(self, name: str, *, global_: bool = True) -> str | None:
        """Read an option value; None when unset."""
        result = self.execute("show-option", "-gqv" if global_ else "-qv", name)
        return (result.output or None) if result.ok else None

    def unset_option(self, name: str, *, global_: bool = True) -> None:
        self.run("set-option", "-gu" if global_ else "-u", name)
