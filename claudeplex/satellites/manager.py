"""Start satellite programs in panes and push render state into them."""

from __future__ import annotations

import importlib.util
import json
import shlex
from enum import Enum
from typing import Any

from claudeplex.logging_config import get_logger
from claudeplex.relay import encode_render
from claudeplex.runtime.binaries import resolve_python_binary
from claudeplex.tmux.client import TmuxClient

logger = get_logger(__name__)


class SatelliteKind(str, Enum):
    """Satellite programs; values are module names under claudeplex.satellites."""

    TERMINAL_BAR = "terminal_bar"
    DIFF_LIST = "diff_list"
    FILE_DIFF_HEADER = "file_diff_header"
    FILE_DIFF_CONTENT = "file_diff_content"

    @property
    def module(self) -> str:
        return f"claudeplex.satellites.{self.value}"


def _locate(module: str) -> bool:
    try:
        return importlib.util.find_spec(module) is not None
    except (ImportError, ValueError):
        return False


class SatelliteManager:
    """Spawns satellites with their startup arguments and pushes updates.

    Startup contract: `<controller-pane> <args...> [<json state>]`, every
    argument shell-quoted because the command is typed into the pane's
    shell. Updates travel the other way as a `RENDER:<json>` line.
    """

    def __init__(self, tmux: TmuxClient, controller_pane: str, python_binary: str | None = None) -> None:
        self.tmux = tmux
        self.controller_pane = controller_pane
        self.python_binary = python_binary or resolve_python_binary()

    def build_command(self, kind: SatelliteKind, *args: str, state: dict[str, Any] | None = None) -> str | None:
        """Command line for a satellite, or None when its module is missing."""
        if not _locate(kind.module):
            return None
        argv = [self.python_binary, "-m", kind.module, self.controller_pane, *args]
        if state is not None:
            argv.append(json.dumps(state, separators=(",", ":")))
        return " ".join(shlex.quote(part) for part in argv)

    def spawn(
        self,
        kind: SatelliteKind,
        pane_id: str,
        *args: str,
        state: dict[str, Any] | None = None,
        replace: bool = False,
    ) -> bool:
        """Start a satellite in a pane.

        Args:
            kind: Which satellite program to run.
            pane_id: Target pane (normally a fresh shell).
            *args: Positional startup arguments after the controller pane id.
            state: Initial render state, serialized as the last argument.
            replace: Respawn the pane's process instead of typing the command
                into its shell (no command echo, pane dies with the program).

        Returns:
            False when the satellite could not be located; the feature stays
            unavailable until the next transition retries it.
        """
        command = self.build_command(kind, *args, state=state)
        if command is None:
            logger.warning("Satellite {} not found; skipping spawn in {}", kind.module, pane_id)
            return False
        logger.debug("Spawning {} in {}", kind.value, pane_id)
        if replace:
            self.tmux.respawn_pane(pane_id, command)
        else:
            self.tmux.send_keys(pane_id, command, enter=True)
        return True

    def push(self, pane_id: str | None, payload: dict[str, Any]) -> bool:
        """Inject a render update into a satellite pane."""
        if not pane_id:
            return False
        return self.tmux.send_keys(pane_id, encode_render(payload), enter=True)
