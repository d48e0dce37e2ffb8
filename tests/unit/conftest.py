"""Shared fixtures for unit tests: an in-memory tmux and a wired orchestrator."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from claudeplex.config import AppConfig
from claudeplex.models import Worktree
from claudeplex.orchestrator import PaneOrchestrator
from claudeplex.resize_hook import ResizeEnforcer
from claudeplex.state import ControllerState

SIDEBAR = "%0"
PLACEHOLDER = "%1"


class FakeTmux:
    """Records tmux calls and tracks which panes sit in the visible window.

    Every pane is either `visible` (the window the user sees) or parked in
    some background window. Operations on unknown panes are recorded and
    ignored, like the real client does with a failing tmux command.
    """

    binary = "tmux"

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.visible: list[str] = [SIDEBAR, PLACEHOLDER]
        self.background: set[str] = set()
        self.options: dict[str, str] = {}
        self.hooks: dict[tuple[str, str], str] = {}
        self.bindings: dict[tuple[str, str], tuple[str, ...]] = {}
        self.sizes: dict[str, dict[str, int]] = {}
        self.typed: dict[str, list[str]] = {}
        self.fail_splits = False
        self._next = 2

    # helpers -----------------------------------------------------------

    def _alloc(self) -> str:
        pane = f"%{self._next}"
        self._next += 1
        return pane

    def exists(self, pane: str) -> bool:
        return pane in self.visible or pane in self.background

    def ops(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    # TmuxClient surface ------------------------------------------------

    def split_pane(self, target, *, vertical, percent=None, lines=None, cwd=None, before=False):
        self.calls.append(("split_pane", target, vertical, percent, lines, before))
        if self.fail_splits or not self.exists(target):
            return None
        pane = self._alloc()
        if target in self.visible:
            self.visible.append(pane)
        else:
            self.background.add(pane)
        return pane

    def new_background_pane(self, session, cwd=None):
        self.calls.append(("new_background_pane", session))
        pane = self._alloc()
        self.background.add(pane)
        return pane

    def break_pane(self, pane):
        self.calls.append(("break_pane", pane))
        if pane in self.visible:
            self.visible.remove(pane)
            self.background.add(pane)

    def join_pane(self, source, target, *, vertical, size=None, before=False):
        self.calls.append(("join_pane", source, target, vertical, size, before))
        if source in self.background and target in self.visible:
            self.background.discard(source)
            self.visible.append(source)

    def kill_pane(self, pane):
        self.calls.append(("kill_pane", pane))
        if pane in self.visible:
            self.visible.remove(pane)
        self.background.discard(pane)

    def resize_pane(self, pane, width=None, height=None):
        self.calls.append(("resize_pane", pane, width, height))
        size = self.sizes.setdefault(pane, {})
        if width is not None:
            size["width"] = width
        if height is not None:
            size["height"] = height

    def pane_window(self, pane):
        if pane in self.visible:
            return "@0"
        if pane in self.background:
            return f"@parked{pane}"
        return None

    def pane_size(self, pane):
        size = self.sizes.get(pane, {})
        return size.get("width", 80), size.get("height", 24)

    def select_pane(self, pane):
        self.calls.append(("select_pane", pane))

    def send_keys(self, pane, text, enter=False):
        self.calls.append(("send_keys", pane, text, enter))
        if not self.exists(pane):
            return False
        self.typed.setdefault(pane, []).append(text)
        return True

    def send_key(self, pane, key):
        self.calls.append(("send_key", pane, key))
        return self.exists(pane)

    def respawn_pane(self, pane, command):
        self.calls.append(("respawn_pane", pane, command))

    def set_hook(self, session, hook, command):
        self.calls.append(("set_hook", session, hook, command))
        self.hooks[(session, hook)] = command

    def remove_hook(self, session, hook):
        self.calls.append(("remove_hook", session, hook))
        self.hooks.pop((session, hook), None)

    def bind_key(self, table, key, *command):
        self.calls.append(("bind_key", table, key, *command))
        self.bindings[(table, key)] = command

    def unbind_key(self, table, key):
        self.calls.append(("unbind_key", table, key))
        self.bindings.pop((table, key), None)

    def set_option(self, name, value, *, global_=False, target=None):
        self.calls.append(("set_option", name, value))
        self.options[name] = value

    def show_option(self, name, *, global_=True):
        return self.options.get(name)

    def unset_option(self, name, *, global_=True):
        self.calls.append(("unset_option", name))
        self.options.pop(name, None)

    def kill_session(self, name):
        self.calls.append(("kill_session", name))

    def detach_client(self):
        self.calls.append(("detach_client",))


@pytest.fixture
def settings(tmp_path) -> AppConfig:
    return AppConfig(script_dir=str(tmp_path), agent_command="agent")


@pytest.fixture
def fake_tmux() -> FakeTmux:
    return FakeTmux()


@pytest.fixture
def state(tmp_path) -> ControllerState:
    return ControllerState(
        repo_path=str(tmp_path / "repo"),
        session_name="cpp-repo-abc123",
        sidebar_pane_id=SIDEBAR,
        placeholder_pane_id=PLACEHOLDER,
        worktrees=[
            Worktree(id="main", path=str(tmp_path / "repo"), branch="main", is_main=True),
            Worktree(id="wt-feature", path=str(tmp_path / "wt" / "feature"), branch="feature"),
        ],
    )


@pytest.fixture
def satellites() -> Mock:
    manager = Mock()
    manager.spawn.return_value = True
    manager.push.return_value = True
    return manager


@pytest.fixture
def orchestrator(state, fake_tmux, satellites, settings) -> PaneOrchestrator:
    resize = ResizeEnforcer(fake_tmux, settings.script_dir)  # type: ignore[arg-type]
    return PaneOrchestrator(state, fake_tmux, satellites, resize, settings)  # type: ignore[arg-type]
