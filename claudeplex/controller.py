"""Sidebar controller: owns the state and dispatches input.

Runs in the sidebar pane as
`python -m claudeplex.controller <repo> <session> <main-pane> <sidebar-pane>`.

Raw stdin carries three kinds of input, separated in this order:

1. relay lines from satellites (`RelayDecoder`)
2. SGR mouse reports
3. keystrokes, including the Ctrl keys tmux forwards from other panes
"""

from __future__ import annotations

import signal
import sys
from typing import Callable

from claudeplex.config import AppConfig, config
from claudeplex.constants import INPUT_WAKEUP_INTERVAL
from claudeplex.errors import ClaudeplexError, TmuxUnavailableError, WorktreeError
from claudeplex.gitops.diff import diff_summary
from claudeplex.gitops.worktrees import MAIN_WORKTREE_ID, WorktreeManager
from claudeplex.keys import Key, MouseEvent, parse_input
from claudeplex.logging_config import get_logger, setup_logging
from claudeplex.models import (
    TEXT_INPUT_MODALS,
    DeleteTarget,
    DeleteTargetKind,
    DiffViewMode,
    Modal,
    ModalKind,
    Worktree,
)
from claudeplex.orchestrator import PaneOrchestrator
from claudeplex.relay import RelayDecoder, RelayMessage, RelayNamespace
from claudeplex.render import sidebar
from claudeplex.resize_hook import ResizeEnforcer
from claudeplex.satellites.manager import SatelliteManager
from claudeplex.state import ControllerState, ListItemType, build_list_items, clamp_selection, selected_item
from claudeplex.terminal_io import raw_terminal, read_input, terminal_size, write
from claudeplex.tmux.client import TmuxClient
from claudeplex.validation import is_branch_input_char, is_valid_branch_name, is_valid_session_name

logger = get_logger(__name__)

USAGE = "Usage: python -m claudeplex.controller <repo> <session> <main-pane> <sidebar-pane>"


class Controller:
    """Input dispatch for the sidebar pane."""

    def __init__(
        self,
        state: ControllerState,
        tmux: TmuxClient,
        orchestrator: PaneOrchestrator,
        worktrees: WorktreeManager,
        settings: AppConfig | None = None,
        output: Callable[[str], None] = write,
    ) -> None:
        self.state = state
        self.tmux = tmux
        self.orchestrator = orchestrator
        self.worktrees = worktrees
        self.settings = settings or config
        self.output = output
        self.decoder = RelayDecoder(self.settings.relay_idle_timeout)
        self.cols, self.rows = terminal_size()
        self.running = True
        self.exit_code = 0

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def render(self) -> None:
        self.output(sidebar.render(self.state, self.cols, self.rows))

    def feed(self, data: str) -> None:
        for event in self.decoder.feed(data):
            if isinstance(event, RelayMessage):
                self._guarded(self.handle_relay, event)
                continue
            for item in parse_input(event):
                if isinstance(item, MouseEvent):
                    self._guarded(self.handle_mouse, item)
                else:
                    self._guarded(self.handle_key, item)

    def _guarded(self, handler: Callable[..., None], event: object) -> None:
        """Run one dispatch; failures end up in the Error modal, not the process."""
        try:
            handler(event)
        except TmuxUnavailableError:
            raise
        except ClaudeplexError as exc:
            logger.warning("Dispatch of {!r} failed: {}", event, exc)
            self.show_error(str(exc))
        except Exception as exc:  # noqa: BLE001 - the sidebar must survive any single dispatch
            logger.exception("Unexpected error handling {!r}", event)
            self.show_error(f"Unexpected error: {exc}")

    def _on_signal(self, signum: int, _frame: object) -> None:
        if signum == signal.SIGWINCH:
            self.cols, self.rows = terminal_size()
            self.orchestrator.enforce_sidebar_width()
            self.render()
        else:
            self.running = False

    def run(self) -> int:
        signal.signal(signal.SIGWINCH, self._on_signal)
        signal.signal(signal.SIGTERM, self._on_signal)
        signal.signal(signal.SIGHUP, self._on_signal)
        # A controller killed mid-transition leaves the lock set and the hook disabled.
        self.orchestrator.resize.lock.clear()
        self.orchestrator.enforce_sidebar_width()
        with raw_terminal() as fd:
            self.render()
            while self.running:
                data = read_input(fd, INPUT_WAKEUP_INTERVAL)
                if data is None:
                    break
                if not data:
                    continue
                self.feed(data)
                if self.running:
                    self.render()
        logger.info("Controller exiting with {}", self.exit_code)
        return self.exit_code

    # ------------------------------------------------------------------
    # Modals
    # ------------------------------------------------------------------

    def open_modal(self, kind: ModalKind, **fields: object) -> None:
        self.orchestrator.enter_fullscreen()
        self.state.modal = Modal(kind=kind, **fields)  # type: ignore[arg-type]

    def close_modal(self) -> None:
        self.state.modal = Modal()
        self.orchestrator.exit_fullscreen()

    def show_error(self, message: str) -> None:
        self.orchestrator.enter_fullscreen()
        self.state.modal = Modal(kind=ModalKind.ERROR, error_message=message)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def handle_key(self, key: Key) -> None:
        kind = self.state.modal.kind
        if kind is ModalKind.QUIT:
            self._quit_key(key)
        elif kind is ModalKind.DELETE:
            self._delete_key(key)
        elif kind is ModalKind.ERROR:
            self.close_modal()
        elif kind in TEXT_INPUT_MODALS:
            self._input_key(key)
        elif self.state.collapsed:
            self.orchestrator.toggle_collapsed()
        else:
            self._main_key(key)

    def _main_key(self, key: Key) -> None:
        if key.matches("up", "k"):
            self.move_selection(-1)
        elif key.matches("down", "j"):
            self.move_selection(1)
        elif key.matches("enter"):
            self.activate_selection()
        elif key.matches("n"):
            self.open_modal(ModalKind.NEW_WORKTREE)
        elif key.matches("d"):
            self.request_delete()
        elif key.matches("r"):
            self.request_rename()
        elif key.matches("ctrl-t"):
            self.orchestrator.create_terminal()
        elif key.matches("ctrl-d"):
            self.orchestrator.toggle_diff_pane()
        elif key.matches("ctrl-g"):
            self.orchestrator.toggle_collapsed()
        elif key.matches("ctrl-c", "ctrl-q"):
            self.open_modal(ModalKind.QUIT)
        elif key.matches("escape") and self.state.file_diff:
            self.orchestrator.close_file_diff()

    def move_selection(self, delta: int) -> None:
        total = len(build_list_items(self.state))
        if total:
            self.state.selected_index = max(0, min(total - 1, self.state.selected_index + delta))

    def activate_selection(self) -> None:
        item = selected_item(self.state)
        if item is None:
            return
        if item.type is ListItemType.WORKTREE:
            self.request_new_session(item.worktree)
        elif item.session:
            self.orchestrator.switch_session(item.session)

    def request_new_session(self, worktree: Worktree) -> None:
        title = f"{len(self.state.sessions) + 1}: {worktree.branch}"
        self.open_modal(ModalKind.NEW_SESSION, input_buffer=title, target_id=worktree.id)

    def request_delete(self) -> None:
        item = selected_item(self.state)
        if item is None:
            return
        if item.type is ListItemType.WORKTREE:
            if item.worktree.is_main:
                self.show_error("The main worktree cannot be deleted.")
                return
            target = DeleteTarget(DeleteTargetKind.WORKTREE, item.id, item.worktree.branch)
        else:
            target = DeleteTarget(DeleteTargetKind.SESSION, item.id, item.label)
        self.open_modal(ModalKind.DELETE, delete_target=target)

    def request_rename(self) -> None:
        item = selected_item(self.state)
        if item is None:
            return
        if item.type is ListItemType.WORKTREE:
            self.show_error("Worktrees cannot be renamed. Rename the branch with git instead.")
            return
        self.open_modal(ModalKind.RENAME, input_buffer=item.label, target_id=item.id)

    def _toggle_choice(self) -> None:
        self.state.modal.selection = 1 - self.state.modal.selection

    def _quit_key(self, key: Key) -> None:
        if key.matches("up", "down", "k", "j", "tab"):
            self._toggle_choice()
        elif key.matches("escape"):
            self.close_modal()
        elif key.matches("enter"):
            if self.state.modal.selection == 0:
                self.detach()
            else:
                self.kill_all()

    def detach(self) -> None:
        self.close_modal()
        self.tmux.detach_client()

    def kill_all(self) -> None:
        logger.info("Killing all sessions of {}", self.state.session_name)
        self.state.modal = Modal()
        self.orchestrator.shutdown()
        self.running = False
        self.exit_code = 0
        self.tmux.kill_session(self.state.session_name)

    def _delete_key(self, key: Key) -> None:
        if key.matches("up", "down", "k", "j", "tab"):
            self._toggle_choice()
        elif key.matches("y", "Y"):
            self.confirm_delete()
        elif key.matches("n", "N", "escape"):
            self.close_modal()
        elif key.matches("enter"):
            if self.state.modal.selection == 1:
                self.confirm_delete()
            else:
                self.close_modal()

    def confirm_delete(self) -> None:
        target = self.state.modal.delete_target
        self.state.modal = Modal()
        if target is None:
            self.orchestrator.exit_fullscreen()
            return
        if target.kind is DeleteTargetKind.SESSION:
            session = self.state.get_session(target.id)
            if session:
                self.orchestrator.delete_session(session)
        else:
            worktree = self.state.get_worktree(target.id)
            if worktree:
                try:
                    self.orchestrator.delete_worktree(worktree, self.worktrees)
                except WorktreeError as exc:
                    clamp_selection(self.state)
                    self.show_error(str(exc))
                    return
        clamp_selection(self.state)
        self.orchestrator.exit_fullscreen()

    def _input_key(self, key: Key) -> None:
        modal = self.state.modal
        if key.matches("escape"):
            self.close_modal()
        elif key.matches("enter"):
            self.submit_input()
        elif key.matches("backspace"):
            modal.input_buffer = modal.input_buffer[:-1]
        elif key.is_char:
            if modal.kind is ModalKind.NEW_WORKTREE and not is_branch_input_char(key.char):
                return
            modal.input_buffer += key.char

    def submit_input(self) -> None:
        modal = self.state.modal
        value = modal.input_buffer.strip()
        if modal.kind is ModalKind.NEW_WORKTREE:
            self._submit_worktree(value)
        elif modal.kind is ModalKind.NEW_SESSION:
            self._submit_session(value, modal.target_id)
        elif modal.kind is ModalKind.RENAME:
            self._submit_rename(value, modal.target_id)

    def _submit_worktree(self, branch: str) -> None:
        if not is_valid_branch_name(branch):
            self.show_error(f"Invalid branch name: '{branch}'")
            return
        try:
            worktree = self.worktrees.create(branch, new_branch=True)
        except WorktreeError as exc:
            self.show_error(str(exc))
            return
        self.state.worktrees.append(worktree)
        self._select(worktree.id)
        self.close_modal()

    def _submit_session(self, title: str, worktree_id: str | None) -> None:
        if not is_valid_session_name(title):
            self.show_error("Session names must be 1-100 printable characters.")
            return
        worktree = self.state.get_worktree(worktree_id)
        if worktree is None:
            self.show_error("The worktree for this session no longer exists.")
            return
        self.state.modal = Modal()
        session = self.orchestrator.create_session(worktree, title)
        self.orchestrator.exit_fullscreen()
        if session:
            self._select(session.id)

    def _submit_rename(self, title: str, session_id: str | None) -> None:
        if not is_valid_session_name(title):
            self.show_error("Session names must be 1-100 printable characters.")
            return
        session = self.state.get_session(session_id)
        if session:
            session.title = title
        self.close_modal()

    def _select(self, item_id: str) -> None:
        for index, item in enumerate(build_list_items(self.state)):
            if item.id == item_id:
                self.state.selected_index = index
                return

    # ------------------------------------------------------------------
    # Mouse
    # ------------------------------------------------------------------

    def handle_mouse(self, event: MouseEvent) -> None:
        if self.state.modal.kind is ModalKind.ERROR and event.is_click:
            self.close_modal()
            return
        if self.state.modal.is_open:
            return
        if event.is_wheel_up:
            self.move_selection(-1)
            return
        if event.is_wheel_down:
            self.move_selection(1)
            return
        if not event.is_click:
            return
        if self.state.collapsed:
            self.orchestrator.toggle_collapsed()
            return

        hit = sidebar.hit_test(self.state, event.x, event.y, self.cols, self.rows)
        if hit.kind is sidebar.HitKind.COLLAPSE:
            self.orchestrator.toggle_collapsed()
        elif hit.kind is sidebar.HitKind.NEW_WORKTREE:
            self.open_modal(ModalKind.NEW_WORKTREE)
        elif hit.kind is sidebar.HitKind.ITEM_PLUS:
            self.state.selected_index = hit.index
            item = selected_item(self.state)
            if item:
                self.request_new_session(item.worktree)
        elif hit.kind is sidebar.HitKind.ITEM:
            self.state.selected_index = hit.index
            self.activate_selection()

    # ------------------------------------------------------------------
    # Relay
    # ------------------------------------------------------------------

    def handle_relay(self, message: RelayMessage) -> None:
        logger.debug("Relay {}", message.as_tuple())
        if self.state.fullscreen and message.action != "escape":
            return
        if message.namespace is RelayNamespace.TERM:
            self._terminal_action(message)
        elif message.namespace is RelayNamespace.DIFF:
            self._diff_action(message)
        elif message.namespace is RelayNamespace.FILEDIFF:
            self._file_diff_action(message)

    def _terminal_action(self, message: RelayMessage) -> None:
        session = self.state.active_session
        action = message.action
        if action == "escape":
            self.orchestrator.focus_sidebar()
        elif session is None:
            return
        elif action == "switch":
            index = message.int_data()
            if index is not None:
                self.orchestrator.switch_terminal(session, index)
        elif action == "new":
            self.orchestrator.create_terminal()
        elif action == "delete":
            index = message.int_data()
            if index is not None:
                self.orchestrator.delete_terminal(session, index)
        elif action == "focus":
            self.orchestrator.focus_terminal()

    def _diff_action(self, message: RelayMessage) -> None:
        session = self.state.active_session
        action = message.action
        if action == "escape":
            self.orchestrator.focus_sidebar()
        elif session is None:
            return
        elif action == "close":
            self.orchestrator.close_file_diff()
            self.orchestrator.close_diff_pane(session)
        elif action == "refresh":
            self.orchestrator.refresh_diff()
        elif action == "viewfile" and message.data:
            worktree = self.state.get_worktree(session.worktree_id)
            path = worktree.path if worktree else self.state.repo_path
            stats = next((f for f in diff_summary(path) if f.file == message.data), None)
            self.orchestrator.open_file_diff(
                message.data,
                stats.insertions if stats else 0,
                stats.deletions if stats else 0,
            )

    def _file_diff_action(self, message: RelayMessage) -> None:
        if message.action in ("close", "escape"):
            self.orchestrator.close_file_diff()
        elif message.action == "mode":
            try:
                mode = DiffViewMode(message.data)
            except ValueError:
                logger.debug("Ignoring unknown diff mode {!r}", message.data)
                return
            self.orchestrator.set_file_diff_mode(mode)


def build_controller(repo: str, session_name: str, main_pane: str, sidebar_pane: str) -> Controller:
    """Wire the controller's collaborators for one tmux session."""
    tmux = TmuxClient()
    worktrees = WorktreeManager(repo, config.worktrees_dir)
    listed = worktrees.list()
    if not any(w.id == MAIN_WORKTREE_ID for w in listed):
        listed.insert(0, Worktree(id=MAIN_WORKTREE_ID, path=repo, branch="main", is_main=True))
    state = ControllerState(
        repo_path=repo,
        session_name=session_name,
        sidebar_pane_id=sidebar_pane,
        placeholder_pane_id=main_pane,
        worktrees=listed,
    )
    satellites = SatelliteManager(tmux, sidebar_pane)
    resize = ResizeEnforcer(tmux, config.script_dir)
    orchestrator = PaneOrchestrator(state, tmux, satellites, resize)
    return Controller(state, tmux, orchestrator, worktrees)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 4:
        print(USAGE, file=sys.stderr)
        return 1
    repo, session_name, main_pane, sidebar_pane = args[:4]
    setup_logging(component="controller")
    logger.info("Controller starting for {} in {}", repo, session_name)
    try:
        controller = build_controller(repo, session_name, main_pane, sidebar_pane)
        return controller.run()
    except TmuxUnavailableError as exc:
        logger.error("tmux unavailable: {}", exc)
        print(str(exc), file=sys.stderr)
        return 1
    except WorktreeError as exc:
        logger.error("Cannot start controller: {}", exc)
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
