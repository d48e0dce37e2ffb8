"""Pane layout orchestration.

Layout when a session with terminals is active:
┌─────────┬──────────────────────┬──────────┐
│         │   agent pane         │  diff    │
│ sidebar │                      │  list    │
│         ├──────────────────────┤ (toggle) │
│         │ 1:Terminal 1 | 2:... │          │  <- tab bar, pinned height
│         ├──────────────────────┤          │
│         │   active terminal    │          │
└─────────┴──────────────────────┴──────────┘

Only one session's panes are attached to the visible window at a time.
Every other pane (other sessions, inactive terminals, the tab bars of
parked sessions) lives in a background window created by `break-pane` and
comes back with `join-pane`. tmux keeps pane ids stable across both, so
the ids stored on Session/Terminal stay valid while parked.

Joins and breaks redistribute rows and columns to neighbours as a side
effect, so the sidebar width and the tab bar height are re-asserted at the
end of every transition.
"""

from __future__ import annotations

import shlex
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from claudeplex.config import AppConfig, config
from claudeplex.constants import FILE_DIFF_HEADER_HEIGHT, PLACEHOLDER_HINT, SIDEBAR_COLLAPSED_WIDTH
from claudeplex.errors import WorktreeError
from claudeplex.logging_config import get_logger
from claudeplex.models import (
    DiffViewMode,
    FileDiffView,
    LayoutMode,
    Session,
    Terminal,
    Worktree,
    new_id,
)
from claudeplex.resize_hook import PaneTriple, ResizeEnforcer
from claudeplex.satellites.manager import SatelliteKind, SatelliteManager
from claudeplex.state import ControllerState
from claudeplex.tmux.client import TmuxClient

if TYPE_CHECKING:
    from claudeplex.gitops.worktrees import WorktreeManager

logger = get_logger(__name__)

# Share of the window (right of the sidebar) a freshly split main pane takes
MAIN_PANE_PERCENT = 80


class PaneOrchestrator:
    """State machine over layout mode, active session and active terminal."""

    def __init__(
        self,
        state: ControllerState,
        tmux: TmuxClient,
        satellites: SatelliteManager,
        resize: ResizeEnforcer,
        settings: AppConfig | None = None,
    ) -> None:
        self.state = state
        self.tmux = tmux
        self.satellites = satellites
        self.resize = resize
        self.settings = settings or config

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @contextmanager
    def _transition(self) -> Iterator[None]:
        """Keep the resize hook quiet while panes are being moved."""
        with self.resize.lock.held():
            yield

    def enforce_sidebar_width(self) -> None:
        width = SIDEBAR_COLLAPSED_WIDTH if self.state.collapsed else self.settings.sidebar_width
        self.tmux.resize_pane(self.state.sidebar_pane_id, width=width)

    def _pin_bar(self, session: Session) -> None:
        if session.terminal_bar_pane_id:
            self.tmux.resize_pane(session.terminal_bar_pane_id, height=self.settings.terminal_bar_height)

    def _install_resize(self, session: Session) -> None:
        terminal = session.active_terminal
        if not (session.terminal_bar_pane_id and terminal):
            return
        triple = PaneTriple(session.pane_id, session.terminal_bar_pane_id, terminal.pane_id)
        if self.resize.installed != triple:
            self.resize.install(self.state.session_name, triple, self.settings.terminal_bar_height)

    def _reassert_geometry(self) -> None:
        """Re-pin sidebar width, tab bar height and diff width after a transition."""
        self.enforce_sidebar_width()
        if self.state.fullscreen:
            return
        view = self.state.file_diff
        if view:
            self.tmux.resize_pane(view.header_pane_id, height=FILE_DIFF_HEADER_HEIGHT)
        session = self.state.active_session
        if session is None:
            if self.resize.installed:
                self.resize.remove(self.state.session_name)
            return
        if session.diff_pane_id:
            self.tmux.resize_pane(session.diff_pane_id, width=self.settings.diff_pane_width)
        if view:
            return
        if session.terminal_bar_pane_id and session.active_terminal:
            self._pin_bar(session)
            self._install_resize(session)
        elif self.resize.installed:
            self.resize.remove(self.state.session_name)

    # ------------------------------------------------------------------
    # Attach / park building blocks
    # ------------------------------------------------------------------

    def _attach_terminal_stack(self, session: Session) -> None:
        """Join the tab bar below the agent pane and the active terminal below the bar."""
        bar = session.terminal_bar_pane_id
        if not (session.terminals and bar):
            return
        terminal_share = 100 - self.settings.agent_pane_percent
        self.tmux.join_pane(bar, session.pane_id, vertical=True, size=f"{terminal_share}%")
        terminal = session.active_terminal
        if terminal:
            self.tmux.join_pane(terminal.pane_id, bar, vertical=True)
        self._pin_bar(session)
        self._install_resize(session)
        self.satellites.push(bar, session.terminal_bar_payload())

    def _attach_session(self, session: Session) -> None:
        self.tmux.join_pane(session.pane_id, self.state.sidebar_pane_id, vertical=False)
        if session.diff_pane_id:
            self.tmux.join_pane(
                session.diff_pane_id, session.pane_id, vertical=False, size=str(self.settings.diff_pane_width)
            )
        self._attach_terminal_stack(session)

    def _park_session(self, session: Session) -> None:
        """Break every visible pane of a session into background windows."""
        view = self.state.file_diff
        agent_parked = False
        if view and view.session_id == session.id:
            # The file diff view already displaced the agent stack.
            self._discard_file_diff()
            agent_parked = True
        if not agent_parked:
            terminal = session.active_terminal
            if terminal:
                self.tmux.break_pane(terminal.pane_id)
            if session.terminal_bar_pane_id:
                self.tmux.break_pane(session.terminal_bar_pane_id)
        if session.diff_pane_id:
            self.tmux.break_pane(session.diff_pane_id)
        if not agent_parked:
            self.tmux.break_pane(session.pane_id)

    def _kill_session_panes(self, session: Session) -> None:
        """Kill in dependency order: terminals, tab bar (hook first), diff, agent."""
        view = self.state.file_diff
        if view and view.session_id == session.id:
            self._discard_file_diff()
        for terminal in session.terminals:
            self.tmux.kill_pane(terminal.pane_id)
        if session.terminal_bar_pane_id:
            self.resize.remove(self.state.session_name)
            self.tmux.kill_pane(session.terminal_bar_pane_id)
        if session.diff_pane_id:
            self.tmux.kill_pane(session.diff_pane_id)
        self.tmux.kill_pane(session.pane_id)

    def _new_main_pane(self, cwd: str) -> str | None:
        """A pane in the main slot, or in a background window while a modal is up."""
        if self.state.fullscreen:
            pane_id = self.tmux.new_background_pane(self.state.session_name, cwd=cwd)
            if pane_id:
                self.state.hidden_pane_id = pane_id
            return pane_id
        return self.tmux.split_pane(
            self.state.sidebar_pane_id, vertical=False, percent=MAIN_PANE_PERCENT, cwd=cwd
        )

    def _show_placeholder(self) -> None:
        pane_id = self._new_main_pane(self.state.repo_path)
        if pane_id is None:
            logger.warning("Could not create placeholder pane")
            return
        self.state.placeholder_pane_id = pane_id
        self.tmux.send_keys(pane_id, f"clear && echo {shlex.quote(PLACEHOLDER_HINT)}", enter=True)

    def _activate_replacement(self) -> None:
        """After the active session died: first remaining session, else a placeholder."""
        self.state.active_session_id = None
        if not self.state.sessions:
            self._show_placeholder()
            return
        replacement = self.state.sessions[0]
        self.state.active_session_id = replacement.id
        if self.state.fullscreen:
            self.state.hidden_pane_id = replacement.pane_id
        else:
            self._attach_session(replacement)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, worktree: Worktree, title: str) -> Session | None:
        """Start an agent session in a worktree and make it active.

        The first session reuses the placeholder pane. In fullscreen mode the
        new pane is created in a background window and becomes the hidden
        pane, so leaving the modal reveals it.
        """
        command = self.settings.agent_command
        placeholder = self.state.placeholder_pane_id
        with self._transition():
            if not self.state.sessions and placeholder:
                pane_id: str | None = placeholder
                self.state.placeholder_pane_id = None
                self.tmux.send_key(placeholder, "C-c")
                self.tmux.send_keys(placeholder, f"cd {shlex.quote(worktree.path)} && clear && {command}", enter=True)
            else:
                current = self.state.active_session
                if not self.state.fullscreen:
                    if current:
                        self._park_session(current)
                    elif placeholder:
                        self.tmux.kill_pane(placeholder)
                        self.state.placeholder_pane_id = None
                elif placeholder:
                    self.tmux.kill_pane(placeholder)
                    self.state.placeholder_pane_id = None
                pane_id = self._new_main_pane(worktree.path)
                if pane_id:
                    self.tmux.send_keys(pane_id, command, enter=True)
            if pane_id is None:
                logger.error("Failed to create a pane for session {!r}", title)
                if not self.state.fullscreen and self.state.active_session:
                    self._attach_session(self.state.active_session)
                return None

            session = Session(id=new_id("session"), worktree_id=worktree.id, pane_id=pane_id, title=title)
            self.state.sessions.append(session)
            self.state.active_session_id = session.id
            self._reassert_geometry()
        logger.info("Created session {} ({}) in {}", session.id, title, worktree.branch)
        return session

    def switch_session(self, target: Session) -> None:
        """Park the active session's panes and attach the target's."""
        if target.id == self.state.active_session_id:
            if not self.state.fullscreen:
                self.tmux.select_pane(target.pane_id)
            return
        if self.state.fullscreen:
            self.state.active_session_id = target.id
            self.state.hidden_pane_id = target.pane_id
            return
        with self._transition():
            current = self.state.active_session
            if current:
                self._park_session(current)
            elif self.state.placeholder_pane_id:
                self.tmux.break_pane(self.state.placeholder_pane_id)
            self._attach_session(target)
            self.state.active_session_id = target.id
            self._reassert_geometry()
        self.tmux.select_pane(self.state.sidebar_pane_id)
        logger.debug("Switched to session {}", target.id)

    def delete_session(self, session: Session) -> None:
        """Kill a session's panes; a replacement takes over if it was active."""
        was_active = session.id == self.state.active_session_id
        with self._transition():
            self._kill_session_panes(session)
            self.state.sessions = [s for s in self.state.sessions if s.id != session.id]
            if was_active:
                self._activate_replacement()
            self._reassert_geometry()
        if was_active and not self.state.fullscreen:
            self.tmux.select_pane(self.state.sidebar_pane_id)
        logger.info("Deleted session {}", session.id)

    def delete_worktree(self, worktree: Worktree, worktrees: WorktreeManager) -> None:
        """Delete every session of a worktree, then the worktree itself.

        Raises:
            WorktreeError: for the primary checkout (nothing is touched), or
                when the git collaborator fails. In the latter case the
                sessions are already gone but the worktree stays listed.
        """
        if worktree.is_main:
            raise WorktreeError("The main worktree cannot be deleted")
        doomed = self.state.sessions_for(worktree.id)
        active_doomed = any(s.id == self.state.active_session_id for s in doomed)
        failure: WorktreeError | None = None
        with self._transition():
            for session in doomed:
                self._kill_session_panes(session)
            self.state.sessions = [s for s in self.state.sessions if s.worktree_id != worktree.id]
            try:
                worktrees.remove(worktree.path, force=True)
            except WorktreeError as exc:
                failure = exc
            else:
                self.state.worktrees = [w for w in self.state.worktrees if w.id != worktree.id]
            if active_doomed:
                self._activate_replacement()
            self._reassert_geometry()
        if active_doomed and not self.state.fullscreen:
            self.tmux.select_pane(self.state.sidebar_pane_id)
        if failure:
            raise failure
        logger.info("Deleted worktree {} with {} session(s)", worktree.branch, len(doomed))

    # ------------------------------------------------------------------
    # Terminals
    # ------------------------------------------------------------------

    def create_terminal(self) -> Terminal | None:
        """Add a terminal tab to the active session and show it."""
        session = self.state.active_session
        if session is None or self.state.fullscreen or self.state.file_diff:
            return None
        worktree = self.state.get_worktree(session.worktree_id)
        cwd = worktree.path if worktree else self.state.repo_path
        title = f"Terminal {len(session.terminals) + 1}"

        with self._transition():
            if not session.terminals:
                terminal_pane = self.tmux.split_pane(
                    session.pane_id, vertical=True, percent=100 - self.settings.agent_pane_percent, cwd=cwd
                )
                if terminal_pane is None:
                    return None
                bar_pane = self.tmux.split_pane(
                    terminal_pane, vertical=True, lines=self.settings.terminal_bar_height, before=True, cwd=cwd
                )
                if bar_pane is None:
                    self.tmux.kill_pane(terminal_pane)
                    return None
                terminal = Terminal(new_id("terminal"), session.id, terminal_pane, title)
                session.terminal_bar_pane_id = bar_pane
                session.terminals.append(terminal)
                session.active_terminal_index = 0
                self._pin_bar(session)
                self._install_resize(session)
                self.satellites.spawn(
                    SatelliteKind.TERMINAL_BAR,
                    bar_pane,
                    session.id,
                    state=session.terminal_bar_payload(),
                )
            else:
                current = session.active_terminal or session.terminals[-1]
                terminal_pane = self.tmux.split_pane(current.pane_id, vertical=True, percent=50, cwd=cwd)
                if terminal_pane is None:
                    return None
                self.tmux.break_pane(current.pane_id)
                terminal = Terminal(new_id("terminal"), session.id, terminal_pane, title)
                session.terminals.append(terminal)
                session.active_terminal_index = len(session.terminals) - 1
                self._pin_bar(session)
                self._install_resize(session)
                self.satellites.push(session.terminal_bar_pane_id, session.terminal_bar_payload())
            self._reassert_geometry()
        self.tmux.select_pane(terminal.pane_id)
        return terminal

    def switch_terminal(self, session: Session, index: int) -> None:
        if not 0 <= index < len(session.terminals) or index == session.active_terminal_index:
            return
        visible = self._is_attached(session)
        if not visible:
            session.active_terminal_index = index
            return
        current = session.active_terminal
        target = session.terminals[index]
        with self._transition():
            if current:
                self.tmux.break_pane(current.pane_id)
            if session.terminal_bar_pane_id:
                self.tmux.join_pane(target.pane_id, session.terminal_bar_pane_id, vertical=True)
            session.active_terminal_index = index
            self._pin_bar(session)
            self._install_resize(session)
            self.satellites.push(session.terminal_bar_pane_id, session.terminal_bar_payload())
            self._reassert_geometry()

    def delete_terminal(self, session: Session, index: int) -> None:
        if not 0 <= index < len(session.terminals):
            return
        terminal = session.terminals[index]
        was_active = index == session.active_terminal_index
        visible = self._is_attached(session)
        with self._transition():
            self.tmux.kill_pane(terminal.pane_id)
            del session.terminals[index]
            if not session.terminals:
                if session.terminal_bar_pane_id:
                    self.resize.remove(self.state.session_name)
                    self.tmux.kill_pane(session.terminal_bar_pane_id)
                    session.terminal_bar_pane_id = None
                session.active_terminal_index = 0
            else:
                if index < session.active_terminal_index:
                    session.active_terminal_index -= 1
                elif session.active_terminal_index >= len(session.terminals):
                    session.active_terminal_index = len(session.terminals) - 1
                replacement = session.active_terminal
                if was_active and visible and replacement and session.terminal_bar_pane_id:
                    self.tmux.join_pane(replacement.pane_id, session.terminal_bar_pane_id, vertical=True)
                    self._pin_bar(session)
                    self._install_resize(session)
                self.satellites.push(session.terminal_bar_pane_id, session.terminal_bar_payload())
            self._reassert_geometry()

    def focus_terminal(self) -> None:
        session = self.state.active_session
        terminal = session.active_terminal if session else None
        if terminal and not self.state.fullscreen:
            self.tmux.select_pane(terminal.pane_id)

    def focus_sidebar(self) -> None:
        self.tmux.select_pane(self.state.sidebar_pane_id)

    def _is_attached(self, session: Session) -> bool:
        return (
            session.id == self.state.active_session_id
            and not self.state.fullscreen
            and self.state.file_diff is None
        )

    # ------------------------------------------------------------------
    # Fullscreen modal
    # ------------------------------------------------------------------

    def enter_fullscreen(self) -> None:
        """Park everything right of the sidebar so a dialog can use the window."""
        if self.state.fullscreen:
            return
        with self._transition():
            session = self.state.active_session
            if session:
                self._park_session(session)
                self.state.hidden_pane_id = session.pane_id
            elif self.state.placeholder_pane_id:
                self.tmux.break_pane(self.state.placeholder_pane_id)
                self.state.hidden_pane_id = self.state.placeholder_pane_id
            self.state.layout = LayoutMode.FULLSCREEN_MODAL
        logger.debug("Entered fullscreen modal, hidden pane {}", self.state.hidden_pane_id)

    def exit_fullscreen(self) -> None:
        """Rejoin the remembered pane (and its terminal stack) next to the sidebar."""
        if not self.state.fullscreen:
            return
        with self._transition():
            hidden = self.state.hidden_pane_id
            self.state.layout = LayoutMode.NORMAL
            if hidden:
                session = self.state.active_session
                if session and session.pane_id == hidden:
                    self._attach_session(session)
                else:
                    self.tmux.join_pane(hidden, self.state.sidebar_pane_id, vertical=False)
            self.state.hidden_pane_id = None
            self._reassert_geometry()
        self.tmux.select_pane(self.state.sidebar_pane_id)

    # ------------------------------------------------------------------
    # Sidebar
    # ------------------------------------------------------------------

    def toggle_collapsed(self) -> None:
        self.state.collapsed = not self.state.collapsed
        self.enforce_sidebar_width()

    # ------------------------------------------------------------------
    # Diff panes
    # ------------------------------------------------------------------

    def toggle_diff_pane(self) -> None:
        """Show or close the changed-files list right of the agent pane."""
        session = self.state.active_session
        if session is None or self.state.fullscreen:
            return
        if session.diff_pane_id:
            self.close_diff_pane(session)
            return
        worktree = self.state.get_worktree(session.worktree_id)
        cwd = worktree.path if worktree else self.state.repo_path
        view = self.state.file_diff
        # The agent pane is parked while a file diff is shown; split the visible content pane.
        anchor = view.content_pane_id if view and view.session_id == session.id else session.pane_id
        with self._transition():
            pane_id = self.tmux.split_pane(anchor, vertical=False, lines=self.settings.diff_pane_width, cwd=cwd)
            if pane_id is None:
                return
            session.diff_pane_id = pane_id
            self.satellites.spawn(SatelliteKind.DIFF_LIST, pane_id, session.id, cwd)
            self._reassert_geometry()

    def refresh_diff(self) -> None:
        """Ask the visible diff list to re-read the worktree now instead of at its next poll."""
        session = self.state.active_session
        if session and session.diff_pane_id and not self.state.fullscreen:
            self.satellites.push(session.diff_pane_id, {"refresh": True})

    def close_diff_pane(self, session: Session) -> None:
        if not session.diff_pane_id:
            return
        with self._transition():
            self.tmux.kill_pane(session.diff_pane_id)
            session.diff_pane_id = None
            self._reassert_geometry()
        self.focus_sidebar()

    def open_file_diff(self, file: str, insertions: int = 0, deletions: int = 0) -> FileDiffView | None:
        """Replace the agent stack with a header + content view of one file."""
        session = self.state.active_session
        if session is None or self.state.fullscreen:
            return None
        worktree = self.state.get_worktree(session.worktree_id)
        cwd = worktree.path if worktree else self.state.repo_path
        mode = self.state.file_diff.mode if self.state.file_diff else DiffViewMode.WHOLE_FILE
        with self._transition():
            if self.state.file_diff:
                self._discard_file_diff()
            else:
                terminal = session.active_terminal
                if terminal:
                    self.tmux.break_pane(terminal.pane_id)
                if session.terminal_bar_pane_id:
                    self.tmux.break_pane(session.terminal_bar_pane_id)
                self.tmux.break_pane(session.pane_id)
            content = self.tmux.split_pane(
                self.state.sidebar_pane_id, vertical=False, percent=MAIN_PANE_PERCENT, cwd=cwd
            )
            header = (
                self.tmux.split_pane(content, vertical=True, lines=FILE_DIFF_HEADER_HEIGHT, before=True, cwd=cwd)
                if content
                else None
            )
            if content is None or header is None:
                if content:
                    self.tmux.kill_pane(content)
                self._attach_agent_stack(session)
                self._reassert_geometry()
                return None
            view = FileDiffView(session.id, file, header, content, mode)
            self.state.file_diff = view
            self.satellites.spawn(
                SatelliteKind.FILE_DIFF_HEADER,
                header,
                file,
                str(insertions),
                str(deletions),
                mode.value,
            )
            self.satellites.spawn(SatelliteKind.FILE_DIFF_CONTENT, content, cwd, file, mode.value)
            self._reassert_geometry()
        self.tmux.select_pane(content)
        return view

    def set_file_diff_mode(self, mode: DiffViewMode) -> None:
        view = self.state.file_diff
        if view is None or view.mode is mode:
            return
        view.mode = mode
        session = self.state.get_session(view.session_id)
        worktree = self.state.get_worktree(session.worktree_id) if session else None
        cwd = worktree.path if worktree else self.state.repo_path
        self.satellites.push(view.header_pane_id, {"mode": mode.value})
        self.satellites.spawn(
            SatelliteKind.FILE_DIFF_CONTENT, view.content_pane_id, cwd, view.file, mode.value, replace=True
        )

    def close_file_diff(self) -> None:
        view = self.state.file_diff
        if view is None:
            return
        with self._transition():
            self._discard_file_diff()
            session = self.state.get_session(view.session_id)
            if session and session.id == self.state.active_session_id and not self.state.fullscreen:
                self._attach_agent_stack(session)
            self._reassert_geometry()
        self.focus_sidebar()

    def _attach_agent_stack(self, session: Session) -> None:
        """Rejoin the agent pane left of the diff list, or beside the sidebar."""
        diff = session.diff_pane_id
        if diff and self.tmux.pane_window(diff) == self.tmux.pane_window(self.state.sidebar_pane_id):
            self.tmux.join_pane(session.pane_id, diff, vertical=False, before=True)
            self._attach_terminal_stack(session)
            return
        self._attach_session(session)

    def _discard_file_diff(self) -> None:
        view = self.state.file_diff
        if view is None:
            return
        self.tmux.kill_pane(view.header_pane_id)
        self.tmux.kill_pane(view.content_pane_id)
        self.state.file_diff = None

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Kill every managed pane in a hook-safe order."""
        with self._transition():
            self._discard_file_diff()
            for session in list(self.state.sessions):
                self._kill_session_panes(session)
            if self.state.placeholder_pane_id:
                self.tmux.kill_pane(self.state.placeholder_pane_id)
        self.state.sessions = []
        self.state.active_session_id = None
        self.state.placeholder_pane_id = None
