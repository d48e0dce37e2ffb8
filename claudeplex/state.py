"""Authoritative in-memory state owned by the controller process."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from claudeplex.models import FileDiffView, LayoutMode, Modal, Session, Worktree


@dataclass
class ControllerState:
    """Worktrees, sessions and layout bookkeeping for one tmux session.

    `placeholder_pane_id` is the pane shown right of the sidebar while no
    agent session exists (the welcome screen, later the "press Enter" hint).
    The first session created takes it over.
    """

    repo_path: str
    session_name: str
    sidebar_pane_id: str
    placeholder_pane_id: str | None = None
    worktrees: list[Worktree] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)
    active_session_id: str | None = None
    selected_index: int = 0
    layout: LayoutMode = LayoutMode.NORMAL
    hidden_pane_id: str | None = None
    modal: Modal = field(default_factory=Modal)
    collapsed: bool = False
    file_diff: FileDiffView | None = None

    @property
    def active_session(self) -> Session | None:
        return self.get_session(self.active_session_id) if self.active_session_id else None

    @property
    def fullscreen(self) -> bool:
        return self.layout is LayoutMode.FULLSCREEN_MODAL

    def get_session(self, session_id: str | None) -> Session | None:
        return next((s for s in self.sessions if s.id == session_id), None)

    def get_worktree(self, worktree_id: str | None) -> Worktree | None:
        return next((w for w in self.worktrees if w.id == worktree_id), None)

    def sessions_for(self, worktree_id: str) -> list[Session]:
        return [s for s in self.sessions if s.worktree_id == worktree_id]


class ListItemType(str, Enum):
    WORKTREE = "worktree"
    SESSION = "session"


@dataclass(frozen=True)
class ListItem:
    """One selectable sidebar row."""

    type: ListItemType
    id: str
    label: str
    worktree: Worktree
    session: Session | None = None


def build_list_items(state: ControllerState) -> list[ListItem]:
    """Flatten worktrees and their sessions into sidebar order."""
    items: list[ListItem] = []
    for worktree in state.worktrees:
        items.append(ListItem(ListItemType.WORKTREE, worktree.id, worktree.branch, worktree))
        for session in state.sessions_for(worktree.id):
            items.append(ListItem(ListItemType.SESSION, session.id, session.title, worktree, session))
    return items


def selected_item(state: ControllerState) -> ListItem | None:
    items = build_list_items(state)
    if 0 <= state.selected_index < len(items):
        return items[state.selected_index]
    return None


def clamp_selection(state: ControllerState) -> None:
    total = len(build_list_items(state))
    state.selected_index = max(0, min(state.selected_index, total - 1))
