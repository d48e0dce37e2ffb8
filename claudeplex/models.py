"""Controller data model: worktrees, sessions, terminals, modals."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


class LayoutMode(str, Enum):
    """Whether session panes are attached next to the sidebar."""

    NORMAL = "normal"
    FULLSCREEN_MODAL = "fullscreen-modal"


class ModalKind(str, Enum):
    NONE = "none"
    QUIT = "quit"
    DELETE = "delete"
    NEW_WORKTREE = "new-worktree"
    RENAME = "rename"
    NEW_SESSION = "new-session"
    ERROR = "error"


TEXT_INPUT_MODALS = frozenset({ModalKind.NEW_WORKTREE, ModalKind.RENAME, ModalKind.NEW_SESSION})


class DiffViewMode(str, Enum):
    DIFFS_ONLY = "diffs-only"
    WHOLE_FILE = "whole-file"


@dataclass
class Worktree:
    """A checkout of the repository on its own branch."""

    id: str
    path: str
    branch: str
    is_main: bool = False


@dataclass
class Terminal:
    """An auxiliary shell pane owned by a session."""

    id: str
    session_id: str
    pane_id: str
    title: str
    created_at: float = field(default_factory=time.time)

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "paneId": self.pane_id}


@dataclass
class Session:
    """One coding-agent conversation bound to a worktree.

    `pane_id` hosts the agent. Terminals are stacked below it behind a
    one-row tab bar (`terminal_bar_pane_id`) that exists only while the
    session has terminals.
    """

    id: str
    worktree_id: str
    pane_id: str
    title: str
    created_at: float = field(default_factory=time.time)
    terminals: list[Terminal] = field(default_factory=list)
    active_terminal_index: int = 0
    terminal_bar_pane_id: str | None = None
    diff_pane_id: str | None = None

    @property
    def active_terminal(self) -> Terminal | None:
        if 0 <= self.active_terminal_index < len(self.terminals):
            return self.terminals[self.active_terminal_index]
        return None

    def terminal_bar_payload(self) -> dict[str, Any]:
        """Render state shared with the terminal bar satellite."""
        return {
            "terminals": [t.to_payload() for t in self.terminals],
            "activeIndex": self.active_terminal_index,
        }


class DeleteTargetKind(str, Enum):
    WORKTREE = "worktree"
    SESSION = "session"


@dataclass(frozen=True)
class DeleteTarget:
    kind: DeleteTargetKind
    id: str
    name: str


@dataclass
class Modal:
    """The single active dialog and the data it carries.

    `target_id` names the worktree a new session goes into, or the session
    being renamed.
    """

    kind: ModalKind = ModalKind.NONE
    selection: int = 0
    input_buffer: str = ""
    delete_target: DeleteTarget | None = None
    error_message: str = ""
    target_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.kind is not ModalKind.NONE


@dataclass
class FileDiffView:
    """Header/content pane pair showing one file's diff."""

    session_id: str
    file: str
    header_pane_id: str
    content_pane_id: str
    mode: DiffViewMode = DiffViewMode.WHOLE_FILE
