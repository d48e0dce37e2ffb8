"""Name checks applied before any worktree or pane is touched."""

from __future__ import annotations

import re

from claudeplex.constants import SESSION_TITLE_MAX

_FORBIDDEN_BRANCH_CHARS = set(" ~^:?*[\\")
_PATH_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")
BRANCH_INPUT_CHARS = re.compile(r"[A-Za-z0-9\-_/.]")


def _has_control(text: str) -> bool:
    return any(ord(ch) < 32 or ord(ch) == 127 for ch in text)


def is_valid_branch_name(name: str) -> bool:
    """git check-ref-format rules, as far as a single branch name needs them."""
    if not name or _has_control(name):
        return False
    if any(ch in _FORBIDDEN_BRANCH_CHARS for ch in name):
        return False
    if ".." in name or "@{" in name or "//" in name:
        return False
    if name.startswith(("/", "-")) or name.endswith(("/", "-", ".", ".lock")):
        return False
    return name != "@"


def is_valid_session_name(name: str) -> bool:
    stripped = name.strip()
    return bool(stripped) and len(stripped) <= SESSION_TITLE_MAX and not _has_control(stripped)


def sanitize_branch_for_path(branch: str) -> str:
    """Directory-safe form of a branch name (feature/x -> feature-x)."""
    return _PATH_UNSAFE.sub("-", branch)


def is_branch_input_char(char: str) -> bool:
    """Characters the new-worktree dialog accepts as typed input."""
    return len(char) == 1 and BRANCH_INPUT_CHARS.fullmatch(char) is not None
