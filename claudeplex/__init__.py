"""Parallel coding-agent sessions, one git worktree each, laid out in tmux."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("claudeplex")
except PackageNotFoundError:
    # Running from a source checkout without an install.
    __version__ = "0.0.0+source"

__all__ = ["__version__"]
