"""Exception hierarchy for claudeplex."""

from __future__ import annotations


class ClaudeplexError(Exception):
    """Base class for every error raised by claudeplex."""


class TmuxUnavailableError(ClaudeplexError):
    """The tmux binary cannot be executed. Fatal at startup."""


class WorktreeError(ClaudeplexError):
    """A git worktree operation failed; the message is shown to the user."""


class ValidationError(ClaudeplexError):
    """User supplied a name that cannot be used."""


class SatelliteSpawnError(ClaudeplexError):
    """A satellite program could not be located."""
