"""Runtime-only policy modules (not user-configurable)."""

from claudeplex.runtime.binaries import resolve_python_binary, resolve_tmux_binary, tmux_available

__all__ = ["resolve_tmux_binary", "resolve_python_binary", "tmux_available"]
