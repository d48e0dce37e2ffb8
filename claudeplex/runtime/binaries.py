"""Runtime binary resolution policy.

These paths are internal platform policy, not user-configurable settings.
"""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

_MACOS_HOMEBREW_TMUX = (Path("/opt/homebrew/bin/tmux"), Path("/usr/local/bin/tmux"))
_UNIX_TMUX_BINARY = "tmux"


def _is_macos() -> bool:
    return sys.platform == "darwin"


def resolve_tmux_binary() -> str:
    """Resolve tmux binary by platform.

    GUI-launched shells on macOS often miss the Homebrew prefix on PATH, so the
    well-known install locations are tried before falling back to PATH lookup.
    """
    if _is_macos():
        for candidate in _MACOS_HOMEBREW_TMUX:
            if candidate.exists():
                return str(candidate)
    return _UNIX_TMUX_BINARY


def tmux_available(binary: str) -> bool:
    """Check whether the tmux binary can be executed."""
    if Path(binary).is_absolute():
        return Path(binary).exists()
    return shutil.which(binary) is not None


def resolve_python_binary() -> str:
    """Interpreter used to launch the controller and satellite programs."""
    return sys.executable or "python3"
