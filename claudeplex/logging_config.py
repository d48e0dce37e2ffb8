"""claudeplex logging configuration.

Every claudeplex process (controller, launcher, satellites) renders into a
tmux pane, so nothing may be written to stdout/stderr. Logs go to a rotating
file instead (default: `~/.claudeplex/logs/claudeplex.log`). Each process binds
its component name so interleaved lines from the controller and its
satellites can be told apart:

    tail -f ~/.claudeplex/logs/claudeplex.log | grep satellite.terminal_bar
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_LEVEL_ENV = "CLAUDEPLEX_LOG_LEVEL"
LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} | {extra[name]} | {message}"

logger.configure(extra={"component": "-", "name": "-"})


def setup_logging(level: Optional[str] = None, path: Optional[Path] = None, component: str = "claudeplex") -> None:
    """Configure claudeplex logging for the current process.

    Args:
        level: Optional override for `CLAUDEPLEX_LOG_LEVEL`.
        path: Log file location; defaults to the configured `log_path`.
        component: Process label written on every line.
    """
    from claudeplex.config import config

    if level:
        os.environ[LOG_LEVEL_ENV] = level
    resolved_level = os.environ.get(LOG_LEVEL_ENV, config.log_level).upper()
    log_path = Path(path or config.log_path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.configure(extra={"component": component, "name": "-"})
    logger.add(
        str(log_path),
        level=resolved_level,
        format=LOG_FORMAT,
        rotation="5 MB",
        retention=3,
        enqueue=False,
    )


def get_logger(name: str):  # type: ignore[no-untyped-def]
    """Return the shared logger bound to a module name."""
    return logger.bind(name=name)
