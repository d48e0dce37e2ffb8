"""Pydantic schema for claudeplex configuration."""

import tempfile
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

from claudeplex.constants import (
    AGENT_PANE_PERCENT,
    DEFAULT_AGENT_COMMAND,
    DIFF_PANE_WIDTH,
    SIDEBAR_WIDTH,
    TERMINAL_BAR_HEIGHT,
)
from claudeplex.runtime.binaries import resolve_tmux_binary

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    agent_command: str = DEFAULT_AGENT_COMMAND
    tmux_binary: str = resolve_tmux_binary()

    sidebar_width: int = SIDEBAR_WIDTH
    terminal_bar_height: int = TERMINAL_BAR_HEIGHT
    agent_pane_percent: int = AGENT_PANE_PERCENT
    diff_pane_width: int = DIFF_PANE_WIDTH

    worktrees_dir: str = "~/.claude-worktrees"
    script_dir: str = tempfile.gettempdir()

    log_level: LogLevel = "INFO"
    log_path: str = "~/.claudeplex/logs/claudeplex.log"

    relay_idle_timeout: float = 1.0  # seconds a half-received relay line may sit idle
    diff_poll_interval: float = 2.0

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("agent_pane_percent")
    @classmethod
    def validate_percent(cls, v: int) -> int:
        """The agent pane must leave room for the terminal area."""
        if not 10 <= v <= 95:
            raise ValueError(f"agent_pane_percent must be between 10 and 95, got: {v}")
        return v

    @field_validator("sidebar_width", "terminal_bar_height", "diff_pane_width")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Pane dimensions must be positive, got: {v}")
        return v

    @field_validator("relay_idle_timeout", "diff_poll_interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Intervals must be greater than zero, got: {v}")
        return v

    @field_validator("agent_command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("agent_command must not be empty")
        return v.strip()
