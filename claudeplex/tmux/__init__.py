"""tmux command layer."""

from claudeplex.tmux.client import OperationOutcome, TmuxClient, TmuxResult

__all__ = ["OperationOutcome", "TmuxClient", "TmuxResult"]
