"""Git collaborators: worktree management and diff views."""

from claudeplex.gitops.diff import DiffFileSummary, diff_summary, render_file_diff
from claudeplex.gitops.worktrees import WorktreeManager, find_repo_root

__all__ = ["DiffFileSummary", "WorktreeManager", "diff_summary", "find_repo_root", "render_file_diff"]
