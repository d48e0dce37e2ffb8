"""Git worktree operations backing the sidebar's worktree list."""

from __future__ import annotations

import hashlib
import shutil
from pathlib import Path

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from claudeplex.errors import WorktreeError
from claudeplex.logging_config import get_logger
from claudeplex.models import Worktree
from claudeplex.validation import is_valid_branch_name, sanitize_branch_for_path

logger = get_logger(__name__)

MAIN_WORKTREE_ID = "main"


def find_repo_root(path: str | Path) -> Path | None:
    """Top-level directory of the repository containing path, or None."""
    try:
        repo = Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return None
    if repo.working_tree_dir is None:
        return None
    return Path(repo.working_tree_dir)


def worktree_id_for(path: str) -> str:
    """Stable id for a linked worktree, so repeated listings agree."""
    resolved = str(Path(path).resolve())
    return "wt-" + hashlib.sha1(resolved.encode("utf-8")).hexdigest()[:8]


def parse_porcelain(output: str, repo_path: str) -> list[Worktree]:
    """Parse `git worktree list --porcelain` output."""
    worktrees: list[Worktree] = []
    main_path = str(Path(repo_path).resolve())
    for block in output.strip().split("\n\n"):
        if not block.strip():
            continue
        path = ""
        branch = ""
        for line in block.splitlines():
            if line.startswith("worktree "):
                path = line[len("worktree ") :]
            elif line.startswith("branch "):
                branch = line[len("branch ") :].removeprefix("refs/heads/")
            elif line == "detached":
                branch = "(detached)"
        if not path:
            continue
        is_main = str(Path(path).resolve()) == main_path
        worktrees.append(
            Worktree(
                id=MAIN_WORKTREE_ID if is_main else worktree_id_for(path),
                path=path,
                branch=branch or Path(path).name,
                is_main=is_main,
            )
        )
    return worktrees


class WorktreeManager:
    """List, create and remove worktrees of one repository."""

    def __init__(self, repo_path: str | Path, base_path: str | Path | None = None) -> None:
        self.repo_path = str(repo_path)
        self.base_path = Path(base_path or Path.home() / ".claude-worktrees").expanduser()
        try:
            self.repo = Repo(self.repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as exc:
            raise WorktreeError(f"{self.repo_path} is not a git repository") from exc

    def list(self) -> list[Worktree]:
        try:
            output = self.repo.git.worktree("list", "--porcelain")
        except GitCommandError as exc:
            logger.warning("git worktree list failed: {}", exc)
            return []
        return parse_porcelain(output, self.repo_path)

    def path_for(self, branch: str) -> Path:
        return self.base_path / f"{Path(self.repo_path).name}-{sanitize_branch_for_path(branch)}"

    def create(self, branch: str, new_branch: bool = True) -> Worktree:
        """Check out branch into a new worktree under the base directory.

        Raises:
            WorktreeError: invalid branch name, existing target directory, or
                a failing git command.
        """
        if not is_valid_branch_name(branch):
            raise WorktreeError(f"Invalid branch name: {branch!r}")
        path = self.path_for(branch)
        if path.exists():
            raise WorktreeError(f"Worktree directory already exists: {path}")
        self.base_path.mkdir(parents=True, exist_ok=True)

        try:
            if new_branch:
                self.repo.git.worktree("add", "-b", branch, str(path))
            else:
                self.repo.git.worktree("add", str(path), branch)
        except GitCommandError as exc:
            message = (exc.stderr or str(exc)).strip().removeprefix("stderr:").strip(" '")
            logger.error("Failed to create worktree for {}: {}", branch, message)
            raise WorktreeError(f"Failed to create worktree '{branch}': {message}") from exc

        logger.info("Created worktree {} at {}", branch, path)
        return Worktree(id=worktree_id_for(str(path)), path=str(path), branch=branch, is_main=False)

    def remove(self, path: str, force: bool = False) -> None:
        """Remove a worktree; with force, fall back to deleting the directory and pruning."""
        args = ["remove"]
        if force:
            args.append("--force")
        args.append(path)
        try:
            self.repo.git.worktree(*args)
        except GitCommandError as exc:
            if not force:
                raise WorktreeError(f"Failed to remove worktree at '{path}'") from exc
            logger.warning("git worktree remove failed for {}, cleaning up manually", path)
            try:
                shutil.rmtree(path, ignore_errors=False)
            except FileNotFoundError:
                pass
            except OSError as rm_exc:
                raise WorktreeError(f"Failed to delete worktree directory '{path}': {rm_exc}") from rm_exc
            self.prune()
        logger.info("Removed worktree at {}", path)

    def prune(self) -> None:
        try:
            self.repo.git.worktree("prune")
        except GitCommandError as exc:
            raise WorktreeError(f"git worktree prune failed: {exc}") from exc
