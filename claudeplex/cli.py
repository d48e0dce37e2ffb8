"""Command line entry point: `claudeplex [path] [--new] [--session NAME]`."""

from __future__ import annotations

import argparse
import sys

from rich.console import Console

from claudeplex import __version__
from claudeplex.config import config
from claudeplex.errors import TmuxUnavailableError
from claudeplex.gitops.worktrees import find_repo_root
from claudeplex.launcher import Launcher, session_name_for
from claudeplex.logging_config import get_logger, setup_logging
from claudeplex.runtime.binaries import tmux_available
from claudeplex.tmux.client import TmuxClient

logger = get_logger(__name__)

console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claudeplex",
        description="Run parallel coding-agent sessions, one git worktree each, inside tmux.",
    )
    parser.add_argument("path", nargs="?", default=".", help="Repository (or any path inside it)")
    parser.add_argument("--new", action="store_true", help="Kill an existing session and start fresh")
    parser.add_argument("--session", metavar="NAME", help="tmux session name (default: derived from the path)")
    parser.add_argument("--log-level", metavar="LEVEL", help="Override the configured log level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, component="cli")

    if not tmux_available(config.tmux_binary):
        console.print(f"[red]tmux not found[/red] ({config.tmux_binary}). Install tmux and try again.")
        return 1

    repo_root = find_repo_root(args.path)
    if repo_root is None:
        console.print(f"[red]Not a git repository:[/red] {args.path}")
        return 1

    repo_path = str(repo_root)
    name = args.session or session_name_for(repo_path)
    console.print(f"[bold]Claude++[/bold] {repo_path}")
    console.print(f"Session: [cyan]{name}[/cyan]  (detach with Ctrl+B d)")

    try:
        result = Launcher(TmuxClient()).launch(repo_path, name, force_new=args.new)
    except TmuxUnavailableError as exc:
        logger.error("Launch failed: {}", exc)
        console.print(f"[red]{exc}[/red]")
        return 1
    if result.exit_code != 0:
        logger.warning("tmux attach for {} exited with {}", result.session_name, result.exit_code)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
