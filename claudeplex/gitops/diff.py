"""Changed-file summaries and per-file diff views for a worktree."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from claudeplex.logging_config import get_logger
from claudeplex.models import DiffViewMode
from claudeplex.render.ansi import BOLD, CYAN, DIM, GREEN, RED, RESET, YELLOW

logger = get_logger(__name__)

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")
_RULE = "─" * 60


@dataclass
class DiffFileSummary:
    """One changed file: M/A/D/R change type plus line counts."""

    file: str
    change_type: str
    insertions: int = 0
    deletions: int = 0
    binary: bool = False
    old_file: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "DiffFileSummary":
        return cls(
            file=str(data.get("file", "")),
            change_type=str(data.get("change_type", "M")),
            insertions=int(data.get("insertions", 0)),
            deletions=int(data.get("deletions", 0)),
            binary=bool(data.get("binary", False)),
            old_file=data.get("old_file"),
        )


@dataclass
class StatusEntries:
    """`git status` split into the buckets the summary is built from."""

    modified: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    renamed: list[tuple[str, str]] = field(default_factory=list)
    staged: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)


def parse_status_z(output: str) -> StatusEntries:
    """Parse `git status --porcelain -z` (rename sources follow their target)."""
    entries = StatusEntries()
    parts = output.split("\0")
    i = 0
    while i < len(parts):
        record = parts[i]
        i += 1
        if len(record) < 4:
            continue
        index, work, path = record[0], record[1], record[3:]
        if index == "?" and work == "?":
            entries.untracked.append(path)
            continue
        if index in "RC":
            source = parts[i] if i < len(parts) else ""
            i += 1
            entries.renamed.append((source, path))
            continue
        if index == "A":
            entries.created.append(path)
        elif "D" in (index, work):
            entries.deleted.append(path)
        elif "M" in (index, work):
            entries.modified.append(path)
        if index not in (" ", "?"):
            entries.staged.append(path)
    return entries


def _open_repo(path: str) -> Repo | None:
    try:
        return Repo(path)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return None


def _is_nested_repo(root: Path, file: str) -> bool:
    candidate = root / file
    return candidate.is_dir() and (candidate / ".git").exists()


def _count_lines(path: Path) -> int:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return 0
    lines = content.split("\n")
    return len(lines) - 1 if lines[-1] == "" else len(lines)


def _numstat(repo: Repo, file: str, new: bool = False) -> tuple[int, int, bool]:
    """(insertions, deletions, binary) against HEAD, falling back to the index."""
    attempts = [("--cached", "--numstat")] if new else [("HEAD", "--numstat"), ("--cached", "--numstat")]
    output = ""
    for args in attempts:
        try:
            output = repo.git.diff(*args, "--", file)
        except GitCommandError:
            output = ""
        if output.strip():
            break
    if not output.strip():
        return 0, 0, False
    added, removed, *_ = output.strip().splitlines()[0].split("\t") + ["", ""]
    if added == "-" and removed == "-":
        return 0, 0, True
    try:
        return int(added or 0), int(removed or 0), False
    except ValueError:
        return 0, 0, False


def diff_summary(path: str) -> list[DiffFileSummary]:
    """Every file that differs from HEAD, staged or not, plus untracked files."""
    repo = _open_repo(path)
    if repo is None:
        return []
    try:
        status = parse_status_z(repo.git.status("--porcelain", "-z", "--untracked-files=all"))
    except GitCommandError as exc:
        logger.debug("git status failed in {}: {}", path, exc)
        return []

    root = Path(path)
    files: list[DiffFileSummary] = []
    seen: set[str] = set()

    def add(summary: DiffFileSummary) -> None:
        files.append(summary)
        seen.add(summary.file)

    for file in status.modified:
        if _is_nested_repo(root, file):
            continue
        ins, dels, binary = _numstat(repo, file)
        add(DiffFileSummary(file, "M", ins, dels, binary))
    for file in status.created:
        ins, _, binary = _numstat(repo, file, new=True)
        add(DiffFileSummary(file, "A", ins, 0, binary))
    for file in status.deleted:
        _, dels, binary = _numstat(repo, file)
        add(DiffFileSummary(file, "D", 0, dels, binary))
    for old, new in status.renamed:
        ins, dels, binary = _numstat(repo, new)
        add(DiffFileSummary(new, "R", ins, dels, binary, old_file=old))
    for file in status.staged:
        if file in seen or _is_nested_repo(root, file):
            continue
        ins, dels, binary = _numstat(repo, file)
        add(DiffFileSummary(file, "M", ins, dels, binary))
    for file in status.untracked:
        add(DiffFileSummary(file, "A", _count_lines(root / file), 0, False))
    return files


def _raw_diff(repo: Repo, file: str) -> str:
    for args in (("HEAD",), ("--cached",)):
        try:
            diff = repo.git.diff(*args, "--", file)
        except GitCommandError:
            continue
        if diff:
            return diff
    return ""


def _is_new_file(repo: Repo, file: str) -> bool:
    try:
        status = parse_status_z(repo.git.status("--porcelain", "-z", "--untracked-files=all", "--", file))
    except GitCommandError:
        return False
    return file in status.untracked or file in status.created


def diffs_only_view(diff: str) -> str:
    """Hunks with old/new line numbers, file headers dropped."""
    out: list[str] = []
    first = True
    old_line = new_line = 0
    for line in diff.split("\n"):
        if line.startswith(("diff ", "index ", "---", "+++", "new file mode", "deleted file mode")):
            continue
        if line.startswith("@@"):
            match = _HUNK_RE.match(line)
            if not match:
                out.append(f"{DIM}{line}{RESET}")
                continue
            old_start, old_count, new_start, new_count, context = match.groups()
            if not first:
                out.append(f"{DIM}{_RULE}{RESET}")
            first = False
            header = f"{CYAN}{BOLD}@@ {RED}−{old_start},{old_count or 1}{RESET}{CYAN}{BOLD} {GREEN}+{new_start},{new_count or 1}{RESET}"
            if context and context.strip():
                header += f" {DIM}{context.strip()}{RESET}"
            out.append(header + RESET)
            old_line, new_line = int(old_start), int(new_start)
        elif line.startswith("+"):
            out.append(f"{GREEN}{new_line:>4} + {line[1:]}{RESET}")
            new_line += 1
        elif line.startswith("-"):
            out.append(f"{RED}{old_line:>4} − {line[1:]}{RESET}")
            old_line += 1
        elif line.startswith("\\"):
            out.append(f"{DIM}     {line}{RESET}")
        elif not first:
            out.append(f"{DIM}{new_line:>4}   {line[1:]}{RESET}")
            old_line += 1
            new_line += 1
    return "\n".join(out) if out else f"{DIM}No changes{RESET}"


def new_file_view(content: str) -> str:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    out = [f"{YELLOW}{BOLD}New file{RESET} {DIM}({len(lines)} lines){RESET}", f"{DIM}{_RULE}{RESET}"]
    out.extend(f"{GREEN}{number:>4} + {text}{RESET}" for number, text in enumerate(lines, start=1))
    return "\n".join(out)


def _plain_line(number: int, text: str) -> str:
    return f"{DIM}{number:>4}{RESET}   {text}"


def full_file_view(content: str, diff: str) -> str:
    """Whole current file with deleted lines re-inserted where they were removed."""
    current = content.split("\n")
    hunks: list[tuple[int, list[tuple[str, str]]]] = []
    for line in diff.split("\n"):
        match = _HUNK_RE.match(line)
        if match:
            hunks.append((int(match.group(3)), []))
            continue
        if not hunks:
            continue
        body = hunks[-1][1]
        if line.startswith("+") and not line.startswith("+++"):
            body.append(("+", line[1:]))
        elif line.startswith("-") and not line.startswith("---"):
            body.append(("-", line[1:]))
        elif line.startswith(" ") or line == "":
            body.append((" ", line[1:]))

    out: list[str] = []
    number = 1
    hunk_index = 0
    while number <= len(current) or hunk_index < len(hunks):
        hunk = hunks[hunk_index] if hunk_index < len(hunks) else None
        if hunk and (number == hunk[0] or (hunk[0] == 0 and number == 1)):
            for kind, text in hunk[1]:
                if kind == "-":
                    out.append(f"{DIM}    {RESET} {RED}-{RESET} {RED}{text}{RESET}")
                elif kind == "+":
                    out.append(f"{DIM}{number:>4}{RESET} {GREEN}+{RESET} {GREEN}{text}{RESET}")
                    number += 1
                else:
                    out.append(_plain_line(number, text))
                    number += 1
            hunk_index += 1
        elif number <= len(current):
            out.append(_plain_line(number, current[number - 1]))
            number += 1
        else:
            # Hunks past the end of the file (trailing deletions).
            hunk_index += 1
    return "\n".join(out)


def render_file_diff(path: str, file: str, mode: DiffViewMode | str) -> str:
    """Colored view of one file for the file diff content pane."""
    mode = DiffViewMode(mode)
    target = Path(path) / file
    repo = _open_repo(path)
    if repo is None:
        return f"{RED}Not a git repository: {path}{RESET}"

    if _is_new_file(repo, file):
        try:
            content = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return f"{RED}Cannot read {file}: {exc}{RESET}"
        if mode is DiffViewMode.DIFFS_ONLY:
            return new_file_view(content)
        lines = content.split("\n")
        return "\n".join(f"{DIM}{n:>4}{RESET} {GREEN}+{RESET} {GREEN}{text}{RESET}" for n, text in enumerate(lines, 1))

    diff = _raw_diff(repo, file)
    if mode is DiffViewMode.DIFFS_ONLY:
        return diffs_only_view(diff) if diff else f"{DIM}No changes{RESET}"

    try:
        content = target.read_text(encoding="utf-8")
    except FileNotFoundError:
        # Deleted file: only the removed lines exist.
        return diffs_only_view(diff) if diff else f"{DIM}File not found: {file}{RESET}"
    except (OSError, UnicodeDecodeError) as exc:
        return f"{RED}Cannot read {file}: {exc}{RESET}"
    if not diff:
        return "\n".join(_plain_line(n, text) for n, text in enumerate(content.split("\n"), 1))
    return full_file_view(content, diff)
