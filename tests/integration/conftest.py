"""Shared fixtures for integration tests: throwaway git repositories."""

import shutil
from pathlib import Path

import pytest
from git import Actor, Repo

AUTHOR = Actor("Test User", "test@example.com")


@pytest.fixture
def repo(tmp_path) -> Repo:
    """A repository named `project` with one commit on `main`."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    path = tmp_path / "project"
    path.mkdir()
    repository = Repo.init(path, initial_branch="main")
    with repository.config_writer() as writer:
        writer.set_value("user", "name", AUTHOR.name)
        writer.set_value("user", "email", AUTHOR.email)
    (path / "app.py").write_text("one\ntwo\nthree\n", encoding="utf-8")
    (path / "old.txt").write_text("keep\n", encoding="utf-8")
    repository.index.add(["app.py", "old.txt"])
    repository.index.commit("initial", author=AUTHOR, committer=AUTHOR)
    return repository


@pytest.fixture
def repo_path(repo) -> Path:
    return Path(repo.working_tree_dir)
