"""Shared fixtures: throwaway git repositories and logger isolation."""

import logging
import subprocess
from pathlib import Path

import pytest


class GitRepo:
    """A scratch repository driven through the real git executable."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args: str) -> str:
        proc = subprocess.run(
            ["git", *args],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
        )
        return proc.stdout.strip()

    def write(self, rel_path: str, content) -> Path:
        path = self.path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
        return path

    def commit(self, message: str = "commit", *paths: str) -> str:
        self.git("add", *(paths or ("-A",)))
        self.git("commit", "-q", "--allow-empty", "-m", message)
        return self.git("rev-parse", "HEAD")

    def branch(self, name: str) -> None:
        self.git("checkout", "-q", "-b", name)

    def checkout(self, name: str) -> None:
        self.git("checkout", "-q", name)


@pytest.fixture
def git_repo(tmp_path) -> GitRepo:
    """An empty repository on branch ``main`` with a local identity."""
    path = tmp_path / "repo"
    path.mkdir()
    repo = GitRepo(path)
    repo.git("init", "-q")
    repo.git("symbolic-ref", "HEAD", "refs/heads/main")
    repo.git("config", "user.name", "Test User")
    repo.git("config", "user.email", "test@example.com")
    repo.git("config", "commit.gpgsign", "false")
    return repo


@pytest.fixture
def seeded_repo(git_repo) -> GitRepo:
    """Repository with one commit containing ``app.py``."""
    git_repo.write("app.py", "def main():\n    return 1\n")
    git_repo.commit("initial")
    return git_repo


@pytest.fixture(autouse=True)
def _reset_diffreview_logger():
    """Undo any setup_logging() call made during a test."""
    yield
    logger = logging.getLogger("diffreview")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
