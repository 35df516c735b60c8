"""Shared fixtures for the git-mass test suite."""

import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


def git(path: Path, *args: str) -> str:
    """Runs a git command in `path` and returns its stdout."""
    res = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=path,
        check=True,
        capture_output=True,
        text=True,
    )
    return res.stdout


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating a git working copy with one committed file."""

    def _make(name: str = "repo") -> Path:
        path = tmp_path / name
        path.mkdir()
        git(path, "init", "-q")
        git(path, "config", "user.email", "test@example.com")
        git(path, "config", "user.name", "Test User")
        (path / "README").write_text("hello\n")
        git(path, "add", "README")
        git(path, "commit", "-q", "-m", "initial")
        return path

    return _make


class FakeUI:
    """Records review and confirmation requests instead of prompting."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.reviewed: list[str] = []
        self.prompts: list[str] = []

    def review(self, path: str) -> None:
        self.reviewed.append(path)

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture
def fake_ui() -> FakeUI:
    return FakeUI()
