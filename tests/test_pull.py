"""Tests for the stash-aware pull workflow."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import git, requires_git

from git_mass.config import CommandsConfig, RepoConfig
from git_mass.execlog import ExecutionLog
from git_mass.executor import ExecutionResult
from git_mass.pull import PullRun, pull_all


@pytest.fixture
def commands() -> CommandsConfig:
    return CommandsConfig()


@pytest.fixture
def recorded(mocker: MagicMock) -> list[tuple[str, str]]:
    """Records (path, command) for every command the batch executor runs."""
    calls: list[tuple[str, str]] = []

    def fake_run(path: str, command: str, verbose: bool = False) -> ExecutionResult:
        calls.append((path, command))
        return ExecutionResult(0, "")

    mocker.patch("git_mass.batch.run", side_effect=fake_run)
    return calls


def test_dirty_stash_repo_is_stashed_pulled_and_restored(
    tmp_path: Path,
    mocker: MagicMock,
    commands: CommandsConfig,
    recorded: list[tuple[str, str]],
) -> None:
    """Verifies the log order stash, pull, pop and that bookkeeping ends empty."""
    mocker.patch("git_mass.pull.is_unclean", return_value=True)
    el = RepoConfig(str(tmp_path), stash_on_pull=True)
    log = ExecutionLog()
    run = PullRun(commands, log)

    results = run([el])

    assert log.titles() == [str(tmp_path), "git stash", "git pull", "git stash pop"]
    assert [r.ok for _, r in results] == [True]
    assert not log.has_failures
    assert run.stashed == set()
    assert [c for _, c in recorded] == ["git stash", "git pull", "git stash pop"]


def test_stash_only_where_configured_and_dirty(
    tmp_path: Path,
    mocker: MagicMock,
    commands: CommandsConfig,
    recorded: list[tuple[str, str]],
) -> None:
    """Verifies that stash pop runs for the stashed repository and no other."""
    paths = {}
    for name in ("stash_dirty", "stash_clean", "plain_dirty"):
        paths[name] = tmp_path / name
        paths[name].mkdir()
    dirty = {str(paths["stash_dirty"]), str(paths["plain_dirty"])}
    mocker.patch("git_mass.pull.is_unclean", side_effect=lambda p: p in dirty)
    cfg = [
        RepoConfig(str(paths["stash_dirty"]), stash_on_pull=True),
        RepoConfig(str(paths["stash_clean"]), stash_on_pull=True),
        RepoConfig(str(paths["plain_dirty"]), git_pull_cmd="git pull --rebase"),
    ]

    pull_all(cfg, commands, ExecutionLog())

    assert recorded == [
        (str(paths["stash_dirty"]), "git stash"),
        (str(paths["stash_dirty"]), "git pull"),
        (str(paths["stash_dirty"]), "git stash pop"),
        (str(paths["stash_clean"]), "git pull"),
        (str(paths["plain_dirty"]), "git pull --rebase"),
    ]


def test_pull_skips_missing_and_opted_out(
    tmp_path: Path, commands: CommandsConfig, recorded: list[tuple[str, str]]
) -> None:
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    cfg = [
        RepoConfig(str(tmp_path / "a"), skip_pull=True),
        RepoConfig(str(tmp_path / "gone")),
        RepoConfig(str(tmp_path / "b")),
    ]

    results = pull_all(cfg, commands, ExecutionLog())

    assert [el.path for el, _ in results] == [str(tmp_path / "b")]
    assert recorded == [(str(tmp_path / "b"), "git pull")]


def test_failed_stash_is_not_popped(
    tmp_path: Path, mocker: MagicMock, commands: CommandsConfig
) -> None:
    mocker.patch("git_mass.pull.is_unclean", return_value=True)
    mock_run = mocker.patch(
        "git_mass.batch.run",
        side_effect=[ExecutionResult(1, "cannot stash"), ExecutionResult(0, "")],
    )
    log = ExecutionLog()
    run = PullRun(commands, log)

    run([RepoConfig(str(tmp_path), stash_on_pull=True)])

    assert [c.args[1] for c in mock_run.call_args_list] == ["git stash", "git pull"]
    assert run.stashed == set()
    assert [e.title for e in log.entries if e.failed] == [str(tmp_path), "git stash"]


@requires_git
def test_pull_all_restores_local_changes(
    tmp_path: Path, make_repo: Callable[..., Path], commands: CommandsConfig
) -> None:
    """End to end: a dirty clone is stashed, pulls a new commit, and gets its edit back."""
    origin = make_repo("origin")
    clone = tmp_path / "clone"
    git(tmp_path, "clone", "-q", str(origin), str(clone))
    git(clone, "config", "user.email", "test@example.com")
    git(clone, "config", "user.name", "Test User")

    (origin / "CHANGELOG").write_text("v2\n")
    git(origin, "add", "CHANGELOG")
    git(origin, "commit", "-q", "-m", "second")

    (clone / "README").write_text("local edit\n")
    log = ExecutionLog()
    run = PullRun(commands, log)

    results = run([RepoConfig(str(clone), stash_on_pull=True)])

    assert [r.ok for _, r in results] == [True]
    assert not log.has_failures
    assert log.titles()[1:] == ["git stash", "git pull", "git stash pop"]
    assert (clone / "CHANGELOG").read_text() == "v2\n"
    assert (clone / "README").read_text() == "local edit\n"
    assert run.stashed == set()
