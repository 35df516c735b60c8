import logging
import subprocess
from typing import Literal, NamedTuple, overload

from .constants import APP_NAME, DIRTY_CHECK_CMD

logger = logging.getLogger(APP_NAME)

SUCCESS_MESSAGE = "Command succeeded"
"""str: Returned by non-verbose runs that exit with status 0."""

SPAWN_FAILURE_CODE = 127
"""int: Exit code reported when the shell could not be started at all."""


class ExecutionResult(NamedTuple):
    """Outcome of one shell invocation.

    Attributes:
        exit_code (int): The process exit status.
        combined_output (str): Standard output and standard error, interleaved.
    """

    exit_code: int
    combined_output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandFailed(RuntimeError):
    """Raised by non-verbose runs when a command exits with a nonzero status.

    Attributes:
        command (str): The command line that failed.
        path (str): The working directory it ran in.
        exit_code (int | None): The exit status, if the process started.
    """

    def __init__(self, command: str, path: str, exit_code: int | None = None):
        self.command = command
        self.path = path
        self.exit_code = exit_code
        super().__init__(f"Command '{command}' failed in {path} (exit {exit_code})")


def _capture(repo_path: str, command: str) -> ExecutionResult:
    try:
        res = subprocess.run(
            command,
            shell=True,
            cwd=repo_path,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        logger.debug(f"Could not start '{command}' in {repo_path}: {e}")
        return ExecutionResult(SPAWN_FAILURE_CODE, str(e))
    return ExecutionResult(res.returncode, res.stdout or "")


@overload
def run(repo_path: str, command: str, verbose: Literal[False] = ...) -> str: ...


@overload
def run(repo_path: str, command: str, verbose: Literal[True]) -> ExecutionResult: ...


def run(repo_path: str, command: str, verbose: bool = False) -> str | ExecutionResult:
    """Executes a shell command line inside a working copy.

    The command is handed to the shell as-is, so it may use pipes and
    redirections. The call blocks until the command exits.

    Args:
        repo_path (str): The directory to run in.
        command (str): The full shell command line.
        verbose (bool, optional): Whether to return the captured outcome instead
            of checking it. Defaults to False.

    Returns:
        str | ExecutionResult:  SUCCESS_MESSAGE in non-verbose mode, otherwise the
                                exit code and combined output.

    Raises:
        CommandFailed: In non-verbose mode, if the command exits nonzero or
                       cannot be started.
    """
    result = _capture(repo_path, command)
    if verbose:
        return result
    if not result.ok:
        raise CommandFailed(command, repo_path, result.exit_code)
    return SUCCESS_MESSAGE


def is_unclean(path: str) -> bool:
    """Checks whether a working copy has uncommitted changes to tracked files.

    A failing status check (clean tree, not a repository, git missing) all read
    as False: the result means "dirty" or "not known to be dirty".

    Args:
        path (str): The working copy to check.

    Returns:
        bool: True if at least one modified, added, deleted, renamed, copied or
              unmerged entry is reported.
    """
    try:
        run(path, DIRTY_CHECK_CMD)
    except CommandFailed as e:
        logger.debug(f"Dirty check negative for {path} (exit {e.exit_code})")
        return False
    return True
