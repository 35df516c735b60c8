import datetime
import logging
from collections.abc import Callable
from enum import StrEnum

from .config import RepoConfig, check_list, path_of
from .constants import APP_NAME
from .execlog import ExecutionLog
from .executor import ExecutionResult, run

logger = logging.getLogger(APP_NAME)

CommandSource = str | Callable[[RepoConfig], str | None]
"""A fixed command line, or a function choosing one per repository (None skips)."""


class Phase(StrEnum):
    """Point in a repository's run at which the around-hook is called."""

    PRE = "pre"
    POST = "post"


AroundHook = Callable[[Phase, RepoConfig], None]


def _resolve(command_source: CommandSource, el: RepoConfig) -> str | None:
    if callable(command_source):
        return command_source(el)
    return command_source


def execute(
    cfg: list[RepoConfig],
    command_source: CommandSource,
    log: ExecutionLog,
    append_to_log: bool = False,
    around_hook: AroundHook | None = None,
) -> list[tuple[RepoConfig, ExecutionResult]]:
    """Runs a command in every repository of `cfg`, one after the other.

    Each command's outcome is written to `log`; a failing command is annotated
    there and the batch carries on. Exceptions raised by `around_hook` are not
    caught and abort the rest of the batch.

    Args:
        cfg (list[RepoConfig]): The repositories, in run order.
        command_source (CommandSource): The command line, or a function
            returning one (or None to skip) for each repository.
        log (ExecutionLog): The execution log to write to.
        append_to_log (bool, optional): Append to the current log instead of
            starting a new run. Defaults to False.
        around_hook (AroundHook | None, optional): Called with Phase.PRE before
            and Phase.POST after each repository's command.

    Returns:
        list[tuple[RepoConfig, ExecutionResult]]: The outcome of every command
        that ran, in order.

    Raises:
        InvalidConfigList: If `cfg` is malformed.
    """
    repos = check_list(cfg)
    if not append_to_log:
        log.reset(f"Run {datetime.datetime.now():%Y-%m-%d %H:%M:%S}")

    results: list[tuple[RepoConfig, ExecutionResult]] = []
    try:
        for el in repos:
            command = _resolve(command_source, el)
            if command is None:
                continue

            path = path_of(el)
            with log.section(path):
                if around_hook:
                    around_hook(Phase.PRE, el)

                result = run(path, command, verbose=True)
                results.append((el, result))

                log.heading(command)
                log.body(f"Directory: {path}")
                if result.ok:
                    log.body("Result: success")
                    logger.info(f"OK {path}: {command}")
                else:
                    log.body(f"Result: FAILED (exit {result.exit_code})")
                    log.mark_failed()
                    logger.warning(
                        f"FAILED {path}: {command} (exit {result.exit_code})"
                    )
                log.body(result.combined_output, verbatim=True)

                if around_hook:
                    around_hook(Phase.POST, el)
    finally:
        log.save()

    return results
