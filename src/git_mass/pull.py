import logging

from .batch import Phase, execute
from .config import CommandsConfig, RepoConfig, get, path_of
from .constants import APP_NAME
from .execlog import ExecutionLog
from .executor import ExecutionResult, is_unclean
from .filters import to_pull

logger = logging.getLogger(APP_NAME)


class PullRun:
    """One pull over every eligible repository.

    Repositories marked `stash_on_pull` that have uncommitted changes are
    stashed before their pull and restored afterwards; both steps are logged
    in the same execution log as the pull.

    Attributes:
        commands (CommandsConfig): Default pull/stash command templates.
        log (ExecutionLog): The execution log of the run.
        stashed (set[RepoConfig]): Repositories whose stash has not been
            popped yet.
    """

    def __init__(self, commands: CommandsConfig, log: ExecutionLog):
        self.commands = commands
        self.log = log
        self.stashed: set[RepoConfig] = set()

    def pull_command(self, el: RepoConfig) -> str:
        return get(el, "git_pull_cmd", self.commands.pull)

    def around(self, phase: Phase, el: RepoConfig) -> None:
        if phase is Phase.PRE:
            if get(el, "stash_on_pull", False) and is_unclean(path_of(el)):
                [(_, result)] = execute(
                    [el], self.commands.stash, self.log, append_to_log=True
                )
                if result.ok:
                    self.stashed.add(el)
                else:
                    logger.warning(f"Stash failed for {el.path}; pulling anyway")
        elif phase is Phase.POST and el in self.stashed:
            execute([el], self.commands.stash_pop, self.log, append_to_log=True)
            self.stashed.discard(el)

    def __call__(
        self, cfg: list[RepoConfig]
    ) -> list[tuple[RepoConfig, ExecutionResult]]:
        """Pulls every repository of `cfg` that exists and does not skip pulls.

        Args:
            cfg (list[RepoConfig]): The configured repositories.

        Returns:
            list[tuple[RepoConfig, ExecutionResult]]: The outcome of each pull.
        """
        repos = to_pull(cfg)
        logger.info(f"Pulling {len(repos)} repositories")
        return execute(repos, self.pull_command, self.log, around_hook=self.around)


def pull_all(
    cfg: list[RepoConfig], commands: CommandsConfig, log: ExecutionLog
) -> list[tuple[RepoConfig, ExecutionResult]]:
    """Pulls every eligible repository, stashing local changes where configured."""
    return PullRun(commands, log)(cfg)
