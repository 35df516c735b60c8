import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .actions import ActionContext, InteractiveUI, resolve_action
from .config import Config, RepoConfig, get
from .constants import APP_NAME, VCS_DIR
from .execlog import ExecutionLog
from .executor import ExecutionResult, is_unclean
from .filters import unclean
from .pull import pull_all
from .scheduler import ActionQueue, State
from .ui import ConsoleUI

logger = logging.getLogger(APP_NAME)


@dataclass
class RepoStatus:
    """A row of the repository overview.

    Attributes:
        path (str): The working copy.
        status (str): 'Missing', 'Not a repo', 'Dirty' or 'Clean'.
        action (str): The action run when the working copy is dirty.
        pull (str): 'skip', 'stash' or 'pull'.
    """

    path: str
    status: str
    action: str
    pull: str


class Session:
    """The operations offered to the CLI, sharing one log and one action queue.

    Args:
        config (Config): The loaded configuration.
        ui (InteractiveUI | None): Review/confirm provider. Defaults to a
            ConsoleUI running the configured review command.
        log (ExecutionLog | None): Execution log sink. Defaults to one saved to
            the configured run-log file.
        notify (Callable[[str], None] | None): Completion notifier for the
            action queue.
    """

    def __init__(
        self,
        config: Config,
        ui: InteractiveUI | None = None,
        log: ExecutionLog | None = None,
        notify: Callable[[str], None] | None = None,
    ):
        self.config = config
        self.ui = ui or ConsoleUI(config.commands.review)
        self.log = log or ExecutionLog(config.log.file, config.log.style)
        self.scheduler = ActionQueue(ActionContext(config.commands, self.ui), notify)

    def check_unclean(self) -> State:
        """Queues the dirty repositories and runs actions until one needs a human.

        Raises:
            SchedulerBusy: If an earlier queue is still pending.
        """
        self.scheduler.start(self.config.repositories)
        return self.scheduler.step()

    def resume(self) -> State:
        return self.scheduler.resume()

    def abandon(self) -> None:
        self.scheduler.abandon()

    def pull_all(self) -> list[tuple[RepoConfig, ExecutionResult]]:
        return pull_all(self.config.repositories, self.config.commands, self.log)

    def dirty(self, repositories: list[RepoConfig] | None = None) -> list[RepoConfig]:
        if repositories is None:
            repositories = self.config.repositories
        return unclean(repositories)

    def is_dirty_any(self, repositories: list[RepoConfig] | None = None) -> bool:
        """Whether any working copy has uncommitted changes.

        Args:
            repositories (list[RepoConfig] | None, optional): The entries to
                check. Defaults to the configured repositories.
        """
        return bool(self.dirty(repositories))

    def status(self) -> list[RepoStatus]:
        """Summarises every configured repository, in configuration order."""
        rows = []
        for el in self.config.repositories:
            path = Path(el.path)
            if not path.is_dir():
                status = "Missing"
            elif not (path / VCS_DIR).exists():
                status = "Not a repo"
            elif is_unclean(el.path):
                status = "Dirty"
            else:
                status = "Clean"

            if get(el, "skip_pull", False):
                pull = "skip"
            elif get(el, "stash_on_pull", False):
                pull = "stash"
            else:
                pull = "pull"

            rows.append(RepoStatus(el.path, status, resolve_action(el).name, pull))
        return rows
