import logging
from collections.abc import Callable
from enum import StrEnum

from .actions import ActionContext, resolve_action
from .config import RepoConfig, path_of
from .constants import APP_NAME
from .filters import unclean

logger = logging.getLogger(APP_NAME)


class State(StrEnum):
    """Lifecycle of an action queue."""

    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"
    DONE = "done"


class SchedulerBusy(RuntimeError):
    """Raised when a queue is started while another one is still pending."""


class ActionQueue:
    """Works through the dirty repositories one action at a time.

    Non-interactive actions run back to back. After an interactive action the
    queue is suspended until `resume()` is called, giving the human time to
    finish with that repository.

    Attributes:
        context (ActionContext): Passed to every action.
        notify (Callable[[str], None] | None): Called with a message once the
            queue is exhausted.
    """

    def __init__(
        self,
        context: ActionContext,
        notify: Callable[[str], None] | None = None,
    ):
        self.context = context
        self.notify = notify
        self._queue: list[RepoConfig] = []
        self._state = State.IDLE
        self._current: RepoConfig | None = None

    @property
    def state(self) -> State:
        return self._state

    @property
    def queue(self) -> tuple[RepoConfig, ...]:
        """The repositories still waiting for their action, in order."""
        return tuple(self._queue)

    @property
    def current(self) -> RepoConfig | None:
        """The repository whose action ran last."""
        return self._current

    def start(self, cfg: list[RepoConfig]) -> None:
        """Queues every dirty repository of `cfg`.

        Args:
            cfg (list[RepoConfig]): The configured repositories.

        Raises:
            SchedulerBusy: If a previous queue is running or suspended.
            InvalidConfigList: If `cfg` is malformed.
        """
        if self._state in (State.RUNNING, State.SUSPENDED):
            raise SchedulerBusy(
                f"An action queue is already {self._state} "
                f"({len(self._queue)} repositories left)"
            )
        self._queue = unclean(cfg)
        self._current = None
        self._state = State.RUNNING
        logger.info(f"Queued {len(self._queue)} repositories with changes")

    def step(self) -> State:
        """Runs actions from the head of the queue.

        Keeps going while actions are non-interactive. Stops after an
        interactive one (SUSPENDED) or once the queue is empty (DONE).

        Returns:
            State: The state the queue is left in.

        Raises:
            Exception: Whatever the action raised. The repository has already
                been taken off the queue and the queue is left SUSPENDED.
        """
        if self._state in (State.IDLE, State.DONE):
            logger.debug(f"Nothing to step: queue is {self._state}")
            return self._state

        self._state = State.RUNNING
        while self._queue:
            el = self._queue.pop(0)
            self._current = el
            action = resolve_action(el)
            logger.info(f"Running {action.name} on {path_of(el)}")
            try:
                action(el, self.context)
            except Exception:
                self._state = State.SUSPENDED
                raise
            if action.requires_interaction():
                self._state = State.SUSPENDED
                return self._state

        self._finish()
        return self._state

    def resume(self) -> State:
        """Continues a suspended queue with the next repository."""
        if self._state is not State.SUSPENDED:
            logger.warning(f"Nothing to resume: queue is {self._state}")
            return self._state
        return self.step()

    def abandon(self) -> None:
        """Drops the remaining repositories and returns to IDLE."""
        if self._queue:
            logger.info(f"Abandoned action queue with {len(self._queue)} left")
        self._queue = []
        self._current = None
        self._state = State.IDLE

    def _finish(self) -> None:
        self._state = State.DONE
        self._current = None
        logger.info("All repositories processed")
        if self.notify:
            self.notify("All repositories with changes have been processed.")
