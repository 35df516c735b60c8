"""Remediation actions run against repositories with uncommitted changes."""

import logging
from dataclasses import dataclass
from typing import Protocol

from .config import CommandsConfig, RepoConfig, get, path_of
from .constants import APP_NAME, DEFAULT_ACTION
from .executor import run

logger = logging.getLogger(APP_NAME)


class InteractiveUI(Protocol):
    """What actions need from the human-facing side."""

    def review(self, path: str) -> None: ...

    def confirm(self, prompt: str) -> bool: ...


@dataclass(frozen=True)
class ActionContext:
    """Everything an action may use besides the repository itself.

    Attributes:
        commands (CommandsConfig): Process-wide default command templates.
        ui (InteractiveUI): Review and confirmation primitives.
    """

    commands: CommandsConfig
    ui: InteractiveUI


class Action:
    """Base class for a named remediation behaviour.

    Subclasses that hand the repository over to a human set `interactive`; the
    scheduler pauses after running them.
    """

    name: str = ""
    interactive: bool = False

    def requires_interaction(self) -> bool:
        return self.interactive

    def __call__(self, el: RepoConfig, ctx: ActionContext) -> None:
        raise NotImplementedError


class Noop(Action):
    name = "noop"

    def __call__(self, el: RepoConfig, ctx: ActionContext) -> None:
        logger.debug(f"No action for {el.path}")


class ManualReview(Action):
    """Asks a human to look at the repository."""

    name = "manual_review"
    interactive = True

    def __call__(self, el: RepoConfig, ctx: ActionContext) -> None:
        path = path_of(el)
        logger.info(f"Manual review requested: {path}")
        ctx.ui.review(path)


class AutoCommit(Action):
    """Commits all changes with the repository's commit command.

    Raises:
        CommandFailed: If the commit command fails.
    """

    name = "auto_commit"

    def __call__(self, el: RepoConfig, ctx: ActionContext) -> None:
        path = path_of(el)
        command = get(el, "git_commit_cmd", ctx.commands.commit)
        run(path, command)
        logger.info(f"Committed {path}")


class AutoPush(AutoCommit):
    """Commits, then pushes with the repository's push command."""

    name = "auto_push"

    def __call__(self, el: RepoConfig, ctx: ActionContext) -> None:
        super().__call__(el, ctx)
        path = path_of(el)
        run(path, get(el, "git_push_cmd", ctx.commands.push))
        logger.info(f"Pushed {path}")


class Confirmed(Action):
    """Runs another action only after a yes/no confirmation.

    The prompt happens inline, so the scheduler treats it as non-interactive.
    """

    def __init__(self, name: str, inner: Action, verb: str):
        self.name = name
        self.inner = inner
        self.verb = verb

    def __call__(self, el: RepoConfig, ctx: ActionContext) -> None:
        path = path_of(el)
        if ctx.ui.confirm(f"{self.verb} uncommitted changes in {path}?"):
            self.inner(el, ctx)
        else:
            logger.info(f"Declined to {self.verb.lower()} {path}")


ACTIONS: dict[str, Action] = {
    action.name: action
    for action in (
        ManualReview(),
        AutoCommit(),
        Confirmed("auto_commit_confirm", AutoCommit(), "Commit"),
        AutoPush(),
        Confirmed("auto_push_confirm", AutoPush(), "Commit and push"),
        Noop(),
    )
}
"""dict[str, Action]: The registry, keyed by the names used in configuration."""


def resolve_action(el: RepoConfig) -> Action:
    """Returns the action configured for `el`, or `noop` if none is set."""
    return ACTIONS[get(el, "unclean_action", DEFAULT_ACTION)]
