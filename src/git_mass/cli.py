import argparse
import logging
import os
import subprocess
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from . import system
from .config import Config, ConfigError
from .constants import ACTION_NAMES, APP_NAME, CONFIG_FILE, LOG_FILE
from .executor import CommandFailed
from .ops import Session
from .scheduler import State
from .ui import ConsoleUI

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)

CONFIG_TEMPLATE = """\
# git-mass configuration

[commands]
# commit = "git commit -a -m 'Automatic commit'"
# push = "git push"
# pull = "git pull"
# review = "git status"

# [[repositories]]
# path = "~/src/project"
# unclean_action = "manual_review"  # {actions}
# stash_on_pull = false
# skip_pull = false
"""


def setup_logging(verbose: bool, max_log_size: int) -> None:
    """Configures the logging subsystem.

    Args:
        verbose (bool): If True, DEBUG messages reach stderr as well.
        max_log_size (int): Bytes before the diagnostic log file is rotated.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    try:
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=max_log_size,
            backupCount=5,
        )
    except OSError as e:
        logger.warning(f"Could not open log file {LOG_FILE}: {e}")
        return
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def run_check(session: Session) -> None:
    """Runs the action queue, asking before moving past each paused repository.

    Args:
        session (Session): The active session.
    """
    advance = session.check_unclean
    while True:
        try:
            state = advance()
        except CommandFailed as e:
            console.print(f"[bold red]✘ {e}[/bold red]")
            state = session.scheduler.state

        if state is State.DONE:
            console.print("[bold green]✔ All repositories processed.[/bold green]")
            return
        if state is not State.SUSPENDED:
            return

        remaining = len(session.scheduler.queue)
        if Confirm.ask(f"Continue with the queue? ({remaining} left)", console=console):
            advance = session.resume
        else:
            session.abandon()
            console.print("[yellow]Queue abandoned.[/yellow]")
            return


def run_pull(session: Session) -> int:
    """Pulls every repository and prints the execution log.

    Returns:
        int: 1 if any command failed, else 0.
    """
    with console.status("Pulling repositories...", spinner="dots"):
        results = session.pull_all()

    if not results:
        console.print("[yellow]No repositories to pull.[/yellow]")
        return 0

    console.print(session.log.to_tree())
    failed = session.log.failed_sections()
    if failed:
        console.print(
            f"[bold red]✘ {len(failed)} of {len(results)} repositories had failures.[/bold red]"
        )
        for path in failed:
            console.print(f"   [red]●[/red] {path}")
        return 1
    console.print(f"[bold green]✔ Pulled {len(results)} repositories.[/bold green]")
    return 0


def show_dirty(session: Session) -> int:
    """Lists dirty repositories.

    Returns:
        int: 1 if any working copy has uncommitted changes, else 0.
    """
    dirty = session.dirty()
    if not dirty:
        console.print("[green]✔ All working copies are clean.[/green]")
        return 0
    for el in dirty:
        console.print(f"   [yellow]●[/yellow] {el.path}")
    return 1


def list_repos(session: Session) -> None:
    """Lists all configured repositories and their status."""
    if not session.config.repositories:
        console.print("[yellow]No repositories configured.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Status")
    table.add_column("Action", style="dim")
    table.add_column("Pull", style="dim")

    styles = {
        "Missing": "red",
        "Not a repo": "bold red",
        "Dirty": "yellow",
        "Clean": "green",
    }
    for row in session.status():
        display_path = row.path.replace(str(Path.home()), "~")
        style = styles[row.status]
        table.add_row(
            display_path, f"[{style}]{row.status}[/{style}]", row.action, row.pull
        )

    console.print(table)


def show_log(session: Session) -> None:
    """Prints the execution log of the last batch run."""
    path = session.config.log.file
    if path is None or not path.exists():
        console.print("[yellow]No run log saved yet.[/yellow]")
        return
    console.print(f"[dim]{path}[/dim]")
    console.print(path.read_text(), markup=False, highlight=False)


def open_config(path: Path) -> None:
    """Opens the configuration file in the user's editor, creating it if needed."""
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(CONFIG_TEMPLATE.format(actions=", ".join(ACTION_NAMES)))

    editor = os.environ.get("EDITOR")
    if not editor:
        editor = "open" if sys.platform == "darwin" else "nano"

    console.print(f"Opening [cyan]{path}[/cyan]...")
    try:
        subprocess.run([editor, str(path)])
    except OSError as e:
        console.print(f"[red]Could not open editor: {e}[/red]")


def show_config_reference() -> None:
    """Displays a formatted table of all available configuration options."""
    table = Table(title="git-mass Configuration Schema", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Type", style="dim")
    table.add_column("Default", style="yellow")
    table.add_column("Description")

    table.add_row(
        "commands", "commit", "str", '"git commit -a -m ..."', "Default commit command."
    )
    table.add_row("", "push", "str", '"git push"', "Default push command.")
    table.add_row("", "pull", "str", '"git pull"', "Default pull command.")
    table.add_row("", "stash", "str", '"git stash"', "Stash before a pull.")
    table.add_row("", "stash_pop", "str", '"git stash pop"', "Restore after a pull.")
    table.add_row(
        "", "review", "str", '"git status"', "Run in a repo handed over for review."
    )
    table.add_row(
        "log", "file", "str", '"~/.local/state/git-mass/last-run.org"', "Run log file."
    )
    table.add_row("", "style", "str", '"org"', "Run log format: 'org' or 'plain'.")
    table.add_row(
        "",
        "max_log_size",
        "int | str",
        '"5mb"',
        "Max size for the diagnostic log before rotation (e.g., '5mb').",
    )
    table.add_row("ui", "notify", "bool", "true", "Notify when the queue is done.")
    table.add_row(
        "repositories", "path", "str", "(required)", "Working copy directory."
    )
    table.add_row(
        "",
        "unclean_action",
        "str",
        '"noop"',
        f"One of: {', '.join(ACTION_NAMES)}.",
    )
    table.add_row("", "git_commit_cmd", "str", "[commands].commit", "Per-repo commit.")
    table.add_row("", "git_push_cmd", "str", "[commands].push", "Per-repo push.")
    table.add_row("", "git_pull_cmd", "str", "[commands].pull", "Per-repo pull.")
    table.add_row("", "stash_on_pull", "bool", "false", "Stash changes around pull.")
    table.add_row("", "skip_pull", "bool", "false", "Leave out of pull runs.")

    console.print(table)


class MassHelpFormatter(argparse.HelpFormatter):
    """Groups the subcommands under headers in the CLI help output."""

    def _format_action(self, action: argparse.Action) -> str:
        if isinstance(action, argparse._SubParsersAction):
            parts = []

            groups = {
                "Batch Operations": ["check", "pull"],
                "Inspection": ["list", "dirty", "log"],
                "Configuration": ["config"],
                "General": ["help"],
            }

            subactions = list(self._iter_indented_subactions(action))

            for group_name, commands in groups.items():
                group_actions = [a for a in subactions if a.dest in commands]
                if not group_actions:
                    continue

                parts.append(f"\n  {group_name}:\n")

                self._indent()
                for subaction in group_actions:
                    parts.append(self._format_action(subaction))
                self._dedent()

            return self._join_parts(parts)

        return super()._format_action(action)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        formatter_class=MassHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Configuration file (default: {CONFIG_FILE})",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log debug output to stderr"
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("check", help="Run configured actions on dirty repositories")
    subparsers.add_parser("pull", help="Pull every repository, stashing if configured")
    subparsers.add_parser("list", help="List configured repositories")
    subparsers.add_parser(
        "dirty", help="List dirty repositories (exit 1 if there are any)"
    )
    subparsers.add_parser("log", help="Show the last run log")
    config_parser = subparsers.add_parser(
        "config", help="Open config file or view options"
    )
    config_parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="List all available configuration options and their descriptions",
    )
    subparsers.add_parser("help", help="Show this help message")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the git-mass CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config_path = args.config or CONFIG_FILE
    if args.command == "config":
        if args.list:
            show_config_reference()
        else:
            open_config(config_path)
        return
    if args.command in (None, "help"):
        parser.print_help()
        return

    try:
        conf = Config.load(config_path)
    except ConfigError as e:
        err_console.print(f"[bold red]FATAL:[/bold red] {e}")
        sys.exit(1)

    setup_logging(args.verbose, conf.log.max_log_size)
    session = Session(
        conf,
        ui=ConsoleUI(conf.commands.review, console=console),
        notify=system.notify if conf.ui.notify else None,
    )

    if args.command == "check":
        run_check(session)
    elif args.command == "pull":
        sys.exit(run_pull(session))
    elif args.command == "dirty":
        sys.exit(show_dirty(session))
    elif args.command == "list":
        list_repos(session)
    elif args.command == "log":
        show_log(session)


if __name__ == "__main__":
    main()
