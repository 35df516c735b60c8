import logging
import subprocess

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from .constants import APP_NAME, DEFAULT_REVIEW_CMD

logger = logging.getLogger(APP_NAME)


class ConsoleUI:
    """Terminal implementation of the review and confirmation primitives.

    Attributes:
        review_cmd (str): Shell command run in a repository handed over for
            manual review. It inherits the terminal, so an interactive command
            (a shell, a TUI) blocks until the user leaves it.
        console (Console): The rich console to print to.
    """

    def __init__(
        self, review_cmd: str = DEFAULT_REVIEW_CMD, console: Console | None = None
    ):
        self.review_cmd = review_cmd
        self.console = console or Console()

    def review(self, path: str) -> None:
        """Hands a repository over to the user.

        Args:
            path (str): The working copy needing attention.
        """
        self.console.print(
            Panel(
                f"[bold]{path}[/bold] has uncommitted changes.\n"
                f"Running [cyan]{self.review_cmd}[/cyan] there; resume the "
                "queue once you are done with it.",
                title="Manual Review",
                border_style="yellow",
                expand=False,
            )
        )
        try:
            subprocess.run(self.review_cmd, shell=True, cwd=path)
        except OSError as e:
            self.console.print(f"[red]Could not run review command: {e}[/red]")
            logger.warning(f"Review command failed in {path}: {e}")

    def confirm(self, prompt: str) -> bool:
        return Confirm.ask(prompt, console=self.console)
