import logging
import subprocess
import sys

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class SystemStrategy:
    """Base class defining the interface for desktop integration."""

    def notify(self, title: str, message: str) -> None:
        """Sends a desktop notification.

        Args:
            title (str): The notification title.
            message (str): The notification body text.
        """
        logger.debug(f"No notification backend for {sys.platform}: {message}")


class MacOSStrategy(SystemStrategy):
    """System strategy implementation for macOS."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using AppleScript."""
        # Double quotes would terminate the AppleScript string literal.
        clean_msg = message.replace('"', "'")
        script = f'display notification "{clean_msg}" with title "{title}"'
        try:
            subprocess.run(["osascript", "-e", script], stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.debug(f"osascript unavailable: {e}")


class LinuxStrategy(SystemStrategy):
    """System strategy implementation for Linux."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using `notify-send`."""
        try:
            subprocess.run(["notify-send", title, message], stderr=subprocess.DEVNULL)
        except FileNotFoundError:
            logger.debug("notify-send not installed; skipping notification")


def get_system() -> SystemStrategy:
    """Factory function to retrieve the platform-specific system strategy.

    Returns:
        SystemStrategy: An instance of MacOSStrategy, LinuxStrategy, or the base
        SystemStrategy depending on the operating system.
    """
    if sys.platform == "darwin":
        return MacOSStrategy()
    elif sys.platform.startswith("linux"):
        return LinuxStrategy()
    else:
        return SystemStrategy()


def notify(message: str) -> None:
    """Sends `message` as a desktop notification titled with the app name."""
    get_system().notify(APP_NAME, message)
