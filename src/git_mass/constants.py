import os
from pathlib import Path

"""Global constants and configuration path definitions for git-mass.

This module defines the filesystem layout (adhering to XDG standards where applicable),
the application identifier, and the default command templates run against each
managed working copy.
"""

# --- Identity ---
APP_NAME = "git-mass"
"""str: The human-readable application name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-mass"
"""Path: The directory for runtime state data (logs, last run)."""

# Ensure state directory exists immediately upon module import.
STATE_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE = STATE_DIR / "git-mass.log"
"""Path: The diagnostic log file written by the CLI."""

RUN_LOG_FILE = STATE_DIR / "last-run.org"
"""Path: The execution log of the most recent batch run."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/git-mass"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Git / Command Templates ---
VCS_DIR = ".git"
"""str: Metadata entry whose presence marks a directory as a git working copy."""

DEFAULT_COMMIT_CMD = "git commit -a -m 'Automatic commit'"
DEFAULT_PUSH_CMD = "git push"
DEFAULT_PULL_CMD = "git pull"
DEFAULT_STASH_CMD = "git stash"
DEFAULT_STASH_POP_CMD = "git stash pop"
DEFAULT_REVIEW_CMD = "git status"

DIRTY_CHECK_CMD = "git status --porcelain 2>/dev/null | grep -q -E '^ ?[MADRCU]'"
"""
str: Exits 0 only when the porcelain status lists at least one modified, added,
deleted, renamed, copied or unmerged entry. Untracked files do not count.
"""

# --- Actions ---
ACTION_NAMES = (
    "manual_review",
    "auto_commit",
    "auto_commit_confirm",
    "auto_push",
    "auto_push_confirm",
    "noop",
)
"""tuple[str, ...]: Names accepted for a repository's `unclean_action`."""

DEFAULT_ACTION = "noop"
