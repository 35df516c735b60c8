"""Narrowing of the configured repository list.

Every filter is stable: it returns a new list holding the surviving entries in
their original order.
"""

import logging
from pathlib import Path

from .config import RepoConfig, check_list, get, path_of
from .constants import APP_NAME, VCS_DIR
from .executor import is_unclean

logger = logging.getLogger(APP_NAME)


def exists(cfg: list[RepoConfig]) -> list[RepoConfig]:
    """Keeps the entries whose path is an existing directory.

    Entries configured for another machine are dropped without complaint.

    Args:
        cfg (list[RepoConfig]): The entries to filter.

    Returns:
        list[RepoConfig]: The entries present on this machine.

    Raises:
        InvalidConfigList: If `cfg` is malformed.
    """
    kept = []
    for el in check_list(cfg):
        if Path(path_of(el)).is_dir():
            kept.append(el)
        else:
            logger.debug(f"Skipping missing repository: {el.path}")
    return kept


def unclean(cfg: list[RepoConfig]) -> list[RepoConfig]:
    """Keeps the existing git working copies that have uncommitted changes.

    Directories without git metadata are excluded silently; they are not
    reported as clean repositories.

    Args:
        cfg (list[RepoConfig]): The entries to filter.

    Returns:
        list[RepoConfig]: The dirty working copies.
    """
    kept = []
    for el in exists(cfg):
        path = path_of(el)
        if not (Path(path) / VCS_DIR).exists():
            logger.debug(f"Not a git working copy: {path}")
            continue
        if is_unclean(path):
            kept.append(el)
    return kept


def to_pull(cfg: list[RepoConfig]) -> list[RepoConfig]:
    """Keeps the existing entries that have not opted out of pulls."""
    return [el for el in exists(cfg) if not get(el, "skip_pull", False)]
