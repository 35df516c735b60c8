import logging
import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .constants import (
    ACTION_NAMES,
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_COMMIT_CMD,
    DEFAULT_PULL_CMD,
    DEFAULT_PUSH_CMD,
    DEFAULT_REVIEW_CMD,
    DEFAULT_STASH_CMD,
    DEFAULT_STASH_POP_CMD,
    RUN_LOG_FILE,
)

logger = logging.getLogger(APP_NAME)


class ConfigError(Exception):
    """Raised when the static configuration cannot be used."""


class InvalidConfigElement(ConfigError):
    """Raised when a value is not a well-formed repository entry."""


class InvalidConfigList(ConfigError):
    """Raised when a value is not a well-formed list of repository entries."""


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


@dataclass(frozen=True)
class RepoConfig:
    """One managed working copy.

    Optional command fields left as None fall back to the process-wide
    defaults in `CommandsConfig`.

    Attributes:
        path (str): Absolute path of the working copy. Identity key.
        unclean_action (str | None): Registered action to run when the working
            copy has uncommitted changes. None means `noop`.
        git_commit_cmd (str | None): Commit command template.
        git_push_cmd (str | None): Push command template.
        git_pull_cmd (str | None): Pull command template.
        stash_on_pull (bool): Stash local changes around a pull.
        skip_pull (bool): Leave this repository out of pull runs.
    """

    path: str
    unclean_action: str | None = None
    git_commit_cmd: str | None = None
    git_push_cmd: str | None = None
    git_pull_cmd: str | None = None
    stash_on_pull: bool = False
    skip_pull: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path:
            raise InvalidConfigElement(
                f"Repository path must be a non-empty string: {self.path!r}"
            )

    @classmethod
    def from_mapping(cls, data: Any) -> "RepoConfig":
        """Builds an entry from a parsed `[[repositories]]` table.

        Args:
            data (Any): The raw table read from the configuration file.

        Returns:
            RepoConfig: The validated entry, with `path` expanded and absolute.

        Raises:
            InvalidConfigElement: If the table has no usable `path`, a field has
                the wrong type, or the action name is not registered.
        """
        if not isinstance(data, Mapping):
            raise InvalidConfigElement(f"Repository entry must be a table, got {data!r}")

        path = data.get("path")
        if not isinstance(path, str) or not path.strip():
            raise InvalidConfigElement(f"Repository entry has no path: {dict(data)!r}")

        valid_keys = {f.name for f in fields(cls)}
        unknown = set(data.keys()) - valid_keys
        if unknown:
            logger.warning(
                f"Unknown keys for repository {path}: {', '.join(sorted(unknown))}. Ignoring."
            )

        values: dict[str, Any] = {}
        for key in ("unclean_action", "git_commit_cmd", "git_push_cmd", "git_pull_cmd"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise InvalidConfigElement(f"[{path}].{key} must be a string, got {value!r}")
            values[key] = value
        for key in ("stash_on_pull", "skip_pull"):
            value = data.get(key, False)
            if not isinstance(value, bool):
                raise InvalidConfigElement(f"[{path}].{key} must be true or false, got {value!r}")
            values[key] = value

        action = values["unclean_action"]
        if action is not None and action not in ACTION_NAMES:
            raise InvalidConfigElement(
                f"[{path}].unclean_action: unknown action '{action}' "
                f"(expected one of {', '.join(ACTION_NAMES)})"
            )

        full_path = os.path.abspath(os.path.expanduser(path.strip()))
        return cls(path=full_path, **values)


def _check_element(el: Any) -> RepoConfig:
    if not isinstance(el, RepoConfig) or not isinstance(el.path, str) or not el.path:
        raise InvalidConfigElement(f"Not a repository entry: {el!r}")
    return el


def get(el: RepoConfig, key: str, default: Any = None) -> Any:
    """Reads a property of a repository entry.

    Args:
        el (RepoConfig): The entry to read from.
        key (str): The property name (e.g. 'git_pull_cmd').
        default (Any, optional): Returned for unknown keys and unset values.

    Returns:
        Any: The stored value, or `default`.

    Raises:
        InvalidConfigElement: If `el` is not a well-formed entry.
    """
    _check_element(el)
    if key == "path" or key not in RepoConfig.__dataclass_fields__:
        return default
    value = getattr(el, key)
    return default if value is None else value


def path_of(el: RepoConfig) -> str:
    """Returns the working-copy path of an entry, validating it first."""
    return _check_element(el).path


def check_list(cfg: Any) -> list[RepoConfig]:
    """Validates an ordered list of repository entries.

    Raises:
        InvalidConfigList: If `cfg` is not a list/tuple of RepoConfig.
    """
    if not isinstance(cfg, (list, tuple)):
        raise InvalidConfigList(f"Expected a list of repositories, got {type(cfg).__name__}")
    for el in cfg:
        if not isinstance(el, RepoConfig):
            raise InvalidConfigList(f"Not a repository entry: {el!r}")
    return list(cfg)


@dataclass
class CommandsConfig:
    """Process-wide command templates.

    Attributes:
        commit (str): Default commit command.
        push (str): Default push command.
        pull (str): Default pull command.
        stash (str): Command that stashes local changes before a pull.
        stash_pop (str): Command that restores them afterwards.
        review (str): Command run in a repository handed over for manual review.
    """

    commit: str = DEFAULT_COMMIT_CMD
    push: str = DEFAULT_PUSH_CMD
    pull: str = DEFAULT_PULL_CMD
    stash: str = DEFAULT_STASH_CMD
    stash_pop: str = DEFAULT_STASH_POP_CMD
    review: str = DEFAULT_REVIEW_CMD


@dataclass
class LogConfig:
    """Logging settings.

    Attributes:
        file (Path | None): Where the execution log of the last run is saved.
        style (str): Execution log rendering, 'org' or 'plain'.
        max_log_size (int): Max bytes for the diagnostic log before rotation.
    """

    file: Path | None = RUN_LOG_FILE
    style: str = "org"
    max_log_size: int = 5 * 1024 * 1024


@dataclass
class UIConfig:
    """Terminal interaction settings.

    Attributes:
        notify (bool): Send a desktop notification when the action queue drains.
    """

    notify: bool = True


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        commands (CommandsConfig): Default command templates.
        log (LogConfig): Logging settings.
        ui (UIConfig): Interaction settings.
        repositories (list[RepoConfig]): Managed working copies, in run order.
    """

    commands: CommandsConfig = field(default_factory=CommandsConfig)
    log: LogConfig = field(default_factory=LogConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    repositories: list[RepoConfig] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from disk, applying defaults where necessary.

        Args:
            path (Path | None): Config file to read. Defaults to CONFIG_FILE.

        Returns:
            Config: The populated configuration object.

        Raises:
            ConfigError: If the file cannot be parsed or a repository entry is
                malformed.
        """
        instance = cls()
        source = path or CONFIG_FILE
        if not source.exists():
            logger.debug(f"No config file at {source}; using defaults.")
            return instance

        try:
            with open(source, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {source}: {e}")
            raise ConfigError(f"Config syntax error in {source}: {e}") from e

        instance._merge(data)
        return instance

    def _merge(self, data: dict[str, Any]) -> None:
        """Merges a parsed TOML document into the current instance."""
        if "commands" in data:
            self.commands = self._update_dataclass("commands", self.commands, data["commands"])
        if "log" in data:
            self.log = self._update_dataclass("log", self.log, data["log"])
        if "ui" in data:
            self.ui = self._update_dataclass("ui", self.ui, data["ui"])

        repos = data.get("repositories", [])
        if not isinstance(repos, list):
            raise InvalidConfigList("'repositories' must be an array of tables")
        self.repositories = [RepoConfig.from_mapping(entry) for entry in repos]

        seen: set[str] = set()
        for repo in self.repositories:
            if repo.path in seen:
                logger.warning(f"Repository listed more than once: {repo.path}")
            seen.add(repo.path)

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: Any) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        if not isinstance(updates, dict):
            logger.warning(f"Config section [{section_name}] is not a table. Ignoring.")
            return instance

        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(invalid_keys)}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "file":
                    if not isinstance(v, str):
                        raise ValueError(f"Expected a path string, got {v!r}")
                    filtered_updates[k] = Path(v).expanduser() if v else None
                elif k == "style":
                    if v not in ("org", "plain"):
                        raise ValueError(f"Unknown log style '{v}'")
                    filtered_updates[k] = v
                else:
                    default = getattr(instance, k)
                    if type(v) is not type(default):
                        raise ValueError(f"Expected {type(default).__name__}, got {v!r}")
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
