"""git-mass: Batch operations over a fixed set of local git working copies.

This package provides the command-line interface and the orchestration core
for finding working copies with uncommitted changes, running a configured
remediation action against each, and pulling all of them with optional
stashing of local changes.
"""

from . import (
    actions,
    batch,
    cli,
    config,
    constants,
    execlog,
    executor,
    filters,
    ops,
    pull,
    scheduler,
    system,
    ui,
)

__all__ = [
    "actions",
    "batch",
    "cli",
    "config",
    "constants",
    "execlog",
    "executor",
    "filters",
    "ops",
    "pull",
    "scheduler",
    "system",
    "ui",
]
