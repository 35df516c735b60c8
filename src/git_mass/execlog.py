import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from rich.text import Text
from rich.tree import Tree

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)

FAILED_TAG = ":FAILED:"
FAILED_MARKER = "[FAILED]"


@dataclass(eq=False)
class LogEntry:
    """A heading in the execution log outline.

    Attributes:
        title (str): The heading text.
        level (int): Outline depth, starting at 1.
        parent (LogEntry | None): The enclosing heading.
        lines (list[tuple[str, bool]]): Body text, each with a verbatim flag.
        children (list[LogEntry]): Nested headings, in order.
        failed (bool): Whether the heading is annotated as needing attention.
    """

    title: str
    level: int
    parent: "LogEntry | None" = None
    lines: list[tuple[str, bool]] = field(default_factory=list)
    children: list["LogEntry"] = field(default_factory=list)
    failed: bool = False


class ExecutionLog:
    """An append-only outline of everything a batch run executed.

    Headings nest under the innermost open section. Failures are marked on the
    current heading and propagated up to, but not including, the run header,
    so a failed run can be spotted from the outline alone.

    Attributes:
        path (Path | None): File the rendered log is saved to.
        style (str): Default rendering, 'org' or 'plain'.
    """

    def __init__(self, path: Path | None = None, style: str = "org"):
        self.path = path
        self.style = style
        self.entries: list[LogEntry] = []
        self._header: LogEntry | None = None
        self._open: list[LogEntry] = []
        self._current: LogEntry | None = None

    def reset(self, header: str) -> None:
        """Discards the current content and starts a new run under `header`."""
        self._header = LogEntry(title=header, level=1)
        self.entries = [self._header]
        self._open = [self._header]
        self._current = self._header

    def heading(self, title: str) -> LogEntry:
        """Appends a heading under the innermost open section."""
        parent = self._open[-1] if self._open else None
        entry = LogEntry(title=title, level=parent.level + 1 if parent else 1)
        if parent:
            entry.parent = parent
            parent.children.append(entry)
        self.entries.append(entry)
        self._current = entry
        return entry

    @contextmanager
    def section(self, title: str) -> Iterator[LogEntry]:
        """Opens a heading that later headings nest under until the block exits.

        Re-entering a section titled like the innermost open one reuses it, so
        nested runs for the same repository land in that repository's section.

        Args:
            title (str): The section heading.

        Yields:
            LogEntry: The open section.
        """
        if self._open and self._open[-1] is not self._header:
            if self._open[-1].title == title:
                yield self._open[-1]
                return

        entry = self.heading(title)
        self._open.append(entry)
        try:
            yield entry
        finally:
            self._open.remove(entry)

    def body(self, text: str, verbatim: bool = False) -> None:
        """Appends text to the current heading.

        Args:
            text (str): The text to append.
            verbatim (bool, optional): Marks captured command output, rendered
                as a literal block. Defaults to False.
        """
        entry = self._current
        if entry is None:
            self.reset(APP_NAME)
            entry = self.entries[0]
        entry.lines.append((text, verbatim))

    def mark_failed(self) -> None:
        """Flags the current heading and its ancestors, except the run header."""
        entry = self._current
        while entry is not None and entry is not self._header:
            entry.failed = True
            entry = entry.parent

    def titles(self) -> list[str]:
        return [e.title for e in self.entries if e is not self._header]

    def failed_sections(self) -> list[str]:
        """Titles of the failed top-level sections, one per repository in a batch run."""
        return [e.title for e in self.entries if e.failed and e.parent is self._header]

    @property
    def has_failures(self) -> bool:
        return any(e.failed for e in self.entries)

    def render(self, style: str | None = None) -> str:
        """Renders the log as text.

        Args:
            style (str | None, optional): 'org' for an org-mode outline with
                `:FAILED:` tags, or 'plain' for indented text with a `[FAILED]`
                marker. Defaults to the log's own style.

        Returns:
            str: The rendered log.
        """
        style = style or self.style
        out: list[str] = []
        for entry in self.entries:
            if style == "org":
                out.extend(self._render_org(entry))
            else:
                out.extend(self._render_plain(entry))
        return "\n".join(out) + "\n" if out else ""

    @staticmethod
    def _render_org(entry: LogEntry) -> list[str]:
        heading = f"{'*' * entry.level} {entry.title}"
        if entry.failed:
            heading = f"{heading}  {FAILED_TAG}"
        out = [heading]
        for text, verbatim in entry.lines:
            if not verbatim:
                out.append(text)
            elif text.strip():
                out.append("#+begin_example")
                for line in text.rstrip("\n").splitlines():
                    # Org requires lines that look like headings or keywords
                    # inside example blocks to be comma-escaped.
                    if line.startswith(("*", "#+", ",*", ",#+")):
                        line = f",{line}"
                    out.append(line)
                out.append("#+end_example")
        return out

    @staticmethod
    def _render_plain(entry: LogEntry) -> list[str]:
        indent = "  " * (entry.level - 1)
        marker = f"{FAILED_MARKER} " if entry.failed else ""
        out = [f"{indent}{marker}{entry.title}"]
        for text, _ in entry.lines:
            for line in text.rstrip("\n").splitlines():
                out.append(f"{indent}  {line}")
        return out

    def to_tree(self) -> Tree:
        """Builds a rich tree of the outline, with failed headings in red."""
        if self._header is not None:
            tree = Tree(Text(self._header.title, style="bold"))
            roots = self._header.children
        else:
            tree = Tree(Text(APP_NAME, style="bold"))
            roots = [e for e in self.entries if e.parent is None]
        for entry in roots:
            self._add_branch(tree, entry)
        return tree

    def _add_branch(self, tree: Tree, entry: LogEntry) -> None:
        label = Text(entry.title, style="bold red" if entry.failed else "cyan")
        if entry.failed:
            label.append(f" {FAILED_MARKER}", style="red")
        branch = tree.add(label)
        for text, verbatim in entry.lines:
            if text.strip():
                branch.add(Text(text.rstrip("\n"), style="dim" if verbatim else ""))
        for child in entry.children:
            self._add_branch(branch, child)

    def save(self) -> None:
        """Writes the rendered log to `path`, if one is set."""
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(self.render())
        except OSError as e:
            logger.warning(f"Could not save execution log to {self.path}: {e}")
