"""Tests for the execution log outline."""

from pathlib import Path

from rich.console import Console

from git_mass.execlog import ExecutionLog


def _sample_log() -> ExecutionLog:
    log = ExecutionLog()
    log.reset("Run 2024-01-01 10:00:00")
    with log.section("/work/a"):
        log.heading("git pull")
        log.body("Result: success")
    with log.section("/work/b"):
        log.heading("git pull")
        log.body("Result: FAILED (exit 1)")
        log.body("fatal: not a git repository\n* looks like a heading", verbatim=True)
        log.mark_failed()
    return log


def test_sections_nest_headings() -> None:
    log = _sample_log()

    assert log.titles() == ["/work/a", "git pull", "/work/b", "git pull"]
    assert [e.level for e in log.entries] == [1, 2, 3, 2, 3]


def test_mark_failed_stops_below_run_header() -> None:
    """Verifies that failure propagates to ancestors but never to the run header."""
    log = _sample_log()

    header, repo_a, pull_a, repo_b, pull_b = log.entries
    assert not header.failed
    assert not repo_a.failed and not pull_a.failed
    assert repo_b.failed and pull_b.failed
    assert log.has_failures


def test_section_reentry_reuses_open_section() -> None:
    """Verifies that nested runs for the same repository write into its section."""
    log = ExecutionLog()
    log.reset("Run")
    with log.section("/work/a"):
        with log.section("/work/a"):
            log.heading("git stash")
        log.heading("git pull")
        with log.section("/work/a"):
            log.heading("git stash pop")

    assert log.titles() == ["/work/a", "git stash", "git pull", "git stash pop"]
    assert {e.level for e in log.entries[2:]} == {3}


def test_reset_discards_previous_run() -> None:
    log = _sample_log()
    log.reset("Second run")
    assert log.titles() == []
    assert not log.has_failures


def test_append_without_header() -> None:
    """Verifies headings work on a log that was never reset."""
    log = ExecutionLog()
    with log.section("/work/a"):
        log.heading("git stash")
        log.mark_failed()

    assert [e.level for e in log.entries] == [1, 2]
    assert all(e.failed for e in log.entries)


def test_render_org() -> None:
    text = _sample_log().render("org")

    assert "* Run 2024-01-01 10:00:00\n" in text
    assert "** /work/a\n*** git pull\nResult: success\n" in text
    assert "** /work/b  :FAILED:\n*** git pull  :FAILED:\n" in text
    # Output lines that look like headings are escaped inside the example block.
    assert "#+begin_example\nfatal: not a git repository\n,* looks like a heading\n" in text
    assert text.count("#+end_example") == 1


def test_render_plain() -> None:
    lines = _sample_log().render("plain").splitlines()

    assert lines[0] == "Run 2024-01-01 10:00:00"
    assert "  /work/a" in lines
    assert "  [FAILED] /work/b" in lines
    assert "    [FAILED] git pull" in lines
    assert "      * looks like a heading" in lines


def test_save_writes_default_style(tmp_path: Path) -> None:
    target = tmp_path / "state" / "last-run.txt"
    log = _sample_log()
    log.path = target
    log.style = "plain"

    log.save()

    assert target.read_text() == log.render("plain")


def test_save_without_path_is_noop() -> None:
    ExecutionLog().save()


def test_to_tree_marks_failures() -> None:
    console = Console(record=True, width=100)
    console.print(_sample_log().to_tree())
    out = console.export_text()

    assert "Run 2024-01-01 10:00:00" in out
    assert "/work/b [FAILED]" in out
    assert "/work/a [FAILED]" not in out


def test_failed_sections_lists_repositories() -> None:
    """Verifies that a failure in a nested step counts once for its repository."""
    log = _sample_log()
    with log.section("/work/c"):
        log.heading("git stash")
        log.mark_failed()
        log.heading("git pull")
        log.mark_failed()

    assert log.failed_sections() == ["/work/b", "/work/c"]


def test_body_without_header_starts_run() -> None:
    log = ExecutionLog()
    log.body("hello")

    assert log.entries[0].lines == [("hello", False)]
