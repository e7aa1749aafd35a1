"""Change detection and diff rendering tests."""

from __future__ import annotations

from bdg.readme.diff import EXIT_CHANGES, EXIT_OK, Verdict, compare, exit_code, unified_diff
from bdg.readme.document import Document


def test_compare_detects_changes() -> None:
    original = Document.from_text("# Title\n")
    assert compare(original, original) == Verdict.UNCHANGED
    assert compare(original, original.with_lines(["# Title", "x"])) == Verdict.CHANGED
    assert compare(original, original.with_lines(["# Other"])) == Verdict.CHANGED


def test_unified_diff_uses_git_style_paths() -> None:
    original = Document.from_text("# Title\nBody\n")
    updated = original.with_lines(["# Title", "badge", "Body"])
    diff = unified_diff("README.md", original, updated)
    assert diff.startswith("--- a/README.md\n+++ b/README.md\n")
    assert "+badge\n" in diff


def test_exit_codes() -> None:
    assert exit_code(Verdict.CHANGED, dry_run=True) == EXIT_CHANGES
    assert exit_code(Verdict.UNCHANGED, dry_run=True) == EXIT_OK
    assert exit_code(Verdict.CHANGED, dry_run=False) == EXIT_OK
