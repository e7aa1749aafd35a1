"""Change detection and unified diff rendering for README edits."""

from __future__ import annotations

import difflib
from typing import Sequence

from .document import Document

CHANGED = "changed"
UNCHANGED = "unchanged"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CHANGES = 2


class Verdict:
    """Outcome of comparing an original and an updated document."""

    CHANGED = CHANGED
    UNCHANGED = UNCHANGED


def compare(original: Document, updated: Document) -> str:
    """Line-by-line equality; any differing line or line count is a change."""
    if len(original.lines) != len(updated.lines):
        return Verdict.CHANGED
    for before, after in zip(original.lines, updated.lines):
        if before != after:
            return Verdict.CHANGED
    return Verdict.UNCHANGED


def unified_diff(path: str, original: Document, updated: Document) -> str:
    """Render a git-style unified diff between two documents."""
    diff = difflib.unified_diff(
        _with_newlines(original.lines),
        _with_newlines(updated.lines),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    )
    return "".join(diff)


def exit_code(verdict: str, dry_run: bool) -> int:
    """Map a verdict to the process exit code."""
    if dry_run and verdict == Verdict.CHANGED:
        return EXIT_CHANGES
    return EXIT_OK


def _with_newlines(lines: Sequence[str]) -> list[str]:
    return [f"{line}\n" for line in lines]


__all__ = [
    "CHANGED",
    "EXIT_CHANGES",
    "EXIT_ERROR",
    "EXIT_OK",
    "UNCHANGED",
    "Verdict",
    "compare",
    "exit_code",
    "unified_diff",
]
