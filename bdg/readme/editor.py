"""Idempotent editing of the marker-delimited badge block."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..models import BadgeDescriptor, Selection
from .document import Document, is_code_fence
from .parser import ParsedBadge, parse_badge_line

BDG_BEGIN = "<!-- bdg:begin -->"
BDG_END = "<!-- bdg:end -->"

MODE_ADD = "add"
MODE_REMOVE = "remove"

_HEADING = re.compile(r"^#{1,6}[ \t]+(.*?)[ \t]*#*[ \t]*$")


class BlockNotInsertable(RuntimeError):
    """Raised when a new block has no heading to be inserted under."""


@dataclass(frozen=True)
class BlockSpan:
    """Line indexes of the begin and end markers."""

    begin: int
    end: int


@dataclass(frozen=True)
class _BlockLine:
    text: str
    entry: Optional[ParsedBadge]


class BlockEditor:
    """Locates, creates and rewrites the managed badge block of a document."""

    def __init__(
        self,
        begin_marker: str = BDG_BEGIN,
        end_marker: str = BDG_END,
        *,
        skip_code_fences: bool = True,
    ) -> None:
        self.begin_marker = begin_marker
        self.end_marker = end_marker
        self.skip_code_fences = skip_code_fences

    def locate(self, document: Document) -> Optional[BlockSpan]:
        """Return the first begin marker and the first end marker after it."""
        begin: Optional[int] = None
        for index, line in self._scanned_lines(document.lines):
            if begin is None:
                if line == self.begin_marker:
                    begin = index
            elif line == self.end_marker:
                return BlockSpan(begin=begin, end=index)
        return None

    def marker_count(self, document: Document) -> int:
        return sum(1 for _, line in self._scanned_lines(document.lines) if line == self.begin_marker)

    def _scanned_lines(self, lines: Sequence[str]) -> Iterable[Tuple[int, str]]:
        """Yield indexed lines, leaving out fenced code when configured."""
        in_fence = False
        for index, line in enumerate(lines):
            if self.skip_code_fences:
                if is_code_fence(line):
                    in_fence = not in_fence
                    continue
                if in_fence:
                    continue
            yield index, line

    def entries(self, document: Document) -> List[ParsedBadge]:
        """Parsed badge entries of the current block, in document order."""
        span = self.locate(document)
        if span is None:
            return []
        block = document.lines[span.begin + 1 : span.end]
        return [item.entry for item in _scan_block(block) if item.entry is not None]

    def apply(
        self,
        document: Document,
        desired: Sequence[BadgeDescriptor] = (),
        *,
        mode: str = MODE_ADD,
        selection: Optional[Selection] = None,
        heading_anchor: Optional[str] = None,
    ) -> Document:
        """Return a new document with ``desired`` merged in or ``selection`` removed."""
        if mode not in {MODE_ADD, MODE_REMOVE}:
            raise ValueError(f"Unknown edit mode: {mode}")

        span = self.locate(document)
        lines = document.lines

        if span is None:
            if mode == MODE_REMOVE:
                return document
            insert_at = self._insertion_index(lines, heading_anchor)
            if insert_at is None:
                target = f"heading '{heading_anchor}'" if heading_anchor else "H1 heading"
                raise BlockNotInsertable(
                    f"No {target} found to insert the badge block under and no existing block to update"
                )
            block = [descriptor.markdown for descriptor in _dedupe(desired).values()]
            new_lines = [
                *lines[:insert_at],
                self.begin_marker,
                *block,
                self.end_marker,
                *lines[insert_at:],
            ]
            return document.with_lines(new_lines)

        current = _scan_block(lines[span.begin + 1 : span.end])
        if mode == MODE_ADD:
            block = _merge(current, desired)
        else:
            block = _remove(current, selection or Selection())

        new_lines = [*lines[: span.begin + 1], *block, *lines[span.end :]]
        return document.with_lines(new_lines)

    def _insertion_index(
        self, lines: Sequence[str], heading_anchor: Optional[str]
    ) -> Optional[int]:
        anchor = heading_anchor.strip() if heading_anchor else None
        for index, line in self._scanned_lines(lines):
            if anchor is None:
                if line.startswith("# "):
                    return index + 1
                continue
            if anchor.startswith("#"):
                if line.rstrip() == anchor:
                    return index + 1
                continue
            match = _HEADING.match(line)
            if match and match.group(1) == anchor:
                return index + 1
        return None


def apply(
    document: Document,
    marker_begin: str,
    marker_end: str,
    desired_entries: Sequence[BadgeDescriptor],
    mode: str,
    selection: Optional[Selection] = None,
    heading_anchor: Optional[str] = None,
) -> Document:
    """Functional form of :meth:`BlockEditor.apply` with explicit markers."""
    editor = BlockEditor(marker_begin, marker_end)
    return editor.apply(
        document,
        desired_entries,
        mode=mode,
        selection=selection,
        heading_anchor=heading_anchor,
    )


def _scan_block(block: Iterable[str]) -> List[_BlockLine]:
    scanned: List[_BlockLine] = []
    in_fence = False
    for line in block:
        if is_code_fence(line):
            in_fence = not in_fence
            scanned.append(_BlockLine(text=line, entry=None))
        elif in_fence or not line.strip():
            scanned.append(_BlockLine(text=line, entry=None))
        else:
            scanned.append(_BlockLine(text=line, entry=parse_badge_line(line)))
    return scanned


def _dedupe(desired: Iterable[BadgeDescriptor]) -> Dict[str, BadgeDescriptor]:
    # Later descriptors win but keep the position of the first occurrence.
    by_id: Dict[str, BadgeDescriptor] = {}
    for descriptor in desired:
        by_id[descriptor.id] = descriptor
    return by_id


def _merge(current: Sequence[_BlockLine], desired: Sequence[BadgeDescriptor]) -> List[str]:
    by_id = _dedupe(desired)
    by_markdown = {descriptor.markdown.strip(): key for key, descriptor in by_id.items()}
    placed: Set[str] = set()
    merged: List[str] = []
    for item in current:
        if item.entry is None:
            merged.append(item.text)
            continue
        target = by_markdown.get(item.text.strip())
        if target is None and item.entry.id in by_id:
            target = item.entry.id
        if target is None:
            merged.append(item.text)
            continue
        if target in placed:
            continue
        merged.append(by_id[target].markdown)
        placed.add(target)
    merged.extend(
        descriptor.markdown for key, descriptor in by_id.items() if key not in placed
    )
    return merged


def _remove(current: Sequence[_BlockLine], selection: Selection) -> List[str]:
    if selection.all:
        return []
    return [
        item.text
        for item in current
        if item.entry is None or not selection.matches(item.entry.id, item.entry.kind)
    ]


__all__ = [
    "BDG_BEGIN",
    "BDG_END",
    "BlockEditor",
    "BlockNotInsertable",
    "BlockSpan",
    "MODE_ADD",
    "MODE_REMOVE",
    "apply",
]
