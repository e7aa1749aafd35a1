"""Line-oriented README document model."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Tuple

LF = "\n"
CRLF = "\r\n"


@dataclass(frozen=True)
class Document:
    """Immutable README text split into lines.

    The newline convention and trailing-newline flag are captured on read so
    that ``to_text`` reproduces untouched documents byte for byte.
    """

    lines: Tuple[str, ...]
    newline: str = LF
    trailing_newline: bool = True

    @classmethod
    def from_text(cls, text: str) -> "Document":
        newline = CRLF if CRLF in text else LF
        trailing = text.endswith(newline)
        if not text:
            return cls(lines=(), newline=newline, trailing_newline=False)
        body = text[: -len(newline)] if trailing else text
        return cls(lines=tuple(body.split(newline)), newline=newline, trailing_newline=trailing)

    def to_text(self) -> str:
        text = self.newline.join(self.lines)
        if self.trailing_newline and self.lines:
            text += self.newline
        return text

    def with_lines(self, lines: Iterable[str]) -> "Document":
        """Return a copy carrying ``lines`` and this document's newline conventions."""
        return replace(self, lines=tuple(lines))

    @property
    def newline_label(self) -> str:
        return "CRLF" if self.newline == CRLF else "LF"


def is_code_fence(line: str) -> bool:
    return line.lstrip().startswith("```")


__all__ = ["CRLF", "Document", "LF", "is_code_fence"]
