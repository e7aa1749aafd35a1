"""README document model, badge line parsing and managed block editing."""

from .diff import Verdict, compare, exit_code, unified_diff
from .document import Document
from .editor import BDG_BEGIN, BDG_END, BlockEditor, BlockNotInsertable
from .parser import ParsedBadge, parse_badge_line

__all__ = [
    "BDG_BEGIN",
    "BDG_END",
    "BlockEditor",
    "BlockNotInsertable",
    "Document",
    "ParsedBadge",
    "Verdict",
    "compare",
    "exit_code",
    "parse_badge_line",
    "unified_diff",
]
