"""Core data models shared across bdg components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

# Badge kinds recognised in a managed block.
KIND_GITHUB_ACTIONS = "github_actions"
KIND_NPM = "npm"
KIND_NPM_DOWNLOADS = "npm_downloads"
KIND_CRATES = "crates"
KIND_CRATES_DOWNLOADS = "crates_downloads"
KIND_MOONBIT = "moonbit"
KIND_VERSION = "version"
KIND_LICENSE = "license"
KIND_GITHUB_RELEASE = "github_release"
KIND_COVERAGE = "coverage"
KIND_DOCS = "docs"
KIND_UNKNOWN = "unknown"

CATEGORY_ORDER = ("ci", "version", "license", "registry", "other")

_CATEGORY_BY_KIND: Dict[str, str] = {
    KIND_GITHUB_ACTIONS: "ci",
    KIND_NPM: "version",
    KIND_CRATES: "version",
    KIND_MOONBIT: "version",
    KIND_VERSION: "version",
    KIND_GITHUB_RELEASE: "version",
    KIND_LICENSE: "license",
    KIND_NPM_DOWNLOADS: "registry",
    KIND_CRATES_DOWNLOADS: "registry",
    KIND_COVERAGE: "other",
    KIND_DOCS: "other",
    KIND_UNKNOWN: "other",
}


def category_for_kind(kind: str) -> str:
    """Return the catalog category a badge kind belongs to."""
    return _CATEGORY_BY_KIND.get(kind, "other")


@dataclass
class Fact:
    """Structured project fact emitted by analyzers for the badge catalog."""

    name: str
    value: str
    source: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BadgeDescriptor:
    """One renderable badge entry with a stable identity."""

    id: str
    kind: str
    markdown: str
    label: str = ""

    @property
    def category(self) -> str:
        return category_for_kind(self.kind)


@dataclass(frozen=True)
class Selection:
    """Which block entries a removal targets."""

    ids: FrozenSet[str] = frozenset()
    kinds: FrozenSet[str] = frozenset()
    all: bool = False

    @classmethod
    def of(
        cls,
        *,
        ids: Optional[Iterable[str]] = None,
        kinds: Optional[Iterable[str]] = None,
        all: bool = False,
    ) -> "Selection":
        return cls(
            ids=frozenset(item.strip() for item in ids or () if item.strip()),
            kinds=frozenset(item.strip() for item in kinds or () if item.strip()),
            all=all,
        )

    def is_empty(self) -> bool:
        return not (self.all or self.ids or self.kinds)

    def matches(self, entry_id: str, kind: str) -> bool:
        if self.all:
            return True
        return entry_id in self.ids or kind in self.kinds


__all__ = [
    "BadgeDescriptor",
    "CATEGORY_ORDER",
    "Fact",
    "KIND_COVERAGE",
    "KIND_CRATES",
    "KIND_CRATES_DOWNLOADS",
    "KIND_DOCS",
    "KIND_GITHUB_ACTIONS",
    "KIND_GITHUB_RELEASE",
    "KIND_LICENSE",
    "KIND_MOONBIT",
    "KIND_NPM",
    "KIND_NPM_DOWNLOADS",
    "KIND_UNKNOWN",
    "KIND_VERSION",
    "Selection",
    "category_for_kind",
]
