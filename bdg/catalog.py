"""Turn project facts into candidate badge descriptors."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set

from .models import (
    CATEGORY_ORDER,
    KIND_CRATES,
    KIND_CRATES_DOWNLOADS,
    KIND_GITHUB_ACTIONS,
    KIND_GITHUB_RELEASE,
    KIND_LICENSE,
    KIND_MOONBIT,
    KIND_NPM,
    KIND_NPM_DOWNLOADS,
    KIND_VERSION,
    BadgeDescriptor,
    Fact,
    category_for_kind,
)
from .readme.parser import shields_escape
from .version import DEFAULT_POLICY, VersionClassification, VersionPolicy, classify

SHIELDS = "https://img.shields.io"

_ALIASES: Dict[str, Set[str]] = {
    "downloads": {KIND_NPM_DOWNLOADS, KIND_CRATES_DOWNLOADS},
    "release": {KIND_GITHUB_RELEASE},
}
_KINDS = {
    KIND_GITHUB_ACTIONS,
    KIND_NPM,
    KIND_NPM_DOWNLOADS,
    KIND_CRATES,
    KIND_CRATES_DOWNLOADS,
    KIND_MOONBIT,
    KIND_VERSION,
    KIND_LICENSE,
    KIND_GITHUB_RELEASE,
}
_RECOMMENDED_VERSION_KINDS = {KIND_NPM, KIND_CRATES, KIND_MOONBIT, KIND_VERSION}
# Kinds reachable only through their own selector, not their category name.
_OWN_SELECTOR_KINDS = {KIND_GITHUB_RELEASE}


def build(
    facts: Iterable[Fact],
    policy: VersionPolicy = DEFAULT_POLICY,
    filter: Optional[Iterable[str]] = None,
) -> List[BadgeDescriptor]:
    """Return candidate badges sorted by category precedence, then id."""
    by_name: Dict[str, List[Fact]] = {}
    for fact in facts:
        by_name.setdefault(fact.name, []).append(fact)

    descriptors: List[BadgeDescriptor] = []
    github = _first(by_name, "repo.github")
    owner = github.metadata.get("owner") if github else None
    repo = github.metadata.get("repo") if github else None

    if owner and repo:
        for workflow in by_name.get("ci.workflow", []):
            descriptors.append(github_actions_badge(owner, repo, workflow.value, workflow.metadata.get("name")))

    npm = _first(by_name, "manifest.npm")
    if npm:
        registry = _registry(by_name, "registry.npm")
        classification = _classify(registry, npm, policy)
        descriptors.append(npm_badge(npm.value, classification))
        if registry is not None:
            descriptors.append(npm_downloads_badge(npm.value))

    crates = _first(by_name, "manifest.crates")
    if crates:
        registry = _registry(by_name, "registry.crates")
        classification = _classify(registry, crates, policy)
        descriptors.append(crates_badge(crates.value, classification))
        if registry is not None:
            descriptors.append(crates_downloads_badge(crates.value))

    moonbit = _first(by_name, "manifest.moonbit")
    if moonbit:
        descriptors.append(moonbit_badge(moonbit.value))

    if not npm and not crates:
        static = _static_version(by_name, policy)
        if static is not None:
            descriptors.append(static)

    license_text = _project_license(by_name)
    if license_text:
        descriptors.append(static_license_badge(license_text))
    elif owner and repo:
        descriptors.append(github_license_badge(owner, repo))

    if owner and repo:
        descriptors.append(github_release_badge(owner, repo))

    result = sort_descriptors(dedupe(descriptors))
    if filter is not None:
        names = [name for name in filter if name and name.strip()]
        if names:
            result = apply_filter(result, names)
    return result


def recommended(descriptors: Sequence[BadgeDescriptor]) -> List[BadgeDescriptor]:
    """Default selection: the first CI badge, version badges and the first license badge."""
    chosen: List[BadgeDescriptor] = []
    ci = next((item for item in descriptors if item.kind == KIND_GITHUB_ACTIONS), None)
    license_badge = next((item for item in descriptors if item.kind == KIND_LICENSE), None)
    for item in descriptors:
        if item is ci or item is license_badge or item.kind in _RECOMMENDED_VERSION_KINDS:
            chosen.append(item)
    return chosen


def resolve_filter(names: Iterable[str]) -> Set[str]:
    """Expand category names, kind names and aliases into a set of kinds."""
    kinds: Set[str] = set()
    for raw in names:
        name = raw.strip().lower()
        if name in _ALIASES:
            kinds.update(_ALIASES[name])
        elif name in CATEGORY_ORDER:
            kinds.update(
                kind
                for kind in _KINDS - _OWN_SELECTOR_KINDS
                if category_for_kind(kind) == name
            )
        elif name in _KINDS:
            kinds.add(name)
    return kinds


def unknown_filters(names: Iterable[str]) -> List[str]:
    """Return filter names that match no category, kind or alias."""
    return [
        name
        for name in names
        if name.strip()
        and name.strip().lower() not in _ALIASES
        and name.strip().lower() not in CATEGORY_ORDER
        and name.strip().lower() not in _KINDS
    ]


def apply_filter(descriptors: Sequence[BadgeDescriptor], names: Iterable[str]) -> List[BadgeDescriptor]:
    kinds = resolve_filter(names)
    return [item for item in descriptors if item.kind in kinds]


def dedupe(descriptors: Iterable[BadgeDescriptor]) -> List[BadgeDescriptor]:
    seen: Set[str] = set()
    unique: List[BadgeDescriptor] = []
    for item in descriptors:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def sort_descriptors(descriptors: Iterable[BadgeDescriptor]) -> List[BadgeDescriptor]:
    return sorted(descriptors, key=lambda item: (_category_rank(item.kind), item.id))


def _category_rank(kind: str) -> int:
    return CATEGORY_ORDER.index(category_for_kind(kind))


# Renderers


def github_actions_badge(owner: str, repo: str, workflow_file: str, name: Optional[str] = None) -> BadgeDescriptor:
    base = f"https://github.com/{owner}/{repo}/actions/workflows/{workflow_file}"
    alt = _alt_text(name) or "CI"
    return BadgeDescriptor(
        id=f"ci:{workflow_file}",
        kind=KIND_GITHUB_ACTIONS,
        markdown=f"[![{alt}]({base}/badge.svg)]({base})",
        label=f"CI ({workflow_file})",
    )


def npm_badge(package: str, classification: Optional[VersionClassification] = None) -> BadgeDescriptor:
    return BadgeDescriptor(
        id=f"npm:{package}",
        kind=KIND_NPM,
        markdown=f"[![npm]({SHIELDS}/npm/v/{package}.svg)](https://www.npmjs.com/package/{package})",
        label=_version_label("npm", classification),
    )


def npm_downloads_badge(package: str) -> BadgeDescriptor:
    return BadgeDescriptor(
        id=f"npm_downloads:{package}",
        kind=KIND_NPM_DOWNLOADS,
        markdown=(
            f"[![npm downloads]({SHIELDS}/npm/dm/{package}.svg)]"
            f"(https://www.npmjs.com/package/{package})"
        ),
        label="npm downloads",
    )


def crates_badge(crate: str, classification: Optional[VersionClassification] = None) -> BadgeDescriptor:
    return BadgeDescriptor(
        id=f"crates:{crate}",
        kind=KIND_CRATES,
        markdown=f"[![crates.io]({SHIELDS}/crates/v/{crate}.svg)](https://crates.io/crates/{crate})",
        label=_version_label("crates.io", classification),
    )


def crates_downloads_badge(crate: str) -> BadgeDescriptor:
    return BadgeDescriptor(
        id=f"crates_downloads:{crate}",
        kind=KIND_CRATES_DOWNLOADS,
        markdown=f"[![crates.io downloads]({SHIELDS}/crates/d/{crate}.svg)](https://crates.io/crates/{crate})",
        label="crates.io downloads",
    )


def moonbit_badge(module: str) -> BadgeDescriptor:
    return BadgeDescriptor(
        id=f"moonbit:{module}",
        kind=KIND_MOONBIT,
        markdown=f"![moonbit]({SHIELDS}/badge/moonbit-{shields_escape(module)}-informational)",
        label="moonbit module",
    )


def static_version_badge(classification: VersionClassification) -> BadgeDescriptor:
    color = "blue" if classification.is_semver else "informational"
    version = classification.raw.strip()
    return BadgeDescriptor(
        id="version:static",
        kind=KIND_VERSION,
        markdown=f"![version]({SHIELDS}/badge/version-{shields_escape(version)}-{color})",
        label=_version_label("version", classification),
    )


def static_license_badge(spdx: str) -> BadgeDescriptor:
    return BadgeDescriptor(
        id=f"license:{spdx}",
        kind=KIND_LICENSE,
        markdown=f"![license]({SHIELDS}/badge/license-{shields_escape(spdx)}-blue)",
        label=f"license ({spdx})",
    )


def github_license_badge(owner: str, repo: str) -> BadgeDescriptor:
    return BadgeDescriptor(
        id="license:github",
        kind=KIND_LICENSE,
        markdown=(
            f"[![license]({SHIELDS}/github/license/{owner}/{repo}.svg)]"
            f"(https://github.com/{owner}/{repo})"
        ),
        label="license",
    )


def github_release_badge(owner: str, repo: str) -> BadgeDescriptor:
    return BadgeDescriptor(
        id="release:github",
        kind=KIND_GITHUB_RELEASE,
        markdown=(
            f"[![release]({SHIELDS}/github/v/release/{owner}/{repo}.svg)]"
            f"(https://github.com/{owner}/{repo}/releases)"
        ),
        label="release",
    )


def _alt_text(text: Optional[str]) -> str:
    # Brackets would end the image label early and break line parsing.
    return " ".join((text or "").replace("[", " ").replace("]", " ").split())


def _version_label(name: str, classification: Optional[VersionClassification]) -> str:
    if classification is None:
        return f"{name} version"
    return f"{name} version ({classification.raw.strip()}, {classification.format})"


def _first(by_name: Dict[str, List[Fact]], name: str) -> Optional[Fact]:
    facts = by_name.get(name)
    return facts[0] if facts else None


def _registry(by_name: Dict[str, List[Fact]], name: str) -> Optional[Fact]:
    fact = _first(by_name, name)
    if fact is None or not fact.metadata.get("ok"):
        return None
    return fact


def _classify(
    registry: Optional[Fact], manifest: Fact, policy: VersionPolicy
) -> Optional[VersionClassification]:
    version = registry.metadata.get("latest") if registry else None
    version = version or manifest.metadata.get("version")
    if not version:
        return None
    return classify(version, policy)


def _static_version(by_name: Dict[str, List[Fact]], policy: VersionPolicy) -> Optional[BadgeDescriptor]:
    for name in ("manifest.moonbit", "manifest.npm", "manifest.crates"):
        fact = _first(by_name, name)
        version = fact.metadata.get("version") if fact else None
        if not version:
            continue
        classification = classify(version, policy)
        if classification.is_unknown:
            return None
        return static_version_badge(classification)
    return None


def _project_license(by_name: Dict[str, List[Fact]]) -> Optional[str]:
    for name in ("registry.npm", "registry.crates"):
        fact = _registry(by_name, name)
        if fact and fact.metadata.get("license"):
            return str(fact.metadata["license"])
    for name in ("manifest.npm", "manifest.crates", "manifest.moonbit"):
        fact = _first(by_name, name)
        if fact and fact.metadata.get("license"):
            return str(fact.metadata["license"])
    return None


__all__ = [
    "SHIELDS",
    "apply_filter",
    "build",
    "dedupe",
    "recommended",
    "resolve_filter",
    "sort_descriptors",
    "unknown_filters",
]
