"""Project context: root, manifests, README location and git metadata."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .git.repository import GitContext, GitInspector
from .logging import get_logger

PACKAGE_JSON = "package.json"
CARGO_TOML = "Cargo.toml"
MOON_MOD = "moon.mod.json"
MANIFEST_NAMES = (PACKAGE_JSON, CARGO_TOML, MOON_MOD)

ECOSYSTEM_NODE = "node"
ECOSYSTEM_MOONBIT = "moonbit"
ECOSYSTEM_RUST = "rust"

DEFAULT_MAX_DEPTH = 3

_IGNORED_DIRS = {".git", "target", "node_modules", "dist", "build", "out", "vendor"}
_IGNORED_PREFIXES = ("tests/fixtures",)

README_CANDIDATES = ("README.md", "README.mbt.md", "docs/README.md")
MOONBIT_README_CANDIDATES = ("README.mbt.md", "README.md", "docs/README.md")

logger = get_logger("project")


@dataclass
class ManifestPaths:
    """Manifest files found under the project root and the closest of each kind."""

    package_json: Optional[Path] = None
    cargo_toml: Optional[Path] = None
    moon_mod: Optional[Path] = None
    found: Dict[str, List[Path]] = field(default_factory=dict)

    def closest(self, name: str) -> Optional[Path]:
        return {
            PACKAGE_JSON: self.package_json,
            CARGO_TOML: self.cargo_toml,
            MOON_MOD: self.moon_mod,
        }.get(name)


@dataclass
class ProjectContext:
    """Everything analyzers need to know about the working project."""

    root: Path
    current_dir: Path
    manifests: ManifestPaths = field(default_factory=ManifestPaths)
    git: Optional[GitContext] = None

    @property
    def has_moonbit(self) -> bool:
        return self.manifests.moon_mod is not None

    @property
    def ecosystem(self) -> Optional[str]:
        if self.manifests.package_json is not None:
            return ECOSYSTEM_NODE
        if self.manifests.moon_mod is not None:
            return ECOSYSTEM_MOONBIT
        if self.manifests.cargo_toml is not None:
            return ECOSYSTEM_RUST
        return None


def detect_manifests(
    root: Path,
    current_dir: Path,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ManifestPaths:
    """Find manifests at most ``max_depth`` levels below ``root``."""
    found: Dict[str, List[Path]] = {name: [] for name in MANIFEST_NAMES}
    for path in _walk_manifests(root, max_depth):
        found[path.name].append(path)
    return ManifestPaths(
        package_json=choose_closest(current_dir, found[PACKAGE_JSON]),
        cargo_toml=choose_closest(current_dir, found[CARGO_TOML]),
        moon_mod=choose_closest(current_dir, found[MOON_MOD]),
        found=found,
    )


def _walk_manifests(root: Path, max_depth: int) -> Iterable[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        relative = current.relative_to(root)
        depth = len(relative.parts)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if name not in _IGNORED_DIRS and not _is_ignored_prefix(relative / name)
        )
        if depth + 1 >= max_depth:
            dirnames[:] = []
        for filename in sorted(filenames):
            if filename in MANIFEST_NAMES:
                yield current / filename


def _is_ignored_prefix(relative: Path) -> bool:
    text = relative.as_posix()
    return any(text == prefix or text.startswith(f"{prefix}/") for prefix in _IGNORED_PREFIXES)


def choose_closest(current_dir: Path, paths: Sequence[Path]) -> Optional[Path]:
    """Pick the manifest nearest to ``current_dir``; ties resolve by path."""
    if not paths:
        return None
    return min(paths, key=lambda path: (path_distance(current_dir, path), str(path)))


def path_distance(from_dir: Path, to_file: Path) -> int:
    """Directory hops between ``from_dir`` and the directory holding ``to_file``."""
    source = from_dir.parts
    target = to_file.parent.parts
    common = 0
    for left, right in zip(source, target):
        if left != right:
            break
        common += 1
    return (len(source) - common) + (len(target) - common)


def resolve_readme(
    root: Path,
    prefer_moonbit: bool = False,
    configured: Optional[str] = None,
) -> Path:
    """Return the README to manage; the first candidate when none exists."""
    if configured:
        candidate = Path(configured)
        return candidate if candidate.is_absolute() else root / candidate
    candidates = MOONBIT_README_CANDIDATES if prefer_moonbit else README_CANDIDATES
    for name in candidates:
        path = root / name
        if path.is_file():
            return path
    return root / candidates[0]


def build_context(current_dir: Path, inspector: Optional[GitInspector] = None) -> ProjectContext:
    """Detect the project root, manifests and git metadata for ``current_dir``."""
    inspector = inspector or GitInspector()
    current_dir = current_dir.resolve()
    toplevel = inspector.toplevel(current_dir)
    root = toplevel.resolve() if toplevel is not None else current_dir
    if toplevel is None:
        logger.debug("No git repository found above %s; using it as the project root", current_dir)
    context = ProjectContext(
        root=root,
        current_dir=current_dir,
        manifests=detect_manifests(root, current_dir),
        git=inspector.context(root) if toplevel is not None else None,
    )
    logger.debug(
        "Project root %s (ecosystem=%s, github=%s)",
        root,
        context.ecosystem,
        context.git.slug if context.git else None,
    )
    return context


__all__ = [
    "CARGO_TOML",
    "MANIFEST_NAMES",
    "MOON_MOD",
    "ManifestPaths",
    "PACKAGE_JSON",
    "ProjectContext",
    "build_context",
    "choose_closest",
    "detect_manifests",
    "path_distance",
    "resolve_readme",
]
