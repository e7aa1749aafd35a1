"""Package manifest analyzer (package.json, Cargo.toml, moon.mod.json)."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..logging import get_logger
from ..models import Fact
from ..project import CARGO_TOML, MOON_MOD, PACKAGE_JSON, ProjectContext
from .base import Analyzer

FACT_NPM = "manifest.npm"
FACT_CRATES = "manifest.crates"
FACT_MOONBIT = "manifest.moonbit"

logger = get_logger("analyzers.manifests")


def read_package_json(path: Path) -> Dict[str, Any]:
    """Return the normalised fields bdg uses from a package.json."""
    data = _load_json(path)
    return {
        "name": _as_text(data.get("name")),
        "version": _as_text(data.get("version")),
        "description": _as_text(data.get("description")),
        "license": _as_text(data.get("license")),
        "repository": _repository_url(data.get("repository")),
    }


def read_cargo_toml(path: Path) -> Dict[str, Any]:
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    package = data.get("package")
    if not isinstance(package, dict):
        package = {}
    return {
        "name": _as_text(package.get("name")),
        "version": _as_text(package.get("version")),
        "description": _as_text(package.get("description")),
        "license": _as_text(package.get("license")),
        "repository": _as_text(package.get("repository")),
    }


def read_moon_mod(path: Path) -> Dict[str, Any]:
    data = _load_json(path)
    return {
        "name": _as_text(data.get("name")),
        "version": _as_text(data.get("version")),
        "readme": _as_text(data.get("readme")),
        "license": _as_text(data.get("license")),
        "repository": _as_text(data.get("repository")),
    }


_READERS = (
    (PACKAGE_JSON, FACT_NPM, read_package_json),
    (CARGO_TOML, FACT_CRATES, read_cargo_toml),
    (MOON_MOD, FACT_MOONBIT, read_moon_mod),
)


class ManifestAnalyzer(Analyzer):
    """Emit one fact per ecosystem for the manifest closest to the working directory."""

    name = "manifests"

    def supports(self, context: ProjectContext) -> bool:
        return any(context.manifests.closest(filename) for filename, _, _ in _READERS)

    def analyze(self, context: ProjectContext) -> Iterable[Fact]:
        facts: List[Fact] = []
        for filename, fact_name, reader in _READERS:
            path = context.manifests.closest(filename)
            if path is None:
                continue
            try:
                fields = reader(path)
            except (OSError, ValueError, tomllib.TOMLDecodeError) as exc:
                logger.warning("Skipping unreadable manifest %s: %s", path, exc)
                continue
            if not fields.get("name"):
                logger.debug("Manifest %s has no name; no badge candidates", path)
                continue
            facts.append(
                Fact(
                    name=fact_name,
                    value=fields["name"],
                    source=_relative(path, context.root),
                    metadata={"path": str(path), **fields},
                )
            )
        return facts


def _load_json(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a JSON object")
    return data


def _repository_url(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return _as_text(value.get("url"))
    return None


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


__all__ = [
    "FACT_CRATES",
    "FACT_MOONBIT",
    "FACT_NPM",
    "ManifestAnalyzer",
    "read_cargo_toml",
    "read_moon_mod",
    "read_package_json",
]
