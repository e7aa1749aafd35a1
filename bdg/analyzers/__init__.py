"""Analyzer implementations and discovery utilities."""

from __future__ import annotations

from typing import Callable, List, Sequence, Set

from .base import Analyzer
from .manifests import ManifestAnalyzer
from .registry import RegistryAnalyzer
from .repository import RepositoryAnalyzer
from .workflows import WorkflowAnalyzer

_BUILTIN_FACTORIES: dict[str, Callable[[], Analyzer]] = {
    "manifests": ManifestAnalyzer,
    "repository": RepositoryAnalyzer,
    "workflows": WorkflowAnalyzer,
    "registry": RegistryAnalyzer,
}


def discover_analyzers(enabled: Sequence[str] | None = None) -> List[Analyzer]:
    """Return instantiated analyzers, honoring optional enabled names."""
    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}
        unknown = enabled_set - set(_BUILTIN_FACTORIES)
        if unknown:
            missing = ", ".join(sorted(unknown))
            raise ValueError(f"Unknown analyzers requested: {missing}")

    analyzers: List[Analyzer] = []
    for name, factory in _BUILTIN_FACTORIES.items():
        if enabled_set is not None and name not in enabled_set:
            continue
        analyzers.append(factory())
    return analyzers


__all__ = [
    "Analyzer",
    "ManifestAnalyzer",
    "RegistryAnalyzer",
    "RepositoryAnalyzer",
    "WorkflowAnalyzer",
    "discover_analyzers",
]
