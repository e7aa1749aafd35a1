"""Repository slug analyzer and analyzer discovery tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from bdg.analyzers import (
    ManifestAnalyzer,
    RegistryAnalyzer,
    RepositoryAnalyzer,
    WorkflowAnalyzer,
    discover_analyzers,
)
from bdg.analyzers.repository import FACT_GITHUB
from bdg.git.repository import GitContext
from bdg.project import ProjectContext, detect_manifests


def test_git_remote_wins(tmp_path: Path) -> None:
    git = GitContext(root=tmp_path, remote="git@github.com:acme/widget.git", owner="acme", name="widget")
    context = ProjectContext(root=tmp_path, current_dir=tmp_path, git=git)
    facts = list(RepositoryAnalyzer().analyze(context))
    assert len(facts) == 1
    assert facts[0].name == FACT_GITHUB
    assert facts[0].value == "acme/widget"
    assert facts[0].source == "git"
    assert facts[0].metadata["owner"] == "acme"
    assert facts[0].metadata["repo"] == "widget"


def test_manifest_repository_is_fallback(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.package_json(name="left-pad", repository={"url": "git+https://github.com/pads/left-pad.git"})
    root = repo_builder.path()
    context = ProjectContext(root=root, current_dir=root, manifests=detect_manifests(root, root))
    facts = list(RepositoryAnalyzer().analyze(context))
    assert [fact.value for fact in facts] == ["pads/left-pad"]
    assert facts[0].source == "package.json"


def test_no_repository_information(tmp_path: Path) -> None:
    context = ProjectContext(root=tmp_path, current_dir=tmp_path)
    assert list(RepositoryAnalyzer().analyze(context)) == []


def test_discover_analyzers_defaults_and_filter() -> None:
    analyzers = discover_analyzers()
    assert [type(item) for item in analyzers] == [
        ManifestAnalyzer,
        RepositoryAnalyzer,
        WorkflowAnalyzer,
        RegistryAnalyzer,
    ]
    assert [item.name for item in discover_analyzers(["Workflows"])] == ["workflows"]
    with pytest.raises(ValueError):
        discover_analyzers(["coverage"])
