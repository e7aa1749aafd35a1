"""Git hosting analyzer producing the ``repo.github`` fact."""

from __future__ import annotations

from typing import Iterable, List

from ..git.repository import infer_owner_repo
from ..models import Fact
from ..project import ProjectContext
from .base import Analyzer
from .manifests import FACT_CRATES, FACT_MOONBIT, FACT_NPM, ManifestAnalyzer

FACT_GITHUB = "repo.github"


class RepositoryAnalyzer(Analyzer):
    """Resolve ``owner/repo`` from the origin remote, else from manifest metadata."""

    name = "repository"

    def __init__(self, manifests: ManifestAnalyzer | None = None) -> None:
        self._manifests = manifests or ManifestAnalyzer()

    def supports(self, context: ProjectContext) -> bool:
        return True

    def analyze(self, context: ProjectContext) -> Iterable[Fact]:
        git = context.git
        if git is not None and git.owner and git.name:
            return [
                Fact(
                    name=FACT_GITHUB,
                    value=f"{git.owner}/{git.name}",
                    source="git",
                    metadata={"owner": git.owner, "repo": git.name, **git.to_dict()},
                )
            ]

        facts: List[Fact] = []
        manifest_facts = (
            self._manifests.analyze(context) if self._manifests.supports(context) else []
        )
        for fact in manifest_facts:
            if fact.name not in {FACT_NPM, FACT_CRATES, FACT_MOONBIT}:
                continue
            owner, repo = infer_owner_repo(fact.metadata.get("repository"))
            if owner and repo:
                facts.append(
                    Fact(
                        name=FACT_GITHUB,
                        value=f"{owner}/{repo}",
                        source=fact.source,
                        metadata={"owner": owner, "repo": repo, "remote": fact.metadata.get("repository")},
                    )
                )
                break
        return facts


__all__ = ["FACT_GITHUB", "RepositoryAnalyzer"]
