"""GitHub Actions workflow discovery."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

import yaml

from ..logging import get_logger
from ..models import Fact
from ..project import ProjectContext
from .base import Analyzer

FACT_WORKFLOW = "ci.workflow"
WORKFLOWS_DIR = ".github/workflows"
_SUFFIXES = {".yml", ".yaml"}

logger = get_logger("analyzers.workflows")


@dataclass(frozen=True)
class WorkflowInfo:
    """One workflow file and its display name."""

    file: str
    name: str
    path: Path


def detect_workflows(root: Path) -> List[WorkflowInfo]:
    """List workflow files sorted by file name."""
    directory = root / WORKFLOWS_DIR
    if not directory.is_dir():
        return []
    workflows: List[WorkflowInfo] = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in _SUFFIXES:
            continue
        workflows.append(WorkflowInfo(file=path.name, name=_workflow_name(path), path=path))
    return workflows


def _workflow_name(path: Path) -> str:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        logger.debug("Could not read workflow name from %s: %s", path, exc)
        return path.stem
    if isinstance(data, dict):
        name = data.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
    return path.stem


class WorkflowAnalyzer(Analyzer):
    """Emit one ``ci.workflow`` fact per workflow file."""

    name = "workflows"

    def supports(self, context: ProjectContext) -> bool:
        return (context.root / WORKFLOWS_DIR).is_dir()

    def analyze(self, context: ProjectContext) -> Iterable[Fact]:
        return [
            Fact(
                name=FACT_WORKFLOW,
                value=workflow.file,
                source=f"{WORKFLOWS_DIR}/{workflow.file}",
                metadata={"file": workflow.file, "name": workflow.name},
            )
            for workflow in detect_workflows(context.root)
        ]


__all__ = ["FACT_WORKFLOW", "WORKFLOWS_DIR", "WorkflowAnalyzer", "WorkflowInfo", "detect_workflows"]
