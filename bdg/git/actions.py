"""Latest GitHub Actions run status via the ``gh`` CLI."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..logging import get_logger
from .repository import CommandRunner

REASON_GH_UNAVAILABLE = "gh_unavailable"
REASON_AUTH_REQUIRED = "auth_required"
REASON_NO_RUNS = "no_runs"


@dataclass(frozen=True)
class RunStatus:
    """Conclusion of the most recent run of one workflow."""

    ok: bool
    reason: Optional[str] = None
    conclusion: Optional[str] = None
    run_id: Optional[int] = None
    html_url: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": "gh",
            "ok": self.ok,
            "reason": self.reason,
            "conclusion": self.conclusion,
            "run_id": self.run_id,
            "html_url": self.html_url,
            "updated_at": self.updated_at,
        }

    def describe(self) -> str:
        if self.ok:
            return self.conclusion or "pending"
        return self.reason or "unknown"


class ActionsStatus:
    """Queries ``gh run list`` for the latest run of a workflow file."""

    def __init__(self, runner: Optional[CommandRunner] = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("git.actions")

    def latest(self, workflow_file: str, *, cwd: Path) -> RunStatus:
        try:
            self._runner(["gh", "--version"], cwd=cwd, capture_output=True)
        except (subprocess.CalledProcessError, OSError):
            return RunStatus(ok=False, reason=REASON_GH_UNAVAILABLE)

        command = [
            "gh",
            "run",
            "list",
            "--workflow",
            workflow_file,
            "--limit",
            "1",
            "--json",
            "conclusion,updatedAt,url,databaseId",
        ]
        try:
            output = self._runner(command, cwd=cwd, capture_output=True)
        except OSError:
            return RunStatus(ok=False, reason=REASON_GH_UNAVAILABLE)
        except subprocess.CalledProcessError as exc:
            self.logger.debug("gh run list failed for %s: %s", workflow_file, exc)
            return RunStatus(ok=False, reason=REASON_AUTH_REQUIRED)

        try:
            runs = json.loads(output or "[]")
        except json.JSONDecodeError:
            runs = []
        if not isinstance(runs, list) or not runs or not isinstance(runs[0], dict):
            return RunStatus(ok=False, reason=REASON_NO_RUNS)

        run = runs[0]
        run_id = run.get("databaseId")
        return RunStatus(
            ok=True,
            conclusion=run.get("conclusion") or None,
            run_id=run_id if isinstance(run_id, int) else None,
            html_url=run.get("url"),
            updated_at=run.get("updatedAt"),
        )

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


__all__ = [
    "ActionsStatus",
    "REASON_AUTH_REQUIRED",
    "REASON_GH_UNAVAILABLE",
    "REASON_NO_RUNS",
    "RunStatus",
]
