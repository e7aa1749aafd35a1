"""Git repository inspection (root, origin remote, default branch)."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from ..logging import get_logger

CommandRunner = Callable[..., str]


@dataclass(frozen=True)
class GitContext:
    """What bdg knows about the enclosing git repository."""

    root: Path
    remote: Optional[str] = None
    owner: Optional[str] = None
    name: Optional[str] = None
    default_branch: Optional[str] = None

    @property
    def slug(self) -> Optional[str]:
        if self.owner and self.name:
            return f"{self.owner}/{self.name}"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "git_root": str(self.root),
            "remote": self.remote,
            "owner": self.owner,
            "name": self.name,
            "default_branch": self.default_branch,
        }


class GitInspector:
    """Runs read-only git commands through an injectable runner."""

    def __init__(self, runner: Optional[CommandRunner] = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def toplevel(self, cwd: Path) -> Optional[Path]:
        """Return the repository root containing ``cwd``, if any."""
        output = self._query(["git", "rev-parse", "--show-toplevel"], cwd=cwd)
        return Path(output) if output else None

    def remote_url(self, root: Path, remote: str = "origin") -> Optional[str]:
        return self._query(["git", "remote", "get-url", remote], cwd=root)

    def default_branch(self, root: Path) -> Optional[str]:
        ref = self._query(["git", "symbolic-ref", "refs/remotes/origin/HEAD"], cwd=root)
        if not ref:
            return None
        branch = ref.rsplit("/", 1)[-1]
        return branch or None

    def context(self, root: Path) -> GitContext:
        remote = self.remote_url(root)
        owner, name = infer_owner_repo(remote)
        return GitContext(
            root=root,
            remote=remote,
            owner=owner,
            name=name,
            default_branch=self.default_branch(root),
        )

    def _query(self, args: Iterable[str], *, cwd: Path) -> Optional[str]:
        command = list(args)
        try:
            output = self._runner(command, cwd=cwd, capture_output=True)
        except (subprocess.CalledProcessError, OSError) as exc:
            self.logger.debug("%s failed: %s", " ".join(command), exc)
            return None
        text = (output or "").strip()
        return text or None

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


def infer_owner_repo(url: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Extract ``(owner, repo)`` from https, ssh, ``git+`` or shorthand URLs."""
    if not url:
        return None, None
    cleaned = url.strip().rstrip("/")
    if cleaned.endswith(".git"):
        cleaned = cleaned[: -len(".git")]
    cleaned = cleaned.replace("git+", "").replace("git://", "https://").replace(":", "/")
    parts = [part for part in cleaned.split("/") if part]
    if len(parts) < 2:
        return None, None
    owner, repo = parts[-2], parts[-1]
    if not owner or not repo:
        return None, None
    return owner, repo


__all__ = ["CommandRunner", "GitContext", "GitInspector", "infer_owner_repo"]
