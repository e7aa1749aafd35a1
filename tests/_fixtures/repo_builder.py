"""Helper utilities for constructing temporary repositories in tests."""

from __future__ import annotations

import json
import subprocess
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from bdg.git.actions import ActionsStatus
from bdg.git.repository import GitInspector


class RepoBuilder:
    """Utility for writing files into a throwaway repository."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = (tmp_path / "repo").resolve()
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the repository."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_raw(self, relative: str, content: str) -> Path:
        """Write ``content`` byte for byte (no dedent, no newline translation)."""
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path

    def package_json(self, relative: str = "package.json", **fields: Any) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(fields), encoding="utf-8")
        return path

    def read(self, relative: str = "README.md") -> str:
        return (self.root / relative).read_bytes().decode("utf-8")

    def path(self) -> Path:
        """Return the repository root path."""
        return self.root


def git_runner(
    root: Optional[Path],
    remote: Optional[str] = "https://github.com/acme/widget.git",
    default_branch: Optional[str] = "main",
    calls: Optional[List[List[str]]] = None,
):  # type: ignore[no-untyped-def]
    """Stub command runner answering the git queries bdg issues."""

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        command = list(args)
        if calls is not None:
            calls.append(command)
        if root is None:
            raise subprocess.CalledProcessError(128, command)
        if command[:3] == ["git", "rev-parse", "--show-toplevel"]:
            return f"{root}\n"
        if command[:3] == ["git", "remote", "get-url"]:
            if remote is None:
                raise subprocess.CalledProcessError(2, command)
            return f"{remote}\n"
        if command[:2] == ["git", "symbolic-ref"]:
            if default_branch is None:
                raise subprocess.CalledProcessError(128, command)
            return f"refs/remotes/origin/{default_branch}\n"
        raise AssertionError(f"unexpected command {command}")

    return runner


def gh_runner(runs: Optional[List[Dict[str, Any]]] = None, *, available: bool = True):  # type: ignore[no-untyped-def]
    """Stub runner for ``gh``; ``runs`` is the JSON returned by ``gh run list``."""

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        command = list(args)
        if not available:
            raise FileNotFoundError("gh")
        if command == ["gh", "--version"]:
            return "gh version 2.40.0\n"
        if command[:3] == ["gh", "run", "list"]:
            return json.dumps(runs or [])
        raise AssertionError(f"unexpected command {command}")

    return runner


def stub_inspector(root: Optional[Path], **kwargs: Any) -> GitInspector:
    return GitInspector(runner=git_runner(root, **kwargs))


def stub_actions(runs: Optional[List[Dict[str, Any]]] = None, *, available: bool = True) -> ActionsStatus:
    return ActionsStatus(runner=gh_runner(runs, available=available))


__all__ = ["RepoBuilder", "git_runner", "gh_runner", "stub_actions", "stub_inspector"]
