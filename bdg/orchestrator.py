"""Pipeline orchestration for the add, list and remove flows."""

from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from . import catalog
from .analyzers import Analyzer
from .analyzers.manifests import FACT_CRATES, FACT_MOONBIT, FACT_NPM, ManifestAnalyzer
from .analyzers.registry import (
    FACT_REGISTRY_CRATES,
    FACT_REGISTRY_MOONBIT,
    FACT_REGISTRY_NPM,
    RegistryAnalyzer,
    RegistryClient,
)
from .analyzers.repository import RepositoryAnalyzer
from .analyzers.workflows import WORKFLOWS_DIR, WorkflowAnalyzer, detect_workflows
from .config import BdgConfig, load_config
from .git.actions import ActionsStatus, RunStatus
from .git.repository import GitInspector
from .logging import get_logger
from .models import BadgeDescriptor, Fact, Selection
from .project import ProjectContext, build_context, resolve_readme
from .readme.diff import Verdict, compare, exit_code, unified_diff
from .readme.document import Document
from .readme.editor import MODE_ADD, MODE_REMOVE, BlockEditor
from .readme.parser import ParsedBadge
from .version import VersionPolicy, classify

SCHEMA_DRYRUN = "bdg.dryrun/v1"
SCHEMA_LIST = "bdg.list/v1"

REASON_OFFLINE = "offline"

BadgeSelector = Callable[[Sequence[BadgeDescriptor], Sequence[BadgeDescriptor]], Sequence[BadgeDescriptor]]
EntrySelector = Callable[[Sequence[ParsedBadge]], Sequence[ParsedBadge]]


class RemovalError(RuntimeError):
    """Raised when a removal request is contradictory or matches nothing under --strict."""


@dataclass
class Workspace:
    """Resolved project, configuration and README for one command run."""

    context: ProjectContext
    config: BdgConfig
    policy: VersionPolicy
    readme_path: Path
    editor: BlockEditor

    @property
    def display_path(self) -> str:
        try:
            return self.readme_path.relative_to(self.context.root).as_posix()
        except ValueError:
            return self.readme_path.as_posix()


@dataclass
class EditOutcome:
    """Result of an add or remove run."""

    path: Path
    display_path: str
    diff: str
    changed: bool
    dry_run: bool
    written: bool = False
    added_ids: List[str] = field(default_factory=list)
    removed_ids: Optional[List[str]] = None
    missing_ids: Optional[List[str]] = None
    removed_kinds: Optional[Dict[str, int]] = None
    remaining: int = 0
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        verdict = Verdict.CHANGED if self.changed else Verdict.UNCHANGED
        return exit_code(verdict, self.dry_run)

    def to_dryrun_json(self) -> Dict[str, Any]:
        return {
            "schema": SCHEMA_DRYRUN,
            "path": str(self.path),
            "diff": self.diff,
            "changed": self.changed,
            "removed_ids": self.removed_ids,
            "missing_ids": self.missing_ids,
            "removed_kinds": self.removed_kinds,
            "warnings": self.warnings,
        }


@dataclass
class ListOutcome:
    """Result of a list run; ``payload`` follows the bdg.list/v1 schema."""

    readme_path: Path
    entries: List[ParsedBadge]
    payload: Dict[str, Any]


def warning(code: str, message: str, **meta: Any) -> Dict[str, Any]:
    return {"code": code, "message": message, "meta": meta or None}


class Orchestrator:
    """Coordinates project detection, badge selection and README edits."""

    def __init__(
        self,
        analyzers: Optional[Iterable[Analyzer]] = None,
        inspector: GitInspector | None = None,
        actions: ActionsStatus | None = None,
        registry_client: RegistryClient | None = None,
    ) -> None:
        self._analyzer_overrides = list(analyzers) if analyzers is not None else None
        self.inspector = inspector or GitInspector()
        self.actions = actions or ActionsStatus()
        self._registry_client = registry_client
        self.logger = get_logger("orchestrator")

    # Workspace and facts

    def prepare(self, path: str | Path, *, allow_yy_calver: Optional[bool] = None) -> Workspace:
        """Resolve project root, configuration, policy and README path."""
        current_dir = Path(path).expanduser().resolve()
        context = build_context(current_dir, self.inspector)
        config = load_config(current_dir, context.root)
        if config.path is not None:
            self.logger.debug("Loaded configuration from %s", config.path)
        readme_path = resolve_readme(context.root, context.has_moonbit, config.readme.path)
        return Workspace(
            context=context,
            config=config,
            policy=config.version.policy(allow_yy_calver),
            readme_path=readme_path,
            editor=BlockEditor(skip_code_fences=config.readme.skip_code_fences),
        )

    def collect_facts(self, workspace: Workspace, *, offline: bool = False) -> List[Fact]:
        facts: List[Fact] = []
        for analyzer in self._select_analyzers(workspace.config, offline=offline):
            if not analyzer.supports(workspace.context):
                continue
            self.logger.debug("Running analyzer %s", analyzer.__class__.__name__)
            facts.extend(analyzer.analyze(workspace.context))
        self.logger.debug("Collected %d facts", len(facts))
        return facts

    def _select_analyzers(self, config: BdgConfig, *, offline: bool) -> List[Analyzer]:
        registry_enabled = config.registry.enabled and not offline
        if self._analyzer_overrides is not None:
            return [
                analyzer
                for analyzer in self._analyzer_overrides
                if registry_enabled or not isinstance(analyzer, RegistryAnalyzer)
            ]
        manifests = ManifestAnalyzer()
        analyzers: List[Analyzer] = [
            manifests,
            RepositoryAnalyzer(manifests),
            WorkflowAnalyzer(),
        ]
        if registry_enabled:
            client = self._registry_client or RegistryClient(timeout=config.registry.timeout)
            analyzers.append(RegistryAnalyzer(client, manifests=manifests))
        return analyzers

    def candidates(
        self,
        workspace: Workspace,
        *,
        only: Optional[Sequence[str]] = None,
        offline: bool = False,
    ) -> List[BadgeDescriptor]:
        facts = self.collect_facts(workspace, offline=offline)
        return catalog.build(facts, workspace.policy, only)

    # Flows

    def run_add(
        self,
        path: str | Path,
        *,
        only: Optional[Sequence[str]] = None,
        allow_yy_calver: Optional[bool] = None,
        offline: bool = False,
        dry_run: bool = False,
        heading: Optional[str] = None,
        select: Optional[BadgeSelector] = None,
    ) -> EditOutcome:
        """Merge detected badges into the README block."""
        workspace = self.prepare(path, allow_yy_calver=allow_yy_calver)
        original = self._read(workspace.readme_path)
        self.logger.info("Detecting badges for %s", workspace.context.root)
        warnings: List[Dict[str, Any]] = []
        for name in catalog.unknown_filters(only or ()):
            self.logger.warning("Ignoring unknown badge type '%s'", name)
            warnings.append(warning("UNKNOWN_FILTER", "unknown badge type in --only", name=name))

        found = self.candidates(workspace, only=only, offline=offline)
        chosen = list(select(found, catalog.recommended(found))) if select else found
        self.logger.debug("Selected %d of %d candidate badges", len(chosen), len(found))

        if not chosen:
            self.logger.info("No badges selected; README left unchanged")
            warnings.append(warning("NO_BADGES", "no badges selected"))
            return self._finish(workspace, original, original, dry_run=dry_run, warnings=warnings)

        updated = workspace.editor.apply(original, chosen, mode=MODE_ADD, heading_anchor=heading)
        outcome = self._finish(workspace, original, updated, dry_run=dry_run, warnings=warnings)
        outcome.added_ids = [item.id for item in chosen]
        return outcome

    def run_remove(
        self,
        path: str | Path,
        *,
        all: bool = False,
        ids: Sequence[str] = (),
        kinds: Sequence[str] = (),
        strict: bool = False,
        dry_run: bool = False,
        select: Optional[EntrySelector] = None,
    ) -> EditOutcome:
        """Remove entries from the README block by id, kind, or all at once."""
        selection = Selection.of(ids=ids, kinds=kinds, all=all)
        if all and (selection.ids or selection.kinds):
            raise RemovalError("--all cannot be combined with --id or --kind")

        workspace = self.prepare(path)
        original = self._read(workspace.readme_path)
        existing = workspace.editor.entries(original)
        if not existing:
            self.logger.info("No managed badges in %s; nothing to remove", workspace.display_path)
            return self._finish(workspace, original, original, dry_run=dry_run)

        if selection.is_empty():
            if select is None:
                raise RemovalError("Nothing selected: pass --all, --id or --kind")
            picked = list(select(existing))
            selection = Selection.of(ids=[entry.id for entry in picked])
            if selection.is_empty():
                self.logger.info("No badges selected; README left unchanged")
                return self._finish(workspace, original, original, dry_run=dry_run)

        removed = [entry for entry in existing if selection.matches(entry.id, entry.kind)]
        removed_ids = [entry.id for entry in removed]
        id_hits = sum(1 for entry in removed if entry.id in selection.ids)
        missing_ids = sorted(selection.ids - set(removed_ids))
        if strict and selection.ids and id_hits == 0:
            raise RemovalError(f"id_not_found: {', '.join(sorted(selection.ids))}")

        warnings = [
            warning("ID_NOT_FOUND", "badge id not found in readme_block", id=missing)
            for missing in missing_ids
        ]
        for missing in missing_ids:
            self.logger.warning("Badge id '%s' not found in %s", missing, workspace.display_path)

        updated = workspace.editor.apply(original, mode=MODE_REMOVE, selection=selection)
        outcome = self._finish(workspace, original, updated, dry_run=dry_run, warnings=warnings)
        outcome.removed_ids = removed_ids
        outcome.missing_ids = missing_ids
        outcome.removed_kinds = dict(Counter(entry.kind for entry in removed))
        return outcome

    def run_list(
        self,
        path: str | Path,
        *,
        allow_yy_calver: Optional[bool] = None,
        offline: bool = False,
    ) -> ListOutcome:
        """Describe the project, its README block and CI status."""
        workspace = self.prepare(path, allow_yy_calver=allow_yy_calver)
        warnings: List[Dict[str, Any]] = []
        readme_exists = workspace.readme_path.is_file()
        if readme_exists:
            document = self._read(workspace.readme_path)
        else:
            document = Document.from_text("")
            warnings.append(
                warning("README_NOT_FOUND", "README file does not exist", path=str(workspace.readme_path))
            )
        editor = workspace.editor
        entries = editor.entries(document)
        marker_count = editor.marker_count(document)
        if marker_count > 1:
            warnings.append(
                warning("DUPLICATE_MARKERS", "more than one begin marker; the first block is managed", count=marker_count)
            )

        facts = self.collect_facts(workspace, offline=offline)
        span = editor.locate(document)
        block_lines = list(document.lines[span.begin + 1 : span.end]) if span else []
        payload = {
            "schema": SCHEMA_LIST,
            "repo": workspace.context.git.to_dict() if workspace.context.git else None,
            "config": workspace.config.to_dict(),
            "readme": {
                "path": str(workspace.readme_path),
                "exists": readme_exists,
                "newline": document.newline_label,
                "trailing_newline": document.trailing_newline,
                "markers": {"present": span is not None, "count": marker_count},
            },
            "manifests": self._manifests_json(facts, workspace.policy),
            "registries": self._registries_json(facts, workspace, offline=offline),
            "ci": self._ci_json(workspace, offline=offline),
            "readme_block": {
                "raw": "".join(f"{line}\n" for line in block_lines),
                "badges": [entry.to_dict() for entry in entries],
            },
            "warnings": warnings,
        }
        return ListOutcome(readme_path=workspace.readme_path, entries=entries, payload=payload)

    # Helpers

    def _finish(
        self,
        workspace: Workspace,
        original: Document,
        updated: Document,
        *,
        dry_run: bool,
        warnings: Optional[List[Dict[str, Any]]] = None,
    ) -> EditOutcome:
        changed = compare(original, updated) == Verdict.CHANGED
        diff = unified_diff(workspace.display_path, original, updated) if changed else ""
        written = False
        if changed and not dry_run:
            write_atomic(workspace.readme_path, updated)
            written = True
            self.logger.info("README updated at %s", workspace.display_path)
        elif not changed:
            self.logger.info("README already up to date")
        return EditOutcome(
            path=workspace.readme_path,
            display_path=workspace.display_path,
            diff=diff,
            changed=changed,
            dry_run=dry_run,
            written=written,
            remaining=len(workspace.editor.entries(updated)),
            warnings=list(warnings or []),
        )

    @staticmethod
    def _read(path: Path) -> Document:
        if not path.is_file():
            raise FileNotFoundError(f"README not found at {path}")
        with open(path, "r", encoding="utf-8", newline="") as handle:
            return Document.from_text(handle.read())

    @staticmethod
    def _manifests_json(facts: Sequence[Fact], policy: VersionPolicy) -> Dict[str, Any]:
        keys = {FACT_NPM: "npm", FACT_CRATES: "crates", FACT_MOONBIT: "moonbit"}
        manifests: Dict[str, Any] = {}
        for fact in facts:
            key = keys.get(fact.name)
            if key is None or key in manifests:
                continue
            entry = dict(fact.metadata)
            entry.update(_version_fields(entry.get("version"), policy))
            manifests[key] = entry
        return manifests

    @staticmethod
    def _registries_json(
        facts: Sequence[Fact], workspace: Workspace, *, offline: bool
    ) -> Dict[str, Any]:
        keys = {
            FACT_REGISTRY_NPM: ("npm", "package"),
            FACT_REGISTRY_CRATES: ("crates", "crate"),
            FACT_REGISTRY_MOONBIT: ("moonbit", "module"),
        }
        registries: Dict[str, Any] = {}
        for fact in facts:
            if fact.name not in keys:
                continue
            key, field_name = keys[fact.name]
            entry: Dict[str, Any] = {field_name: fact.value, **fact.metadata}
            if entry.get("ok"):
                entry.update(_version_fields(entry.get("latest"), workspace.policy))
            registries[key] = entry

        if offline or not workspace.config.registry.enabled:
            reason = REASON_OFFLINE if offline else "disabled"
            manifest_keys = {FACT_NPM: ("npm", "package"), FACT_CRATES: ("crates", "crate")}
            for fact in facts:
                if fact.name in manifest_keys:
                    key, field_name = manifest_keys[fact.name]
                    registries.setdefault(key, {field_name: fact.value, "ok": False, "reason": reason})
        return registries

    def _ci_json(self, workspace: Workspace, *, offline: bool) -> Dict[str, Any]:
        git = workspace.context.git
        workflows = []
        for workflow in detect_workflows(workspace.context.root):
            image = link = ""
            if git is not None and git.owner and git.name:
                link = f"https://github.com/{git.owner}/{git.name}/actions/workflows/{workflow.file}"
                image = f"{link}/badge.svg"
            if offline:
                status = RunStatus(ok=False, reason=REASON_OFFLINE)
            else:
                status = self.actions.latest(workflow.file, cwd=workspace.context.root)
            workflows.append(
                {
                    "file": workflow.file,
                    "name": workflow.name,
                    "badge": {"kind": "github_actions", "image": image, "link": link},
                    "latest_status": status.to_dict(),
                }
            )
        return {"workflows_dir": WORKFLOWS_DIR, "workflows": workflows}


def write_atomic(path: Path, document: Document) -> None:
    """Write ``document`` to a sibling temp file, then replace ``path`` with it."""
    tmp_path = path.with_name(f"{path.stem}.bdg.tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as handle:
            handle.write(document.to_text())
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def _version_fields(version: Any, policy: VersionPolicy) -> Dict[str, Any]:
    if not isinstance(version, str) or not version:
        return {"version_format": None, "calver_scheme": None, "calver_parts": None, "semver_parts": None}
    classified = classify(version, policy).to_dict()
    classified.pop("raw", None)
    return classified


__all__ = [
    "EditOutcome",
    "ListOutcome",
    "Orchestrator",
    "RemovalError",
    "SCHEMA_DRYRUN",
    "SCHEMA_LIST",
    "Workspace",
    "write_atomic",
]
