"""Badge catalog tests."""

from __future__ import annotations

from typing import Any, Dict, List

from bdg import catalog
from bdg.models import Fact, Selection
from bdg.readme.document import Document
from bdg.readme.editor import BDG_BEGIN, BDG_END, MODE_REMOVE, BlockEditor
from bdg.readme.parser import parse_badge_line
from bdg.version import VersionPolicy


def _github() -> Fact:
    return Fact(name="repo.github", value="acme/widget", source="git", metadata={"owner": "acme", "repo": "widget"})


def _workflow(file: str, name: str | None = None) -> Fact:
    return Fact(name="ci.workflow", value=file, source=f".github/workflows/{file}", metadata={"file": file, "name": name or file})


def _manifest(kind: str, name: str, **metadata: Any) -> Fact:
    return Fact(name=f"manifest.{kind}", value=name, source="manifest", metadata=metadata)


def _registry(kind: str, name: str, **metadata: Any) -> Fact:
    payload: Dict[str, Any] = {"ok": True, **metadata}
    return Fact(name=f"registry.{kind}", value=name, source=kind, metadata=payload)


def _ids(descriptors: List[Any]) -> List[str]:
    return [item.id for item in descriptors]


def test_full_node_project_is_ordered_by_category_then_id() -> None:
    facts = [
        _manifest("npm", "@scope/pkg", version="1.0.0", license="MIT"),
        _registry("npm", "@scope/pkg", latest="1.1.0"),
        _workflow("release.yml", "Release"),
        _workflow("ci.yaml", "CI"),
        _github(),
    ]
    result = catalog.build(facts)
    assert _ids(result) == [
        "ci:ci.yaml",
        "ci:release.yml",
        "npm:@scope/pkg",
        "release:github",
        "license:MIT",
        "npm_downloads:@scope/pkg",
    ]
    ci = result[0]
    assert ci.markdown == (
        "[![CI](https://github.com/acme/widget/actions/workflows/ci.yaml/badge.svg)]"
        "(https://github.com/acme/widget/actions/workflows/ci.yaml)"
    )
    npm = result[2]
    assert npm.markdown == "[![npm](https://img.shields.io/npm/v/@scope/pkg.svg)](https://www.npmjs.com/package/@scope/pkg)"
    assert npm.label == "npm version (1.1.0, semver)"


def test_ci_badges_need_a_github_slug() -> None:
    result = catalog.build([_workflow("ci.yaml")])
    assert result == []


def test_downloads_only_when_registry_lookup_succeeded() -> None:
    facts = [
        _manifest("crates", "widget", version="1.0.0"),
        Fact(name="registry.crates", value="widget", source="crates.io", metadata={"ok": False, "reason": "network"}),
    ]
    assert _ids(catalog.build(facts)) == ["crates:widget"]


def test_static_version_badge_for_moonbit_projects() -> None:
    facts = [_manifest("moonbit", "acme/mod", version="2024.06.1", license="Apache-2.0")]
    result = catalog.build(facts)
    assert _ids(result) == ["moonbit:acme/mod", "version:static", "license:Apache-2.0"]
    version = result[1]
    assert version.markdown == "![version](https://img.shields.io/badge/version-2024.06.1-informational)"
    assert result[0].markdown == "![moonbit](https://img.shields.io/badge/moonbit-acme%2Fmod-informational)"


def test_unknown_version_has_no_static_badge() -> None:
    facts = [_manifest("moonbit", "acme/mod", version="nightly")]
    assert _ids(catalog.build(facts)) == ["moonbit:acme/mod"]


def test_policy_changes_label_classification() -> None:
    facts = [_manifest("npm", "pkg", version="24.10.1")]
    default = catalog.build(facts)
    assert default[0].label == "npm version (24.10.1, semver)"
    allowed = catalog.build(facts, VersionPolicy(allow_yy_calver=True))
    assert allowed[0].label == "npm version (24.10.1, calver)"


def test_license_falls_back_to_github() -> None:
    result = catalog.build([_github()])
    assert _ids(result) == ["release:github", "license:github"]


def test_filter_by_category_kind_and_alias() -> None:
    facts = [
        _manifest("npm", "pkg", version="1.0.0", license="MIT"),
        _registry("npm", "pkg", latest="1.0.0"),
        _workflow("ci.yaml"),
        _github(),
    ]
    assert _ids(catalog.build(facts, filter=["ci"])) == ["ci:ci.yaml"]
    assert _ids(catalog.build(facts, filter=["downloads"])) == ["npm_downloads:pkg"]
    assert _ids(catalog.build(facts, filter=["license", "npm"])) == ["npm:pkg", "license:MIT"]
    assert _ids(catalog.build(facts, filter=["version"])) == ["npm:pkg"]
    assert _ids(catalog.build(facts, filter=["release"])) == ["release:github"]
    assert _ids(catalog.build(facts, filter=["version", "release"])) == ["npm:pkg", "release:github"]
    assert catalog.unknown_filters(["ci", "bogus"]) == ["bogus"]


def test_recommended_selection() -> None:
    facts = [
        _manifest("npm", "pkg", version="1.0.0", license="MIT"),
        _registry("npm", "pkg", latest="1.0.0"),
        _workflow("a.yml"),
        _workflow("b.yml"),
        _github(),
    ]
    result = catalog.build(facts)
    assert _ids(catalog.recommended(result)) == ["ci:a.yml", "npm:pkg", "license:MIT"]


def test_dedupe_keeps_first() -> None:
    first = catalog.github_release_badge("a", "b")
    second = catalog.github_release_badge("c", "d")
    assert catalog.dedupe([first, second]) == [first]


def test_bracketed_workflow_name_keeps_badge_identity() -> None:
    badge = catalog.github_actions_badge("acme", "widget", "ci.yml", "Build [linux]")
    assert badge.markdown.startswith("[![Build linux](")
    parsed = parse_badge_line(badge.markdown)
    assert (parsed.id, parsed.kind) == ("ci:ci.yml", "github_actions")

    doc = Document.from_text(f"# Title\n{BDG_BEGIN}\n{badge.markdown}\n{BDG_END}\n")
    editor = BlockEditor()
    by_id = editor.apply(doc, mode=MODE_REMOVE, selection=Selection.of(ids=["ci:ci.yml"]))
    by_kind = editor.apply(doc, mode=MODE_REMOVE, selection=Selection.of(kinds=["github_actions"]))
    assert by_id.lines == ("# Title", BDG_BEGIN, BDG_END)
    assert by_kind.lines == ("# Title", BDG_BEGIN, BDG_END)
