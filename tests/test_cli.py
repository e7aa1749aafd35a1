"""CLI parser and command behaviour tests."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from bdg.analyzers.registry import RegistryClient
from bdg.cli import _build_parser, main, parse_choice, prompt_badges
from bdg.models import BadgeDescriptor
from bdg.orchestrator import Orchestrator
from bdg.readme.diff import EXIT_ERROR
from bdg.readme.editor import BDG_BEGIN, BDG_END
from tests._fixtures.repo_builder import stub_actions, stub_inspector

LICENSE_LINE = "![license](https://img.shields.io/badge/license-MIT-blue)"


def _orchestrator(root: Path) -> Orchestrator:
    def unreachable(request, timeout):  # type: ignore[no-untyped-def]
        raise OSError("no network in tests")

    return Orchestrator(
        inspector=stub_inspector(root),
        actions=stub_actions(available=False),
        registry_client=RegistryClient(opener=unreachable),
    )


def _project(repo_builder) -> Path:  # type: ignore[no-untyped-def]
    repo_builder.package_json(name="left-pad", version="1.3.0", license="MIT")
    repo_builder.write({"README.md": "# Left pad\n\nPads strings.\n"})
    return repo_builder.path()


def test_cli_accepts_verbose_before_and_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["--verbose", "list"]).verbose is True
    assert parser.parse_args(["list", "--verbose"]).verbose is True
    assert parser.parse_args(["list"]).verbose is False


def test_cli_parses_repeatable_remove_options() -> None:
    args = _build_parser().parse_args(["-C", "pkg", "remove", "--id", "a", "--id", "b", "--kind", "npm"])
    assert args.directory == "pkg"
    assert args.ids == ["a", "b"]
    assert args.kinds == ["npm"]


def test_add_dry_run_prints_diff_and_exits_2(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    root = _project(repo_builder)
    code = main(["-C", str(root), "add", "--yes", "--offline", "--dry-run"], _orchestrator(root), interactive=False)
    captured = capsys.readouterr()
    assert code == 2
    assert captured.out.startswith("--- a/README.md\n+++ b/README.md\n")
    assert f"+{BDG_BEGIN}\n" in captured.out
    assert repo_builder.read() == "# Left pad\n\nPads strings.\n"


def test_add_json_payload(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    root = _project(repo_builder)
    code = main(
        ["-C", str(root), "add", "--yes", "--offline", "--dry-run", "--json", "--only", "license"],
        _orchestrator(root),
        interactive=False,
    )
    payload = json.loads(capsys.readouterr().out)
    assert code == 2
    assert payload["schema"] == "bdg.dryrun/v1"
    assert payload["changed"] is True
    assert f"+{LICENSE_LINE}\n" in payload["diff"]


def test_add_without_tty_uses_recommended_set(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    root = _project(repo_builder)
    code = main(["-C", str(root), "add", "--offline"], _orchestrator(root), interactive=False)
    assert code == 0
    assert "README updated at README.md" in capsys.readouterr().out
    text = repo_builder.read()
    assert LICENSE_LINE in text
    assert "github/v/release" not in text


def test_add_interactive_prompt(repo_builder, capsys, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    root = _project(repo_builder)
    monkeypatch.setattr("builtins.input", lambda prompt: "none")
    code = main(["-C", str(root), "add", "--offline"], _orchestrator(root), interactive=True)
    captured = capsys.readouterr()
    assert code == 0
    assert "Select badges to add:" in captured.err
    assert "README already up to date" in captured.out


def test_list_quiet_prints_block_lines(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({"README.md": f"# T\n{BDG_BEGIN}\n{LICENSE_LINE}\n{BDG_END}\n"})
    root = repo_builder.path()
    code = main(["-C", str(root), "list", "--quiet", "--offline"], _orchestrator(root), interactive=False)
    assert code == 0
    assert capsys.readouterr().out == f"{LICENSE_LINE}\n"


def test_list_human_and_json(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    root = _project(repo_builder)
    main(["-C", str(root), "list", "--offline"], _orchestrator(root), interactive=False)
    human = capsys.readouterr().out
    assert "README: " in human
    assert "Marker block: missing" in human
    assert "Badges: 0" in human

    main(["-C", str(root), "list", "--json", "--offline"], _orchestrator(root), interactive=False)
    payload = json.loads(capsys.readouterr().out)
    assert payload["schema"] == "bdg.list/v1"
    assert payload["manifests"]["npm"]["version_format"] == "semver"


def test_remove_prints_summary(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({"README.md": f"# T\n{BDG_BEGIN}\n{LICENSE_LINE}\n{BDG_END}\n"})
    root = repo_builder.path()
    code = main(["-C", str(root), "remove", "--kind", "license"], _orchestrator(root), interactive=False)
    out = capsys.readouterr().out
    assert code == 0
    assert "Removed 1 badges from README.md" in out
    assert "- ids: license:MIT" in out
    assert "- kinds: license=1" in out
    assert "Remaining: 0" in out


def test_remove_strict_failure_exits_1(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({"README.md": f"# T\n{BDG_BEGIN}\n{LICENSE_LINE}\n{BDG_END}\n"})
    root = repo_builder.path()
    with pytest.raises(SystemExit) as excinfo:
        main(["-C", str(root), "remove", "--id", "npm:nope", "--strict"], _orchestrator(root), interactive=False)
    assert excinfo.value.code == EXIT_ERROR == 1
    assert "id_not_found" in capsys.readouterr().err


def test_missing_h1_exits_1(repo_builder, capsys) -> None:  # type: ignore[no-untyped-def]
    repo_builder.package_json(name="left-pad", license="MIT")
    repo_builder.write({"README.md": "no heading\n"})
    root = repo_builder.path()
    with pytest.raises(SystemExit) as excinfo:
        main(["-C", str(root), "add", "--yes", "--offline"], _orchestrator(root), interactive=False)
    assert excinfo.value.code == EXIT_ERROR == 1
    assert "bdg add failed" in capsys.readouterr().err


def test_parse_choice() -> None:
    assert parse_choice("", 4, [0, 2]) == [0, 2]
    assert parse_choice("all", 3, []) == [0, 1, 2]
    assert parse_choice("none", 3, [1]) == []
    assert parse_choice("3, 1-2", 4, []) == [0, 1, 2]
    with pytest.raises(ValueError):
        parse_choice("5", 4, [])


def test_prompt_badges_retries_invalid_answers() -> None:
    items = [BadgeDescriptor(id=f"x:{index}", kind="docs", markdown=f"![x](https://x/{index})") for index in range(3)]
    answers = iter(["9", "2"])
    stream = io.StringIO()
    picked = prompt_badges(items, items[:1], input_fn=lambda prompt: next(answers), stream=stream)
    assert picked == [items[1]]
    assert "Invalid selection" in stream.getvalue()
    assert " * 1. docs [x:0]" in stream.getvalue()


def test_log_file_receives_debug_records(repo_builder, tmp_path) -> None:  # type: ignore[no-untyped-def]
    root = _project(repo_builder)
    log_file = tmp_path / "bdg.log"
    main(["-C", str(root), "--log-file", str(log_file), "list", "--json", "--offline"], _orchestrator(root), interactive=False)
    text = log_file.read_text(encoding="utf-8")
    assert "DEBUG bdg.project" in text
    assert "Project root" in text
