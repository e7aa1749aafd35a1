"""CLI entrypoints for bdg commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, List, Sequence, TextIO

from .config import ConfigError
from .logging import configure_logging
from .models import BadgeDescriptor
from .orchestrator import EditOutcome, ListOutcome, Orchestrator, RemovalError
from .readme.diff import EXIT_ERROR
from .readme.editor import BlockNotInsertable
from .readme.parser import ParsedBadge

_SUMMARY_LIMIT = 20


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_flag(parser: argparse.ArgumentParser, name: str, help_text: str) -> None:
    parser.add_argument(name, action="store_true", help=help_text)


def _split_csv(values: Sequence[str] | None) -> List[str]:
    items: List[str] = []
    for value in values or ():
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bdg",
        description="Manage the badge block of a project README.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-C",
        "--directory",
        default=".",
        help="Run as if bdg was started in this directory (defaults to current directory).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        metavar="PATH",
        help="Also write full debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Detect badges and add them to the README.")
    _add_verbose_option(add_parser, suppress_default=True)
    _add_flag(add_parser, "--yes", "Add every detected badge without prompting.")
    add_parser.add_argument(
        "--only",
        action="append",
        metavar="TYPES",
        help="Comma separated badge types or categories to consider (ci, version, license, downloads, ...).",
    )
    _add_flag(add_parser, "--allow-yy-calver", "Accept two-digit-year CalVer versions (YY.MM).")
    _add_flag(add_parser, "--dry-run", "Print the README diff instead of writing it.")
    _add_flag(add_parser, "--json", "Emit a machine readable bdg.dryrun/v1 payload.")
    _add_flag(add_parser, "--offline", "Skip registry and GitHub lookups.")
    add_parser.add_argument(
        "--heading",
        metavar="TEXT",
        help="Insert a new badge block under this heading instead of the first H1.",
    )

    list_parser = subparsers.add_parser("list", help="Show detected project metadata and current badges.")
    _add_verbose_option(list_parser, suppress_default=True)
    _add_flag(list_parser, "--json", "Emit a machine readable bdg.list/v1 payload.")
    _add_flag(list_parser, "--quiet", "Print only the badge lines of the managed block.")
    _add_flag(list_parser, "--allow-yy-calver", "Accept two-digit-year CalVer versions (YY.MM).")
    _add_flag(list_parser, "--offline", "Skip registry and GitHub lookups.")

    remove_parser = subparsers.add_parser("remove", help="Remove badges from the README block.")
    _add_verbose_option(remove_parser, suppress_default=True)
    _add_flag(remove_parser, "--all", "Remove every badge, keeping the block markers.")
    remove_parser.add_argument(
        "--id",
        dest="ids",
        action="append",
        default=[],
        metavar="ID",
        help="Badge id to remove (repeatable, e.g. npm:left-pad).",
    )
    remove_parser.add_argument(
        "--kind",
        dest="kinds",
        action="append",
        default=[],
        metavar="KIND",
        help="Badge kind to remove (repeatable, e.g. github_actions).",
    )
    _add_flag(remove_parser, "--strict", "Fail when none of the requested ids is present.")
    _add_flag(remove_parser, "--quiet", "Suppress the removal summary.")
    _add_flag(remove_parser, "--dry-run", "Print the README diff instead of writing it.")
    _add_flag(remove_parser, "--json", "Emit a machine readable bdg.dryrun/v1 payload.")

    return parser


def main(
    argv: list[str] | None = None,
    orchestrator: Orchestrator | None = None,
    *,
    interactive: bool | None = None,
) -> int:
    """CLI entrypoint for bdg commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    quiet = bool(getattr(args, "quiet", False)) or bool(getattr(args, "json", False))
    configure_logging(verbose=bool(args.verbose), quiet=quiet, log_file=args.log_file)

    orchestrator = orchestrator or Orchestrator()
    if interactive is None:
        interactive = sys.stdin.isatty()

    try:
        if args.command == "add":
            return _run_add(args, orchestrator, interactive=interactive)
        if args.command == "list":
            return _run_list(args, orchestrator)
        if args.command == "remove":
            return _run_remove(args, orchestrator, interactive=interactive)
        parser.exit(EXIT_ERROR, "Unknown command\n")  # pragma: no cover - argparse enforces choices
    except (BlockNotInsertable, RemovalError, ConfigError, FileNotFoundError) as exc:
        parser.exit(EXIT_ERROR, f"bdg {args.command} failed: {exc}\n")
    except RuntimeError as exc:
        parser.exit(EXIT_ERROR, f"bdg {args.command} failed: {exc}\nRun with --verbose for more details.\n")
    except Exception as exc:  # pragma: no cover - defensive guard
        parser.exit(EXIT_ERROR, f"bdg {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _run_add(args: argparse.Namespace, orchestrator: Orchestrator, *, interactive: bool) -> int:
    only = _split_csv(args.only)
    select: Callable[..., Sequence[BadgeDescriptor]] | None
    if args.yes:
        select = None
    elif interactive and not args.json:
        select = prompt_badges
    else:
        # Without a terminal to prompt on, fall back to the recommended set.
        select = _take_recommended

    outcome = orchestrator.run_add(
        args.directory,
        only=only or None,
        allow_yy_calver=True if args.allow_yy_calver else None,
        offline=args.offline,
        dry_run=args.dry_run,
        heading=args.heading,
        select=select,
    )
    _print_edit(outcome, as_json=args.json)
    return outcome.exit_code


def _run_list(args: argparse.Namespace, orchestrator: Orchestrator) -> int:
    outcome = orchestrator.run_list(
        args.directory,
        allow_yy_calver=True if args.allow_yy_calver else None,
        offline=args.offline,
    )
    if args.json:
        _print_json(outcome.payload)
    else:
        print(format_list(outcome, quiet=args.quiet), end="")
    return 0


def _run_remove(args: argparse.Namespace, orchestrator: Orchestrator, *, interactive: bool) -> int:
    select = prompt_entries if interactive and not args.json else None
    outcome = orchestrator.run_remove(
        args.directory,
        all=args.all,
        ids=args.ids,
        kinds=args.kinds,
        strict=args.strict,
        dry_run=args.dry_run,
        select=select,
    )
    if outcome.removed_ids is not None and not args.json and not args.quiet:
        print(format_removal_summary(outcome), end="")
    _print_edit(outcome, as_json=args.json)
    return outcome.exit_code


def _print_edit(outcome: EditOutcome, *, as_json: bool) -> None:
    if as_json:
        _print_json(outcome.to_dryrun_json())
        return
    if outcome.dry_run:
        if outcome.diff:
            print(outcome.diff, end="")
        else:
            print("README already up to date (dry-run)")
    elif outcome.written:
        print(f"README updated at {outcome.display_path}")
    else:
        print("README already up to date")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def format_list(outcome: ListOutcome, *, quiet: bool = False) -> str:
    """Human readable rendering of a list run."""
    lines: List[str] = []
    if not quiet:
        readme = outcome.payload["readme"]
        trailing = "yes" if readme["trailing_newline"] else "no"
        lines.append(f"README: {readme['path']} ({readme['newline']}, trailing newline: {trailing})")
        lines.append(f"Marker block: {'present' if readme['markers']['present'] else 'missing'}")
        lines.append(f"Badges: {len(outcome.entries)}")
        for workflow in outcome.payload["ci"]["workflows"]:
            status = workflow["latest_status"]
            detail = status["conclusion"] if status["ok"] else status["reason"]
            if detail:
                lines.append(f"- CI {workflow['file']} last: {detail}")
    lines.extend(entry.raw for entry in outcome.entries)
    return "".join(f"{line}\n" for line in lines)


def format_removal_summary(outcome: EditOutcome) -> str:
    removed_ids = outcome.removed_ids or []
    lines = [f"Removed {len(removed_ids)} badges from {outcome.display_path}"]
    if removed_ids:
        lines.append(f"- ids: {_summarize(removed_ids, _SUMMARY_LIMIT)}")
    if outcome.removed_kinds:
        pairs = sorted(f"{kind}={count}" for kind, count in outcome.removed_kinds.items())
        lines.append(f"- kinds: {', '.join(pairs)}")
    lines.append(f"Remaining: {outcome.remaining}")
    return "".join(f"{line}\n" for line in lines)


def _summarize(items: Sequence[str], limit: int) -> str:
    if len(items) <= limit:
        return ", ".join(items)
    return f"{', '.join(items[:limit])} …+{len(items) - limit}"


def _take_recommended(
    candidates: Sequence[BadgeDescriptor], recommended: Sequence[BadgeDescriptor]
) -> Sequence[BadgeDescriptor]:
    return recommended


def parse_choice(answer: str, count: int, default: Sequence[int]) -> List[int]:
    """Parse a numbered-menu answer such as ``1,3-4``, ``all`` or ``none``."""
    text = answer.strip().lower()
    if not text:
        return list(default)
    if text in {"a", "all"}:
        return list(range(count))
    if text in {"n", "none", "q"}:
        return []
    chosen: List[int] = []
    for part in text.replace(" ", ",").split(","):
        if not part:
            continue
        if "-" in part:
            start_text, end_text = part.split("-", 1)
            start, end = int(start_text), int(end_text)
            numbers = range(start, end + 1)
        else:
            numbers = range(int(part), int(part) + 1)
        for number in numbers:
            if not 1 <= number <= count:
                raise ValueError(f"choice {number} is out of range 1-{count}")
            if number - 1 not in chosen:
                chosen.append(number - 1)
    return sorted(chosen)


def _prompt(
    title: str,
    items: Sequence[str],
    default: Sequence[int],
    *,
    input_fn: Callable[[str], str] | None = None,
    stream: TextIO | None = None,
) -> List[int]:
    out = stream or sys.stderr
    read = input_fn or input
    out.write(f"{title}\n")
    for index, item in enumerate(items, start=1):
        marker = "*" if index - 1 in default else " "
        out.write(f" {marker} {index}. {item}\n")
    out.flush()
    while True:
        answer = read("Numbers (e.g. 1,3-4), 'all', 'none', or Enter for the starred set: ")
        try:
            return parse_choice(answer, len(items), default)
        except ValueError as exc:
            out.write(f"Invalid selection: {exc}\n")


def prompt_badges(
    candidates: Sequence[BadgeDescriptor],
    recommended: Sequence[BadgeDescriptor],
    *,
    input_fn: Callable[[str], str] | None = None,
    stream: TextIO | None = None,
) -> List[BadgeDescriptor]:
    if not candidates:
        return []
    preselected = [index for index, item in enumerate(candidates) if item in recommended]
    items = [f"{item.label or item.kind} [{item.id}]" for item in candidates]
    picked = _prompt("Select badges to add:", items, preselected, input_fn=input_fn, stream=stream)
    return [candidates[index] for index in picked]


def prompt_entries(
    entries: Sequence[ParsedBadge],
    *,
    input_fn: Callable[[str], str] | None = None,
    stream: TextIO | None = None,
) -> List[ParsedBadge]:
    items = [f"{entry.kind} [{entry.id}] {entry.label}".rstrip() for entry in entries]
    picked = _prompt("Select badges to remove:", items, [], input_fn=input_fn, stream=stream)
    return [entries[index] for index in picked]


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
