"""Recognise badge markdown lines and infer their identity and kind."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, unquote

from ..models import (
    KIND_COVERAGE,
    KIND_CRATES,
    KIND_CRATES_DOWNLOADS,
    KIND_DOCS,
    KIND_GITHUB_ACTIONS,
    KIND_GITHUB_RELEASE,
    KIND_LICENSE,
    KIND_MOONBIT,
    KIND_NPM,
    KIND_NPM_DOWNLOADS,
    KIND_UNKNOWN,
    KIND_VERSION,
)

_LINKED_IMAGE = re.compile(
    r"^\[!\[(?P<label>[^\]]*)\]\((?P<image>[^()\s]*)\)\]\((?P<link>[^()\s]*)\)$"
)
_IMAGE = re.compile(r"^!\[(?P<label>[^\]]*)\]\((?P<image>[^()\s]*)\)$")
_LONE_DASH = re.compile(r"(?<!-)-(?!-)")
_SHIELDS_ESCAPE = re.compile(r"--|__|_")

_SHIELDS = "img.shields.io/"


@dataclass
class ParsedBadge:
    """Structured view of one line found inside a managed block."""

    id: str
    kind: str
    label: str
    image: str
    link: Optional[str]
    raw: str
    source: str = "readme"
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "label": self.label,
            "image": self.image,
            "link": self.link,
            "source": self.source,
            "meta": self.meta or None,
            "raw": self.raw,
        }


def parse_badge_line(line: str) -> ParsedBadge:
    """Parse ``line``; anything that is not a badge becomes an ``unknown`` entry."""
    parsed = parse_badge_line_optional(line)
    if parsed is not None:
        return parsed
    return ParsedBadge(
        id=unknown_id(line),
        kind=KIND_UNKNOWN,
        label="",
        image="",
        link=None,
        raw=line,
    )


def parse_badge_line_optional(line: str) -> Optional[ParsedBadge]:
    """Parse ``line`` if it is markdown image syntax, else return None."""
    stripped = line.strip()
    match = _LINKED_IMAGE.match(stripped) or _IMAGE.match(stripped)
    if not match or not match.group("image"):
        return None
    groups = match.groupdict()
    image = groups["image"].strip()
    link = groups.get("link")
    kind, badge_id, meta = _infer_kind(image, line)
    return ParsedBadge(
        id=badge_id,
        kind=kind,
        label=groups["label"],
        image=image,
        link=link.strip() if link else None,
        raw=line,
        meta=meta,
    )


def unknown_id(line: str) -> str:
    """Stable identifier for lines that carry no recognisable badge."""
    digest = hashlib.sha1(line.encode("utf-8")).hexdigest()[:16]
    return f"unknown:{digest}"


def shields_escape(text: str) -> str:
    """Escape a label or message for a static ``img.shields.io/badge`` path."""
    escaped = text.replace("-", "--").replace("_", "__").replace(" ", "_")
    return quote(escaped, safe="")


def shields_unescape(text: str) -> str:
    replacements = {"--": "-", "__": "_", "_": " "}
    return unquote(_SHIELDS_ESCAPE.sub(lambda match: replacements[match.group(0)], text))


def _infer_kind(image: str, raw: str) -> Tuple[str, str, Dict[str, Any]]:
    if not image.startswith(("http://", "https://")):
        return KIND_UNKNOWN, unknown_id(raw), {}

    if "/actions/workflows/" in image and "/badge.svg" in image:
        workflow_file = image.split("/actions/workflows/", 1)[1].split("/", 1)[0]
        if workflow_file:
            return (
                KIND_GITHUB_ACTIONS,
                f"ci:{workflow_file}",
                {"workflow_file": workflow_file},
            )
        return KIND_GITHUB_ACTIONS, unknown_id(raw), {}

    package = _after_prefix(image, _SHIELDS + "npm/v/")
    if package:
        return KIND_NPM, f"npm:{package}", {"package": package}

    for prefix in ("npm/dw/", "npm/dm/", "npm/dy/", "npm/dt/"):
        package = _after_prefix(image, _SHIELDS + prefix)
        if package:
            return KIND_NPM_DOWNLOADS, f"npm_downloads:{package}", {"package": package}

    crate = _after_prefix(image, _SHIELDS + "crates/v/")
    if crate:
        return KIND_CRATES, f"crates:{crate}", {"crate": crate}

    for prefix in ("crates/d/", "crates/dr/"):
        crate = _after_prefix(image, _SHIELDS + prefix)
        if crate:
            return KIND_CRATES_DOWNLOADS, f"crates_downloads:{crate}", {"crate": crate}

    if _SHIELDS + "github/license/" in image:
        return KIND_LICENSE, "license:github", {}

    if _SHIELDS + "github/v/release/" in image:
        return KIND_GITHUB_RELEASE, "release:github", {}

    codecov = _codecov_repo(image)
    if codecov is not None:
        owner, repo = codecov
        return KIND_COVERAGE, "coverage:codecov", {"owner": owner, "repo": repo}

    custom = _custom_badge(image)
    if custom is not None:
        label, message = custom
        lowered = label.lower()
        meta = {"label": label, "message": message}
        if lowered == "docs":
            return KIND_DOCS, "docs:custom", meta
        if lowered == "license" and message:
            return KIND_LICENSE, f"license:{message}", meta
        if lowered == "version":
            return KIND_VERSION, "version:static", meta
        if lowered == "moonbit" and message:
            return KIND_MOONBIT, f"moonbit:{message}", meta

    return KIND_UNKNOWN, unknown_id(raw), {}


def _path_after(image: str, prefix: str) -> Optional[str]:
    position = image.find(prefix)
    if position == -1:
        return None
    return image[position + len(prefix):].split("?", 1)[0]


def _after_prefix(image: str, prefix: str) -> Optional[str]:
    remainder = _path_after(image, prefix)
    if remainder is None:
        return None
    trimmed = remainder[: -len(".svg")] if remainder.endswith(".svg") else remainder
    return trimmed or None


def _codecov_repo(image: str) -> Optional[Tuple[str, str]]:
    remainder = _path_after(image, _SHIELDS + "codecov/c/github/")
    if remainder is None:
        return None
    parts = remainder.split("/")
    if len(parts) < 2:
        return None
    owner = parts[0]
    repo = parts[1][: -len(".svg")] if parts[1].endswith(".svg") else parts[1]
    if not owner or not repo:
        return None
    return owner, repo


def _custom_badge(image: str) -> Optional[Tuple[str, str]]:
    remainder = _path_after(image, _SHIELDS + "badge/")
    if not remainder:
        return None
    if remainder.endswith(".svg"):
        remainder = remainder[: -len(".svg")]
    parts: List[str] = _LONE_DASH.split(remainder)
    label = shields_unescape(parts[0])
    if not label or len(parts) < 2:
        return None
    # label-message-color; the trailing segment is always the color.
    message = shields_unescape("-".join(parts[1:-1])) if len(parts) >= 3 else ""
    return label, message


__all__ = [
    "ParsedBadge",
    "parse_badge_line",
    "parse_badge_line_optional",
    "shields_escape",
    "shields_unescape",
    "unknown_id",
]
