"""Version string classification (CalVer vs SemVer vs unknown)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

CALVER = "calver"
SEMVER = "semver"
UNKNOWN = "unknown"

DEFAULT_YEAR_MIN = 2000
DEFAULT_YEAR_MAX = 2199


@dataclass(frozen=True)
class VersionPolicy:
    """Knobs controlling which CalVer shapes are accepted."""

    allow_yy_calver: bool = False
    year_min: int = DEFAULT_YEAR_MIN
    year_max: int = DEFAULT_YEAR_MAX

    def year_in_range(self, year: int) -> bool:
        # An inverted range (year_min > year_max) accepts nothing.
        return self.year_min <= year <= self.year_max


DEFAULT_POLICY = VersionPolicy()


@dataclass(frozen=True)
class CalVerParts:
    year: int
    month: int
    micro: Optional[int] = None
    day: Optional[int] = None


@dataclass(frozen=True)
class SemVerParts:
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    def render(self) -> str:
        """Render back to canonical ``MAJOR.MINOR.PATCH[-pre][+build]`` form."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


@dataclass(frozen=True)
class VersionClassification:
    """Result of classifying one raw version string."""

    format: str
    raw: str
    scheme: Optional[str] = None
    calver: Optional[CalVerParts] = None
    semver: Optional[SemVerParts] = None

    @property
    def is_calver(self) -> bool:
        return self.format == CALVER

    @property
    def is_semver(self) -> bool:
        return self.format == SEMVER

    @property
    def is_unknown(self) -> bool:
        return self.format == UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for JSON output."""
        calver_parts = None
        if self.calver is not None:
            calver_parts = {"year": self.calver.year, "month": self.calver.month}
            if self.calver.day is not None:
                calver_parts["day"] = self.calver.day
            if self.calver.micro is not None:
                calver_parts["micro"] = self.calver.micro
        semver_parts = None
        if self.semver is not None:
            semver_parts = {
                "major": self.semver.major,
                "minor": self.semver.minor,
                "patch": self.semver.patch,
                "pre": self.semver.prerelease,
                "build": self.semver.build,
            }
        return {
            "raw": self.raw,
            "version_format": self.format,
            "calver_scheme": self.scheme if self.is_calver else None,
            "calver_parts": calver_parts,
            "semver_parts": semver_parts,
        }


_NUM = r"(0|[1-9][0-9]*)"
_PRE_IDENT = r"(?:0|[1-9][0-9]*|[0-9]*[A-Za-z-][0-9A-Za-z-]*)"
_SEMVER_PATTERN = re.compile(
    rf"^{_NUM}\.{_NUM}\.{_NUM}"
    rf"(?:-({_PRE_IDENT}(?:\.{_PRE_IDENT})*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_YYYY_MM = re.compile(r"^([0-9]{4})\.([0-9]{1,2})$")
_YYYY_MM_MICRO = re.compile(r"^([0-9]{4})\.([0-9]{1,2})\.([0-9]+)$")
_YYYY_MM_DD = re.compile(r"^([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})$")
_YYYYMMDD = re.compile(r"^([0-9]{4})([0-9]{2})([0-9]{2})(?:\.([0-9]+))?$")
_YY_MM = re.compile(r"^([0-9]{2})\.([0-9]{1,2})$")
_YY_MM_MICRO = re.compile(r"^([0-9]{2})\.([0-9]{1,2})\.([0-9]+)$")


def classify(raw: str, policy: VersionPolicy = DEFAULT_POLICY) -> VersionClassification:
    """Classify ``raw`` as CalVer, SemVer or unknown.

    CalVer is always tried first, so a string that satisfies both grammars
    (``2024.01.5``, or ``24.1.5`` when two-digit years are allowed) is CalVer.
    The function never raises.
    """
    if not isinstance(raw, str):
        return VersionClassification(format=UNKNOWN, raw=str(raw))
    core = _strip_prefix(raw.strip())

    for matcher in _calver_matchers(policy):
        found = matcher(core, policy)
        if found is not None:
            scheme, parts = found
            return VersionClassification(format=CALVER, raw=raw, scheme=scheme, calver=parts)

    semver = _match_semver(core)
    if semver is not None:
        return VersionClassification(format=SEMVER, raw=raw, scheme="SEMVER", semver=semver)

    return VersionClassification(format=UNKNOWN, raw=raw)


def _strip_prefix(text: str) -> str:
    if text[:1] in {"v", "V"}:
        return text[1:]
    return text


_Matcher = Callable[[str, VersionPolicy], Optional[Tuple[str, CalVerParts]]]


def _calver_matchers(policy: VersionPolicy) -> List[_Matcher]:
    matchers: List[_Matcher] = [
        _match_yyyy_mm,
        _match_yyyy_mm_micro,
        _match_yyyy_mm_dd,
        _match_yyyymmdd,
    ]
    if policy.allow_yy_calver:
        matchers.extend([_match_yy_mm, _match_yy_mm_micro])
    return matchers


def _valid_month(month: int) -> bool:
    return 1 <= month <= 12


def _valid_day(day: int) -> bool:
    return 1 <= day <= 31


def _match_yyyy_mm(core: str, policy: VersionPolicy) -> Optional[Tuple[str, CalVerParts]]:
    match = _YYYY_MM.match(core)
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not policy.year_in_range(year) or not _valid_month(month):
        return None
    return "YYYY.MM", CalVerParts(year=year, month=month)


def _match_yyyy_mm_micro(core: str, policy: VersionPolicy) -> Optional[Tuple[str, CalVerParts]]:
    match = _YYYY_MM_MICRO.match(core)
    if not match:
        return None
    year, month, micro = (int(group) for group in match.groups())
    if not policy.year_in_range(year) or not _valid_month(month):
        return None
    return "YYYY.MM.MICRO", CalVerParts(year=year, month=month, micro=micro)


def _match_yyyy_mm_dd(core: str, policy: VersionPolicy) -> Optional[Tuple[str, CalVerParts]]:
    match = _YYYY_MM_DD.match(core)
    if not match:
        return None
    year, month, day = (int(group) for group in match.groups())
    if not policy.year_in_range(year) or not _valid_month(month) or not _valid_day(day):
        return None
    return "YYYY-MM-DD", CalVerParts(year=year, month=month, day=day)


def _match_yyyymmdd(core: str, policy: VersionPolicy) -> Optional[Tuple[str, CalVerParts]]:
    match = _YYYYMMDD.match(core)
    if not match:
        return None
    year, month, day = int(match.group(1)), int(match.group(2)), int(match.group(3))
    if not policy.year_in_range(year) or not _valid_month(month) or not _valid_day(day):
        return None
    micro_text = match.group(4)
    if micro_text is None:
        return "YYYYMMDD", CalVerParts(year=year, month=month, day=day)
    return "YYYYMMDD.MICRO", CalVerParts(year=year, month=month, day=day, micro=int(micro_text))


def _match_yy_mm(core: str, policy: VersionPolicy) -> Optional[Tuple[str, CalVerParts]]:
    match = _YY_MM.match(core)
    if not match:
        return None
    year, month = 2000 + int(match.group(1)), int(match.group(2))
    if not policy.year_in_range(year) or not _valid_month(month):
        return None
    return "YY.MM", CalVerParts(year=year, month=month)


def _match_yy_mm_micro(core: str, policy: VersionPolicy) -> Optional[Tuple[str, CalVerParts]]:
    match = _YY_MM_MICRO.match(core)
    if not match:
        return None
    year = 2000 + int(match.group(1))
    month, micro = int(match.group(2)), int(match.group(3))
    if not policy.year_in_range(year) or not _valid_month(month):
        return None
    return "YY.MM.MICRO", CalVerParts(year=year, month=month, micro=micro)


def _match_semver(core: str) -> Optional[SemVerParts]:
    match = _SEMVER_PATTERN.match(core)
    if not match:
        return None
    major, minor, patch, prerelease, build = match.groups()
    return SemVerParts(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=prerelease,
        build=build,
    )


__all__ = [
    "CALVER",
    "CalVerParts",
    "DEFAULT_POLICY",
    "SEMVER",
    "SemVerParts",
    "UNKNOWN",
    "VersionClassification",
    "VersionPolicy",
    "classify",
]
