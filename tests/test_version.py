"""Version classification tests."""

from __future__ import annotations

import pytest

from bdg.version import CALVER, SEMVER, UNKNOWN, VersionPolicy, classify


@pytest.mark.parametrize(
    ("raw", "scheme"),
    [
        ("2024.01", "YYYY.MM"),
        ("2024.1.5", "YYYY.MM.MICRO"),
        ("2024-01-31", "YYYY-MM-DD"),
        ("20240131", "YYYYMMDD"),
        ("20240131.2", "YYYYMMDD.MICRO"),
        ("v2024.10", "YYYY.MM"),
    ],
)
def test_calver_schemes(raw: str, scheme: str) -> None:
    result = classify(raw)
    assert result.format == CALVER
    assert result.scheme == scheme
    assert result.raw == raw


def test_calver_wins_over_semver_for_ambiguous_strings() -> None:
    result = classify("2024.01.5")
    assert result.is_calver
    assert result.calver is not None
    assert (result.calver.year, result.calver.month, result.calver.micro) == (2024, 1, 5)


def test_semver_with_prerelease_and_build() -> None:
    result = classify("1.2.3-rc.1+build.5")
    assert result.format == SEMVER
    assert result.semver is not None
    assert result.semver.prerelease == "rc.1"
    assert result.semver.build == "build.5"
    assert result.semver.render() == "1.2.3-rc.1+build.5"


@pytest.mark.parametrize(
    "raw",
    ["0.0.0", "1.2.3", "v3.1.4", "10.20.30-alpha.1", "1.0.0+exp.sha.5114f85", "2.0.0-rc.1+build.7", "1.0.0-0.3.7"],
)
def test_semver_render_reclassifies_to_same_parts(raw: str) -> None:
    first = classify(raw)
    assert first.semver is not None
    again = classify(first.semver.render())
    assert again.is_semver
    assert again.semver == first.semver


def test_leading_v_is_accepted_for_semver() -> None:
    result = classify("v0.3.0")
    assert result.is_semver
    assert result.raw == "v0.3.0"


@pytest.mark.parametrize("raw", ["", "latest", "1.2", "01.2.3", "2024.13", "2024-02-32", "1.2.3-"])
def test_unknown_versions(raw: str) -> None:
    assert classify(raw).format == UNKNOWN


def test_two_digit_year_requires_opt_in() -> None:
    assert classify("24.10").is_unknown
    allowed = classify("24.10", VersionPolicy(allow_yy_calver=True))
    assert allowed.is_calver
    assert allowed.scheme == "YY.MM"
    assert allowed.calver is not None and allowed.calver.year == 2024


def test_two_digit_year_with_micro_beats_semver_when_allowed() -> None:
    assert classify("24.1.5").is_semver
    result = classify("24.1.5", VersionPolicy(allow_yy_calver=True))
    assert result.is_calver
    assert result.scheme == "YY.MM.MICRO"


def test_year_range_is_enforced() -> None:
    policy = VersionPolicy(year_min=2010, year_max=2030)
    assert classify("2031.01", policy).is_unknown
    assert classify("2009.1.1", policy).is_semver
    assert classify("2020.05", policy).is_calver


def test_inverted_year_range_accepts_no_calver() -> None:
    policy = VersionPolicy(year_min=2100, year_max=2000)
    assert classify("2024.01").is_calver
    assert classify("2024.01", policy).is_unknown


def test_to_dict_shapes() -> None:
    calver = classify("2024-03-09").to_dict()
    assert calver == {
        "raw": "2024-03-09",
        "version_format": "calver",
        "calver_scheme": "YYYY-MM-DD",
        "calver_parts": {"year": 2024, "month": 3, "day": 9},
        "semver_parts": None,
    }
    semver = classify("1.0.0").to_dict()
    assert semver["calver_scheme"] is None
    assert semver["semver_parts"] == {"major": 1, "minor": 0, "patch": 0, "pre": None, "build": None}


def test_non_string_input_is_unknown() -> None:
    assert classify(None).is_unknown  # type: ignore[arg-type]
