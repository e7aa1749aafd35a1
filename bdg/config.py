"""Configuration loading for bdg (.bdg.toml)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .version import DEFAULT_YEAR_MAX, DEFAULT_YEAR_MIN, VersionPolicy

CONFIG_FILENAME = ".bdg.toml"
DEFAULT_REGISTRY_TIMEOUT = 10.0


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


class InvalidVersionPolicy(ConfigError):
    """Raised when ``[version]`` describes an empty year range."""


@dataclass
class VersionConfig:
    """CalVer acceptance settings."""

    allow_yy_calver: bool = False
    year_min: int = DEFAULT_YEAR_MIN
    year_max: int = DEFAULT_YEAR_MAX

    def policy(self, allow_yy_calver: Optional[bool] = None) -> VersionPolicy:
        """Build the classifier policy; an explicit flag overrides the file."""
        allow = self.allow_yy_calver if allow_yy_calver is None else allow_yy_calver
        return VersionPolicy(
            allow_yy_calver=allow,
            year_min=self.year_min,
            year_max=self.year_max,
        )


@dataclass
class ReadmeConfig:
    """README location and scanning options."""

    path: Optional[str] = None
    skip_code_fences: bool = True


@dataclass
class RegistryConfig:
    """Package registry lookups."""

    enabled: bool = True
    timeout: float = DEFAULT_REGISTRY_TIMEOUT


@dataclass
class BdgConfig:
    """Represents the settings defined in .bdg.toml."""

    path: Optional[Path] = None
    version: VersionConfig = field(default_factory=VersionConfig)
    readme: ReadmeConfig = field(default_factory=ReadmeConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path) if self.path else None,
            "version": {
                "allow_yy_calver": self.version.allow_yy_calver,
                "year_min": self.version.year_min,
                "year_max": self.version.year_max,
            },
            "readme": {
                "path": self.readme.path,
                "skip_code_fences": self.readme.skip_code_fences,
            },
            "registry": {
                "enabled": self.registry.enabled,
                "timeout": self.registry.timeout,
            },
        }


def find_config(current_dir: Path, git_root: Path) -> Optional[Path]:
    """Return the nearest .bdg.toml between ``current_dir`` and ``git_root``."""
    directory = current_dir.resolve()
    stop = git_root.resolve()
    while True:
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if directory == stop or directory.parent == directory:
            return None
        directory = directory.parent


def load_config(current_dir: Path, git_root: Path) -> BdgConfig:
    """Load configuration, falling back to defaults when no file exists."""
    config_file = find_config(current_dir, git_root)
    if config_file is None:
        return BdgConfig()
    return read_config(config_file)


def read_config(path: Path) -> BdgConfig:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    version_data = _as_dict(data.get("version"))
    version = VersionConfig(
        allow_yy_calver=_as_bool(version_data.get("allow_yy_calver")) or False,
        year_min=_or_default(_as_int(version_data.get("year_min")), DEFAULT_YEAR_MIN),
        year_max=_or_default(_as_int(version_data.get("year_max")), DEFAULT_YEAR_MAX),
    )
    if version.year_min > version.year_max:
        raise InvalidVersionPolicy(
            f"{path.name}: version.year_min ({version.year_min}) is greater than "
            f"version.year_max ({version.year_max})"
        )

    readme_data = _as_dict(data.get("readme"))
    skip_fences = _as_bool(readme_data.get("skip_code_fences"))
    readme = ReadmeConfig(
        path=_as_str(readme_data.get("path")) or None,
        skip_code_fences=True if skip_fences is None else skip_fences,
    )

    registry_data = _as_dict(data.get("registry"))
    enabled = _as_bool(registry_data.get("enabled"))
    timeout = _as_float(registry_data.get("timeout"))
    registry = RegistryConfig(
        enabled=True if enabled is None else enabled,
        timeout=timeout if timeout and timeout > 0 else DEFAULT_REGISTRY_TIMEOUT,
    )

    return BdgConfig(path=path, version=version, readme=readme, registry=registry)


def _or_default(value: Optional[int], default: int) -> int:
    return default if value is None else value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "BdgConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "InvalidVersionPolicy",
    "ReadmeConfig",
    "RegistryConfig",
    "VersionConfig",
    "find_config",
    "load_config",
    "read_config",
]
