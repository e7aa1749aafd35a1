"""Configuration loader tests."""

from __future__ import annotations

import pytest

from bdg.config import BdgConfig, ConfigError, InvalidVersionPolicy, find_config, load_config


def test_defaults_without_file(repo_builder) -> None:  # type: ignore[no-untyped-def]
    root = repo_builder.path()
    config = load_config(root, root)
    assert config == BdgConfig()
    policy = config.version.policy()
    assert policy.allow_yy_calver is False
    assert (policy.year_min, policy.year_max) == (2000, 2199)
    assert config.readme.skip_code_fences is True


def test_loads_nearest_file_up_to_git_root(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write(
        {
            ".bdg.toml": """
            [version]
            allow_yy_calver = true
            year_min = 2010

            [readme]
            path = "docs/README.md"
            skip_code_fences = false

            [registry]
            enabled = false
            timeout = 2.5
            """,
            "packages/app/.keep": "",
        }
    )
    root = repo_builder.path()
    config = load_config(root / "packages" / "app", root)

    assert config.path == root / ".bdg.toml"
    assert config.version.allow_yy_calver is True
    assert config.version.year_min == 2010
    assert config.readme.path == "docs/README.md"
    assert config.readme.skip_code_fences is False
    assert config.registry.enabled is False
    assert config.registry.timeout == 2.5
    assert config.to_dict()["registry"] == {"enabled": False, "timeout": 2.5}


def test_search_stops_at_git_root(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({".bdg.toml": "[version]\nallow_yy_calver = true\n", "inner/.keep": ""})
    inner = repo_builder.path() / "inner"
    assert find_config(inner, inner) is None


def test_cli_flag_overrides_file(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({".bdg.toml": "[version]\nallow_yy_calver = true\n"})
    root = repo_builder.path()
    config = load_config(root, root)
    assert config.version.policy(False).allow_yy_calver is False
    assert config.version.policy(None).allow_yy_calver is True


def test_inverted_year_range_is_rejected(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({".bdg.toml": "[version]\nyear_min = 2100\nyear_max = 2000\n"})
    root = repo_builder.path()
    with pytest.raises(InvalidVersionPolicy):
        load_config(root, root)


def test_invalid_toml_raises_config_error(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({".bdg.toml": "[version\n"})
    root = repo_builder.path()
    with pytest.raises(ConfigError):
        load_config(root, root)
