from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from assetbundler.config import build_config
from assetbundler.errors import ConfigurationError
from assetbundler.resolver import (
    ResolveOverrides,
    resolve_bundle,
    resolve_bundles,
    select_bundle_names,
)


def _config(tmp_path: Path, global_data: dict[str, Any] | None = None, **bundles: dict[str, Any]):
    for data in bundles.values():
        (tmp_path / data["asset_directory"]).mkdir(parents=True, exist_ok=True)
    return build_config({"global": global_data or {}, "bundles": bundles}, base_dir=tmp_path)


class TestOverrideRule:
    def test_bundle_value_wins_over_global(self, tmp_path) -> None:
        config = _config(
            tmp_path,
            {"link_method": "hardlink", "targets": ["windows", "mac"]},
            demo={"asset_directory": "a", "link_method": "symlink", "targets": ["linux"]},
        )
        spec = resolve_bundle(config, "demo")
        assert spec.link_method == "symlink"
        assert spec.targets == ("linux",)

    def test_global_value_used_when_bundle_unset(self, tmp_path) -> None:
        config = _config(tmp_path, {"link_method": "hardlink"}, demo={"asset_directory": "a"})
        assert resolve_bundle(config, "demo").link_method == "hardlink"

    def test_builtin_defaults(self, tmp_path) -> None:
        config = _config(tmp_path, None, demo={"asset_directory": "a"})
        spec = resolve_bundle(config, "demo")
        assert spec.link_method == "copy"
        assert spec.targetless is True
        assert spec.build_targets == [None]
        assert spec.output_directory == tmp_path / "Output"

    def test_command_line_overrides_win(self, tmp_path) -> None:
        config = _config(
            tmp_path,
            {"targets": ["windows", "mac"]},
            demo={"asset_directory": "a", "targets": ["windows", "mac"]},
        )
        spec = resolve_bundle(config, "demo", ResolveOverrides(targets=("linux",), targetless=False))
        assert spec.targets == ("linux",)
        assert spec.build_targets == ["linux"]

    def test_bundle_patterns_replace_global_patterns(self, tmp_path) -> None:
        config = _config(
            tmp_path,
            {"include_patterns": ["*.png"], "exclude_patterns": ["*.tmp"]},
            own={"asset_directory": "a", "include_patterns": ["*.wav"]},
            inherit={"asset_directory": "b"},
        )
        own = resolve_bundle(config, "own")
        inherit = resolve_bundle(config, "inherit")

        assert own.include_patterns == ("*.wav",)
        assert own.exclude_patterns == ("*.tmp",)
        assert inherit.include_patterns == ("*.png",)

    def test_explicit_empty_bundle_list_clears_global(self, tmp_path) -> None:
        config = _config(
            tmp_path,
            {"exclude_patterns": ["*.tmp"]},
            demo={"asset_directory": "a", "exclude_patterns": []},
        )
        assert resolve_bundle(config, "demo").exclude_patterns == ()


class TestTargetless:
    def test_targetless_bundle_ignores_target_list(self, tmp_path) -> None:
        config = _config(
            tmp_path,
            {"targets": ["windows", "mac", "linux"]},
            demo={"asset_directory": "a", "targetless": True},
        )
        spec = resolve_bundle(config, "demo")
        assert spec.build_targets == [None]

    def test_targets_imply_per_target_builds(self, tmp_path) -> None:
        config = _config(tmp_path, {"targets": ["windows", "mac"]}, demo={"asset_directory": "a"})
        assert resolve_bundle(config, "demo").build_targets == ["windows", "mac"]

    def test_not_targetless_without_targets_is_rejected(self, tmp_path) -> None:
        config = _config(tmp_path, None, demo={"asset_directory": "a", "targetless": False})
        with pytest.raises(ConfigurationError, match="declares no targets"):
            resolve_bundle(config, "demo")


class TestResolveErrors:
    def test_unknown_bundle(self, tmp_path) -> None:
        config = _config(tmp_path, None, demo={"asset_directory": "a"})
        with pytest.raises(ConfigurationError, match="not defined"):
            resolve_bundle(config, "missing")

    def test_unknown_target(self, tmp_path) -> None:
        config = _config(tmp_path, None, demo={"asset_directory": "a", "targets": ["playstation"]})
        with pytest.raises(ConfigurationError, match="unknown target 'playstation'"):
            resolve_bundle(config, "demo")

    def test_missing_asset_directory(self, tmp_path) -> None:
        config = build_config({"bundles": {"demo": {"asset_directory": "nowhere"}}}, base_dir=tmp_path)
        with pytest.raises(ConfigurationError, match="does not exist"):
            resolve_bundle(config, "demo")

    def test_resolve_bundles_isolates_failures(self, tmp_path) -> None:
        config = _config(
            tmp_path,
            None,
            first={"asset_directory": "a"},
            broken={"asset_directory": "b", "targets": ["amiga"]},
            last={"asset_directory": "c"},
        )

        specs, failures = resolve_bundles(config)

        assert [spec.bundle_name for spec in specs] == ["first", "last"]
        assert [failure.bundle_name for failure in failures] == ["broken"]
        assert isinstance(failures[0].error, ConfigurationError)

    def test_malformed_entry_fails_only_that_bundle(self, tmp_path) -> None:
        (tmp_path / "good").mkdir()
        config = build_config(
            {"bundles": {"good": {"asset_directory": "good"}, "bad": {"link_method": "copy"}}},
            base_dir=tmp_path,
        )

        with pytest.raises(ConfigurationError, match="missing required 'asset_directory'"):
            resolve_bundle(config, "bad")

        specs, failures = resolve_bundles(config)
        assert [spec.bundle_name for spec in specs] == ["good"]
        assert [failure.bundle_name for failure in failures] == ["bad"]


def test_select_bundle_names_defaults_to_all_and_dedupes(tmp_path) -> None:
    config = _config(tmp_path, None, one={"asset_directory": "a"}, two={"asset_directory": "b"})
    assert select_bundle_names(config) == ["one", "two"]
    assert select_bundle_names(config, ["two", "one", "two"]) == ["two", "one"]
