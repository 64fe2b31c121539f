from __future__ import annotations

from assetbundler.validation import validate_config_data


def test_valid_config_passes(tmp_path) -> None:
    (tmp_path / "assets").mkdir()
    data = {
        "global": {"targets": ["windows", "mac"], "link_method": "copy"},
        "bundles": {"demo": {"asset_directory": "assets", "filename": "res_[bundle_name]_[platform]"}},
    }

    report = validate_config_data(data, base_dir=tmp_path)

    assert report.is_valid
    assert report.warnings == []


def test_schema_errors_are_reported_with_paths() -> None:
    data = {
        "global": {"link_method": "teleport", "unknown": 1},
        "bundles": {"demo": {"targetless": "yes"}},
    }

    report = validate_config_data(data)

    paths = {issue.path for issue in report.errors}
    assert "global.link_method" in paths
    assert "bundles.demo" in paths
    assert "bundles.demo.targetless" in paths
    assert not report.is_valid


def test_missing_bundles_section() -> None:
    report = validate_config_data({"global": {}})
    assert any("'bundles' is a required property" in issue.message for issue in report.errors)


def test_unknown_target_is_a_semantic_error() -> None:
    report = validate_config_data({"bundles": {"demo": {"asset_directory": "a", "targets": ["windows", "ps2"]}}})
    assert [issue.path for issue in report.errors] == ["bundles.demo.targets[1]"]
    assert report.errors[0].code == "target"


def test_missing_asset_directory_on_disk(tmp_path) -> None:
    report = validate_config_data({"bundles": {"demo": {"asset_directory": "absent"}}}, base_dir=tmp_path)
    assert [issue.code for issue in report.errors] == ["asset-directory"]


def test_invalid_pattern_is_a_warning() -> None:
    report = validate_config_data({"bundles": {"demo": {"asset_directory": "a", "include_patterns": ["[z-a]"]}}})
    assert report.is_valid
    assert [issue.path for issue in report.warnings] == ["bundles.demo.include_patterns[0]"]


def test_filename_without_platform_token_warns_for_multi_target() -> None:
    data = {
        "global": {"targets": ["windows", "linux"]},
        "bundles": {"demo": {"asset_directory": "a", "filename": "res_[bundle_name]"}},
    }
    report = validate_config_data(data)
    assert [issue.code for issue in report.warnings] == ["filename"]
