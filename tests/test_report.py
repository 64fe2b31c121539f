from __future__ import annotations

from pathlib import Path

from assetbundler.models import BuildResult, BuildStage
from assetbundler.report import BuildReport


def _ok(bundle: str, target: str | None) -> BuildResult:
    return BuildResult(bundle_name=bundle, target=target, success=True, archive_path=Path(f"/out/{bundle}_{target}"))


def _failed(bundle: str, target: str | None) -> BuildResult:
    return BuildResult(bundle_name=bundle, target=target, success=False, error="boom", stage=BuildStage.INVOKE)


def test_all_successful_report() -> None:
    report = BuildReport()
    report.record(_ok("a", "windows"))
    report.record(_ok("a", "mac"))

    assert report.success
    assert report.exit_code == 0
    assert report.succeeded_bundles == ["a"]
    assert len(report.outputs) == 2


def test_one_failed_target_fails_the_bundle() -> None:
    report = BuildReport()
    report.record(_ok("a", "windows"))
    report.record(_failed("a", "mac"))
    report.record(_ok("b", None))

    assert not report.success
    assert report.exit_code == 1
    assert report.failed_bundles == ["a"]
    assert report.succeeded_bundles == ["b"]
    assert report.first_error("a") == "boom"


def test_bundle_level_failure_keeps_request_order() -> None:
    report = BuildReport()
    report.record(_ok("first", None))
    report.record_failure("second", BuildStage.STAGE, ValueError("no files"))
    report.record(_ok("third", None))

    assert report.bundle_order == ["first", "second", "third"]
    assert report.failed_bundles == ["second"]
    assert report.first_error("second") == "no files"
