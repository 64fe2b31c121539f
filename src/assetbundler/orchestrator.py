"""Drive resolve, stage, build and placement for a batch of bundles.

Each bundle moves through ``RESOLVE -> STAGE -> (per target: SWITCH_CONTEXT
-> INVOKE -> VERIFY_OUTPUTS -> RENAME_PLACE) -> DONE``. Any stage can fail;
a failure is recorded against the bundle (or the bundle/target pair) and the
batch moves on.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Optional, Sequence

from rich.progress import Progress

from .build_tool import BundleRequest, ContentBuildTool
from .config import BundlerConfig
from .errors import AssetBundlerError, OutputError
from .logging_utils import render_fields_block
from .models import BuildResult, BuildStage, StagedAsset
from .naming import render_filename
from .platform_context import PlatformContext
from .report import BuildReport
from .resolver import EffectiveBuildSpec, ResolveOverrides, resolve_bundles, select_bundle_names
from .run_summary import log_run_recap
from .staging import AssetConfigurator, AssetStager
from .utils import ensure_directory, remove_path, short_hash

LOGGER = logging.getLogger(__name__)

WORKSPACE_PREFIX = "AssetBundleBuilder_"
MANIFEST_SUFFIX = ".manifest"
# Failures outside this set are logged with a traceback.
EXPECTED_ERRORS = (AssetBundlerError, OSError)


def default_workspace(config: BundlerConfig) -> Path:
    if config.global_config.workspace_directory is not None:
        return config.global_config.workspace_directory
    key = str(config.source_path) if config.source_path is not None else str(config.base_directory)
    return Path(tempfile.gettempdir()) / f"{WORKSPACE_PREFIX}{short_hash(key)}"


def verify_output(path: Path) -> Path:
    if not path.is_file():
        raise OutputError(f"Expected build output is missing: {path}")
    if path.stat().st_size == 0:
        raise OutputError(f"Build output is empty: {path}")
    return path


def promote_file(source: Path, destination: Path) -> Path:
    """Copy ``source`` next to ``destination`` under a temporary name, then rename into place."""
    ensure_directory(destination.parent)
    temp_path = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        shutil.copy2(source, temp_path)
        if temp_path.stat().st_size != source.stat().st_size:
            raise OutputError(f"Copy of {source} to {temp_path} is incomplete")
        os.replace(temp_path, destination)
    except OSError as exc:
        raise OutputError(f"Failed to place {source.name} at {destination}: {exc}") from exc
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return destination


class BuildOrchestrator:
    def __init__(
        self,
        config: BundlerConfig,
        tool: ContentBuildTool,
        *,
        workspace: Optional[Path] = None,
        configurator: Optional[AssetConfigurator] = None,
        platform_context: Optional[PlatformContext] = None,
        keep_workspace: Optional[bool] = None,
    ) -> None:
        self.config = config
        self.tool = tool
        self.workspace = workspace or default_workspace(config)
        self.stager = AssetStager(self.workspace, configurator)
        self.platform_context = platform_context or PlatformContext(tool.switch_platform)
        if keep_workspace is None:
            keep_workspace = not config.global_config.clean_workspace
        self.keep_workspace = keep_workspace

    def run(
        self,
        names: Optional[Sequence[str]] = None,
        overrides: Optional[ResolveOverrides] = None,
    ) -> BuildReport:
        bundle_names = select_bundle_names(self.config, names)
        report = BuildReport(bundle_order=list(bundle_names))
        run_started = time.perf_counter()

        LOGGER.info(
            render_fields_block(
                "Starting Build",
                {
                    "Bundles": ", ".join(bundle_names),
                    "Workspace": self.workspace,
                    "Platform": self.platform_context.current,
                },
            )
        )

        specs, failures = resolve_bundles(self.config, bundle_names, overrides)
        for failure in failures:
            report.record_failure(failure.bundle_name, BuildStage.RESOLVE, failure.error)

        ensure_directory(self.workspace)
        try:
            with Progress(disable=not LOGGER.isEnabledFor(logging.INFO)) as progress:
                task_id = progress.add_task("Building", total=len(bundle_names), completed=len(failures))
                for spec in specs:
                    progress.update(task_id, description=f"Building {spec.bundle_name}")
                    self.build_bundle(spec, report)
                    progress.advance(task_id, 1)
        finally:
            if not self.keep_workspace:
                remove_path(self.workspace)

        log_run_recap(report, time.perf_counter() - run_started)
        return report

    def build_bundle(self, spec: EffectiveBuildSpec, report: BuildReport) -> None:
        try:
            staged = self.stager.stage(spec)
        except Exception as exc:  # noqa: BLE001
            self._log_failure(spec.bundle_name, None, BuildStage.STAGE, exc)
            report.record_failure(spec.bundle_name, BuildStage.STAGE, exc)
            return

        files = tuple(self._asset_path(asset) for asset in staged)
        for target in spec.build_targets:
            report.record(self.build_target(spec, files, target))

    def build_target(self, spec: EffectiveBuildSpec, files: tuple[str, ...], target: Optional[str]) -> BuildResult:
        stage = BuildStage.SWITCH_CONTEXT
        try:
            self.platform_context.ensure(target)
            platform = target or self.platform_context.current

            stage = BuildStage.INVOKE
            scratch = self.stager.reset_scratch()
            manifest = self.tool.build(
                scratch,
                [BundleRequest(name=spec.archive_name, files=files)],
                spec.compression,
                platform,
            )

            stage = BuildStage.VERIFY_OUTPUTS
            if manifest is None:
                raise OutputError("Build tool did not report a manifest")
            archive = verify_output(scratch / spec.archive_name)
            archive_manifest = verify_output(scratch / f"{spec.archive_name}{MANIFEST_SUFFIX}")

            stage = BuildStage.RENAME_PLACE
            final_name = render_filename(
                spec.filename_template,
                spec.archive_name,
                target,
                targetless=spec.targetless,
            )
            archive_path = promote_file(archive, spec.output_directory / final_name)
            manifest_path = promote_file(archive_manifest, spec.output_directory / f"{final_name}{MANIFEST_SUFFIX}")
        except Exception as exc:  # noqa: BLE001
            self._log_failure(spec.bundle_name, target, stage, exc)
            return self._failed_result(spec, target, stage, exc)

        LOGGER.info(
            render_fields_block(
                "Built Bundle",
                {
                    "Bundle": spec.bundle_name,
                    "Target": target or "targetless",
                    "Archive": archive_path,
                },
            )
        )
        return BuildResult(
            bundle_name=spec.bundle_name,
            target=target,
            success=True,
            archive_path=archive_path,
            manifest_path=manifest_path,
        )

    def _asset_path(self, asset: StagedAsset) -> str:
        return asset.staged_path.relative_to(self.workspace).as_posix()

    @staticmethod
    def _failed_result(spec: EffectiveBuildSpec, target: Optional[str], stage: BuildStage, exc: Exception) -> BuildResult:
        return BuildResult(
            bundle_name=spec.bundle_name,
            target=target,
            success=False,
            error=str(exc) or type(exc).__name__,
            stage=stage,
        )

    @staticmethod
    def _log_failure(bundle_name: str, target: Optional[str], stage: BuildStage, exc: Exception) -> None:
        LOGGER.error(
            render_fields_block(
                "Bundle Build Failed",
                {
                    "Bundle": bundle_name,
                    "Target": target or "targetless",
                    "Stage": stage.value,
                    "Error": exc if str(exc) else type(exc).__name__,
                },
            ),
            exc_info=None if isinstance(exc, EXPECTED_ERRORS) else exc,
        )
