from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .models import BuildResult, BuildStage


@dataclass(slots=True)
class BundleFailure:
    """A bundle that failed before any per-target result existed."""

    bundle_name: str
    stage: BuildStage
    error: str


@dataclass(slots=True)
class BuildReport:
    results: list[BuildResult] = field(default_factory=list)
    bundle_failures: list[BundleFailure] = field(default_factory=list)
    bundle_order: list[str] = field(default_factory=list)

    def _track(self, bundle_name: str) -> None:
        if bundle_name not in self.bundle_order:
            self.bundle_order.append(bundle_name)

    def record(self, result: BuildResult) -> None:
        self._track(result.bundle_name)
        self.results.append(result)

    def record_failure(self, bundle_name: str, stage: BuildStage, error: object) -> None:
        self._track(bundle_name)
        self.bundle_failures.append(BundleFailure(bundle_name=bundle_name, stage=stage, error=str(error) or type(error).__name__))

    def results_for(self, bundle_name: str) -> list[BuildResult]:
        return [result for result in self.results if result.bundle_name == bundle_name]

    def bundle_succeeded(self, bundle_name: str) -> bool:
        if any(failure.bundle_name == bundle_name for failure in self.bundle_failures):
            return False
        results = self.results_for(bundle_name)
        return bool(results) and all(result.success for result in results)

    @property
    def succeeded_bundles(self) -> list[str]:
        return [name for name in self.bundle_order if self.bundle_succeeded(name)]

    @property
    def failed_bundles(self) -> list[str]:
        return [name for name in self.bundle_order if not self.bundle_succeeded(name)]

    @property
    def failed_results(self) -> list[BuildResult]:
        return [result for result in self.results if not result.success]

    @property
    def outputs(self) -> list[Path]:
        paths: list[Path] = []
        for result in self.results:
            if result.success and result.archive_path is not None:
                paths.append(result.archive_path)
                if result.manifest_path is not None:
                    paths.append(result.manifest_path)
        return paths

    @property
    def success(self) -> bool:
        return not self.failed_bundles

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def first_error(self, bundle_name: str) -> Optional[str]:
        for failure in self.bundle_failures:
            if failure.bundle_name == bundle_name:
                return failure.error
        for result in self.results_for(bundle_name):
            if not result.success:
                return result.error
        return None
