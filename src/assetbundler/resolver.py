"""Merge global and per-bundle settings into effective build specs.

Precedence for every field is command line, then bundle, then global, then
the built-in default. Include and exclude lists are never merged: a bundle
that declares its own list replaces the global one entirely.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .config import DEFAULT_OUTPUT_DIRNAME, BundleConfig, BundlerConfig
from .errors import ConfigurationError
from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)

VALID_TARGETS = ("windows", "mac", "linux")
DEFAULT_LINK_METHOD = "copy"
DEFAULT_TARGETLESS = True


@dataclass(frozen=True)
class ResolveOverrides:
    """Command-line values that win over anything in the configuration."""

    targets: Optional[tuple[str, ...]] = None
    targetless: Optional[bool] = None
    output_directory: Optional[Path] = None
    link_method: Optional[str] = None


@dataclass(frozen=True)
class EffectiveBuildSpec:
    bundle_name: str
    archive_name: str
    asset_directory: Path
    output_directory: Path
    targets: tuple[str, ...]
    targetless: bool
    link_method: str
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    filename_template: Optional[str] = None
    compression: str = "chunk"
    description: Optional[str] = None

    @property
    def build_targets(self) -> list[Optional[str]]:
        """One entry per tool invocation; ``None`` stands for the current platform."""
        if self.targetless:
            return [None]
        return list(self.targets)


@dataclass
class ResolutionFailure:
    bundle_name: str
    error: ConfigurationError


@dataclass
class ResolutionResult:
    specs: list[EffectiveBuildSpec] = field(default_factory=list)
    failures: list[ResolutionFailure] = field(default_factory=list)

    def __iter__(self):
        yield self.specs
        yield self.failures


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _check_targets(bundle_name: str, targets: Iterable[str]) -> tuple[str, ...]:
    checked: list[str] = []
    for target in targets:
        lowered = target.lower()
        if lowered not in VALID_TARGETS:
            allowed = ", ".join(VALID_TARGETS)
            raise ConfigurationError(f"Bundle '{bundle_name}' declares unknown target '{target}' (expected one of {allowed})")
        if lowered not in checked:
            checked.append(lowered)
    return tuple(checked)


def _check_asset_directory(bundle: BundleConfig) -> Path:
    path = bundle.asset_directory
    try:
        exists = path.exists()
    except OSError as exc:
        raise ConfigurationError(f"Bundle '{bundle.name}' asset directory is not accessible: {path}: {exc}") from exc
    if not exists:
        raise ConfigurationError(f"Bundle '{bundle.name}' asset directory does not exist: {path}")
    if not path.is_dir():
        raise ConfigurationError(f"Bundle '{bundle.name}' asset directory is not a directory: {path}")
    if not os.access(path, os.R_OK | os.X_OK):
        raise ConfigurationError(f"Bundle '{bundle.name}' asset directory is not readable: {path}")
    return path


def resolve_bundle(
    config: BundlerConfig,
    name: str,
    overrides: Optional[ResolveOverrides] = None,
) -> EffectiveBuildSpec:
    load_error = config.invalid_bundles.get(name)
    if load_error is not None:
        raise ConfigurationError(str(load_error)) from load_error
    bundle = config.bundles.get(name)
    if bundle is None:
        raise ConfigurationError(f"Bundle '{name}' is not defined in the configuration")

    overrides = overrides or ResolveOverrides()
    global_config = config.global_config

    asset_directory = _check_asset_directory(bundle)

    raw_targets = _first_set(overrides.targets, bundle.targets, global_config.targets) or ()
    targets = _check_targets(name, raw_targets)

    targetless = _first_set(overrides.targetless, bundle.targetless, global_config.targetless)
    if targetless is None:
        targetless = DEFAULT_TARGETLESS if not targets else False
    if not targetless and not targets:
        raise ConfigurationError(f"Bundle '{name}' is not targetless but declares no targets")

    output_directory = _first_set(
        overrides.output_directory,
        bundle.output_directory,
        global_config.output_directory,
    ) or (config.base_directory / DEFAULT_OUTPUT_DIRNAME)

    include = _first_set(bundle.include_patterns, global_config.include_patterns) or ()
    exclude = _first_set(bundle.exclude_patterns, global_config.exclude_patterns) or ()

    spec = EffectiveBuildSpec(
        bundle_name=name,
        archive_name=bundle.archive_name,
        asset_directory=asset_directory,
        output_directory=Path(output_directory),
        targets=targets,
        targetless=bool(targetless),
        link_method=_first_set(overrides.link_method, bundle.link_method, global_config.link_method)
        or DEFAULT_LINK_METHOD,
        include_patterns=tuple(include),
        exclude_patterns=tuple(exclude),
        filename_template=_first_set(bundle.filename, global_config.filename),
        compression=global_config.compression,
        description=bundle.description,
    )

    LOGGER.debug(
        render_fields_block(
            "Resolved Bundle",
            {
                "Bundle": name,
                "Archive": spec.archive_name,
                "Assets": spec.asset_directory,
                "Output": spec.output_directory,
                "Targets": ", ".join(spec.targets) or "(none)",
                "Targetless": spec.targetless,
                "Link Method": spec.link_method,
                "Include": ", ".join(spec.include_patterns) or "(all)",
                "Exclude": ", ".join(spec.exclude_patterns) or "(none)",
            },
        )
    )
    return spec


def select_bundle_names(config: BundlerConfig, requested: Optional[Sequence[str]] = None) -> list[str]:
    """Return the bundle names to build, keeping request order and dropping duplicates."""
    if not requested:
        return config.bundle_names()
    seen: list[str] = []
    for name in requested:
        if name not in seen:
            seen.append(name)
    return seen


def resolve_bundles(
    config: BundlerConfig,
    names: Optional[Sequence[str]] = None,
    overrides: Optional[ResolveOverrides] = None,
) -> ResolutionResult:
    """Resolve each requested bundle independently.

    A bundle that fails to resolve is recorded in ``failures`` and does not
    stop its siblings from resolving.
    """
    result = ResolutionResult()
    for name in select_bundle_names(config, names):
        try:
            result.specs.append(resolve_bundle(config, name, overrides))
        except ConfigurationError as exc:
            LOGGER.error(
                render_fields_block(
                    "Bundle Configuration Error",
                    {
                        "Bundle": name,
                        "Error": exc,
                    },
                )
            )
            result.failures.append(ResolutionFailure(bundle_name=name, error=exc))
    return result
