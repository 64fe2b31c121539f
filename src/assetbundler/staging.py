"""Materialize selected source files into the build workspace.

Each bundle is staged under ``<workspace>/Assets/Data/<bundle>``. A staged
file counts as configured once its ``.meta`` sidecar exists; configured files
are never re-staged or reconfigured, which keeps repeated builds cheap and
preserves any import state the build tool attached to them.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Optional, Protocol

from .asset_kinds import AssetKind, classify, settings_for, settings_payload
from .errors import StagingError
from .logging_utils import render_fields_block
from .models import StagedAsset
from .patterns import PatternMatcher
from .resolver import EffectiveBuildSpec
from .utils import (
    create_junction,
    dump_yaml_file,
    ensure_directory,
    is_junction,
    link_file,
    remove_path,
)

LOGGER = logging.getLogger(__name__)

STAGING_ROOT = Path("Assets") / "Data"
SCRATCH_DIRNAME = "AssetBundles"
SIDECAR_SUFFIX = ".meta"


def sidecar_path_for(asset_path: Path) -> Path:
    return asset_path.with_name(asset_path.name + SIDECAR_SUFFIX)


def skip_reason_for_source_file(path: Path) -> str | None:
    name = path.name
    if name.startswith("._") and len(name) > 2:
        return "macOS resource fork (._ prefix)"
    if name.endswith(SIDECAR_SUFFIX):
        return "sidecar file"
    return None


def gather_source_files(source_dir: Path) -> list[tuple[str, Path]]:
    """Return ``(relative_path, path)`` pairs for every stageable file, sorted."""
    found: list[tuple[str, Path]] = []
    try:
        for path in source_dir.rglob("*"):
            if not path.is_file():
                continue
            skip_reason = skip_reason_for_source_file(path)
            if skip_reason:
                LOGGER.debug(
                    render_fields_block(
                        "Skipping Source File",
                        {
                            "Source": path,
                            "Reason": skip_reason,
                        },
                    )
                )
                continue
            found.append((path.relative_to(source_dir).as_posix(), path))
    except OSError as exc:
        raise StagingError(f"Unable to scan asset directory {source_dir}: {exc}") from exc
    found.sort(key=lambda item: item[0])
    return found


class AssetConfigurator(Protocol):
    def configure(self, asset_path: Path, kind_hint: AssetKind) -> bool:
        """Apply import settings for ``asset_path``. Must be idempotent."""
        ...


class SidecarConfigurator:
    """Write the kind-specific import settings into a YAML ``.meta`` sidecar."""

    def configure(self, asset_path: Path, kind_hint: AssetKind) -> bool:
        sidecar = sidecar_path_for(asset_path)
        if sidecar.exists():
            return True

        settings = settings_for(asset_path.as_posix(), kind_hint)
        if settings is None:
            return False

        payload = {
            "guid": uuid.uuid4().hex,
            "asset": asset_path.name,
            **settings_payload(settings),
        }
        try:
            dump_yaml_file(sidecar, payload)
        except OSError as exc:
            raise StagingError(f"Failed to write sidecar {sidecar}: {exc}") from exc
        return True


class AssetStager:
    def __init__(self, workspace: Path, configurator: Optional[AssetConfigurator] = None) -> None:
        self.workspace = workspace
        self.configurator: AssetConfigurator = configurator or SidecarConfigurator()

    @property
    def scratch_directory(self) -> Path:
        return self.workspace / SCRATCH_DIRNAME

    def bundle_root(self, bundle_name: str) -> Path:
        return self.workspace / STAGING_ROOT / bundle_name

    def select(self, spec: EffectiveBuildSpec) -> list[tuple[str, Path]]:
        matcher = PatternMatcher(list(spec.include_patterns), list(spec.exclude_patterns))
        return [(relative, path) for relative, path in gather_source_files(spec.asset_directory) if matcher.selects(relative)]

    def reset_scratch(self) -> Path:
        scratch = self.scratch_directory
        remove_path(scratch)
        ensure_directory(scratch)
        return scratch

    def clear_generated_artifacts(self, bundle_name: str, keep: Iterable[str] = ()) -> int:
        """Remove stale staged files that are no longer selected.

        Files that carry a sidecar are configured assets and always survive.
        Returns the number of files removed.
        """
        root = self.bundle_root(bundle_name)
        if not root.exists() or is_junction(root) or root.is_symlink():
            return 0

        keep_set = set(keep)
        removed = 0
        for path in sorted(root.rglob("*"), reverse=True):
            if path.is_dir() and not path.is_symlink():
                continue
            if path.name.endswith(SIDECAR_SUFFIX):
                continue
            relative = path.relative_to(root).as_posix()
            if relative in keep_set or sidecar_path_for(path).exists():
                continue
            remove_path(path)
            removed += 1
        return removed

    def stage(self, spec: EffectiveBuildSpec) -> list[StagedAsset]:
        selected = self.select(spec)
        if not selected:
            raise StagingError(f"Bundle '{spec.bundle_name}' matched no files in {spec.asset_directory}")

        root = self.bundle_root(spec.bundle_name)
        if spec.link_method == "junction":
            self._stage_junction(spec, root)
        else:
            self.clear_generated_artifacts(spec.bundle_name, keep=(relative for relative, _ in selected))

        staged: list[StagedAsset] = []
        reused = 0
        linked = 0
        configured = 0
        for relative, source in selected:
            destination = root / relative
            sidecar_exists = sidecar_path_for(destination).exists()

            if spec.link_method != "junction":
                if sidecar_exists and destination.exists():
                    reused += 1
                else:
                    # Unconfigured leftovers are replaced from source.
                    if destination.exists() or destination.is_symlink():
                        remove_path(destination)
                    linked += int(link_file(source, destination, spec.link_method).created)
            elif sidecar_exists:
                reused += 1

            asset = StagedAsset(
                relative_path=relative,
                source_path=source,
                staged_path=destination,
                link_method=spec.link_method,
                kind=classify(relative),
            )
            if not sidecar_exists and asset.kind is not None:
                asset.configured = self._configure(spec.bundle_name, asset)
                configured += int(asset.configured)
            staged.append(asset)

        LOGGER.info(
            render_fields_block(
                "Staged Bundle",
                {
                    "Bundle": spec.bundle_name,
                    "Selected": len(selected),
                    "Linked": linked,
                    "Reused": reused,
                    "Configured": configured,
                    "Link Method": spec.link_method,
                    "Staging Root": root,
                },
            )
        )
        return staged

    def _stage_junction(self, spec: EffectiveBuildSpec, root: Path) -> None:
        if is_junction(root):
            return
        if root.exists() or root.is_symlink():
            remove_path(root)
        create_junction(spec.asset_directory, root)

    def _configure(self, bundle_name: str, asset: StagedAsset) -> bool:
        if asset.kind is None:
            return False
        ok = self.configurator.configure(asset.staged_path, asset.kind)
        if not ok:
            LOGGER.warning(
                render_fields_block(
                    "Asset Not Configured",
                    {
                        "Bundle": bundle_name,
                        "Asset": asset.relative_path,
                        "Kind": asset.kind.value,
                    },
                )
            )
        return ok
