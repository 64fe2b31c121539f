from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .asset_kinds import AssetKind


class BuildStage(str, Enum):
    RESOLVE = "resolve"
    STAGE = "stage"
    SWITCH_CONTEXT = "switch_context"
    INVOKE = "invoke"
    VERIFY_OUTPUTS = "verify_outputs"
    RENAME_PLACE = "rename_place"
    DONE = "done"


@dataclass(slots=True)
class StagedAsset:
    relative_path: str
    source_path: Path
    staged_path: Path
    link_method: str
    kind: Optional[AssetKind] = None
    configured: bool = False  # newly configured during this run


@dataclass(slots=True)
class BuildResult:
    bundle_name: str
    target: Optional[str]
    success: bool
    archive_path: Optional[Path] = None
    manifest_path: Optional[Path] = None
    error: Optional[str] = None
    stage: BuildStage = BuildStage.DONE

    @property
    def target_label(self) -> str:
        return self.target or "targetless"
