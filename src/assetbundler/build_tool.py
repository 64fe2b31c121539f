"""Boundary to the external content-build tool.

The orchestrator only talks to :class:`ContentBuildTool`. The command-line
implementation drives the tool in batch mode and hands it a JSON request
describing the bundles to produce.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from .errors import BuildInvocationError, ConfigurationError
from .logging_utils import render_fields_block
from .utils import ensure_directory

LOGGER = logging.getLogger(__name__)

BUILD_TARGET_NAMES = {
    "windows": "StandaloneWindows64",
    "mac": "StandaloneOSX",
    "linux": "StandaloneLinux64",
}
BUILD_METHOD = "ModAssetBundleBuilder.BuildBundles"
REQUEST_FILENAME = "build_request.json"
_OUTPUT_TAIL_LINES = 20


@dataclass(frozen=True)
class BundleRequest:
    name: str
    files: tuple[str, ...]


class ContentBuildTool(Protocol):
    def build(
        self,
        output_dir: Path,
        bundles: Sequence[BundleRequest],
        compression: str,
        platform: str,
    ) -> Optional[Path]:
        """Build ``bundles`` into ``output_dir`` and return the manifest path, if any."""
        ...

    def switch_platform(self, platform: str) -> None: ...


def _tail(text: str, lines: int = _OUTPUT_TAIL_LINES) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


class CommandLineBuildTool:
    def __init__(
        self,
        executable: Path,
        workspace: Path,
        *,
        tool_version: Optional[str] = None,
        log_file: Optional[Path] = None,
        extra_args: Sequence[str] = (),
    ) -> None:
        if not executable.exists():
            raise ConfigurationError(f"Build tool executable not found: {executable}")
        self.executable = executable
        self.workspace = workspace
        self.tool_version = tool_version
        self.log_file = log_file
        self.extra_args = list(extra_args)

    def _base_command(self, platform: str) -> list[str]:
        command = [
            str(self.executable),
            "-batchmode",
            "-nographics",
            "-quit",
            "-projectPath",
            str(self.workspace),
            "-buildTarget",
            BUILD_TARGET_NAMES.get(platform, platform),
        ]
        if self.log_file is not None:
            command.extend(["-logFile", str(self.log_file)])
        command.extend(self.extra_args)
        return command

    def _run(self, command: list[str], action: str) -> subprocess.CompletedProcess[str]:
        LOGGER.debug(
            render_fields_block(
                "Running Build Tool",
                {
                    "Action": action,
                    "Command": " ".join(command),
                },
            )
        )
        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise BuildInvocationError(f"Failed to start build tool for {action}: {exc}") from exc

        if completed.returncode != 0:
            detail = _tail(completed.stderr) or _tail(completed.stdout)
            raise BuildInvocationError(f"Build tool {action} failed with exit code {completed.returncode}: {detail}".rstrip(": "))
        return completed

    def switch_platform(self, platform: str) -> None:
        ensure_directory(self.workspace)
        self._run(self._base_command(platform), f"platform switch to {platform}")

    def build(
        self,
        output_dir: Path,
        bundles: Sequence[BundleRequest],
        compression: str,
        platform: str,
    ) -> Optional[Path]:
        ensure_directory(output_dir)
        request_path = self.workspace / REQUEST_FILENAME
        request = {
            "output_directory": str(output_dir),
            "compression": compression,
            "platform": platform,
            "bundles": [{"name": bundle.name, "assets": list(bundle.files)} for bundle in bundles],
        }
        request_path.write_text(json.dumps(request, indent=2), encoding="utf-8")

        command = self._base_command(platform) + ["-executeMethod", BUILD_METHOD, "-buildRequest", str(request_path)]
        self._run(command, f"build for {platform}")

        manifest = output_dir / f"{output_dir.name}.manifest"
        return manifest if manifest.exists() else None
