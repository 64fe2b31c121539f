from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from jsonschema import Draft7Validator

from .config import COMPRESSION_MODES
from .errors import PatternError
from .patterns import glob_to_regex
from .resolver import VALID_TARGETS
from .utils import LINK_METHODS


@dataclass(slots=True)
class ValidationIssue:
    """Represents a single validation problem."""

    severity: str
    path: str
    message: str
    code: str


@dataclass(slots=True)
class ValidationReport:
    """Aggregates validation warnings and errors."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, path: str, message: str, code: str) -> None:
        self.errors.append(ValidationIssue(severity="error", path=path, message=message, code=code))

    def add_warning(self, path: str, message: str, code: str) -> None:
        self.warnings.append(ValidationIssue(severity="warning", path=path, message=message, code=code))


_STRING_LIST = {
    "oneOf": [
        {"type": "array", "items": {"type": "string"}},
        {"type": "string"},
    ]
}

_SHARED_PROPERTIES: Dict[str, Any] = {
    "output_directory": {"type": "string"},
    "targets": _STRING_LIST,
    "link_method": {"type": "string", "enum": list(LINK_METHODS)},
    "include_patterns": _STRING_LIST,
    "exclude_patterns": _STRING_LIST,
    "targetless": {"type": "boolean"},
    "filename": {"type": "string"},
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "global": {
            "type": "object",
            "properties": {
                **_SHARED_PROPERTIES,
                "tool_version": {"type": ["string", "number"]},
                "tool_path": {"type": "string"},
                "workspace_directory": {"type": "string"},
                "clean_workspace": {"type": "boolean"},
                "compression": {"type": "string", "enum": list(COMPRESSION_MODES)},
            },
            "additionalProperties": False,
        },
        "bundles": {
            "type": "object",
            "minProperties": 1,
            "additionalProperties": {
                "type": "object",
                "properties": {
                    **_SHARED_PROPERTIES,
                    "asset_directory": {"type": "string"},
                    "bundle_name": {"type": "string"},
                    "description": {"type": "string"},
                },
                "required": ["asset_directory"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["bundles"],
    "additionalProperties": False,
}

_TARGET_TOKEN = re.compile(r"\[(platform|target)\]", re.IGNORECASE)


def _format_jsonschema_path(path: Sequence[Any]) -> str:
    if not path:
        return "<root>"
    tokens: List[str] = []
    for part in path:
        if isinstance(part, int):
            if tokens:
                tokens[-1] = f"{tokens[-1]}[{part}]"
            else:
                tokens.append(f"[{part}]")
        else:
            tokens.append(str(part))
    return ".".join(tokens) if tokens else "<root>"


def _as_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def validate_config_data(data: Dict[str, Any], base_dir: Optional[Path] = None) -> ValidationReport:
    """Validate configuration data against the schema and semantic rules.

    Args:
        data: Parsed configuration document
        base_dir: Directory relative paths are resolved against; when omitted
            asset directories are not checked on disk

    Returns:
        ValidationReport containing any errors or warnings found
    """
    report = ValidationReport()
    validator = Draft7Validator(CONFIG_SCHEMA)

    for error in sorted(validator.iter_errors(data), key=lambda exc: [str(part) for part in exc.path]):
        report.add_error(_format_jsonschema_path(error.absolute_path), error.message, "schema")

    if isinstance(data, dict):
        _validate_semantics(data, report, base_dir)
    return report


def _validate_targets(path: str, value: Any, report: ValidationReport) -> None:
    for index, target in enumerate(_as_list(value)):
        if target.lower() not in VALID_TARGETS:
            allowed = ", ".join(VALID_TARGETS)
            report.add_error(f"{path}[{index}]", f"Unknown target '{target}' (expected one of {allowed})", "target")


def _validate_patterns(path: str, value: Any, report: ValidationReport) -> None:
    for index, pattern in enumerate(_as_list(value)):
        try:
            re.compile(glob_to_regex(pattern))
        except PatternError as exc:
            report.add_warning(f"{path}[{index}]", f"{exc}; the pattern will never match", "pattern")
        except re.error as exc:
            report.add_warning(f"{path}[{index}]", f"Invalid glob pattern '{pattern}': {exc}", "pattern")


def _validate_semantics(data: Dict[str, Any], report: ValidationReport, base_dir: Optional[Path]) -> None:
    global_data = data.get("global") if isinstance(data.get("global"), dict) else {}
    _validate_targets("global.targets", global_data.get("targets"), report)
    for key in ("include_patterns", "exclude_patterns"):
        _validate_patterns(f"global.{key}", global_data.get(key), report)

    bundles = data.get("bundles") if isinstance(data.get("bundles"), dict) else {}
    for name, bundle in bundles.items():
        if not isinstance(bundle, dict):
            continue
        prefix = f"bundles.{name}"
        _validate_targets(f"{prefix}.targets", bundle.get("targets"), report)
        for key in ("include_patterns", "exclude_patterns"):
            _validate_patterns(f"{prefix}.{key}", bundle.get(key), report)

        asset_directory = bundle.get("asset_directory")
        if base_dir is not None and isinstance(asset_directory, str):
            resolved = Path(asset_directory).expanduser()
            if not resolved.is_absolute():
                resolved = base_dir / resolved
            if not resolved.is_dir():
                report.add_error(f"{prefix}.asset_directory", f"Asset directory does not exist: {resolved}", "asset-directory")

        targets = bundle.get("targets", global_data.get("targets"))
        targetless = bundle.get("targetless", global_data.get("targetless"))
        template = bundle.get("filename", global_data.get("filename"))
        if (
            isinstance(template, str)
            and targetless is not True
            and len(_as_list(targets)) > 1
            and not _TARGET_TOKEN.search(template)
        ):
            report.add_warning(
                f"{prefix}.filename",
                f"Template '{template}' has no [platform] or [target] token; outputs for each target will overwrite each other",
                "filename",
            )
