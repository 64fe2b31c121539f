from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .logging_utils import render_fields_block
from .utils import LINK_METHODS, load_yaml_file

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".assetbundler.yaml"
DEFAULT_OUTPUT_DIRNAME = "Output"
COMPRESSION_MODES = ("none", "lzma", "chunk")
DEFAULT_COMPRESSION = "chunk"


@dataclass(frozen=True)
class GlobalConfig:
    tool_version: str | None = None
    tool_path: Path | None = None
    output_directory: Path | None = None
    targets: tuple[str, ...] | None = None
    link_method: str | None = None
    include_patterns: tuple[str, ...] | None = None
    exclude_patterns: tuple[str, ...] | None = None
    targetless: bool | None = None
    workspace_directory: Path | None = None
    clean_workspace: bool = True
    compression: str = DEFAULT_COMPRESSION
    filename: str | None = None


@dataclass(frozen=True)
class BundleConfig:
    name: str
    asset_directory: Path
    output_directory: Path | None = None
    targets: tuple[str, ...] | None = None  # None = inherit, () = explicitly none
    include_patterns: tuple[str, ...] | None = None
    exclude_patterns: tuple[str, ...] | None = None
    filename: str | None = None
    targetless: bool | None = None
    link_method: str | None = None
    bundle_name: str | None = None
    description: str | None = None

    @property
    def archive_name(self) -> str:
        return self.bundle_name or self.name


@dataclass(frozen=True)
class BundlerConfig:
    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    bundles: dict[str, BundleConfig] = field(default_factory=dict)
    source_path: Path | None = None
    root_directory: Path | None = None
    # Entries that failed to load; they fail at resolve time, not at load time.
    invalid_bundles: dict[str, ConfigurationError] = field(default_factory=dict)
    bundle_order: tuple[str, ...] = ()

    @property
    def base_directory(self) -> Path:
        if self.root_directory is not None:
            return self.root_directory
        if self.source_path is not None:
            return self.source_path.parent
        return Path.cwd()

    def bundle_names(self) -> list[str]:
        """Every configured bundle in document order, including invalid entries."""
        if self.bundle_order:
            return list(self.bundle_order)
        return [*self.bundles, *(name for name in self.invalid_bundles if name not in self.bundles)]

    def to_dict(self) -> dict[str, Any]:
        """Return a plain mapping suitable for JSON/YAML dumps."""
        return {
            "global": _strip_empty(_dataclass_to_dict(self.global_config)),
            "bundles": {
                name: _strip_empty({key: value for key, value in _dataclass_to_dict(bundle).items() if key != "name"})
                for name, bundle in self.bundles.items()
            },
        }


def _dataclass_to_dict(instance: Any) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key in instance.__dataclass_fields__:
        value = getattr(instance, key)
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, tuple):
            value = list(value)
        result[key] = value
    return result


def _strip_empty(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def dump_config(config: BundlerConfig, fmt: str = "yaml") -> str:
    payload = config.to_dict()
    if fmt == "json":
        return json.dumps(payload, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
    raise ConfigurationError(f"Unsupported dump format '{fmt}'")


def _ensure_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{field_name}' must be provided as a mapping when specified")
    return value


def _ensure_string_list(value: Any, *, field_name: str) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ConfigurationError(f"'{field_name}' must be provided as a list of strings")

    result: list[str] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise ConfigurationError(f"'{field_name}[{index}]' must be a string")
        stripped = entry.strip()
        if stripped:
            result.append(stripped)
    return tuple(result)


def _optional_string(value: Any, *, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ConfigurationError(f"'{field_name}' must be a string")
    text = str(value).strip()
    return text or None


def _optional_bool(value: Any, *, field_name: str) -> bool | None:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{field_name}' must be true or false")
    return value


def _optional_path(value: Any, base_dir: Path, *, field_name: str) -> Path | None:
    text = _optional_string(value, field_name=field_name)
    if text is None:
        return None
    path = Path(text).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _link_method(value: Any, *, field_name: str) -> str | None:
    text = _optional_string(value, field_name=field_name)
    if text is None:
        return None
    lowered = text.lower()
    if lowered not in LINK_METHODS:
        allowed = ", ".join(LINK_METHODS)
        raise ConfigurationError(f"'{field_name}' must be one of {allowed}, got '{text}'")
    return lowered


def _targets(value: Any, *, field_name: str) -> tuple[str, ...] | None:
    targets = _ensure_string_list(value, field_name=field_name)
    if targets is None:
        return None
    # Validity against the known target set is checked at resolve time so a
    # bad entry only fails the bundles that use it.
    return tuple(target.lower() for target in targets)


def _build_global_config(data: dict[str, Any], base_dir: Path) -> GlobalConfig:
    compression = (_optional_string(data.get("compression"), field_name="global.compression") or DEFAULT_COMPRESSION).lower()
    if compression not in COMPRESSION_MODES:
        allowed = ", ".join(COMPRESSION_MODES)
        raise ConfigurationError(f"'global.compression' must be one of {allowed}, got '{compression}'")

    clean_workspace = _optional_bool(data.get("clean_workspace"), field_name="global.clean_workspace")

    return GlobalConfig(
        tool_version=_optional_string(data.get("tool_version"), field_name="global.tool_version"),
        tool_path=_optional_path(data.get("tool_path"), base_dir, field_name="global.tool_path"),
        output_directory=_optional_path(data.get("output_directory"), base_dir, field_name="global.output_directory"),
        targets=_targets(data.get("targets"), field_name="global.targets"),
        link_method=_link_method(data.get("link_method"), field_name="global.link_method"),
        include_patterns=_ensure_string_list(data.get("include_patterns"), field_name="global.include_patterns"),
        exclude_patterns=_ensure_string_list(data.get("exclude_patterns"), field_name="global.exclude_patterns"),
        targetless=_optional_bool(data.get("targetless"), field_name="global.targetless"),
        workspace_directory=_optional_path(
            data.get("workspace_directory"), base_dir, field_name="global.workspace_directory"
        ),
        clean_workspace=True if clean_workspace is None else clean_workspace,
        compression=compression,
        filename=_optional_string(data.get("filename"), field_name="global.filename"),
    )


def _build_bundle_config(name: str, data: dict[str, Any], base_dir: Path) -> BundleConfig:
    prefix = f"bundles.{name}"
    data = _ensure_mapping(data, field_name=prefix)

    asset_directory = _optional_path(data.get("asset_directory"), base_dir, field_name=f"{prefix}.asset_directory")
    if asset_directory is None:
        raise ConfigurationError(f"Bundle '{name}' is missing required 'asset_directory' field")

    return BundleConfig(
        name=name,
        asset_directory=asset_directory,
        output_directory=_optional_path(data.get("output_directory"), base_dir, field_name=f"{prefix}.output_directory"),
        targets=_targets(data.get("targets"), field_name=f"{prefix}.targets"),
        include_patterns=_ensure_string_list(data.get("include_patterns"), field_name=f"{prefix}.include_patterns"),
        exclude_patterns=_ensure_string_list(data.get("exclude_patterns"), field_name=f"{prefix}.exclude_patterns"),
        filename=_optional_string(data.get("filename"), field_name=f"{prefix}.filename"),
        targetless=_optional_bool(data.get("targetless"), field_name=f"{prefix}.targetless"),
        link_method=_link_method(data.get("link_method"), field_name=f"{prefix}.link_method"),
        bundle_name=_optional_string(data.get("bundle_name"), field_name=f"{prefix}.bundle_name"),
        description=_optional_string(data.get("description"), field_name=f"{prefix}.description"),
    )


def build_config(data: Mapping[str, Any], *, base_dir: Path, source_path: Path | None = None) -> BundlerConfig:
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration root must be a mapping")

    global_config = _build_global_config(_ensure_mapping(data.get("global"), field_name="global"), base_dir)

    bundles_raw = _ensure_mapping(data.get("bundles"), field_name="bundles")
    if not bundles_raw:
        raise ConfigurationError("Configuration does not define any bundles")

    bundles: dict[str, BundleConfig] = {}
    invalid: dict[str, ConfigurationError] = {}
    order: list[str] = []
    for raw_name, bundle_data in bundles_raw.items():
        name = str(raw_name).strip()
        if not name:
            raise ConfigurationError("Bundle names must be non-empty strings")
        if name in order:
            raise ConfigurationError(f"Bundle '{name}' is defined more than once")
        order.append(name)
        try:
            bundles[name] = _build_bundle_config(name, bundle_data, base_dir)
        except ConfigurationError as exc:
            LOGGER.warning(
                render_fields_block(
                    "Invalid Bundle Entry",
                    {
                        "Bundle": name,
                        "Error": exc,
                    },
                )
            )
            invalid[name] = exc

    return BundlerConfig(
        global_config=global_config,
        bundles=bundles,
        source_path=source_path,
        root_directory=base_dir,
        invalid_bundles=invalid,
        bundle_order=tuple(order),
    )


def load_config_data(path: Path) -> dict[str, Any]:
    try:
        data = load_yaml_file(path)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {path}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Unable to read configuration file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping at the top level")
    return data


def load_config(path: Path) -> BundlerConfig:
    path = Path(path).expanduser().resolve()
    data = load_config_data(path)
    return build_config(data, base_dir=path.parent, source_path=path)


def discover_config_path(explicit: Path | None = None, *, search_dir: Path | None = None) -> Path | None:
    if explicit is not None:
        return Path(explicit)
    candidate = (search_dir or Path.cwd()) / DEFAULT_CONFIG_NAME
    return candidate if candidate.exists() else None
