from __future__ import annotations

import errno
import hashlib
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import StagingError

LINK_METHODS = ("copy", "symlink", "hardlink", "junction")

# Boolean true/false string values
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return expand_env(data)


def dump_yaml_file(path: Path, data: Dict[str, Any]) -> None:
    ensure_directory(path.parent)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False, allow_unicode=True)


def hash_text(text: str) -> str:
    """Compute SHA-256 digest of the given text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def short_hash(text: str, length: int = 8) -> str:
    """Return the first ``length`` hex characters of the SHA-256 of ``text``."""
    return hash_text(text)[:length]


def normalize_relative_path(value: str) -> str:
    return value.replace("\\", "/")


def is_windows() -> bool:
    return sys.platform.startswith("win")


def same_volume(first: Path, second: Path) -> bool:
    try:
        return os.stat(first).st_dev == os.stat(second).st_dev
    except OSError:
        return False


@dataclass
class LinkResult:
    created: bool
    reason: Optional[str] = None


def link_file(source: Path, destination: Path, mode: str = "copy") -> LinkResult:
    """Materialize ``source`` at ``destination`` with the given link mode.

    Existing destinations are left alone. Failures raise ``StagingError``;
    hardlinks never fall back to a copy.
    """
    ensure_directory(destination.parent)

    if destination.exists() or destination.is_symlink():
        return LinkResult(created=False, reason="destination-exists")

    if mode == "hardlink" and not same_volume(source, destination.parent):
        raise StagingError(f"Cannot hardlink {source} into {destination.parent}: different volumes")

    try:
        if mode == "hardlink":
            os.link(source, destination)
        elif mode == "copy":
            shutil.copy2(source, destination)
        elif mode == "symlink":
            destination.symlink_to(source.resolve())
        else:
            raise StagingError(f"Unsupported link mode for files: {mode}")
    except OSError as exc:
        if mode == "hardlink" and exc.errno == errno.EXDEV:
            raise StagingError(f"Cannot hardlink {source} across volumes") from exc
        raise StagingError(f"Failed to {mode} {source} -> {destination}: {exc}") from exc

    return LinkResult(created=True)


def create_junction(source_dir: Path, junction_path: Path) -> None:
    """Create a directory junction pointing at ``source_dir`` (Windows only)."""
    if not is_windows():
        raise StagingError("Junctions are only supported on Windows")

    ensure_directory(junction_path.parent)
    completed = subprocess.run(
        ["cmd", "/C", "mklink", "/J", str(junction_path), str(source_dir)],
        capture_output=True,
        text=True,
        check=False,
    )
    if completed.returncode != 0:
        detail = completed.stderr.strip() or completed.stdout.strip()
        raise StagingError(f"Failed to create junction {junction_path}: exit {completed.returncode} {detail}".rstrip())


def remove_path(path: Path) -> None:
    """Remove a file, link, junction or directory tree without following links."""
    if path.is_symlink():
        path.unlink()
        return
    if is_junction(path):
        os.rmdir(path)
        return
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()


def is_junction(path: Path) -> bool:
    checker = getattr(os.path, "isjunction", None)
    return bool(checker and checker(path))


def parse_env_bool(value: Optional[str]) -> Optional[bool]:
    """Parse a boolean from an environment variable string.

    Returns None if value is None or not a recognized boolean string.
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def env_bool(name: str) -> Optional[bool]:
    """Get a boolean from an environment variable.

    Returns None if not set or not a recognized boolean string.
    """
    return parse_env_bool(os.getenv(name))
