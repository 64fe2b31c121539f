"""Package version lookup."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

_FALLBACK_VERSION = "unknown"
_DISTRIBUTION = "assetbundler"


def get_version() -> str:
    try:
        return version(_DISTRIBUTION)
    except PackageNotFoundError:
        return _FALLBACK_VERSION


__version__ = get_version()
