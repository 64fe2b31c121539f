"""Exception taxonomy for configuration, staging and build failures."""

from __future__ import annotations


class AssetBundlerError(Exception):
    """Base class for every error raised by assetbundler."""


class ConfigurationError(AssetBundlerError, ValueError):
    """Missing or invalid bundle entry, unknown target, unreadable asset directory."""


class PatternError(AssetBundlerError):
    """A glob pattern could not be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid glob pattern '{pattern}': {reason}")
        self.pattern = pattern
        self.reason = reason


class StagingError(AssetBundlerError):
    """Link creation failed, or the link method is unusable on this volume/platform."""


class BuildInvocationError(AssetBundlerError):
    """The external build tool failed or returned no manifest."""


class OutputError(AssetBundlerError):
    """Expected archive or manifest is absent, or promotion to the output directory failed."""
