"""Glob pattern compilation and include/exclude path selection.

Patterns are matched against forward-slash relative paths, case-insensitively:

- ``*`` matches any run of characters except ``/``
- ``?`` matches exactly one character
- ``**/`` as a prefix matches zero or more leading directories
- ``**`` anywhere else matches anything, separators included
- ``[abc]`` / ``[!abc]`` match one character from (or outside) the set
- a pattern without a leading ``/`` may match at any directory depth
- a leading ``/`` anchors the pattern to the root of the asset directory
- a trailing ``/`` matches that directory and everything beneath it

A pattern that cannot be compiled never matches. The failure is logged once
and the surrounding operation carries on.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from .errors import PatternError
from .logging_utils import render_fields_block
from .utils import normalize_relative_path

LOGGER = logging.getLogger(__name__)

_ANY_DEPTH_PREFIX = "(?:.*/)?"


def _translate_class(glob: str, start: int) -> tuple[str, int]:
    end = glob.find("]", start + 2 if glob[start + 1 : start + 2] in ("!", "^") else start + 1)
    if end == -1:
        raise PatternError(glob, "unterminated character class")
    body = glob[start + 1 : end]
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    if not body:
        raise PatternError(glob, "empty character class")
    body = body.replace("\\", "\\\\")
    return f"[{'^' if negate else ''}{body}]", end + 1


def _translate_body(glob: str) -> str:
    parts: list[str] = []
    index = 0
    while index < len(glob):
        char = glob[index]
        if char == "*":
            if glob[index : index + 2] == "**":
                parts.append(".*")
                index += 2
            else:
                parts.append("[^/]*")
                index += 1
        elif char == "?":
            parts.append(".")
            index += 1
        elif char == "[":
            translated, index = _translate_class(glob, index)
            parts.append(translated)
        else:
            parts.append(re.escape(char))
            index += 1
    return "".join(parts)


def glob_to_regex(glob: str) -> str:
    """Translate a glob into an anchored regular expression source string."""
    pattern = normalize_relative_path(glob.strip())
    if not pattern.strip("/"):
        raise PatternError(glob, "pattern is empty")

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern.lstrip("/")

    directory = pattern.endswith("/")
    if directory:
        pattern = pattern.rstrip("/")

    if pattern.startswith("**/"):
        prefix = _ANY_DEPTH_PREFIX
        pattern = pattern[3:]
    else:
        prefix = "" if anchored else _ANY_DEPTH_PREFIX

    body = _translate_body(pattern)
    suffix = "(?:/.*)?" if directory else ""
    return f"^{prefix}{body}{suffix}$"


@dataclass(frozen=True)
class CompiledPattern:
    raw: str
    regex: Optional[re.Pattern[str]]
    error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.regex is not None

    def matches(self, relative_path: str) -> bool:
        if self.regex is None:
            return False
        return self.regex.match(normalize_relative_path(relative_path)) is not None


@functools.lru_cache(maxsize=1024)
def compile_pattern(raw: str) -> CompiledPattern:
    """Compile a glob, failing closed when the pattern is invalid."""
    try:
        source = glob_to_regex(raw)
        return CompiledPattern(raw=raw, regex=re.compile(source, re.IGNORECASE))
    except PatternError as exc:
        error = exc.reason
    except re.error as exc:
        error = str(exc)

    LOGGER.warning(
        render_fields_block(
            "Ignoring Invalid Pattern",
            {
                "Pattern": raw,
                "Reason": error,
            },
        )
    )
    return CompiledPattern(raw=raw, regex=None, error=error)


def _any_match(relative_path: str, patterns: Iterable[str]) -> bool:
    return any(compile_pattern(pattern).matches(relative_path) for pattern in patterns)


def is_included(relative_path: str, patterns: Optional[Sequence[str]]) -> bool:
    if not patterns:
        return True
    return _any_match(relative_path, patterns)


def is_excluded(relative_path: str, patterns: Optional[Sequence[str]]) -> bool:
    if not patterns:
        return False
    return _any_match(relative_path, patterns)


@dataclass
class PatternMatcher:
    """Include/exclude selection over one bundle's pattern lists."""

    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        # Invalid patterns are reported once, before any path is tested.
        for pattern in (*self.include, *self.exclude):
            compile_pattern(pattern)

    def is_included(self, relative_path: str) -> bool:
        return is_included(relative_path, self.include)

    def is_excluded(self, relative_path: str) -> bool:
        return is_excluded(relative_path, self.exclude)

    def selects(self, relative_path: str) -> bool:
        return self.is_included(relative_path) and not self.is_excluded(relative_path)
