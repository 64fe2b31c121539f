"""Log formatting helpers and logging setup.

Log messages are rendered as a title line, an underline and an aligned block
of ``Label: value`` fields so multi-line build diagnostics stay readable both
in the Rich console and in plain log files.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from .utils import env_bool, ensure_directory

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "
FILE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def _wrap_lines(text: str, width: int) -> list[str]:
    lines: list[str] = []
    for raw_line in text.splitlines() or [""]:
        lines.extend(wrap(raw_line, width=width) or [""])
    return lines


class LogBlockBuilder:
    def __init__(
        self,
        title: str,
        *,
        wrap_width: int = DEFAULT_WRAP_WIDTH,
        label_width: int = DEFAULT_LABEL_WIDTH,
        indent: str = DEFAULT_INDENT,
        pad_top: bool = True,
    ) -> None:
        self.wrap_width = wrap_width
        self.label_width = label_width
        self.indent = indent
        self.lines: list[str] = [""] if pad_top else []
        self.lines.extend([title, "-" * len(title)])

    def add_fields(self, fields: Optional[FieldMapping]) -> None:
        if not fields:
            return
        items = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
        if not items:
            return

        widest = max(len(str(key)) for key, _ in items)
        label_width = max(min(widest, self.label_width), 8)
        value_width = max(self.wrap_width - len(self.indent) - label_width - 4, 32)

        for key, value in items:
            first, *rest = _wrap_lines(_stringify(value), value_width)
            self.lines.append(f"{self.indent}{str(key):<{label_width}}: {first}")
            for continuation in rest:
                self.lines.append(f"{self.indent}{'':<{label_width}}  {continuation}")

    def add_section(self, heading: str, items: Iterable[str], *, empty_label: str = "(none)") -> None:
        if self.lines and self.lines[-1] != "":
            self.lines.append("")
        self.lines.append(f"{heading}:")
        entries = [item for item in items if item is not None]
        if not entries:
            self.lines.append(f"{self.indent}{empty_label}")
            return

        bullet = self.indent + "- "
        width = max(self.wrap_width - len(bullet), 24)
        for entry in entries:
            first, *rest = _wrap_lines(_stringify(entry), width)
            self.lines.append(f"{bullet}{first}")
            self.lines.extend(f"{self.indent}  {continuation}" for continuation in rest)

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()


def render_section_block(
    title: str,
    sections: Sequence[tuple[str, Sequence[str]]],
    *,
    fields: Optional[FieldMapping] = None,
    pad_top: bool = True,
) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    for heading, items in sections:
        builder.add_section(heading, items)
    return builder.render()


def _parse_level(value: Optional[str], default: int) -> int:
    if not value:
        return default
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


def _use_rich_console(console: Console) -> bool:
    if env_bool("PLAIN_CONSOLE_LOGS"):
        return False
    forced = env_bool("RICH_CONSOLE_LOGS")
    if forced is not None:
        return forced
    return console.is_terminal


def configure_logging(
    console_level: int = logging.INFO,
    *,
    log_file: Optional[Path] = None,
    console: Optional[Console] = None,
) -> None:
    """Install console (and optionally file) handlers on the root logger.

    ``LOG_LEVEL`` overrides the file level and ``CONSOLE_LEVEL`` the console
    level when set in the environment.
    """
    console = console or Console(stderr=True)
    console_level = _parse_level(os.getenv("CONSOLE_LEVEL"), console_level)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if _use_rich_console(console):
        console_handler: logging.Handler = RichHandler(
            console=console,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    console_handler.setLevel(console_level)
    root.addHandler(console_handler)

    file_level = console_level
    if log_file is not None:
        file_level = _parse_level(os.getenv("LOG_LEVEL"), logging.DEBUG)
        ensure_directory(log_file.parent)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        file_handler.setLevel(file_level)
        root.addHandler(file_handler)

    root.setLevel(min(console_level, file_level))
