from __future__ import annotations

import argparse
import shutil
from dataclasses import dataclass, field
from typing import Callable

from rich.console import Console
from rich.table import Table
from rich.text import Text

SECTION_STYLE = "bold bright_cyan"


@dataclass
class CommandHelp:
    """Examples, environment variables and tips appended to a command's ``--help``."""

    examples: list[tuple[str, str]] = field(default_factory=list)
    env_vars: list[tuple[str, str]] = field(default_factory=list)
    tips: list[str] = field(default_factory=list)


LOGGING_ENV_VARS = [
    ("LOG_FILE", "Write logs to this file when --log-file is not given"),
    ("LOG_LEVEL", "Level for the log file handler (default: DEBUG)"),
    ("CONSOLE_LEVEL", "Override the console log level"),
    ("PLAIN_CONSOLE_LOGS", "Disable rich console logging"),
    ("RICH_CONSOLE_LOGS", "Force rich console logging even without a terminal"),
]

COMMAND_HELP: dict[str, CommandHelp] = {
    "build": CommandHelp(
        examples=[
            ("Build every bundle in ./.assetbundler.yaml", "assetbundler build"),
            ("Build one bundle for a single platform", "assetbundler build author.mod --target windows"),
            (
                "Build a folder without a configuration file",
                "assetbundler build --asset-dir ./Art --bundle-name author.art --tool-path /opt/unity/Editor/Unity",
            ),
        ],
        env_vars=LOGGING_ENV_VARS,
        tips=[
            "Use --target none to build once for the current platform without a suffix",
            "Use --keep-scratch to inspect the staged workspace after a failed build",
        ],
    ),
    "list-bundles": CommandHelp(
        examples=[("Show configured bundles", "assetbundler list-bundles -c bundles.yaml")],
    ),
    "dump-config": CommandHelp(
        examples=[("Print the loaded configuration as JSON", "assetbundler dump-config --format json")],
    ),
    "validate-config": CommandHelp(
        examples=[("Check a configuration before building", "assetbundler validate-config -c bundles.yaml")],
        tips=["Bundle entries with errors are reported individually; valid siblings still build"],
    ),
}


class RichHelpFormatter(argparse.HelpFormatter):
    """Argparse help formatter that styles section headings and appends extra sections with rich.

    Output falls back to plain argparse help when the console is not a terminal.
    """

    def __init__(
        self,
        prog: str,
        indent_increment: int = 2,
        max_help_position: int = 24,
        width: int | None = None,
        console: Console | None = None,
        command_help: CommandHelp | None = None,
    ) -> None:
        if width is None:
            width = min(shutil.get_terminal_size().columns, 120)
        super().__init__(
            prog=prog,
            indent_increment=indent_increment,
            max_help_position=max_help_position,
            width=width,
        )
        self.console = console or Console()
        self.command_help = command_help or CommandHelp()

    def format_help(self) -> str:
        standard_help = super().format_help()
        if not self.console.is_terminal:
            return standard_help

        parts: list[str] = []
        heading: str | None = None
        body: list[str] = []
        for line in standard_help.split("\n"):
            if line and not line[0].isspace() and line.endswith(":"):
                if heading is not None:
                    parts.extend(self._render_section(heading, body))
                elif "\n".join(body).strip():
                    parts.append("\n".join(body))
                heading = line[:-1]
                body = []
            else:
                body.append(line)
        if heading is not None:
            parts.extend(self._render_section(heading, body))
        elif body:
            parts.append("\n".join(body))

        if self.command_help.examples:
            parts.append(self._render_examples())
        if self.command_help.env_vars:
            parts.append(self._render_env_vars())
        if self.command_help.tips:
            parts.append(self._render_tips())
        return "\n".join(parts)

    def _capture_heading(self, title: str) -> str:
        with self.console.capture() as capture:
            self.console.print(Text(title, style=SECTION_STYLE))
        return capture.get()

    def _render_section(self, title: str, body: list[str]) -> list[str]:
        rendered = [self._capture_heading(title)]
        content = "\n".join(body)
        if content.strip():
            rendered.append(content)
        return rendered

    def _render_examples(self) -> str:
        with self.console.capture() as capture:
            self.console.print(Text("Examples:", style=SECTION_STYLE))
            for index, (description, command) in enumerate(self.command_help.examples, 1):
                line = Text()
                line.append(f"  {index}. ", style="dim cyan")
                line.append(description)
                self.console.print(line)
                self.console.print(f"     $ {command}", style="bright_yellow", markup=False, highlight=False)
        return capture.get()

    def _render_env_vars(self) -> str:
        with self.console.capture() as capture:
            self.console.print(Text("Environment Variables:", style=SECTION_STYLE))
            table = Table(show_header=False, box=None, padding=(0, 2))
            table.add_column("Variable", style="bright_green bold", no_wrap=True)
            table.add_column("Description")
            for name, description in self.command_help.env_vars:
                table.add_row(name, description)
            self.console.print(table)
        return capture.get()

    def _render_tips(self) -> str:
        with self.console.capture() as capture:
            self.console.print(Text("Tips:", style=SECTION_STYLE))
            for tip in self.command_help.tips:
                self.console.print(Text(f"  - {tip}"))
        return capture.get()


def formatter_for(command: str | None = None, console: Console | None = None) -> Callable[[str], RichHelpFormatter]:
    """Return a ``formatter_class`` factory carrying the help extras for ``command``."""
    command_help = COMMAND_HELP.get(command or "")

    def factory(prog: str) -> RichHelpFormatter:
        return RichHelpFormatter(prog, console=console, command_help=command_help)

    return factory
