from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table


@dataclass
class BannerInfo:
    version: str
    config_path: str
    workspace: str
    bundles: list[str]
    target_override: Optional[str]
    keep_workspace: bool
    verbose: bool


def print_startup_banner(info: BannerInfo, console: Console) -> None:
    """Print a styled startup banner showing version and run settings."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Version", f"[bold]{info.version}[/bold]")

    mode_parts = []
    if info.keep_workspace:
        mode_parts.append("[yellow]KEEP-SCRATCH[/yellow]")
    if info.verbose:
        mode_parts.append("[cyan]VERBOSE[/cyan]")
    if mode_parts:
        table.add_row("Mode", " ".join(mode_parts))

    table.add_row("Config", escape(info.config_path))
    table.add_row("Workspace", escape(info.workspace))
    table.add_row("Bundles", escape(", ".join(info.bundles)) or "[dim](none)[/dim]")
    if info.target_override:
        table.add_row("Target", escape(info.target_override))

    console.print(Panel(table, title="[bold]assetbundler[/bold]", border_style="blue", expand=False))