"""Run recap logging and the rich summary table for a finished batch."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .logging_utils import render_section_block
from .report import BuildReport

LOGGER = logging.getLogger(__name__)

SUCCESS_COLOR = "green"
ERROR_COLOR = "red"
DIM_COLOR = "dim"

SUCCESS_SYMBOL = "✓"
ERROR_SYMBOL = "✗"


def format_bundle_failures(report: BuildReport) -> list[str]:
    lines: list[str] = []
    for name in report.failed_bundles:
        error = report.first_error(name) or "unknown error"
        lines.append(f"{name}: {error}")
    return lines


def log_run_recap(report: BuildReport, duration: float) -> None:
    block = render_section_block(
        "Run Recap",
        [
            ("Succeeded", report.succeeded_bundles),
            ("Failed", format_bundle_failures(report)),
        ],
        fields={
            "Duration": f"{duration:.2f}s",
            "Bundles": len(report.bundle_order),
            "Succeeded": len(report.succeeded_bundles),
            "Failed": len(report.failed_bundles),
            "Outputs": len(report.outputs),
        },
    )
    level = logging.INFO if report.success else logging.ERROR
    LOGGER.log(level, block)


class SummaryTableRenderer:
    """Renders a build report as a rich Table, one row per bundle target."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    @staticmethod
    def _status(success: bool) -> str:
        if success:
            return f"[{SUCCESS_COLOR}]{SUCCESS_SYMBOL} ok[/{SUCCESS_COLOR}]"
        return f"[{ERROR_COLOR}]{ERROR_SYMBOL} failed[/{ERROR_COLOR}]"

    def render_report_table(self, report: BuildReport) -> Table:
        table = Table(title="Build Summary", show_header=True, header_style="bold")
        table.add_column("Bundle", style="cyan", no_wrap=True)
        table.add_column("Target")
        table.add_column("Status")
        table.add_column("Output / Error")

        for failure in report.bundle_failures:
            table.add_row(
                escape(failure.bundle_name),
                f"[{DIM_COLOR}]-[/{DIM_COLOR}]",
                self._status(False),
                escape(f"{failure.stage.value}: {failure.error}"),
            )
        for result in report.results:
            if result.success:
                detail = result.archive_path.name if result.archive_path else ""
            else:
                detail = f"{result.stage.value}: {result.error}"
            table.add_row(escape(result.bundle_name), result.target_label, self._status(result.success), escape(detail))
        return table

    def print_report(self, report: BuildReport) -> None:
        self.console.print(self.render_report_table(report))
