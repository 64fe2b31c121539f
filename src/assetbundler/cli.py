from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .banner import BannerInfo, print_startup_banner
from .build_tool import CommandLineBuildTool, ContentBuildTool
from .config import (
    DEFAULT_CONFIG_NAME,
    BundlerConfig,
    build_config,
    discover_config_path,
    dump_config,
    load_config,
    load_config_data,
)
from .errors import ConfigurationError
from .help_formatter import formatter_for
from .logging_utils import configure_logging, render_fields_block
from .orchestrator import BuildOrchestrator, default_workspace
from .resolver import VALID_TARGETS, ResolveOverrides, select_bundle_names
from .run_summary import SummaryTableRenderer
from .utils import LINK_METHODS
from .validation import validate_config_data
from .version import __version__

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2
TARGETLESS_CHOICE = "none"
TOOL_LOG_NAME = "build_tool.log"


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help=f"Path to the YAML configuration (default: ./{DEFAULT_CONFIG_NAME})",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="assetbundler",
        description="Build content bundles from a YAML configuration.",
        formatter_class=formatter_for(),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build bundles", formatter_class=formatter_for("build"))
    _add_common_arguments(build_parser)
    build_parser.add_argument("bundles", nargs="*", help="Bundle names to build (all when omitted)")
    build_parser.add_argument(
        "-t",
        "--target",
        choices=[*VALID_TARGETS, TARGETLESS_CHOICE],
        default=None,
        help="Build only this target ('none' builds targetless)",
    )
    build_parser.add_argument("--keep-scratch", action="store_true", help="Keep the build workspace after the run")
    build_parser.add_argument("--tool-path", type=Path, default=None, help="Override the build tool executable")

    adhoc = build_parser.add_argument_group("ad hoc bundle", "Build a single bundle without a configuration file")
    adhoc.add_argument("--asset-dir", type=Path, default=None, help="Directory holding the bundle's assets")
    adhoc.add_argument("--bundle-name", default=None, help="Bundle name (default: asset directory name)")
    adhoc.add_argument("--include", action="append", default=None, help="Include glob (repeatable)")
    adhoc.add_argument("--exclude", action="append", default=None, help="Exclude glob (repeatable)")
    adhoc.add_argument("--output", type=Path, default=None, help="Output directory")
    adhoc.add_argument("--link-method", choices=list(LINK_METHODS), default=None, help="How files are staged")
    adhoc.add_argument("--filename", default=None, help="Output filename template")

    list_parser = subparsers.add_parser(
        "list-bundles", help="List configured bundles", formatter_class=formatter_for("list-bundles")
    )
    _add_common_arguments(list_parser)

    dump_parser = subparsers.add_parser(
        "dump-config", help="Print the loaded configuration", formatter_class=formatter_for("dump-config")
    )
    _add_common_arguments(dump_parser)
    dump_parser.add_argument("--format", choices=["json", "yaml"], default="yaml")

    validate_parser = subparsers.add_parser(
        "validate-config", help="Validate the configuration file", formatter_class=formatter_for("validate-config")
    )
    _add_common_arguments(validate_parser)

    return parser.parse_args(argv)


def _console_level(args: argparse.Namespace) -> int:
    if getattr(args, "quiet", False):
        return logging.ERROR
    if getattr(args, "verbose", False):
        return logging.DEBUG
    return logging.INFO


def _log_file(args: argparse.Namespace) -> Optional[Path]:
    explicit = getattr(args, "log_file", None)
    if explicit is not None:
        return explicit
    from_env = os.getenv("LOG_FILE", "").strip()
    return Path(from_env).expanduser() if from_env else None


def _configure_from_args(args: argparse.Namespace) -> None:
    configure_logging(_console_level(args), log_file=_log_file(args))


def _resolve_config_path(args: argparse.Namespace) -> Path:
    path = discover_config_path(getattr(args, "config", None))
    if path is None:
        raise ConfigurationError(f"No --config given and {DEFAULT_CONFIG_NAME} was not found in {Path.cwd()}")
    return path


def _report_config_error(exc: ConfigurationError) -> None:
    LOGGER.error(render_fields_block("Configuration Error", {"Error": exc}))
    CONSOLE.print(f"[red]✗ {escape(str(exc))}[/red]")


def _adhoc_config(args: argparse.Namespace) -> BundlerConfig:
    asset_dir: Path = args.asset_dir
    name = args.bundle_name or asset_dir.name
    bundle: Dict[str, Any] = {"asset_directory": str(asset_dir)}
    if args.include:
        bundle["include_patterns"] = list(args.include)
    if args.exclude:
        bundle["exclude_patterns"] = list(args.exclude)
    if args.output is not None:
        bundle["output_directory"] = str(args.output)
    if args.link_method:
        bundle["link_method"] = args.link_method
    if args.filename:
        bundle["filename"] = args.filename
    return build_config({"bundles": {name: bundle}}, base_dir=Path.cwd())


def load_build_config(args: argparse.Namespace) -> BundlerConfig:
    if getattr(args, "asset_dir", None) is not None:
        return _adhoc_config(args)
    return load_config(_resolve_config_path(args))


def build_overrides(args: argparse.Namespace) -> ResolveOverrides:
    target = getattr(args, "target", None)
    link_method = None
    output = None
    if getattr(args, "asset_dir", None) is None:
        link_method = getattr(args, "link_method", None)
        output = getattr(args, "output", None)
    if target is None:
        return ResolveOverrides(link_method=link_method, output_directory=output)
    if target == TARGETLESS_CHOICE:
        return ResolveOverrides(targetless=True, link_method=link_method, output_directory=output)
    return ResolveOverrides(targets=(target,), targetless=False, link_method=link_method, output_directory=output)


def create_build_tool(config: BundlerConfig, workspace: Path, tool_path: Optional[Path] = None) -> ContentBuildTool:
    executable = tool_path or config.global_config.tool_path
    if executable is None:
        raise ConfigurationError("No build tool configured; set 'global.tool_path' or pass --tool-path")
    return CommandLineBuildTool(
        executable,
        workspace,
        tool_version=config.global_config.tool_version,
        log_file=workspace.parent / f"{workspace.name}_{TOOL_LOG_NAME}",
    )


def run_build(args: argparse.Namespace) -> int:
    _configure_from_args(args)

    try:
        config = load_build_config(args)
        workspace = default_workspace(config)
        tool = create_build_tool(config, workspace, getattr(args, "tool_path", None))
    except ConfigurationError as exc:
        _report_config_error(exc)
        return EXIT_CONFIG_ERROR

    keep_workspace = True if getattr(args, "keep_scratch", False) else None
    orchestrator = BuildOrchestrator(config, tool, workspace=workspace, keep_workspace=keep_workspace)
    requested = getattr(args, "bundles", None) or None

    if not getattr(args, "quiet", False):
        print_startup_banner(
            BannerInfo(
                version=__version__,
                config_path=str(config.source_path or "(ad hoc)"),
                workspace=str(workspace),
                bundles=select_bundle_names(config, requested),
                target_override=getattr(args, "target", None),
                keep_workspace=orchestrator.keep_workspace,
                verbose=getattr(args, "verbose", False),
            ),
            CONSOLE,
        )

    report = orchestrator.run(requested, build_overrides(args))

    if not getattr(args, "quiet", False):
        SummaryTableRenderer(CONSOLE).print_report(report)
    if report.success:
        CONSOLE.print(f"[green]✓ Built {len(report.succeeded_bundles)} bundle(s)[/green]")
        return EXIT_OK
    CONSOLE.print(f"[red]✗ Failed bundles: {escape(', '.join(report.failed_bundles))}[/red]")
    return EXIT_BUILD_FAILED


def run_list_bundles(args: argparse.Namespace) -> int:
    _configure_from_args(args)
    try:
        config = load_config(_resolve_config_path(args))
    except ConfigurationError as exc:
        _report_config_error(exc)
        return EXIT_CONFIG_ERROR

    global_config = config.global_config
    table = Table(title="Bundles", show_header=True, header_style="bold")
    table.add_column("Bundle", style="cyan", no_wrap=True)
    table.add_column("Archive")
    table.add_column("Assets")
    table.add_column("Targets")
    table.add_column("Description", style="dim")
    for name, bundle in config.bundles.items():
        targets = bundle.targets if bundle.targets is not None else global_config.targets
        targetless = bundle.targetless if bundle.targetless is not None else global_config.targetless
        if targetless or (targetless is None and not targets):
            target_label = "targetless"
        else:
            target_label = ", ".join(targets or ())
        table.add_row(
            escape(name),
            escape(bundle.archive_name),
            escape(str(bundle.asset_directory)),
            target_label,
            escape(bundle.description or ""),
        )
    for name, error in config.invalid_bundles.items():
        table.add_row(escape(name), "", "", "[red]invalid[/red]", escape(str(error)))
    CONSOLE.print(table)
    return EXIT_OK


def run_dump_config(args: argparse.Namespace) -> int:
    _configure_from_args(args)
    try:
        config = load_config(_resolve_config_path(args))
        text = dump_config(config, getattr(args, "format", "yaml"))
    except ConfigurationError as exc:
        _report_config_error(exc)
        return EXIT_CONFIG_ERROR
    CONSOLE.print(text, markup=False, highlight=False, soft_wrap=True)
    return EXIT_OK


def run_validate_config(args: argparse.Namespace) -> int:
    try:
        path = _resolve_config_path(args)
        data = load_config_data(path)
    except ConfigurationError as exc:
        CONSOLE.print(f"[red]✗ {escape(str(exc))}[/red]")
        return EXIT_BUILD_FAILED

    report = validate_config_data(data, base_dir=path.resolve().parent)
    if report.is_valid:
        try:
            config = build_config(data, base_dir=path.resolve().parent, source_path=path)
        except ConfigurationError as exc:
            report.add_error("<root>", str(exc), "load")
        else:
            for name, error in config.invalid_bundles.items():
                report.add_error(f"bundles.{name}", str(error), "load")

    for issue in report.errors:
        CONSOLE.print(f"[red]✗ error[/red] {escape(issue.path)}: {escape(issue.message)}")
    for issue in report.warnings:
        CONSOLE.print(f"[yellow]⚠ warning[/yellow] {escape(issue.path)}: {escape(issue.message)}")

    if report.is_valid:
        CONSOLE.print(f"[green]✓ Configuration passed validation[/green] ({escape(str(path))})")
        return EXIT_OK
    CONSOLE.print(f"[red]Validation Errors: {len(report.errors)}[/red]")
    return EXIT_BUILD_FAILED


COMMANDS: Dict[str, Callable[[argparse.Namespace], int]] = {
    "build": run_build,
    "list-bundles": run_list_bundles,
    "dump-config": run_dump_config,
    "validate-config": run_validate_config,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
