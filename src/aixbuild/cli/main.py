"""
Command-line interface for aixbuild.

Sub-commands:
    build     Build an extension project (plain, coverage, optimized or signed)
    validate  Run the validation pipeline and print a report
    history   Show, export or plot the build history of a project
    targets   List the targets declared in the build descriptor
    deps      List the library jars of a project
"""

import argparse
import logging
import os
import signal
import sys
import threading
import tomllib
from pathlib import Path
from typing import List, Optional

from ..checks import ValidationOptions, ValidationPipeline
from ..config import get_config, set_config_path
from ..executor import OPTIMIZATION_LEVELS, BuildOrchestrator
from ..models.build import BuildRequest
from ..progress import ProgressStream, describe_event
from ..reporting import format_stats_text, plot_build_history, to_document, to_structured, to_text
from ..validation import (
    AixBuildError,
    ValidationError,
    handle_cli_error,
    validate_path_exists,
    validate_property_definition,
)

logger = logging.getLogger(__name__)

REPORT_FORMATS = {"text": to_text, "json": to_structured, "html": to_document}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def _install_signal_handlers(cancel_event: threading.Event) -> None:
    """SIGINT and SIGTERM cancel the running build instead of killing the CLI."""

    def handler(signum, frame):
        if cancel_event.is_set():
            logger.warning("Cancellation already in progress. Please be patient.")
            return
        logger.info(f"Signal {signal.strsignal(signum)} received. Cancelling...")
        cancel_event.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def _write_output(text: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        logger.info(f"Report written to: {output}")
    else:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aixbuild",
        description="Build and validate App Inventor extension projects.",
    )
    parser.add_argument("--config", type=str, help="Path to an alternative config.toml.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build an extension project.")
    build.add_argument("project", type=str, help="Path to the extension project.")
    build.add_argument("-t", "--target", type=str, default="package", help="Toolchain target to run.")
    build.add_argument("--clean", action="store_true", help="Remove build outputs before building.")
    build.add_argument(
        "-D", dest="properties", action="append", default=[], metavar="NAME=VALUE",
        help="Pass a property to the toolchain; may be repeated.",
    )
    build.add_argument(
        "--format", choices=sorted(REPORT_FORMATS), default="text", help="Result output format.",
    )
    mode = build.add_mutually_exclusive_group()
    mode.add_argument("--coverage", action="store_true", help="Run the coverage target.")
    mode.add_argument(
        "--optimize", choices=OPTIMIZATION_LEVELS, metavar="LEVEL",
        help=f"Run the optimized package target at LEVEL ({', '.join(OPTIMIZATION_LEVELS)}).",
    )
    mode.add_argument(
        "--sign", nargs=2, metavar=("KEYSTORE", "ALIAS"), help="Run the signed package target.",
    )
    build.add_argument("--obfuscate", action="store_true", help="With --optimize: obfuscate code.")
    build.add_argument("--shrink-resources", action="store_true", help="With --optimize: shrink resources.")
    build.add_argument(
        "--password-env", type=str, default="AIXBUILD_KEYSTORE_PASSWORD",
        help="With --sign: environment variable holding the keystore password.",
    )

    validate = subparsers.add_parser("validate", help="Validate an extension project.")
    validate.add_argument("project", type=str, help="Path to the extension project.")
    validate.add_argument("--build", action="store_true", help="Include the build dry-run phase.")
    validate.add_argument("--code-quality", action="store_true", help="Include the code quality phase.")
    validate.add_argument("--parallel", action="store_true", help="Run read-only phases concurrently.")
    validate.add_argument("--format", choices=sorted(REPORT_FORMATS), default="text", help="Report format.")
    validate.add_argument("-o", "--output", type=str, help="Write the report to a file.")

    history = subparsers.add_parser("history", help="Show the build history of a project.")
    history.add_argument("project", type=str, help="Path to the extension project.")
    history.add_argument("--export", type=str, metavar="PATH", help="Export the history to PATH.")
    history.add_argument(
        "--export-format", choices=["json", "parquet"], default="json", help="Export format.",
    )
    history.add_argument("--plot", type=str, metavar="DIR", help="Write an interactive chart to DIR.")
    history.add_argument("--clear", action="store_true", help="Delete the build history.")

    targets = subparsers.add_parser("targets", help="List build descriptor targets.")
    targets.add_argument("project", type=str, help="Path to the extension project.")

    deps = subparsers.add_parser("deps", help="List library dependencies.")
    deps.add_argument("project", type=str, help="Path to the extension project.")

    return parser


def _parse_properties(definitions: List[str]) -> dict:
    properties = {}
    for definition in definitions:
        name, value = validate_property_definition(definition, field_name="-D")
        properties[name] = value
    return properties


def run_build(args: argparse.Namespace, orchestrator: BuildOrchestrator,
              cancel_event: threading.Event) -> int:
    request = BuildRequest(
        project_path=Path(args.project),
        target=args.target,
        clean=args.clean,
        verbose=args.verbose,
        properties=_parse_properties(args.properties),
    )
    progress = ProgressStream(on_event=lambda event: print(f">> {describe_event(event)}", flush=True))

    if args.coverage:
        result = orchestrator.build_with_coverage(request, progress, cancel_event)
    elif args.optimize:
        result = orchestrator.build_optimized(
            request, args.optimize, args.obfuscate, args.shrink_resources, progress, cancel_event,
        )
    elif args.sign:
        keystore, alias = args.sign
        password = os.environ.get(args.password_env, "")
        result = orchestrator.sign_extension(request, keystore, alias, password, progress, cancel_event)
    else:
        result = orchestrator.build_extension(request, progress, cancel_event)

    _write_output(REPORT_FORMATS[args.format](result), None)
    return 0 if result.success else 1


def run_validate(args: argparse.Namespace, pipeline: ValidationPipeline,
                 cancel_event: threading.Event) -> int:
    options = ValidationOptions(build=args.build, code_quality=args.code_quality, parallel=args.parallel)
    report = pipeline.validate_all(args.project, options, cancel_event)
    _write_output(REPORT_FORMATS[args.format](report), args.output)
    return 0 if report.valid else 1


def run_history(args: argparse.Namespace, orchestrator: BuildOrchestrator) -> int:
    store = orchestrator.history(args.project)
    if args.clear:
        store.clear()
        logger.info(f"Cleared build history of {args.project}")
        return 0
    if args.export:
        store.export(args.export, args.export_format)
    if args.plot:
        plot_build_history(store.load(), args.plot, project_name=Path(args.project).resolve().name)
    _write_output(format_stats_text(store.stats()), None)
    return 0


def run_targets(args: argparse.Namespace, orchestrator: BuildOrchestrator) -> int:
    targets = orchestrator.get_build_targets(args.project)
    if not targets:
        logger.warning(f"No targets found in {args.project}")
        return 1
    _write_output("\n".join(targets), None)
    return 0


def run_deps(args: argparse.Namespace, orchestrator: BuildOrchestrator) -> int:
    dependencies = orchestrator.get_build_dependencies(args.project)
    if not dependencies:
        logger.warning(f"No library jars found in {args.project}")
        return 0
    lines = [
        f"{dep.file_name:<48} {dep.version or '-':<12} {dep.size_formatted:>10}"
        for dep in dependencies
    ]
    _write_output("\n".join(lines), None)
    return 0


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line entry point.

    Raises:
        SystemExit: With status 0 on success and 1 on a failed build, an
            invalid project or a command error. argparse exits with 2 on
            malformed arguments.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.config:
        try:
            set_config_path(Path(validate_path_exists(args.config, field_name="--config")))
        except ValidationError as e:
            handle_cli_error(error=e, context="config path validation", exit_code=1, logger=logger)

    try:
        config = get_config()
    except (FileNotFoundError, tomllib.TOMLDecodeError, ValidationError) as e:
        handle_cli_error(error=e, context="configuration loading", exit_code=1, logger=logger)

    cancel_event = threading.Event()
    _install_signal_handlers(cancel_event)
    orchestrator = BuildOrchestrator(config=config)

    try:
        if args.command == "build":
            status = run_build(args, orchestrator, cancel_event)
        elif args.command == "validate":
            status = run_validate(args, ValidationPipeline(config=config), cancel_event)
        elif args.command == "history":
            status = run_history(args, orchestrator)
        elif args.command == "targets":
            status = run_targets(args, orchestrator)
        else:
            status = run_deps(args, orchestrator)
    except (AixBuildError, ValidationError, OSError) as e:
        handle_cli_error(error=e, context=f"{args.command} command", exit_code=1, logger=logger)

    sys.exit(status)


if __name__ == "__main__":
    main_cli()
