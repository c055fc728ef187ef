"""Command-line entry point for the security pattern validator."""

import argparse
import logging
from collections.abc import Sequence
from typing import Optional

import colorama

from . import __version__
from .aggregator import aggregate
from .budget import ExecutionBudgetMonitor
from .config import CATEGORY_SETTINGS, ConfigError, ValidatorConfig, load_config
from .models import CheckCategory, CheckResult, RunReport, Severity
from .reporting import exit_code, render_annotations, render_console, render_json, write_job_summary
from .scanners import ALL_CHECKS, Check, ScanContext
from .scanners.common import SourceIndex
from .suppression import SuppressionResolver

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "security_validator"
FORMATS = ("text", "json", "github")


def run_validation(
    config: ValidatorConfig,
    checks: Optional[Sequence[type[Check]]] = None,
) -> RunReport:
    """Run every enabled check against the configured source tree.

    Categories whose severity resolves to ``off`` are not run and are
    reported as disabled.
    """
    monitor = ExecutionBudgetMonitor()
    logger.info("Running Security Pattern Validation...")

    index = SourceIndex.load(config.source_root, config.project_root)
    if not len(index):
        logger.info(f"No source files found under {config.source_root} - nothing to check")

    resolver = SuppressionResolver()
    results: list[CheckResult] = []
    disabled: list[CheckCategory] = []

    for check_cls in checks or ALL_CHECKS:
        check = check_cls()
        severity = config.severity(check.category)
        if severity == Severity.off:
            logger.info(f"Skipping {check.name} check ({check.severity_key}=off)")
            disabled.append(check.category)
            continue
        context = ScanContext(index=index, resolver=resolver, config=config, severity=severity)
        results.append(check.run(context))

    return aggregate(results, disabled, monitor.status())


def severity_epilog() -> str:
    lines = ["category severity (error, warning or off):"]
    for settings in CATEGORY_SETTINGS.values():
        lines.append(f"  {settings.env_key:<36} {settings.description} (default: {settings.default.value})")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="security-validator",
        description="Scan a Next.js source tree for security and POPIA compliance patterns",
        epilog=severity_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Shorthand for --format json",
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Project root; report paths are relative to it (default: current directory)",
    )
    parser.add_argument(
        "--source-dir",
        default=None,
        help="Source directory relative to the root (default: $SECURITY_SOURCE_DIR or web/src)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    output_format = "json" if args.json else args.format

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logging.getLogger(PACKAGE_LOGGER).setLevel(
        logging.WARNING if output_format == "json" else logging.INFO
    )
    colorama.just_fix_windows_console()

    try:
        config = load_config(args.root, args.source_dir)
    except ConfigError as exc:
        parser.error(str(exc))

    report = run_validation(config)

    if output_format == "json":
        print(render_json(report))
    elif output_format == "github":
        for line in render_annotations(report):
            print(line)
    else:
        print(render_console(report))
        if config.ci:
            for line in render_annotations(report):
                print(line)

    if config.summary_path and (config.ci or output_format == "github"):
        write_job_summary(report, config.summary_path)

    return exit_code(report)


if __name__ == "__main__":
    raise SystemExit(main())
