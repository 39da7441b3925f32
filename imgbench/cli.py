"""Command line entry point: run, list and verify the benchmarks."""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from imgbench.config import AppConfig, BenchSettings, DriverSettings
from imgbench.driver import Driver, format_table, library_versions, write_json
from imgbench.errors import SetupError
from imgbench.harness import BenchmarkHarness
from imgbench.logging_setup import setup_logging
from imgbench.registry import TASKS, registry
from imgbench.verify import verify_all

log = logging.getLogger(__name__)


def _count(minimum: int):
    """argparse type for integers no smaller than ``minimum``."""
    def parse(value: str) -> int:
        number = int(value)
        if number < minimum:
            raise argparse.ArgumentTypeError(f"must be at least {minimum}, got {number}")
        return number

    return parse


def _set_up(settings: BenchSettings) -> Optional[BenchmarkHarness]:
    harness = BenchmarkHarness(settings)
    try:
        harness.setup()
    except SetupError as e:
        log.error("Aborting before any benchmark ran: %s", e)
        print(f"Setup failed: {e}", file=sys.stderr)
        harness.release()
        return None
    return harness


def cmd_run(args, cfg: AppConfig, settings: BenchSettings) -> int:
    driver_settings = DriverSettings.from_config(cfg)
    overrides = {
        "warmup_count": args.warmup,
        "iteration_count": args.iterations,
        "invocations_per_iteration": args.invocations,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.no_memory:
        overrides["memory"] = False
    driver_settings = dataclasses.replace(driver_settings, **overrides)

    harness = _set_up(settings)
    if harness is None:
        return 1
    try:
        operations = harness.operations(task=args.task, pattern=args.filter)
        if not operations:
            print("No operations match the given filter.", file=sys.stderr)
            return 1

        versions = ", ".join(f"{lib} {ver}" for lib, ver in library_versions().items())
        print(f"imgbench: {len(operations)} operations; {versions}")
        results = Driver(harness, driver_settings).run(operations)
        print(format_table(results, driver_settings.hide_columns))
        if args.json:
            write_json(results, Path(args.json))
    finally:
        harness.release()

    return 2 if any(r.failed for r in results) else 0


def cmd_list(args, cfg: AppConfig, settings: BenchSettings) -> int:
    for op in registry.operations(task=args.task, libraries=settings.libraries):
        marker = " (baseline)" if op.library == settings.baseline else ""
        print(f"{op.name:<18} {op.library:<10} {op.task:<7}{marker}  {op.description}")
    return 0


def cmd_verify(args, cfg: AppConfig, settings: BenchSettings) -> int:
    harness = _set_up(settings)
    if harness is None:
        return 1
    try:
        results = verify_all(harness)
    finally:
        harness.release()
    for r in results:
        print(f"{'OK' if r.ok else 'FAIL':<5} {r.name:<18} {r.detail}")
    return 0 if all(r.ok for r in results) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgbench",
        description="Compare JPEG decode and resize cost across image libraries",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Path to an imgbench.ini to use instead of the default")
    parser.add_argument("--fixture", help="JPEG to benchmark instead of the packaged fixture")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Measure the operations and print a results table")
    run.add_argument("--filter", help="Glob on operation names, e.g. 'vips_*'")
    run.add_argument("--task", choices=TASKS, help="Only run operations of this task")
    run.add_argument("--warmup", type=_count(0), help="Warmup invocations per operation")
    run.add_argument("--iterations", type=_count(1), help="Measured iterations per operation")
    run.add_argument("--invocations", type=_count(1), help="Invocations per measured iteration")
    run.add_argument("--no-memory", action="store_true", help="Skip the allocation pass")
    run.add_argument("--json", help="Also write results to this JSON file")
    run.set_defaults(handler=cmd_run)

    lst = sub.add_parser("list", help="List registered operations")
    lst.add_argument("--task", choices=TASKS)
    lst.set_defaults(handler=cmd_list)

    verify = sub.add_parser("verify", help="Run every operation once and check its output")
    verify.set_defaults(handler=cmd_verify)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    cfg = AppConfig(Path(args.config)) if args.config else AppConfig()
    settings = BenchSettings.from_config(cfg)
    if args.fixture:
        settings = dataclasses.replace(settings, fixture_path=Path(args.fixture))
    return args.handler(args, cfg, settings)


def cli():
    """CLI entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
