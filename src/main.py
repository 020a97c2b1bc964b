# src/main.py — v2
"""CLI entry point: check and hash commands.

Usage:
    shalens check <path>... [--fix] [--json] [--strict] [--window N]
    shalens hash <url>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from shalens.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from pydantic import ValidationError

    from shalens.config.settings import ConfigurationError

    try:
        settings = _load_settings(args)
    except (ConfigurationError, ValidationError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="shalens",
        description=f"shalens v{__version__} - keep sha256 declarations in sync with their URLs",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- check ---
    p_check = subparsers.add_parser(
        "check", help="Verify declared checksums in files or directories",
    )
    p_check.add_argument("paths", type=Path, nargs="+", help="Files or directories")
    p_check.add_argument(
        "--fix", action="store_true",
        help="Rewrite mismatched and insert missing checksums in place",
    )
    p_check.add_argument(
        "--json", action="store_true",
        help="Print the result as JSON",
    )
    p_check.add_argument(
        "--strict", action="store_true",
        help="Only treat 64-hex-character values as digest declarations",
    )
    p_check.add_argument(
        "--window", type=int, default=None,
        help="Lines searched above a sha256 for its url (default: 10)",
    )
    p_check.add_argument(
        "--no-recursive", action="store_true",
        help="Do not descend into subdirectories",
    )
    p_check.set_defaults(func=_cmd_check)

    # --- hash ---
    p_hash = subparsers.add_parser(
        "hash", help="Download a URL and print its sha256",
    )
    p_hash.add_argument("url", help="URL to download")
    p_hash.set_defaults(func=_cmd_hash)

    return parser


def _load_settings(args: argparse.Namespace):
    from shalens.config.settings import load_settings

    overrides: dict[str, object] = {}
    if getattr(args, "strict", False):
        overrides["digest_matching"] = "strict"
    if getattr(args, "window", None) is not None:
        overrides["lookback_window"] = args.window
    return load_settings(**overrides)


async def _cmd_check(args: argparse.Namespace, settings) -> int:
    """Check every given file, and every definition file under given directories."""
    from shalens.api.facade import create_engine
    from shalens.batch.scanner import BatchScanner, summarize

    for path in args.paths:
        if not path.exists():
            logger.error("Path not found: %s", path)
            return 1

    t0 = time.perf_counter()
    files: list[Path] = []

    async with create_engine(settings) as engine:
        scanner = BatchScanner(engine)
        for path in args.paths:
            if path.is_dir():
                found = scanner.discover(path, recursive=not args.no_recursive)
                files.extend(Path(f.file_path) for f in found)
            else:
                files.append(path)

        reports = await scanner.check_paths(files, fix=args.fix)

    result = summarize(", ".join(str(p) for p in args.paths), reports, time.perf_counter() - t0)

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        _print_result(result)

    remaining = sum(r.remaining for r in result.files)
    return 0 if remaining == 0 and result.errors == 0 else 1


async def _cmd_hash(args: argparse.Namespace, settings) -> int:
    """Print the sha256 of a URL."""
    from shalens.api.facade import create_engine
    from shalens.checksum.hasher import HashComputeError

    async with create_engine(settings) as engine:
        try:
            digest = await engine.updater.resolve(args.url)
        except HashComputeError as exc:
            logger.error("Failed to compute checksum: %s", exc)
            return 1

    print(digest)
    return 0


def _print_result(result: object) -> None:
    """Print a human-readable summary of a BatchResult."""
    for file_report in result.files:
        if file_report.error is not None:
            print(f"{file_report.file_path}: error: {file_report.error}")
            continue
        report = file_report.report
        for finding in report.findings:
            status = "fixed" if file_report.fixed else finding.kind.replace("_", " ")
            print(
                f"{file_report.file_path}:{finding.line + 1}:{finding.column + 1}: "
                f"{status}: {finding.url} -> {finding.expected_digest}"
            )
        for failure in report.failures:
            print(f"{file_report.file_path}: fetch failed: {failure.message}")

    print(f"\nChecked {result.total_files_found} file(s):")
    print(f"  Findings:        {result.findings}")
    print(f"  Fixed:           {result.fixed}")
    print(f"  Fetch failures:  {result.fetch_failures}")
    print(f"  Errors:          {result.errors}")


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from shalens.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
