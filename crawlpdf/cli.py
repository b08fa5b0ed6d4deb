"""Command-line interface for exporting linked HTML pages to one PDF."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import env_float, env_int, load_config

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "crawlpdf"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def _load_config() -> None:
    """Load .env from the working directory or ~/.config/crawlpdf/.env."""
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


_load_config()

from .bundle import (
    EntrySelectionRequired,
    entry_url_for,
    prepared_bundle,
    resolve_entry_url,
    select_entry,
)
from .config import (
    CAP_POLICIES,
    MAX_PAGES,
    ExportOptions,
    RenderOverrides,
    build_export_options,
)
from .document import ExportResult
from .generator import build_export_async


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="crawlpdf",
        description=(
            "Follow local links from an entry HTML page and merge every "
            "reachable page into a single PDF."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Entry page as file URL
  crawlpdf -u file:///home/me/export/index.html -o out/

  # Entry page as path
  crawlpdf -u ./export/index.html

  # Zip export, entry picked automatically
  crawlpdf --zip notion-export.zip -o out/

  # List candidate entry pages inside an archive
  crawlpdf --zip notion-export.zip --list-entries

  # Pick a nested entry page and keep going past broken pages
  crawlpdf --zip notion-export.zip --entry Workspace/Home.html --isolate-failures
""",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "-u",
        "--url",
        type=str,
        default=None,
        help="Entry HTML file as file:// URL or filesystem path",
    )
    source.add_argument(
        "--zip",
        type=str,
        default=None,
        help="ZIP archive containing the HTML export",
    )
    parser.add_argument(
        "--entry",
        type=str,
        default=None,
        help="Entry HTML file inside the archive (relative path)",
    )
    parser.add_argument(
        "--list-entries",
        action="store_true",
        help="List HTML files inside the archive and exit",
    )
    parser.add_argument(
        "-o",
        "--out-dir",
        type=str,
        default=os.getenv("CRAWLPDF_OUTPUT_DIR", "out"),
        help="Output directory (default: $CRAWLPDF_OUTPUT_DIR or ./out)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=env_int("CRAWLPDF_MAX_PAGES", MAX_PAGES),
        help=f"Maximum distinct pages to render (default: {MAX_PAGES})",
    )
    parser.add_argument(
        "--on-cap",
        type=str,
        choices=list(CAP_POLICIES),
        default=os.getenv("CRAWLPDF_ON_CAP", "warn"),
        help="Behaviour when the page limit is reached (default: warn)",
    )
    parser.add_argument(
        "--isolate-failures",
        action="store_true",
        help="Skip pages that fail to load or print instead of aborting",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=env_float("CRAWLPDF_TIMEOUT", 300.0),
        help="Wall-clock limit for the whole export in seconds, 0 disables (default: 300)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _build_options(args: argparse.Namespace) -> ExportOptions:
    return build_export_options(
        RenderOverrides(
            max_pages=args.max_pages,
            on_cap=args.on_cap,
            isolate_failures=args.isolate_failures,
        )
    )


def _print_entries(candidates: List[str]) -> None:
    if not candidates:
        print("No HTML files found.")
        return
    print("HTML files:")
    for name in candidates:
        print(f"  {name}")


async def _export(
    entry_url: str, args: argparse.Namespace, options: ExportOptions
) -> ExportResult:
    job = build_export_async(entry_url, output_dir=args.out_dir, options=options)
    if args.timeout and args.timeout > 0:
        return await asyncio.wait_for(job, timeout=args.timeout)
    return await job


def _report(result: ExportResult) -> None:
    stats = result.stats
    logging.info(
        "Export complete: %d page(s) (%d captured, %d failed, %d over limit)",
        stats.get("total_pages", 0),
        stats.get("captured_pages", 0),
        stats.get("failed_pages", 0),
        stats.get("truncated_pages", 0),
    )
    for error in result.errors:
        logging.warning("Failed: %s - %s", error["url"], error["error"])


async def _run_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    if args.list_entries and not args.zip:
        raise ValueError("--list-entries requires --zip")
    if args.entry and not args.zip:
        raise ValueError("--entry requires --zip")

    options = _build_options(args)

    try:
        if args.zip:
            with prepared_bundle(args.zip) as bundle:
                if args.list_entries:
                    _print_entries(bundle.candidates)
                    return 0
                try:
                    entry = select_entry(bundle.candidates, args.entry)
                except EntrySelectionRequired as exc:
                    logging.error("%s. Pass one of them with --entry.", exc)
                    _print_entries(exc.candidates)
                    return 1
                logging.info("Using entry document: %s", entry)
                result = await _export(entry_url_for(bundle.root / entry), args, options)
        else:
            result = await _export(resolve_entry_url(args.url), args, options)
    except asyncio.TimeoutError:
        logging.error("Export timed out after %.0f seconds", args.timeout)
        return 2

    _report(result)
    print(result.export_path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the crawlpdf command."""
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    try:
        return asyncio.run(_run_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
