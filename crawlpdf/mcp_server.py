"""MCP Server exposing the HTML-to-PDF exporter.

Provides tools for:
- Exporting an entry HTML page and every linked local page to one PDF
- Exporting a zipped HTML bundle (e.g. a knowledge-base export)
- Listing candidate entry pages inside a bundle

Supports both STDIO and HTTP transports.

Usage:
    # STDIO
    python -m crawlpdf.mcp_server

    # HTTP (for remote access)
    python -m crawlpdf.mcp_server --transport http --port 8000

Environment Variables:
    CRAWLPDF_OUTPUT_DIR: Default output directory (default: ./out)
    CRAWLPDF_TIMEOUT: Default wall-clock limit per export in seconds (default: 300)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .bundle import (
    BundleError,
    EntrySelectionRequired,
    entry_url_for,
    prepared_bundle,
    resolve_entry_url,
    select_entry,
)
from .cli_config import env_float
from .config import MAX_PAGES, RenderOverrides, build_export_options
from .document import ExportResult
from .errors import CrawlPdfError
from .generator import build_export_async

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

OUTPUT_DIR = os.getenv("CRAWLPDF_OUTPUT_DIR", "out")
DEFAULT_TIMEOUT = env_float("CRAWLPDF_TIMEOUT", 300.0)

mcp = FastMCP(
    name="HTML to PDF Exporter",
    instructions="""
    Turns a local HTML export into one PDF by following links depth-first
    from an entry page.

    Tools:
       - export_pdf: Export from an entry HTML file (path or file:// URL)
       - export_bundle: Export from a ZIP archive of HTML files
       - list_bundle_entries: List candidate entry pages inside a ZIP archive

    Results are JSON with the PDF path and crawl statistics.
    """,
)


def _format_timestamp() -> str:
    """Get current timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _result_to_dict(result: ExportResult) -> Dict[str, Any]:
    """Convert ExportResult to a JSON-serializable dict."""
    return {
        "exported_at": _format_timestamp(),
        "export_path": result.export_path,
        "pages": [
            {
                "index": page.index,
                "url": page.url,
                "status": page.status,
                "error_message": page.error_message,
            }
            for page in result.pages
        ],
        "errors": result.errors,
        "truncated": result.truncated,
        "stats": result.stats,
    }


def _error(message: str, **extra: Any) -> str:
    LOGGER.error(message)
    payload: Dict[str, Any] = {"error": message}
    payload.update(extra)
    return json.dumps(payload, indent=2, ensure_ascii=False)


async def _run_export(
    entry_url: str,
    output_dir: Optional[str],
    max_pages: int,
    on_cap: str,
    isolate_failures: bool,
    timeout_seconds: Optional[float],
) -> str:
    options = build_export_options(
        RenderOverrides(
            max_pages=max_pages,
            on_cap=on_cap,
            isolate_failures=isolate_failures,
        )
    )
    limit = DEFAULT_TIMEOUT if timeout_seconds is None else timeout_seconds
    job = build_export_async(entry_url, output_dir=output_dir or OUTPUT_DIR, options=options)

    try:
        if limit and limit > 0:
            result = await asyncio.wait_for(job, timeout=limit)
        else:
            result = await job
    except asyncio.TimeoutError:
        return _error(f"Export timed out after {limit:.0f} seconds", entry=entry_url)
    except (CrawlPdfError, ValueError, OSError) as exc:
        return _error(str(exc), entry=entry_url)

    LOGGER.info("Export saved at %s", result.export_path)
    return json.dumps(_result_to_dict(result), indent=2, ensure_ascii=False)


# =============================================================================
# EXPORT TOOLS
# =============================================================================


async def export_pdf(
    entry: str,
    output_dir: Optional[str] = None,
    max_pages: int = MAX_PAGES,
    on_cap: str = "warn",
    isolate_failures: bool = False,
    timeout_seconds: Optional[float] = None,
):
    """
    Export an entry HTML page and every linked local HTML page to one PDF.

    Args:
        entry: Entry HTML file as a filesystem path or file:// URL
        output_dir: Directory for the merged Export.pdf (default: $CRAWLPDF_OUTPUT_DIR)
        max_pages: Maximum distinct pages to render (default: 1000)
        on_cap: Behaviour at the page limit - "ignore", "warn" (default) or "error"
        isolate_failures: Skip pages that fail instead of aborting (default: false)
        timeout_seconds: Wall-clock limit for the export (default: $CRAWLPDF_TIMEOUT)

    Returns:
        JSON with export_path, per-page status, errors and stats.
    """
    try:
        entry_url = resolve_entry_url(entry)
    except ValueError as exc:
        return _error(str(exc), entry=entry)

    LOGGER.info("Exporting from %s", entry_url)
    return await _run_export(
        entry_url, output_dir, max_pages, on_cap, isolate_failures, timeout_seconds
    )


async def export_bundle(
    archive_path: str,
    entry: Optional[str] = None,
    output_dir: Optional[str] = None,
    max_pages: int = MAX_PAGES,
    on_cap: str = "warn",
    isolate_failures: bool = False,
    timeout_seconds: Optional[float] = None,
):
    """
    Export a ZIP archive of HTML pages to one PDF.

    Args:
        archive_path: Path to the ZIP archive
        entry: Relative path of the entry page inside the archive. When omitted
            the first top-level HTML file is used; if there is none and several
            nested files exist, the candidates are returned instead.
        output_dir: Directory for the merged Export.pdf (default: $CRAWLPDF_OUTPUT_DIR)
        max_pages: Maximum distinct pages to render (default: 1000)
        on_cap: Behaviour at the page limit - "ignore", "warn" (default) or "error"
        isolate_failures: Skip pages that fail instead of aborting (default: false)
        timeout_seconds: Wall-clock limit for the export (default: $CRAWLPDF_TIMEOUT)

    Returns:
        JSON with export_path and stats, or an error with candidate entries.
    """
    try:
        with prepared_bundle(archive_path) as bundle:
            try:
                selected = select_entry(bundle.candidates, entry)
            except EntrySelectionRequired as exc:
                return _error(str(exc), candidates=exc.candidates)
            LOGGER.info("Using entry document: %s", selected)
            return await _run_export(
                entry_url_for(bundle.root / selected),
                output_dir,
                max_pages,
                on_cap,
                isolate_failures,
                timeout_seconds,
            )
    except BundleError as exc:
        return _error(str(exc), archive=archive_path)


async def list_bundle_entries(archive_path: str):
    """
    List the HTML files inside a ZIP archive.

    Args:
        archive_path: Path to the ZIP archive

    Returns:
        JSON with the candidate entry pages and the one picked by default.
    """
    try:
        with prepared_bundle(archive_path) as bundle:
            candidates = bundle.candidates
            try:
                default: Optional[str] = select_entry(candidates)
            except BundleError:
                default = None
    except BundleError as exc:
        return _error(str(exc), archive=archive_path)

    return json.dumps(
        {"archive": archive_path, "candidates": candidates, "default_entry": default},
        indent=2,
        ensure_ascii=False,
    )


mcp.tool(export_pdf)
mcp.tool(export_bundle)
mcp.tool(list_bundle_entries)


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the HTML to PDF exporter MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    CRAWLPDF_OUTPUT_DIR  Default output directory (default: ./out)
    CRAWLPDF_TIMEOUT     Default export time limit in seconds (default: 300)

Examples:
    # STDIO transport (default)
    python -m crawlpdf.mcp_server

    # HTTP transport (for remote access)
    python -m crawlpdf.mcp_server --transport http --port 8000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    LOGGER.info("Output directory: %s", OUTPUT_DIR)

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
