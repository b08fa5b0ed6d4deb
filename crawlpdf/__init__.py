"""Merge a local HTML export into one ordered PDF.

Starting from an entry page, this package follows local ``.html`` links
depth-first, prints every reachable page with headless Chromium and
concatenates the results in the order the pages were first discovered.

Example usage:

    from crawlpdf import build_export_async, generate_pdf

    # Synchronous, returns the path of the merged PDF
    path = generate_pdf("file:///home/me/export/index.html", output_dir="out")

    # Async, with crawl statistics
    result = await build_export_async(
        "file:///home/me/export/index.html",
        output_dir="out",
    )
    for page in result.pages:
        print(page.index, page.url, page.status)

    # Custom limits
    from crawlpdf.config import RenderOverrides, build_export_options
    options = build_export_options(RenderOverrides(max_pages=50, on_cap="error"))
    path = generate_pdf("file:///home/me/export/index.html", options=options)
"""

from __future__ import annotations

from .assembler import clean_stale_artifacts, merge_artifacts
from .config import (
    EXPORT_FILENAME,
    MAX_PAGES,
    ExportOptions,
    LayoutOptions,
    RenderOverrides,
    build_export_options,
)
from .document import AssembledDocument, ExportResult, PageRecord
from .errors import (
    AssemblyError,
    CapacityExceeded,
    CaptureError,
    CrawlPdfError,
    NavigationError,
)
from .generator import build_export_async, generate_pdf, generate_pdf_async
from .links import is_in_scope, normalize_url
from .renderer import PageRenderer, PlaywrightRenderer
from .traversal import TraversalController

__all__ = [
    # Result types
    "AssembledDocument",
    "ExportResult",
    "PageRecord",
    # Errors
    "AssemblyError",
    "CapacityExceeded",
    "CaptureError",
    "CrawlPdfError",
    "NavigationError",
    # Export
    "build_export_async",
    "generate_pdf",
    "generate_pdf_async",
    # Building blocks
    "PageRenderer",
    "PlaywrightRenderer",
    "TraversalController",
    "clean_stale_artifacts",
    "merge_artifacts",
    "is_in_scope",
    "normalize_url",
    # Config (for advanced usage)
    "EXPORT_FILENAME",
    "MAX_PAGES",
    "ExportOptions",
    "LayoutOptions",
    "RenderOverrides",
    "build_export_options",
    # MCP Server
    "mcp",
]


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
