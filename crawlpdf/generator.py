"""Run one export: crawl from an entry page, render, merge."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union
from urllib.parse import urlparse

from .assembler import clean_stale_artifacts, merge_artifacts
from .config import ExportOptions, build_export_options
from .document import ExportResult
from .links import LOCAL_SCHEME
from .renderer import PlaywrightRenderer
from .traversal import TraversalController

LOGGER = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("out")

PathLike = Union[str, Path]

# Working dir -> (owning event loop, lock)
_WORKDIR_LOCKS: Dict[Path, Tuple[asyncio.AbstractEventLoop, asyncio.Lock]] = {}


def _validate_entry_url(entry_url: str) -> None:
    parsed = urlparse(entry_url or "")
    if parsed.scheme.lower() != LOCAL_SCHEME or not parsed.path:
        raise ValueError(f"Entry must be an absolute file:// URL, got {entry_url!r}")


def _working_dir_lock(working_dir: Path) -> asyncio.Lock:
    """Lock serializing exports that share ``working_dir``."""
    loop = asyncio.get_running_loop()
    entry = _WORKDIR_LOCKS.get(working_dir)
    if entry is None or entry[0] is not loop:
        entry = _WORKDIR_LOCKS[working_dir] = (loop, asyncio.Lock())
    return entry[1]


def _prepare_working_dir(working_dir: Path, export_name: str) -> None:
    working_dir.mkdir(parents=True, exist_ok=True)
    clean_stale_artifacts(working_dir)
    # A failed run must not leave an older export looking like its result
    (working_dir / export_name).unlink(missing_ok=True)


def _discard_partial(working_dir: Path) -> None:
    try:
        clean_stale_artifacts(working_dir)
    except OSError as exc:
        LOGGER.warning("Could not remove intermediate artifacts: %s", exc)


async def build_export_async(
    entry_url: str,
    *,
    output_dir: Optional[PathLike] = None,
    options: Optional[ExportOptions] = None,
) -> ExportResult:
    """
    Crawl ``entry_url`` depth-first and merge every reachable page into one PDF.

    Exports targeting the same directory run one after another. Any
    export left there by an earlier run is removed before crawling.

    Args:
        entry_url: ``file://`` URL of the entry HTML document.
        output_dir: Working directory for intermediates and the export.
        options: Optional ExportOptions; defaults to build_export_options().

    Returns:
        ExportResult with the export path, page records, and stats.

    Raises:
        ValueError: If the entry is not a local file URL.
        CrawlPdfError: If a page cannot be loaded or captured, the page
            cap is hit with the ``error`` policy, or the merge fails.
    """
    _validate_entry_url(entry_url)
    opts = options or build_export_options()
    working_dir = Path(output_dir or DEFAULT_OUTPUT_DIR).expanduser().resolve()

    lock = _working_dir_lock(working_dir)
    if lock.locked():
        LOGGER.info("Waiting for another export into %s", working_dir)
    async with lock:
        return await _export_into(entry_url, working_dir, opts)


async def _export_into(
    entry_url: str, working_dir: Path, opts: ExportOptions
) -> ExportResult:
    _prepare_working_dir(working_dir, opts.export_name)

    completed = False
    try:
        async with PlaywrightRenderer(opts.layout, headless=opts.headless) as renderer:
            controller = TraversalController(
                renderer,
                working_dir,
                layout=opts.layout,
                max_pages=opts.max_pages,
                on_cap=opts.on_cap,
                isolate_failures=opts.isolate_failures,
            )
            await controller.visit(entry_url)

        assembled = merge_artifacts(
            controller.order,
            working_dir,
            export_name=opts.export_name,
        )
        completed = True
    finally:
        if not completed:
            _discard_partial(working_dir)

    pages = controller.pages
    stats = {
        "total_pages": len(pages),
        "captured_pages": sum(1 for p in pages if p.status == "captured"),
        "failed_pages": sum(1 for p in pages if p.status == "failed"),
        "missing_artifacts": len(assembled.missing),
        "truncated_pages": len(controller.truncated),
        "pdf_pages": assembled.page_count,
    }
    LOGGER.info(
        "Export complete: %d page(s) merged into %s",
        len(assembled.merged),
        assembled.path,
    )

    return ExportResult(
        export_path=assembled.path,
        pages=pages,
        errors=list(controller.errors),
        truncated=list(controller.truncated),
        stats=stats,
    )


async def generate_pdf_async(
    entry_url: str,
    *,
    output_dir: Optional[PathLike] = None,
    options: Optional[ExportOptions] = None,
) -> str:
    """Export ``entry_url`` and return the path of the merged PDF."""
    result = await build_export_async(entry_url, output_dir=output_dir, options=options)
    return result.export_path


def generate_pdf(
    entry_url: str,
    *,
    output_dir: Optional[PathLike] = None,
    options: Optional[ExportOptions] = None,
) -> str:
    """Synchronous wrapper for generate_pdf_async."""
    return asyncio.run(
        generate_pdf_async(entry_url, output_dir=output_dir, options=options)
    )
