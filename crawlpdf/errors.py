"""Exceptions raised by the crawl-render-merge pipeline."""

from __future__ import annotations

from typing import Optional


class CrawlPdfError(RuntimeError):
    """Base class for export failures."""


class NavigationError(CrawlPdfError):
    """Raised when the renderer cannot load a URL."""

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to load {url}{detail}")


class CaptureError(CrawlPdfError):
    """Raised when a PDF snapshot cannot be produced or stored for a page."""

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to capture {url}{detail}")


class CapacityExceeded(CrawlPdfError):
    """Raised when the page cap is hit and the cap policy is ``error``."""

    def __init__(self, url: str, limit: int) -> None:
        self.url = url
        self.limit = limit
        super().__init__(f"Page limit of {limit} reached before {url}")


class AssemblyError(CrawlPdfError):
    """Raised when the merged PDF cannot be produced."""

    def __init__(self, path: str, cause: Optional[BaseException] = None) -> None:
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to assemble {path}{detail}")
