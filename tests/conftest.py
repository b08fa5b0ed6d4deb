"""Shared fixtures: a scripted renderer and small PDF helpers."""

from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pytest
from pypdf import PdfReader, PdfWriter

from crawlpdf.errors import CaptureError, NavigationError


def make_pdf(width: float, pages: int = 1) -> bytes:
    """Blank PDF whose pages are ``width`` points wide."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def page_widths(path: Path) -> List[float]:
    reader = PdfReader(str(path))
    return [float(page.mediabox.width) for page in reader.pages]


@dataclass(eq=False)
class FakePage:
    url: str
    closed: bool = False


class FakeRenderer:
    """Serves a fixed link graph; each URL prints as a page of unique width."""

    def __init__(
        self,
        graph: Dict[str, List[str]],
        *,
        fail_open: Iterable[str] = (),
        fail_capture: Iterable[str] = (),
        idle_delay: float = 0.0,
        canned_pdf: Optional[bytes] = None,
    ) -> None:
        self.graph = graph
        self.fail_open = set(fail_open)
        self.fail_capture = set(fail_capture)
        self.idle_delay = idle_delay
        self.canned_pdf = canned_pdf
        self.events: List[Tuple[str, str]] = []
        self.open_pages: List[FakePage] = []
        self.max_open = 0
        self.widths: Dict[str, float] = {}
        self.started = False
        self.stopped = False

    async def __aenter__(self) -> "FakeRenderer":
        self.started = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.stopped = True
        return False

    def width_for(self, url: str) -> float:
        return self.widths.setdefault(url, float(100 + len(self.widths)))

    async def open(self, url: str) -> FakePage:
        if url in self.fail_open:
            self.events.append(("open-failed", url))
            raise NavigationError(url, RuntimeError("net::ERR_FILE_NOT_FOUND"))
        page = FakePage(url)
        self.width_for(url)
        self.open_pages.append(page)
        self.max_open = max(self.max_open, len(self.open_pages))
        self.events.append(("open", url))
        return page

    async def wait_until_network_idle(self, handle: FakePage) -> None:
        if self.idle_delay:
            await asyncio.sleep(self.idle_delay)
        self.events.append(("idle", handle.url))

    async def extract_links(self, handle: FakePage) -> List[str]:
        return list(self.graph.get(handle.url, []))

    async def capture_document(self, handle: FakePage, layout) -> bytes:
        if handle.url in self.fail_capture:
            raise CaptureError(handle.url, RuntimeError("Printing failed"))
        self.events.append(("capture", handle.url))
        if self.canned_pdf is not None:
            return self.canned_pdf
        return make_pdf(self.width_for(handle.url))

    async def close(self, handle: FakePage) -> None:
        handle.closed = True
        self.open_pages.remove(handle)
        self.events.append(("close", handle.url))

    @property
    def opened(self) -> List[str]:
        return [url for kind, url in self.events if kind == "open"]

    @property
    def captured(self) -> List[str]:
        return [url for kind, url in self.events if kind == "capture"]

    def urls_in(self, path: Path) -> List[str]:
        """Map the pages of a merged PDF back to the URLs that produced them."""
        by_width = {width: url for url, width in self.widths.items()}
        return [by_width[width] for width in page_widths(path)]


@pytest.fixture
def fake_renderer():
    """Factory for FakeRenderer instances."""
    return FakeRenderer


@pytest.fixture
def pdf_bytes():
    return make_pdf


@pytest.fixture
def pdf_widths():
    return page_widths
