"""Depth-first discovery and capture of linked local pages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

from .config import MAX_PAGES, LayoutOptions
from .document import PageRecord
from .errors import CapacityExceeded, CaptureError, NavigationError
from .links import filter_links, normalize_url
from .renderer import PageRenderer

LOGGER = logging.getLogger(__name__)


def artifact_filename(index: int) -> str:
    return f"{index}.pdf"


@dataclass
class _Frame:
    """An opened page waiting for its children to finish."""

    url: str
    filename: str
    handle: Any
    links: Iterator[str]
    root: bool = False


class TraversalController:
    """Walks the link graph from one entry page.

    URLs are registered, and their artifact filename appended to
    ``order``, at the moment they are first discovered. A page is
    captured only after every page discovered beneath it has been
    captured, so ``order`` is a pre-order listing while captures happen
    post-order. Frames live on an explicit stack instead of the Python
    call stack.
    """

    def __init__(
        self,
        renderer: PageRenderer,
        working_dir: Path,
        *,
        layout: Optional[LayoutOptions] = None,
        max_pages: int = MAX_PAGES,
        on_cap: str = "ignore",
        isolate_failures: bool = False,
    ) -> None:
        self.renderer = renderer
        self.working_dir = Path(working_dir)
        self.layout = layout or LayoutOptions()
        self.max_pages = max_pages
        self.on_cap = on_cap
        self.isolate_failures = isolate_failures

        self.registry: Dict[str, str] = {}
        self.order: List[str] = []
        self.records: Dict[str, PageRecord] = {}
        self.truncated: List[str] = []
        self.errors: List[Dict[str, str]] = []
        self._truncated_seen: Set[str] = set()
        self._next_index = 0

    def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self.registry

    def register(self, url: str) -> Optional[str]:
        """Assign the next artifact filename to ``url``.

        Returns None when the URL is already known or the page cap has
        been reached.
        """
        key = normalize_url(url)
        if key in self.registry:
            LOGGER.info("Already visited %s! Skipping...", key)
            return None
        if self._next_index >= self.max_pages:
            self._handle_cap(key)
            return None

        filename = artifact_filename(self._next_index)
        self.registry[key] = filename
        self.order.append(filename)
        self.records[filename] = PageRecord(
            index=self._next_index,
            url=key,
            filename=filename,
            status="pending",
        )
        self._next_index += 1
        return filename

    def _handle_cap(self, url: str) -> None:
        if url in self._truncated_seen:
            return
        self._truncated_seen.add(url)
        self.truncated.append(url)

        if self.on_cap == "error":
            raise CapacityExceeded(url, self.max_pages)
        if self.on_cap == "warn":
            if len(self.truncated) == 1:
                LOGGER.warning(
                    "Reached page limit of %d; further pages are left out of the export",
                    self.max_pages,
                )
            LOGGER.debug("Dropped %s (page limit)", url)

    async def visit(self, url: str) -> None:
        """Discover and capture ``url`` and everything reachable from it."""
        filename = self.register(url)
        if filename is None:
            return

        root = await self._open_frame(normalize_url(url), filename)
        root.root = True
        stack: List[_Frame] = [root]
        try:
            while stack:
                frame = stack[-1]
                child = self._next_child(frame)
                if child is None:
                    stack.pop()
                    await self._finish(frame)
                    continue

                child_filename = self.register(child)
                if child_filename is None:
                    continue
                try:
                    stack.append(
                        await self._open_frame(normalize_url(child), child_filename)
                    )
                except NavigationError as exc:
                    if not self.isolate_failures:
                        raise
                    self._record_failure(child_filename, exc, stage="navigate")
        finally:
            while stack:
                await self._release(stack.pop())

    def _next_child(self, frame: _Frame) -> Optional[str]:
        for link in frame.links:
            if not self.is_visited(link):
                return link
        return None

    async def _open_frame(self, url: str, filename: str) -> _Frame:
        LOGGER.info("Generating PDF for: %s", url)
        handle = await self.renderer.open(url)
        try:
            await self.renderer.wait_until_network_idle(handle)
            links = await self.renderer.extract_links(handle)
        except BaseException:
            await self._release_handle(handle)
            raise
        LOGGER.debug("Found %d link(s) on %s", len(links), url)
        return _Frame(url=url, filename=filename, handle=handle, links=filter_links(links))

    async def _finish(self, frame: _Frame) -> None:
        try:
            data = await self.renderer.capture_document(frame.handle, self.layout)
            try:
                (self.working_dir / frame.filename).write_bytes(data)
            except OSError as exc:
                raise CaptureError(frame.url, exc) from exc
        except CaptureError as exc:
            if not self.isolate_failures or frame.root:
                raise
            self._record_failure(frame.filename, exc, stage="capture")
        else:
            self.records[frame.filename].status = "captured"
        finally:
            await self.renderer.close(frame.handle)

    async def _release(self, frame: _Frame) -> None:
        await self._release_handle(frame.handle)

    async def _release_handle(self, handle: Any) -> None:
        try:
            await self.renderer.close(handle)
        except Exception as exc:
            LOGGER.debug("Ignoring error while closing page: %s", exc)

    def _record_failure(self, filename: str, exc: Exception, *, stage: str) -> None:
        record = self.records[filename]
        record.status = "failed"
        record.error_message = str(exc)
        LOGGER.warning("Skipping %s: %s", record.url, exc)
        self.errors.append({"url": record.url, "error": str(exc), "stage": stage})

    @property
    def pages(self) -> List[PageRecord]:
        """Page records in discovery order."""
        return [self.records[filename] for filename in self.order]
