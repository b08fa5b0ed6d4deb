"""Browser-backed page rendering.

The traversal and assembly code only talk to the ``PageRenderer``
protocol. ``PlaywrightRenderer`` implements it with a single headless
Chromium instance; tests substitute a scripted fake.

Example usage:

    from crawlpdf.config import LayoutOptions
    from crawlpdf.renderer import PlaywrightRenderer

    layout = LayoutOptions()
    async with PlaywrightRenderer(layout) as renderer:
        page = await renderer.open("file:///tmp/export/index.html")
        await renderer.wait_until_network_idle(page)
        links = await renderer.extract_links(page)
        pdf_bytes = await renderer.capture_document(page, layout)
        await renderer.close(page)
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from .config import LayoutOptions
from .errors import CaptureError, NavigationError
from .links import extract_anchor_hrefs

LOGGER = logging.getLogger(__name__)


class PageRenderer(Protocol):
    """Capability the traversal needs from a browser engine."""

    async def open(self, url: str) -> Any:
        ...

    async def wait_until_network_idle(self, handle: Any) -> None:
        ...

    async def extract_links(self, handle: Any) -> List[str]:
        ...

    async def capture_document(self, handle: Any, layout: LayoutOptions) -> bytes:
        ...

    async def close(self, handle: Any) -> None:
        ...


class PlaywrightRenderer:
    """One Chromium browser shared by every page of a run."""

    def __init__(
        self,
        layout: Optional[LayoutOptions] = None,
        *,
        headless: bool = True,
    ) -> None:
        self.layout = layout or LayoutOptions()
        self.headless = headless
        self._playwright: Any = None
        self._browser: Any = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.stop()
        return False

    async def start(self) -> None:
        """Launch the browser.

        Raises:
            RuntimeError: If Playwright is not installed.
        """
        try:
            from playwright.async_api import async_playwright
        except ImportError as exc:
            raise RuntimeError(
                "Playwright is required for PDF rendering. "
                "Install it with: pip install playwright && playwright install chromium"
            ) from exc

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        LOGGER.debug("Browser launched (headless=%s)", self.headless)

    async def stop(self) -> None:
        """Close the browser and the Playwright driver."""
        try:
            if self._browser is not None:
                await self._browser.close()
        finally:
            self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        LOGGER.debug("Browser closed")

    async def open(self, url: str) -> Any:
        if self._browser is None:
            raise RuntimeError("Renderer is not started")

        page = await self._browser.new_page()
        try:
            await page.set_viewport_size(self.layout.viewport)
            page.set_default_navigation_timeout(self.layout.navigation_timeout_ms)
            await page.goto(url, wait_until="load")
        except Exception as exc:
            await _close_quietly(page)
            raise NavigationError(url, exc) from exc
        return page

    async def wait_until_network_idle(self, handle: Any) -> None:
        try:
            await handle.wait_for_load_state(
                self.layout.wait_until,
                timeout=self.layout.navigation_timeout_ms,
            )
        except Exception as exc:
            raise NavigationError(handle.url, exc) from exc

    async def extract_links(self, handle: Any) -> List[str]:
        try:
            return await extract_anchor_hrefs(handle)
        except Exception as exc:
            raise NavigationError(handle.url, exc) from exc

    async def capture_document(self, handle: Any, layout: LayoutOptions) -> bytes:
        try:
            return await handle.pdf(**layout.to_pdf_kwargs())
        except Exception as exc:
            raise CaptureError(handle.url, exc) from exc

    async def close(self, handle: Any) -> None:
        await handle.close()


async def _close_quietly(page: Any) -> None:
    try:
        await page.close()
    except Exception as exc:
        LOGGER.debug("Ignoring error while closing page: %s", exc)
