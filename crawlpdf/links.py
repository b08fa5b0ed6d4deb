"""Helpers for selecting which extracted links are followed."""

from __future__ import annotations

import posixpath
from typing import Any, Iterable, Iterator, List
from urllib.parse import unquote, urldefrag, urlparse

HANDLED_EXTENSION = ".html"
LOCAL_SCHEME = "file"

# Collects resolved hrefs for every anchor, in document order
ANCHOR_HREFS_JS = "anchors => anchors.map(a => a.href)"


def normalize_url(url: str) -> str:
    """Registry key for a URL: surrounding whitespace and fragment removed."""
    stripped, _fragment = urldefrag(url.strip())
    return stripped


def _strip_query_and_fragment(url: str) -> str:
    return url.split("?", 1)[0].split("#", 1)[0]


def link_extension(url: str) -> str:
    """Lowercased extension of the URL path, ignoring query and fragment."""
    path = unquote(_strip_query_and_fragment(url))
    return posixpath.splitext(path)[1].lower()


def is_in_scope(url: str) -> bool:
    """True for local ``file:`` links to ``.html`` documents."""
    if not url:
        return False
    scheme = urlparse(url.strip()).scheme.lower()
    if scheme != LOCAL_SCHEME:
        return False
    return link_extension(url.strip()) == HANDLED_EXTENSION


def filter_links(urls: Iterable[str]) -> Iterator[str]:
    """Yield in-scope links, keeping document order."""
    for url in urls:
        if is_in_scope(url):
            yield url


async def extract_anchor_hrefs(page: Any) -> List[str]:
    """Read the absolute ``href`` of every anchor on a loaded Playwright page."""
    hrefs = await page.eval_on_selector_all("a", ANCHOR_HREFS_JS)
    return [str(href) for href in hrefs or [] if href]
