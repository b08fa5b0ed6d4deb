"""Unpack exported HTML bundles and pick the entry document.

Knowledge-base exports usually arrive as a zip archive. These helpers
turn such an archive into a directory plus a ``file://`` entry URL that
``build_export_async`` can consume.

Example usage:

    from crawlpdf.bundle import entry_url_for, prepared_bundle, select_entry

    with prepared_bundle("notion-export.zip") as bundle:
        entry = select_entry(bundle.candidates)
        url = entry_url_for(bundle.root / entry)
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Union
from urllib.parse import urlparse

LOGGER = logging.getLogger(__name__)

MAX_ARCHIVE_BYTES = 100 * 1024 * 1024
TEMP_PREFIX = "crawlpdf_"

PathLike = Union[str, Path]


class BundleError(ValueError):
    """Raised when an archive cannot be used as an export bundle."""


class EntrySelectionRequired(BundleError):
    """Raised when several entry candidates exist and none was chosen."""

    def __init__(self, candidates: List[str]) -> None:
        self.candidates = list(candidates)
        super().__init__(
            f"{len(self.candidates)} HTML files found; choose an entry document"
        )


@dataclass(frozen=True)
class PreparedBundle:
    """An extracted archive and the HTML files found in it."""

    root: Path
    candidates: List[str] = field(default_factory=list)


def extract_bundle(archive_path: PathLike, dest_dir: PathLike) -> Path:
    """Extract a zip archive into ``dest_dir`` and return the directory."""
    archive = Path(archive_path).expanduser()
    if not archive.is_file():
        raise BundleError(f"Archive not found: {archive}")
    if archive.stat().st_size > MAX_ARCHIVE_BYTES:
        raise BundleError(
            f"Archive exceeds {MAX_ARCHIVE_BYTES // (1024 * 1024)} MB: {archive}"
        )
    if not zipfile.is_zipfile(archive):
        raise BundleError(f"Only ZIP files are allowed: {archive}")

    dest = Path(dest_dir).resolve()
    dest.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(archive) as zf:
        for member in zf.namelist():
            target = (dest / member).resolve()
            if target != dest and dest not in target.parents:
                raise BundleError(f"Archive entry escapes extraction dir: {member}")
        try:
            zf.extractall(dest)
        except (zipfile.BadZipFile, OSError) as exc:
            raise BundleError(f"Failed to unzip file: {exc}") from exc

    LOGGER.info("Extracted %s to %s", archive, dest)
    return dest


def find_html_files(root: PathLike) -> List[str]:
    """Relative POSIX paths of every ``.html`` file under ``root``, sorted."""
    base = Path(root)
    found = [
        path.relative_to(base).as_posix()
        for path in base.rglob("*")
        if path.is_file() and path.suffix.lower() == ".html"
    ]
    return sorted(found)


def select_entry(candidates: List[str], requested: Optional[str] = None) -> str:
    """Choose the entry document among ``candidates``.

    A requested entry wins if present. Otherwise the alphabetically first
    top-level file is used, then a lone nested file.

    Raises:
        BundleError: If there are no candidates or ``requested`` is unknown.
        EntrySelectionRequired: If the choice is ambiguous.
    """
    if not candidates:
        raise BundleError("No HTML files found in bundle")

    if requested:
        wanted = requested.replace("\\", "/").lstrip("/")
        if wanted not in candidates:
            raise BundleError(f"Selected HTML file not found: {requested}")
        return wanted

    top_level = sorted(name for name in candidates if "/" not in name)
    if top_level:
        return top_level[0]
    if len(candidates) == 1:
        return candidates[0]
    raise EntrySelectionRequired(candidates)


def entry_url_for(path: PathLike) -> str:
    """Absolute, percent-encoded ``file://`` URL for a local document."""
    return Path(path).expanduser().resolve().as_uri()


def resolve_entry_url(value: str) -> str:
    """Turn a file URL or a filesystem path into a ``file://`` URL."""
    parsed = urlparse(value)
    if parsed.scheme.lower() == "file":
        return value
    # Single-letter schemes are Windows drive letters
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValueError(f"Only local file URLs are supported, got {value!r}")
    path = Path(value).expanduser()
    if not path.is_file():
        raise ValueError(f"Entry HTML file not found: {path}")
    return entry_url_for(path)


@contextmanager
def prepared_bundle(archive_path: PathLike) -> Iterator[PreparedBundle]:
    """Extract ``archive_path`` into a temp dir that is removed on exit."""
    temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
    try:
        root = extract_bundle(archive_path, temp_dir)
        yield PreparedBundle(root=root, candidates=find_html_files(root))
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
