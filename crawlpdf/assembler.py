"""Merge per-page PDF artifacts into the final export."""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import List, Sequence

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from .config import EXPORT_FILENAME
from .document import AssembledDocument
from .errors import AssemblyError

LOGGER = logging.getLogger(__name__)

ARTIFACT_NAME = re.compile(r"^\d+\.pdf$")


def clean_stale_artifacts(working_dir: Path) -> int:
    """Delete intermediate artifacts left behind by an earlier run.

    Only files named like ``<n>.pdf`` are removed; the previous export and
    unrelated files stay in place.
    """
    directory = Path(working_dir)
    if not directory.is_dir():
        return 0

    removed = 0
    for path in directory.iterdir():
        if path.is_file() and ARTIFACT_NAME.match(path.name):
            path.unlink()
            removed += 1
    if removed:
        LOGGER.info("Removed %d stale artifact(s) from %s", removed, directory)
    return removed


def remove_artifacts(order: Sequence[str], working_dir: Path) -> None:
    directory = Path(working_dir)
    for filename in order:
        (directory / filename).unlink(missing_ok=True)


def merge_artifacts(
    order: Sequence[str],
    working_dir: Path,
    *,
    export_name: str = EXPORT_FILENAME,
) -> AssembledDocument:
    """Concatenate the artifacts named in ``order`` into one PDF.

    Artifacts that are not on disk are skipped. Every artifact named in
    ``order`` is deleted afterwards, whether or not it was merged.

    Raises:
        AssemblyError: If an artifact cannot be parsed or the export
            cannot be written.
    """
    directory = Path(working_dir)
    export_path = directory / export_name
    merged: List[str] = []
    missing: List[str] = []

    LOGGER.info("Merging PDF")
    try:
        writer = PdfWriter()
        for filename in order:
            path = directory / filename
            if not path.is_file():
                LOGGER.error("Missing PDF %s", path)
                missing.append(filename)
                continue
            try:
                reader = PdfReader(io.BytesIO(path.read_bytes()))
                for page in reader.pages:
                    writer.add_page(page)
            except (PdfReadError, OSError, ValueError) as exc:
                raise AssemblyError(str(path), exc) from exc
            merged.append(filename)

        page_count = len(writer.pages)
        try:
            with open(export_path, "wb") as fh:
                writer.write(fh)
        except OSError as exc:
            raise AssemblyError(str(export_path), exc) from exc
    finally:
        remove_artifacts(order, directory)

    LOGGER.info("PDF Saved at: %s", export_path)
    return AssembledDocument(
        path=str(export_path),
        page_count=page_count,
        merged=merged,
        missing=missing,
    )
