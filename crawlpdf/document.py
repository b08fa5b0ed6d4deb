"""Data structures describing rendered pages and the merged export."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class PageRecord:
    """One registered URL and the intermediate artifact assigned to it."""

    index: int
    url: str
    filename: str
    status: str  # captured, failed, pending
    error_message: Optional[str] = None


@dataclass(slots=True)
class AssembledDocument:
    """Outcome of merging intermediate artifacts."""

    path: str
    page_count: int
    merged: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ExportResult:
    """Container for a finished export and its crawl statistics."""

    export_path: str
    pages: List[PageRecord] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)
    truncated: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
