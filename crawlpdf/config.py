"""Factory functions for render layout and export run options."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

LOGGER = logging.getLogger(__name__)

# Hard ceiling on distinct pages rendered in one run
MAX_PAGES = 1000

EXPORT_FILENAME = "Export.pdf"

CAP_POLICIES = ("ignore", "warn", "error")

# Footer area is reserved in the printed page but rendered blank
EMPTY_TEMPLATE = "<span></span>"


@dataclass
class LayoutOptions:
    """Viewport and print settings applied to every rendered page."""

    viewport_width: int = 1920
    viewport_height: int = 1080
    page_format: str = "A4"
    margin_top: str = "20mm"
    margin_bottom: str = "20mm"
    print_background: bool = True
    display_header_footer: bool = True
    header_template: str = EMPTY_TEMPLATE
    footer_template: str = EMPTY_TEMPLATE
    wait_until: str = "networkidle"
    navigation_timeout_ms: int = 30000

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    def to_pdf_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for Playwright's ``page.pdf``."""
        return {
            "format": self.page_format,
            "print_background": self.print_background,
            "display_header_footer": self.display_header_footer,
            "header_template": self.header_template,
            "footer_template": self.footer_template,
            "margin": {"top": self.margin_top, "bottom": self.margin_bottom},
        }


@dataclass
class ExportOptions:
    """Run-level settings for one export."""

    max_pages: int = MAX_PAGES
    on_cap: str = "warn"
    isolate_failures: bool = False
    headless: bool = True
    export_name: str = EXPORT_FILENAME
    layout: LayoutOptions = field(default_factory=LayoutOptions)


@dataclass
class RenderOverrides:
    """Optional export overrides."""

    max_pages: Optional[int] = None
    on_cap: Optional[str] = None
    isolate_failures: Optional[bool] = None
    headless: Optional[bool] = None
    export_name: Optional[str] = None
    viewport_width: Optional[int] = None
    viewport_height: Optional[int] = None
    page_format: Optional[str] = None
    margin_top: Optional[str] = None
    margin_bottom: Optional[str] = None
    wait_until: Optional[str] = None
    navigation_timeout_ms: Optional[int] = None


def _convert_cap_policy(value: Optional[str], default: str) -> str:
    if not value:
        return default
    candidate = value.strip().lower()
    if candidate in CAP_POLICIES:
        return candidate
    LOGGER.warning("Unknown cap policy '%s'; falling back to %s.", value, default)
    return default


def _apply_overrides(options: ExportOptions, overrides: RenderOverrides) -> None:
    """Apply optional overrides to an ExportOptions instance."""
    if overrides.max_pages is not None:
        options.max_pages = max(0, int(overrides.max_pages))
    if overrides.on_cap:
        options.on_cap = _convert_cap_policy(overrides.on_cap, options.on_cap)
    if overrides.isolate_failures is not None:
        options.isolate_failures = overrides.isolate_failures
    if overrides.headless is not None:
        options.headless = overrides.headless
    if overrides.export_name:
        options.export_name = overrides.export_name

    layout = options.layout
    if overrides.viewport_width is not None:
        layout.viewport_width = overrides.viewport_width
    if overrides.viewport_height is not None:
        layout.viewport_height = overrides.viewport_height
    if overrides.page_format:
        layout.page_format = overrides.page_format
    if overrides.margin_top:
        layout.margin_top = overrides.margin_top
    if overrides.margin_bottom:
        layout.margin_bottom = overrides.margin_bottom
    if overrides.wait_until:
        layout.wait_until = overrides.wait_until
    if overrides.navigation_timeout_ms is not None:
        layout.navigation_timeout_ms = overrides.navigation_timeout_ms


def build_export_options(
    overrides: Optional[RenderOverrides] = None,
    base: Optional[ExportOptions] = None,
) -> ExportOptions:
    """ExportOptions with defaults for knowledge-base exports."""
    if base is not None:
        options = replace(base, layout=replace(base.layout))
    else:
        options = ExportOptions()
    if overrides:
        _apply_overrides(options, overrides)
    return options
