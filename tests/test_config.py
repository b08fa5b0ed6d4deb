"""Tests for crawlpdf.config module."""

from __future__ import annotations

import logging

from crawlpdf.config import (
    EXPORT_FILENAME,
    MAX_PAGES,
    ExportOptions,
    LayoutOptions,
    RenderOverrides,
    build_export_options,
)


class TestLayoutOptions:
    def test_defaults(self):
        layout = LayoutOptions()
        assert layout.viewport == {"width": 1920, "height": 1080}
        assert layout.wait_until == "networkidle"

    def test_pdf_kwargs(self):
        kwargs = LayoutOptions(page_format="Letter", margin_top="10mm").to_pdf_kwargs()
        assert kwargs["format"] == "Letter"
        assert kwargs["print_background"] is True
        assert kwargs["display_header_footer"] is True
        assert kwargs["footer_template"] == "<span></span>"
        assert kwargs["margin"] == {"top": "10mm", "bottom": "20mm"}


class TestBuildExportOptions:
    def test_defaults(self):
        options = build_export_options()
        assert options.max_pages == MAX_PAGES == 1000
        assert options.on_cap == "warn"
        assert options.isolate_failures is False
        assert options.headless is True
        assert options.export_name == EXPORT_FILENAME

    def test_overrides_applied(self):
        options = build_export_options(
            RenderOverrides(
                max_pages=5,
                on_cap="ERROR",
                isolate_failures=True,
                headless=False,
                export_name="Handbook.pdf",
                viewport_width=800,
                viewport_height=600,
                page_format="Letter",
                margin_bottom="5mm",
                wait_until="load",
                navigation_timeout_ms=1000,
            )
        )
        assert options.max_pages == 5
        assert options.on_cap == "error"
        assert options.isolate_failures is True
        assert options.headless is False
        assert options.export_name == "Handbook.pdf"
        assert options.layout.viewport == {"width": 800, "height": 600}
        assert options.layout.page_format == "Letter"
        assert options.layout.margin_bottom == "5mm"
        assert options.layout.wait_until == "load"
        assert options.layout.navigation_timeout_ms == 1000

    def test_negative_cap_clamped(self):
        assert build_export_options(RenderOverrides(max_pages=-3)).max_pages == 0

    def test_unknown_cap_policy_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="crawlpdf.config"):
            options = build_export_options(RenderOverrides(on_cap="explode"))
        assert options.on_cap == "warn"
        assert "Unknown cap policy" in caplog.text

    def test_base_is_copied(self):
        base = ExportOptions(max_pages=10)
        options = build_export_options(RenderOverrides(viewport_width=640), base=base)
        assert options.max_pages == 10
        assert options.layout.viewport_width == 640
        assert base.layout.viewport_width == 1920
        assert options is not base
