from __future__ import annotations

import asyncio
import importlib
import json
import zipfile
from unittest.mock import MagicMock, patch

import pytest

import crawlpdf
from crawlpdf import mcp_server
from crawlpdf.document import ExportResult, PageRecord
from crawlpdf.errors import NavigationError


def _result(path: str = "/tmp/out/Export.pdf") -> ExportResult:
    return ExportResult(
        export_path=path,
        pages=[
            PageRecord(index=0, url="file:///kb/index.html", filename="0.pdf", status="captured"),
            PageRecord(
                index=1,
                url="file:///kb/broken.html",
                filename="1.pdf",
                status="failed",
                error_message="Failed to load file:///kb/broken.html: boom",
            ),
        ],
        errors=[{"url": "file:///kb/broken.html", "error": "boom", "stage": "navigate"}],
        truncated=[],
        stats={"total_pages": 2, "captured_pages": 1, "failed_pages": 1},
    )


def _zip(path, members):
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return str(path)


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> dict:
    calls: dict = {}

    async def fake_build_export_async(entry_url, *, output_dir=None, options=None):
        calls["entry_url"] = entry_url
        calls["output_dir"] = output_dir
        calls["options"] = options
        return _result()

    monkeypatch.setattr(mcp_server, "build_export_async", fake_build_export_async)
    return calls


@pytest.mark.asyncio
async def test_export_pdf_forwards_options(captured: dict, tmp_path) -> None:
    page = tmp_path / "index.html"
    page.write_text("<p>hi</p>")

    raw = await mcp_server.export_pdf(
        entry=str(page),
        output_dir=str(tmp_path / "out"),
        max_pages=7,
        on_cap="error",
        isolate_failures=True,
        timeout_seconds=0,
    )
    data = json.loads(raw)

    assert captured["entry_url"] == page.resolve().as_uri()
    assert captured["output_dir"] == str(tmp_path / "out")
    assert captured["options"].max_pages == 7
    assert captured["options"].on_cap == "error"
    assert captured["options"].isolate_failures is True
    assert data["export_path"] == "/tmp/out/Export.pdf"
    assert data["pages"][1]["status"] == "failed"
    assert data["errors"][0]["stage"] == "navigate"
    assert "exported_at" in data


@pytest.mark.asyncio
async def test_export_pdf_default_output_dir(captured: dict, monkeypatch) -> None:
    monkeypatch.setattr(mcp_server, "OUTPUT_DIR", "/srv/exports")

    await mcp_server.export_pdf(entry="file:///kb/index.html")

    assert captured["output_dir"] == "/srv/exports"
    assert captured["options"].on_cap == "warn"


@pytest.mark.asyncio
async def test_export_pdf_missing_entry(captured: dict, tmp_path) -> None:
    data = json.loads(await mcp_server.export_pdf(entry=str(tmp_path / "absent.html")))

    assert "not found" in data["error"]
    assert captured == {}


@pytest.mark.asyncio
async def test_export_pdf_remote_url_rejected(captured: dict) -> None:
    data = json.loads(await mcp_server.export_pdf(entry="https://example.com/"))

    assert "Only local file URLs" in data["error"]
    assert data["entry"] == "https://example.com/"


@pytest.mark.asyncio
async def test_export_pdf_crawl_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing(entry_url, *, output_dir=None, options=None):
        raise NavigationError(entry_url, RuntimeError("net::ERR_FILE_NOT_FOUND"))

    monkeypatch.setattr(mcp_server, "build_export_async", failing)

    data = json.loads(await mcp_server.export_pdf(entry="file:///kb/index.html"))

    assert "ERR_FILE_NOT_FOUND" in data["error"]
    assert data["entry"] == "file:///kb/index.html"


@pytest.mark.asyncio
async def test_export_pdf_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    async def slow(entry_url, *, output_dir=None, options=None):
        await asyncio.sleep(5)

    monkeypatch.setattr(mcp_server, "build_export_async", slow)

    data = json.loads(
        await mcp_server.export_pdf(entry="file:///kb/index.html", timeout_seconds=0.05)
    )

    assert "timed out" in data["error"]


@pytest.mark.asyncio
async def test_export_bundle_auto_entry(captured: dict, tmp_path) -> None:
    archive = _zip(tmp_path / "export.zip", {"index.html": "x", "sub/a.html": "y"})

    data = json.loads(await mcp_server.export_bundle(archive_path=archive))

    assert data["export_path"] == "/tmp/out/Export.pdf"
    assert captured["entry_url"].endswith("/index.html")


@pytest.mark.asyncio
async def test_export_bundle_requires_selection(captured: dict, tmp_path) -> None:
    archive = _zip(tmp_path / "export.zip", {"a/x.html": "x", "b/y.html": "y"})

    data = json.loads(await mcp_server.export_bundle(archive_path=archive))

    assert data["candidates"] == ["a/x.html", "b/y.html"]
    assert captured == {}

    data = json.loads(await mcp_server.export_bundle(archive_path=archive, entry="b/y.html"))
    assert captured["entry_url"].endswith("/b/y.html")


@pytest.mark.asyncio
async def test_export_bundle_bad_archive(captured: dict, tmp_path) -> None:
    archive = tmp_path / "export.zip"
    archive.write_text("nope")

    data = json.loads(await mcp_server.export_bundle(archive_path=str(archive)))

    assert "Only ZIP" in data["error"]
    assert data["archive"] == str(archive)


@pytest.mark.asyncio
async def test_list_bundle_entries(tmp_path) -> None:
    archive = _zip(tmp_path / "export.zip", {"sub/a.html": "y", "sub/b.html": "z"})

    data = json.loads(await mcp_server.list_bundle_entries(archive_path=archive))

    assert data["candidates"] == ["sub/a.html", "sub/b.html"]
    assert data["default_entry"] is None


@pytest.mark.asyncio
async def test_list_bundle_entries_missing(tmp_path) -> None:
    data = json.loads(
        await mcp_server.list_bundle_entries(archive_path=str(tmp_path / "absent.zip"))
    )

    assert "not found" in data["error"]


def test_package_exposes_mcp() -> None:
    assert crawlpdf.mcp is mcp_server.mcp
    assert crawlpdf.get_mcp_server() is mcp_server.mcp


class TestMCPServerMain:
    def test_main_stdio(self) -> None:
        with patch("crawlpdf.mcp_server.mcp") as mock_mcp:
            with patch(
                "argparse.ArgumentParser.parse_args",
                return_value=MagicMock(transport="stdio", host="127.0.0.1", port=8000),
            ):
                mcp_server.main()
                mock_mcp.run.assert_called_once_with(transport="stdio")

    def test_main_http(self) -> None:
        with patch("crawlpdf.mcp_server.mcp") as mock_mcp:
            with patch(
                "argparse.ArgumentParser.parse_args",
                return_value=MagicMock(transport="http", host="0.0.0.0", port=9001),
            ):
                mcp_server.main()
                mock_mcp.run.assert_called_once_with(
                    transport="http", host="0.0.0.0", port=9001
                )


class TestModuleSettings:
    def test_malformed_timeout_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRAWLPDF_TIMEOUT", "five minutes")
        try:
            with patch("dotenv.load_dotenv"):
                reloaded = importlib.reload(mcp_server)
            assert reloaded.DEFAULT_TIMEOUT == 300.0
        finally:
            monkeypatch.delenv("CRAWLPDF_TIMEOUT")
            with patch("dotenv.load_dotenv"):
                importlib.reload(mcp_server)
