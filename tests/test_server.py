"""Tests for the HTTP API."""

import pytest
from aiohttp.test_utils import TestClient, TestServer
from conftest import FakeCollector, FakeRenderer

from vibesniff import __version__
from vibesniff.analyzer.browser_models import RenderedPage
from vibesniff.api.server import ApiServer, create_app
from vibesniff.pipeline.scan import Scanner
from vibesniff.reporter.report_generator import ReportGenerator


@pytest.fixture
def scanner():
    """Scanner over fakes; nothing touches the network or a browser."""
    return Scanner(FakeRenderer(html="<body>Hello</body>"), collector=FakeCollector())


@pytest.mark.asyncio
async def test_health(scanner, tmp_path):
    async with TestClient(TestServer(create_app(scanner, tmp_path))) as client:
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok", "service": "VibeSniff API", "version": __version__}
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_scan_requires_url(scanner, tmp_path):
    async with TestClient(TestServer(create_app(scanner, tmp_path))) as client:
        resp = await client.get("/scan")
        assert resp.status == 400
        data = await resp.json()
        assert data["error"] == "Missing required parameter: url"
        assert data["example"] == "/scan?url=https://example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_url", ["https://", "not a url", "http://[::1"])
async def test_scan_rejects_invalid_url(scanner, tmp_path, bad_url):
    async with TestClient(TestServer(create_app(scanner, tmp_path))) as client:
        resp = await client.get("/scan", params={"url": bad_url})
        assert resp.status == 400
        assert await resp.json() == {"error": "Invalid URL format", "provided": bad_url}
    assert scanner.renderer.rendered == []


@pytest.mark.asyncio
async def test_scan_returns_report(scanner, tmp_path):
    async with TestClient(TestServer(create_app(scanner, tmp_path))) as client:
        resp = await client.get("/scan", params={"url": "https://example.com"})
        assert resp.status == 200
        data = await resp.json()
        assert data["url"] == "https://example.com"
        assert data["score"] == 0.0
        assert data["risk_level"] == "LOW"
        assert data["reasons"] == ["no obvious suspicious patterns detected"]


@pytest.mark.asyncio
async def test_scan_failure_is_bad_gateway(tmp_path):
    renderer = FakeRenderer(page=RenderedPage(url="https://down.test", success=False, error="Failed to load: boom"))
    scanner = Scanner(renderer, collector=FakeCollector())

    async with TestClient(TestServer(create_app(scanner, tmp_path))) as client:
        resp = await client.get("/scan", params={"url": "https://down.test"})
        assert resp.status == 502
        data = await resp.json()
        assert data["error"] == "Scan failed"
        assert "boom" in data["message"]


@pytest.mark.asyncio
async def test_generated_report_is_served(tmp_path):
    scanner = Scanner(
        FakeRenderer(html="<body>Hi</body>"),
        collector=FakeCollector(),
        report_generator=ReportGenerator(tmp_path),
    )

    async with TestClient(TestServer(create_app(scanner, tmp_path))) as client:
        resp = await client.get("/scan", params={"url": "https://example.com"})
        report_url = (await resp.json())["artifacts"]["report_url"]

        page = await client.get(report_url)
        assert page.status == 200
        assert "VibeSniff Report" in await page.text()

        missing = await client.get("/reports/report-missing.html")
        assert missing.status == 404
        assert missing.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_preflight_gets_cors_headers(scanner, tmp_path):
    async with TestClient(TestServer(create_app(scanner, tmp_path))) as client:
        resp = await client.options("/scan")
        assert resp.status == 204
        assert "GET" in resp.headers["Access-Control-Allow-Methods"]


@pytest.mark.asyncio
async def test_server_owns_renderer_lifecycle(scanner, tmp_path):
    renderer = scanner.renderer
    server = ApiServer(scanner, tmp_path, renderer=renderer)

    async with TestClient(TestServer(server.app)):
        assert renderer.started
    assert renderer.stopped
