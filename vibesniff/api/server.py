"""HTTP API for VibeSniff."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from aiohttp import web

from .. import __version__
from ..pipeline.scan import ScanError
from ..utils.domains import MalformedURL, ensure_url, extract_hostname

if TYPE_CHECKING:
    from ..analyzer.browser import PageRenderer
    from ..pipeline.scan import Scanner

logger = logging.getLogger(__name__)

SERVICE_NAME = "VibeSniff API"
SCAN_EXAMPLE = "/scan?url=https://example.com"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


class ApiServer:
    """Serves /health, /scan and generated reports."""

    def __init__(
        self,
        scanner: "Scanner",
        reports_dir: Path,
        host: str = "0.0.0.0",
        port: int = 3000,
        renderer: Optional["PageRenderer"] = None,
    ):
        self.scanner = scanner
        self.reports_dir = Path(reports_dir)
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        self.host = host
        self.port = port
        self.renderer = renderer
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

        self._app = web.Application(middlewares=[cors_middleware])
        self._register_routes()
        if renderer is not None:
            self._app.on_startup.append(self._start_renderer)
            self._app.on_cleanup.append(self._stop_renderer)

    @property
    def app(self) -> web.Application:
        return self._app

    def _register_routes(self) -> None:
        self._app.router.add_get("/health", self._handle_health)
        self._app.router.add_get("/scan", self._handle_scan)
        self._app.router.add_static("/reports", str(self.reports_dir), show_index=False)

    async def start(self) -> None:
        """Start serving on host:port."""
        if self._runner:
            return
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("VibeSniff API listening on %s:%s", self.host, self.port)

    async def stop(self) -> None:
        """Stop serving and release the renderer."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None
        logger.info("VibeSniff API stopped")

    async def _start_renderer(self, app: web.Application) -> None:
        await self.renderer.start()

    async def _stop_renderer(self, app: web.Application) -> None:
        await self.renderer.stop()

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "service": SERVICE_NAME, "version": __version__})

    async def _handle_scan(self, request: web.Request) -> web.Response:
        url = (request.query.get("url") or "").strip()
        if not url:
            return web.json_response(
                {"error": "Missing required parameter: url", "example": SCAN_EXAMPLE},
                status=400,
            )

        try:
            extract_hostname(ensure_url(url))
        except MalformedURL:
            return web.json_response({"error": "Invalid URL format", "provided": url}, status=400)

        logger.info("API scan request: %s", url)
        try:
            report = await self.scanner.scan(url)
        except MalformedURL:
            return web.json_response({"error": "Invalid URL format", "provided": url}, status=400)
        except ScanError as exc:
            logger.warning("Scan failed for %s: %s", url, exc)
            return web.json_response({"error": "Scan failed", "message": str(exc)}, status=502)
        except Exception as exc:
            logger.exception("Unexpected error scanning %s", url)
            return web.json_response({"error": "Scan failed", "message": str(exc)}, status=500)

        return web.json_response(report.to_dict())


def create_app(
    scanner: "Scanner",
    reports_dir: Path,
    renderer: Optional["PageRenderer"] = None,
) -> web.Application:
    """Build the API application without binding a socket."""
    return ApiServer(scanner, reports_dir, renderer=renderer).app
