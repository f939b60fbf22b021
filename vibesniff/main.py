"""VibeSniff command line entry point."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Optional

from . import __version__
from .analyzer.browser import PageRenderer
from .analyzer.features import PageFeatureExtractor
from .analyzer.scoring import SuspicionScorer
from .analyzer.signals import SignalCollector
from .api.server import ApiServer
from .config import Config, load_config, validate_config
from .pipeline.scan import ScanError, Scanner
from .reporter.report_generator import ReportGenerator
from .storage.evidence import EvidenceStore
from .utils.domains import MalformedURL

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_scanner(config: Config, renderer: PageRenderer, with_report: bool = True) -> Scanner:
    """Wire a Scanner from configuration around an existing renderer."""
    return Scanner(
        renderer,
        collector=SignalCollector(
            rdap_timeout=config.rdap_timeout,
            tls_timeout=config.tls_timeout,
            archive_timeout=config.archive_timeout,
        ),
        scorer=SuspicionScorer(config.scoring_weights),
        extractor=PageFeatureExtractor(
            suspicious_keywords=config.suspicious_keywords,
            link_phrases=config.suspicious_link_phrases,
        ),
        evidence_store=EvidenceStore(config.evidence_dir),
        report_generator=ReportGenerator(config.reports_dir) if with_report else None,
    )


async def run_scan(config: Config, url: str, with_report: bool = True, json_only: bool = False) -> int:
    """Scan one URL and print the result. Returns the process exit code."""
    async with PageRenderer(timeout=config.navigation_timeout, headless=config.headless) as renderer:
        scanner = build_scanner(config, renderer, with_report=with_report)
        try:
            report = await scanner.scan(url)
        except MalformedURL as exc:
            logger.error("Invalid URL %r: %s", url, exc)
            return 1
        except ScanError as exc:
            logger.error("Scan failed for %s: %s", url, exc)
            return 1

    print(json.dumps(report.to_dict(), indent=2))
    if not json_only:
        print(f"\nRisk: {report.risk_level} (score {report.score:.2f})")
        if report.screenshot_path:
            print(f"Screenshot: {report.screenshot_path}")
        if report.report_path:
            print(f"Report: {report.report_path}")
    return 0


async def run_server(config: Config, host: Optional[str] = None, port: Optional[int] = None) -> int:
    """Run the API until SIGINT/SIGTERM."""
    renderer = PageRenderer(timeout=config.navigation_timeout, headless=config.headless)
    server = ApiServer(
        build_scanner(config, renderer),
        config.reports_dir,
        host=host or config.server_host,
        port=port or config.server_port,
        renderer=renderer,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await server.start()
        await stop_event.wait()
        logger.info("Shutting down server...")
    finally:
        await server.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vibesniff", description="Score how suspicious a web page looks.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Scan a single URL and print the result.")
    scan.add_argument("url", help="URL to scan (https:// is assumed when no scheme is given)")
    scan.add_argument("--no-report", action="store_true", help="Skip the HTML report.")
    scan.add_argument("--json-only", action="store_true", help="Print only the JSON result.")

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", help="Bind address (default: SERVER_HOST)")
    serve.add_argument("--port", type=int, help="Bind port (default: PORT)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    config = load_config()
    configure_logging(config.log_level)

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        return 1

    try:
        if args.command == "scan":
            return asyncio.run(
                run_scan(config, args.url, with_report=not args.no_report, json_only=args.json_only)
            )
        return asyncio.run(run_server(config, host=args.host, port=args.port))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
