"""Scan pipeline: render, extract, collect signals, score."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

from ..analyzer.features import PageFeatureExtractor, PageFeatures
from ..analyzer.scoring import ScoreResult, SuspicionScorer
from ..analyzer.signals import SignalCollector, Signals
from ..utils.domains import ensure_url, extract_hostname, resolve_apex

if TYPE_CHECKING:
    from ..analyzer.browser import PageRenderer
    from ..reporter.report_generator import ReportGenerator
    from ..storage.evidence import EvidenceStore

logger = logging.getLogger(__name__)


def _tls_port(url: str) -> Optional[int]:
    """Explicit port of an https URL, if it names one."""
    parsed = urlparse(url)
    if parsed.scheme != "https":
        return None
    return parsed.port


class ScanError(RuntimeError):
    """The page could not be scanned (e.g. it failed to render)."""


@dataclass
class ScanReport:
    """Everything produced by one scan."""

    scan_id: str
    url: str
    hostname: str
    apex: Optional[str]
    result: ScoreResult
    signals: Signals
    features: PageFeatures
    scanned_at: datetime
    duration_ms: int = 0

    final_url: Optional[str] = None
    title: Optional[str] = None
    status_code: Optional[int] = None

    screenshot_path: Optional[Path] = None
    report_id: Optional[str] = None
    report_path: Optional[Path] = None
    analysis_path: Optional[Path] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        return self.result.score

    @property
    def risk_level(self) -> str:
        return self.result.risk_level.value

    def to_dict(self) -> dict:
        parsed = urlparse(self.url)
        data = {
            "scan_id": self.scan_id,
            "url": self.url,
            **self.result.to_dict(),
            "signals": self.signals.to_dict(),
            "features": self.features.to_dict(),
            "page": {
                "final_url": self.final_url,
                "title": self.title,
                "status_code": self.status_code,
            },
            "technical": {
                "hostname": self.hostname,
                "apex": self.apex,
                "protocol": parsed.scheme,
                "port": parsed.port or (443 if parsed.scheme == "https" else 80),
                "path": parsed.path or "/",
            },
            "artifacts": {
                "screenshot": str(self.screenshot_path) if self.screenshot_path else None,
                "report": str(self.report_path) if self.report_path else None,
                "report_url": f"/reports/{self.report_path.name}" if self.report_path else None,
                "analysis": str(self.analysis_path) if self.analysis_path else None,
            },
            "scanned_at": self.scanned_at.isoformat(),
            "duration_ms": self.duration_ms,
        }
        if self.warnings:
            data["warnings"] = list(self.warnings)
        return data


class Scanner:
    """Runs one scan per call against a shared, caller-owned renderer."""

    def __init__(
        self,
        renderer: "PageRenderer",
        *,
        collector: Optional[SignalCollector] = None,
        scorer: Optional[SuspicionScorer] = None,
        extractor: Optional[PageFeatureExtractor] = None,
        evidence_store: Optional["EvidenceStore"] = None,
        report_generator: Optional["ReportGenerator"] = None,
    ):
        self.renderer = renderer
        self.collector = collector or SignalCollector()
        self.scorer = scorer or SuspicionScorer()
        self.extractor = extractor or PageFeatureExtractor()
        self.evidence_store = evidence_store
        self.report_generator = report_generator

    async def scan(self, url: str) -> ScanReport:
        """Scan url and return the report. Raises MalformedURL or ScanError."""
        target = ensure_url(url)
        hostname = extract_hostname(target)
        scanned_at = datetime.now(timezone.utc)
        started = time.monotonic()

        logger.info("Scanning: %s", target)
        page = await self.renderer.render(target)
        if not page.success:
            raise ScanError(page.error or f"Failed to render {target}")

        # Signals are network-bound; extraction is CPU-bound. Run them together.
        features, signals = await asyncio.gather(
            asyncio.to_thread(self.extractor.extract, page.html or "", target),
            self.collector.collect(hostname, _tls_port(target)),
        )
        result = self.scorer.score(features, signals)

        report = ScanReport(
            scan_id=uuid.uuid4().hex,
            url=target,
            hostname=hostname,
            apex=resolve_apex(target),
            result=result,
            signals=signals,
            features=features,
            scanned_at=scanned_at,
            final_url=page.final_url,
            title=page.title,
            status_code=page.status_code,
        )

        await self._save_artifacts(report, page.screenshot)
        report.duration_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            "Scan of %s finished: score=%.2f risk=%s (%d ms)",
            hostname,
            report.score,
            report.risk_level,
            report.duration_ms,
        )
        return report

    async def _save_artifacts(self, report: ScanReport, screenshot: Optional[bytes]) -> None:
        """Persist screenshot, HTML report and analysis JSON when configured."""
        try:
            if self.evidence_store and screenshot:
                report.screenshot_path = await self.evidence_store.save_screenshot(
                    report.hostname, report.scan_id, screenshot
                )
            if self.report_generator:
                report.report_id, report.report_path = await self.report_generator.generate(report)
            if self.evidence_store:
                report.analysis_path = await self.evidence_store.save_analysis(
                    report.hostname, report.scan_id, report.to_dict()
                )
        except OSError as exc:
            logger.warning("Failed to save artifacts for %s: %s", report.hostname, exc)
            report.warnings.append(f"Artifacts not saved: {exc}")
