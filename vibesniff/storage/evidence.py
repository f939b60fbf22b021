"""Scan artifact storage for VibeSniff."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class EvidenceStore:
    """Keeps the screenshot and analysis JSON of each scan in its own directory."""

    def __init__(self, evidence_dir: Path):
        self.evidence_dir = Path(evidence_dir)
        self.evidence_dir.mkdir(parents=True, exist_ok=True)

    def get_scan_dir(self, hostname: str, scan_id: str) -> Path:
        """Get or create the directory for one scan of hostname."""
        safe_host = "".join(c if c.isalnum() or c in ".-" else "_" for c in hostname.lower())
        scan_dir = self.evidence_dir / f"{safe_host}_{scan_id[:12]}"
        scan_dir.mkdir(parents=True, exist_ok=True)
        return scan_dir

    async def save_screenshot(self, hostname: str, scan_id: str, screenshot_bytes: bytes) -> Path:
        path = self.get_scan_dir(hostname, scan_id) / "screenshot.png"
        await asyncio.to_thread(path.write_bytes, screenshot_bytes)
        logger.debug("Saved screenshot for %s: %s", hostname, path)
        return path

    async def save_analysis(self, hostname: str, scan_id: str, analysis_data: dict) -> Path:
        """Save scan results as analysis.json, stamped with the save time."""
        path = self.get_scan_dir(hostname, scan_id) / "analysis.json"

        payload = dict(analysis_data)
        payload["saved_at"] = datetime.now(timezone.utc).isoformat()

        analysis_json = json.dumps(payload, indent=2)
        await asyncio.to_thread(path.write_text, analysis_json, encoding="utf-8")
        logger.debug("Saved analysis for %s: %s", hostname, path)
        return path

