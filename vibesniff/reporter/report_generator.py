"""
Report generator for VibeSniff - renders a self-contained HTML report per scan.

The report shows the risk badge and score, the reasons, cards for domain,
content, form, link and resource findings, and two Chart.js charts
(risk factor weights and external vs internal resources).
"""

import asyncio
import base64
import html
import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..constants import RiskLevel

if TYPE_CHECKING:
    from ..pipeline.scan import ScanReport

logger = logging.getLogger(__name__)

CHART_JS_URL = "https://cdn.jsdelivr.net/npm/chart.js"

RISK_COLORS = {
    RiskLevel.HIGH: "dc3545",
    RiskLevel.MEDIUM: "ffc107",
    RiskLevel.LOW: "28a745",
}
DEFAULT_COLOR = "6c757d"

FACTOR_PALETTE = [
    "#ff6384", "#36a2eb", "#ffce56", "#4bc0c0",
    "#9966ff", "#ff9f40", "#ff6384", "#c9cbcf",
]


def _esc(value) -> str:
    return html.escape(str(value), quote=True)


def _script_json(value) -> str:
    """JSON for inlining inside a <script> block."""
    return json.dumps(value).replace("<", "\\u003c")


def darken_color(color: str, percent: int) -> str:
    """Darken a 6-digit hex colour by percent of full scale per channel."""
    num = int(color, 16)
    amount = round(2.55 * percent)
    channels = [(num >> shift) & 0xFF for shift in (16, 8, 0)]
    return "".join(f"{max(0, min(255, c - amount)):02x}" for c in channels)


def age_class(age_days: Optional[int]) -> str:
    """CSS class for an age in days: unknown and recent ages warn."""
    if age_days is None:
        return "warning"
    if age_days < 7:
        return "suspicious"
    if age_days < 30:
        return "warning"
    return "safe"


class ReportGenerator:
    """Writes report-<uuid>.html files into the reports directory."""

    def __init__(self, output_dir: Optional[Path] = None, embed_screenshot: bool = True):
        self.output_dir = Path(output_dir or "data/reports")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.embed_screenshot = embed_screenshot

    async def generate(self, report: "ScanReport") -> tuple[str, Path]:
        """Render the report for a finished scan. Returns (report_id, path)."""
        report_id = str(uuid.uuid4())
        content = self.render_html(report, report_id)

        output_path = self.output_dir / f"report-{report_id}.html"
        await asyncio.to_thread(output_path.write_text, content, encoding="utf-8")
        logger.info("Generated HTML report: %s", output_path)
        return report_id, output_path

    def render_html(self, report: "ScanReport", report_id: str) -> str:
        result = report.result
        color = RISK_COLORS.get(result.risk_level, DEFAULT_COLOR)
        score_pct = round(result.score * 100)
        factors = result.risk_factors
        external = report.features.external_host_count

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>VibeSniff Report - {_esc(report.hostname)}</title>
    <script src="{CHART_JS_URL}"></script>
    <style>
        {self._get_report_css(color, score_pct)}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>VibeSniff Report</h1>
            <div class="risk-badge">Risk Level: {_esc(result.risk_level.value)}</div>
            <div class="score-circle">
                <div class="score-text">{score_pct}%</div>
            </div>
            <h2>{_esc(report.hostname)}</h2>
            <p class="code">{_esc(report.url)}</p>
        </div>

        <div class="content">
            {self._render_reasons(result.reasons)}

            <div class="grid">
                {self._render_domain_card(report)}
                {self._render_content_card(report)}
                {self._render_forms_card(report)}
                {self._render_resources_card(report)}
                {self._render_technical_card(report)}
            </div>

            <div class="chart-container">
                <h3>Risk Analysis</h3>
                <canvas id="riskChart" width="400" height="200"></canvas>
            </div>

            <div class="chart-container">
                <h3>Resource Distribution</h3>
                <canvas id="hostsChart" width="400" height="200"></canvas>
            </div>

            {self._render_screenshot(report.screenshot_path)}
        </div>

        <div class="footer">
            <p>Generated by VibeSniff on {report.scanned_at.strftime('%Y-%m-%d %H:%M:%S UTC')}</p>
            <p>Report ID: {_esc(report_id)}</p>
        </div>
    </div>

    <script>
        const riskCtx = document.getElementById('riskChart');
        if (riskCtx) {{
            new Chart(riskCtx, {{
                type: 'doughnut',
                data: {{
                    labels: {_script_json([f.name for f in factors])},
                    datasets: [{{
                        data: {_script_json([f.weight for f in factors])},
                        backgroundColor: {_script_json(FACTOR_PALETTE)}
                    }}]
                }},
                options: {{ responsive: true, plugins: {{ legend: {{ position: 'bottom' }} }} }}
            }});
        }}

        const hostsCtx = document.getElementById('hostsChart');
        if (hostsCtx) {{
            new Chart(hostsCtx, {{
                type: 'bar',
                data: {{
                    labels: ['External Hosts', 'Internal Resources'],
                    datasets: [{{
                        label: 'Resource Count',
                        data: [{external}, {max(1, 10 - external)}],
                        backgroundColor: ['#ff6384', '#36a2eb']
                    }}]
                }},
                options: {{ responsive: true, scales: {{ y: {{ beginAtZero: true }} }} }}
            }});
        }}
    </script>
</body>
</html>"""

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _render_reasons(self, reasons) -> str:
        if not reasons:
            return ""
        items = "".join(f"<li>{_esc(r)}</li>" for r in reasons)
        return f"""
            <div class="reasons">
                <h4>Security Analysis Results</h4>
                <ul>{items}</ul>
            </div>"""

    @staticmethod
    def _metric(label: str, value, css_class: str = "") -> str:
        cls = f"metric-value {css_class}".strip()
        return f"""
                <div class="metric">
                    <span class="metric-label">{_esc(label)}</span>
                    <span class="{cls}">{_esc(value)}</span>
                </div>"""

    @staticmethod
    def _flag(condition: bool) -> str:
        return "suspicious" if condition else "safe"

    @staticmethod
    def _days(value: Optional[int], suffix: str = "days") -> str:
        return "Unknown" if value is None else f"{value} {suffix}"

    def _card(self, title: str, metrics: list[str]) -> str:
        return f"""
            <div class="card">
                <h3>{_esc(title)}</h3>{''.join(metrics)}
            </div>"""

    def _render_domain_card(self, report: "ScanReport") -> str:
        signals = report.signals
        return self._card("Domain Information", [
            self._metric("Domain Age", self._days(signals.domain_age_days), age_class(signals.domain_age_days)),
            self._metric("TLS Certificate Age", self._days(signals.tls_age_days), age_class(signals.tls_age_days)),
            self._metric("Wayback First Seen", self._days(signals.first_archived_days_ago, "days ago")),
            self._metric("Apex Domain", report.apex or "Unknown"),
        ])

    def _render_content_card(self, report: "ScanReport") -> str:
        features = report.features
        return self._card("Content Analysis", [
            self._metric("Page Title", report.title or "No title"),
            self._metric(
                "Suspicious Keywords",
                features.suspicious_keyword_count,
                self._flag(features.suspicious_keyword_count > 3),
            ),
            self._metric(
                "Suspicious Link Patterns",
                len(features.suspicious_link_patterns),
                self._flag(bool(features.suspicious_link_patterns)),
            ),
            self._metric(
                "Has Popups/Redirects",
                "Yes" if features.has_popup_or_redirect_script else "No",
                self._flag(features.has_popup_or_redirect_script),
            ),
        ])

    def _render_forms_card(self, report: "ScanReport") -> str:
        features = report.features
        return self._card("Form Analysis", [
            self._metric("Total Forms", features.total_form_count),
            self._metric("Password Inputs", features.password_input_count, self._flag(features.has_password_form)),
            self._metric("Email Inputs", features.email_input_count),
            self._metric(
                "Suspicious Actions",
                len(features.suspicious_form_patterns),
                self._flag(bool(features.suspicious_form_patterns) or features.form_action_mismatch),
            ),
        ])

    def _render_resources_card(self, report: "ScanReport") -> str:
        features = report.features
        return self._card("Resource Analysis", [
            self._metric(
                "External Hosts",
                features.external_host_count,
                self._flag(features.external_host_count > 8),
            ),
            self._metric(
                "Suspicious Iframes",
                features.suspicious_iframe_count,
                self._flag(features.suspicious_iframe_count > 0),
            ),
        ])

    def _render_technical_card(self, report: "ScanReport") -> str:
        technical = report.to_dict()["technical"]
        return self._card("Technical Details", [
            self._metric("Domain", technical["hostname"]),
            self._metric("Protocol", technical["protocol"]),
            self._metric("Port", technical["port"]),
            self._metric("Path", technical["path"]),
            self._metric("HTTP Status", report.status_code if report.status_code is not None else "Unknown"),
        ])

    def _render_screenshot(self, path: Optional[Path]) -> str:
        if not self.embed_screenshot or not path:
            return ""
        img_data = self._embed_image(path)
        if not img_data:
            return ""
        return f"""
            <div class="chart-container screenshot">
                <h3>Screenshot</h3>
                <img src="{img_data}" alt="Page screenshot">
            </div>"""

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _embed_image(self, path: Path) -> str:
        """Embed an image as base64 data URI."""
        if not path.exists():
            return ""
        try:
            data = base64.b64encode(path.read_bytes()).decode("utf-8")
        except OSError as exc:
            logger.warning("Failed to embed image %s: %s", path, exc)
            return ""
        mime = "image/png" if path.suffix.lower() == ".png" else "image/jpeg"
        return f"data:{mime};base64,{data}"

    def _get_report_css(self, color: str, score_pct: int) -> str:
        """CSS for the report, tinted by the risk colour."""
        sweep = score_pct * 3.6
        return f"""
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            padding: 20px;
        }}
        .container {{
            max-width: 1200px;
            margin: 0 auto;
            background: white;
            border-radius: 20px;
            box-shadow: 0 20px 40px rgba(0,0,0,0.1);
            overflow: hidden;
        }}
        .header {{
            background: linear-gradient(135deg, #{color} 0%, #{darken_color(color, 20)} 100%);
            color: white;
            padding: 40px;
            text-align: center;
        }}
        .risk-badge {{
            display: inline-block;
            background: rgba(255,255,255,0.2);
            padding: 10px 20px;
            border-radius: 25px;
            font-size: 18px;
            font-weight: bold;
            margin: 10px 0;
        }}
        .score-circle {{
            width: 120px;
            height: 120px;
            border-radius: 50%;
            background: conic-gradient(#{color} 0deg, #{color} {sweep}deg, #e0e0e0 {sweep}deg, #e0e0e0 360deg);
            display: flex;
            align-items: center;
            justify-content: center;
            margin: 20px auto;
            position: relative;
        }}
        .score-circle::before {{
            content: '';
            width: 80px;
            height: 80px;
            background: white;
            border-radius: 50%;
            position: absolute;
        }}
        .score-text {{ font-size: 24px; font-weight: bold; color: #{color}; z-index: 1; }}
        .content {{ padding: 40px; }}
        .grid {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(300px, 1fr));
            gap: 30px;
            margin: 30px 0;
        }}
        .card {{
            background: #f8f9fa;
            padding: 25px;
            border-radius: 15px;
            border-left: 5px solid #{color};
        }}
        .card h3 {{ color: #{color}; margin-bottom: 15px; font-size: 18px; }}
        .metric {{
            display: flex;
            justify-content: space-between;
            margin: 10px 0;
            padding: 8px 0;
            border-bottom: 1px solid #e0e0e0;
        }}
        .metric:last-child {{ border-bottom: none; }}
        .metric-label {{ font-weight: 500; color: #666; }}
        .metric-value {{ font-weight: bold; color: #333; }}
        .reasons {{
            background: #fff3cd;
            border: 1px solid #ffeaa7;
            border-radius: 10px;
            padding: 20px;
            margin: 20px 0;
        }}
        .reasons h4 {{ color: #856404; margin-bottom: 15px; }}
        .reasons ul {{ list-style: none; }}
        .reasons li {{ padding: 8px 0; border-bottom: 1px solid #ffeaa7; color: #856404; }}
        .reasons li:last-child {{ border-bottom: none; }}
        .chart-container {{
            background: white;
            padding: 20px;
            border-radius: 15px;
            margin: 20px 0;
            box-shadow: 0 5px 15px rgba(0,0,0,0.08);
        }}
        .screenshot img {{ max-width: 100%; border: 1px solid #ddd; border-radius: 4px; }}
        .footer {{
            background: #f8f9fa;
            padding: 20px;
            text-align: center;
            color: #666;
            border-top: 1px solid #e0e0e0;
        }}
        .suspicious {{ color: #dc3545; font-weight: bold; }}
        .warning {{ color: #ffc107; font-weight: bold; }}
        .safe {{ color: #28a745; font-weight: bold; }}
        .code {{
            background: #f1f3f4;
            padding: 2px 6px;
            border-radius: 4px;
            font-family: 'Monaco', 'Menlo', monospace;
            font-size: 12px;
            color: #333;
        }}
        """
