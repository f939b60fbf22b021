"""Report rendering for VibeSniff."""

from .report_generator import ReportGenerator

__all__ = ["ReportGenerator"]
