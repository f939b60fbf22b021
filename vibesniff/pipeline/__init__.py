"""Scan pipeline for VibeSniff."""

from .scan import ScanError, ScanReport, Scanner

__all__ = ["ScanError", "ScanReport", "Scanner"]
