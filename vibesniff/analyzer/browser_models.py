"""Browser renderer data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class RenderedPage:
    """Result of rendering one page in the headless browser."""

    url: str
    success: bool
    error: Optional[str] = None

    final_url: Optional[str] = None
    status_code: Optional[int] = None
    title: Optional[str] = None
    html: Optional[str] = None
    screenshot: Optional[bytes] = None
