"""Hostname and apex-domain helpers."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse


_ILLEGAL_HOST_CHARS = set('<>"\\^`{|}%')


class MalformedURL(ValueError):
    """Raised when a hostname cannot be derived from a URL."""


def ensure_url(value: str) -> str:
    """Return value with an https:// scheme if it has none."""
    raw = (value or "").strip()
    if not raw:
        return raw
    if "://" in raw:
        return raw
    return f"https://{raw}"


def _parse_hostname(url: str) -> Optional[str]:
    try:
        parsed = urlparse((url or "").strip())
        host = parsed.hostname
        parsed.port  # out-of-range or non-numeric ports raise
    except ValueError:
        return None
    host = (host or "").strip(".")
    if any(c.isspace() or c in _ILLEGAL_HOST_CHARS for c in host):
        return None
    return host or None


def extract_hostname(url: str) -> str:
    """Return the lowercase bare hostname of an absolute URL."""
    host = _parse_hostname(url)
    if not host:
        raise MalformedURL(f"Cannot derive hostname from {url!r}")
    return host


def resolve_apex(url: str) -> Optional[str]:
    """
    Return a coarse site identity for a URL: the last two hostname labels.

    This is a naive heuristic and not public-suffix aware, so
    ``https://login.example.co.uk/`` resolves to ``co.uk``. Returns None for
    URLs that have no parsable hostname.
    """
    host = _parse_hostname(url)
    if host is None:
        return None
    parts = host.split(".")
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return host
