"""External trust signals for VibeSniff.

Three independent lookups over a bare hostname, each returning an optional
age in days:

- registration age from the domain's RDAP record
- leaf TLS certificate age from a direct handshake
- first capture in the Wayback Machine CDX index

A failed, timed-out or empty lookup never raises to the caller. It is logged
once and surfaces as ``None`` so a degraded signal cannot abort a scan.
"""

import asyncio
import logging
import math
import ssl
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Awaitable, Optional

import aiohttp
import httpx
import tldextract

logger = logging.getLogger(__name__)

RDAP_BASE_URL = "https://rdap.org/domain/"
WAYBACK_CDX_URL = "http://web.archive.org/cdx/search/cdx"
USER_AGENT = "VibeSniff/1.0"

DEFAULT_RDAP_TIMEOUT = 15.0
DEFAULT_TLS_TIMEOUT = 5.0
DEFAULT_ARCHIVE_TIMEOUT = 15.0

# RDAP event actions that mark when a domain was first registered.
REGISTRATION_EVENT_ACTIONS = {"registration", "creation"}

# Bundled public suffix snapshot only; never fetch the list over the network.
_extract = tldextract.TLDExtract(suffix_list_urls=())


class SignalUnavailable(Exception):
    """A signal provider could not produce a usable value."""


@dataclass(frozen=True)
class Signals:
    """Trust signals for one host. Every field is independently nullable."""

    domain_age_days: Optional[int] = None
    tls_age_days: Optional[int] = None
    first_archived_days_ago: Optional[int] = None

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

    def to_dict(self) -> dict:
        return asdict(self)


def days_since(moment: datetime, now: Optional[datetime] = None) -> int:
    """Whole days from moment until now, rounded up and never negative."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    seconds = (current - moment).total_seconds()
    return max(0, math.ceil(seconds / 86400))


async def _absorb(provider: str, host: str, lookup: Awaitable[int]) -> Optional[int]:
    """Await a provider, turning any failure into None plus a warning."""
    try:
        return await lookup
    except Exception as exc:
        logger.warning("%s lookup failed for %s: %s", provider, host, str(exc) or type(exc).__name__)
        return None


# -----------------------------------------------------------------------------
# Registration age (RDAP)
# -----------------------------------------------------------------------------


def _parse_event_date(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable RDAP event date: %s", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_registration_date(data: object) -> Optional[datetime]:
    """Return the earliest registration/creation event date in an RDAP record."""
    if not isinstance(data, dict):
        return None
    events = data.get("events")
    if not isinstance(events, list):
        return None

    dates: list[datetime] = []
    for event in events:
        if not isinstance(event, dict):
            continue
        action = str(event.get("eventAction") or "").strip().lower()
        if action not in REGISTRATION_EVENT_ACTIONS:
            continue
        parsed = _parse_event_date(event.get("eventDate"))
        if parsed is not None:
            dates.append(parsed)
    return min(dates) if dates else None


def registrable_domain(host: str) -> str:
    """Registrable domain used for RDAP queries (RDAP has no subdomain records)."""
    normalized = (host or "").strip().strip(".").lower()
    return _extract(normalized).top_domain_under_public_suffix or normalized


async def _fetch_domain_age(host: str, timeout: float) -> int:
    domain = registrable_domain(host)
    if not domain:
        raise SignalUnavailable("no domain to query")
    url = f"{RDAP_BASE_URL}{domain}"

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        resp = await client.get(url, headers={"User-Agent": USER_AGENT})

    if resp.status_code != 200:
        raise SignalUnavailable(f"RDAP lookup failed ({resp.status_code})")
    try:
        data = resp.json()
    except ValueError as exc:
        raise SignalUnavailable("RDAP returned non-JSON response") from exc

    created = parse_registration_date(data)
    if created is None:
        raise SignalUnavailable(f"no registration date in RDAP record for {domain}")
    return days_since(created)


async def lookup_domain_age(host: str, *, timeout: float = DEFAULT_RDAP_TIMEOUT) -> Optional[int]:
    """Days since the domain was registered, or None."""
    return await _absorb("Registration", host, _fetch_domain_age(host, timeout))


# -----------------------------------------------------------------------------
# Certificate age (TLS handshake)
# -----------------------------------------------------------------------------


def parse_cert_not_before(cert: Optional[dict]) -> datetime:
    """Parse the notBefore field of a decoded peer certificate."""
    raw = (cert or {}).get("notBefore")
    if not raw:
        raise SignalUnavailable("certificate has no valid-from field")
    return datetime.strptime(raw, "%b %d %H:%M:%S %Y %Z").replace(tzinfo=timezone.utc)


async def _fetch_certificate_age(host: str, port: int, timeout: float) -> int:
    context = ssl.create_default_context()
    writer: Optional[asyncio.StreamWriter] = None
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, ssl=context, server_hostname=host),
            timeout=timeout,
        )
        cert = writer.get_extra_info("peercert")
    finally:
        if writer is not None:
            writer.close()
            try:
                await asyncio.wait_for(writer.wait_closed(), timeout=timeout)
            except (OSError, asyncio.TimeoutError) as exc:
                logger.debug("TLS teardown for %s:%s did not complete cleanly: %s", host, port, exc)

    return days_since(parse_cert_not_before(cert))


async def lookup_certificate_age(
    host: str,
    port: int = 443,
    *,
    timeout: float = DEFAULT_TLS_TIMEOUT,
) -> Optional[int]:
    """Days since the leaf certificate became valid, or None."""
    return await _absorb("TLS certificate", host, _fetch_certificate_age(host, port, timeout))


# -----------------------------------------------------------------------------
# First archived capture (Wayback CDX)
# -----------------------------------------------------------------------------


def parse_archive_timestamp(data: object) -> datetime:
    """Return the capture date of the first data row in a CDX JSON response."""
    # Row 0 is the header; the timestamp is the second column.
    if not isinstance(data, list) or len(data) < 2:
        raise SignalUnavailable("archive index has no captures")
    row = data[1]
    if not isinstance(row, list) or len(row) < 2 or not row[1]:
        raise SignalUnavailable("archive row has no timestamp")
    stamp = str(row[1])
    try:
        return datetime.strptime(stamp[:8], "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError as exc:
        raise SignalUnavailable(f"unparsable archive timestamp {stamp!r}") from exc


async def _fetch_first_archived(host: str, timeout: float) -> int:
    params = {
        "url": host,
        "output": "json",
        "limit": "1",
        "sort": "timestamp:asc",
    }
    async with aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers={"User-Agent": USER_AGENT},
    ) as session:
        async with session.get(WAYBACK_CDX_URL, params=params) as resp:
            if resp.status != 200:
                raise SignalUnavailable(f"archive index returned HTTP {resp.status}")
            data = await resp.json(content_type=None)

    return days_since(parse_archive_timestamp(data))


async def lookup_first_archived(host: str, *, timeout: float = DEFAULT_ARCHIVE_TIMEOUT) -> Optional[int]:
    """Days since the earliest archived capture of host, or None."""
    return await _absorb("Wayback Machine", host, _fetch_first_archived(host, timeout))


# -----------------------------------------------------------------------------
# Collector
# -----------------------------------------------------------------------------


class SignalCollector:
    """Runs the three signal lookups concurrently against one host."""

    def __init__(
        self,
        rdap_timeout: float = DEFAULT_RDAP_TIMEOUT,
        tls_timeout: float = DEFAULT_TLS_TIMEOUT,
        archive_timeout: float = DEFAULT_ARCHIVE_TIMEOUT,
        tls_port: int = 443,
    ):
        self.rdap_timeout = rdap_timeout
        self.tls_timeout = tls_timeout
        self.archive_timeout = archive_timeout
        self.tls_port = tls_port

    async def collect(self, host: str, tls_port: Optional[int] = None) -> Signals:
        """Collect all signals for host; failed lookups come back as None.

        tls_port overrides the collector's default certificate port.
        """
        domain_age, tls_age, first_archived = await asyncio.gather(
            lookup_domain_age(host, timeout=self.rdap_timeout),
            lookup_certificate_age(host, tls_port or self.tls_port, timeout=self.tls_timeout),
            lookup_first_archived(host, timeout=self.archive_timeout),
        )
        signals = Signals(
            domain_age_days=domain_age,
            tls_age_days=tls_age,
            first_archived_days_ago=first_archived,
        )
        logger.info(
            "Signals for %s: domain_age=%s tls_age=%s first_archived=%s",
            host,
            domain_age,
            tls_age,
            first_archived,
        )
        return signals


async def collect_signals(host: str) -> Signals:
    """Collect signals for host with default timeouts."""
    return await SignalCollector().collect(host)
