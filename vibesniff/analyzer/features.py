"""Structural page features extracted from rendered markup."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from ..constants import DEFAULT_SUSPICIOUS_KEYWORDS, DEFAULT_SUSPICIOUS_LINK_PHRASES
from ..utils.domains import resolve_apex

logger = logging.getLogger(__name__)

NON_POST_PASSWORD_FORM = "password form submitted via non-POST method"
SCRIPT_OR_DATA_ACTION = "script/data URI used as form action"

POPUP_SCRIPT_MARKERS = ("window.open", "popup")
REDIRECT_SCRIPT_MARKERS = ("window.location", "document.location")


@dataclass(frozen=True)
class PageFeatures:
    """Immutable snapshot of the structural features of one rendered page."""

    has_password_form: bool = False
    password_input_count: int = 0
    email_input_count: int = 0
    total_input_count: int = 0
    total_form_count: int = 0
    form_action_mismatch: bool = False
    suspicious_form_patterns: tuple[str, ...] = ()
    external_host_count: int = 0
    external_hosts: frozenset[str] = field(default_factory=frozenset)
    suspicious_keyword_count: int = 0
    suspicious_keywords: tuple[str, ...] = ()
    suspicious_link_patterns: tuple[str, ...] = ()
    has_popup_or_redirect_script: bool = False
    suspicious_iframe_count: int = 0

    def __post_init__(self):
        counts = {
            "password_input_count": self.password_input_count,
            "email_input_count": self.email_input_count,
            "total_input_count": self.total_input_count,
            "total_form_count": self.total_form_count,
            "external_host_count": self.external_host_count,
            "suspicious_keyword_count": self.suspicious_keyword_count,
            "suspicious_iframe_count": self.suspicious_iframe_count,
        }
        for name, value in counts.items():
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.password_input_count > self.total_input_count:
            raise ValueError("password_input_count cannot exceed total_input_count")

        # Accept any iterable from callers but store immutable containers.
        object.__setattr__(self, "suspicious_form_patterns", tuple(self.suspicious_form_patterns))
        object.__setattr__(self, "external_hosts", frozenset(self.external_hosts))
        object.__setattr__(self, "suspicious_keywords", tuple(self.suspicious_keywords))
        object.__setattr__(self, "suspicious_link_patterns", tuple(self.suspicious_link_patterns))

    def to_dict(self) -> dict:
        return {
            "has_password_form": self.has_password_form,
            "password_input_count": self.password_input_count,
            "email_input_count": self.email_input_count,
            "total_input_count": self.total_input_count,
            "total_form_count": self.total_form_count,
            "form_action_mismatch": self.form_action_mismatch,
            "suspicious_form_patterns": list(self.suspicious_form_patterns),
            "external_host_count": self.external_host_count,
            "external_hosts": sorted(self.external_hosts),
            "suspicious_keyword_count": self.suspicious_keyword_count,
            "suspicious_keywords": list(self.suspicious_keywords),
            "suspicious_link_patterns": list(self.suspicious_link_patterns),
            "has_popup_or_redirect_script": self.has_popup_or_redirect_script,
            "suspicious_iframe_count": self.suspicious_iframe_count,
        }


def _resolve(reference: str, page_url: str) -> Optional[str]:
    """Resolve a possibly relative reference against the page URL."""
    try:
        return urljoin(page_url, reference.strip())
    except ValueError:
        return None


def _hostname(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def _has_password_input(form) -> bool:
    return form.find("input", attrs={"type": lambda t: (t or "").lower() == "password"}) is not None


class PageFeatureExtractor:
    """Derives PageFeatures from page markup."""

    def __init__(
        self,
        suspicious_keywords: Iterable[str] | None = None,
        link_phrases: Iterable[str] | None = None,
    ):
        self.suspicious_keywords = [k.lower() for k in (suspicious_keywords or DEFAULT_SUSPICIOUS_KEYWORDS)]
        self.link_phrases = [p.lower() for p in (link_phrases or DEFAULT_SUSPICIOUS_LINK_PHRASES)]

    def extract(self, html: str, page_url: str) -> PageFeatures:
        soup = BeautifulSoup(html or "", "html.parser")
        page_host = _hostname(page_url)
        page_apex = resolve_apex(page_url)

        inputs = soup.find_all("input")
        password_inputs = [i for i in inputs if (i.get("type") or "").lower() == "password"]
        email_inputs = [i for i in inputs if (i.get("type") or "").lower() == "email"]
        forms = soup.find_all("form")

        external_hosts = self._external_hosts(soup, page_url, page_host)
        keywords = self._suspicious_keywords(soup)

        features = PageFeatures(
            has_password_form=bool(password_inputs),
            password_input_count=len(password_inputs),
            email_input_count=len(email_inputs),
            total_input_count=len(inputs),
            total_form_count=len(forms),
            form_action_mismatch=self._action_mismatch(password_inputs, page_url, page_apex),
            suspicious_form_patterns=self._form_patterns(forms),
            external_host_count=len(external_hosts),
            external_hosts=external_hosts,
            suspicious_keyword_count=len(keywords),
            suspicious_keywords=keywords,
            suspicious_link_patterns=self._link_patterns(soup, page_url, page_host),
            has_popup_or_redirect_script=self._has_popup_or_redirect(soup),
            suspicious_iframe_count=self._suspicious_iframes(soup, page_url, page_host),
        )
        logger.debug(
            "Extracted features for %s: %s inputs, %s forms, %s external hosts",
            page_url,
            features.total_input_count,
            features.total_form_count,
            features.external_host_count,
        )
        return features

    @staticmethod
    def _action_mismatch(password_inputs: list, page_url: str, page_apex: Optional[str]) -> bool:
        """True when a password form posts to a different apex domain."""
        if page_apex is None:
            return False
        for password_input in password_inputs:
            form = password_input.find_parent("form")
            if form is None:
                continue
            action = (form.get("action") or "").strip()
            if not action:
                continue
            action_apex = resolve_apex(_resolve(action, page_url) or "")
            if action_apex and action_apex != page_apex:
                return True
        return False

    @staticmethod
    def _form_patterns(forms: list) -> tuple[str, ...]:
        patterns: list[str] = []
        for form in forms:
            method = (form.get("method") or "get").strip().lower()
            action = (form.get("action") or "").strip().lower()
            if _has_password_input(form) and method != "post":
                patterns.append(NON_POST_PASSWORD_FORM)
            if "javascript:" in action or "data:" in action:
                patterns.append(SCRIPT_OR_DATA_ACTION)
        return tuple(patterns)

    @staticmethod
    def _external_hosts(soup: BeautifulSoup, page_url: str, page_host: Optional[str]) -> frozenset[str]:
        hosts: set[str] = set()
        for tag_name, attr in (("script", "src"), ("img", "src"), ("link", "href")):
            for tag in soup.find_all(tag_name, attrs={attr: True}):
                host = _hostname(_resolve(tag.get(attr) or "", page_url))
                if host and host != page_host:
                    hosts.add(host)
        return frozenset(hosts)

    def _suspicious_keywords(self, soup: BeautifulSoup) -> tuple[str, ...]:
        body = soup.body or soup
        text = body.get_text(" ").lower()
        return tuple(keyword for keyword in self.suspicious_keywords if keyword in text)

    def _link_patterns(self, soup: BeautifulSoup, page_url: str, page_host: Optional[str]) -> tuple[str, ...]:
        patterns: list[str] = []
        for anchor in soup.find_all("a", href=True):
            host = _hostname(_resolve(anchor.get("href") or "", page_url))
            if not host or host == page_host:
                continue
            text = anchor.get_text(" ", strip=True)
            lowered = text.lower()
            if any(phrase in lowered for phrase in self.link_phrases):
                patterns.append(f'Suspicious link text: "{text}"')
        return tuple(patterns)

    @staticmethod
    def _has_popup_or_redirect(soup: BeautifulSoup) -> bool:
        script_text = " ".join(script.get_text() for script in soup.find_all("script"))
        markers = POPUP_SCRIPT_MARKERS + REDIRECT_SCRIPT_MARKERS
        return any(marker in script_text for marker in markers)

    @staticmethod
    def _suspicious_iframes(soup: BeautifulSoup, page_url: str, page_host: Optional[str]) -> int:
        count = 0
        for iframe in soup.find_all("iframe", src=True):
            host = _hostname(_resolve(iframe.get("src") or "", page_url))
            if host and host != page_host:
                count += 1
        return count


def extract_page_features(html: str, page_url: str) -> PageFeatures:
    """Extract features with the default keyword and link-phrase lists."""
    return PageFeatureExtractor().extract(html, page_url)
