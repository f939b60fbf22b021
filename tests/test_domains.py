"""Tests for hostname and apex helpers."""

import pytest

from vibesniff.utils.domains import MalformedURL, ensure_url, extract_hostname, resolve_apex


class TestResolveApex:
    """Naive two-label apex heuristic."""

    def test_subdomain_reduced_to_last_two_labels(self):
        assert resolve_apex("https://login.accounts.example.com/signin") == "example.com"

    def test_multi_label_suffix_is_not_special_cased(self):
        """Known limitation: co.uk is treated as the apex."""
        assert resolve_apex("https://login.example.co.uk/path") == "co.uk"

    def test_single_label_host_returned_whole(self):
        assert resolve_apex("http://localhost:8080/") == "localhost"

    def test_hostname_is_lowercased(self):
        assert resolve_apex("https://WWW.Example.COM") == "example.com"

    @pytest.mark.parametrize("url", ["", "not a url", "/relative/path", "http://[::1"])
    def test_unparsable_returns_none(self, url):
        assert resolve_apex(url) is None


def test_extract_hostname_strips_port_and_trailing_dot():
    assert extract_hostname("https://Example.com.:8443/x") == "example.com"


def test_extract_hostname_raises_for_missing_host():
    with pytest.raises(MalformedURL):
        extract_hostname("mailto:someone")


def test_ensure_url_adds_https_only_when_scheme_missing():
    assert ensure_url("example.com/login") == "https://example.com/login"
    assert ensure_url("http://example.com") == "http://example.com"
    assert ensure_url("  ") == ""


@pytest.mark.parametrize("url", ["https://example.com:99999/", "https://example.com:abc/"])
def test_extract_hostname_rejects_bad_port(url):
    with pytest.raises(MalformedURL):
        extract_hostname(url)
