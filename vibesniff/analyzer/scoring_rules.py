"""Scoring rule implementations, one per suspicious trait."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .rules import RuleResult, ScoringContext

if TYPE_CHECKING:
    from .scoring import SuspicionScorer

NEW_DOMAIN_DAYS = 7
RECENT_DOMAIN_DAYS = 30
NEW_CERTIFICATE_DAYS = 7
EXTERNAL_HOSTS_THRESHOLD = 8
SUSPICIOUS_KEYWORDS_THRESHOLD = 3


class DomainAgeRule:
    """Very new and recently registered domains; at most one branch fires."""

    name = "domain_age"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        age = context.signals.domain_age_days
        if age is None:
            return RuleResult(self.name)
        if age < NEW_DOMAIN_DAYS:
            return RuleResult.fire(
                self.name,
                "New Domain",
                scorer.weights["new_domain"],
                age,
                f"Domain age is {age} days (suspicious if < {NEW_DOMAIN_DAYS})",
            )
        if age < RECENT_DOMAIN_DAYS:
            return RuleResult.fire(
                self.name,
                "Recent Domain",
                scorer.weights["recent_domain"],
                age,
                f"Domain age is {age} days (somewhat new)",
            )
        return RuleResult(self.name)


class CertificateAgeRule:
    name = "certificate_age"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        age = context.signals.tls_age_days
        if age is None or age >= NEW_CERTIFICATE_DAYS:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "New Certificate",
            scorer.weights["new_certificate"],
            age,
            f"TLS certificate age is {age} days (suspicious if < {NEW_CERTIFICATE_DAYS})",
        )


class PasswordFormRule:
    name = "password_form"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        if not context.features.has_password_form:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "Password Form",
            scorer.weights["password_form"],
            1,
            "Contains password form",
        )


class FormActionMismatchRule:
    name = "form_action_mismatch"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        if not context.features.form_action_mismatch:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "Action Mismatch",
            scorer.weights["action_mismatch"],
            1,
            "Password form action points to different domain",
        )


class SuspiciousFormPatternRule:
    name = "suspicious_forms"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        patterns = context.features.suspicious_form_patterns
        if not patterns:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "Suspicious Forms",
            scorer.weights["suspicious_forms"],
            len(patterns),
            f"Suspicious form patterns: {', '.join(patterns)}",
        )


class ExternalHostsRule:
    name = "external_hosts"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        count = context.features.external_host_count
        if count <= EXTERNAL_HOSTS_THRESHOLD:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "High External Hosts",
            scorer.weights["external_hosts"],
            count,
            f"High number of external hosts: {count} (suspicious if > {EXTERNAL_HOSTS_THRESHOLD})",
        )


class SuspiciousKeywordsRule:
    name = "suspicious_keywords"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        count = context.features.suspicious_keyword_count
        if count <= SUSPICIOUS_KEYWORDS_THRESHOLD:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "Suspicious Keywords",
            scorer.weights["suspicious_keywords"],
            count,
            f"High number of suspicious keywords: {count}",
        )


class SuspiciousLinksRule:
    name = "suspicious_links"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        patterns = context.features.suspicious_link_patterns
        if not patterns:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "Suspicious Links",
            scorer.weights["suspicious_links"],
            len(patterns),
            f"Suspicious link patterns detected: {len(patterns)}",
        )


class PopupRedirectRule:
    name = "popup_redirect"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        if not context.features.has_popup_or_redirect_script:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "Popups/Redirects",
            scorer.weights["popup_redirect"],
            1,
            "Contains popup or redirect scripts",
        )


class SuspiciousIframeRule:
    name = "suspicious_iframes"

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:
        count = context.features.suspicious_iframe_count
        if count <= 0:
            return RuleResult(self.name)
        return RuleResult.fire(
            self.name,
            "Suspicious Iframes",
            scorer.weights["suspicious_iframes"],
            count,
            f"Suspicious iframes detected: {count}",
        )


__all__ = [
    "DomainAgeRule",
    "CertificateAgeRule",
    "PasswordFormRule",
    "FormActionMismatchRule",
    "SuspiciousFormPatternRule",
    "ExternalHostsRule",
    "SuspiciousKeywordsRule",
    "SuspiciousLinksRule",
    "PopupRedirectRule",
    "SuspiciousIframeRule",
]
