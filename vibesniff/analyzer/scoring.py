"""Suspicion scoring engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..constants import HIGH_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD, NO_FINDINGS_REASON, RiskLevel
from .features import PageFeatures
from .rules import RiskFactor, ScoringContext, ScoringRule
from .scoring_rules import (
    CertificateAgeRule,
    DomainAgeRule,
    ExternalHostsRule,
    FormActionMismatchRule,
    PasswordFormRule,
    PopupRedirectRule,
    SuspiciousFormPatternRule,
    SuspiciousIframeRule,
    SuspiciousKeywordsRule,
    SuspiciousLinksRule,
)
from .signals import Signals

logger = logging.getLogger(__name__)

MAX_SCORE = 1.0
SCORE_PRECISION = 2


class InvariantViolation(RuntimeError):
    """The engine produced a result that breaks its own guarantees."""


@dataclass(frozen=True)
class ScoreResult:
    """Bounded suspicion score with risk level and rationale."""

    score: float
    risk_level: RiskLevel
    reasons: tuple[str, ...]
    risk_factors: tuple[RiskFactor, ...] = ()

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "risk_level": self.risk_level.value,
            "reasons": list(self.reasons),
            "risk_factors": [factor.to_dict() for factor in self.risk_factors],
        }


def classify_risk(score: float) -> RiskLevel:
    """Map a score to a risk level; both thresholds are exclusive."""
    if score > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score > MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class SuspicionScorer:
    """Aggregates page features and trust signals into a ScoreResult."""

    DEFAULT_WEIGHTS = {
        "new_domain": 0.35,
        "recent_domain": 0.15,
        "new_certificate": 0.20,
        "password_form": 0.20,
        "action_mismatch": 0.25,
        "suspicious_forms": 0.15,
        "external_hosts": 0.10,
        "suspicious_keywords": 0.15,
        "suspicious_links": 0.10,
        "popup_redirect": 0.10,
        "suspicious_iframes": 0.10,
    }

    def __init__(self, weights: Optional[dict[str, float]] = None):
        self.weights = dict(self.DEFAULT_WEIGHTS)
        for key, value in (weights or {}).items():
            if key not in self.DEFAULT_WEIGHTS:
                raise ValueError(f"Unknown scoring weight: {key}")
            if not 0 < float(value) <= 1:
                raise ValueError(f"Weight {key} must be in (0, 1], got {value}")
            self.weights[key] = float(value)

        # Evaluation order is fixed; reasons and risk factors follow it.
        self._rules: list[ScoringRule] = [
            DomainAgeRule(),
            CertificateAgeRule(),
            PasswordFormRule(),
            FormActionMismatchRule(),
            SuspiciousFormPatternRule(),
            ExternalHostsRule(),
            SuspiciousKeywordsRule(),
            SuspiciousLinksRule(),
            PopupRedirectRule(),
            SuspiciousIframeRule(),
        ]

    @property
    def rules(self) -> list[ScoringRule]:
        return list(self._rules)

    def score(self, features: PageFeatures, signals: Signals) -> ScoreResult:
        """Evaluate every rule and build the result."""
        context = ScoringContext(features=features, signals=signals)

        total = 0.0
        reasons: list[str] = []
        factors: list[RiskFactor] = []

        for rule in self._rules:
            outcome = rule.apply(self, context)
            if not outcome.fired:
                continue
            total += outcome.weight
            reasons.append(outcome.reason or outcome.name)
            factors.append(outcome.factor)

        # Round once, after clamping; classification uses the reported value.
        score = round(min(total, MAX_SCORE), SCORE_PRECISION)

        if not reasons:
            reasons.append(NO_FINDINGS_REASON)

        result = ScoreResult(
            score=score,
            risk_level=classify_risk(score),
            reasons=tuple(reasons),
            risk_factors=tuple(factors),
        )
        self._check_invariants(result)
        logger.debug("Scored %.2f (%s) from %d rule(s)", result.score, result.risk_level, len(factors))
        return result

    @staticmethod
    def _check_invariants(result: ScoreResult) -> None:
        if not 0.0 <= result.score <= MAX_SCORE:
            raise InvariantViolation(f"score {result.score} outside [0, 1]")
        if not result.reasons:
            raise InvariantViolation("result has no reasons")
        if result.risk_factors and len(result.risk_factors) != len(result.reasons):
            raise InvariantViolation("reasons and risk factors are out of step")
        if not result.risk_factors and result.reasons != (NO_FINDINGS_REASON,):
            raise InvariantViolation("reasons present without matching risk factors")


def score_page(features: PageFeatures, signals: Signals) -> ScoreResult:
    """Score with the default rule weights."""
    return SuspicionScorer().score(features, signals)
