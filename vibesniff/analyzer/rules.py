"""Rule-based building blocks for suspicion scoring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

from .features import PageFeatures
from .signals import Signals

if TYPE_CHECKING:
    from .scoring import SuspicionScorer


@dataclass(frozen=True)
class ScoringContext:
    """Inputs shared by every scoring rule."""

    features: PageFeatures
    signals: Signals


@dataclass(frozen=True)
class RiskFactor:
    """Structured record of one rule that fired."""

    name: str
    weight: float
    observed_value: float

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "weight": self.weight,
            "observed_value": self.observed_value,
        }


@dataclass(frozen=True)
class RuleResult:
    """Outcome of a single scoring rule."""

    name: str
    weight: float = 0.0
    reason: Optional[str] = None
    factor: Optional[RiskFactor] = None

    @property
    def fired(self) -> bool:
        return self.factor is not None

    @classmethod
    def fire(cls, name: str, factor_name: str, weight: float, observed_value: float, reason: str) -> "RuleResult":
        return cls(
            name=name,
            weight=weight,
            reason=reason,
            factor=RiskFactor(name=factor_name, weight=weight, observed_value=observed_value),
        )


class ScoringRule(Protocol):
    """Interface for scoring rules."""

    name: str

    def apply(self, scorer: "SuspicionScorer", context: ScoringContext) -> RuleResult:  # pragma: no cover - interface
        ...
