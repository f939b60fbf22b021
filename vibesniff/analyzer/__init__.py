"""Analyzer modules for VibeSniff."""

from .browser import PageRenderer
from .browser_models import RenderedPage
from .features import PageFeatureExtractor, PageFeatures, extract_page_features
from .rules import RiskFactor
from .scoring import InvariantViolation, ScoreResult, SuspicionScorer, classify_risk
from .signals import SignalCollector, Signals, SignalUnavailable

__all__ = [
    "PageRenderer",
    "RenderedPage",
    "PageFeatureExtractor",
    "PageFeatures",
    "extract_page_features",
    "RiskFactor",
    "InvariantViolation",
    "ScoreResult",
    "SuspicionScorer",
    "classify_risk",
    "SignalCollector",
    "Signals",
    "SignalUnavailable",
]
