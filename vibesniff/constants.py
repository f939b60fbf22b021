"""Centralized constants for VibeSniff."""

from enum import Enum


class RiskLevel(str, Enum):
    """Discrete risk classification of a scanned page."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    def __str__(self) -> str:
        return self.value


# Classification thresholds (strictly greater than).
HIGH_RISK_THRESHOLD = 0.7
MEDIUM_RISK_THRESHOLD = 0.4

NO_FINDINGS_REASON = "no obvious suspicious patterns detected"

DEFAULT_SUSPICIOUS_KEYWORDS: list[str] = [
    "urgent",
    "verify",
    "confirm",
    "update",
    "suspended",
    "expired",
    "security",
    "account",
    "login",
    "password",
    "credit card",
    "ssn",
    "social security",
    "banking",
    "paypal",
    "amazon",
    "apple",
    "microsoft",
]

DEFAULT_SUSPICIOUS_LINK_PHRASES: list[str] = [
    "click here",
    "verify now",
    "update now",
]
