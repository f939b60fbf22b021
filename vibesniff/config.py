"""Configuration management for VibeSniff."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .analyzer.scoring import SuspicionScorer
from .constants import DEFAULT_SUSPICIOUS_KEYWORDS, DEFAULT_SUSPICIOUS_LINK_PHRASES

logger = logging.getLogger(__name__)

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Config:
    """VibeSniff configuration."""

    # Storage
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    reports_dir: Path = field(default_factory=lambda: Path("./data/reports"))
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    # Timeouts (seconds)
    navigation_timeout: int = 30
    tls_timeout: float = 5.0
    rdap_timeout: float = 15.0
    archive_timeout: float = 15.0

    headless: bool = True

    # API server
    server_host: str = "0.0.0.0"
    server_port: int = 3000

    log_level: str = "INFO"

    # Heuristics (override via config/heuristics.yaml)
    suspicious_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_SUSPICIOUS_KEYWORDS))
    suspicious_link_phrases: list[str] = field(
        default_factory=lambda: list(DEFAULT_SUSPICIOUS_LINK_PHRASES)
    )
    scoring_weights: dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        """Normalize paths and create storage directories."""
        self.data_dir = Path(self.data_dir)
        self.reports_dir = Path(self.reports_dir)
        self.config_dir = Path(self.config_dir)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.reports_dir.mkdir(parents=True, exist_ok=True)

    @property
    def evidence_dir(self) -> Path:
        return self.data_dir / "scans"


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring heuristics.yaml: top level must be a mapping")
        return {}

    def _coerce_phrases(raw, key):
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.warning("Ignoring heuristics %s: expected a list", key)
            return None
        items = [str(item).strip().lower() for item in raw if str(item or "").strip()]
        return items or None

    def _coerce_weights(raw):
        weights: dict[str, float] = {}
        if raw is None:
            return weights
        if not isinstance(raw, dict):
            logger.warning("Ignoring heuristics scoring: expected a mapping")
            return weights
        for key, value in raw.items():
            if key not in SuspicionScorer.DEFAULT_WEIGHTS:
                logger.warning("Ignoring unknown scoring weight: %s", key)
                continue
            try:
                weights[key] = float(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric scoring weight %s=%r", key, value)
        return weights

    result: dict = {}
    keywords = _coerce_phrases(data.get("suspicious_keywords"), "suspicious_keywords")
    if keywords:
        result["suspicious_keywords"] = keywords
    phrases = _coerce_phrases(data.get("suspicious_link_phrases"), "suspicious_link_phrases")
    if phrases:
        result["suspicious_link_phrases"] = phrases
    weights = _coerce_weights(data.get("scoring"))
    if weights:
        result["scoring_weights"] = weights
    return result


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    return Config(
        data_dir=Path(os.getenv("DATA_DIR", "./data")),
        reports_dir=Path(os.getenv("REPORTS_DIR", "./data/reports")),
        config_dir=config_dir,
        navigation_timeout=int(os.getenv("NAVIGATION_TIMEOUT", "30")),
        tls_timeout=float(os.getenv("TLS_TIMEOUT", "5")),
        rdap_timeout=float(os.getenv("RDAP_TIMEOUT", "15")),
        archive_timeout=float(os.getenv("ARCHIVE_TIMEOUT", "15")),
        headless=_env_bool("HEADLESS", "true"),
        server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
        server_port=int(os.getenv("PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        suspicious_keywords=heuristics.get("suspicious_keywords", list(DEFAULT_SUSPICIOUS_KEYWORDS)),
        suspicious_link_phrases=heuristics.get(
            "suspicious_link_phrases", list(DEFAULT_SUSPICIOUS_LINK_PHRASES)
        ),
        scoring_weights=heuristics.get("scoring_weights", {}),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []

    for name in ("navigation_timeout", "tls_timeout", "rdap_timeout", "archive_timeout"):
        if getattr(config, name) <= 0:
            errors.append(f"{name.upper()} must be positive")

    if not 0 < config.server_port < 65536:
        errors.append(f"PORT must be between 1 and 65535, got {config.server_port}")

    if config.log_level not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(sorted(LOG_LEVELS))}")

    for key, value in config.scoring_weights.items():
        if key not in SuspicionScorer.DEFAULT_WEIGHTS:
            errors.append(f"Unknown scoring weight: {key}")
        elif not 0 < value <= 1:
            errors.append(f"Scoring weight {key} must be in (0, 1], got {value}")

    if not config.suspicious_keywords:
        errors.append("At least one suspicious keyword is required")

    return errors
