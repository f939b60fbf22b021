"""VibeSniff - phishing/scam suspicion scoring for rendered web pages."""

__version__ = "1.0.0"
