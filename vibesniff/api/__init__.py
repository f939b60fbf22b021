"""HTTP API for VibeSniff."""

from .server import ApiServer, create_app

__all__ = ["ApiServer", "create_app"]
