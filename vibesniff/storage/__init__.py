"""Artifact storage for VibeSniff."""

from .evidence import EvidenceStore

__all__ = ["EvidenceStore"]
