"""Shared helpers for VibeSniff."""
