"""Lectern — Unified catalog, section and search access over many text providers."""

__version__ = "0.1.0"
