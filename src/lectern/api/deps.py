"""API dependencies — Dependency injection for FastAPI endpoints."""

from __future__ import annotations

from lectern.core.library import Library

# Global library instance (set during application lifespan)
_library: Library | None = None


def set_library(library: Library | None) -> None:
    """Set the global library instance (called during app lifespan)."""
    global _library
    _library = library


def get_library() -> Library:
    """Get the global library instance.

    Raises:
        RuntimeError: If the library is not initialized.
    """
    if _library is None:
        raise RuntimeError("Lectern library not initialized. Is the server running?")
    return _library
