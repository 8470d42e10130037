"""Local provider — Bundled texts stored on disk."""
