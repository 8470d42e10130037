"""Text provider layer — Pluggable connectors for text, commentary and audio sources.

Built-in providers:
  - local: bundled texts stored on disk (texts.json + per-text folders)
  - remote: texts served over HTTP with the same layout
  - commentary: remote commentary collections
  - audio-index: audio-only backends listing recordings per text

Implement ``TextProvider`` to connect your own content source.
"""
