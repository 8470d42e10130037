"""Audio index provider — Audio-only backends listing recordings per text."""
