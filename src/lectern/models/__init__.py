"""Data models shared across providers, core components and the API."""
