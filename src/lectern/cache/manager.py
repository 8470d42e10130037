"""Section Cache — In-memory store for retrieved section content.

Entries live for the session: there is no TTL and no persistence. Only an
explicit ``delete``, ``invalidate_text`` or ``clear`` removes them.
"""

from __future__ import annotations

import logging

from lectern.config.settings import CacheSettings
from lectern.models.text import CacheEntry, SectionKey

logger = logging.getLogger(__name__)


class SectionCache:
    """Holds at most one ``CacheEntry`` per ``SectionKey``.

    Attributes:
        settings: Cache configuration.
        hits: Number of lookups answered from the cache.
        misses: Number of lookups that found nothing.
    """

    def __init__(self, settings: CacheSettings | None = None) -> None:
        self.settings = settings or CacheSettings()
        self._entries: dict[SectionKey, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    async def get(self, key: SectionKey) -> CacheEntry | None:
        """Retrieve an entry from the cache.

        Args:
            key: Section address.

        Returns:
            The cached entry or None if not found.
        """
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
        else:
            self.hits += 1
        return entry

    async def set(self, key: SectionKey, data: str, provider_name: str) -> CacheEntry | None:
        """Store retrieved content.

        Args:
            key: Section address.
            data: Raw section content.
            provider_name: Provider the content came from.

        Returns:
            The stored entry, or None when caching is disabled.
        """
        if not self.settings.enabled:
            return None
        entry = CacheEntry(key=key, data=data, provider_name=provider_name)
        self._entries[key] = entry
        return entry

    async def delete(self, key: SectionKey) -> None:
        """Delete one entry."""
        self._entries.pop(key, None)

    async def invalidate_text(self, textid: str) -> int:
        """Delete every entry of one text.

        Returns:
            Number of entries removed.
        """
        keys = [key for key in self._entries if key.textid == textid]
        for key in keys:
            del self._entries[key]
        if keys:
            logger.debug("Invalidated %d cached sections of %s", len(keys), textid)
        return len(keys)

    async def clear(self) -> None:
        """Clear all cached entries."""
        self._entries.clear()
        logger.debug("Section cache cleared")

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
