"""Section Loader — Routes section retrieval to the owning provider, with caching.

For every ``(textid, sectionid)`` there is at most one cached entry and at
most one retrieval in flight. Callers that arrive while a retrieval is
pending attach to it and all receive the same outcome. Waiting goes through
``asyncio.shield``: a caller that goes away cancels only its own wait, the
retrieval carries on and its result is cached for whoever asks next.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from lectern.cache.manager import SectionCache
from lectern.models.text import SectionKey, split_text_id
from lectern.providers.base.exceptions import SectionNotFound

if TYPE_CHECKING:
    from lectern.core.catalog import ManifestAggregator
    from lectern.providers.base.provider import TextProvider

logger = logging.getLogger(__name__)


class SectionLoader:
    """Loads section content through the catalog's provider routing.

    Attributes:
        catalog: Aggregator that knows which provider owns each text.
        cache: Session cache of retrieved sections.
        timeout: Seconds to wait for one provider retrieval.
    """

    def __init__(
        self,
        catalog: ManifestAggregator,
        cache: SectionCache | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.catalog = catalog
        self.cache = cache if cache is not None else SectionCache()
        self.timeout = timeout
        self._inflight: dict[SectionKey, asyncio.Task[str | None]] = {}

    @property
    def pending(self) -> int:
        """Number of retrievals currently in flight."""
        return len(self._inflight)

    async def load_section(self, textid: str, sectionid: str) -> str | None:
        """Return the content of one section.

        Args:
            textid: Catalog id, abbreviation or ``provider:textid``.
            sectionid: Section identifier, e.g. ``"JN3"``.

        Returns:
            The raw section content, or ``None`` when the section cannot be
            found or its provider fails. Never raises for provider errors.
        """
        if not textid or not sectionid or sectionid == "null":
            return None

        resolved = await self.catalog.resolve(textid)
        if resolved is None:
            logger.warning("Cannot load %s/%s: no provider owns the text", textid, sectionid)
            return None
        provider_name, provider, native_id = resolved

        entry = self.catalog.get_entry(textid)
        catalog_id = self._cache_textid(textid, provider_name)
        if entry is not None and entry.sections and sectionid not in entry.sections:
            logger.debug("Section %s not in %s; using %s", sectionid, catalog_id, entry.sections[0])
            sectionid = entry.sections[0]

        key = SectionKey(textid=catalog_id, sectionid=sectionid)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached.data

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._retrieve(key, provider_name, provider, native_id))
            self._inflight[key] = task
            task.add_done_callback(lambda done, k=key: self._settled(k, done))
        return await asyncio.shield(task)

    def _settled(self, key: SectionKey, task: asyncio.Task[str | None]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _retrieve(
        self,
        key: SectionKey,
        provider_name: str,
        provider: TextProvider,
        native_id: str,
    ) -> str | None:
        try:
            content = await asyncio.wait_for(
                provider.load_section(native_id, key.sectionid),
                timeout=self.timeout,
            )
        except SectionNotFound:
            logger.info("Section not found: %s (provider '%s')", key, provider_name)
            return None
        except TimeoutError:
            logger.warning("Provider '%s' timed out loading %s", provider_name, key)
            return None
        except Exception:
            logger.warning("Provider '%s' failed loading %s", provider_name, key, exc_info=True)
            return None

        if content is None:
            logger.info("Section not found: %s (provider '%s')", key, provider_name)
            return None
        if not isinstance(content, str):
            logger.warning(
                "Provider '%s' returned %s for %s; expected text",
                provider_name,
                type(content).__name__,
                key,
            )
            return None

        await self.cache.set(key, content, provider_name)
        return content

    async def load_sections(self, textid: str, sectionids: list[str]) -> dict[str, str | None]:
        """Load several sections of one text concurrently."""
        contents = await asyncio.gather(*(self.load_section(textid, sid) for sid in sectionids))
        return dict(zip(sectionids, contents, strict=True))

    def _cache_textid(self, textid: str, provider_name: str | None = None) -> str:
        """Cache key text id: the catalog id when the owner serves it, else ``provider:textid``."""
        prefix, bare = split_text_id(textid)
        provider_name = provider_name or prefix
        entry = self.catalog.get_entry(textid)
        if entry is None:
            return f"{provider_name}:{bare}" if provider_name else bare
        if provider_name is None or provider_name == entry.provider_name:
            return entry.id
        return f"{provider_name}:{entry.id}"

    async def invalidate(self, textid: str, sectionid: str | None = None) -> None:
        """Remove one cached section, or every cached section of a text."""
        catalog_id = self._cache_textid(textid)
        if sectionid is None:
            await self.cache.invalidate_text(catalog_id)
        else:
            await self.cache.delete(SectionKey(textid=catalog_id, sectionid=sectionid))

    async def clear(self) -> None:
        """Remove every cached section."""
        await self.cache.clear()

    async def close(self) -> None:
        """Cancel retrievals still in flight (application shutdown)."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
