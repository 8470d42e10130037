"""Library — Application context owning the providers, catalog, cache and search.

One ``Library`` holds all session state: the merged catalog, the section
cache and the built search indexes. Applications create one at startup (the
API does so in its lifespan); tests create one per test.

Usage::

    async with Library.from_settings(settings) as library:
        catalog = await library.get_catalog()
        html = await library.load_section("ENGWEB", "JN3")
        result = await library.search("born again", ["ENGWEB", "ENGKJV"])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from lectern.cache.manager import SectionCache
from lectern.config.settings import Settings
from lectern.core.catalog import ManifestAggregator
from lectern.core.factory import build_providers
from lectern.core.search import SearchCoordinator
from lectern.core.sections import SectionLoader
from lectern.providers.base.registry import ProviderRegistry

if TYPE_CHECKING:
    from lectern.models.search import SearchOptions, SearchResult
    from lectern.models.text import ProviderDescriptor, ProviderHealth, TextEntry

logger = logging.getLogger(__name__)


class Library:
    """Consumer-facing entry point to every text source.

    Attributes:
        settings: Application configuration.
        registry: Registered providers, in priority order.
        catalog: Manifest aggregator and text-info lookups.
        sections: Cached, deduplicated section loader.
        searcher: Full-text search coordinator.
    """

    def __init__(self, settings: Settings | None = None, registry: ProviderRegistry | None = None) -> None:
        self.settings = settings or Settings()
        self.registry = registry if registry is not None else ProviderRegistry()
        self.cache = SectionCache(self.settings.cache)
        self.catalog = ManifestAggregator(self.registry, self.settings.catalog)
        self.sections = SectionLoader(
            self.catalog,
            self.cache,
            timeout=self.settings.catalog.provider_timeout,
        )
        self.searcher = SearchCoordinator(self.catalog, self.sections, self.settings.search)

    @classmethod
    def from_settings(cls, settings: Settings) -> Library:
        """Create a library with every provider declared in ``settings``."""
        library = cls(settings)
        for name, provider in build_providers(settings):
            library.register(name, provider)
        return library

    def register(self, name: str, provider: Any) -> None:
        """Register a provider; see ``ProviderRegistry.register``."""
        self.registry.register(name, provider)

    async def initialize(self) -> None:
        """Initialize every registered provider."""
        await self.registry.initialize_all()
        logger.info("Library initialized with providers: %s", ", ".join(self.registry.names) or "(none)")

    async def shutdown(self) -> None:
        """Cancel pending retrievals and shut providers down."""
        await self.sections.close()
        await self.registry.shutdown_all()
        logger.info("Library shut down")

    async def __aenter__(self) -> Library:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    # ──────────────────────────────────────────────────────────────────────
    # Consumer operations
    # ──────────────────────────────────────────────────────────────────────

    def list_providers(self) -> list[ProviderDescriptor]:
        """Registered providers in registration order."""
        return self.registry.descriptors()

    async def get_catalog(self) -> list[TextEntry]:
        """The merged, deduplicated catalog."""
        return await self.catalog.load_catalog()

    async def refresh_catalog(self) -> list[TextEntry]:
        """Ask every provider again; existing entries are only annotated."""
        return await self.catalog.refresh()

    async def get_text_info(self, textid: str) -> TextEntry | None:
        """Detailed information (divisions, sections) for one text."""
        return await self.catalog.get_text_info(textid)

    async def load_texts(self, textids: list[str]) -> list[TextEntry]:
        """Detailed information for several texts."""
        return await self.catalog.load_texts(textids)

    async def load_section(self, textid: str, sectionid: str) -> str | None:
        """Content of one section, or ``None``."""
        return await self.sections.load_section(textid, sectionid)

    async def load_sections(self, textid: str, sectionids: list[str]) -> dict[str, str | None]:
        """Content of several sections of one text."""
        return await self.sections.load_sections(textid, sectionids)

    async def search(
        self,
        query: str,
        textids: list[str],
        options: SearchOptions | None = None,
    ) -> SearchResult:
        """Full-text search across the given texts."""
        return await self.searcher.search(query, textids, options)

    async def clear_cache(self) -> None:
        """Drop cached sections, text details and search indexes."""
        await self.sections.clear()
        self.catalog.forget_details()
        self.searcher.clear()
        logger.info("Library caches cleared")

    async def health(self) -> dict[str, ProviderHealth]:
        """Health of every registered provider."""
        return await self.registry.health_check_all()
