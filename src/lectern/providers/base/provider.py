"""Base text provider — Abstract interface for all content source connectors.

Every content source must implement this interface to be registered with
Lectern. A provider is responsible for:
  1. Describing the texts it offers (manifest)
  2. Returning detailed structural information for one text
  3. Retrieving raw section content
  4. Optionally, searching its own texts
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from lectern.models.text import Capability, ProviderHealth

if TYPE_CHECKING:
    from lectern.models.search import SearchMatch, SearchOptions
    from lectern.models.text import TextEntry

REQUIRED_OPERATIONS: tuple[str, ...] = ("get_manifest", "get_text_info", "load_section")


class TextProvider(ABC):
    """Abstract base class for text providers.

    All providers must implement:
      - get_manifest(): List the texts this provider offers
      - get_text_info(): Detailed metadata (divisions, sections) for one text
      - load_section(): Raw content of one section

    Every operation resolves exactly once. Returning ``None`` means "nothing
    to contribute"; raising is allowed and is isolated by the core, which
    never lets one provider's failure abort a catalog, load or search.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name (e.g., 'local', 'audio-index')."""

    @property
    def capabilities(self) -> list[Capability]:
        """Operations this provider serves."""
        caps = [Capability.MANIFEST, Capability.TEXT_INFO, Capability.SECTIONS]
        if self.supports_search:
            caps.append(Capability.SEARCH)
        return caps

    @property
    def supports_search(self) -> bool:
        """Whether ``search()`` is implemented by this provider."""
        return type(self).search is not TextProvider.search

    async def initialize(self) -> None:
        """Open connections or load indexes. Called once at startup."""

    async def shutdown(self) -> None:
        """Release resources. Called once at shutdown."""

    @abstractmethod
    async def get_manifest(self) -> list[TextEntry | dict[str, Any]] | None:
        """Return the texts this provider offers.

        Returns:
            Manifest entries (``TextEntry`` or raw dicts), or ``None``/empty
            when the provider has nothing to contribute.
        """

    @abstractmethod
    async def get_text_info(self, textid: str) -> TextEntry | dict[str, Any] | None:
        """Return detailed information for one text.

        Args:
            textid: The text identifier (without provider prefix).

        Returns:
            Structural metadata (divisions, division names, sections), or
            ``None`` if the text is unknown to this provider.
        """

    @abstractmethod
    async def load_section(self, textid: str, sectionid: str) -> str | None:
        """Retrieve the raw content of one section.

        Args:
            textid: The text identifier.
            sectionid: The section identifier (e.g. ``"JN3"``).

        Returns:
            Raw section content (usually HTML), or ``None`` on a miss.
        """

    async def search(
        self,
        textid: str,
        terms: list[str],
        options: SearchOptions,
    ) -> list[SearchMatch] | None:
        """Search one text with the provider's own engine.

        Only called when ``supports_search`` is true. Returning ``None``
        hands the query over to the generic index.
        """
        return None

    async def health_check(self) -> ProviderHealth:
        """Check the health of the content source."""
        return ProviderHealth(status="healthy")
