"""Manifest Aggregator — Merges every provider's manifest into one catalog.

Providers are asked for their manifests concurrently, but contributions are
merged strictly in registration order once every call has settled, so the
catalog comes out identical no matter which backend answers first:

  provider manifests ─▶ [settle all] ─▶ merge in registration order
                                          │
                         identity key: id, else abbr (matches an
                         existing id or abbr)
                                          │
                           new ─▶ append     known ─▶ annotate

Annotating never removes anything: capability flags are OR-ed together and
descriptive fields are only filled where still empty.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from lectern.config.settings import CatalogSettings
from lectern.models.text import TextEntry, split_text_id
from lectern.providers.base.exceptions import MalformedEntry

if TYPE_CHECKING:
    from lectern.providers.base.provider import TextProvider
    from lectern.providers.base.registry import ProviderRegistry

logger = logging.getLogger(__name__)

_FLAG_FIELDS: tuple[str, ...] = ("has_text", "has_audio")

_DESCRIPTIVE_FIELDS: tuple[str, ...] = (
    "abbr",
    "name",
    "name_english",
    "title",
    "lang",
    "lang_name",
    "lang_name_english",
    "divisions",
    "division_names",
    "sections",
    "provider_ref",
)


def merge_entries(existing: TextEntry, incoming: TextEntry) -> None:
    """Annotate ``existing`` with what ``incoming`` adds.

    Capability flags are unioned. A descriptive field is copied only when
    ``existing`` has no value for it; values already set are kept.
    """
    for field in _FLAG_FIELDS:
        if getattr(incoming, field) and not getattr(existing, field):
            setattr(existing, field, True)

    for field in _DESCRIPTIVE_FIELDS:
        value = getattr(incoming, field)
        if value and not getattr(existing, field):
            setattr(existing, field, list(value) if isinstance(value, list) else value)

    for key, value in incoming.extra.items():
        existing.extra.setdefault(key, value)


class ManifestAggregator:
    """Builds and holds the merged catalog for one library.

    Attributes:
        registry: Providers to aggregate, in priority order.
        settings: Aggregation configuration.
    """

    def __init__(self, registry: ProviderRegistry, settings: CatalogSettings | None = None) -> None:
        self.registry = registry
        self.settings = settings or CatalogSettings()
        self._entries: dict[str, TextEntry] = {}
        self._aliases: dict[str, str] = {}
        # (catalog id, provider name) -> id that provider uses for the text
        self._native_ids: dict[tuple[str, str], str] = {}
        self._loaded = False
        self._loading: asyncio.Future[list[TextEntry]] | None = None
        self._details: dict[str, TextEntry] = {}
        self._detail_tasks: dict[str, asyncio.Future[TextEntry | None]] = {}

    @property
    def loaded(self) -> bool:
        """Whether a complete aggregation has finished."""
        return self._loaded

    @property
    def entries(self) -> list[TextEntry]:
        """Catalog entries in registration, then manifest, order."""
        return list(self._entries.values())

    # ──────────────────────────────────────────────────────────────────────
    # Aggregation
    # ──────────────────────────────────────────────────────────────────────

    async def load_catalog(self) -> list[TextEntry]:
        """Return the merged catalog, aggregating on first use.

        Concurrent callers share one aggregation run.
        """
        if self._loaded:
            return self.entries
        return await self._join_aggregation()

    async def refresh(self) -> list[TextEntry]:
        """Ask every provider again and annotate the existing catalog."""
        return await self._join_aggregation()

    async def _join_aggregation(self) -> list[TextEntry]:
        if self._loading is None:
            loading = asyncio.ensure_future(self._aggregate())
            self._loading = loading
            loading.add_done_callback(self._aggregation_settled)
        return await asyncio.shield(self._loading)

    def _aggregation_settled(self, future: asyncio.Future[list[TextEntry]]) -> None:
        if self._loading is future:
            self._loading = None

    async def _aggregate(self) -> list[TextEntry]:
        start_time = time.monotonic()
        providers = self.registry.items()

        manifests = await asyncio.gather(
            *(self._fetch_manifest(name, provider) for name, provider in providers)
        )

        before = len(self._entries)
        for (name, _provider), manifest in zip(providers, manifests, strict=True):
            for raw in manifest:
                self._merge(raw, name)

        self._loaded = True
        logger.info(
            "Catalog aggregated from %d providers: %d entries (%d new) in %d ms",
            len(providers),
            len(self._entries),
            len(self._entries) - before,
            int((time.monotonic() - start_time) * 1000),
        )
        return self.entries

    async def _fetch_manifest(self, name: str, provider: TextProvider) -> list[Any]:
        """Call one provider's manifest lookup; never raises."""
        try:
            manifest = await asyncio.wait_for(
                provider.get_manifest(),
                timeout=self.settings.provider_timeout,
            )
        except TimeoutError:
            logger.warning(
                "Provider '%s' manifest timed out after %.1fs; contributing nothing",
                name,
                self.settings.provider_timeout,
            )
            return []
        except Exception:
            logger.warning("Provider '%s' manifest failed; contributing nothing", name, exc_info=True)
            return []

        if not manifest:
            logger.debug("Provider '%s' contributed an empty manifest", name)
            return []
        if not isinstance(manifest, list | tuple):
            logger.warning(
                "Provider '%s' returned a %s instead of a manifest list; ignoring",
                name,
                type(manifest).__name__,
            )
            return []
        return list(manifest)

    def _merge(self, raw: Any, provider_name: str) -> None:
        try:
            incoming = TextEntry.from_raw(raw)
        except MalformedEntry as e:
            logger.warning("Dropping malformed entry from provider '%s': %s", provider_name, e)
            return

        existing = self._resolve(incoming)
        if existing is None:
            incoming.provider_name = provider_name
            self._entries[incoming.id] = incoming
            self._native_ids[(incoming.id, provider_name)] = incoming.id
            self._index_aliases(incoming)
            return

        self._native_ids.setdefault((existing.id, provider_name), incoming.id)
        owner_has_text = existing.has_text
        merge_entries(existing, incoming)
        if not owner_has_text and incoming.has_text and existing.provider_name != provider_name:
            logger.debug(
                "Section retrieval for '%s' moves from '%s' to text provider '%s'",
                existing.id,
                existing.provider_name,
                provider_name,
            )
            existing.provider_name = provider_name
        self._index_aliases(existing)

    def _resolve(self, incoming: TextEntry) -> TextEntry | None:
        """Find the catalog entry ``incoming`` describes, if any.

        The identity key is the id, which ``TextEntry.from_raw`` sets to the
        abbreviation for entries without one. It matches an existing id or
        abbreviation; distinct ids sharing an abbreviation stay distinct texts.
        """
        if incoming.id in self._entries:
            return self._entries[incoming.id]
        alias = self._aliases.get(incoming.id)
        if alias is not None:
            return self._entries[alias]
        return None

    def _index_aliases(self, entry: TextEntry) -> None:
        if entry.abbr and entry.abbr not in self._entries:
            self._aliases.setdefault(entry.abbr, entry.id)

    # ──────────────────────────────────────────────────────────────────────
    # Lookups
    # ──────────────────────────────────────────────────────────────────────

    def get_entry(self, textid: str) -> TextEntry | None:
        """Catalog entry for an id, abbreviation or ``provider:textid``."""
        _prefix, bare = split_text_id(textid)
        entry = self._entries.get(bare)
        if entry is None and bare in self._aliases:
            entry = self._entries[self._aliases[bare]]
        return entry

    def owner_of(self, textid: str) -> str | None:
        """Name of the provider serving a text's sections."""
        prefix, _bare = split_text_id(textid)
        if prefix is not None:
            return prefix if prefix in self.registry else None
        entry = self.get_entry(textid)
        return entry.provider_name if entry else None

    async def resolve(self, textid: str) -> tuple[str, TextProvider, str] | None:
        """Route a text id to its provider.

        Loads the catalog first if needed.

        Returns:
            ``(provider_name, provider, provider_native_textid)`` or ``None``
            when no registered provider owns the text.
        """
        if not self._loaded:
            await self.load_catalog()

        provider_name = self.owner_of(textid)
        if provider_name is None:
            return None
        provider = self.registry.find(provider_name)
        if provider is None:
            return None

        _prefix, bare = split_text_id(textid)
        entry = self.get_entry(bare)
        if entry is None:
            return provider_name, provider, bare
        return provider_name, provider, self._native_ids.get((entry.id, provider_name), entry.id)

    async def get_text_info(self, textid: str) -> TextEntry | None:
        """Detailed information (divisions, sections) for one text.

        The owning provider's detail is merged into the catalog entry, so the
        catalog's display fields win and the detail fills structure. Results
        are memoized; concurrent lookups share one provider call.

        Returns:
            The detailed entry, or ``None`` if the text is unknown or its
            provider fails.
        """
        if not self._loaded:
            await self.load_catalog()

        entry = self.get_entry(textid)
        key = entry.id if entry is not None else textid
        if key in self._details:
            return self._details[key]

        task = self._detail_tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_text_info(key, textid, entry))
            self._detail_tasks[key] = task
            task.add_done_callback(lambda done, k=key: self._detail_settled(k, done))
        return await asyncio.shield(task)

    def _detail_settled(self, key: str, future: asyncio.Future[TextEntry | None]) -> None:
        if self._detail_tasks.get(key) is future:
            del self._detail_tasks[key]

    async def _fetch_text_info(self, key: str, textid: str, entry: TextEntry | None) -> TextEntry | None:
        resolved = await self.resolve(textid)
        if resolved is None:
            logger.warning("No provider owns text '%s'", textid)
            return None
        provider_name, provider, native_id = resolved

        try:
            raw = await asyncio.wait_for(
                provider.get_text_info(native_id),
                timeout=self.settings.provider_timeout,
            )
        except TimeoutError:
            logger.warning("Provider '%s' timed out describing '%s'", provider_name, textid)
            return None
        except Exception:
            logger.warning("Provider '%s' failed describing '%s'", provider_name, textid, exc_info=True)
            return None

        if raw is None:
            logger.info("Provider '%s' has no info for '%s'", provider_name, textid)
            return None

        try:
            detail = TextEntry.from_raw(raw)
        except MalformedEntry as e:
            logger.warning("Provider '%s' returned malformed info for '%s': %s", provider_name, textid, e)
            return None

        if entry is None:
            detail.provider_name = provider_name
            self._details[key] = detail
            return detail

        merge_entries(entry, detail)
        self._details[key] = entry
        return entry

    async def load_texts(self, textids: list[str]) -> list[TextEntry]:
        """Detailed information for several texts; unknown texts are omitted."""
        infos = await asyncio.gather(*(self.get_text_info(textid) for textid in textids))
        return [info for info in infos if info is not None]

    def forget_details(self) -> None:
        """Drop memoized text details so the next lookup asks the provider again."""
        self._details.clear()
