"""Search Coordinator — Full-text search across the active texts.

Each text gets a token index the first time it is searched:

  text info ─▶ load every section (cached) ─▶ tokenize ─▶ postings
                                                          token → [(sectionid, position), ...]

Queries are AND queries: a section matches only when it contains every
query term. A text whose index cannot be built is left out of that query's
result (and retried next time); the other texts are unaffected.
"""

from __future__ import annotations

import asyncio
import html
import logging
import re
import time
from typing import TYPE_CHECKING

from lectern.config.settings import SearchSettings
from lectern.models.search import SearchMatch, SearchOptions, SearchResult
from lectern.providers.base.exceptions import IndexBuildFailure

if TYPE_CHECKING:
    from lectern.core.catalog import ManifestAggregator
    from lectern.core.sections import SectionLoader

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_TOKEN_RE = re.compile(r"\w+(?:['’]\w+)*")


def tokenize(text: str) -> list[str]:
    """Split HTML or plain text into lowercase word tokens."""
    plain = html.unescape(_TAG_RE.sub(" ", text))
    return [match.group(0).replace("’", "'").lower() for match in _TOKEN_RE.finditer(plain)]


def _in_divisions(sectionid: str, divisions: list[str] | None) -> bool:
    if not divisions:
        return True
    return any(sectionid.startswith(division) for division in divisions)


class SearchIndex:
    """Token postings for one text.

    Attributes:
        textid: The indexed text.
        sections: Section ids in canonical order.
        postings: token → ordered ``(sectionid, position)`` pairs.
    """

    def __init__(self, textid: str) -> None:
        self.textid = textid
        self.sections: list[str] = []
        self.postings: dict[str, list[tuple[str, int]]] = {}
        self._tokens: dict[str, list[str]] = {}

    def add_section(self, sectionid: str, content: str) -> None:
        """Index one section. Sections must be added in canonical order."""
        tokens = tokenize(content)
        self.sections.append(sectionid)
        self._tokens[sectionid] = tokens
        for position, token in enumerate(tokens):
            self.postings.setdefault(token, []).append((sectionid, position))

    def context(self, sectionid: str, position: int, width: int) -> str:
        """Tokens around ``position``, ``width`` on each side."""
        tokens = self._tokens.get(sectionid, [])
        return " ".join(tokens[max(0, position - width) : position + width + 1])

    def query(self, terms: list[str], options: SearchOptions) -> list[SearchMatch]:
        """Sections containing every term, in canonical order."""
        if not terms:
            return []

        per_term: list[dict[str, list[int]]] = []
        for term in terms:
            postings = self.postings.get(term)
            if not postings:
                return []
            by_section: dict[str, list[int]] = {}
            for sectionid, position in postings:
                by_section.setdefault(sectionid, []).append(position)
            per_term.append(by_section)

        common = set(per_term[0]).intersection(*per_term[1:])
        matches: list[SearchMatch] = []
        for sectionid in self.sections:
            if sectionid not in common or not _in_divisions(sectionid, options.divisions):
                continue
            positions = sorted(pos for by_section in per_term for pos in by_section[sectionid])
            matches.append(
                SearchMatch(
                    textid=self.textid,
                    sectionid=sectionid,
                    positions=positions,
                    hits=len(positions),
                    context=self.context(sectionid, positions[0], options.context_tokens),
                )
            )
        return matches

    @property
    def token_count(self) -> int:
        """Number of distinct tokens indexed."""
        return len(self.postings)


class SearchCoordinator:
    """Builds per-text indexes on demand and runs queries across texts.

    Attributes:
        catalog: Aggregator used to describe texts and route provider search.
        loader: Section loader used to fetch index sources.
        settings: Search configuration.
    """

    def __init__(
        self,
        catalog: ManifestAggregator,
        loader: SectionLoader,
        settings: SearchSettings | None = None,
    ) -> None:
        self.catalog = catalog
        self.loader = loader
        self.settings = settings or SearchSettings()
        self._indexes: dict[str, SearchIndex] = {}
        self._building: dict[str, asyncio.Task[SearchIndex]] = {}

    def default_options(self) -> SearchOptions:
        """Search options built from the configured defaults."""
        return SearchOptions(
            max_results=self.settings.max_results,
            context_tokens=self.settings.context_tokens,
        )

    async def search(
        self,
        query: str,
        active_textids: list[str],
        options: SearchOptions | None = None,
    ) -> SearchResult:
        """Run an AND query over the given texts.

        Args:
            query: Search terms, tokenized like indexed content.
            active_textids: Texts to search; result order follows this order.
            options: Search behavior options; configured defaults if None.

        Returns:
            A SearchResult. Texts that could not be indexed are listed in
            ``failed_texts``; a query without matches yields an empty result.
        """
        start_time = time.monotonic()
        options = options or self.default_options()
        terms = list(dict.fromkeys(tokenize(query)))
        result = SearchResult(query=query, terms=terms)

        textids = list(dict.fromkeys(active_textids))
        if terms and textids:
            outcomes = await asyncio.gather(*(self._search_text(textid, terms, options) for textid in textids))
            for textid, matches in zip(textids, outcomes, strict=True):
                if matches is None:
                    result.failed_texts.append(textid)
                    continue
                result.searched_texts.append(textid)
                result.matches.extend(matches)

        if options.rank:
            result.matches.sort(key=lambda match: match.hits, reverse=True)
        del result.matches[options.max_results :]
        result.took_ms = int((time.monotonic() - start_time) * 1000)

        logger.info(
            "Search %r over %d texts: %d matches, %d texts failed in %d ms",
            query,
            len(textids),
            len(result.matches),
            len(result.failed_texts),
            result.took_ms,
        )
        return result

    async def _search_text(self, textid: str, terms: list[str], options: SearchOptions) -> list[SearchMatch] | None:
        if options.use_provider_search:
            provider_matches = await self._provider_search(textid, terms, options)
            if provider_matches is not None:
                return provider_matches

        try:
            index = await self.get_index(textid)
        except IndexBuildFailure as e:
            logger.warning("Excluding '%s' from search: %s", textid, e)
            return None
        return index.query(terms, options)

    async def _provider_search(
        self,
        textid: str,
        terms: list[str],
        options: SearchOptions,
    ) -> list[SearchMatch] | None:
        """Delegate to the owning provider's own search, if it offers one."""
        resolved = await self.catalog.resolve(textid)
        if resolved is None:
            return None
        provider_name, provider, native_id = resolved
        if not getattr(provider, "supports_search", False):
            return None

        entry = self.catalog.get_entry(textid)
        catalog_id = entry.id if entry is not None else textid
        try:
            raw_matches = await provider.search(native_id, terms, options)
            if raw_matches is None:
                return None
            return [
                SearchMatch.model_validate(match).model_copy(update={"textid": catalog_id})
                for match in raw_matches
            ]
        except Exception:
            logger.warning(
                "Provider '%s' search failed for '%s'; using generic index",
                provider_name,
                textid,
                exc_info=True,
            )
            return None

    async def get_index(self, textid: str) -> SearchIndex:
        """Return the memoized index of a text, building it on first use.

        Raises:
            IndexBuildFailure: If the text's content cannot be retrieved.
        """
        entry = self.catalog.get_entry(textid)
        key = entry.id if entry is not None else textid
        if key in self._indexes:
            return self._indexes[key]

        task = self._building.get(key)
        if task is None:
            task = asyncio.ensure_future(self._build_index(textid))
            self._building[key] = task
            task.add_done_callback(lambda done, k=key: self._build_settled(k, done))
        return await asyncio.shield(task)

    def _build_settled(self, key: str, task: asyncio.Task[SearchIndex]) -> None:
        if self._building.get(key) is task:
            del self._building[key]
        # Waiters receive the exception through shield()
        if not task.cancelled():
            task.exception()

    async def _build_index(self, textid: str) -> SearchIndex:
        start_time = time.monotonic()
        info = await self.catalog.get_text_info(textid)
        if info is None:
            raise IndexBuildFailure(f"no text information available for '{textid}'")
        if not info.sections:
            raise IndexBuildFailure(f"'{textid}' lists no sections")

        semaphore = asyncio.Semaphore(self.settings.max_concurrent_loads)

        async def _load(sectionid: str) -> str | None:
            async with semaphore:
                return await self.loader.load_section(info.id, sectionid)

        contents = await asyncio.gather(*(_load(sectionid) for sectionid in info.sections))
        missing = [sid for sid, content in zip(info.sections, contents, strict=True) if content is None]
        if missing:
            raise IndexBuildFailure(
                f"{len(missing)} of {len(info.sections)} sections of '{textid}' "
                f"could not be retrieved (first: {missing[0]})"
            )

        index = SearchIndex(info.id)
        for sectionid, content in zip(info.sections, contents, strict=True):
            index.add_section(sectionid, content or "")
        self._indexes[info.id] = index

        logger.info(
            "Built search index for '%s': %d sections, %d distinct tokens in %d ms",
            info.id,
            len(index.sections),
            index.token_count,
            int((time.monotonic() - start_time) * 1000),
        )
        return index

    def has_index(self, textid: str) -> bool:
        """Whether a text's index is already built."""
        entry = self.catalog.get_entry(textid)
        return (entry.id if entry is not None else textid) in self._indexes

    def clear(self) -> None:
        """Drop every memoized index."""
        self._indexes.clear()
