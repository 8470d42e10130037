"""Audio index provider — Audio-only backends listing recordings per text.

The backend publishes::

    GET {base_url}/index.json         [{"id": 17, "abbr": "ENGKJV", "tt": "King James",
                                        "iso": "eng", "ln": "English"}, ...]
    GET {base_url}/{id}/index.txt     one file name per line: 43_John_003.mp3

Each record becomes a catalog entry keyed by its abbreviation with
``has_text=False`` and ``has_audio=True``. Because the abbreviation is the
identity key, a record for a text another provider already lists only
annotates that entry with ``has_audio``; records without a text counterpart
appear as audio-only entries. Sections cannot be loaded from this backend.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import UTC, datetime
from typing import Any

import httpx

from lectern.models.text import ProviderHealth
from lectern.providers.audio_index.books import BOOK_NAMES, book_from_number
from lectern.providers.base.exceptions import ProviderUnavailable
from lectern.providers.base.provider import TextProvider

logger = logging.getLogger(__name__)

_FILE_RE = re.compile(r"^(\d+)_(.+?)_(\d+)\.mp3$")


def parse_listing(listing: str) -> tuple[list[str], list[str], list[str]]:
    """Derive ``(divisions, division_names, sections)`` from an ``index.txt`` listing.

    Lines that are not ``NN_Book_CCC.mp3`` or carry an unknown book number
    are skipped.
    """
    divisions: list[str] = []
    division_names: list[str] = []
    sections: list[str] = []
    for line in listing.splitlines():
        match = _FILE_RE.match(line.strip())
        if not match:
            continue
        book_number, _book_name, chapter = match.groups()
        code = book_from_number(int(book_number))
        if code is None:
            continue
        if code not in divisions:
            divisions.append(code)
            division_names.append(BOOK_NAMES.get(code, code))
        sections.append(f"{code}{int(chapter)}")
    return divisions, division_names, sections


class AudioIndexProvider(TextProvider):
    """Audio-only provider backed by a recordings index.

    Args:
        base_url: Audio server URL.
        timeout: HTTP request timeout in seconds.
        name: Registered provider name.
        transport: Optional ``httpx`` transport (used by tests).
        **kwargs: Extra keyword arguments stored for future use.
    """

    def __init__(
        self,
        base_url: str = "https://audio.dbs.org",
        timeout: float = 15.0,
        name: str = "audio-index",
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._name = name
        self._transport = transport
        self._extra_kwargs = kwargs
        self._client: httpx.AsyncClient | None = None
        self._index: list[dict[str, Any]] | None = None

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )
        logger.info("Audio index provider '%s' initialized (base_url=%s)", self._name, self._base_url)

    async def shutdown(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        self._index = None

    async def _load_index(self) -> list[dict[str, Any]]:
        """Fetch ``index.json`` once; failures are not remembered."""
        if self._index is not None:
            return self._index
        if self._client is None:
            raise ProviderUnavailable(f"Audio index provider '{self._name}' not initialized.")

        try:
            response = await self._client.get("/index.json")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderUnavailable(f"Cannot load audio index from {self._base_url}: {e}") from e

        if not isinstance(data, list):
            raise ProviderUnavailable(f"Audio index from {self._base_url} is not a list")
        self._index = [record for record in data if isinstance(record, dict)]
        logger.debug("Loaded audio index: %d recordings", len(self._index))
        return self._index

    def _find(self, index: list[dict[str, Any]], textid: str) -> dict[str, Any] | None:
        for record in index:
            if record.get("abbr") == textid:
                return record
        return None

    @staticmethod
    def _to_entry(record: dict[str, Any]) -> dict[str, Any]:
        abbr = str(record["abbr"])
        title = record.get("tt") or abbr
        return {
            "type": "bible",
            "id": abbr,
            "abbr": abbr,
            "name": title,
            "nameEnglish": title,
            "title": title,
            "lang": record.get("iso") or "",
            "langName": record.get("ln") or "",
            "langNameEnglish": record.get("ln") or "",
            "hasText": False,
            "hasAudio": True,
            "providerRef": str(record.get("id", "")) or None,
        }

    async def get_manifest(self) -> list[dict[str, Any]] | None:
        index = await self._load_index()
        entries = [self._to_entry(record) for record in index if record.get("abbr")]
        return entries or None

    async def get_text_info(self, textid: str) -> dict[str, Any] | None:
        index = await self._load_index()
        record = self._find(index, textid)
        if record is None:
            return None
        if self._client is None:
            raise ProviderUnavailable(f"Audio index provider '{self._name}' not initialized.")

        try:
            response = await self._client.get(f"/{record.get('id')}/index.txt")
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"Cannot load recordings of '{textid}': {e}") from e

        divisions, division_names, sections = parse_listing(response.text)
        return {
            **self._to_entry(record),
            "divisions": divisions,
            "divisionNames": division_names,
            "sections": sections,
        }

    async def load_section(self, textid: str, sectionid: str) -> str | None:
        return None

    async def health_check(self) -> ProviderHealth:
        if self._client is None:
            return ProviderHealth(status="unhealthy", message="HTTP client not initialized")
        try:
            start = time.monotonic()
            response = await self._client.get("/index.json")
            latency_ms = int((time.monotonic() - start) * 1000)
            status = "healthy" if response.status_code == 200 else "degraded"
            return ProviderHealth(
                status=status,
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"index.json returned HTTP {response.status_code}",
            )
        except Exception as e:
            return ProviderHealth(status="unhealthy", message=str(e))
