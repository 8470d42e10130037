"""Local provider — Bundled texts stored on disk.

Expected layout under the content root::

    texts.json                  manifest: a list of entries, or {"textInfoData": [...]}
    <textid>/info.json          detailed info: divisions, divisionNames, sections
    <textid>/<sectionid>.html   one section's content

Usage::

    provider = LocalTextProvider(path="content/texts")
    manifest = await provider.get_manifest()
    html = await provider.load_section("ENGWEB", "JN3")
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from lectern.models.text import ProviderHealth
from lectern.providers.base.exceptions import ConfigurationError, ProviderUnavailable
from lectern.providers.base.provider import TextProvider

logger = logging.getLogger(__name__)

_SAFE_ID_RE = re.compile(r"^\w[\w.-]*$")


def manifest_entries(data: Any) -> list[Any] | None:
    """Extract the entry list from a ``texts.json`` payload."""
    if isinstance(data, dict):
        data = data.get("textInfoData", data.get("texts"))
    if not isinstance(data, list):
        return None
    return data


def with_text_defaults(entries: list[Any], **defaults: Any) -> list[Any]:
    """Fill ``defaults`` into every dict entry that does not set them.

    Non-dict entries pass through untouched so the aggregator can report them.
    """
    return [{**defaults, **entry} if isinstance(entry, dict) else entry for entry in entries]


class LocalTextProvider(TextProvider):
    """Serves texts bundled with the application from a directory.

    Blocking file reads run in the default executor.

    Args:
        path: Content root directory.
        texts_index: Manifest file name, relative to ``path``.
        name: Registered provider name.
        **kwargs: Extra keyword arguments (ignored, for config compat).
    """

    def __init__(
        self,
        path: str | Path = "content/texts",
        texts_index: str = "texts.json",
        name: str = "local",
        **kwargs: Any,
    ) -> None:
        self._root = Path(path)
        self._texts_index = texts_index
        self._name = name
        self._extra_kwargs = kwargs

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self) -> None:
        """Check the content root exists."""
        if not self._root.is_dir():
            raise ConfigurationError(f"Local content directory not found: {self._root}")
        logger.info("Local provider '%s' serving %s", self._name, self._root)

    async def get_manifest(self) -> list[Any] | None:
        data = await self._read_json(self._root / self._texts_index)
        if data is None:
            return None
        entries = manifest_entries(data)
        if entries is None:
            raise ProviderUnavailable(f"{self._texts_index} does not contain a list of texts")
        return with_text_defaults(entries, hasText=True)

    async def get_text_info(self, textid: str) -> dict[str, Any] | None:
        if not _SAFE_ID_RE.match(textid):
            logger.warning("Rejected unsafe text id: %r", textid)
            return None
        data = await self._read_json(self._root / textid / "info.json")
        return data if isinstance(data, dict) else None

    async def load_section(self, textid: str, sectionid: str) -> str | None:
        if not (_SAFE_ID_RE.match(textid) and _SAFE_ID_RE.match(sectionid)):
            logger.warning("Rejected unsafe section address: %r/%r", textid, sectionid)
            return None
        return await self._read_text(self._root / textid / f"{sectionid}.html")

    async def _read_text(self, path: Path) -> str | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_text_sync, path)

    async def _read_json(self, path: Path) -> Any:
        text = await self._read_text(path)
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ProviderUnavailable(f"Invalid JSON in {path}: {e}") from e

    @staticmethod
    def _read_text_sync(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Not found: %s", path)
            return None
        except OSError as e:
            raise ProviderUnavailable(f"Cannot read {path}: {e}") from e

    async def health_check(self) -> ProviderHealth:
        start = time.monotonic()
        index_exists = (self._root / self._texts_index).is_file()
        latency_ms = int((time.monotonic() - start) * 1000)
        if index_exists:
            return ProviderHealth(
                status="healthy",
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Serving {self._root}",
            )
        return ProviderHealth(
            status="unhealthy",
            latency_ms=latency_ms,
            last_check=datetime.now(UTC).isoformat(),
            message=f"Manifest not found: {self._root / self._texts_index}",
        )
