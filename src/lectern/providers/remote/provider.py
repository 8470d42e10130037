"""Remote provider — Texts served over HTTP with the local content layout.

Communicates with a static or dynamic content server via ``httpx``::

    GET {base_url}/{texts_path}                              manifest
    GET {base_url}/{content_path}/{textid}/info.json         text info
    GET {base_url}/{content_path}/{textid}/{sectionid}.html  section

Usage::

    provider = RemoteTextProvider(base_url="https://inscript.bible.cloud")
    await provider.initialize()
    html = await provider.load_section("ENGWEB", "JN3")
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

import httpx

from lectern.models.text import ProviderHealth
from lectern.providers.base.exceptions import ConfigurationError, ProviderUnavailable
from lectern.providers.base.provider import TextProvider
from lectern.providers.local.provider import manifest_entries, with_text_defaults

logger = logging.getLogger(__name__)


class RemoteTextProvider(TextProvider):
    """Text provider backed by an HTTP content server.

    Args:
        base_url: Content server URL, e.g. ``"https://inscript.bible.cloud"``.
        texts_path: Manifest path relative to ``base_url``.
        content_path: Directory holding one folder per text.
        api_key: Optional key sent as the ``key`` query parameter.
        timeout: HTTP request timeout in seconds.
        name: Registered provider name.
        entry_type: Type assigned to manifest entries that do not set one.
        transport: Optional ``httpx`` transport (used by tests).
        **kwargs: Extra keyword arguments stored for future use.
    """

    default_name = "remote"
    default_texts_path = "texts.json"
    default_content_path = "content/texts"
    default_entry_type: str | None = None

    def __init__(
        self,
        base_url: str | None = None,
        texts_path: str | None = None,
        content_path: str | None = None,
        api_key: str | None = None,
        timeout: float = 15.0,
        name: str | None = None,
        entry_type: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        if not base_url:
            raise ConfigurationError(f"{type(self).__name__} requires a base_url")
        self._base_url = base_url.rstrip("/")
        self._texts_path = (texts_path or self.default_texts_path).strip("/")
        self._content_path = (content_path or self.default_content_path).strip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._name = name or self.default_name
        self._entry_type = entry_type or self.default_entry_type
        self._transport = transport
        self._extra_kwargs = kwargs
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return self._name

    async def initialize(self) -> None:
        """Create the ``httpx.AsyncClient``."""
        params = {"key": self._api_key} if self._api_key else None
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            params=params,
            transport=self._transport,
            follow_redirects=True,
        )
        logger.info("Remote provider '%s' initialized (base_url=%s)", self._name, self._base_url)

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Retrieval ────────────────────────────────────────────────────────

    async def get_manifest(self) -> list[Any] | None:
        data = await self._get_json(self._texts_path)
        if data is None:
            return None
        entries = manifest_entries(data)
        if entries is None:
            raise ProviderUnavailable(f"{self._texts_path} does not contain a list of texts")

        defaults: dict[str, Any] = {"hasText": True}
        if self._entry_type:
            defaults["type"] = self._entry_type
        return with_text_defaults(entries, **defaults)

    async def get_text_info(self, textid: str) -> dict[str, Any] | None:
        data = await self._get_json(f"{self._content_path}/{textid}/info.json")
        return data if isinstance(data, dict) else None

    async def load_section(self, textid: str, sectionid: str) -> str | None:
        response = await self._get(f"{self._content_path}/{textid}/{sectionid}.html")
        return response.text if response is not None else None

    async def _get(self, path: str) -> httpx.Response | None:
        """GET a path; ``None`` on 404."""
        if self._client is None:
            raise ProviderUnavailable(f"Remote provider '{self._name}' not initialized.")

        try:
            response = await self._client.get(f"/{path}")
            if response.status_code == 404:
                logger.debug("Not found: %s/%s", self._base_url, path)
                return None
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"GET {self._base_url}/{path} failed: {e}") from e
        return response

    async def _get_json(self, path: str) -> Any:
        response = await self._get(path)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ProviderUnavailable(f"Invalid JSON from {self._base_url}/{path}: {e}") from e

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> ProviderHealth:
        """Check that the manifest is reachable."""
        if self._client is None:
            return ProviderHealth(status="unhealthy", message="HTTP client not initialized")

        try:
            start = time.monotonic()
            response = await self._client.get(f"/{self._texts_path}")
            latency_ms = int((time.monotonic() - start) * 1000)
            if response.status_code == 200:
                return ProviderHealth(
                    status="healthy",
                    latency_ms=latency_ms,
                    last_check=datetime.now(UTC).isoformat(),
                    message=f"{self._base_url} OK",
                )
            return ProviderHealth(
                status="degraded",
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Manifest returned HTTP {response.status_code}",
            )
        except Exception as e:
            return ProviderHealth(status="unhealthy", message=str(e))
