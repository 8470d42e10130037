"""Shared test fixtures and configuration."""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from lectern.api.app import create_app
from lectern.api.deps import set_library
from lectern.config.settings import Settings
from lectern.core.library import Library
from lectern.providers.base.provider import TextProvider


class FakeProvider(TextProvider):
    """In-memory provider that records every call it receives."""

    def __init__(
        self,
        name: str,
        manifest: Any = None,
        infos: dict[str, Any] | None = None,
        sections: dict[tuple[str, str], Any] | None = None,
        manifest_error: Exception | None = None,
        manifest_delay: float = 0.0,
        section_delay: float = 0.0,
    ) -> None:
        self._name = name
        self.manifest = manifest
        self.infos = infos or {}
        self.sections = sections or {}
        self.manifest_error = manifest_error
        self.manifest_delay = manifest_delay
        self.section_delay = section_delay
        self.manifest_calls = 0
        self.info_calls: list[str] = []
        self.section_calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    async def get_manifest(self) -> Any:
        self.manifest_calls += 1
        if self.manifest_delay:
            await asyncio.sleep(self.manifest_delay)
        if self.manifest_error is not None:
            raise self.manifest_error
        return copy.deepcopy(self.manifest)

    async def get_text_info(self, textid: str) -> Any:
        self.info_calls.append(textid)
        return copy.deepcopy(self.infos.get(textid))

    async def load_section(self, textid: str, sectionid: str) -> Any:
        self.section_calls.append((textid, sectionid))
        if self.section_delay:
            await asyncio.sleep(self.section_delay)
        value = self.sections.get((textid, sectionid))
        if isinstance(value, Exception):
            raise value
        return value


class SearchingProvider(FakeProvider):
    """Fake provider that offers its own search facility."""

    def __init__(
        self,
        *args: Any,
        search_result: list[Any] | None = None,
        search_error: Exception | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.search_result = search_result
        self.search_error = search_error
        self.search_calls: list[tuple[str, list[str]]] = []

    async def search(self, textid: str, terms: list[str], options: Any) -> Any:
        self.search_calls.append((textid, terms))
        if self.search_error is not None:
            raise self.search_error
        return self.search_result


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults and short timeouts."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        catalog={"provider_timeout": 0.5},
    )


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    """Factory for in-memory providers."""
    return FakeProvider


@pytest.fixture
def make_searching_provider() -> Callable[..., SearchingProvider]:
    """Factory for in-memory providers with native search."""
    return SearchingProvider


@pytest.fixture
def library(settings: Settings) -> Library:
    """An empty library; tests register the providers they need."""
    return Library(settings)


# ── Sample content ──────────────────────────────────────────────────────────


@pytest.fixture
def john_sections() -> dict[tuple[str, str], str]:
    """Three short chapters of one text."""
    return {
        ("ENGWEB", "JN1"): (
            '<div class="chapter"><span class="v">1</span> In the beginning was the Word, '
            "and the Word was with God, and the Word was God.</div>"
        ),
        ("ENGWEB", "JN2"): (
            '<div class="chapter"><span class="v">1</span> The third day, there was a wedding '
            "in Cana of Galilee. Jesus&rsquo; mother was there.</div>"
        ),
        ("ENGWEB", "JN3"): (
            '<div class="chapter"><span class="v">16</span> For God so loved the world, '
            "that he gave his one and only Son, that whoever believes in him should not perish, "
            "but have eternal life.</div>"
        ),
    }


@pytest.fixture
def web_provider(john_sections: dict[tuple[str, str], str]) -> FakeProvider:
    """A text provider serving ENGWEB with three sections."""
    return FakeProvider(
        "local",
        manifest=[
            {"id": "ENGWEB", "abbr": "WEB", "name": "World English Bible", "lang": "eng", "hasText": True},
        ],
        infos={
            "ENGWEB": {
                "id": "ENGWEB",
                "divisions": ["JN"],
                "divisionNames": ["John"],
                "sections": ["JN1", "JN2", "JN3"],
            },
        },
        sections=john_sections,
    )


@pytest.fixture
def client(settings: Settings, library: Library, web_provider: FakeProvider) -> Iterator[TestClient]:
    """Create a test client for the API backed by an in-memory provider."""
    app = create_app(settings)
    library.register("local", web_provider)
    set_library(library)
    yield TestClient(app)
    set_library(None)
