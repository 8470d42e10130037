"""Tests for cached, deduplicated section loading."""

from __future__ import annotations

import asyncio

import pytest

from lectern.core.library import Library
from lectern.models.text import SectionKey
from lectern.providers.base.exceptions import SectionNotFound
from lectern.providers.base.registry import ProviderRegistry


class TestLoadSection:
    async def test_loads_from_owner(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        content = await library.load_section("ENGWEB", "JN3")
        assert content is not None
        assert "For God so loved the world" in content

    async def test_abbreviation_resolves(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        assert await library.load_section("WEB", "JN1") is not None
        assert web_provider.section_calls == [("ENGWEB", "JN1")]

    async def test_concurrent_requests_share_one_retrieval(self, library: Library, web_provider) -> None:
        web_provider.section_delay = 0.02
        library.register("local", web_provider)
        results = await asyncio.gather(*(library.load_section("ENGWEB", "JN1") for _ in range(5)))
        assert len(set(results)) == 1
        assert web_provider.section_calls == [("ENGWEB", "JN1")]

    async def test_second_request_served_from_cache(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        first = await library.load_section("ENGWEB", "JN2")
        second = await library.load_section("ENGWEB", "JN2")
        assert first == second
        assert len(web_provider.section_calls) == 1
        assert library.cache.hits == 1

    async def test_failure_is_not_cached(self, library: Library, web_provider) -> None:
        web_provider.sections[("ENGWEB", "JN1")] = RuntimeError("connection reset")
        library.register("local", web_provider)
        assert await library.load_section("ENGWEB", "JN1") is None
        assert SectionKey(textid="ENGWEB", sectionid="JN1") not in library.cache

        web_provider.sections[("ENGWEB", "JN1")] = "<p>recovered</p>"
        assert await library.load_section("ENGWEB", "JN1") == "<p>recovered</p>"
        assert len(web_provider.section_calls) == 2

    async def test_section_not_found_yields_none(self, library: Library, web_provider) -> None:
        web_provider.sections[("ENGWEB", "JN1")] = SectionNotFound("gone")
        library.register("local", web_provider)
        assert await library.load_section("ENGWEB", "JN1") is None

    async def test_non_text_content_rejected(self, library: Library, web_provider) -> None:
        web_provider.sections[("ENGWEB", "JN1")] = {"html": "<p></p>"}
        library.register("local", web_provider)
        assert await library.load_section("ENGWEB", "JN1") is None
        assert len(library.cache) == 0

    async def test_timeout_yields_none(self, library: Library, web_provider) -> None:
        web_provider.section_delay = 1.0
        library.register("local", web_provider)
        library.sections.timeout = 0.02
        assert await library.load_section("ENGWEB", "JN1") is None
        assert library.sections.pending == 0

    async def test_unknown_text(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        assert await library.load_section("NOPE", "JN1") is None
        assert web_provider.section_calls == []

    @pytest.mark.parametrize("sectionid", ["", "null"])
    async def test_missing_section_id(self, library: Library, web_provider, sectionid: str) -> None:
        library.register("local", web_provider)
        assert await library.load_section("ENGWEB", sectionid) is None
        assert web_provider.section_calls == []

    async def test_unlisted_section_falls_back_to_first(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        await library.get_text_info("ENGWEB")
        content = await library.load_section("ENGWEB", "GN1")
        assert content is not None
        assert "In the beginning was the Word" in content
        assert web_provider.section_calls == [("ENGWEB", "JN1")]

    async def test_audio_only_owner_yields_none(self, library: Library, make_provider) -> None:
        audio = make_provider("audio", manifest=[{"id": "KJV", "hasAudio": True}])
        library.register("audio", audio)
        assert await library.load_section("KJV", "JN1") is None

    async def test_routes_to_text_provider_over_audio(self, library: Library, make_provider) -> None:
        audio = make_provider("audio", manifest=[{"id": "KJV", "hasAudio": True}])
        text = make_provider(
            "local",
            manifest=[{"id": "KJV", "hasText": True}],
            sections={("KJV", "JN1"): "<p>text</p>"},
        )
        library.register("audio", audio)
        library.register("local", text)
        assert await library.load_section("KJV", "JN1") == "<p>text</p>"
        assert audio.section_calls == []


class TestCancellation:
    async def test_cancelled_caller_does_not_abort_retrieval(self, library: Library, web_provider) -> None:
        web_provider.section_delay = 0.05
        library.register("local", web_provider)

        waiter = asyncio.ensure_future(library.load_section("ENGWEB", "JN1"))
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        await asyncio.sleep(0.08)
        assert SectionKey(textid="ENGWEB", sectionid="JN1") in library.cache
        assert await library.load_section("ENGWEB", "JN1") is not None
        assert len(web_provider.section_calls) == 1

    async def test_other_waiters_unaffected(self, library: Library, web_provider) -> None:
        web_provider.section_delay = 0.05
        library.register("local", web_provider)

        cancelled = asyncio.ensure_future(library.load_section("ENGWEB", "JN2"))
        kept = asyncio.ensure_future(library.load_section("ENGWEB", "JN2"))
        await asyncio.sleep(0.01)
        cancelled.cancel()
        content = await kept
        assert content is not None
        assert "Cana" in content

    async def test_close_cancels_pending(self, library: Library, web_provider) -> None:
        web_provider.section_delay = 1.0
        library.register("local", web_provider)
        waiter = asyncio.ensure_future(library.load_section("ENGWEB", "JN1"))
        await asyncio.sleep(0.01)
        assert library.sections.pending == 1
        await library.sections.close()
        assert library.sections.pending == 0
        with pytest.raises(asyncio.CancelledError):
            await waiter


class TestInvalidation:
    async def test_invalidate_one_section(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        await library.load_sections("ENGWEB", ["JN1", "JN2"])
        await library.sections.invalidate("WEB", "JN1")
        assert SectionKey(textid="ENGWEB", sectionid="JN1") not in library.cache
        assert SectionKey(textid="ENGWEB", sectionid="JN2") in library.cache

    async def test_invalidate_whole_text(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        await library.load_sections("ENGWEB", ["JN1", "JN2"])
        await library.sections.invalidate("ENGWEB")
        assert len(library.cache) == 0

    async def test_load_sections_keeps_order(self, library: Library, web_provider) -> None:
        library.register("local", web_provider)
        contents = await library.load_sections("ENGWEB", ["JN3", "JN9", "JN1"])
        assert list(contents) == ["JN3", "JN9", "JN1"]
        assert contents["JN9"] is None

    async def test_disabled_cache_always_asks_provider(self, settings, web_provider) -> None:
        settings.cache.enabled = False
        library = Library(settings)
        library.register("local", web_provider)
        await library.load_section("ENGWEB", "JN1")
        await library.load_section("ENGWEB", "JN1")
        assert len(web_provider.section_calls) == 2


class TestSharedState:
    def test_loader_uses_library_cache(self, library: Library) -> None:
        assert len(library.cache) == 0
        assert library.sections.cache is library.cache

    def test_empty_registry_is_kept(self, settings) -> None:
        registry = ProviderRegistry()
        library = Library(settings, registry=registry)
        assert library.registry is registry
        assert library.catalog.registry is registry


class TestProviderPrefixRouting:
    @pytest.fixture
    def kjv_providers(self, library: Library, make_provider):
        local = make_provider(
            "local",
            manifest=[{"id": "KJV", "hasText": True}],
            sections={("KJV", "JN3"): "<p>local</p>"},
        )
        remote = make_provider(
            "remote",
            manifest=[{"id": "KJV", "hasText": True}],
            sections={("KJV", "JN3"): "<p>remote</p>"},
        )
        library.register("local", local)
        library.register("remote", remote)
        return local, remote

    async def test_prefix_bypasses_owner_cache(self, library: Library, kjv_providers) -> None:
        local, remote = kjv_providers
        assert await library.load_section("KJV", "JN3") == "<p>local</p>"
        assert await library.load_section("remote:KJV", "JN3") == "<p>remote</p>"
        assert remote.section_calls == [("KJV", "JN3")]

    async def test_prefix_does_not_fill_owner_slot(self, library: Library, kjv_providers) -> None:
        local, remote = kjv_providers
        assert await library.load_section("remote:KJV", "JN3") == "<p>remote</p>"
        assert await library.load_section("KJV", "JN3") == "<p>local</p>"
        assert await library.load_section("local:KJV", "JN3") == "<p>local</p>"
        assert local.section_calls == [("KJV", "JN3")]
        assert SectionKey(textid="remote:KJV", sectionid="JN3") in library.cache
        assert SectionKey(textid="KJV", sectionid="JN3") in library.cache

    async def test_invalidate_prefixed_text(self, library: Library, kjv_providers) -> None:
        await library.load_section("KJV", "JN3")
        await library.load_section("remote:KJV", "JN3")
        await library.sections.invalidate("remote:KJV")
        assert SectionKey(textid="remote:KJV", sectionid="JN3") not in library.cache
        assert SectionKey(textid="KJV", sectionid="JN3") in library.cache
