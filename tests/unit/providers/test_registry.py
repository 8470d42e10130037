"""Tests for the provider registry."""

from __future__ import annotations

import pytest

from lectern.models.text import Capability
from lectern.providers.base.exceptions import ConfigurationError
from lectern.providers.base.registry import ProviderNotFoundError, ProviderRegistry


class _Incomplete:
    """Has a manifest lookup but no section retrieval."""

    async def get_manifest(self) -> list:
        return []

    async def get_text_info(self, textid: str) -> None:
        return None


class TestRegister:
    def test_register_and_get(self, make_provider) -> None:
        registry = ProviderRegistry()
        provider = make_provider("local")
        registry.register("local", provider)
        assert registry.get("local") is provider
        assert "local" in registry
        assert len(registry) == 1

    def test_reregister_same_instance_is_noop(self, make_provider) -> None:
        registry = ProviderRegistry()
        provider = make_provider("local")
        registry.register("local", provider)
        registry.register("local", provider)
        assert registry.list() == [provider]

    def test_conflicting_registration_raises(self, make_provider) -> None:
        registry = ProviderRegistry()
        registry.register("local", make_provider("local"))
        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register("local", make_provider("local"))

    def test_missing_operations_rejected(self) -> None:
        registry = ProviderRegistry()
        with pytest.raises(ConfigurationError, match="load_section"):
            registry.register("broken", _Incomplete())
        assert "broken" not in registry

    def test_get_unknown_raises(self) -> None:
        registry = ProviderRegistry()
        with pytest.raises(ProviderNotFoundError, match="nope"):
            registry.get("nope")
        assert registry.find("nope") is None


class TestOrdering:
    def test_list_keeps_registration_order(self, make_provider) -> None:
        registry = ProviderRegistry()
        providers = [make_provider(name) for name in ("b", "a", "c")]
        for provider in providers:
            registry.register(provider.name, provider)
        assert registry.list() == providers
        assert registry.names == ["b", "a", "c"]

    def test_descriptors(self, make_provider) -> None:
        registry = ProviderRegistry()
        registry.register("first", make_provider("first"))
        registry.register("second", make_provider("second"))
        descriptors = registry.descriptors()
        assert [(d.name, d.order) for d in descriptors] == [("first", 0), ("second", 1)]
        assert Capability.SECTIONS in descriptors[0].capabilities
        assert Capability.SEARCH not in descriptors[0].capabilities


class TestLifecycle:
    async def test_initialize_failure_is_isolated(self, make_provider) -> None:
        registry = ProviderRegistry()
        failing = make_provider("failing")
        healthy = make_provider("healthy")

        async def _boom() -> None:
            raise RuntimeError("backend down")

        failing.initialize = _boom  # type: ignore[method-assign]
        registry.register("failing", failing)
        registry.register("healthy", healthy)

        await registry.initialize_all()
        assert registry.names == ["failing", "healthy"]

    async def test_health_check_all(self, make_provider) -> None:
        registry = ProviderRegistry()
        registry.register("local", make_provider("local"))
        results = await registry.health_check_all()
        assert results["local"].status == "healthy"

    async def test_health_check_error_reported_unhealthy(self, make_provider) -> None:
        registry = ProviderRegistry()
        provider = make_provider("local")

        async def _boom() -> None:
            raise RuntimeError("no route to host")

        provider.health_check = _boom  # type: ignore[method-assign]
        registry.register("local", provider)
        results = await registry.health_check_all()
        assert results["local"].status == "unhealthy"
        assert "no route" in (results["local"].message or "")
