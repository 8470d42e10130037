"""Provider Registry — Manages registration and retrieval of text providers.

The registry keeps provider instances by name in registration order. The
order is significant: it is the priority used when merging catalogs, so the
first registered provider wins display-field tie-breaks.
"""

from __future__ import annotations

import logging
from typing import Any

from lectern.models.text import ProviderDescriptor, ProviderHealth
from lectern.providers.base.exceptions import ConfigurationError
from lectern.providers.base.provider import REQUIRED_OPERATIONS, TextProvider

logger = logging.getLogger(__name__)


class ProviderNotFoundError(Exception):
    """Raised when a requested provider is not registered."""


class ProviderRegistry:
    """Registry for text provider instances.

    Example:
        >>> registry = ProviderRegistry()
        >>> registry.register("local", LocalTextProvider(path="content/texts"))
        >>> await registry.initialize_all()
        >>> provider = registry.get("local")
    """

    def __init__(self) -> None:
        self._providers: dict[str, TextProvider] = {}

    def register(self, name: str, provider: Any) -> None:
        """Register a provider instance.

        Args:
            name: Unique name for this provider.
            provider: The provider instance.

        Raises:
            ConfigurationError: If ``name`` is bound to a different instance,
                or the provider lacks a required operation.
        """
        existing = self._providers.get(name)
        if existing is provider:
            return
        if existing is not None:
            raise ConfigurationError(
                f"Provider name '{name}' is already registered to {type(existing).__name__}"
            )

        missing = [op for op in REQUIRED_OPERATIONS if not callable(getattr(provider, op, None))]
        if missing:
            raise ConfigurationError(f"Provider '{name}' is missing required operations: {missing}")

        self._providers[name] = provider
        logger.info("Registered provider: %s", name)

    def get(self, name: str) -> TextProvider:
        """Get a provider instance by name.

        Raises:
            ProviderNotFoundError: If no provider is registered under this name.
        """
        if name not in self._providers:
            raise ProviderNotFoundError(
                f"No provider registered with name '{name}'. "
                f"Available providers: {list(self._providers.keys())}"
            )
        return self._providers[name]

    def find(self, name: str) -> TextProvider | None:
        """Get a provider instance by name, or ``None``."""
        return self._providers.get(name)

    def list(self) -> list[TextProvider]:
        """All providers in registration order."""
        return list(self._providers.values())

    def items(self) -> list[tuple[str, TextProvider]]:
        """``(name, provider)`` pairs in registration order."""
        return list(self._providers.items())

    def descriptors(self) -> list[ProviderDescriptor]:
        """Describe every registered provider in registration order."""
        descriptors = []
        for order, (name, provider) in enumerate(self._providers.items()):
            capabilities = getattr(provider, "capabilities", [])
            descriptors.append(ProviderDescriptor(name=name, order=order, capabilities=list(capabilities)))
        return descriptors

    async def initialize_all(self) -> None:
        """Initialize every provider; failures are logged, not raised."""
        for name, provider in self._providers.items():
            try:
                await provider.initialize()
                logger.info("Initialized provider: %s", name)
            except Exception:
                logger.warning("Failed to initialize provider: %s", name, exc_info=True)

    async def health_check_all(self) -> dict[str, ProviderHealth]:
        """Run health checks on all registered providers."""
        results: dict[str, ProviderHealth] = {}
        for name, provider in self._providers.items():
            try:
                results[name] = await provider.health_check()
            except Exception as e:
                results[name] = ProviderHealth(status="unhealthy", message=str(e))
        return results

    async def shutdown_all(self) -> None:
        """Gracefully shut down all providers."""
        for name, provider in self._providers.items():
            try:
                await provider.shutdown()
                logger.info("Shut down provider: %s", name)
            except Exception:
                logger.warning("Error shutting down provider: %s", name, exc_info=True)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    @property
    def names(self) -> list[str]:
        """All registered provider names in registration order."""
        return list(self._providers.keys())
