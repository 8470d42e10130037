"""Provider factory — Builds provider instances from configuration.

``settings.providers`` is an ordered mapping; its order becomes the
registration order, and with it the catalog merge priority.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from lectern.providers.base.exceptions import ConfigurationError

if TYPE_CHECKING:
    from lectern.config.settings import ProviderConfig, Settings
    from lectern.providers.base.provider import TextProvider

logger = logging.getLogger(__name__)

# Maps provider kinds to (module_path, class_name) for lazy import
PROVIDER_MAP: dict[str, tuple[str, str]] = {
    "local": ("lectern.providers.local.provider", "LocalTextProvider"),
    "remote": ("lectern.providers.remote.provider", "RemoteTextProvider"),
    "commentary": ("lectern.providers.commentary.provider", "CommentaryProvider"),
    "audio-index": ("lectern.providers.audio_index.provider", "AudioIndexProvider"),
}


def provider_kwargs(name: str, config: ProviderConfig) -> dict[str, Any]:
    """Constructor keyword arguments for one configured provider."""
    kwargs: dict[str, Any] = {"name": name}
    if config.path:
        kwargs["path"] = config.path
    if config.base_url:
        kwargs["base_url"] = config.base_url
        kwargs["timeout"] = config.timeout
    if config.api_key:
        kwargs["api_key"] = config.api_key
    kwargs.update(config.extra)
    return kwargs


def create_provider(name: str, config: ProviderConfig) -> TextProvider:
    """Instantiate one provider from its configuration.

    Raises:
        ConfigurationError: If the kind is unknown or the constructor rejects
            the configuration.
    """
    kind = config.kind or name
    entry = PROVIDER_MAP.get(kind)
    if entry is None:
        raise ConfigurationError(
            f"Unknown provider kind '{kind}' for '{name}'. Known kinds: {list(PROVIDER_MAP.keys())}"
        )

    module_path, class_name = entry
    try:
        module = importlib.import_module(module_path)
        provider_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Failed to import provider '{kind}': {e}") from e

    try:
        return provider_class(**provider_kwargs(name, config))
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration for provider '{name}': {e}") from e


def build_providers(settings: Settings) -> list[tuple[str, TextProvider]]:
    """Create every enabled provider declared in ``settings.providers``.

    A provider whose configuration is invalid is logged and skipped so the
    remaining sources still serve.
    """
    providers: list[tuple[str, TextProvider]] = []
    for name, config in settings.providers.items():
        if not config.enabled:
            logger.info("Provider '%s' is disabled, skipping", name)
            continue
        try:
            providers.append((name, create_provider(name, config)))
        except ConfigurationError:
            logger.warning("Skipping provider '%s'", name, exc_info=True)
    return providers
