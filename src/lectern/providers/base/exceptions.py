"""Provider-specific exceptions."""


class ProviderError(Exception):
    """Base exception for provider errors."""


class ProviderUnavailable(ProviderError):
    """Raised when a provider call fails or times out."""


class MalformedEntry(ProviderError):
    """Raised when a manifest entry lacks the fields needed to identify it."""


class SectionNotFound(ProviderError):
    """Raised when a requested section does not exist."""


class IndexBuildFailure(ProviderError):
    """Raised when a text's search index cannot be built."""


class ConfigurationError(ProviderError):
    """Raised when provider configuration is invalid."""
