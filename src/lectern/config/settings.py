"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (LECTERN_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class ServerSettings(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8080, description="Server port")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")


class CatalogSettings(BaseModel):
    """Manifest aggregation configuration."""

    provider_timeout: float = Field(default=15.0, gt=0, description="Seconds to wait for one provider's manifest")


class CacheSettings(BaseModel):
    """Section cache configuration."""

    enabled: bool = Field(default=True, description="Keep retrieved sections for the session")


class SearchSettings(BaseModel):
    """Full-text search configuration."""

    max_results: int = Field(default=500, ge=1, description="Default cap on returned matches")
    context_tokens: int = Field(default=5, ge=0, description="Default tokens of context per match")
    max_concurrent_loads: int = Field(default=8, ge=1, description="Section loads in flight while indexing")


class ProviderConfig(BaseModel):
    """Configuration for a single text provider."""

    enabled: bool = Field(default=True, description="Whether this provider is active")
    kind: str | None = Field(default=None, description="Provider implementation; defaults to the config key")
    base_url: str | None = Field(default=None, description="Backend base URL (remote providers)")
    path: str | None = Field(default=None, description="Content directory (local provider)")
    api_key: str | None = Field(default=None, description="Static API key passed to the backend")
    timeout: float = Field(default=15.0, gt=0, description="HTTP request timeout in seconds")
    extra: dict[str, Any] = Field(default_factory=dict, description="Provider-specific options")

    @field_validator("base_url", mode="before")
    @classmethod
    def _strip_base_url(cls, v: Any) -> Any:
        """Normalize an empty base URL (env var set to "") to None."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the LECTERN_ prefix.
    Nested settings use double underscores: LECTERN_SERVER__PORT=9090

    Example:
        LECTERN_SERVER__PORT=9090
        LECTERN_CATALOG__PROVIDER_TIMEOUT=5
        LECTERN_PROVIDERS__LOCAL__PATH=/srv/content/texts
    """

    model_config = {
        "env_prefix": "LECTERN_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    # Application metadata
    app_name: str = Field(default="Lectern", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    # Component settings
    server: ServerSettings = Field(default_factory=ServerSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    providers: dict[str, ProviderConfig] = Field(default_factory=dict, description="Providers in registration order")
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are used as defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
