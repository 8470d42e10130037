"""Health check endpoints — System and provider health monitoring."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lectern import __version__
from lectern.api.deps import get_library
from lectern.core.library import Library
from lectern.models.text import ProviderHealth

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Response models ──────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    """System health check response."""

    status: str = Field(description="Health status (e.g. 'healthy')")
    version: str = Field(description="Lectern server version")
    service: str = Field(description="Service name ('lectern')")
    providers: list[str] = Field(description="Registered provider names in priority order")
    catalog_loaded: bool = Field(description="Whether the merged catalog has been built")
    cached_sections: int = Field(description="Number of sections in the session cache")


class ProviderHealthResponse(BaseModel):
    """Per-provider health check response."""

    providers: dict[str, ProviderHealth] = Field(description="Map of provider name to its health status")


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="System Health Check",
)
async def health_check(
    library: Library = Depends(get_library),
) -> HealthResponse:
    """Basic health check endpoint with provider info."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        service="lectern",
        providers=library.registry.names,
        catalog_loaded=library.catalog.loaded,
        cached_sections=len(library.cache),
    )


@router.get(
    "/health/providers",
    response_model=ProviderHealthResponse,
    summary="Provider Health Check",
    description="Run health checks on every registered provider.",
)
async def provider_health(
    library: Library = Depends(get_library),
) -> ProviderHealthResponse:
    """Check health of all providers."""
    return ProviderHealthResponse(providers=await library.health())
