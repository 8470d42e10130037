"""FastAPI application factory and lifecycle management."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lectern import __version__
from lectern.api.deps import set_library
from lectern.api.v1.router import router as v1_router
from lectern.config.settings import Settings
from lectern.core.library import Library
from lectern.observability.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        # Auto-detect lectern-config.yaml if present
        yaml_path = Path("lectern-config.yaml")
        if yaml_path.exists():
            logger.info("Loading configuration from %s", yaml_path)
            settings = Settings.from_yaml(yaml_path)
        else:
            settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage application lifecycle (startup/shutdown)."""
        setup_logging(settings.observability)
        logger.info("Starting Lectern v%s", __version__)

        library = Library.from_settings(settings)
        await library.initialize()
        set_library(library)

        app.state.settings = settings
        app.state.library = library

        logger.info("Lectern is ready to serve requests on port %d", settings.server.port)
        yield

        logger.info("Shutting down Lectern...")
        await library.shutdown()
        set_library(None)
        logger.info("Lectern shutdown complete")

    app = FastAPI(
        title="Lectern",
        description="One catalog, section loader and search over many text, commentary and audio sources.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(v1_router, prefix="/v1")

    return app
