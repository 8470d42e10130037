"""API v1 Router — Catalog, section, search and health endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from lectern.api.v1.endpoints.health import router as health_router
from lectern.api.v1.endpoints.search import router as search_router
from lectern.api.v1.endpoints.texts import router as texts_router

router = APIRouter(tags=["v1"])
router.include_router(texts_router)
router.include_router(search_router)
router.include_router(health_router)
