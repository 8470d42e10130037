"""Catalog endpoints — Providers, merged catalog, text info and sections."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from lectern.api.deps import get_library
from lectern.core.library import Library
from lectern.models.text import ProviderDescriptor, TextEntry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/providers",
    response_model=list[ProviderDescriptor],
    summary="Registered Providers",
)
async def list_providers(
    library: Library = Depends(get_library),
) -> list[ProviderDescriptor]:
    """Providers in registration (priority) order."""
    return library.list_providers()


@router.get(
    "/texts",
    response_model=list[TextEntry],
    summary="Merged Catalog",
    description=(
        "Every text offered by any provider, deduplicated across providers. "
        "A provider that fails or times out contributes nothing; the rest are still listed."
    ),
)
async def list_texts(
    has_text: bool | None = Query(default=None, description="Only entries with (or without) text"),
    has_audio: bool | None = Query(default=None, description="Only entries with (or without) audio"),
    library: Library = Depends(get_library),
) -> list[TextEntry]:
    """Return the merged catalog, optionally filtered by capability."""
    entries = await library.get_catalog()
    if has_text is not None:
        entries = [entry for entry in entries if entry.has_text == has_text]
    if has_audio is not None:
        entries = [entry for entry in entries if entry.has_audio == has_audio]
    return entries


@router.get(
    "/texts/{textid}",
    response_model=TextEntry,
    summary="Text Info",
)
async def get_text(
    textid: str,
    library: Library = Depends(get_library),
) -> TextEntry:
    """Detailed information (divisions, sections) for one text."""
    info = await library.get_text_info(textid)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Text not found: {textid}")
    return info


@router.get(
    "/texts/{textid}/sections/{sectionid}",
    response_class=HTMLResponse,
    summary="Section Content",
)
async def get_section(
    textid: str,
    sectionid: str,
    library: Library = Depends(get_library),
) -> HTMLResponse:
    """Raw content of one section; 404 when no provider can supply it."""
    content = await library.load_section(textid, sectionid)
    if content is None:
        raise HTTPException(status_code=404, detail=f"Section not found: {textid}/{sectionid}")
    return HTMLResponse(content)
