"""Search endpoint — Full-text search across the active texts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from lectern.api.deps import get_library
from lectern.core.library import Library
from lectern.models.search import SearchRequest, SearchResult

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/search",
    response_model=SearchResult,
    summary="Full-Text Search",
    description=(
        "AND search for every query term across the given texts. Matches come back in "
        "canonical section order per text, texts in request order, unless `options.rank` is set. "
        "Texts that cannot be indexed are reported in `failed_texts` instead of failing the request."
    ),
)
async def search(
    request: SearchRequest,
    library: Library = Depends(get_library),
) -> SearchResult:
    """Run a search over the requested texts."""
    try:
        return await library.search(request.query, request.texts, request.options)
    except Exception as e:
        logger.error("Search failed: %s", e, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Search processing failed: {e!s}",
        ) from e
