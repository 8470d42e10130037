"""Search request and result models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SearchOptions(BaseModel):
    """Options controlling a full-text search."""

    max_results: int = Field(default=500, ge=1, le=10000, description="Maximum number of matches to return")
    context_tokens: int = Field(default=5, ge=0, le=100, description="Tokens of context on each side of a hit")
    rank: bool = Field(default=False, description="Order matches by hit count instead of canonical order")
    divisions: list[str] | None = Field(
        default=None,
        description="Restrict the search to sections of these divisions (e.g. book codes)",
    )
    use_provider_search: bool = Field(
        default=True,
        description="Prefer a provider's own search over the generic index when offered",
    )


class SearchMatch(BaseModel):
    """One section matching every query term."""

    textid: str = Field(description="Text the section belongs to")
    sectionid: str = Field(description="Matching section")
    positions: list[int] = Field(default_factory=list, description="Token positions of query term hits")
    hits: int = Field(default=0, description="Total occurrences of query terms in the section")
    context: str = Field(default="", description="Tokens surrounding the first hit")


class SearchRequest(BaseModel):
    """Incoming search request from the API."""

    query: str = Field(description="Search terms", min_length=1, max_length=500)
    texts: list[str] = Field(description="Active text ids, in display order", min_length=1)
    options: SearchOptions = Field(default_factory=SearchOptions, description="Search behavior options")


class SearchResult(BaseModel):
    """Outcome of a search across several texts."""

    query: str = Field(description="Original query string")
    terms: list[str] = Field(default_factory=list, description="Normalized query terms")
    matches: list[SearchMatch] = Field(default_factory=list, description="Matches in result order")
    searched_texts: list[str] = Field(default_factory=list, description="Texts that were searched")
    failed_texts: list[str] = Field(default_factory=list, description="Texts excluded because indexing failed")
    took_ms: int = Field(default=0, description="Processing time in ms")

    @property
    def total(self) -> int:
        return len(self.matches)
