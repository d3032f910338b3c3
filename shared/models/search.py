"""Pydantic models for hybrid search inputs and results."""

from typing import Literal

from pydantic import BaseModel, Field

MatchType = Literal["exact", "similar"]


class SearchFilters(BaseModel):
    """Optional equality filters applied to a similarity query."""

    year: int | None = None
    month: int | None = None
    week: int | None = None


class TimeContext(BaseModel):
    """The plan year/month/week a caller is interested in."""

    plan_year: int = Field(ge=1)
    month: int = Field(ge=1, le=12)
    week: int = Field(ge=1)


class SearchOptions(BaseModel):
    """Tuning knobs for a hybrid search.

    Attributes:
        exact_match_limit: Cap on the number of exact matches returned. None means no cap.
        similar_limit:     Number of nearest neighbours requested from the store.
        min_similarity:    Similar chunks scoring below this value are discarded. An explicit
                           0 is honoured, not replaced by the 0.7 default.
    """

    exact_match_limit: int | None = Field(default=None, ge=1)
    similar_limit: int = Field(default=3, ge=1)
    min_similarity: float = 0.7


class SearchResult(BaseModel):
    """A single chunk returned from a vector store query. Never persisted."""

    id: str
    chunk_text: str
    chunk_index: int
    year: int | None = None
    month: int | None = None
    week: int | None = None
    similarity: float
    match_type: MatchType | None = None
    metadata: dict = {}


class HybridSearchResult(BaseModel):
    """The three collections produced by a hybrid search.

    all_relevant holds exact matches first, followed by similar chunks that
    were not already exact matches. It is not sorted by score.
    """

    exact_matches: list[SearchResult]
    similar_chunks: list[SearchResult]
    all_relevant: list[SearchResult]


class RankedResults(BaseModel):
    """Hybrid search results ranked for consumption (exact first, then by similarity)."""

    results: list[SearchResult]
    exact_count: int
    similar_count: int
    total: int
