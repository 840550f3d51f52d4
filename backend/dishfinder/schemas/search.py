"""
Search Schemas
==============

Request, intermediate and response shapes of the query-resolution pipeline.
"""

from __future__ import annotations

import hashlib
import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class MatchTier(str, Enum):
    """The three ordered matching strategies."""

    EXACT = "exact"
    FULLTEXT = "fulltext"
    FUZZY = "fuzzy"


TIER_ORDER: tuple[MatchTier, ...] = (MatchTier.EXACT, MatchTier.FULLTEXT, MatchTier.FUZZY)


class NormalizedQuery(BaseModel):
    """Canonical, comparable form of a query string."""

    model_config = ConfigDict(frozen=True)

    canonical: str
    search_terms: str
    original_text: str
    tokens: tuple[str, ...] = ()
    fingerprint: str


class SearchFilters(BaseModel):
    """
    Optional narrowing of a search; every filter that is set must hold.

    Values are compared case-insensitively, so they are stored casefolded
    and sorted. Two requests with the same filters share a cache entry.
    """

    model_config = ConfigDict(frozen=True)

    authenticity: tuple[str, ...] = ()
    difficulty: tuple[str, ...] = ()
    country: tuple[str, ...] = ()
    cooking_time_max: Optional[int] = Field(default=None, ge=1)

    @field_validator("authenticity", "difficulty", "country", mode="before")
    @classmethod
    def clean_values(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(sorted({" ".join(str(item).split()).casefold() for item in v if str(item).strip()}))

    @property
    def active(self) -> bool:
        return bool(self.authenticity or self.difficulty or self.country or self.cooking_time_max)

    @property
    def digest(self) -> str:
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()[:16]


class RawQuery(BaseModel):
    """Inbound search request, validated."""

    model_config = ConfigDict(frozen=True)

    text: str
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    filters: SearchFilters = Field(default_factory=SearchFilters)


class MatchCandidate(BaseModel):
    recipe_id: int
    title: str
    origin_country: Optional[str] = None
    image: Optional[str] = None
    cooking_time: Optional[int] = None
    difficulty: Optional[str] = None
    authenticity_status: str
    relevance_score: float
    match_tier: MatchTier


class SearchResponse(BaseModel):
    success: bool = True
    results: List[MatchCandidate] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20
    auto_find_triggered: bool = False
    job_id: Optional[str] = None
    message: Optional[str] = None
    tier: Optional[MatchTier] = None
    filters_applied: SearchFilters = Field(default_factory=SearchFilters)

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class Suggestion(BaseModel):
    """Autocomplete entry for a partially typed query."""

    recipe_id: int
    title: str
    origin_country: Optional[str] = None
    image: Optional[str] = None
    cooking_time: Optional[int] = None
    difficulty: Optional[str] = None
    authenticity_status: str
    relevance_score: float
    match_type: str


class SuggestResponse(BaseModel):
    success: bool = True
    suggestions: List[Suggestion] = Field(default_factory=list)
    total: int = 0
    message: Optional[str] = None
