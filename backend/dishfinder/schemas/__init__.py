"""
Dishfinder Schemas
==================

Pydantic schemas for structured data.

- search: RawQuery, NormalizedQuery, SearchFilters, MatchCandidate, SearchResponse, Suggestion
- recipes: RecipeRecord, RecipeDraft
- jobs: AutoFindJob, JobEvent, JobState
"""

from .jobs import AutoFindJob, JobEvent, JobState, JobStatus
from .recipes import RecipeDraft, RecipeRecord, authenticity_weight
from .search import (
    MatchCandidate,
    MatchTier,
    NormalizedQuery,
    RawQuery,
    SearchFilters,
    SearchResponse,
    SuggestResponse,
    Suggestion,
    TIER_ORDER,
)

__all__ = [
    "AutoFindJob",
    "JobEvent",
    "JobState",
    "JobStatus",
    "RecipeDraft",
    "RecipeRecord",
    "authenticity_weight",
    "MatchCandidate",
    "MatchTier",
    "NormalizedQuery",
    "RawQuery",
    "SearchFilters",
    "SearchResponse",
    "SuggestResponse",
    "Suggestion",
    "TIER_ORDER",
]
