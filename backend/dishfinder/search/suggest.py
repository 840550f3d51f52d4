"""
Autocomplete suggestions.

Substring matches on title, ingredients and origin for a partially typed
query, scored by where the text matched. Suggestions are never cached,
never count against a quota and never trigger auto-find.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..schemas.recipes import RecipeRecord, authenticity_weight
from ..schemas.search import NormalizedQuery, Suggestion
from ..store.adapter import RecipeStoreAdapter
from ..store.predicates import FieldContains, RecipeQuery, searchable_scope
from .normalizer import canonicalize, canonicalize_title

logger = logging.getLogger(__name__)

MATCH_SCORES: dict[str, float] = {
    "exact_title": 100.0,
    "title_prefix": 90.0,
    "partial_title": 80.0,
    "ingredient": 70.0,
    "country": 60.0,
}

SUGGEST_FIELDS = ("title", "ingredients", "origin_country")


def match_type(record: RecipeRecord, text: str) -> Optional[str]:
    """Best place text occurs in record, or None."""
    title = canonicalize_title(record.title)
    if title == text:
        return "exact_title"
    if title.startswith(text):
        return "title_prefix"
    if text in title:
        return "partial_title"
    if any(text in canonicalize(item) for item in record.ingredients):
        return "ingredient"
    if text in canonicalize(record.origin_country):
        return "country"
    return None


class Suggester:
    def __init__(self, adapter: RecipeStoreAdapter, *, batch_size: int = 500):
        self.adapter = adapter
        self.batch_size = batch_size

    async def suggest(self, q: NormalizedQuery, limit: int) -> List[Suggestion]:
        """
        Top suggestions: match type, then authenticity, then newest.

        Raises:
            TierFailure: the recipe store could not be read.
        """
        query = RecipeQuery(
            where=searchable_scope() + (FieldContains(SUGGEST_FIELDS, (q.canonical,)),)
        )
        records = await self.adapter.fetch_all(query, tier="suggest", batch_size=self.batch_size)

        matched = []
        for record in records:
            kind = match_type(record, q.canonical)
            if kind:
                matched.append((record, kind))
        # stable: newest first among equals
        matched.sort(
            key=lambda item: (MATCH_SCORES[item[1]], authenticity_weight(item[0].authenticity_status)),
            reverse=True,
        )
        logger.debug("%d suggestions for %r", len(matched), q.canonical)

        return [
            Suggestion(
                recipe_id=record.id,
                title=record.title,
                origin_country=record.origin_country,
                image=record.image,
                cooking_time=record.cooking_time,
                difficulty=record.difficulty,
                authenticity_status=record.authenticity_status,
                relevance_score=MATCH_SCORES[kind],
                match_type=kind,
            )
            for record, kind in matched[:limit]
        ]
