"""
Tiered Matcher
==============

Runs a normalized query through three strategies in strict order and stops
at the first tier that has at least one qualifying recipe:

  1) exact     canonical title equality, relevance 100
  2) fulltext  any query term in title/ingredients/history/notes, TF-IDF relevance
  3) fuzzy     Soundex title match (80) or title substring (60)

Each tier is an independent store read. Ranked tiers read every qualifying
record (in batches) before scoring, so ordering and totals cover the whole
store. A failing tier is logged and treated as empty so the next tier still
gets a chance. Optional filters narrow every tier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..core.errors import TierFailure
from ..schemas.recipes import RecipeRecord, authenticity_weight
from ..schemas.search import MatchCandidate, MatchTier, NormalizedQuery, SearchFilters, TIER_ORDER
from ..store.adapter import RecipeStoreAdapter
from ..store.predicates import (
    TEXT_FIELDS,
    AnyOf,
    FieldContains,
    Predicate,
    RecipeQuery,
    SoundsLike,
    TitleEquals,
    filter_scope,
    searchable_scope,
)
from .normalizer import canonicalize_title
from .phonetics import sounds_like
from .relevance import tfidf_relevance

logger = logging.getLogger(__name__)

Scope = tuple[Predicate, ...]

EXACT_RELEVANCE = 100.0
PHONETIC_RELEVANCE = 80.0
SUBSTRING_RELEVANCE = 60.0


@dataclass
class ScoredRecord:
    record: RecipeRecord
    score: float


@dataclass
class MatchResult:
    tier: Optional[MatchTier]
    candidates: List[MatchCandidate] = field(default_factory=list)
    total: int = 0
    failed_tiers: List[MatchTier] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total == 0


# ---------------------------------------------------------------------------
# Per-tier queries
# ---------------------------------------------------------------------------


def _exact_query(q: NormalizedQuery, scope: Scope) -> RecipeQuery:
    return RecipeQuery(where=scope + (TitleEquals(q.canonical),))


def _fulltext_query(q: NormalizedQuery, scope: Scope) -> RecipeQuery:
    return RecipeQuery(where=scope + (FieldContains(TEXT_FIELDS, q.tokens),))


def _fuzzy_query(q: NormalizedQuery, scope: Scope) -> RecipeQuery:
    return RecipeQuery(
        where=scope
        + (
            AnyOf(
                (
                    SoundsLike("title", q.search_terms),
                    FieldContains(("title",), (q.search_terms,)),
                )
            ),
        ),
    )


# ---------------------------------------------------------------------------
# Per-tier relevance
# ---------------------------------------------------------------------------


def _exact_scores(q: NormalizedQuery, records: List[RecipeRecord]) -> List[ScoredRecord]:
    return [ScoredRecord(r, EXACT_RELEVANCE) for r in records]


def _fulltext_scores(q: NormalizedQuery, records: List[RecipeRecord]) -> List[ScoredRecord]:
    documents = [" ".join(r.text_fields().values()) for r in records]
    scores = tfidf_relevance(q.search_terms, documents)
    return [ScoredRecord(r, s) for r, s in zip(records, scores) if s > 0]


def _fuzzy_scores(q: NormalizedQuery, records: List[RecipeRecord]) -> List[ScoredRecord]:
    scored = []
    for r in records:
        if sounds_like(r.title, q.search_terms):
            scored.append(ScoredRecord(r, PHONETIC_RELEVANCE))
        elif q.search_terms and q.search_terms in canonicalize_title(r.title):
            scored.append(ScoredRecord(r, SUBSTRING_RELEVANCE))
    return scored


QueryBuilder = Callable[[NormalizedQuery, Scope], RecipeQuery]
Scorer = Callable[[NormalizedQuery, List[RecipeRecord]], List[ScoredRecord]]

TIER_QUERIES: dict[MatchTier, QueryBuilder] = {
    MatchTier.EXACT: _exact_query,
    MatchTier.FULLTEXT: _fulltext_query,
    MatchTier.FUZZY: _fuzzy_query,
}

TIER_SCORERS: dict[MatchTier, Scorer] = {
    MatchTier.EXACT: _exact_scores,
    MatchTier.FULLTEXT: _fulltext_scores,
    MatchTier.FUZZY: _fuzzy_scores,
}

if not set(TIER_QUERIES) == set(MatchTier) == set(TIER_SCORERS):
    raise RuntimeError("every match tier needs a query builder and a scorer")


def rank(tier: MatchTier, scored: List[ScoredRecord]) -> List[ScoredRecord]:
    """
    Order scored records for a tier.

    Input is newest first; sorting is stable, so created_at desc remains the
    final tie-breaker.
    """
    if tier is MatchTier.EXACT:
        return list(scored)
    return sorted(
        scored,
        key=lambda s: (authenticity_weight(s.record.authenticity_status), s.score),
        reverse=True,
    )


def to_candidate(tier: MatchTier, item: ScoredRecord) -> MatchCandidate:
    r = item.record
    return MatchCandidate(
        recipe_id=r.id,
        title=r.title,
        origin_country=r.origin_country,
        image=r.image,
        cooking_time=r.cooking_time,
        difficulty=r.difficulty,
        authenticity_status=r.authenticity_status,
        relevance_score=item.score,
        match_tier=tier,
    )


class TieredMatcher:
    """Exact -> fulltext -> fuzzy, short-circuiting on the first non-empty tier."""

    def __init__(self, adapter: RecipeStoreAdapter, *, batch_size: int = 500):
        self.adapter = adapter
        self.batch_size = batch_size

    async def match(
        self,
        q: NormalizedQuery,
        page: int,
        page_size: int,
        filters: Optional[SearchFilters] = None,
    ) -> MatchResult:
        failed: List[MatchTier] = []
        scope = searchable_scope() + filter_scope(filters)

        for tier in TIER_ORDER:
            try:
                scored = await self._run_tier(tier, q, scope)
            except TierFailure as exc:
                logger.warning("Tier %s failed for %r: %s", tier.value, q.canonical, exc.cause)
                failed.append(tier)
                continue

            if not scored:
                logger.debug("Tier %s empty for %r", tier.value, q.canonical)
                continue

            ranked = rank(tier, scored)
            # Exact matches are few; always the first page.
            offset = 0 if tier is MatchTier.EXACT else (page - 1) * page_size
            window = ranked[offset : offset + page_size]
            logger.info(
                "Query %r resolved by %s tier (%d matches, %d on page)",
                q.canonical,
                tier.value,
                len(ranked),
                len(window),
            )
            return MatchResult(
                tier=tier,
                candidates=[to_candidate(tier, item) for item in window],
                total=len(ranked),
                failed_tiers=failed,
            )

        return MatchResult(tier=None, failed_tiers=failed)

    async def _run_tier(self, tier: MatchTier, q: NormalizedQuery, scope: Scope) -> List[ScoredRecord]:
        query = TIER_QUERIES[tier](q, scope)
        records = await self.adapter.fetch_all(query, tier=tier.value, batch_size=self.batch_size)
        try:
            return TIER_SCORERS[tier](q, records)
        except Exception as exc:
            raise TierFailure(tier.value, exc) from exc
