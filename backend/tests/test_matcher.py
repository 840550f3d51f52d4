"""
Tiered matcher: exact -> fulltext -> fuzzy with short-circuit and fall-through.
"""

import time

import pytest

from dishfinder.core.errors import TierFailure
from conftest import make_recipe
from dishfinder.schemas.search import MatchTier, SearchFilters
from dishfinder.search.matcher import TIER_QUERIES, TIER_SCORERS, TieredMatcher
from dishfinder.search.normalizer import normalize
from dishfinder.store.adapter import RecipeStoreAdapter
from dishfinder.store.predicates import RecipeQuery, TitleEquals
from dishfinder.store.repository import InMemoryRecipeRepository


class FailingTitleRepository(InMemoryRecipeRepository):
    """Raises on exact-title reads only."""

    def find(self, query):
        if any(isinstance(p, TitleEquals) for p in query.where):
            raise RuntimeError("exact index offline")
        return super().find(query)


class BrokenRepository(InMemoryRecipeRepository):
    def find(self, query):
        raise RuntimeError("store down")


class SlowRepository(InMemoryRecipeRepository):
    def find(self, query):
        time.sleep(0.3)
        return super().find(query)


@pytest.fixture
def matcher(sample_recipes):
    repo = InMemoryRecipeRepository(sample_recipes)
    return TieredMatcher(RecipeStoreAdapter(repo))


@pytest.mark.asyncio
async def test_exact_title_scores_100(matcher):
    result = await matcher.match(normalize("Butter Chicken"), 1, 20)
    assert result.tier == MatchTier.EXACT
    assert result.total == 1
    [candidate] = result.candidates
    assert candidate.title == "Butter Chicken"
    assert candidate.relevance_score == 100
    assert candidate.match_tier == MatchTier.EXACT


@pytest.mark.asyncio
async def test_exact_tier_ignores_page(matcher):
    result = await matcher.match(normalize("butter chicken"), 3, 20)
    assert result.tier == MatchTier.EXACT
    assert [c.title for c in result.candidates] == ["Butter Chicken"]


@pytest.mark.asyncio
async def test_misspelling_falls_through_to_fuzzy_80(matcher):
    result = await matcher.match(normalize("buter chiken"), 1, 20)
    assert result.tier == MatchTier.FUZZY
    [candidate] = result.candidates
    assert candidate.title == "Butter Chicken"
    assert candidate.relevance_score == 80


@pytest.mark.asyncio
async def test_fuzzy_substring_scores_60(matcher):
    result = await matcher.match(normalize("tab"), 1, 20)
    assert result.tier == MatchTier.FUZZY
    [candidate] = result.candidates
    assert candidate.title == "Tabbouleh"
    assert candidate.relevance_score == 60


@pytest.mark.asyncio
async def test_fulltext_orders_verified_first_and_skips_unsearchable(matcher):
    result = await matcher.match(normalize("chicken"), 1, 20)
    assert result.tier == MatchTier.FULLTEXT
    assert [c.title for c in result.candidates] == ["Butter Chicken", "Chicken Tikka Masala"]
    assert result.total == 2
    assert all(0 < c.relevance_score <= 100 for c in result.candidates)


@pytest.mark.asyncio
async def test_fulltext_matches_ingredients(matcher):
    result = await matcher.match(normalize("parsley"), 1, 20)
    assert result.tier == MatchTier.FULLTEXT
    assert [c.title for c in result.candidates] == ["Tabbouleh"]


@pytest.mark.asyncio
async def test_fulltext_paginates(matcher):
    result = await matcher.match(normalize("chicken"), 2, 1)
    assert result.total == 2
    assert [c.title for c in result.candidates] == ["Chicken Tikka Masala"]


@pytest.mark.asyncio
async def test_ranking_covers_every_match_not_just_one_batch():
    records = [
        make_recipe(
            "Saffron Rice",
            days=0,
            authenticity_status="verified",
            ingredients=["basmati rice", "saffron", "ghee"],
        )
    ]
    records += [
        make_recipe(f"Dish {i}", days=i, ingredients=["saffron", "water"]) for i in range(1, 6)
    ]
    matcher = TieredMatcher(RecipeStoreAdapter(InMemoryRecipeRepository(records)), batch_size=3)

    result = await matcher.match(normalize("saffron"), 1, 2)

    assert result.tier == MatchTier.FULLTEXT
    assert result.total == 6
    assert result.candidates[0].title == "Saffron Rice"

    last = await matcher.match(normalize("saffron"), 3, 2)
    assert [c.title for c in last.candidates] == ["Dish 2", "Dish 1"]


@pytest.mark.asyncio
async def test_filters_narrow_every_tier(matcher):
    verified = SearchFilters(authenticity=["Verified"])
    result = await matcher.match(normalize("chicken"), 1, 20, verified)
    assert [c.title for c in result.candidates] == ["Butter Chicken"]

    uk = SearchFilters(country=["united kingdom"])
    result = await matcher.match(normalize("chicken"), 1, 20, uk)
    assert [c.title for c in result.candidates] == ["Chicken Tikka Masala"]

    # exact title, but filtered out, and nothing else qualifies
    lebanon = SearchFilters(country=["Lebanon"])
    result = await matcher.match(normalize("butter chicken"), 1, 20, lebanon)
    assert result.is_empty


@pytest.mark.asyncio
async def test_cooking_time_filter(sample_recipes):
    recipes = sample_recipes + [make_recipe("Chicken Shawarma", days=6, cooking_time=25)]
    matcher = TieredMatcher(RecipeStoreAdapter(InMemoryRecipeRepository(recipes)))

    result = await matcher.match(normalize("chicken"), 1, 20, SearchFilters(cooking_time_max=30))

    assert [c.title for c in result.candidates] == ["Chicken Shawarma"]


def test_every_tier_has_a_query_and_a_scorer():
    assert set(TIER_QUERIES) == set(MatchTier)
    assert set(TIER_SCORERS) == set(MatchTier)


@pytest.mark.asyncio
async def test_nothing_found(matcher):
    result = await matcher.match(normalize("zzzznonexistentdish"), 1, 20)
    assert result.tier is None
    assert result.is_empty
    assert result.candidates == []
    assert result.failed_tiers == []


@pytest.mark.asyncio
async def test_failing_tier_falls_through(sample_recipes):
    matcher = TieredMatcher(RecipeStoreAdapter(FailingTitleRepository(sample_recipes)))
    result = await matcher.match(normalize("butter chicken"), 1, 20)
    assert result.failed_tiers == [MatchTier.EXACT]
    assert result.tier == MatchTier.FULLTEXT
    assert result.candidates[0].title == "Butter Chicken"


@pytest.mark.asyncio
async def test_all_tiers_failing_is_empty(sample_recipes):
    matcher = TieredMatcher(RecipeStoreAdapter(BrokenRepository(sample_recipes)))
    result = await matcher.match(normalize("butter chicken"), 1, 20)
    assert result.is_empty
    assert result.failed_tiers == [MatchTier.EXACT, MatchTier.FULLTEXT, MatchTier.FUZZY]


@pytest.mark.asyncio
async def test_slow_store_read_is_a_tier_failure(sample_recipes):
    adapter = RecipeStoreAdapter(SlowRepository(sample_recipes), timeout_seconds=0.05)
    with pytest.raises(TierFailure) as excinfo:
        await adapter.fetch(RecipeQuery(), tier="exact")
    assert excinfo.value.tier == "exact"


def test_tfidf_relevance_scores_only_matching_documents():
    from dishfinder.search.relevance import tfidf_relevance

    scores = tfidf_relevance("parsley", ["parsley mint bulgur", "chicken butter"])
    assert scores[0] > 0
    assert scores[1] == 0.0
    assert tfidf_relevance("parsley", []) == []
    assert tfidf_relevance("x", ["a", "b"]) == [0.0, 0.0]
