"""
Recipe repositories: predicate semantics must agree between the in-memory
and SQLite backends.
"""

import threading

import pytest

from conftest import make_recipe
from dishfinder.store.predicates import (
    AnyOf,
    AtMost,
    FieldContains,
    InSet,
    RecipeQuery,
    SoundsLike,
    TitleEquals,
    searchable_scope,
)
from dishfinder.store.repository import InMemoryRecipeRepository
from dishfinder.store.sqlite_repository import SqliteRecipeRepository, compile_predicate


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, tmp_path, sample_recipes):
    if request.param == "memory":
        repo = InMemoryRecipeRepository()
    else:
        repo = SqliteRecipeRepository(tmp_path / "recipes.db")
    repo.add_many(sample_recipes)
    return repo


def titles(records):
    return [r.title for r in records]


def test_results_come_back_newest_first(repository):
    records = repository.find(RecipeQuery())
    assert titles(records) == [
        "Draft Chicken Soup",
        "Rejected Chicken Curry",
        "Chicken Tikka Masala",
        "Tabbouleh",
        "Butter Chicken",
    ]


def test_title_equals_uses_canonical_title(repository):
    records = repository.find(RecipeQuery(where=(TitleEquals("butter chicken"),)))
    assert titles(records) == ["Butter Chicken"]
    assert records[0].canonical_title == "butter chicken"
    assert records[0].id is not None


def test_searchable_scope_excludes_drafts_and_rejected(repository):
    records = repository.find(RecipeQuery(where=searchable_scope()))
    assert "Draft Chicken Soup" not in titles(records)
    assert "Rejected Chicken Curry" not in titles(records)
    assert len(records) == 3


def test_field_contains_is_case_insensitive_across_fields(repository):
    query = RecipeQuery(where=(FieldContains(("title", "ingredients"), ("PARSLEY",)),))
    assert titles(repository.find(query)) == ["Tabbouleh"]

    query = RecipeQuery(where=(FieldContains(("history",), ("delhi",)),))
    assert titles(repository.find(query)) == ["Butter Chicken"]


def test_sounds_like_matches_misspelled_title(repository):
    query = RecipeQuery(where=(SoundsLike("title", "buter chiken"),))
    assert titles(repository.find(query)) == ["Butter Chicken"]


def test_any_of_and_limit(repository):
    query = RecipeQuery(
        where=(
            AnyOf((TitleEquals("tabbouleh"), FieldContains(("title",), ("tikka",)))),
        ),
        limit=1,
    )
    assert titles(repository.find(query)) == ["Chicken Tikka Masala"]


def test_in_set_negation(repository):
    query = RecipeQuery(where=(InSet("authenticity_status", frozenset({"verified"}), negate=True),))
    assert "Butter Chicken" not in titles(repository.find(query))


def test_offset_pages_through_newest_first(repository):
    first = repository.find(RecipeQuery(limit=2))
    second = repository.find(RecipeQuery(limit=2, offset=2))
    rest = repository.find(RecipeQuery(offset=4))
    assert titles(first) == ["Draft Chicken Soup", "Rejected Chicken Curry"]
    assert titles(second) == ["Chicken Tikka Masala", "Tabbouleh"]
    assert titles(rest) == ["Butter Chicken"]


def test_in_set_casefold(repository):
    query = RecipeQuery(where=(InSet("origin_country", frozenset({"united kingdom"}), casefold=True),))
    assert titles(repository.find(query)) == ["Chicken Tikka Masala"]

    exact = RecipeQuery(where=(InSet("origin_country", frozenset({"united kingdom"})),))
    assert repository.find(exact) == []


def test_at_most_skips_missing_values(repository):
    repository.insert_if_absent(make_recipe("Quick Hummus", days=6, cooking_time=15))
    repository.insert_if_absent(make_recipe("Slow Cassoulet", days=7, cooking_time=240))

    assert titles(repository.find(RecipeQuery(where=(AtMost("cooking_time", 30),)))) == ["Quick Hummus"]
    assert len(repository.find(RecipeQuery(where=(AtMost("cooking_time", 500),)))) == 2


def test_insert_if_absent_dedups_on_title_and_origin(repository):
    stored, created = repository.insert_if_absent(
        make_recipe("  BUTTER chicken ", origin_country="india")
    )
    assert created is False
    assert stored.title == "Butter Chicken"

    other, created = repository.insert_if_absent(make_recipe("Butter Chicken", origin_country="Pakistan"))
    assert created is True
    assert other.id != stored.id


def test_get_round_trips_lists(repository):
    record = repository.find(RecipeQuery(where=(TitleEquals("tabbouleh"),)))[0]
    fetched = repository.get(record.id)
    assert fetched.ingredients == ["parsley", "mint", "bulgur", "lemon"]
    assert fetched.created_at == record.created_at
    assert repository.get(99999) is None


def test_concurrent_inserts_create_one_record(tmp_path):
    repo = SqliteRecipeRepository(tmp_path / "race.db")
    results = []

    def insert():
        results.append(repo.insert_if_absent(make_recipe("Pho", origin_country="Vietnam")))

    threads = [threading.Thread(target=insert) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert repo.count() == 1
    assert sum(1 for _, created in results if created) == 1
    assert len({stored.id for stored, _ in results}) == 1


def test_unknown_field_is_rejected():
    with pytest.raises(ValueError):
        FieldContains(("password",), ("x",))
    with pytest.raises(ValueError):
        AtMost("title", 10)


def test_compile_empty_terms_matches_nothing():
    sql, params = compile_predicate(FieldContains(("title",), ()))
    assert sql == "0"
    assert params == []
