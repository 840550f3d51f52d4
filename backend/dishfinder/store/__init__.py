"""
Dishfinder Store
================

Recipe repositories, the typed query predicates they compile, the async
store adapter used by the match tiers, and the shared counter store.
"""

from .adapter import RecipeStoreAdapter
from .counters import CounterStore, InMemoryCounterStore, UpstashCounterStore
from .predicates import (
    AnyOf,
    AtMost,
    FieldContains,
    InSet,
    RecipeQuery,
    SoundsLike,
    TitleEquals,
    filter_scope,
    searchable_scope,
)
from .repository import InMemoryRecipeRepository, RecipeRepository
from .sqlite_repository import SqliteRecipeRepository

__all__ = [
    "RecipeStoreAdapter",
    "CounterStore",
    "InMemoryCounterStore",
    "UpstashCounterStore",
    "AnyOf",
    "AtMost",
    "FieldContains",
    "InSet",
    "RecipeQuery",
    "SoundsLike",
    "TitleEquals",
    "filter_scope",
    "searchable_scope",
    "InMemoryRecipeRepository",
    "RecipeRepository",
    "SqliteRecipeRepository",
]
