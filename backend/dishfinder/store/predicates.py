"""
Typed predicates for recipe queries.

Match tiers describe *what* they need with these objects; each repository
backend compiles them into its own query form (SQL for SQLite, Python
callables for the in-memory store). Keeps tier logic testable without a
database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ..schemas.search import SearchFilters

# Logical field names a predicate may reference.
TEXT_FIELDS = ("title", "ingredients", "history", "cultural_notes")
KEYWORD_FIELDS = ("status", "authenticity_status", "origin_country", "difficulty")
NUMERIC_FIELDS = ("cooking_time",)
QUERYABLE_FIELDS = frozenset(TEXT_FIELDS + KEYWORD_FIELDS)


def _check_field(name: str, allowed=QUERYABLE_FIELDS) -> None:
    if name not in allowed:
        raise ValueError(f"Unknown recipe field: {name}")


@dataclass(frozen=True)
class TitleEquals:
    """Canonical title equals the given canonical string."""

    canonical: str


@dataclass(frozen=True)
class FieldContains:
    """Any of the terms occurs (case-insensitively) in any of the fields."""

    fields: tuple[str, ...]
    terms: tuple[str, ...]

    def __post_init__(self) -> None:
        for name in self.fields:
            _check_field(name)


@dataclass(frozen=True)
class InSet:
    """
    Field value is (or with negate, is not) one of values.

    With casefold, the field is casefolded before the comparison; values are
    expected to be casefolded already.
    """

    field: str
    values: frozenset[str]
    negate: bool = False
    casefold: bool = False

    def __post_init__(self) -> None:
        _check_field(self.field)


@dataclass(frozen=True)
class AtMost:
    """Numeric field is set and no greater than value."""

    field: str
    value: int

    def __post_init__(self) -> None:
        _check_field(self.field, frozenset(NUMERIC_FIELDS))


@dataclass(frozen=True)
class SoundsLike:
    """Phonetic key of the field equals the phonetic key of text."""

    field: str
    text: str

    def __post_init__(self) -> None:
        _check_field(self.field)


@dataclass(frozen=True)
class AnyOf:
    predicates: tuple["Predicate", ...]


Predicate = Union[TitleEquals, FieldContains, InSet, AtMost, SoundsLike, AnyOf]


@dataclass(frozen=True)
class RecipeQuery:
    """Conjunction of predicates; results come back newest first."""

    where: tuple[Predicate, ...] = field(default_factory=tuple)
    limit: int | None = None
    offset: int = 0


def searchable_scope() -> tuple[Predicate, ...]:
    """Published, non-rejected records: the scope every match tier searches."""
    return (
        InSet("status", frozenset({"published"})),
        InSet("authenticity_status", frozenset({"rejected"}), negate=True),
    )


def filter_scope(filters: "SearchFilters | None") -> tuple[Predicate, ...]:
    """Predicates for the filters a caller set; empty when none are set."""
    if filters is None:
        return ()
    where: list[Predicate] = []
    for name, values in (
        ("authenticity_status", filters.authenticity),
        ("difficulty", filters.difficulty),
        ("origin_country", filters.country),
    ):
        if values:
            where.append(InSet(name, frozenset(values), casefold=True))
    if filters.cooking_time_max is not None:
        where.append(AtMost("cooking_time", filters.cooking_time_max))
    return tuple(where)
