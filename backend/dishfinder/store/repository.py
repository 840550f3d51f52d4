"""
Recipe repository abstraction.

Two implementations exist: SqliteRecipeRepository (persistent, see
sqlite_repository.py) and InMemoryRecipeRepository below. Which one backs the
app is chosen once at startup from settings (see store/factory.py).
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

from ..schemas.recipes import RecipeRecord
from ..search.normalizer import canonicalize_title
from ..search.phonetics import soundex
from .predicates import (
    AnyOf,
    AtMost,
    FieldContains,
    InSet,
    Predicate,
    RecipeQuery,
    SoundsLike,
    TitleEquals,
)

logger = logging.getLogger(__name__)


class RecipeRepository(ABC):
    """Abstract recipe store queried by the match tiers and written by the worker."""

    @abstractmethod
    def find(self, query: RecipeQuery) -> list[RecipeRecord]:
        """Return records satisfying every predicate, newest first."""
        raise NotImplementedError

    @abstractmethod
    def get(self, recipe_id: int) -> Optional[RecipeRecord]:
        raise NotImplementedError

    @abstractmethod
    def insert_if_absent(self, record: RecipeRecord) -> tuple[RecipeRecord, bool]:
        """
        Insert unless a record with the same canonical title and origin exists.

        Returns the stored record and whether it was created by this call.
        The check and the insert are atomic.
        """
        raise NotImplementedError

    @abstractmethod
    def count(self) -> int:
        raise NotImplementedError

    def add_many(self, records: Iterable[RecipeRecord]) -> int:
        created = 0
        for record in records:
            _, was_created = self.insert_if_absent(record)
            created += int(was_created)
        return created

    def close(self) -> None:
        """Release backend resources."""


def _field_text(record: RecipeRecord, name: str) -> str:
    text_fields = record.text_fields()
    if name in text_fields:
        return text_fields[name]
    value = getattr(record, name, None)
    return "" if value is None else str(value)


def compile_predicate(predicate: Predicate) -> Callable[[RecipeRecord], bool]:
    """Compile a typed predicate into a Python callable over records."""
    if isinstance(predicate, TitleEquals):
        return lambda r: r.canonical_title == predicate.canonical

    if isinstance(predicate, FieldContains):
        needles = [t.casefold() for t in predicate.terms if t]
        fields = predicate.fields

        def contains(r: RecipeRecord) -> bool:
            for name in fields:
                haystack = _field_text(r, name).casefold()
                if any(n in haystack for n in needles):
                    return True
            return False

        return contains

    if isinstance(predicate, InSet):

        def in_set(r: RecipeRecord) -> bool:
            value = _field_text(r, predicate.field)
            if predicate.casefold:
                value = value.casefold()
            return (value in predicate.values) != predicate.negate

        return in_set

    if isinstance(predicate, AtMost):

        def at_most(r: RecipeRecord) -> bool:
            value = getattr(r, predicate.field, None)
            return value is not None and value <= predicate.value

        return at_most

    if isinstance(predicate, SoundsLike):
        key = soundex(predicate.text)
        return lambda r: bool(key) and soundex(_field_text(r, predicate.field)) == key

    if isinstance(predicate, AnyOf):
        compiled = [compile_predicate(p) for p in predicate.predicates]
        return lambda r: any(check(r) for check in compiled)

    raise TypeError(f"Unsupported predicate: {predicate!r}")


class InMemoryRecipeRepository(RecipeRepository):
    """Thread-safe in-memory store, used offline and in tests."""

    def __init__(self, records: Iterable[RecipeRecord] | None = None):
        self._records: dict[int, RecipeRecord] = {}
        self._keys: dict[tuple[str, str], int] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        if records:
            self.add_many(records)

    def find(self, query: RecipeQuery) -> list[RecipeRecord]:
        checks = [compile_predicate(p) for p in query.where]
        with self._lock:
            snapshot = list(self._records.values())
        matches = [r for r in snapshot if all(check(r) for check in checks)]
        matches.sort(key=lambda r: (r.created_at, r.id or 0), reverse=True)
        end = None if query.limit is None else query.offset + query.limit
        matches = matches[query.offset : end]
        return [m.model_copy(deep=True) for m in matches]

    def get(self, recipe_id: int) -> Optional[RecipeRecord]:
        with self._lock:
            record = self._records.get(recipe_id)
        return record.model_copy(deep=True) if record else None

    def insert_if_absent(self, record: RecipeRecord) -> tuple[RecipeRecord, bool]:
        canonical = canonicalize_title(record.title)
        key = (canonical, record.origin_key)
        with self._lock:
            existing_id = self._keys.get(key)
            if existing_id is not None:
                return self._records[existing_id].model_copy(deep=True), False
            stored = record.model_copy(update={"id": self._next_id, "canonical_title": canonical})
            self._records[stored.id] = stored
            self._keys[key] = stored.id
            self._next_id += 1
        logger.debug("Stored recipe %s (%s)", stored.id, stored.title)
        return stored.model_copy(deep=True), True

    def count(self) -> int:
        with self._lock:
            return len(self._records)
