"""
SQLite-backed recipe repository.

Each operation opens its own connection and always closes it, so the
repository can be called from worker threads concurrently.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

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
from .repository import RecipeRepository

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS recipes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    canonical_title TEXT NOT NULL,
    origin_key TEXT NOT NULL DEFAULT '',
    origin_country TEXT,
    origin_region TEXT,
    image TEXT,
    cooking_time INTEGER,
    difficulty TEXT,
    authenticity_status TEXT NOT NULL DEFAULT 'community',
    status TEXT NOT NULL DEFAULT 'published',
    ingredients TEXT NOT NULL DEFAULT '[]',
    steps TEXT NOT NULL DEFAULT '[]',
    history TEXT,
    cultural_notes TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (canonical_title, origin_key)
);
CREATE INDEX IF NOT EXISTS idx_recipes_created_at ON recipes (created_at DESC);
"""

_COLUMNS = (
    "title",
    "canonical_title",
    "origin_key",
    "origin_country",
    "origin_region",
    "image",
    "cooking_time",
    "difficulty",
    "authenticity_status",
    "status",
    "ingredients",
    "steps",
    "history",
    "cultural_notes",
    "created_at",
)


def _casefold(value: Any) -> str:
    return "" if value is None else str(value).casefold()


def _soundex(value: Any) -> str:
    return soundex(None if value is None else str(value))


def compile_predicate(predicate: Predicate) -> tuple[str, list[Any]]:
    """Compile a typed predicate into an SQL fragment and its parameters."""
    if isinstance(predicate, TitleEquals):
        return "canonical_title = ?", [predicate.canonical]

    if isinstance(predicate, FieldContains):
        needles = [t.casefold() for t in predicate.terms if t]
        if not needles or not predicate.fields:
            return "0", []
        parts, params = [], []
        for column in predicate.fields:
            for needle in needles:
                parts.append(f"instr(df_casefold({column}), ?) > 0")
                params.append(needle)
        return "(" + " OR ".join(parts) + ")", params

    if isinstance(predicate, InSet):
        values = sorted(predicate.values)
        if not values:
            return ("1" if predicate.negate else "0"), []
        placeholders = ", ".join("?" for _ in values)
        op = "NOT IN" if predicate.negate else "IN"
        column = f"COALESCE({predicate.field}, '')"
        if predicate.casefold:
            column = f"df_casefold({predicate.field})"
        return f"{column} {op} ({placeholders})", values

    if isinstance(predicate, AtMost):
        return f"({predicate.field} IS NOT NULL AND {predicate.field} <= ?)", [int(predicate.value)]

    if isinstance(predicate, SoundsLike):
        key = soundex(predicate.text)
        if not key:
            return "0", []
        return f"df_soundex({predicate.field}) = ?", [key]

    if isinstance(predicate, AnyOf):
        if not predicate.predicates:
            return "0", []
        parts, params = [], []
        for inner in predicate.predicates:
            sql, inner_params = compile_predicate(inner)
            parts.append(sql)
            params.extend(inner_params)
        return "(" + " OR ".join(parts) + ")", params

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _row_to_record(row: sqlite3.Row) -> RecipeRecord:
    return RecipeRecord(
        id=row["id"],
        title=row["title"],
        canonical_title=row["canonical_title"],
        origin_country=row["origin_country"],
        origin_region=row["origin_region"],
        image=row["image"],
        cooking_time=row["cooking_time"],
        difficulty=row["difficulty"],
        authenticity_status=row["authenticity_status"],
        status=row["status"],
        ingredients=json.loads(row["ingredients"] or "[]"),
        steps=json.loads(row["steps"] or "[]"),
        history=row["history"],
        cultural_notes=row["cultural_notes"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class SqliteRecipeRepository(RecipeRepository):
    """Persistent recipe store in a single SQLite file."""

    def __init__(self, db_path: str | Path, *, busy_timeout_ms: int = 5000):
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)
        logger.info("SQLite recipe repository ready at %s", self.db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            conn.create_function("df_casefold", 1, _casefold, deterministic=True)
            conn.create_function("df_soundex", 1, _soundex, deterministic=True)
            yield conn
        finally:
            conn.close()

    def find(self, query: RecipeQuery) -> list[RecipeRecord]:
        clauses, params = [], []
        for predicate in query.where:
            sql, predicate_params = compile_predicate(predicate)
            clauses.append(sql)
            params.extend(predicate_params)

        sql = "SELECT * FROM recipes"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC, id DESC"
        if query.limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([int(query.limit), int(query.offset)])
        elif query.offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(int(query.offset))

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_record(row) for row in rows]

    def get(self, recipe_id: int) -> Optional[RecipeRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
        return _row_to_record(row) if row else None

    def insert_if_absent(self, record: RecipeRecord) -> tuple[RecipeRecord, bool]:
        canonical = canonicalize_title(record.title)
        values = {
            "title": record.title,
            "canonical_title": canonical,
            "origin_key": record.origin_key,
            "origin_country": record.origin_country,
            "origin_region": record.origin_region,
            "image": record.image,
            "cooking_time": record.cooking_time,
            "difficulty": record.difficulty,
            "authenticity_status": record.authenticity_status,
            "status": record.status,
            "ingredients": json.dumps(record.ingredients, ensure_ascii=False),
            "steps": json.dumps(record.steps, ensure_ascii=False),
            "history": record.history,
            "cultural_notes": record.cultural_notes,
            "created_at": _to_iso(record.created_at),
        }
        columns = ", ".join(_COLUMNS)
        placeholders = ", ".join("?" for _ in _COLUMNS)

        with self._connect() as conn:
            with conn:
                cursor = conn.execute(
                    f"INSERT INTO recipes ({columns}) VALUES ({placeholders}) "
                    "ON CONFLICT (canonical_title, origin_key) DO NOTHING",
                    [values[c] for c in _COLUMNS],
                )
                created = cursor.rowcount == 1
                row = conn.execute(
                    "SELECT * FROM recipes WHERE canonical_title = ? AND origin_key = ?",
                    (canonical, values["origin_key"]),
                ).fetchone()

        stored = _row_to_record(row)
        if created:
            logger.debug("Stored recipe %s (%s)", stored.id, stored.title)
        return stored, created

    def count(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM recipes").fetchone()[0]
