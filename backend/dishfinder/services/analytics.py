"""
Search analytics.

The request path only ever calls AnalyticsRecorder.record(), which puts an
outcome on a bounded asyncio queue and returns. A background task started in
the application lifespan drains the queue into an AnalyticsStore. A full
queue or a failing store drops the outcome with a log line.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from pydantic import BaseModel, Field

from ..schemas.search import MatchTier, NormalizedQuery

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchOutcome(BaseModel):
    """One resolved search, as seen by analytics."""

    normalized_query: str
    original_text: str = ""
    result_count: int
    tier: Optional[MatchTier] = None
    auto_find_triggered: bool = False
    recorded_at: datetime = Field(default_factory=_utcnow)


class QueryStats(BaseModel):
    normalized_query: str
    search_count: int
    last_result_count: int
    last_tier: Optional[MatchTier] = None
    auto_find_count: int = 0
    last_searched_at: datetime


class AnalyticsStore(ABC):
    @abstractmethod
    def record_outcome(self, outcome: SearchOutcome) -> None:
        raise NotImplementedError

    @abstractmethod
    def top_queries(self, limit: int = 10) -> List[QueryStats]:
        raise NotImplementedError


class InMemoryAnalyticsStore(AnalyticsStore):
    def __init__(self):
        self._stats: dict[str, QueryStats] = {}
        self._lock = threading.Lock()

    def record_outcome(self, outcome: SearchOutcome) -> None:
        with self._lock:
            current = self._stats.get(outcome.normalized_query)
            self._stats[outcome.normalized_query] = QueryStats(
                normalized_query=outcome.normalized_query,
                search_count=(current.search_count if current else 0) + 1,
                last_result_count=outcome.result_count,
                last_tier=outcome.tier,
                auto_find_count=(current.auto_find_count if current else 0)
                + int(outcome.auto_find_triggered),
                last_searched_at=outcome.recorded_at,
            )

    def top_queries(self, limit: int = 10) -> List[QueryStats]:
        with self._lock:
            stats = list(self._stats.values())
        stats.sort(key=lambda s: (s.search_count, s.last_searched_at), reverse=True)
        return stats[:limit]


ANALYTICS_SCHEMA = """
CREATE TABLE IF NOT EXISTS search_analytics (
    normalized_query TEXT PRIMARY KEY,
    search_count INTEGER NOT NULL DEFAULT 0,
    last_result_count INTEGER NOT NULL DEFAULT 0,
    last_tier TEXT,
    auto_find_count INTEGER NOT NULL DEFAULT 0,
    last_searched_at TEXT NOT NULL
);
"""


class SqliteAnalyticsStore(AnalyticsStore):
    """Per-query counters in a `search_analytics` table."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(ANALYTICS_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    def record_outcome(self, outcome: SearchOutcome) -> None:
        with self._connect() as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO search_analytics
                        (normalized_query, search_count, last_result_count, last_tier,
                         auto_find_count, last_searched_at)
                    VALUES (?, 1, ?, ?, ?, ?)
                    ON CONFLICT (normalized_query) DO UPDATE SET
                        search_count = search_count + 1,
                        last_result_count = excluded.last_result_count,
                        last_tier = excluded.last_tier,
                        auto_find_count = auto_find_count + excluded.auto_find_count,
                        last_searched_at = excluded.last_searched_at
                    """,
                    (
                        outcome.normalized_query,
                        outcome.result_count,
                        outcome.tier.value if outcome.tier else None,
                        int(outcome.auto_find_triggered),
                        outcome.recorded_at.isoformat(),
                    ),
                )

    def top_queries(self, limit: int = 10) -> List[QueryStats]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM search_analytics "
                "ORDER BY search_count DESC, last_searched_at DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
        return [
            QueryStats(
                normalized_query=row["normalized_query"],
                search_count=row["search_count"],
                last_result_count=row["last_result_count"],
                last_tier=row["last_tier"],
                auto_find_count=row["auto_find_count"],
                last_searched_at=datetime.fromisoformat(row["last_searched_at"]),
            )
            for row in rows
        ]


class AnalyticsRecorder:
    """Fire-and-forget sink for search outcomes."""

    def __init__(self, store: AnalyticsStore, *, max_queue_size: int = 1000):
        self.store = store
        self.queue: asyncio.Queue[SearchOutcome] = asyncio.Queue(maxsize=max_queue_size)
        self._consumer: Optional[asyncio.Task] = None

    def record(
        self,
        normalized: NormalizedQuery,
        result_count: int,
        tier: Optional[MatchTier],
        auto_find_triggered: bool,
    ) -> None:
        """Never raises and never waits."""
        try:
            self.queue.put_nowait(
                SearchOutcome(
                    normalized_query=normalized.canonical,
                    original_text=normalized.original_text,
                    result_count=result_count,
                    tier=tier,
                    auto_find_triggered=auto_find_triggered,
                )
            )
        except asyncio.QueueFull:
            logger.warning("Analytics queue full, dropping outcome for %r", normalized.canonical)
        except Exception as exc:
            logger.warning("Analytics record failed: %s", exc)

    async def drain_once(self) -> int:
        """Write everything currently queued. Returns the number written."""
        written = 0
        while not self.queue.empty():
            outcome = self.queue.get_nowait()
            if await self._write(outcome):
                written += 1
            self.queue.task_done()
        return written

    async def flush(self) -> None:
        """Write everything queued and wait for the consumer's in-flight write."""
        await self.drain_once()
        await self.queue.join()

    async def _write(self, outcome: SearchOutcome) -> bool:
        try:
            await asyncio.to_thread(self.store.record_outcome, outcome)
            return True
        except Exception as exc:
            logger.warning("Analytics write failed for %r: %s", outcome.normalized_query, exc)
            return False

    async def _consume(self) -> None:
        while True:
            outcome = await self.queue.get()
            try:
                await self._write(outcome)
            finally:
                self.queue.task_done()

    def start(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self._consume(), name="analytics-consumer")
            logger.info("Analytics consumer started")

    async def stop(self) -> None:
        if self._consumer is None:
            return
        await self.flush()
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None
        logger.info("Analytics consumer stopped")

    def top_queries(self, limit: int = 10) -> List[QueryStats]:
        return self.store.top_queries(limit)
