"""
Result cache for resolved searches.

Payloads are stored as SearchResponse JSON in the shared counter store with a
tier-dependent TTL. Last write wins. Backend errors surface as
CacheUnavailable; the search pipeline treats them as a miss.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from ..core.errors import CacheUnavailable, CounterStoreUnavailable
from ..schemas.search import MatchTier, NormalizedQuery, SearchFilters, SearchResponse
from ..store.counters import CounterStore

logger = logging.getLogger(__name__)


class ResultCache:
    def __init__(
        self,
        store: CounterStore,
        *,
        ttl_exact: int = 300,
        ttl_ranked: int = 600,
        ttl_empty: int = 60,
    ):
        self.store = store
        self.ttl_exact = ttl_exact
        self.ttl_ranked = ttl_ranked
        self.ttl_empty = ttl_empty

    @staticmethod
    def key(
        q: NormalizedQuery,
        page: int,
        page_size: int,
        filters: Optional[SearchFilters] = None,
    ) -> str:
        key = f"search:{q.fingerprint}:{page}:{page_size}"
        if filters is not None and filters.active:
            key += f":{filters.digest}"
        return key

    def ttl_for(self, tier: Optional[MatchTier]) -> int:
        """Exact hits live 5 minutes, ranked hits 10, empty/auto-find results 1."""
        if tier is None:
            return self.ttl_empty
        if tier is MatchTier.EXACT:
            return self.ttl_exact
        return self.ttl_ranked

    def get(self, key: str) -> Optional[SearchResponse]:
        """
        Cached response for key, or None.

        Raises:
            CacheUnavailable: the backing store could not be read.
        """
        try:
            raw = self.store.get(key)
        except CounterStoreUnavailable as exc:
            raise CacheUnavailable(f"Cache read failed for {key}: {exc}") from exc
        if raw is None:
            return None
        try:
            return SearchResponse.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None

    def set(self, key: str, value: SearchResponse, ttl_seconds: int) -> None:
        try:
            self.store.set(key, value.model_dump_json(), ttl_seconds)
        except CounterStoreUnavailable as exc:
            raise CacheUnavailable(f"Cache write failed for {key}: {exc}") from exc
