"""
Search Pipeline
===============

normalize -> cache lookup -> tiered match -> cache write
          -> (nothing found) pending-job check -> quota -> enqueue auto-find

Every resolved search is handed to the analytics recorder. Only InvalidQuery
and QuotaExceeded propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..core.errors import CacheUnavailable, QueueFailure, QuotaExceeded
from ..jobs.queue import AutoFindQueue
from ..schemas.search import NormalizedQuery, RawQuery, SearchResponse
from ..services.analytics import AnalyticsRecorder
from ..services.rate_limiter import Identity, RateLimiter
from ..services.result_cache import ResultCache
from .matcher import TieredMatcher
from .normalizer import normalize

logger = logging.getLogger(__name__)

AUTO_FIND_MESSAGE = "Recipe not found yet. We are looking for it, check back shortly."
NO_RESULTS_MESSAGE = "No recipes found"
NO_FILTERED_RESULTS_MESSAGE = "No recipes match the selected filters"


@dataclass
class PipelineResult:
    status_code: int
    response: SearchResponse
    autofind_remaining: Optional[int] = None


class SearchPipeline:
    def __init__(
        self,
        matcher: TieredMatcher,
        cache: ResultCache,
        limiter: RateLimiter,
        queue: AutoFindQueue,
        analytics: AnalyticsRecorder,
    ):
        self.matcher = matcher
        self.cache = cache
        self.limiter = limiter
        self.queue = queue
        self.analytics = analytics

    async def resolve(self, raw: RawQuery, identity: Identity) -> PipelineResult:
        """
        Resolve one search request.

        Filtered searches never trigger auto-find: an empty filtered result
        does not mean the dish is missing.

        Raises:
            InvalidQuery: empty query text.
            QuotaExceeded: nothing matched and the identity has no auto-find quota left.
        """
        normalized = normalize(raw.text)
        key = self.cache.key(normalized, raw.page, raw.page_size, raw.filters)

        cached = await self._cache_get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            self._record(normalized, cached)
            return PipelineResult(202 if cached.auto_find_triggered else 200, cached)

        result = await self.matcher.match(normalized, raw.page, raw.page_size, raw.filters)

        if not result.is_empty:
            response = SearchResponse(
                results=result.candidates,
                total=result.total,
                page=raw.page,
                limit=raw.page_size,
                tier=result.tier,
                filters_applied=raw.filters,
            )
            if not result.failed_tiers:
                await self._cache_set(key, response, self.cache.ttl_for(result.tier))
            self._record(normalized, response)
            return PipelineResult(200, response)

        if raw.filters.active:
            status_code, remaining = 200, None
            response = SearchResponse(
                page=raw.page,
                limit=raw.page_size,
                message=NO_FILTERED_RESULTS_MESSAGE,
                filters_applied=raw.filters,
            )
        else:
            status_code, response, remaining = await self._auto_find(normalized, raw, identity)

        if not result.failed_tiers:
            await self._cache_set(key, response, self.cache.ttl_for(None))
        else:
            logger.info(
                "Not caching empty result for %r, failed tiers: %s",
                normalized.canonical,
                ", ".join(t.value for t in result.failed_tiers),
            )
        self._record(normalized, response)
        return PipelineResult(status_code, response, remaining)

    async def _auto_find(
        self, normalized: NormalizedQuery, raw: RawQuery, identity: Identity
    ) -> tuple[int, SearchResponse, Optional[int]]:
        pending = await asyncio.to_thread(self.queue.pending_job, normalized, identity)
        if pending:
            logger.info("Auto-find for %r already pending (%s)", normalized.canonical, pending)
            return 202, self._auto_find_response(raw, pending), None

        allowed = await asyncio.to_thread(self.limiter.allow, identity)
        if not allowed:
            self.analytics.record(normalized, 0, None, False)
            raise QuotaExceeded(identity.key, self.limiter.quota_for(identity))
        remaining = await asyncio.to_thread(self.limiter.remaining, identity)

        try:
            job = await asyncio.to_thread(self.queue.enqueue, normalized, raw.text, identity)
        except QueueFailure as exc:
            logger.error("Auto-find enqueue failed for %r: %s", normalized.canonical, exc)
            response = SearchResponse(
                page=raw.page, limit=raw.page_size, message=NO_RESULTS_MESSAGE
            )
            return 200, response, remaining

        return 202, self._auto_find_response(raw, job.job_id), remaining

    async def _cache_get(self, key: str) -> Optional[SearchResponse]:
        try:
            return await asyncio.to_thread(self.cache.get, key)
        except CacheUnavailable as exc:
            logger.warning("%s, treating as miss", exc)
            return None

    async def _cache_set(self, key: str, response: SearchResponse, ttl_seconds: int) -> None:
        try:
            await asyncio.to_thread(self.cache.set, key, response, ttl_seconds)
        except CacheUnavailable as exc:
            logger.warning("%s", exc)

    @staticmethod
    def _auto_find_response(raw: RawQuery, job_id: str) -> SearchResponse:
        return SearchResponse(
            page=raw.page,
            limit=raw.page_size,
            auto_find_triggered=True,
            job_id=job_id,
            message=AUTO_FIND_MESSAGE,
        )

    def _record(self, normalized: NormalizedQuery, response: SearchResponse) -> None:
        self.analytics.record(
            normalized, response.total, response.tier, response.auto_find_triggered
        )
