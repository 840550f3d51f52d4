"""
Component wiring.

Each builder is cached so the app, the huey worker and scripts share one
instance per process. ``reset_dependencies()`` drops them all (tests).
"""

from __future__ import annotations

import logging
from functools import lru_cache

from .core.config import get_settings
from .jobs.job_log import get_job_log, set_job_log
from .jobs.queue import AutoFindQueue
from .search.matcher import TieredMatcher
from .search.pipeline import SearchPipeline
from .search.suggest import Suggester
from .services.analytics import (
    AnalyticsRecorder,
    AnalyticsStore,
    InMemoryAnalyticsStore,
    SqliteAnalyticsStore,
)
from .services.rate_limiter import RateLimiter
from .services.result_cache import ResultCache
from .store.adapter import RecipeStoreAdapter
from .store.counters import CounterStore
from .store.factory import build_counter_store, build_recipe_repository
from .store.repository import RecipeRepository

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_recipe_repository() -> RecipeRepository:
    return build_recipe_repository(get_settings())


@lru_cache(maxsize=1)
def get_counter_store() -> CounterStore:
    return build_counter_store(get_settings())


@lru_cache(maxsize=1)
def get_analytics_recorder() -> AnalyticsRecorder:
    settings = get_settings()
    if settings.analytics_backend == "memory":
        store: AnalyticsStore = InMemoryAnalyticsStore()
    else:
        store = SqliteAnalyticsStore(settings.analytics_db_path)
    return AnalyticsRecorder(store, max_queue_size=settings.analytics_queue_size)


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    settings = get_settings()
    return RateLimiter(
        get_counter_store(),
        anonymous_quota=settings.autofind_quota_anonymous,
        authenticated_quota=settings.autofind_quota_authenticated,
        window_seconds=settings.autofind_window_seconds,
    )


@lru_cache(maxsize=1)
def get_autofind_queue() -> AutoFindQueue:
    return AutoFindQueue(
        get_counter_store(),
        get_job_log(),
        debounce_seconds=get_settings().cache_ttl_empty,
    )


@lru_cache(maxsize=1)
def get_store_adapter() -> RecipeStoreAdapter:
    return RecipeStoreAdapter(
        get_recipe_repository(), timeout_seconds=get_settings().store_timeout_seconds
    )


@lru_cache(maxsize=1)
def get_suggester() -> Suggester:
    return Suggester(get_store_adapter(), batch_size=get_settings().tier_fetch_batch_size)


@lru_cache(maxsize=1)
def get_pipeline() -> SearchPipeline:
    """Singleton search pipeline."""
    settings = get_settings()
    return SearchPipeline(
        matcher=TieredMatcher(get_store_adapter(), batch_size=settings.tier_fetch_batch_size),
        cache=ResultCache(
            get_counter_store(),
            ttl_exact=settings.cache_ttl_exact,
            ttl_ranked=settings.cache_ttl_ranked,
            ttl_empty=settings.cache_ttl_empty,
        ),
        limiter=get_rate_limiter(),
        queue=get_autofind_queue(),
        analytics=get_analytics_recorder(),
    )


def reset_dependencies() -> None:
    """Forget every cached component, including the job log and the huey worker."""
    from .jobs.tasks import set_worker

    for builder in (
        get_pipeline,
        get_suggester,
        get_store_adapter,
        get_autofind_queue,
        get_rate_limiter,
        get_analytics_recorder,
        get_counter_store,
        get_recipe_repository,
    ):
        builder.cache_clear()
    set_job_log(None)
    set_worker(None)
