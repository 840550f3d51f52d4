"""
Dishfinder Services
===================

Result cache, auto-find rate limiter and search analytics.
"""

from .analytics import (
    AnalyticsRecorder,
    AnalyticsStore,
    InMemoryAnalyticsStore,
    QueryStats,
    SearchOutcome,
    SqliteAnalyticsStore,
)
from .rate_limiter import Identity, RateLimiter
from .result_cache import ResultCache

__all__ = [
    "AnalyticsRecorder",
    "AnalyticsStore",
    "InMemoryAnalyticsStore",
    "QueryStats",
    "SearchOutcome",
    "SqliteAnalyticsStore",
    "Identity",
    "RateLimiter",
    "ResultCache",
]
