"""
Dishfinder Core
===============

Configuration, settings and the error taxonomy.
"""

from .config import Settings, get_settings
from .errors import (
    CacheUnavailable,
    CounterStoreUnavailable,
    DishfinderError,
    DraftValidationError,
    InvalidQuery,
    QueueFailure,
    QuotaExceeded,
    SynthesisFailure,
    TierFailure,
)

__all__ = [
    "Settings",
    "get_settings",
    "CacheUnavailable",
    "CounterStoreUnavailable",
    "DishfinderError",
    "DraftValidationError",
    "InvalidQuery",
    "QueueFailure",
    "QuotaExceeded",
    "SynthesisFailure",
    "TierFailure",
]
