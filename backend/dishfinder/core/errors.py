"""
Error taxonomy for the query-resolution pipeline.

Only InvalidQuery and QuotaExceeded ever reach an HTTP caller. Everything else
is absorbed by the component that owns the failing subsystem.
"""

from __future__ import annotations


class DishfinderError(Exception):
    """Base class for all pipeline errors."""


class InvalidQuery(DishfinderError):
    """Empty or whitespace-only query text."""


class QuotaExceeded(DishfinderError):
    """The identity has used up its auto-find quota for the current window."""

    def __init__(self, identity_key: str, limit: int):
        super().__init__(f"Auto-find quota of {limit} exceeded for {identity_key}")
        self.identity_key = identity_key
        self.limit = limit


class TierFailure(DishfinderError):
    """A single match tier could not read from the recipe store."""

    def __init__(self, tier: str, cause: BaseException | None = None):
        super().__init__(f"{tier} tier failed: {cause!r}")
        self.tier = tier
        self.cause = cause


class QueueFailure(DishfinderError):
    """An auto-find job could not be submitted."""


class SynthesisFailure(DishfinderError):
    """Recipe synthesis failed inside the worker."""

    def __init__(self, message: str, *, transient: bool):
        super().__init__(message)
        self.transient = transient


class DraftValidationError(DishfinderError):
    """A synthesized draft did not pass validation."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class CounterStoreUnavailable(DishfinderError):
    """The shared counter store could not be reached."""


class CacheUnavailable(CounterStoreUnavailable):
    """The result cache backend could not be reached."""
