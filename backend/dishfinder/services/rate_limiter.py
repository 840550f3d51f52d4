"""
Per-identity auto-find quota.

Rolling window counters in the shared counter store: the increment that
creates a counter also starts its expiry, so the window begins at the first
trigger. Counter store outages fail open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.errors import CounterStoreUnavailable
from ..store.counters import CounterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Who is asking: an authenticated user id or a client address."""

    user_id: Optional[str] = None
    address: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def key(self) -> str:
        if self.user_id:
            return f"user:{self.user_id}"
        return f"ip:{self.address or 'unknown'}"


class RateLimiter:
    def __init__(
        self,
        store: CounterStore,
        *,
        anonymous_quota: int = 5,
        authenticated_quota: int = 50,
        window_seconds: int = 86400,
    ):
        self.store = store
        self.anonymous_quota = anonymous_quota
        self.authenticated_quota = authenticated_quota
        self.window_seconds = window_seconds

    @staticmethod
    def counter_key(identity: Identity) -> str:
        return f"ratelimit:autofind:{identity.key}"

    def quota_for(self, identity: Identity) -> int:
        return self.authenticated_quota if identity.authenticated else self.anonymous_quota

    def allow(self, identity: Identity) -> bool:
        """Count one auto-find trigger and report whether it is within quota."""
        key = self.counter_key(identity)
        try:
            count = self.store.incr_with_expiry(key, self.window_seconds)
        except CounterStoreUnavailable as exc:
            logger.warning("Rate limiter store unavailable, allowing %s: %s", identity.key, exc)
            return True

        limit = self.quota_for(identity)
        if count > limit:
            logger.info("Auto-find quota exceeded for %s (%d/%d)", identity.key, count, limit)
            return False
        return True

    def remaining(self, identity: Identity) -> Optional[int]:
        """Triggers left in the current window, or None when the store is down."""
        try:
            raw = self.store.get(self.counter_key(identity))
        except CounterStoreUnavailable as exc:
            logger.debug("Could not read quota for %s: %s", identity.key, exc)
            return None
        used = int(raw) if raw is not None else 0
        return max(self.quota_for(identity) - used, 0)

    def reset(self, identity: Identity) -> None:
        try:
            self.store.delete(self.counter_key(identity))
        except CounterStoreUnavailable as exc:
            logger.warning("Could not reset quota for %s: %s", identity.key, exc)
