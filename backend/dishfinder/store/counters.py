"""
Shared counter store: atomic increment-with-expiry plus TTL'd key/value.

Backs the rate limiter, the result cache and the auto-find de-dup markers.
Every backend error surfaces as CounterStoreUnavailable so callers can fail
open in one place.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..core.errors import CounterStoreUnavailable

logger = logging.getLogger(__name__)


class CounterStore(ABC):
    """Abstract key/value store with expiring keys and atomic increments."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set key only if missing. Returns True when this call created it."""
        raise NotImplementedError

    @abstractmethod
    def incr(self, key: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def expire(self, key: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def ttl(self, key: str) -> int:
        """Seconds left on key; -1 when it has no expiry, -2 when it does not exist."""
        raise NotImplementedError

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """
        Increment key and make sure it carries an expiry.

        The increment that creates the key starts the window. A counter left
        without a TTL by an earlier failed EXPIRE gets one on the next call.
        """
        count = self.incr(key)
        if count == 1 or self.ttl(key) == -1:
            self.expire(key, ttl_seconds)
        return count


class InMemoryCounterStore(CounterStore):
    """Process-local store with lazy expiry. Used offline and in tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._values: dict[str, str] = {}
        self._expires: dict[str, float] = {}
        self._lock = threading.Lock()

    def _alive(self, key: str) -> bool:
        expires_at = self._expires.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self._values.pop(key, None)
            self._expires.pop(key, None)
        return key in self._values

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values[key] if self._alive(key) else None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._values[key] = value
            self._expires[key] = self._clock() + ttl_seconds

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        with self._lock:
            if self._alive(key):
                return False
            self._values[key] = value
            self._expires[key] = self._clock() + ttl_seconds
            return True

    def incr(self, key: str) -> int:
        with self._lock:
            current = int(self._values[key]) if self._alive(key) else 0
            current += 1
            self._values[key] = str(current)
            return current

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        # Single critical section so concurrent first hits cannot skip the expiry.
        with self._lock:
            created = not self._alive(key)
            current = 0 if created else int(self._values[key])
            current += 1
            self._values[key] = str(current)
            if created:
                self._expires[key] = self._clock() + ttl_seconds
            return current

    def expire(self, key: str, ttl_seconds: int) -> None:
        with self._lock:
            if self._alive(key):
                self._expires[key] = self._clock() + ttl_seconds

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)
            self._expires.pop(key, None)

    def ttl(self, key: str) -> int:
        with self._lock:
            if not self._alive(key):
                return -2
            expires_at = self._expires.get(key)
            if expires_at is None:
                return -1
            return max(0, int(math.ceil(expires_at - self._clock())))


class UpstashCounterStore(CounterStore):
    """Counter store on Upstash Redis (REST)."""

    def __init__(self, url: str = "", token: str = "", *, client=None):
        if client is None:
            from upstash_redis import Redis

            client = Redis(url=url, token=token)
        self._redis = client
        logger.info("Upstash Redis counter store configured")

    def _call(self, op: str, fn: Callable, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            raise CounterStoreUnavailable(f"Redis {op} failed: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        value = self._call("GET", self._redis.get, key)
        return None if value is None else str(value)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._call("SET", self._redis.set, key, value, ex=ttl_seconds)

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        return bool(self._call("SET NX", self._redis.set, key, value, ex=ttl_seconds, nx=True))

    def incr(self, key: str) -> int:
        return int(self._call("INCR", self._redis.incr, key))

    def expire(self, key: str, ttl_seconds: int) -> None:
        self._call("EXPIRE", self._redis.expire, key, ttl_seconds)

    def delete(self, key: str) -> None:
        self._call("DEL", self._redis.delete, key)

    def ttl(self, key: str) -> int:
        return int(self._call("TTL", self._redis.ttl, key))

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        # One MULTI/EXEC round trip. EXPIRE NX only sets a TTL the key lacks,
        # so the window starts at the first hit and is never extended.
        def transaction():
            tx = self._redis.multi()
            tx.incr(key)
            tx.expire(key, ttl_seconds, nx=True)
            return tx.exec()

        count, _ = self._call("INCR/EXPIRE", transaction)
        return int(count)
