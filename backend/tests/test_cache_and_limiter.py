"""
Result cache and auto-find rate limiter over the shared counter store.
"""

import pytest

from dishfinder.core.errors import CacheUnavailable, CounterStoreUnavailable
from dishfinder.schemas.search import MatchTier, SearchFilters, SearchResponse
from dishfinder.search.normalizer import normalize
from dishfinder.services.rate_limiter import Identity, RateLimiter
from dishfinder.services.result_cache import ResultCache
from dishfinder.store.counters import CounterStore, InMemoryCounterStore, UpstashCounterStore


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class DownCounterStore(CounterStore):
    def get(self, key):
        raise CounterStoreUnavailable("down")

    def set(self, key, value, ttl_seconds):
        raise CounterStoreUnavailable("down")

    def set_if_absent(self, key, value, ttl_seconds):
        raise CounterStoreUnavailable("down")

    def incr(self, key):
        raise CounterStoreUnavailable("down")

    def expire(self, key, ttl_seconds):
        raise CounterStoreUnavailable("down")

    def delete(self, key):
        raise CounterStoreUnavailable("down")

    def ttl(self, key):
        raise CounterStoreUnavailable("down")


class LostExpiryStore(InMemoryCounterStore):
    """In-memory store on the generic increment path whose first EXPIRE fails."""

    incr_with_expiry = CounterStore.incr_with_expiry

    def __init__(self, clock):
        super().__init__(clock=clock)
        self.expire_failures = 1

    def expire(self, key, ttl_seconds):
        if self.expire_failures:
            self.expire_failures -= 1
            raise CounterStoreUnavailable("EXPIRE timed out")
        super().expire(key, ttl_seconds)


class FakeTransaction:
    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    def incr(self, key):
        self.commands.append(("incr", key))

    def expire(self, key, seconds, nx=False):
        self.commands.append(("expire", key, seconds, nx))

    def exec(self):
        self.redis.transactions.append(self.commands)
        results = []
        for name, key, *args in self.commands:
            results.append(getattr(self.redis, name)(key, *args))
        return results


class FakeRedis:
    """Just enough of upstash_redis.Redis for the counter store."""

    def __init__(self):
        self.values = {}
        self.ttls = {}
        self.transactions = []
        self.down = False

    def _check(self):
        if self.down:
            raise ConnectionError("upstash unreachable")

    def get(self, key):
        self._check()
        return self.values.get(key)

    def set(self, key, value, ex=None, nx=False):
        self._check()
        if nx and key in self.values:
            return None
        self.values[key] = value
        self.ttls[key] = ex
        return True

    def incr(self, key):
        self._check()
        self.values[key] = int(self.values.get(key, 0)) + 1
        return self.values[key]

    def expire(self, key, seconds, nx=False):
        self._check()
        if key not in self.values or (nx and self.ttls.get(key) is not None):
            return 0
        self.ttls[key] = seconds
        return 1

    def ttl(self, key):
        self._check()
        if key not in self.values:
            return -2
        return -1 if self.ttls.get(key) is None else self.ttls[key]

    def delete(self, key):
        self._check()
        self.values.pop(key, None)
        self.ttls.pop(key, None)
        return 1

    def multi(self):
        return FakeTransaction(self)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(clock):
    return InMemoryCounterStore(clock=clock)


# ---------------------------------------------------------------------------
# Counter store
# ---------------------------------------------------------------------------


def test_incr_with_expiry_only_starts_window_once(store, clock):
    assert store.incr_with_expiry("k", 10) == 1
    clock.now += 6
    assert store.incr_with_expiry("k", 10) == 2
    clock.now += 5
    # window started at the first increment
    assert store.get("k") is None
    assert store.incr_with_expiry("k", 10) == 1


def test_set_if_absent(store, clock):
    assert store.set_if_absent("k", "a", 5) is True
    assert store.set_if_absent("k", "b", 5) is False
    assert store.get("k") == "a"
    clock.now += 5
    assert store.set_if_absent("k", "c", 5) is True


def test_ttl_reports_missing_and_unexpiring_keys(store, clock):
    assert store.ttl("k") == -2
    store.incr("k")
    assert store.ttl("k") == -1
    store.expire("k", 10)
    clock.now += 4
    assert store.ttl("k") == 6


def test_lost_expiry_is_repaired_on_next_increment(clock):
    store = LostExpiryStore(clock)
    limiter = RateLimiter(store)
    ip = Identity(address="10.0.0.9")
    key = RateLimiter.counter_key(ip)

    # first call fails open after its INCR landed without a TTL
    assert [limiter.allow(ip) for _ in range(7)] == [True] * 5 + [False] * 2
    assert store.ttl(key) > 0

    clock.now += 86400
    assert limiter.allow(ip) is True


def test_upstash_increment_and_expiry_are_one_transaction():
    redis = FakeRedis()
    store = UpstashCounterStore(client=redis)

    assert store.incr_with_expiry("k", 60) == 1
    redis.ttls["k"] = 42  # time passes
    assert store.incr_with_expiry("k", 60) == 2

    assert redis.transactions == [
        [("incr", "k"), ("expire", "k", 60, True)],
        [("incr", "k"), ("expire", "k", 60, True)],
    ]
    # NX: the window is not pushed back by later hits
    assert store.ttl("k") == 42


def test_upstash_repairs_counter_without_ttl():
    redis = FakeRedis()
    redis.values["k"] = 3
    store = UpstashCounterStore(client=redis)

    assert store.incr_with_expiry("k", 60) == 4
    assert store.ttl("k") == 60


def test_upstash_key_value_calls():
    redis = FakeRedis()
    store = UpstashCounterStore(client=redis)

    assert store.set_if_absent("m", "job-1", 30) is True
    assert store.set_if_absent("m", "job-2", 30) is False
    assert store.get("m") == "job-1"
    store.set("c", "{}", 300)
    assert redis.ttls["c"] == 300
    store.delete("m")
    assert store.get("m") is None


def test_upstash_errors_become_counter_store_unavailable():
    redis = FakeRedis()
    redis.down = True
    store = UpstashCounterStore(client=redis)

    with pytest.raises(CounterStoreUnavailable):
        store.incr_with_expiry("k", 60)
    with pytest.raises(CounterStoreUnavailable):
        store.get("k")
    assert RateLimiter(store).allow(Identity(address="a")) is True


# ---------------------------------------------------------------------------
# Result cache
# ---------------------------------------------------------------------------


def test_cache_key_depends_on_canonical_query_and_page():
    a = ResultCache.key(normalize("Butter Chicken"), 1, 20)
    assert a == ResultCache.key(normalize("butter   chicken"), 1, 20)
    assert a != ResultCache.key(normalize("butter chicken"), 2, 20)
    assert a.startswith("search:")


def test_cache_key_separates_filters():
    q = normalize("chicken")
    plain = ResultCache.key(q, 1, 20)
    assert ResultCache.key(q, 1, 20, SearchFilters()) == plain

    verified = ResultCache.key(q, 1, 20, SearchFilters(authenticity=["verified"]))
    assert verified != plain
    assert verified == ResultCache.key(q, 1, 20, SearchFilters(authenticity=["Verified "]))
    assert verified != ResultCache.key(q, 1, 20, SearchFilters(difficulty=["verified"]))


def test_cache_ttl_by_tier(store):
    cache = ResultCache(store)
    assert cache.ttl_for(MatchTier.EXACT) == 300
    assert cache.ttl_for(MatchTier.FULLTEXT) == 600
    assert cache.ttl_for(MatchTier.FUZZY) == 600
    assert cache.ttl_for(None) == 60


def test_cache_entries_expire(store, clock):
    cache = ResultCache(store)
    response = SearchResponse(total=0, auto_find_triggered=True, job_id="abc")
    cache.set("search:x:1:20", response, 60)

    hit = cache.get("search:x:1:20")
    assert hit == response

    clock.now += 61
    assert cache.get("search:x:1:20") is None


def test_cache_outage_raises_cache_unavailable():
    cache = ResultCache(DownCounterStore())
    with pytest.raises(CacheUnavailable):
        cache.set("search:x:1:20", SearchResponse(), 60)
    with pytest.raises(CacheUnavailable):
        cache.get("search:x:1:20")


def test_unreadable_cache_entry_is_a_miss(store):
    store.set("search:x:1:20", "not json", 60)
    assert ResultCache(store).get("search:x:1:20") is None


# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------


def test_identity_keys():
    assert Identity(user_id="42").key == "user:42"
    assert Identity(address="10.0.0.1").key == "ip:10.0.0.1"
    assert Identity(user_id="42", address="10.0.0.1").authenticated


def test_anonymous_quota_denies_attempt_after_limit(store, clock):
    limiter = RateLimiter(store)
    ip = Identity(address="10.0.0.1")

    assert [limiter.allow(ip) for _ in range(5)] == [True] * 5
    assert limiter.remaining(ip) == 0
    assert limiter.allow(ip) is False

    clock.now += 86400
    assert limiter.allow(ip) is True
    assert limiter.remaining(ip) == 4


def test_authenticated_identity_gets_larger_quota(store):
    limiter = RateLimiter(store)
    user = Identity(user_id="u1")
    assert all(limiter.allow(user) for _ in range(50))
    assert limiter.allow(user) is False


def test_identities_are_counted_separately(store):
    limiter = RateLimiter(store, anonymous_quota=1)
    assert limiter.allow(Identity(address="a"))
    assert limiter.allow(Identity(address="b"))
    assert not limiter.allow(Identity(address="a"))


def test_reset_clears_counter(store):
    limiter = RateLimiter(store, anonymous_quota=1)
    ip = Identity(address="a")
    limiter.allow(ip)
    limiter.reset(ip)
    assert limiter.allow(ip)


def test_limiter_fails_open():
    limiter = RateLimiter(DownCounterStore(), anonymous_quota=0)
    assert limiter.allow(Identity(address="a")) is True
    assert limiter.remaining(Identity(address="a")) is None
