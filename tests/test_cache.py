from transit_dash.services.cache import CacheKey, InMemoryCacheStore


def test_get_returns_value_within_ttl(cache, clock):
    key = CacheKey.of("vehicles", 1)
    cache.set(key, ["bus"])

    clock.advance(299)

    assert cache.get(key) == ["bus"]


def test_entry_expires_at_ttl(cache, clock):
    key = CacheKey.of("vehicles", 1)
    cache.set(key, ["bus"])

    clock.advance(300)

    assert cache.get(key) is None


def test_keys_differ_by_params():
    a = CacheKey.of("bookings", "2025-01-01", "2025-01-10")
    b = CacheKey.of("bookings", "2025-01-01", "2025-01-11")
    assert a != b
    assert a == CacheKey.of("bookings", "2025-01-01", "2025-01-10")


def test_set_overwrites_and_restarts_ttl(cache, clock):
    key = CacheKey.of("company", 7)
    cache.set(key, "old")
    clock.advance(200)
    cache.set(key, "new")
    clock.advance(200)

    assert cache.get(key) == "new"


def test_clear_drops_everything(cache):
    cache.set(CacheKey.of("a"), 1)
    cache.set(CacheKey.of("b"), 2)

    cache.clear()

    assert len(cache) == 0
    assert cache.get(CacheKey.of("a")) is None


def test_prune_removes_only_expired(cache, clock):
    cache.set(CacheKey.of("stale"), 1)
    clock.advance(250)
    cache.set(CacheKey.of("fresh"), 2)
    clock.advance(100)

    removed = cache.prune()

    assert removed == 1
    assert len(cache) == 1
    assert cache.get(CacheKey.of("fresh")) == 2


def test_default_clock_is_usable():
    store = InMemoryCacheStore(ttl_seconds=60)
    store.set(CacheKey.of("x"), "y")
    assert store.get(CacheKey.of("x")) == "y"
