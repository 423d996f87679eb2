import pytest

from app.core.cache import PermissionCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return PermissionCache(ttl_seconds=300, clock=clock)


def counting(value):
    calls = []

    def compute():
        calls.append(1)
        return value

    return compute, calls


def test_hit_skips_lookup(cache):
    compute, calls = counting("admin")
    assert cache.get_or_compute("u1", compute) == "admin"
    assert cache.get_or_compute("u1", compute) == "admin"
    assert len(calls) == 1


def test_entries_expire_after_ttl(cache, clock):
    compute, calls = counting("admin")
    cache.get_or_compute("u1", compute)

    clock.now += 299
    assert cache.get("u1") == "admin"

    clock.now += 1
    assert cache.get("u1") is None
    cache.get_or_compute("u1", compute)
    assert len(calls) == 2


def test_none_is_not_cached(cache):
    compute, calls = counting(None)
    assert cache.get_or_compute("u1", compute) is None
    assert cache.get_or_compute("u1", compute) is None
    assert len(calls) == 2
    assert "u1" not in cache


def test_invalidate_forces_fresh_lookup(cache):
    cache.get_or_compute("u1", lambda: "manager")
    cache.invalidate("u1")
    assert cache.get_or_compute("u1", lambda: "admin") == "admin"


def test_invalidate_only_touches_its_key(cache):
    cache.get_or_compute("u1", lambda: "manager")
    cache.get_or_compute("u2", lambda: "support")
    cache.invalidate("u1")
    assert "u1" not in cache
    assert cache.get("u2") == "support"


def test_lookup_started_before_invalidate_is_not_stored(cache):
    def stale_lookup():
        # Role changes and is invalidated while this lookup is still running
        cache.invalidate("u1")
        return "manager"

    assert cache.get_or_compute("u1", stale_lookup) == "manager"
    assert "u1" not in cache
    assert cache.get_or_compute("u1", lambda: "admin") == "admin"
    assert cache.get("u1") == "admin"


def test_lookup_started_before_clear_is_not_stored(cache):
    def stale_lookup():
        cache.clear()
        return "manager"

    cache.get_or_compute("u1", stale_lookup)
    assert len(cache) == 0


def test_lookup_errors_are_not_cached(cache):
    def broken():
        raise RuntimeError("datastore down")

    with pytest.raises(RuntimeError):
        cache.get_or_compute("u1", broken)
    assert "u1" not in cache


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        PermissionCache(ttl_seconds=0)
