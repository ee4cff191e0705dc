"""Tests for freshness cache."""
import threading
import pytest
from freshness_cache import FreshnessCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_get_on_empty_cache(clock):
    cache = FreshnessCache(ttl_seconds=300, clock=clock)
    assert cache.get() is None
    assert cache.age() is None


def test_set_then_get_returns_value(clock):
    cache = FreshnessCache(ttl_seconds=300, clock=clock)
    cache.set("snapshot")
    assert cache.get() == "snapshot"


def test_value_expires_after_ttl_without_invalidate(clock):
    cache = FreshnessCache(ttl_seconds=300, clock=clock)
    cache.set("snapshot")

    clock.advance(299.9)
    assert cache.get() == "snapshot"

    clock.advance(0.1)
    assert cache.get() is None

    # Still nothing later on; expiry is checked at read time only
    clock.advance(1000)
    assert cache.get() is None
    assert cache.age() == pytest.approx(1300.0)


def test_set_overwrites_value_and_timestamp(clock):
    cache = FreshnessCache(ttl_seconds=300, clock=clock)
    cache.set("old")
    clock.advance(250)
    cache.set("new")
    clock.advance(100)
    assert cache.get() == "new"


def test_invalidate_clears_immediately(clock):
    cache = FreshnessCache(ttl_seconds=300, clock=clock)
    cache.set("snapshot")
    cache.invalidate()
    assert cache.get() is None
    assert cache.age() is None


def test_default_ttl_is_five_minutes():
    assert FreshnessCache().ttl_seconds == 300


def test_concurrent_readers_see_consistent_pairs():
    """Readers only ever see a value together with its own timestamp."""
    ticks = iter(range(10 ** 9))
    cache = FreshnessCache(ttl_seconds=10 ** 12, clock=lambda: float(next(ticks)))
    seen = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            value = cache.get()
            if value is not None:
                seen.append(value)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for t in readers:
        t.start()
    for i in range(2000):
        cache.set(("value", i))
    stop.set()
    for t in readers:
        t.join()

    assert cache.get() == ("value", 1999)
    assert all(v[0] == "value" for v in seen)
