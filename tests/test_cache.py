from __future__ import annotations

import pytest

from core.cache import TTLCache, make_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl=300, clock=clock)
    cache.set("spending", [1, 2, 3])

    clock.now += 299
    assert cache.get("spending") == [1, 2, 3]

    clock.now += 2
    assert cache.get("spending") is None
    assert len(cache) == 0


def test_set_overwrites_and_refreshes_timestamp():
    clock = FakeClock()
    cache = TTLCache(ttl=10, clock=clock)
    cache.set("k", "old")
    clock.now += 8
    cache.set("k", "new")
    clock.now += 8

    assert cache.get("k") == "new"


def test_clear_drops_everything():
    cache = TTLCache()
    cache.set("a", 1)
    cache.set("b", 2)

    cache.clear()

    assert "a" not in cache
    assert cache.get("b") is None


def test_contains_respects_expiry():
    clock = FakeClock()
    cache = TTLCache(ttl=5, clock=clock)
    cache.set("a", 1)

    assert "a" in cache
    clock.now += 5
    assert "a" not in cache


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        TTLCache(ttl=0)


def test_make_key_serialises_parameters():
    assert make_key("insights") == "insights"
    assert make_key("spending", "month", "all") == 'spending:["month","all"]'
    assert make_key("monthly", 12, True) == "monthly:[12,true]"
    assert make_key("spending", "month", None) != make_key("spending", "month", "all")
