import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bakumania.client.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entry_expires_after_default_ttl():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set('/api/bakugan?page=1', {'items': []})

    clock.now += 59
    assert cache.get('/api/bakugan?page=1') == {'items': []}
    clock.now += 1
    assert cache.get('/api/bakugan?page=1') is None
    # stale entries stay until overwritten or pruned
    assert '/api/bakugan?page=1' in cache


def test_per_call_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl=60, clock=clock)
    cache.set('k', 1)
    clock.now += 90
    assert cache.get('k') is None
    assert cache.get('k', ttl=120) == 1


def test_set_overwrites_and_refreshes_timestamp():
    clock = FakeClock()
    cache = TTLCache(ttl=10, clock=clock)
    cache.set('k', 'old')
    clock.now += 8
    cache.set('k', 'new')
    clock.now += 8
    assert cache.get('k') == 'new'


def test_lru_eviction():
    cache = TTLCache(max_entries=2, clock=FakeClock())
    cache.set('a', 1)
    cache.set('b', 2)
    cache.get('a')  # touch
    cache.set('c', 3)
    assert 'b' not in cache
    assert cache.get('a') == 1 and cache.get('c') == 3
    assert len(cache) == 2


def test_invalidate_and_prune():
    clock = FakeClock()
    cache = TTLCache(ttl=60, clock=clock)
    cache.set('/api/bakugan?page=1', 1)
    cache.set('/api/bakugan?page=2', 2)
    cache.set('priceHistory-7', [])
    assert cache.invalidate('/api/bakugan') == 2
    assert cache.invalidate(lambda k: k.endswith('-7')) == 1
    assert len(cache) == 0

    cache.set('old', 1)
    clock.now += 61
    cache.set('fresh', 2)
    assert cache.prune() == 1
    assert 'fresh' in cache and 'old' not in cache

    cache.clear()
    assert len(cache) == 0


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        TTLCache(max_entries=0)
