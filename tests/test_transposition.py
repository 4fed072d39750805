import threading

import pytest

from coach.transposition import TranspositionCache, TranspositionEntry


def _key(i):
    return TranspositionCache.make_key(f"fen-{i}", 2, True)


def test_get_counts_hits_and_misses():
    cache = TranspositionCache(4)
    cache.put(_key(1), TranspositionEntry(10, "e2e4"))

    assert cache.get(_key(1)) == TranspositionEntry(10, "e2e4")
    assert cache.get(_key(2)) is None
    assert (cache.hits, cache.misses) == (1, 1)


def test_least_recently_used_entry_is_evicted():
    cache = TranspositionCache(2)
    cache.put(_key(1), TranspositionEntry(1))
    cache.put(_key(2), TranspositionEntry(2))
    cache.get(_key(1))
    cache.put(_key(3), TranspositionEntry(3))

    assert len(cache) == 2
    assert _key(1) in cache
    assert _key(2) not in cache
    assert _key(3) in cache


def test_keys_distinguish_depth_and_side():
    cache = TranspositionCache()
    cache.put(cache.make_key("fen", 2, True), TranspositionEntry(5))
    assert cache.get(cache.make_key("fen", 3, True)) is None
    assert cache.get(cache.make_key("fen", 2, False)) is None


def test_clear_resets_entries_and_counters():
    cache = TranspositionCache()
    cache.put(_key(1), TranspositionEntry(1))
    cache.get(_key(1))
    cache.clear()
    assert len(cache) == 0
    assert cache.items() == []
    assert (cache.hits, cache.misses) == (0, 0)


@pytest.mark.parametrize("size", [0, -5])
def test_rejects_non_positive_size(size):
    with pytest.raises(ValueError):
        TranspositionCache(size)


def test_concurrent_writers_respect_capacity():
    cache = TranspositionCache(100)

    def writer(offset):
        for i in range(500):
            cache.put(_key(offset * 1000 + i), TranspositionEntry(i))
            cache.get(_key(offset * 1000 + i // 2))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) == 100
    assert cache.hits + cache.misses == 2000
