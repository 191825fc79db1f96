import threading

import chess
import pytest

from shallowred.cache import TT_EXACT, CacheEntry, TranspositionCache


@pytest.fixture()
def cache():
    table = TranspositionCache(capacity=4)
    yield table
    table.close()


def make_entry(key: int, depth: int = 1, value: int = 0) -> CacheEntry:
    return CacheEntry(key=key, depth=depth, value=value, flag=TT_EXACT, move=chess.Move.from_uci("e2e4"))


def test_submitted_entries_become_visible(cache) -> None:
    assert cache.probe(1) is None
    cache.submit(make_entry(1, value=42))
    cache.wait_idle()
    entry = cache.probe(1)
    assert entry is not None and entry.value == 42
    assert cache.probes == 2
    assert cache.hits == 1


def test_deeper_entries_are_not_replaced_by_shallower(cache) -> None:
    cache.submit(make_entry(7, depth=5, value=1))
    cache.submit(make_entry(7, depth=2, value=2))
    cache.wait_idle()
    assert cache.probe(7).value == 1

    cache.submit(make_entry(7, depth=6, value=3))
    cache.wait_idle()
    assert cache.probe(7).value == 3


def test_oldest_entries_are_evicted_beyond_capacity(cache) -> None:
    for key in range(6):
        cache.submit(make_entry(key))
    cache.wait_idle()
    assert len(cache) == 4
    assert cache.probe(0) is None
    assert cache.probe(1) is None
    assert cache.probe(5) is not None


def test_request_clear_empties_cache(cache) -> None:
    cache.submit(make_entry(1))
    cache.submit(make_entry(2))
    cache.request_clear()
    cache.wait_idle()
    assert len(cache) == 0


def test_concurrent_probes_while_maintenance_runs() -> None:
    table = TranspositionCache(capacity=1000)
    errors = []

    def reader() -> None:
        try:
            for key in range(2000):
                entry = table.probe(key % 500)
                if entry is not None:
                    assert entry.key == key % 500
        except Exception as exc:  # pragma: no cover - surfaced through assertion below
            errors.append(exc)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for key in range(500):
        table.submit(make_entry(key))
    for thread in readers:
        thread.join(timeout=10)
    table.wait_idle()
    table.close()

    assert errors == []
    assert len(table) == 500
    assert table.probes == 4 * 2000


def test_close_stops_maintenance_and_ignores_late_requests() -> None:
    table = TranspositionCache(capacity=8)
    table.close()
    assert table.closed
    table.submit(make_entry(1))
    table.request_clear()
    assert len(table) == 0
    table.close()


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TranspositionCache(capacity=0)
